"""Read access to the audit trail."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Query

from sealvault.domain.model import AuditObjectType
from sealvault.ui.api.deps import Scope, Services, TraceId
from sealvault.ui.api.schemas import AuditEventView, success_envelope

router = APIRouter()


@router.get("")
def list_audit_events(
    scope: Scope,
    services: Services,
    trace_id: TraceId,
    object_type: AuditObjectType | None = None,
    object_id: str | None = None,
    limit: int | None = Query(default=None, ge=1, le=1000),
) -> dict[str, Any]:
    events = services.audit_trail.list_events(
        scope.tenant_id, object_type=object_type, object_id=object_id, limit=limit
    )
    items = [AuditEventView.render(event) for event in events]
    return success_envelope({"items": items, "total": len(items)}, trace_id)
