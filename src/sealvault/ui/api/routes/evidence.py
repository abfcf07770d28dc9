"""Sealed evidence records."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Query

from sealvault.domain.model import RecordStatus
from sealvault.ui.api.deps import Scope, Services, TraceId
from sealvault.ui.api.schemas import RecordView, WorkItemView, page_payload, success_envelope

router = APIRouter()


@router.get("")
def list_evidence(
    scope: Scope,
    services: Services,
    trace_id: TraceId,
    status: RecordStatus | None = None,
    dataset_type: str | None = None,
    page: int = Query(default=1, ge=1),
    page_size: int | None = Query(default=None, ge=1, le=500),
) -> dict[str, Any]:
    records = services.ledger.list_records(
        scope.tenant_id,
        status=status,
        dataset_type=dataset_type,
        page=page,
        page_size=page_size,
    )
    return success_envelope(page_payload(records, RecordView.render), trace_id)


@router.get("/{record_id}")
def get_evidence(
    record_id: str, scope: Scope, services: Services, trace_id: TraceId
) -> dict[str, Any]:
    """Accepts the internal record id or the display id (``EV-0001``)."""

    record = services.ledger.get_record(scope.tenant_id, record_id)
    work_items = services.work_items.work_items_for_record(scope.tenant_id, record.record_id)
    data = RecordView.render(record)
    data["work_items"] = [WorkItemView.render(item) for item in work_items]
    return success_envelope(data, trace_id)
