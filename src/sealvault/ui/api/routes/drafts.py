"""Evidence draft endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from sealvault.domain.model import DraftStatus
from sealvault.ui.api.deps import Scope, Services, TraceId
from sealvault.ui.api.schemas import (
    DraftCreateRequest,
    DraftView,
    PayloadAttachRequest,
    SealView,
    ValidationView,
    success_envelope,
)

router = APIRouter()


@router.post("", status_code=201)
def create_draft(
    body: DraftCreateRequest, scope: Scope, services: Services, trace_id: TraceId
) -> JSONResponse:
    draft = services.drafts.create_draft(scope, body.to_domain())
    return JSONResponse(
        status_code=201,
        content=success_envelope(DraftView.render(draft), trace_id),
    )


@router.get("")
def list_drafts(
    scope: Scope,
    services: Services,
    trace_id: TraceId,
    status: DraftStatus | None = None,
) -> dict[str, Any]:
    drafts = services.drafts.list_drafts(scope.tenant_id, status=status)
    items = [DraftView.render(draft) for draft in drafts]
    return success_envelope({"items": items, "total": len(items)}, trace_id)


@router.get("/{draft_id}")
def get_draft(draft_id: str, scope: Scope, services: Services, trace_id: TraceId) -> dict[str, Any]:
    draft = services.drafts.get_draft(scope.tenant_id, draft_id)
    return success_envelope(DraftView.render(draft), trace_id)


@router.patch("/{draft_id}/payload")
def attach_payload(
    draft_id: str,
    body: PayloadAttachRequest,
    scope: Scope,
    services: Services,
    trace_id: TraceId,
) -> dict[str, Any]:
    draft = services.drafts.attach_payload(scope, draft_id, body.payload)
    return success_envelope(DraftView.render(draft), trace_id)


@router.post("/{draft_id}/validate")
def validate_draft(
    draft_id: str, scope: Scope, services: Services, trace_id: TraceId
) -> dict[str, Any]:
    result = services.drafts.validate(scope, draft_id)
    return success_envelope(ValidationView.render(result), trace_id)


@router.post("/{draft_id}/seal", status_code=201)
def seal_draft(draft_id: str, scope: Scope, services: Services, trace_id: TraceId) -> JSONResponse:
    result = services.drafts.seal(scope, draft_id)
    return JSONResponse(
        status_code=201,
        content=success_envelope(SealView.render(result), trace_id),
    )
