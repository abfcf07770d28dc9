"""Mapping suggestion review."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from sealvault.domain.model import MappingStatus
from sealvault.ui.api.deps import Scope, Services, TraceId
from sealvault.ui.api.schemas import (
    ApproveRequest,
    RejectRequest,
    ReviewView,
    SuggestionCreateRequest,
    SuggestionView,
    success_envelope,
)

router = APIRouter()


@router.get("")
def list_suggestions(
    scope: Scope,
    services: Services,
    trace_id: TraceId,
    status: MappingStatus | None = None,
) -> dict[str, Any]:
    suggestions = services.mapping_suggestions.list_suggestions(scope.tenant_id, status=status)
    items = [SuggestionView.render(suggestion) for suggestion in suggestions]
    return success_envelope({"items": items, "total": len(items)}, trace_id)


@router.post("", status_code=201)
def propose_suggestion(
    body: SuggestionCreateRequest, scope: Scope, services: Services, trace_id: TraceId
) -> JSONResponse:
    suggestion = services.mapping_suggestions.propose(scope, body.to_domain())
    return JSONResponse(
        status_code=201, content=success_envelope(SuggestionView.render(suggestion), trace_id)
    )


@router.get("/{suggestion_id}")
def get_suggestion(
    suggestion_id: str, scope: Scope, services: Services, trace_id: TraceId
) -> dict[str, Any]:
    suggestion = services.mapping_suggestions.get_suggestion(scope.tenant_id, suggestion_id)
    return success_envelope(SuggestionView.render(suggestion), trace_id)


@router.post("/{suggestion_id}/approve")
def approve_suggestion(
    suggestion_id: str,
    scope: Scope,
    services: Services,
    trace_id: TraceId,
    body: ApproveRequest | None = None,
) -> dict[str, Any]:
    comment = None if body is None else body.comment
    outcome = services.mapping_suggestions.approve(scope, suggestion_id, comment)
    return success_envelope(ReviewView.render(outcome), trace_id)


@router.post("/{suggestion_id}/reject")
def reject_suggestion(
    suggestion_id: str,
    scope: Scope,
    services: Services,
    trace_id: TraceId,
    body: RejectRequest | None = None,
) -> dict[str, Any]:
    reason = None if body is None else body.reason
    outcome = services.mapping_suggestions.reject(scope, suggestion_id, reason)
    return success_envelope(ReviewView.render(outcome), trace_id)
