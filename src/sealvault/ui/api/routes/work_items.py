"""Work item queue, resolution and follow-ups."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse

from sealvault.domain.model import Priority, WorkItemStatus, WorkItemType
from sealvault.ui.api.deps import Scope, Services, TraceId
from sealvault.ui.api.schemas import (
    DecisionView,
    FollowUpCreateRequest,
    ResolveRequest,
    WorkItemCreateRequest,
    WorkItemView,
    page_payload,
    success_envelope,
)

router = APIRouter()


@router.get("")
def list_work_items(
    scope: Scope,
    services: Services,
    trace_id: TraceId,
    type: WorkItemType | None = None,  # noqa: A002
    status: WorkItemStatus | None = None,
    priority: Priority | None = None,
    page: int = Query(default=1, ge=1),
    page_size: int | None = Query(default=None, ge=1, le=500),
) -> dict[str, Any]:
    items = services.work_items.list_work_items(
        scope.tenant_id,
        type=type,
        status=status,
        priority=priority,
        page=page,
        page_size=page_size,
    )
    return success_envelope(page_payload(items, WorkItemView.render), trace_id)


@router.post("", status_code=201)
def create_work_item(
    body: WorkItemCreateRequest, scope: Scope, services: Services, trace_id: TraceId
) -> JSONResponse:
    item = services.work_items.create_work_item(scope, body.to_domain())
    return JSONResponse(
        status_code=201, content=success_envelope(WorkItemView.render(item), trace_id)
    )


@router.get("/{work_item_id}")
def get_work_item(
    work_item_id: str, scope: Scope, services: Services, trace_id: TraceId
) -> dict[str, Any]:
    item = services.work_items.get_work_item(scope.tenant_id, work_item_id)
    return success_envelope(WorkItemView.render(item), trace_id)


@router.post("/{work_item_id}/resolve")
def resolve_work_item(
    work_item_id: str,
    body: ResolveRequest,
    scope: Scope,
    services: Services,
    trace_id: TraceId,
) -> dict[str, Any]:
    decision = services.decisions.resolve_work_item(scope, work_item_id, body.to_domain())
    return success_envelope(DecisionView.render(decision), trace_id)


@router.post("/{work_item_id}/follow_up", status_code=201)
def create_follow_up(
    work_item_id: str,
    body: FollowUpCreateRequest,
    scope: Scope,
    services: Services,
    trace_id: TraceId,
) -> JSONResponse:
    item = services.decisions.create_follow_up(scope, work_item_id, body.to_domain())
    return JSONResponse(
        status_code=201, content=success_envelope(WorkItemView.render(item), trace_id)
    )
