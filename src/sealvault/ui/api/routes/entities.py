"""Canonical entity registry."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from sealvault.domain.model import EntityRef, EntityType
from sealvault.ui.api.deps import Scope, Services, TraceId
from sealvault.ui.api.schemas import (
    EntityCreateRequest,
    EntityView,
    RecordView,
    WorkItemView,
    success_envelope,
)

router = APIRouter()


@router.post("", status_code=201)
def register_entity(
    body: EntityCreateRequest, scope: Scope, services: Services, trace_id: TraceId
) -> JSONResponse:
    entity = services.entities.register_entity(
        scope,
        entity_type=body.entity_type,
        entity_id=body.entity_id,
        name=body.name,
        attributes=body.attributes,
    )
    return JSONResponse(
        status_code=201, content=success_envelope(EntityView.render(entity), trace_id)
    )


@router.get("/{entity_type}")
def list_entities(
    entity_type: EntityType, scope: Scope, services: Services, trace_id: TraceId
) -> dict[str, Any]:
    entities = services.entities.list_entities(scope.tenant_id, entity_type=entity_type)
    items = [EntityView.render(entity) for entity in entities]
    return success_envelope({"items": items, "total": len(items)}, trace_id)


@router.get("/{entity_type}/{entity_id}")
def get_entity(
    entity_type: EntityType,
    entity_id: str,
    scope: Scope,
    services: Services,
    trace_id: TraceId,
) -> dict[str, Any]:
    """The entity with its evidence and work items."""

    entity = services.entities.get_entity(scope.tenant_id, entity_type, entity_id)
    ref = EntityRef(entity_type, entity_id)
    data = EntityView.render(entity)
    data["evidence"] = [
        RecordView.render(record)
        for record in services.ledger.records_for_entity(scope.tenant_id, ref)
    ]
    data["work_items"] = [
        WorkItemView.render(item)
        for item in services.work_items.work_items_for_entity(scope.tenant_id, ref)
    ]
    return success_envelope(data, trace_id)
