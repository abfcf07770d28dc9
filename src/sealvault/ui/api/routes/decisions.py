"""Decision log."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from sealvault.ui.api.deps import Scope, Services, TraceId
from sealvault.ui.api.schemas import DecisionView, success_envelope

router = APIRouter()


@router.get("")
def list_decisions(
    scope: Scope,
    services: Services,
    trace_id: TraceId,
    work_item_id: str | None = None,
) -> dict[str, Any]:
    decisions = services.decisions.list_decisions(scope.tenant_id, work_item_id=work_item_id)
    items = [DecisionView.render(decision) for decision in decisions]
    return success_envelope({"items": items, "total": len(items)}, trace_id)


@router.get("/{decision_id}")
def get_decision(
    decision_id: str, scope: Scope, services: Services, trace_id: TraceId
) -> dict[str, Any]:
    decision = services.decisions.get_decision(scope.tenant_id, decision_id)
    return success_envelope(DecisionView.render(decision), trace_id)
