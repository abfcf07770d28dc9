"""Tenant readiness indicators."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from sealvault.ui.api.deps import Scope, Services, TraceId
from sealvault.ui.api.schemas import KpiView, success_envelope

router = APIRouter()


@router.get("")
def get_kpis(scope: Scope, services: Services, trace_id: TraceId) -> dict[str, Any]:
    return success_envelope(KpiView.render(services.readiness.summary(scope.tenant_id)), trace_id)
