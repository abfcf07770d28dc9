"""Versioned API router."""

from __future__ import annotations

from fastapi import APIRouter

from . import (
    audit_events,
    decisions,
    drafts,
    entities,
    evidence,
    kpis,
    mapping_suggestions,
    work_items,
)

api_router = APIRouter()
api_router.include_router(drafts.router, prefix="/drafts", tags=["Drafts"])
api_router.include_router(evidence.router, prefix="/evidence", tags=["Evidence"])
api_router.include_router(work_items.router, prefix="/work_items", tags=["Work items"])
api_router.include_router(decisions.router, prefix="/decisions", tags=["Decisions"])
api_router.include_router(audit_events.router, prefix="/audit_events", tags=["Audit"])
api_router.include_router(
    mapping_suggestions.router, prefix="/mapping_suggestions", tags=["Mapping suggestions"]
)
api_router.include_router(entities.router, prefix="/entities", tags=["Entities"])
api_router.include_router(kpis.router, prefix="/kpis", tags=["KPIs"])

__all__ = ["api_router"]
