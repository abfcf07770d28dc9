"""Immutable decision records."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .base import utcnow

if TYPE_CHECKING:
    from datetime import datetime

    from .base import EntityRef


@dataclass(eq=False, kw_only=True)
class Decision:
    tenant_id: str
    decision_id: str
    decision_type: str
    actor: str
    work_item_id: str | None = None
    mapping_suggestion_id: str | None = None
    reason_code: str | None = None
    comment: str | None = None
    evidence_refs: list[str] = field(default_factory=list)
    entity_refs: list[EntityRef] = field(default_factory=list)
    timestamp: datetime = field(default_factory=utcnow)
