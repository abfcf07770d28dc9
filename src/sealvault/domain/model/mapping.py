"""Suggested links between entities, awaiting human review."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sealvault.domain.enums import EntityType, MappingStatus
from sealvault.domain.errors import InvalidStateError

from .base import EntityRef, utcnow

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(eq=False, kw_only=True)
class MappingSuggestion:
    tenant_id: str
    suggestion_id: str
    mapping_type: str
    source_type: str
    source_id: str
    target_entity_type: EntityType
    target_entity_id: str
    confidence_score: float
    source_label: str | None = None
    target_label: str | None = None
    reasoning: str | None = None
    matched_attributes: list[str] = field(default_factory=list)
    status: MappingStatus = MappingStatus.PENDING
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    review_comment: str | None = None
    rejection_reason: str | None = None
    created_at: datetime = field(default_factory=utcnow)

    @property
    def target(self) -> EntityRef:
        return EntityRef(self.target_entity_type, self.target_entity_id)

    def _review(self, status: MappingStatus, *, actor: str, at: datetime) -> MappingStatus:
        if self.status is not MappingStatus.PENDING:
            raise InvalidStateError(
                f"Mapping suggestion {self.suggestion_id} was already {self.status}"
            )
        previous = self.status
        self.status = status
        self.reviewed_by = actor
        self.reviewed_at = at
        return previous

    def approve(self, *, actor: str, at: datetime, comment: str | None = None) -> MappingStatus:
        previous = self._review(MappingStatus.APPROVED, actor=actor, at=at)
        self.review_comment = comment
        return previous

    def reject(self, *, actor: str, at: datetime, reason: str | None = None) -> MappingStatus:
        previous = self._review(MappingStatus.REJECTED, actor=actor, at=at)
        self.rejection_reason = reason
        return previous
