"""SQLAlchemy adapter package for Sealvault."""

from __future__ import annotations

from .mappings import mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyAuditEventRepository,
    SqlAlchemyDecisionRepository,
    SqlAlchemyDraftRepository,
    SqlAlchemyEntityRepository,
    SqlAlchemyEvidenceRecordRepository,
    SqlAlchemyMappingSuggestionRepository,
    SqlAlchemySequenceRepository,
    SqlAlchemyWorkItemRepository,
)

__all__ = [
    "SqlAlchemyAuditEventRepository",
    "SqlAlchemyDecisionRepository",
    "SqlAlchemyDraftRepository",
    "SqlAlchemyEntityRepository",
    "SqlAlchemyEvidenceRecordRepository",
    "SqlAlchemyMappingSuggestionRepository",
    "SqlAlchemySequenceRepository",
    "SqlAlchemyWorkItemRepository",
    "mapper_registry",
    "start_mappers",
]
