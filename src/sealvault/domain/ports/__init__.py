"""Ports implemented by adapters and consumed by the domain services."""

from __future__ import annotations

from .notifications import WorkItemNotifier
from .persistence import (
    AuditEventRepository,
    DecisionRepository,
    DraftRepository,
    EntityRepository,
    EvidenceRecordRepository,
    MappingSuggestionRepository,
    Repository,
    SequenceRepository,
    WorkItemRepository,
)
from .unit_of_work import (
    EvidenceRepositories,
    EvidenceUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "AuditEventRepository",
    "DecisionRepository",
    "DraftRepository",
    "EntityRepository",
    "EvidenceRecordRepository",
    "EvidenceRepositories",
    "EvidenceUnitOfWork",
    "MappingSuggestionRepository",
    "Repository",
    "RepositoryCollection",
    "SequenceRepository",
    "UnitOfWork",
    "WorkItemNotifier",
    "WorkItemRepository",
]
