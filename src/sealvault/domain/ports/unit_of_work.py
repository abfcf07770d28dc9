"""Unit-of-work abstractions for coordinating repositories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

    from sealvault.domain.ports.persistence import (
        AuditEventRepository,
        DecisionRepository,
        DraftRepository,
        EntityRepository,
        EvidenceRecordRepository,
        MappingSuggestionRepository,
        SequenceRepository,
        WorkItemRepository,
    )


@runtime_checkable
class RepositoryCollection(Protocol):
    """Marker protocol for groups of repositories managed together."""


@runtime_checkable
class UnitOfWork[TRepositories: RepositoryCollection](Protocol):
    """Generic unit-of-work boundary around a repository collection.

    Everything written through the repositories becomes visible together on
    ``commit``; leaving the block without committing discards it.
    """

    @property
    def repositories(self) -> TRepositories: ...

    def __enter__(self) -> UnitOfWork[TRepositories]: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


@dataclass(slots=True)
class EvidenceRepositories(RepositoryCollection):
    """Repositories backing the evidence lifecycle."""

    drafts: DraftRepository
    evidence: EvidenceRecordRepository
    audit_events: AuditEventRepository
    work_items: WorkItemRepository
    decisions: DecisionRepository
    entities: EntityRepository
    mapping_suggestions: MappingSuggestionRepository
    sequences: SequenceRepository


type EvidenceUnitOfWork = UnitOfWork[EvidenceRepositories]
