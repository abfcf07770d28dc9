"""Ports for persisting domain aggregates.

Every query is tenant-scoped. Append-only aggregates (records, audit events,
decisions) expose no update operations.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from sealvault.domain.model import (
    AuditEvent,
    CanonicalEntity,
    Decision,
    EvidenceDraft,
    EvidenceRecord,
    MappingSuggestion,
    WorkItem,
)

if TYPE_CHECKING:
    from sealvault.domain.model import (
        AuditObjectType,
        DraftStatus,
        EntityRef,
        EntityType,
        MappingStatus,
        Page,
        Priority,
        WorkItemStatus,
        WorkItemType,
    )


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class DraftRepository(Repository[EvidenceDraft], Protocol):
    def get(self, tenant_id: str, draft_id: str) -> EvidenceDraft | None: ...

    def find(self, tenant_id: str, *, status: DraftStatus | None = None) -> list[EvidenceDraft]: ...

    def get_by_external_reference(
        self, tenant_id: str, evidence_type: str, external_reference_id: str
    ) -> EvidenceDraft | None: ...


@runtime_checkable
class EvidenceRecordRepository(Repository[EvidenceRecord], Protocol):
    def get(self, tenant_id: str, record_id: str) -> EvidenceRecord | None: ...

    def get_by_display_id(self, tenant_id: str, display_id: str) -> EvidenceRecord | None: ...

    def find(
        self,
        tenant_id: str,
        *,
        status: str | None = None,
        dataset_type: str | None = None,
        page: int = 1,
        page_size: int = 50,
    ) -> Page[EvidenceRecord]: ...

    def list_for_entity(self, tenant_id: str, ref: EntityRef) -> list[EvidenceRecord]: ...

    def count(self, tenant_id: str) -> int: ...


@runtime_checkable
class AuditEventRepository(Repository[AuditEvent], Protocol):
    def find(
        self,
        tenant_id: str,
        *,
        object_type: AuditObjectType | None = None,
        object_id: str | None = None,
        limit: int | None = None,
    ) -> list[AuditEvent]:
        """Return events newest first."""
        ...

    def count(self, tenant_id: str) -> int: ...


@runtime_checkable
class WorkItemRepository(Repository[WorkItem], Protocol):
    def get(self, tenant_id: str, work_item_id: str) -> WorkItem | None: ...

    def find(
        self,
        tenant_id: str,
        *,
        type: WorkItemType | None = None,  # noqa: A002
        status: WorkItemStatus | None = None,
        priority: Priority | None = None,
        page: int = 1,
        page_size: int = 100,
    ) -> Page[WorkItem]: ...

    def list_for_entity(self, tenant_id: str, ref: EntityRef) -> list[WorkItem]: ...

    def list_for_record(self, tenant_id: str, record_id: str) -> list[WorkItem]: ...

    def list_open(self, tenant_id: str) -> list[WorkItem]: ...


@runtime_checkable
class DecisionRepository(Repository[Decision], Protocol):
    def get(self, tenant_id: str, decision_id: str) -> Decision | None: ...

    def find(self, tenant_id: str, *, work_item_id: str | None = None) -> list[Decision]: ...


@runtime_checkable
class EntityRepository(Repository[CanonicalEntity], Protocol):
    def get(
        self, tenant_id: str, entity_type: EntityType, entity_id: str
    ) -> CanonicalEntity | None: ...

    def find(
        self, tenant_id: str, *, entity_type: EntityType | None = None
    ) -> list[CanonicalEntity]: ...


@runtime_checkable
class MappingSuggestionRepository(Repository[MappingSuggestion], Protocol):
    def get(self, tenant_id: str, suggestion_id: str) -> MappingSuggestion | None: ...

    def find(
        self, tenant_id: str, *, status: MappingStatus | None = None
    ) -> list[MappingSuggestion]: ...


@runtime_checkable
class SequenceRepository(Protocol):
    """Per-tenant monotonic counters backing display ids."""

    def next_value(self, tenant_id: str, name: str) -> int: ...
