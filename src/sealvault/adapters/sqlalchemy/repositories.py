"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import func, insert, select, update

from sealvault.adapters.sqlalchemy.mappings import (
    audit_event_table,
    canonical_entity_table,
    decision_table,
    evidence_draft_table,
    evidence_record_table,
    mapping_suggestion_table,
    sequence_counter_table,
    work_item_table,
)
from sealvault.domain.model import (
    AuditEvent,
    CanonicalEntity,
    Decision,
    EvidenceDraft,
    EvidenceRecord,
    MappingSuggestion,
    Page,
    WorkItem,
    WorkItemStatus,
)

if TYPE_CHECKING:
    from sqlalchemy import Select
    from sqlalchemy.orm import Session

    from sealvault.domain.model import (
        AuditObjectType,
        DraftStatus,
        EntityRef,
        EntityType,
        MappingStatus,
        Priority,
        WorkItemType,
    )


def _paginate[T](session: Session, stmt: Select[tuple[T]], *, page: int, page_size: int) -> Page[T]:
    page = max(page, 1)
    page_size = max(page_size, 1)
    total = session.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
    rows = session.execute(stmt.offset((page - 1) * page_size).limit(page_size)).scalars().all()
    return Page(items=list(rows), total=total, page=page, page_size=page_size)


class SqlAlchemyDraftRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: EvidenceDraft) -> None:
        self.session.add(entity)

    def get(self, tenant_id: str, draft_id: str) -> EvidenceDraft | None:
        draft = self.session.get(EvidenceDraft, draft_id)
        if draft is None or draft.tenant_id != tenant_id:
            return None
        return draft

    def find(self, tenant_id: str, *, status: DraftStatus | None = None) -> list[EvidenceDraft]:
        stmt = select(EvidenceDraft).where(evidence_draft_table.c.tenant_id == tenant_id)
        if status is not None:
            stmt = stmt.where(evidence_draft_table.c.status == status)
        stmt = stmt.order_by(evidence_draft_table.c.updated_at.desc())
        return list(self.session.execute(stmt).scalars())

    def get_by_external_reference(
        self, tenant_id: str, evidence_type: str, external_reference_id: str
    ) -> EvidenceDraft | None:
        stmt = (
            select(EvidenceDraft)
            .where(evidence_draft_table.c.tenant_id == tenant_id)
            .where(evidence_draft_table.c.evidence_type == evidence_type)
            .where(evidence_draft_table.c.external_reference_id == external_reference_id)
        )
        return self.session.execute(stmt).scalar_one_or_none()


class SqlAlchemyEvidenceRecordRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: EvidenceRecord) -> None:
        self.session.add(entity)

    def get(self, tenant_id: str, record_id: str) -> EvidenceRecord | None:
        record = self.session.get(EvidenceRecord, record_id)
        if record is None or record.tenant_id != tenant_id:
            return None
        return record

    def get_by_display_id(self, tenant_id: str, display_id: str) -> EvidenceRecord | None:
        stmt = (
            select(EvidenceRecord)
            .where(evidence_record_table.c.tenant_id == tenant_id)
            .where(evidence_record_table.c.display_id == display_id)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def find(
        self,
        tenant_id: str,
        *,
        status: str | None = None,
        dataset_type: str | None = None,
        page: int = 1,
        page_size: int = 50,
    ) -> Page[EvidenceRecord]:
        stmt = select(EvidenceRecord).where(evidence_record_table.c.tenant_id == tenant_id)
        if status is not None:
            stmt = stmt.where(evidence_record_table.c.status == status)
        if dataset_type is not None:
            stmt = stmt.where(evidence_record_table.c.dataset_type == dataset_type)
        stmt = stmt.order_by(
            evidence_record_table.c.sealed_at.desc(), evidence_record_table.c.display_id.desc()
        )
        return _paginate(self.session, stmt, page=page, page_size=page_size)

    def list_for_entity(self, tenant_id: str, ref: EntityRef) -> list[EvidenceRecord]:
        # linked entities live in a JSON column; filter in Python for portability
        stmt = (
            select(EvidenceRecord)
            .where(evidence_record_table.c.tenant_id == tenant_id)
            .order_by(evidence_record_table.c.sealed_at.desc())
        )
        records = self.session.execute(stmt).scalars()
        return [record for record in records if ref in record.linked_entities]

    def count(self, tenant_id: str) -> int:
        stmt = select(func.count()).where(evidence_record_table.c.tenant_id == tenant_id)
        return self.session.execute(stmt).scalar_one()


class SqlAlchemyAuditEventRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: AuditEvent) -> None:
        self.session.add(entity)

    def find(
        self,
        tenant_id: str,
        *,
        object_type: AuditObjectType | None = None,
        object_id: str | None = None,
        limit: int | None = None,
    ) -> list[AuditEvent]:
        stmt = select(AuditEvent).where(audit_event_table.c.tenant_id == tenant_id)
        if object_type is not None:
            stmt = stmt.where(audit_event_table.c.object_type == object_type)
        if object_id is not None:
            stmt = stmt.where(audit_event_table.c.object_id == object_id)
        stmt = stmt.order_by(
            audit_event_table.c.timestamp.desc(), audit_event_table.c.sequence.desc()
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.session.execute(stmt).scalars())

    def count(self, tenant_id: str) -> int:
        stmt = select(func.count()).where(audit_event_table.c.tenant_id == tenant_id)
        return self.session.execute(stmt).scalar_one()


class SqlAlchemyWorkItemRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: WorkItem) -> None:
        self.session.add(entity)

    def get(self, tenant_id: str, work_item_id: str) -> WorkItem | None:
        return self.session.get(WorkItem, (tenant_id, work_item_id))

    def find(
        self,
        tenant_id: str,
        *,
        type: WorkItemType | None = None,  # noqa: A002
        status: WorkItemStatus | None = None,
        priority: Priority | None = None,
        page: int = 1,
        page_size: int = 100,
    ) -> Page[WorkItem]:
        stmt = self._tenant_items(tenant_id)
        if type is not None:
            stmt = stmt.where(work_item_table.c.type == type)
        if status is not None:
            stmt = stmt.where(work_item_table.c.status == status)
        if priority is not None:
            stmt = stmt.where(work_item_table.c.priority == priority)
        return _paginate(self.session, stmt, page=page, page_size=page_size)

    def list_for_entity(self, tenant_id: str, ref: EntityRef) -> list[WorkItem]:
        stmt = (
            self._tenant_items(tenant_id)
            .where(work_item_table.c.linked_entity_type == ref.entity_type)
            .where(work_item_table.c.linked_entity_id == ref.entity_id)
        )
        return list(self.session.execute(stmt).scalars())

    def list_for_record(self, tenant_id: str, record_id: str) -> list[WorkItem]:
        items = self.session.execute(self._tenant_items(tenant_id)).scalars()
        return [item for item in items if record_id in item.linked_evidence_record_ids]

    def list_open(self, tenant_id: str) -> list[WorkItem]:
        stmt = self._tenant_items(tenant_id).where(
            work_item_table.c.status != WorkItemStatus.RESOLVED
        )
        return list(self.session.execute(stmt).scalars())

    @staticmethod
    def _tenant_items(tenant_id: str) -> Select[tuple[WorkItem]]:
        return (
            select(WorkItem)
            .where(work_item_table.c.tenant_id == tenant_id)
            .order_by(work_item_table.c.created_at.desc(), work_item_table.c.work_item_id.desc())
        )


class SqlAlchemyDecisionRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: Decision) -> None:
        self.session.add(entity)

    def get(self, tenant_id: str, decision_id: str) -> Decision | None:
        return self.session.get(Decision, (tenant_id, decision_id))

    def find(self, tenant_id: str, *, work_item_id: str | None = None) -> list[Decision]:
        stmt = select(Decision).where(decision_table.c.tenant_id == tenant_id)
        if work_item_id is not None:
            stmt = stmt.where(decision_table.c.work_item_id == work_item_id)
        stmt = stmt.order_by(decision_table.c.timestamp.desc(), decision_table.c.decision_id.desc())
        return list(self.session.execute(stmt).scalars())


class SqlAlchemyEntityRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: CanonicalEntity) -> None:
        self.session.add(entity)

    def get(
        self, tenant_id: str, entity_type: EntityType, entity_id: str
    ) -> CanonicalEntity | None:
        return self.session.get(CanonicalEntity, (tenant_id, entity_type, entity_id))

    def find(
        self, tenant_id: str, *, entity_type: EntityType | None = None
    ) -> list[CanonicalEntity]:
        stmt = select(CanonicalEntity).where(canonical_entity_table.c.tenant_id == tenant_id)
        if entity_type is not None:
            stmt = stmt.where(canonical_entity_table.c.entity_type == entity_type)
        stmt = stmt.order_by(
            canonical_entity_table.c.entity_type, canonical_entity_table.c.entity_id
        )
        return list(self.session.execute(stmt).scalars())


class SqlAlchemyMappingSuggestionRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: MappingSuggestion) -> None:
        self.session.add(entity)

    def get(self, tenant_id: str, suggestion_id: str) -> MappingSuggestion | None:
        return self.session.get(MappingSuggestion, (tenant_id, suggestion_id))

    def find(
        self, tenant_id: str, *, status: MappingStatus | None = None
    ) -> list[MappingSuggestion]:
        stmt = select(MappingSuggestion).where(mapping_suggestion_table.c.tenant_id == tenant_id)
        if status is not None:
            stmt = stmt.where(mapping_suggestion_table.c.status == status)
        stmt = stmt.order_by(mapping_suggestion_table.c.created_at.desc())
        return list(self.session.execute(stmt).scalars())


class SqlAlchemySequenceRepository:
    """Counters read under ``SELECT ... FOR UPDATE`` where the backend supports it."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def next_value(self, tenant_id: str, name: str) -> int:
        table = sequence_counter_table
        where: tuple[Any, ...] = (table.c.tenant_id == tenant_id, table.c.name == name)
        current = self.session.execute(
            select(table.c.value).where(*where).with_for_update()
        ).scalar_one_or_none()
        if current is None:
            self.session.execute(insert(table).values(tenant_id=tenant_id, name=name, value=1))
            return 1
        next_value = current + 1
        self.session.execute(update(table).where(*where).values(value=next_value))
        return next_value
