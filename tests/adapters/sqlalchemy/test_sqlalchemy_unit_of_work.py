from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import inspect

from sealvault.adapters.sqlalchemy.migrations import current_revision, head_revision
from sealvault.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyUnitOfWork,
    StartupError,
    build_session_factory,
    startup,
    unit_of_work_factory,
)
from sealvault.domain.errors import ConcurrentUpdateError, ImmutableRecordError
from sealvault.domain.model import (
    AuditEvent,
    AuditEventType,
    AuditObjectType,
    CanonicalEntity,
    EntityType,
    EvidenceDraft,
)
from tests.helpers.evidence import draft_request, seal_payload

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from sealvault.app import EvidenceServices
    from sealvault.domain.context import RequestScope

TABLES = {
    "alembic_version",
    "audit_event",
    "canonical_entity",
    "decision",
    "evidence_draft",
    "evidence_record",
    "mapping_suggestion",
    "sequence_counter",
    "work_item",
}


def test_startup_migrates_to_head(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine)

    assert TABLES <= set(inspect(sqlite_engine).get_table_names())
    assert current_revision(sqlite_engine) == head_revision() == "0002_external_reference"


def test_startup_is_idempotent(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine)
    startup(engine=sqlite_engine)

    assert TABLES <= set(inspect(sqlite_engine).get_table_names())


def test_repositories_require_an_open_unit_of_work(sqlite_engine: Engine) -> None:
    uow = SqlAlchemyUnitOfWork(build_session_factory(sqlite_engine))

    with pytest.raises(StartupError):
        _ = uow.repositories


def test_uncommitted_work_is_discarded(sqlite_engine: Engine) -> None:
    factory = unit_of_work_factory(startup(engine=sqlite_engine))
    draft = EvidenceDraft(tenant_id="t", evidence_type="SKU_MASTER_V1")

    with factory() as uow:
        uow.repositories.drafts.add(draft)

    with factory() as uow:
        assert uow.repositories.drafts.get("t", draft.draft_id) is None


def test_datetimes_come_back_in_utc(sqlite_engine: Engine) -> None:
    factory = unit_of_work_factory(startup(engine=sqlite_engine))
    local = datetime(2026, 5, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))
    draft = EvidenceDraft(
        tenant_id="t", evidence_type="SKU_MASTER_V1", created_at=local, updated_at=local
    )

    with factory() as uow:
        uow.repositories.drafts.add(draft)
        uow.commit()

    with factory() as uow:
        stored = uow.repositories.drafts.get("t", draft.draft_id)
        assert stored is not None
        assert stored.created_at == datetime(2026, 5, 1, 12, 0, tzinfo=UTC)
        assert stored.created_at.tzinfo is not None


def test_sequences_are_per_tenant_and_name(sqlite_engine: Engine) -> None:
    factory = unit_of_work_factory(startup(engine=sqlite_engine))

    with factory() as uow:
        sequences = uow.repositories.sequences
        values = [
            sequences.next_value("a", "EV"),
            sequences.next_value("a", "EV"),
            sequences.next_value("a", "WI"),
            sequences.next_value("b", "EV"),
        ]
        uow.commit()

    with factory() as uow:
        assert uow.repositories.sequences.next_value("a", "EV") == 3

    assert values == [1, 2, 1, 1]


def test_sealed_records_cannot_be_rewritten(
    services: EvidenceServices, scope: RequestScope
) -> None:
    sealed = seal_payload(
        services, scope, draft_request("SKU_MASTER_V1"), {"sku_code": "A", "sku_name": "B"}
    )

    with services.context.unit_of_work_factory() as uow:
        record = uow.repositories.evidence.get(scope.tenant_id, sealed.record.record_id)
        assert record is not None
        record.justification_text = "rewritten"
        with pytest.raises(ImmutableRecordError):
            uow.commit()

    stored = services.ledger.get_record(scope.tenant_id, sealed.record.display_id)
    assert stored.justification_text == sealed.record.justification_text


def test_audit_events_cannot_be_rewritten(sqlite_engine: Engine) -> None:
    factory = unit_of_work_factory(startup(engine=sqlite_engine))
    event = AuditEvent(
        tenant_id="t",
        event_type=AuditEventType.STATE_TRANSITION,
        object_type=AuditObjectType.EVIDENCE_DRAFT,
        object_id="d",
        actor="someone",
    )
    with factory() as uow:
        uow.repositories.audit_events.add(event)
        uow.commit()

    with factory() as uow:
        [stored] = uow.repositories.audit_events.find("t")
        assert stored.sequence is not None
        stored.actor = "someone-else"
        with pytest.raises(ImmutableRecordError):
            uow.commit()


def test_stale_entity_write_is_rejected(file_engine: Engine) -> None:
    factory = unit_of_work_factory(startup(engine=file_engine))
    with factory() as uow:
        uow.repositories.entities.add(
            CanonicalEntity(tenant_id="t", entity_type=EntityType.SKU, entity_id="SKU-1")
        )
        uow.commit()

    with factory() as first, factory() as second:
        mine = first.repositories.entities.get("t", EntityType.SKU, "SKU-1")
        theirs = second.repositories.entities.get("t", EntityType.SKU, "SKU-1")
        assert mine is not None
        assert theirs is not None
        assert mine.version == theirs.version == 1

        mine.name = "Hex bolt M8"
        first.commit()

        theirs.name = "Hex bolt M10"
        with pytest.raises(ConcurrentUpdateError):
            second.commit()

    with factory() as uow:
        entity = uow.repositories.entities.get("t", EntityType.SKU, "SKU-1")
        assert entity is not None
        assert entity.name == "Hex bolt M8"
        assert entity.version == 2
