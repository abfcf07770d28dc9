"""SQLAlchemy mapping metadata for the evidence domain model."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Dialect,
    Enum,
    Float,
    Index,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    event,
    orm,
)
from sqlalchemy.orm import configure_mappers

from sealvault.domain.errors import ImmutableRecordError
from sealvault.domain.model import (
    AuditEvent,
    AuditEventType,
    AuditObjectType,
    BindingMode,
    BlockingIssue,
    CanonicalEntity,
    CanonicalFieldValue,
    Decision,
    DraftStatus,
    EntityRef,
    EntityType,
    EvidenceDraft,
    EvidenceRecord,
    FieldError,
    IngestionMethod,
    MappingStatus,
    MappingSuggestion,
    Priority,
    QuarantineReason,
    RecordStatus,
    RetentionPolicy,
    WorkItem,
    WorkItemStatus,
    WorkItemType,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection
    from sqlalchemy.orm import Mapper

log = logging.getLogger(__name__)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class EntityRefListType(TypeDecorator[list[EntityRef]]):
    impl = JSON
    cache_ok = True

    def process_bind_param(
        self, value: list[EntityRef] | None, dialect: Dialect
    ) -> list[dict[str, str]]:
        _ = dialect
        return [ref.to_dict() for ref in value or []]

    def process_result_value(self, value: Any, dialect: Dialect) -> list[EntityRef]:
        _ = dialect
        if not isinstance(value, list):
            return []
        return [EntityRef.from_dict(item) for item in cast(list[dict[str, Any]], value)]


class FieldErrorListType(TypeDecorator[list[FieldError]]):
    impl = JSON
    cache_ok = True

    def process_bind_param(
        self, value: list[FieldError] | None, dialect: Dialect
    ) -> list[dict[str, str]]:
        _ = dialect
        return [error.to_dict() for error in value or []]

    def process_result_value(self, value: Any, dialect: Dialect) -> list[FieldError]:
        _ = dialect
        if not isinstance(value, list):
            return []
        return [FieldError.from_dict(item) for item in cast(list[dict[str, Any]], value)]


class BlockingIssueListType(TypeDecorator[list[BlockingIssue]]):
    impl = JSON
    cache_ok = True

    def process_bind_param(
        self, value: list[BlockingIssue] | None, dialect: Dialect
    ) -> list[str]:
        _ = dialect
        return [str(issue) for issue in value or []]

    def process_result_value(self, value: Any, dialect: Dialect) -> list[BlockingIssue]:
        _ = dialect
        if not isinstance(value, list):
            return []
        return [BlockingIssue(item) for item in cast(list[str], value)]


class CanonicalFieldMapType(TypeDecorator[dict[str, CanonicalFieldValue]]):
    impl = JSON
    cache_ok = True

    def process_bind_param(
        self, value: dict[str, CanonicalFieldValue] | None, dialect: Dialect
    ) -> dict[str, dict[str, Any]]:
        _ = dialect
        return {
            name: {
                "value": field_value.value,
                "source_id": field_value.source_id,
                "updated_at": field_value.updated_at.isoformat(),
                "updated_by": field_value.updated_by,
            }
            for name, field_value in (value or {}).items()
        }

    def process_result_value(
        self, value: Any, dialect: Dialect
    ) -> dict[str, CanonicalFieldValue]:
        _ = dialect
        if not isinstance(value, dict):
            return {}
        return {
            name: CanonicalFieldValue(
                value=item.get("value"),
                source_id=item["source_id"],
                updated_at=datetime.fromisoformat(item["updated_at"]),
                updated_by=item["updated_by"],
            )
            for name, item in cast(dict[str, dict[str, Any]], value).items()
        }


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

ID_LENGTH = 64
ACTOR_LENGTH = 128
REFERENCE_LENGTH = 128

# Evidence --------------------------------------------------------------------

evidence_draft_table = Table(
    "evidence_draft",
    mapper_registry.metadata,
    Column("draft_id", String(ID_LENGTH), primary_key=True),
    Column("tenant_id", String(ID_LENGTH), nullable=False),
    Column("evidence_type", String(64), nullable=False),
    Column("ingestion_method", Enum(IngestionMethod, native_enum=False), nullable=False),
    Column("declared_scope", String(64)),
    Column("binding_mode", Enum(BindingMode, native_enum=False), nullable=False),
    Column("bound_entity_type", Enum(EntityType, native_enum=False)),
    Column("bound_entity_id", String(ID_LENGTH)),
    Column("justification_text", Text, nullable=False, default=""),
    Column("provenance_source", String(255), nullable=False, default=""),
    Column("retention_policy", Enum(RetentionPolicy, native_enum=False), nullable=False),
    Column("retention_custom_days", Integer),
    Column("external_reference_id", String(REFERENCE_LENGTH)),
    Column("payload", Text),
    Column("payload_hash", String(64)),
    Column("metadata_hash", String(64)),
    Column("status", Enum(DraftStatus, native_enum=False), nullable=False),
    Column("validation_errors", FieldErrorListType, nullable=False),
    Column("quarantine_reason", Enum(QuarantineReason, native_enum=False)),
    Column("sealed_record_id", String(ID_LENGTH)),
    Column("created_by", String(ACTOR_LENGTH)),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
    Index("ix_evidence_draft_tenant_status", "tenant_id", "status"),
    Index(
        "uq_evidence_draft_external_reference",
        "tenant_id",
        "evidence_type",
        "external_reference_id",
        unique=True,
    ),
)

evidence_record_table = Table(
    "evidence_record",
    mapper_registry.metadata,
    Column("record_id", String(ID_LENGTH), primary_key=True),
    Column("tenant_id", String(ID_LENGTH), nullable=False),
    Column("display_id", String(32), nullable=False),
    Column("draft_id", String(ID_LENGTH), nullable=False, unique=True),
    Column("dataset_type", String(64), nullable=False),
    Column("ingestion_method", Enum(IngestionMethod, native_enum=False), nullable=False),
    Column("declared_scope", String(64)),
    Column("provenance_source", String(255), nullable=False, default=""),
    Column("justification_text", Text, nullable=False, default=""),
    Column("linked_entities", EntityRefListType, nullable=False),
    Column("claims", JSON, nullable=False),
    Column("payload_hash", String(64), nullable=False),
    Column("metadata_hash", String(64), nullable=False),
    Column("blocking_issues", BlockingIssueListType, nullable=False),
    Column("status", Enum(RecordStatus, native_enum=False), nullable=False),
    Column("sealed_by", String(ACTOR_LENGTH)),
    Column("sealed_at", UTCDateTime(), nullable=False),
    Column("retention_ends_at", UTCDateTime(), nullable=False),
    Column("external_reference_id", String(REFERENCE_LENGTH)),
    UniqueConstraint("tenant_id", "display_id", name="uq_evidence_record_tenant_display"),
    Index("ix_evidence_record_tenant_dataset", "tenant_id", "dataset_type"),
)

audit_event_table = Table(
    "audit_event",
    mapper_registry.metadata,
    Column("sequence", Integer, primary_key=True, autoincrement=True),
    Column("event_id", String(ID_LENGTH), nullable=False, unique=True),
    Column("tenant_id", String(ID_LENGTH), nullable=False),
    Column("event_type", Enum(AuditEventType, native_enum=False), nullable=False),
    Column("object_type", Enum(AuditObjectType, native_enum=False), nullable=False),
    Column("object_id", String(ACTOR_LENGTH), nullable=False),
    Column("actor", String(ACTOR_LENGTH), nullable=False),
    Column("timestamp", UTCDateTime(), nullable=False),
    Column("metadata", JSON, nullable=False, key="details"),
    Index("ix_audit_event_tenant_timestamp", "tenant_id", "timestamp"),
    Index("ix_audit_event_object", "tenant_id", "object_type", "object_id"),
)

# Work items and decisions ------------------------------------------------------

work_item_table = Table(
    "work_item",
    mapper_registry.metadata,
    Column("tenant_id", String(ID_LENGTH), primary_key=True),
    Column("work_item_id", String(32), primary_key=True),
    Column("type", Enum(WorkItemType, native_enum=False), nullable=False),
    Column("status", Enum(WorkItemStatus, native_enum=False), nullable=False),
    Column("priority", Enum(Priority, native_enum=False), nullable=False),
    Column("title", String(255), nullable=False),
    Column("required_action_text", Text),
    Column("reason_codes", JSON, nullable=False),
    Column("linked_entity_type", Enum(EntityType, native_enum=False)),
    Column("linked_entity_id", String(ID_LENGTH)),
    Column("linked_evidence_record_ids", JSON, nullable=False),
    Column("parent_work_item_id", String(32)),
    Column("owner", String(ACTOR_LENGTH)),
    Column("estimated_cost", Integer, nullable=False, default=0),
    Column("risk_estimate", Integer, nullable=False, default=0),
    Column("details", JSON(none_as_null=True)),
    Column("resolution", JSON(none_as_null=True)),
    Column("created_by", String(ACTOR_LENGTH)),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("sla_due_at", UTCDateTime(), nullable=False),
    Column("resolved_at", UTCDateTime()),
    Column("resolved_by", String(ACTOR_LENGTH)),
    Index("ix_work_item_entity", "tenant_id", "linked_entity_type", "linked_entity_id"),
)

decision_table = Table(
    "decision",
    mapper_registry.metadata,
    Column("tenant_id", String(ID_LENGTH), primary_key=True),
    Column("decision_id", String(32), primary_key=True),
    Column("decision_type", String(64), nullable=False),
    Column("actor", String(ACTOR_LENGTH), nullable=False),
    Column("work_item_id", String(32)),
    Column("mapping_suggestion_id", String(32)),
    Column("reason_code", String(64)),
    Column("comment", Text),
    Column("evidence_refs", JSON, nullable=False),
    Column("entity_refs", EntityRefListType, nullable=False),
    Column("timestamp", UTCDateTime(), nullable=False),
    Index("ix_decision_work_item", "tenant_id", "work_item_id"),
)

# Entities and mapping ----------------------------------------------------------

canonical_entity_table = Table(
    "canonical_entity",
    mapper_registry.metadata,
    Column("tenant_id", String(ID_LENGTH), primary_key=True),
    Column("entity_type", Enum(EntityType, native_enum=False), primary_key=True),
    Column("entity_id", String(ID_LENGTH), primary_key=True),
    Column("name", String(255), nullable=False, default=""),
    Column("attributes", JSON, nullable=False),
    Column("canonical_fields", CanonicalFieldMapType, nullable=False),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
    Column("version", Integer, nullable=False),
)

mapping_suggestion_table = Table(
    "mapping_suggestion",
    mapper_registry.metadata,
    Column("tenant_id", String(ID_LENGTH), primary_key=True),
    Column("suggestion_id", String(32), primary_key=True),
    Column("mapping_type", String(64), nullable=False),
    Column("source_type", String(64), nullable=False),
    Column("source_id", String(ID_LENGTH), nullable=False),
    Column("source_label", String(255)),
    Column("target_entity_type", Enum(EntityType, native_enum=False), nullable=False),
    Column("target_entity_id", String(ID_LENGTH), nullable=False),
    Column("target_label", String(255)),
    Column("confidence_score", Float, nullable=False),
    Column("reasoning", Text),
    Column("matched_attributes", JSON, nullable=False),
    Column("status", Enum(MappingStatus, native_enum=False), nullable=False),
    Column("reviewed_by", String(ACTOR_LENGTH)),
    Column("reviewed_at", UTCDateTime()),
    Column("review_comment", Text),
    Column("rejection_reason", Text),
    Column("created_at", UTCDateTime(), nullable=False),
)

sequence_counter_table = Table(
    "sequence_counter",
    mapper_registry.metadata,
    Column("tenant_id", String(ID_LENGTH), primary_key=True),
    Column("name", String(16), primary_key=True),
    Column("value", Integer, nullable=False),
)

APPEND_ONLY_CLASSES: tuple[type[Any], ...] = (EvidenceRecord, AuditEvent, Decision)


def _reject_update(mapper: Mapper[Any], connection: Connection, target: object) -> None:
    _ = connection
    raise ImmutableRecordError(f"{mapper.class_.__name__} rows are append-only: {target!r}")


@cache
def start_mappers() -> None:
    """Configure imperative mappings between the domain model and tables."""

    log.debug("Configuring SQLAlchemy mappers")
    mapper_registry.map_imperatively(EvidenceDraft, evidence_draft_table)
    mapper_registry.map_imperatively(EvidenceRecord, evidence_record_table)
    mapper_registry.map_imperatively(AuditEvent, audit_event_table)
    mapper_registry.map_imperatively(WorkItem, work_item_table)
    mapper_registry.map_imperatively(Decision, decision_table)
    mapper_registry.map_imperatively(
        CanonicalEntity,
        canonical_entity_table,
        version_id_col=canonical_entity_table.c.version,
    )
    mapper_registry.map_imperatively(MappingSuggestion, mapping_suggestion_table)

    for cls in APPEND_ONLY_CLASSES:
        event.listen(cls, "before_update", _reject_update)

    configure_mappers()
