"""Initial evidence lifecycle schema.

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-17 09:00:00

"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

ID = sa.String(64)
SHORT_ID = sa.String(32)
ACTOR = sa.String(128)
ENUM = sa.String(32)


def _timestamp(name: str, *, nullable: bool = False) -> sa.Column[object]:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def upgrade() -> None:
    op.create_table(
        "evidence_draft",
        sa.Column("draft_id", ID, nullable=False),
        sa.Column("tenant_id", ID, nullable=False),
        sa.Column("evidence_type", sa.String(64), nullable=False),
        sa.Column("ingestion_method", ENUM, nullable=False),
        sa.Column("declared_scope", sa.String(64)),
        sa.Column("binding_mode", ENUM, nullable=False),
        sa.Column("bound_entity_type", ENUM),
        sa.Column("bound_entity_id", ID),
        sa.Column("justification_text", sa.Text, nullable=False),
        sa.Column("provenance_source", sa.String(255), nullable=False),
        sa.Column("retention_policy", ENUM, nullable=False),
        sa.Column("retention_custom_days", sa.Integer),
        sa.Column("payload", sa.Text),
        sa.Column("payload_hash", sa.String(64)),
        sa.Column("metadata_hash", sa.String(64)),
        sa.Column("status", ENUM, nullable=False),
        sa.Column("validation_errors", sa.JSON, nullable=False),
        sa.Column("quarantine_reason", ENUM),
        sa.Column("sealed_record_id", ID),
        sa.Column("created_by", ACTOR),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("draft_id", name="pk_evidence_draft"),
    )
    op.create_index(
        "ix_evidence_draft_tenant_status", "evidence_draft", ["tenant_id", "status"]
    )

    op.create_table(
        "evidence_record",
        sa.Column("record_id", ID, nullable=False),
        sa.Column("tenant_id", ID, nullable=False),
        sa.Column("display_id", SHORT_ID, nullable=False),
        sa.Column("draft_id", ID, nullable=False),
        sa.Column("dataset_type", sa.String(64), nullable=False),
        sa.Column("ingestion_method", ENUM, nullable=False),
        sa.Column("declared_scope", sa.String(64)),
        sa.Column("provenance_source", sa.String(255), nullable=False),
        sa.Column("justification_text", sa.Text, nullable=False),
        sa.Column("linked_entities", sa.JSON, nullable=False),
        sa.Column("claims", sa.JSON, nullable=False),
        sa.Column("payload_hash", sa.String(64), nullable=False),
        sa.Column("metadata_hash", sa.String(64), nullable=False),
        sa.Column("blocking_issues", sa.JSON, nullable=False),
        sa.Column("status", ENUM, nullable=False),
        sa.Column("sealed_by", ACTOR),
        _timestamp("sealed_at"),
        _timestamp("retention_ends_at"),
        sa.PrimaryKeyConstraint("record_id", name="pk_evidence_record"),
        sa.UniqueConstraint("draft_id", name="uq_evidence_record_draft_id"),
        sa.UniqueConstraint(
            "tenant_id", "display_id", name="uq_evidence_record_tenant_display"
        ),
    )
    op.create_index(
        "ix_evidence_record_tenant_dataset", "evidence_record", ["tenant_id", "dataset_type"]
    )

    op.create_table(
        "audit_event",
        sa.Column("sequence", sa.Integer, nullable=False, autoincrement=True),
        sa.Column("event_id", ID, nullable=False),
        sa.Column("tenant_id", ID, nullable=False),
        sa.Column("event_type", ENUM, nullable=False),
        sa.Column("object_type", ENUM, nullable=False),
        sa.Column("object_id", ACTOR, nullable=False),
        sa.Column("actor", ACTOR, nullable=False),
        _timestamp("timestamp"),
        sa.Column("metadata", sa.JSON, nullable=False),
        sa.PrimaryKeyConstraint("sequence", name="pk_audit_event"),
        sa.UniqueConstraint("event_id", name="uq_audit_event_event_id"),
    )
    op.create_index(
        "ix_audit_event_tenant_timestamp", "audit_event", ["tenant_id", "timestamp"]
    )
    op.create_index(
        "ix_audit_event_object", "audit_event", ["tenant_id", "object_type", "object_id"]
    )

    op.create_table(
        "work_item",
        sa.Column("tenant_id", ID, nullable=False),
        sa.Column("work_item_id", SHORT_ID, nullable=False),
        sa.Column("type", ENUM, nullable=False),
        sa.Column("status", ENUM, nullable=False),
        sa.Column("priority", ENUM, nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("required_action_text", sa.Text),
        sa.Column("reason_codes", sa.JSON, nullable=False),
        sa.Column("linked_entity_type", ENUM),
        sa.Column("linked_entity_id", ID),
        sa.Column("linked_evidence_record_ids", sa.JSON, nullable=False),
        sa.Column("parent_work_item_id", SHORT_ID),
        sa.Column("owner", ACTOR),
        sa.Column("estimated_cost", sa.Integer, nullable=False),
        sa.Column("risk_estimate", sa.Integer, nullable=False),
        sa.Column("details", sa.JSON),
        sa.Column("resolution", sa.JSON),
        sa.Column("created_by", ACTOR),
        _timestamp("created_at"),
        _timestamp("sla_due_at"),
        _timestamp("resolved_at", nullable=True),
        sa.Column("resolved_by", ACTOR),
        sa.PrimaryKeyConstraint("tenant_id", "work_item_id", name="pk_work_item"),
    )
    op.create_index(
        "ix_work_item_entity",
        "work_item",
        ["tenant_id", "linked_entity_type", "linked_entity_id"],
    )

    op.create_table(
        "decision",
        sa.Column("tenant_id", ID, nullable=False),
        sa.Column("decision_id", SHORT_ID, nullable=False),
        sa.Column("decision_type", sa.String(64), nullable=False),
        sa.Column("actor", ACTOR, nullable=False),
        sa.Column("work_item_id", SHORT_ID),
        sa.Column("mapping_suggestion_id", SHORT_ID),
        sa.Column("reason_code", sa.String(64)),
        sa.Column("comment", sa.Text),
        sa.Column("evidence_refs", sa.JSON, nullable=False),
        sa.Column("entity_refs", sa.JSON, nullable=False),
        _timestamp("timestamp"),
        sa.PrimaryKeyConstraint("tenant_id", "decision_id", name="pk_decision"),
    )
    op.create_index("ix_decision_work_item", "decision", ["tenant_id", "work_item_id"])

    op.create_table(
        "canonical_entity",
        sa.Column("tenant_id", ID, nullable=False),
        sa.Column("entity_type", ENUM, nullable=False),
        sa.Column("entity_id", ID, nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("attributes", sa.JSON, nullable=False),
        sa.Column("canonical_fields", sa.JSON, nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.Column("version", sa.Integer, nullable=False),
        sa.PrimaryKeyConstraint(
            "tenant_id", "entity_type", "entity_id", name="pk_canonical_entity"
        ),
    )

    op.create_table(
        "mapping_suggestion",
        sa.Column("tenant_id", ID, nullable=False),
        sa.Column("suggestion_id", SHORT_ID, nullable=False),
        sa.Column("mapping_type", sa.String(64), nullable=False),
        sa.Column("source_type", sa.String(64), nullable=False),
        sa.Column("source_id", ID, nullable=False),
        sa.Column("source_label", sa.String(255)),
        sa.Column("target_entity_type", ENUM, nullable=False),
        sa.Column("target_entity_id", ID, nullable=False),
        sa.Column("target_label", sa.String(255)),
        sa.Column("confidence_score", sa.Float, nullable=False),
        sa.Column("reasoning", sa.Text),
        sa.Column("matched_attributes", sa.JSON, nullable=False),
        sa.Column("status", ENUM, nullable=False),
        sa.Column("reviewed_by", ACTOR),
        _timestamp("reviewed_at", nullable=True),
        sa.Column("review_comment", sa.Text),
        sa.Column("rejection_reason", sa.Text),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("tenant_id", "suggestion_id", name="pk_mapping_suggestion"),
    )

    op.create_table(
        "sequence_counter",
        sa.Column("tenant_id", ID, nullable=False),
        sa.Column("name", sa.String(16), nullable=False),
        sa.Column("value", sa.Integer, nullable=False),
        sa.PrimaryKeyConstraint("tenant_id", "name", name="pk_sequence_counter"),
    )


def downgrade() -> None:
    op.drop_table("sequence_counter")
    op.drop_table("mapping_suggestion")
    op.drop_table("canonical_entity")
    op.drop_index("ix_decision_work_item", table_name="decision")
    op.drop_table("decision")
    op.drop_index("ix_work_item_entity", table_name="work_item")
    op.drop_table("work_item")
    op.drop_index("ix_audit_event_object", table_name="audit_event")
    op.drop_index("ix_audit_event_tenant_timestamp", table_name="audit_event")
    op.drop_table("audit_event")
    op.drop_index("ix_evidence_record_tenant_dataset", table_name="evidence_record")
    op.drop_table("evidence_record")
    op.drop_index("ix_evidence_draft_tenant_status", table_name="evidence_draft")
    op.drop_table("evidence_draft")
