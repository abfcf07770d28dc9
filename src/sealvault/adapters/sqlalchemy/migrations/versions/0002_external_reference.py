"""Client external references for idempotent submissions.

Revision ID: 0002_external_reference
Revises: 0001_initial
Create Date: 2026-10-17 14:00:00

"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0002_external_reference"
down_revision: str | None = "0001_initial"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

REFERENCE = sa.String(128)


def upgrade() -> None:
    op.add_column("evidence_draft", sa.Column("external_reference_id", REFERENCE))
    op.add_column("evidence_record", sa.Column("external_reference_id", REFERENCE))
    # NULL references never collide, so drafts without one are unaffected
    op.create_index(
        "uq_evidence_draft_external_reference",
        "evidence_draft",
        ["tenant_id", "evidence_type", "external_reference_id"],
        unique=True,
    )


def downgrade() -> None:
    op.drop_index("uq_evidence_draft_external_reference", table_name="evidence_draft")
    with op.batch_alter_table("evidence_record") as batch:
        batch.drop_column("external_reference_id")
    with op.batch_alter_table("evidence_draft") as batch:
        batch.drop_column("external_reference_id")
