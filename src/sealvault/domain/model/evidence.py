"""Sealed evidence records."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from sealvault.domain.enums import IngestionMethod, RecordStatus, ScopeBindingStatus

from .base import new_id

if TYPE_CHECKING:
    from datetime import datetime

    from sealvault.domain.enums import BlockingIssue

    from .base import EntityRef


RECEIPT_PREFIX = "RCPT"


@dataclass(eq=False, kw_only=True)
class EvidenceRecord:
    """Immutable outcome of sealing exactly one draft."""

    tenant_id: str
    display_id: str
    draft_id: str
    dataset_type: str
    payload_hash: str
    metadata_hash: str
    sealed_at: datetime
    retention_ends_at: datetime
    record_id: str = field(default_factory=new_id)
    ingestion_method: IngestionMethod = IngestionMethod.MANUAL_ENTRY
    declared_scope: str | None = None
    provenance_source: str = ""
    justification_text: str = ""
    linked_entities: list[EntityRef] = field(default_factory=list)
    claims: dict[str, Any] = field(default_factory=dict)
    blocking_issues: list[BlockingIssue] = field(default_factory=list)
    status: RecordStatus = RecordStatus.SEALED
    sealed_by: str | None = None
    external_reference_id: str | None = None

    @property
    def scope_binding_status(self) -> ScopeBindingStatus:
        return ScopeBindingStatus.BOUND if self.linked_entities else ScopeBindingStatus.UNRESOLVED

    @property
    def receipt_id(self) -> str:
        return f"{RECEIPT_PREFIX}-{self.display_id}"

    @property
    def primary_entity(self) -> EntityRef | None:
        return self.linked_entities[0] if self.linked_entities else None
