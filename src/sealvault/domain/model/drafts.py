"""Evidence drafts and their lifecycle state machine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import TYPE_CHECKING, Final

from sealvault.domain.enums import (
    BindingMode,
    DraftStatus,
    EntityType,
    IngestionMethod,
    QuarantineReason,
    RetentionPolicy,
)
from sealvault.domain.errors import InvalidRequestError, InvalidStateError

from .base import EntityRef, new_id, utcnow

if TYPE_CHECKING:
    from datetime import datetime

    from .base import FieldError


ALLOWED_TRANSITIONS: Final[dict[DraftStatus, frozenset[DraftStatus]]] = {
    DraftStatus.DRAFT_CREATED: frozenset({DraftStatus.PAYLOAD_ATTACHED}),
    DraftStatus.PAYLOAD_ATTACHED: frozenset({DraftStatus.VALIDATED, DraftStatus.QUARANTINED}),
    DraftStatus.VALIDATED: frozenset({DraftStatus.READY_TO_SEAL}),
    DraftStatus.READY_TO_SEAL: frozenset({DraftStatus.SEALED}),
    DraftStatus.QUARANTINED: frozenset(),
    DraftStatus.SEALED: frozenset(),
}

RETENTION_YEARS: Final[dict[RetentionPolicy, int]] = {
    RetentionPolicy.STANDARD_1_YEAR: 1,
    RetentionPolicy.THREE_YEARS: 3,
    RetentionPolicy.SEVEN_YEARS: 7,
}


def add_years(moment: datetime, years: int) -> datetime:
    try:
        return moment.replace(year=moment.year + years)
    except ValueError:
        # 29 February in a non-leap target year
        return moment.replace(year=moment.year + years, day=28)


def retention_end(
    sealed_at: datetime, policy: RetentionPolicy, custom_days: int | None = None
) -> datetime:
    if policy is RetentionPolicy.CUSTOM:
        if custom_days is None or custom_days <= 0:
            raise InvalidRequestError(
                "CUSTOM retention requires a positive retention_custom_days"
            )
        return sealed_at + timedelta(days=custom_days)
    return add_years(sealed_at, RETENTION_YEARS[policy])


@dataclass(eq=False, kw_only=True)
class EvidenceDraft:
    """Mutable evidence submission, valid until it is sealed or quarantined."""

    tenant_id: str
    evidence_type: str
    draft_id: str = field(default_factory=new_id)
    ingestion_method: IngestionMethod = IngestionMethod.MANUAL_ENTRY
    declared_scope: str | None = None
    binding_mode: BindingMode = BindingMode.UNBOUND
    bound_entity_type: EntityType | None = None
    bound_entity_id: str | None = None
    justification_text: str = ""
    provenance_source: str = ""
    retention_policy: RetentionPolicy = RetentionPolicy.SEVEN_YEARS
    retention_custom_days: int | None = None
    external_reference_id: str | None = None
    payload: str | None = None
    payload_hash: str | None = None
    metadata_hash: str | None = None
    status: DraftStatus = DraftStatus.DRAFT_CREATED
    validation_errors: list[FieldError] = field(default_factory=list)
    quarantine_reason: QuarantineReason | None = None
    sealed_record_id: str | None = None
    created_by: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def bound_entity(self) -> EntityRef | None:
        if self.bound_entity_type is None or self.bound_entity_id is None:
            return None
        return EntityRef(self.bound_entity_type, self.bound_entity_id)

    @property
    def is_terminal(self) -> bool:
        return not ALLOWED_TRANSITIONS[self.status]

    def transition_to(self, target: DraftStatus, *, at: datetime) -> DraftStatus:
        """Move to ``target`` and return the previous status."""

        if target not in ALLOWED_TRANSITIONS[self.status]:
            raise InvalidStateError(
                f"Draft {self.draft_id} cannot move from {self.status} to {target}"
            )
        previous = self.status
        self.status = target
        self.updated_at = at
        return previous

    def attach_payload(
        self, payload: str, *, payload_hash: str, metadata_hash: str, at: datetime
    ) -> DraftStatus:
        if self.status is not DraftStatus.DRAFT_CREATED:
            raise InvalidStateError(
                f"Draft {self.draft_id} already has a payload (status {self.status})"
            )
        previous = self.transition_to(DraftStatus.PAYLOAD_ATTACHED, at=at)
        self.payload = payload
        self.payload_hash = payload_hash
        self.metadata_hash = metadata_hash
        return previous

    def mark_validated(self, *, at: datetime) -> DraftStatus:
        previous = self.transition_to(DraftStatus.VALIDATED, at=at)
        self.validation_errors = []
        self.quarantine_reason = None
        return previous

    def quarantine(
        self, reason: QuarantineReason, errors: list[FieldError], *, at: datetime
    ) -> DraftStatus:
        previous = self.transition_to(DraftStatus.QUARANTINED, at=at)
        self.quarantine_reason = reason
        self.validation_errors = list(errors)
        return previous

    def mark_sealed(self, record_id: str, *, at: datetime) -> DraftStatus:
        previous = self.transition_to(DraftStatus.SEALED, at=at)
        self.sealed_record_id = record_id
        return previous

    def retention_ends_at(self, sealed_at: datetime) -> datetime:
        return retention_end(sealed_at, self.retention_policy, self.retention_custom_days)
