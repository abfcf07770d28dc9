from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from sealvault.domain.errors import InvalidRequestError, InvalidStateError
from sealvault.domain.model import (
    DraftStatus,
    EntityRef,
    EntityType,
    EvidenceDraft,
    EvidenceRecord,
    FieldError,
    QuarantineReason,
    RetentionPolicy,
    ScopeBindingStatus,
    retention_end,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def _draft() -> EvidenceDraft:
    return EvidenceDraft(tenant_id="t", evidence_type="SKU_MASTER_V1")


def _attach(draft: EvidenceDraft) -> None:
    draft.attach_payload("{}", payload_hash="p" * 64, metadata_hash="m" * 64, at=NOW)


def test_happy_path_transitions() -> None:
    draft = _draft()

    _attach(draft)
    assert draft.mark_validated(at=NOW) is DraftStatus.PAYLOAD_ATTACHED
    assert draft.transition_to(DraftStatus.READY_TO_SEAL, at=NOW) is DraftStatus.VALIDATED
    assert draft.mark_sealed("record-1", at=NOW) is DraftStatus.READY_TO_SEAL

    assert draft.status is DraftStatus.SEALED
    assert draft.sealed_record_id == "record-1"
    assert draft.is_terminal


def test_payload_can_only_be_attached_once() -> None:
    draft = _draft()
    _attach(draft)

    with pytest.raises(InvalidStateError):
        _attach(draft)


def test_quarantine_is_terminal_and_keeps_errors() -> None:
    draft = _draft()
    _attach(draft)
    errors = [FieldError("sku_code", "SKU code is required")]

    draft.quarantine(QuarantineReason.VALIDATION_FAILED, errors, at=NOW)

    assert draft.is_terminal
    assert draft.validation_errors == errors
    with pytest.raises(InvalidStateError):
        draft.transition_to(DraftStatus.READY_TO_SEAL, at=NOW)


def test_cannot_skip_validation() -> None:
    draft = _draft()
    _attach(draft)

    with pytest.raises(InvalidStateError):
        draft.transition_to(DraftStatus.READY_TO_SEAL, at=NOW)


def test_bound_entity_needs_type_and_id() -> None:
    draft = _draft()
    draft.bound_entity_id = "SUP-001"
    assert draft.bound_entity is None

    draft.bound_entity_type = EntityType.SUPPLIER
    assert draft.bound_entity == EntityRef(EntityType.SUPPLIER, "SUP-001")


@pytest.mark.parametrize(
    ("policy", "expected"),
    [
        (RetentionPolicy.STANDARD_1_YEAR, datetime(2027, 3, 1, 12, 0, tzinfo=UTC)),
        (RetentionPolicy.THREE_YEARS, datetime(2029, 3, 1, 12, 0, tzinfo=UTC)),
        (RetentionPolicy.SEVEN_YEARS, datetime(2033, 3, 1, 12, 0, tzinfo=UTC)),
    ],
)
def test_retention_end_by_policy(policy: RetentionPolicy, expected: datetime) -> None:
    assert retention_end(NOW, policy) == expected


def test_retention_from_leap_day_clamps_to_february_28() -> None:
    leap_day = datetime(2028, 2, 29, 8, 30, tzinfo=UTC)

    assert retention_end(leap_day, RetentionPolicy.STANDARD_1_YEAR) == datetime(
        2029, 2, 28, 8, 30, tzinfo=UTC
    )


def test_custom_retention_uses_days() -> None:
    assert retention_end(NOW, RetentionPolicy.CUSTOM, 30) == NOW + timedelta(days=30)


@pytest.mark.parametrize("days", [None, 0, -5])
def test_custom_retention_requires_positive_days(days: int | None) -> None:
    with pytest.raises(InvalidRequestError):
        retention_end(NOW, RetentionPolicy.CUSTOM, days)


def test_record_receipt_and_binding_status() -> None:
    record = EvidenceRecord(
        tenant_id="t",
        display_id="EV-0007",
        draft_id="d",
        dataset_type="BOM_V1",
        payload_hash="p" * 64,
        metadata_hash="m" * 64,
        sealed_at=NOW,
        retention_ends_at=NOW,
    )

    assert record.receipt_id == "RCPT-EV-0007"
    assert record.scope_binding_status is ScopeBindingStatus.UNRESOLVED

    record.linked_entities = [EntityRef(EntityType.SKU, "SKU-1")]
    assert record.scope_binding_status is ScopeBindingStatus.BOUND
    assert record.primary_entity == EntityRef(EntityType.SKU, "SKU-1")
