"""Domain error taxonomy."""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

from sealvault.domain.enums import QuarantineReason

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sealvault.domain.model.base import FieldError


class EvidenceError(Exception):
    """Base class for all domain failures."""


class NotFoundError(EvidenceError):
    def __init__(self, object_type: str, object_id: str) -> None:
        super().__init__(f"{object_type} {object_id} not found")
        self.object_type = object_type
        self.object_id = object_id


class InvalidStateError(EvidenceError):
    """Raised when an operation is not permitted in the object's current state."""


class IdempotencyConflictError(InvalidStateError):
    """Raised when a client reference is replayed with a different payload."""

    def __init__(
        self, external_reference_id: str, *, existing_hash: str, provided_hash: str
    ) -> None:
        super().__init__(
            f"External reference {external_reference_id} was already used "
            "for a different payload"
        )
        self.external_reference_id = external_reference_id
        self.existing_hash = existing_hash
        self.provided_hash = provided_hash


class ConcurrencyError(EvidenceError):
    """Raised when concurrent writers could not be reconciled. Safe to retry."""


class LockTimeoutError(ConcurrencyError):
    pass


class ConcurrentUpdateError(ConcurrencyError):
    pass


class InvalidRequestError(EvidenceError):
    """Raised when a request is missing or contradicts required input."""


class ImmutableRecordError(RuntimeError):
    """Raised when an append-only record is about to be rewritten."""


class QuarantineError(EvidenceError):
    """Validation outcome that moves a draft to QUARANTINED.

    These are caught inside validation and recorded on the draft; they never escape
    to the caller of ``validate``.
    """

    reason: ClassVar[QuarantineReason]

    def __init__(self, errors: Iterable[FieldError]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(f"{error.field}: {error.message}" for error in self.errors))


class ValidationFailedError(QuarantineError):
    reason = QuarantineReason.VALIDATION_FAILED


class SchemaMismatchError(QuarantineError):
    reason = QuarantineReason.SCHEMA_MISMATCH


class ReferenceNotFoundError(QuarantineError):
    reason = QuarantineReason.ENTITY_NOT_FOUND
