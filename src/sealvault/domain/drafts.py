"""Evidence draft lifecycle: create, attach, validate, seal."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sealvault.domain.claims import decode_payload, is_blank, parse_claims
from sealvault.domain.errors import (
    IdempotencyConflictError,
    InvalidRequestError,
    InvalidStateError,
    NotFoundError,
    QuarantineError,
    ReferenceNotFoundError,
    SchemaMismatchError,
    ValidationFailedError,
)
from sealvault.domain.hashing import metadata_hash, payload_hash, payload_text
from sealvault.domain.locking import draft_key, reference_key, sequence_key
from sealvault.domain.model import (
    AuditEventType,
    AuditObjectType,
    BindingMode,
    DraftStatus,
    EvidenceDraft,
    EvidenceRecord,
    FieldError,
    IngestionMethod,
    RetentionPolicy,
    retention_end,
)
from sealvault.domain.work_items import derive_work_items

if TYPE_CHECKING:
    from sealvault.domain.audit_trail import AuditTrail
    from sealvault.domain.canonical_store import EntityCanonicalStore
    from sealvault.domain.context import RequestScope, ServiceContext
    from sealvault.domain.hashing import JsonPayload
    from sealvault.domain.ledger import EvidenceLedger
    from sealvault.domain.locking import LockKey
    from sealvault.domain.model import (
        EntityType,
        QuarantineReason,
        ScopeBindingStatus,
        WorkItem,
    )
    from sealvault.domain.ports import EvidenceUnitOfWork
    from sealvault.domain.work_items import WorkItemEngine

log = logging.getLogger(__name__)

SEALABLE_STATUSES = frozenset({DraftStatus.VALIDATED, DraftStatus.READY_TO_SEAL})


@dataclass(frozen=True, slots=True, kw_only=True)
class DraftRequest:
    evidence_type: str
    ingestion_method: IngestionMethod = IngestionMethod.MANUAL_ENTRY
    declared_scope: str | None = None
    binding_mode: BindingMode = BindingMode.UNBOUND
    bound_entity_type: EntityType | None = None
    bound_entity_id: str | None = None
    justification_text: str = ""
    provenance_source: str = ""
    retention_policy: RetentionPolicy | None = None
    retention_custom_days: int | None = None
    external_reference_id: str | None = None


@dataclass(frozen=True, slots=True)
class ValidationResult:
    valid: bool
    status: DraftStatus
    errors: list[FieldError] = field(default_factory=list)
    quarantine_reason: QuarantineReason | None = None


@dataclass(frozen=True, slots=True)
class SealResult:
    record: EvidenceRecord
    work_items: list[WorkItem] = field(default_factory=list)

    @property
    def scope_binding_status(self) -> ScopeBindingStatus:
        return self.record.scope_binding_status

    @property
    def receipt_id(self) -> str:
        return self.record.receipt_id


class EvidenceDraftStore:
    def __init__(
        self,
        context: ServiceContext,
        *,
        audit_trail: AuditTrail,
        canonical_store: EntityCanonicalStore,
        ledger: EvidenceLedger,
        work_items: WorkItemEngine,
    ) -> None:
        self.context = context
        self.audit_trail = audit_trail
        self.canonical_store = canonical_store
        self.ledger = ledger
        self.work_items = work_items

    # creation ---------------------------------------------------------------

    def create_draft(self, scope: RequestScope, request: DraftRequest) -> EvidenceDraft:
        """Open a new draft.

        A request carrying an ``external_reference_id`` already used for the same
        evidence type returns the existing draft instead of opening a second one.
        """

        if is_blank(request.evidence_type):
            raise InvalidRequestError("evidence_type is required")
        policy = request.retention_policy or RetentionPolicy(
            self.context.config.default_retention_policy
        )
        if policy is RetentionPolicy.CUSTOM:
            # fail now rather than at seal time
            retention_end(self.context.now(), policy, request.retention_custom_days)

        evidence_type = request.evidence_type.strip()
        reference = (request.external_reference_id or "").strip() or None
        keys: list[LockKey] = []
        if reference is not None:
            keys.append(reference_key(scope.tenant_id, evidence_type, reference))

        now = self.context.now()
        draft = EvidenceDraft(
            tenant_id=scope.tenant_id,
            evidence_type=evidence_type,
            ingestion_method=request.ingestion_method,
            declared_scope=request.declared_scope,
            binding_mode=request.binding_mode,
            bound_entity_type=request.bound_entity_type,
            bound_entity_id=request.bound_entity_id,
            justification_text=request.justification_text,
            provenance_source=request.provenance_source,
            retention_policy=policy,
            retention_custom_days=request.retention_custom_days,
            external_reference_id=reference,
            created_by=scope.actor,
            created_at=now,
            updated_at=now,
        )
        with (
            self.context.lock_registry.hold(*keys),
            self.context.unit_of_work_factory() as uow,
        ):
            if reference is not None:
                existing = uow.repositories.drafts.get_by_external_reference(
                    scope.tenant_id, evidence_type, reference
                )
                if existing is not None:
                    log.info("Replayed reference %s as draft %s", reference, existing.draft_id)
                    return existing
            uow.repositories.drafts.add(draft)
            self.audit_trail.record_transition(
                uow,
                scope,
                object_type=AuditObjectType.EVIDENCE_DRAFT,
                object_id=draft.draft_id,
                from_state=None,
                to_state=DraftStatus.DRAFT_CREATED,
                evidence_type=draft.evidence_type,
                ingestion_method=str(draft.ingestion_method),
            )
            uow.commit()
        log.info("Created draft %s (%s)", draft.draft_id, draft.evidence_type)
        return draft

    def attach_payload(
        self, scope: RequestScope, draft_id: str, payload: JsonPayload
    ) -> EvidenceDraft:
        """Attach the payload and fingerprint it.

        Re-sending the same payload for a draft opened under an external reference is
        a no-op; a different payload is an ``IdempotencyConflictError``.
        """

        text = payload_text(payload)
        digest = payload_hash(text)
        with (
            self.context.lock_registry.hold(draft_key(scope.tenant_id, draft_id)),
            self.context.unit_of_work_factory() as uow,
        ):
            draft = self._load(uow, scope.tenant_id, draft_id)
            if draft.external_reference_id is not None and draft.payload_hash is not None:
                if draft.payload_hash != digest:
                    raise IdempotencyConflictError(
                        draft.external_reference_id,
                        existing_hash=draft.payload_hash,
                        provided_hash=digest,
                    )
                log.info("Replayed payload for draft %s", draft_id)
                return draft
            previous = draft.attach_payload(
                text,
                payload_hash=digest,
                metadata_hash=metadata_hash(
                    evidence_type=draft.evidence_type,
                    ingestion_method=draft.ingestion_method,
                    tenant_id=draft.tenant_id,
                ),
                at=self.context.now(),
            )
            self.audit_trail.record_transition(
                uow,
                scope,
                object_type=AuditObjectType.EVIDENCE_DRAFT,
                object_id=draft.draft_id,
                from_state=previous,
                to_state=draft.status,
                payload_hash_sha256=draft.payload_hash,
                metadata_hash_sha256=draft.metadata_hash,
            )
            uow.commit()
        log.info("Attached payload to draft %s", draft_id)
        return draft

    # validation -------------------------------------------------------------

    def validate(self, scope: RequestScope, draft_id: str) -> ValidationResult:
        with (
            self.context.lock_registry.hold(draft_key(scope.tenant_id, draft_id)),
            self.context.unit_of_work_factory() as uow,
        ):
            draft = self._load(uow, scope.tenant_id, draft_id)
            if draft.status is DraftStatus.DRAFT_CREATED:
                raise InvalidStateError(
                    f"Draft {draft_id} cannot be validated without attaching a payload"
                )
            if draft.status is not DraftStatus.PAYLOAD_ATTACHED:
                raise InvalidStateError(f"Draft {draft_id} was already validated ({draft.status})")

            now = self.context.now()
            try:
                self._run_checks(uow, draft)
            except QuarantineError as exc:
                previous = draft.quarantine(exc.reason, exc.errors, at=now)
                result = ValidationResult(
                    valid=False,
                    status=draft.status,
                    errors=list(exc.errors),
                    quarantine_reason=exc.reason,
                )
                log.warning(
                    "Quarantined draft %s (%s): %s", draft_id, exc.reason, exc
                )
            else:
                previous = draft.mark_validated(at=now)
                result = ValidationResult(valid=True, status=draft.status)

            self.audit_trail.record_transition(
                uow,
                scope,
                object_type=AuditObjectType.EVIDENCE_DRAFT,
                object_id=draft.draft_id,
                from_state=previous,
                to_state=draft.status,
                reason=None if result.quarantine_reason is None else str(result.quarantine_reason),
                error_count=len(result.errors),
            )
            uow.commit()
        return result

    def _run_checks(self, uow: EvidenceUnitOfWork, draft: EvidenceDraft) -> None:
        """Raise a quarantine error describing the first failing stage, if any.

        Field checks accumulate. A missing bound entity or an undecodable payload
        stops the remaining checks, carrying the field errors gathered so far.
        """

        errors: list[FieldError] = []
        if is_blank(draft.justification_text):
            errors.append(FieldError("justification_text", "Justification is required"))
        if is_blank(draft.provenance_source):
            errors.append(FieldError("provenance_source", "Provenance source is required"))
        binds = draft.binding_mode is BindingMode.BIND_EXISTING
        if binds and draft.bound_entity is None:
            errors.append(
                FieldError(
                    "bound_entity_id",
                    "Entity binding is required when binding mode is BIND_EXISTING",
                )
            )
        if is_blank(draft.payload):
            errors.append(FieldError("payload", "Payload is required"))

        bound = draft.bound_entity
        if (
            binds
            and bound is not None
            and not self.canonical_store.exists(uow, draft.tenant_id, bound)
        ):
            raise ReferenceNotFoundError(
                [
                    *errors,
                    FieldError(
                        "bound_entity_id", f"{bound.entity_type} {bound.entity_id} does not exist"
                    ),
                ]
            )

        if draft.payload is not None and not is_blank(draft.payload):
            try:
                claims = parse_claims(draft.evidence_type, decode_payload(draft.payload))
            except SchemaMismatchError as exc:
                raise SchemaMismatchError([*errors, *exc.errors]) from exc
            errors.extend(claims.missing_claims())

        if errors:
            raise ValidationFailedError(errors)

    # sealing ----------------------------------------------------------------

    def seal(self, scope: RequestScope, draft_id: str) -> SealResult:
        """Turn a validated draft into an evidence record.

        A VALIDATED draft is first committed as READY_TO_SEAL. Everything after
        that (record, derived work items, draft status, both audit events) commits
        as one unit; if it fails the draft stays READY_TO_SEAL and can be sealed
        again.
        """

        tenant_id = scope.tenant_id
        with self.context.lock_registry.hold(
            draft_key(tenant_id, draft_id), sequence_key(tenant_id)
        ):
            with self.context.unit_of_work_factory() as uow:
                draft = self._load(uow, tenant_id, draft_id)
                if draft.status not in SEALABLE_STATUSES:
                    raise InvalidStateError(
                        f"Draft {draft_id} cannot be sealed in status {draft.status}"
                    )
                if draft.status is DraftStatus.VALIDATED:
                    previous = draft.transition_to(DraftStatus.READY_TO_SEAL, at=self.context.now())
                    self.audit_trail.record_transition(
                        uow,
                        scope,
                        object_type=AuditObjectType.EVIDENCE_DRAFT,
                        object_id=draft.draft_id,
                        from_state=previous,
                        to_state=draft.status,
                    )
                    uow.commit()

            with self.context.unit_of_work_factory() as uow:
                result = self._seal_ready(uow, scope, draft_id)
                uow.commit()

        log.info(
            "Sealed draft %s as %s with %d work item(s)",
            draft_id,
            result.record.display_id,
            len(result.work_items),
        )
        self.context.notify_created(tenant_id, result.work_items)
        return result

    def _seal_ready(
        self, uow: EvidenceUnitOfWork, scope: RequestScope, draft_id: str
    ) -> SealResult:
        draft = self._load(uow, scope.tenant_id, draft_id)
        if draft.status is not DraftStatus.READY_TO_SEAL:
            raise InvalidStateError(f"Draft {draft_id} is not ready to seal ({draft.status})")
        if draft.payload is None or draft.payload_hash is None or draft.metadata_hash is None:
            raise InvalidStateError(f"Draft {draft_id} has no payload")

        claims = decode_payload(draft.payload)
        sealed_at = self.context.now()
        bound = draft.bound_entity if draft.binding_mode is BindingMode.BIND_EXISTING else None
        record = EvidenceRecord(
            tenant_id=draft.tenant_id,
            display_id=self.ledger.next_display_id(uow, draft.tenant_id),
            draft_id=draft.draft_id,
            dataset_type=draft.evidence_type,
            ingestion_method=draft.ingestion_method,
            declared_scope=draft.declared_scope,
            provenance_source=draft.provenance_source,
            justification_text=draft.justification_text,
            linked_entities=[] if bound is None else [bound],
            claims=claims,
            payload_hash=draft.payload_hash,
            metadata_hash=draft.metadata_hash,
            sealed_at=sealed_at,
            sealed_by=scope.actor,
            retention_ends_at=draft.retention_ends_at(sealed_at),
            external_reference_id=draft.external_reference_id,
        )
        derivation = derive_work_items(record, claims)
        record.blocking_issues = list(derivation.blocking_issues)

        self.ledger.append(uow, record)
        items = self.work_items.persist_derived(uow, scope, record, derivation.work_items)
        previous = draft.mark_sealed(record.record_id, at=sealed_at)

        self.audit_trail.record_transition(
            uow,
            scope,
            object_type=AuditObjectType.EVIDENCE_DRAFT,
            object_id=draft.draft_id,
            from_state=previous,
            to_state=draft.status,
            record_id=record.record_id,
            display_id=record.display_id,
        )
        self.audit_trail.record(
            uow,
            scope,
            event_type=AuditEventType.EVIDENCE_SEALED,
            object_type=AuditObjectType.EVIDENCE_RECORD,
            object_id=record.record_id,
            details={
                "evidence_id": record.record_id,
                "display_id": record.display_id,
                "draft_id": draft.draft_id,
                "evidence_type": record.dataset_type,
                "payload_hash_sha256": record.payload_hash,
                "metadata_hash_sha256": record.metadata_hash,
                "scope_binding_status": str(record.scope_binding_status),
                "evidence_receipt_id": record.receipt_id,
                "blocking_issues": [str(issue) for issue in record.blocking_issues],
                "work_item_ids": [item.work_item_id for item in items],
            },
        )
        return SealResult(record=record, work_items=items)

    # queries ----------------------------------------------------------------

    def get_draft(self, tenant_id: str, draft_id: str) -> EvidenceDraft:
        with self.context.unit_of_work_factory() as uow:
            return self._load(uow, tenant_id, draft_id)

    def list_drafts(
        self, tenant_id: str, *, status: DraftStatus | None = None
    ) -> list[EvidenceDraft]:
        with self.context.unit_of_work_factory() as uow:
            return uow.repositories.drafts.find(tenant_id, status=status)

    @staticmethod
    def _load(uow: EvidenceUnitOfWork, tenant_id: str, draft_id: str) -> EvidenceDraft:
        draft = uow.repositories.drafts.get(tenant_id, draft_id)
        if draft is None:
            raise NotFoundError("evidence_draft", draft_id)
        return draft
