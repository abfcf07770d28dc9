from __future__ import annotations

import hashlib
import json
import threading
from typing import TYPE_CHECKING

import pytest

from sealvault.domain.context import RequestScope
from sealvault.domain.errors import (
    IdempotencyConflictError,
    InvalidRequestError,
    InvalidStateError,
    NotFoundError,
)
from sealvault.domain.model import (
    AuditEventType,
    AuditObjectType,
    BindingMode,
    BlockingIssue,
    DraftStatus,
    EntityRef,
    EntityType,
    FieldError,
    IngestionMethod,
    Priority,
    QuarantineReason,
    RetentionPolicy,
    ScopeBindingStatus,
    WorkItemStatus,
    WorkItemType,
    retention_end,
)
from tests.helpers.evidence import (
    bound_request,
    draft_request,
    register_supplier,
    seal_payload,
)

if TYPE_CHECKING:
    from sealvault.app import EvidenceServices
    from sealvault.domain.drafts import ValidationResult
    from tests.helpers.evidence import RecordingNotifier

SUPPLIER = EntityRef(EntityType.SUPPLIER, "SUP-001")
CBAM_WITHOUT_INSTALLATION = {"supplier_name": "Acme Metals GmbH", "cn_code": "72081000"}


def test_create_draft_applies_defaults(services: EvidenceServices, scope: RequestScope) -> None:
    draft = services.drafts.create_draft(scope, draft_request("SKU_MASTER_V1"))

    assert draft.status is DraftStatus.DRAFT_CREATED
    assert draft.binding_mode is BindingMode.UNBOUND
    assert draft.retention_policy is RetentionPolicy.SEVEN_YEARS
    assert draft.created_by == scope.actor

    events = services.audit_trail.list_events(scope.tenant_id, object_id=draft.draft_id)
    assert len(events) == 1
    assert events[0].event_type is AuditEventType.STATE_TRANSITION
    assert events[0].details["from_state"] is None
    assert events[0].details["to_state"] == "DRAFT_CREATED"


def test_create_draft_requires_evidence_type(
    services: EvidenceServices, scope: RequestScope
) -> None:
    with pytest.raises(InvalidRequestError):
        services.drafts.create_draft(scope, draft_request("  "))


def test_custom_retention_without_days_is_rejected_up_front(
    services: EvidenceServices, scope: RequestScope
) -> None:
    with pytest.raises(InvalidRequestError):
        services.drafts.create_draft(
            scope, draft_request("SKU_MASTER_V1", retention_policy=RetentionPolicy.CUSTOM)
        )

    assert services.drafts.list_drafts(scope.tenant_id) == []


def test_attach_payload_fingerprints_and_locks_payload(
    services: EvidenceServices, scope: RequestScope
) -> None:
    draft = services.drafts.create_draft(scope, draft_request("SKU_MASTER_V1"))

    attached = services.drafts.attach_payload(scope, draft.draft_id, {"sku_code": "SKU-1"})

    assert attached.status is DraftStatus.PAYLOAD_ATTACHED
    assert attached.payload == '{"sku_code":"SKU-1"}'
    assert attached.payload_hash is not None
    assert len(attached.payload_hash) == 64
    with pytest.raises(InvalidStateError):
        services.drafts.attach_payload(scope, draft.draft_id, {"sku_code": "SKU-2"})


def test_validate_without_payload_is_rejected(
    services: EvidenceServices, scope: RequestScope
) -> None:
    draft = services.drafts.create_draft(scope, draft_request("SKU_MASTER_V1"))

    with pytest.raises(InvalidStateError):
        services.drafts.validate(scope, draft.draft_id)

    assert services.drafts.get_draft(scope.tenant_id, draft.draft_id).status is (
        DraftStatus.DRAFT_CREATED
    )


def test_empty_sku_payload_is_quarantined(services: EvidenceServices, scope: RequestScope) -> None:
    draft = services.drafts.create_draft(scope, draft_request("SKU_MASTER_V1"))
    services.drafts.attach_payload(scope, draft.draft_id, {})

    result = services.drafts.validate(scope, draft.draft_id)

    assert not result.valid
    assert result.status is DraftStatus.QUARANTINED
    assert result.quarantine_reason is QuarantineReason.VALIDATION_FAILED
    assert [error.field for error in result.errors] == ["sku_code", "sku_name"]

    stored = services.drafts.get_draft(scope.tenant_id, draft.draft_id)
    assert stored.status is DraftStatus.QUARANTINED
    assert len(stored.validation_errors) == 2

    with pytest.raises(InvalidStateError):
        services.drafts.seal(scope, draft.draft_id)
    assert services.ledger.list_records(scope.tenant_id).total == 0


def test_missing_justification_and_provenance_are_reported(
    services: EvidenceServices, scope: RequestScope
) -> None:
    draft = services.drafts.create_draft(
        scope, draft_request("SKU_MASTER_V1", justification_text="", provenance_source=" ")
    )
    services.drafts.attach_payload(scope, draft.draft_id, {"sku_code": "A", "sku_name": "B"})

    result = services.drafts.validate(scope, draft.draft_id)

    assert result.quarantine_reason is QuarantineReason.VALIDATION_FAILED
    assert [error.field for error in result.errors] == ["justification_text", "provenance_source"]


def test_binding_to_unknown_entity_is_quarantined(
    services: EvidenceServices, scope: RequestScope
) -> None:
    draft = services.drafts.create_draft(
        scope, bound_request("CBAM_IMPORT_V1", EntityType.SUPPLIER, "SUP-404")
    )
    services.drafts.attach_payload(scope, draft.draft_id, CBAM_WITHOUT_INSTALLATION)

    result = services.drafts.validate(scope, draft.draft_id)

    assert result.quarantine_reason is QuarantineReason.ENTITY_NOT_FOUND
    assert result.errors[-1].field == "bound_entity_id"


def test_bind_existing_without_entity_fails_validation(
    services: EvidenceServices, scope: RequestScope
) -> None:
    draft = services.drafts.create_draft(
        scope, draft_request("CBAM_IMPORT_V1", binding_mode=BindingMode.BIND_EXISTING)
    )
    services.drafts.attach_payload(scope, draft.draft_id, CBAM_WITHOUT_INSTALLATION)

    result = services.drafts.validate(scope, draft.draft_id)

    assert result.quarantine_reason is QuarantineReason.VALIDATION_FAILED
    assert [error.field for error in result.errors] == ["bound_entity_id"]


def test_invalid_json_is_a_schema_mismatch(
    services: EvidenceServices, scope: RequestScope
) -> None:
    draft = services.drafts.create_draft(scope, draft_request("SKU_MASTER_V1"))
    services.drafts.attach_payload(scope, draft.draft_id, "{'sku_code': 'not json'}")

    result = services.drafts.validate(scope, draft.draft_id)

    assert result.quarantine_reason is QuarantineReason.SCHEMA_MISMATCH
    assert result.errors[0].message == "Invalid JSON format"


def test_validate_twice_is_rejected(services: EvidenceServices, scope: RequestScope) -> None:
    draft = services.drafts.create_draft(scope, draft_request("SKU_MASTER_V1"))
    services.drafts.attach_payload(scope, draft.draft_id, {"sku_code": "A", "sku_name": "B"})
    assert services.drafts.validate(scope, draft.draft_id).valid

    with pytest.raises(InvalidStateError):
        services.drafts.validate(scope, draft.draft_id)


def test_concurrent_validations_transition_once(
    file_services: EvidenceServices, scope: RequestScope
) -> None:
    draft = file_services.drafts.create_draft(scope, draft_request("SKU_MASTER_V1"))
    file_services.drafts.attach_payload(scope, draft.draft_id, {"sku_code": "A", "sku_name": "B"})
    barrier = threading.Barrier(2)
    results: list[ValidationResult] = []
    errors: list[BaseException] = []
    guard = threading.Lock()

    def validate() -> None:
        barrier.wait(timeout=5)
        try:
            result = file_services.drafts.validate(scope, draft.draft_id)
        except BaseException as exc:  # noqa: BLE001
            with guard:
                errors.append(exc)
            return
        with guard:
            results.append(result)

    threads = [threading.Thread(target=validate) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert [result.status for result in results] == [DraftStatus.VALIDATED]
    assert len(errors) == 1
    assert isinstance(errors[0], InvalidStateError)
    transitions = [
        event.details["to_state"]
        for event in file_services.audit_trail.list_events(
            scope.tenant_id, object_id=draft.draft_id
        )
    ]
    assert transitions.count("VALIDATED") == 1


@pytest.mark.parametrize(
    "payload",
    [
        '{"sku_code": NaN, "sku_name": "Bracket"}',
        '{"sku_code": "A", "sku_name": "B", "weight_kg": Infinity}',
        "[" * 200_000,
    ],
    ids=["nan", "infinity", "deep-nesting"],
)
def test_unparseable_json_text_is_quarantined(
    services: EvidenceServices, scope: RequestScope, payload: str
) -> None:
    draft = services.drafts.create_draft(scope, draft_request("SKU_MASTER_V1"))

    attached = services.drafts.attach_payload(scope, draft.draft_id, payload)
    result = services.drafts.validate(scope, draft.draft_id)

    assert attached.payload_hash == hashlib.sha256(payload.encode("utf-8")).hexdigest()
    assert result.quarantine_reason is QuarantineReason.SCHEMA_MISMATCH
    assert result.errors == [FieldError("payload", "Invalid JSON format")]


def test_payload_object_with_non_finite_number_is_rejected(
    services: EvidenceServices, scope: RequestScope
) -> None:
    draft = services.drafts.create_draft(scope, draft_request("SKU_MASTER_V1"))

    with pytest.raises(InvalidRequestError):
        services.drafts.attach_payload(
            scope, draft.draft_id, {"sku_code": "A", "weight_kg": float("nan")}
        )

    assert services.drafts.get_draft(scope.tenant_id, draft.draft_id).status is (
        DraftStatus.DRAFT_CREATED
    )


def test_external_reference_replays_the_same_payload(
    services: EvidenceServices, scope: RequestScope
) -> None:
    request = draft_request(
        "SKU_MASTER_V1",
        ingestion_method=IngestionMethod.API_PUSH,
        external_reference_id="erp-4711",
    )
    payload = {"sku_code": "A", "sku_name": "B"}
    first = services.drafts.create_draft(scope, request)
    services.drafts.attach_payload(scope, first.draft_id, payload)

    again = services.drafts.create_draft(scope, request)
    replayed = services.drafts.attach_payload(
        scope, again.draft_id, '{"sku_name":"B","sku_code":"A"}'
    )

    assert again.draft_id == first.draft_id
    assert replayed.status is DraftStatus.PAYLOAD_ATTACHED
    assert len(services.drafts.list_drafts(scope.tenant_id)) == 1
    events = services.audit_trail.list_events(scope.tenant_id, object_id=first.draft_id)
    assert [event.details["to_state"] for event in events] == [
        "PAYLOAD_ATTACHED",
        "DRAFT_CREATED",
    ]


def test_external_reference_with_a_different_payload_conflicts(
    services: EvidenceServices, scope: RequestScope
) -> None:
    request = draft_request("SKU_MASTER_V1", external_reference_id="erp-4711")
    draft = services.drafts.create_draft(scope, request)
    services.drafts.attach_payload(scope, draft.draft_id, {"sku_code": "A", "sku_name": "B"})

    with pytest.raises(IdempotencyConflictError) as exc:
        services.drafts.attach_payload(
            scope, draft.draft_id, {"sku_code": "A", "sku_name": "Other"}
        )

    stored = services.drafts.get_draft(scope.tenant_id, draft.draft_id)
    assert exc.value.existing_hash == stored.payload_hash
    assert exc.value.provided_hash != stored.payload_hash
    assert json.loads(stored.payload or "")["sku_name"] == "B"


def test_external_reference_is_scoped_by_tenant_and_evidence_type(
    services: EvidenceServices, scope: RequestScope
) -> None:
    other_tenant = RequestScope("tenant-b", scope.actor)

    drafts = {
        services.drafts.create_draft(
            current, draft_request(evidence_type, external_reference_id="erp-4711")
        ).draft_id
        for current, evidence_type in [
            (scope, "SKU_MASTER_V1"),
            (scope, "BOM_V1"),
            (other_tenant, "SKU_MASTER_V1"),
        ]
    }

    assert len(drafts) == 3


def test_sealed_record_keeps_the_external_reference(
    services: EvidenceServices, scope: RequestScope
) -> None:
    sealed = seal_payload(
        services,
        scope,
        draft_request("SKU_MASTER_V1", external_reference_id="  erp-4711 "),
        {"sku_code": "A", "sku_name": "B"},
    )

    assert sealed.record.external_reference_id == "erp-4711"
    stored = services.ledger.get_record(scope.tenant_id, sealed.record.record_id)
    assert stored.external_reference_id == "erp-4711"


def test_sealing_bound_cbam_import_derives_critical_blocker(
    services: EvidenceServices, scope: RequestScope, notifier: RecordingNotifier
) -> None:
    register_supplier(services, scope)

    result = seal_payload(
        services,
        scope,
        bound_request("CBAM_IMPORT_V1", EntityType.SUPPLIER, "SUP-001"),
        CBAM_WITHOUT_INSTALLATION,
    )

    record = result.record
    assert record.display_id == "EV-0001"
    assert result.receipt_id == "RCPT-EV-0001"
    assert result.scope_binding_status is ScopeBindingStatus.BOUND
    assert record.linked_entities == [SUPPLIER]
    assert record.blocking_issues == [BlockingIssue.INSTALLATION_MISSING]
    assert record.sealed_by == scope.actor
    assert record.retention_ends_at == retention_end(record.sealed_at, RetentionPolicy.SEVEN_YEARS)

    assert len(result.work_items) == 1
    item = result.work_items[0]
    assert item.work_item_id == "WI-0001"
    assert item.type is WorkItemType.BLOCKED
    assert item.status is WorkItemStatus.BLOCKED
    assert item.priority is Priority.CRITICAL
    assert item.linked_entity == SUPPLIER
    assert item.linked_evidence_record_ids == [record.record_id]
    assert item.estimated_cost == 15000
    assert notifier.calls == [(scope.tenant_id, ["WI-0001"])]

    draft = services.drafts.get_draft(scope.tenant_id, record.draft_id)
    assert draft.status is DraftStatus.SEALED
    assert draft.sealed_record_id == record.record_id


def test_unbound_record_is_unresolved(services: EvidenceServices, scope: RequestScope) -> None:
    result = seal_payload(
        services,
        scope,
        draft_request("SKU_MASTER_V1"),
        {"sku_code": "SKU-1", "sku_name": "Hex bolt", "weight_kg": 0.02},
    )

    assert result.scope_binding_status is ScopeBindingStatus.UNRESOLVED
    assert result.work_items == []


def test_sealing_twice_is_rejected(services: EvidenceServices, scope: RequestScope) -> None:
    result = seal_payload(
        services, scope, draft_request("SKU_MASTER_V1"), {"sku_code": "A", "sku_name": "B"}
    )

    with pytest.raises(InvalidStateError):
        services.drafts.seal(scope, result.record.draft_id)
    assert services.ledger.list_records(scope.tenant_id).total == 1


def test_draft_history_is_fully_audited(services: EvidenceServices, scope: RequestScope) -> None:
    result = seal_payload(
        services,
        scope,
        draft_request("SKU_MASTER_V1"),
        {"sku_code": "A", "sku_name": "B", "weight_kg": 1},
    )
    draft_id = result.record.draft_id

    events = services.audit_trail.list_events(
        scope.tenant_id, object_type=AuditObjectType.EVIDENCE_DRAFT, object_id=draft_id
    )

    assert [event.details["to_state"] for event in reversed(events)] == [
        "DRAFT_CREATED",
        "PAYLOAD_ATTACHED",
        "VALIDATED",
        "READY_TO_SEAL",
        "SEALED",
    ]
    sealed = services.audit_trail.list_events(
        scope.tenant_id,
        object_type=AuditObjectType.EVIDENCE_RECORD,
        object_id=result.record.record_id,
    )
    assert [event.event_type for event in sealed] == [AuditEventType.EVIDENCE_SEALED]
    assert sealed[0].details["display_id"] == "EV-0001"
    assert sealed[0].details["payload_hash_sha256"] == result.record.payload_hash


def test_drafts_are_tenant_scoped(services: EvidenceServices, scope: RequestScope) -> None:
    draft = services.drafts.create_draft(scope, draft_request("SKU_MASTER_V1"))

    with pytest.raises(NotFoundError):
        services.drafts.get_draft("tenant-b", draft.draft_id)


def test_display_ids_are_per_tenant(services: EvidenceServices, scope: RequestScope) -> None:
    other = RequestScope(tenant_id="tenant-b", actor=scope.actor)
    payload = {"sku_code": "A", "sku_name": "B", "weight_kg": 1}

    first = seal_payload(services, scope, draft_request("SKU_MASTER_V1"), payload)
    second = seal_payload(services, other, draft_request("SKU_MASTER_V1"), payload)
    third = seal_payload(services, scope, draft_request("SKU_MASTER_V1"), payload)

    assert [first.record.display_id, second.record.display_id, third.record.display_id] == [
        "EV-0001",
        "EV-0001",
        "EV-0002",
    ]
