from __future__ import annotations

import threading
from typing import TYPE_CHECKING, NoReturn

import pytest

from sealvault.domain.model import AuditEventType, AuditObjectType, DraftStatus
from tests.helpers.evidence import draft_request

if TYPE_CHECKING:
    from sealvault.app import EvidenceServices
    from sealvault.domain.context import RequestScope
    from sealvault.domain.drafts import SealResult
    from sealvault.domain.hashing import JsonPayload
    from tests.helpers.evidence import RecordingNotifier

SKU_WITHOUT_WEIGHT = {"sku_code": "SKU-7", "sku_name": "Washer"}


def _validated_draft(
    services: EvidenceServices, scope: RequestScope, evidence_type: str, payload: JsonPayload
) -> str:
    draft = services.drafts.create_draft(scope, draft_request(evidence_type))
    services.drafts.attach_payload(scope, draft.draft_id, payload)
    assert services.drafts.validate(scope, draft.draft_id).valid
    return draft.draft_id


def test_failed_seal_leaves_nothing_behind_and_can_be_retried(
    services: EvidenceServices,
    scope: RequestScope,
    notifier: RecordingNotifier,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    draft_id = _validated_draft(services, scope, "SKU_MASTER_V1", SKU_WITHOUT_WEIGHT)

    def explode(*_: object, **__: object) -> NoReturn:
        raise RuntimeError("work item store unavailable")

    monkeypatch.setattr(services.work_items, "create_in", explode)
    with pytest.raises(RuntimeError):
        services.drafts.seal(scope, draft_id)

    assert services.drafts.get_draft(scope.tenant_id, draft_id).status is (
        DraftStatus.READY_TO_SEAL
    )
    assert services.ledger.list_records(scope.tenant_id).total == 0
    assert services.work_items.list_work_items(scope.tenant_id).total == 0
    sealed_events = [
        event
        for event in services.audit_trail.list_events(scope.tenant_id)
        if event.event_type is AuditEventType.EVIDENCE_SEALED
    ]
    assert sealed_events == []
    assert notifier.calls == []

    monkeypatch.undo()
    result = services.drafts.seal(scope, draft_id)

    assert result.record.display_id == "EV-0001"
    assert [item.work_item_id for item in result.work_items] == ["WI-0001"]
    transitions = services.audit_trail.list_events(
        scope.tenant_id, object_type=AuditObjectType.EVIDENCE_DRAFT, object_id=draft_id
    )
    # the READY_TO_SEAL step is recorded once, before the failed attempt
    assert [event.details["to_state"] for event in transitions][:2] == [
        "SEALED",
        "READY_TO_SEAL",
    ]
    assert sum(1 for event in transitions if event.details["to_state"] == "READY_TO_SEAL") == 1


def test_concurrent_seals_get_distinct_display_ids(
    file_services: EvidenceServices, scope: RequestScope
) -> None:
    payload = {"components": [{"component_code_raw": "RAW-1", "status": "PENDING_MATCH"}]}
    draft_ids = [_validated_draft(file_services, scope, "BOM_V1", payload) for _ in range(2)]
    barrier = threading.Barrier(len(draft_ids))
    results: list[SealResult] = []
    errors: list[BaseException] = []
    guard = threading.Lock()

    def seal(draft_id: str) -> None:
        barrier.wait(timeout=5)
        try:
            result = file_services.drafts.seal(scope, draft_id)
        except BaseException as exc:  # noqa: BLE001
            with guard:
                errors.append(exc)
            return
        with guard:
            results.append(result)

    threads = [threading.Thread(target=seal, args=(draft_id,)) for draft_id in draft_ids]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert sorted(result.record.display_id for result in results) == ["EV-0001", "EV-0002"]
    work_item_ids = sorted(item.work_item_id for result in results for item in result.work_items)
    assert work_item_ids == ["WI-0001", "WI-0002"]

    events = file_services.audit_trail.list_events(scope.tenant_id)
    sealed = [event for event in events if event.event_type is AuditEventType.EVIDENCE_SEALED]
    created = [event for event in events if event.event_type is AuditEventType.WORK_ITEM_CREATED]
    assert len(sealed) == 2
    assert len(created) == 2
    assert file_services.ledger.list_records(scope.tenant_id).total == 2
