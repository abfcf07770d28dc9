from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from sealvault.app import (
    audit_events,
    ingest_file,
    kpis,
    read_submissions,
    register_entity,
    submission_from_mapping,
)
from sealvault.domain.errors import InvalidRequestError
from sealvault.domain.model import (
    AuditEventType,
    AuditObjectType,
    BindingMode,
    DraftStatus,
    EntityType,
    IngestionMethod,
)
from tests.helpers.evidence import JUSTIFICATION, PROVENANCE

if TYPE_CHECKING:
    from pathlib import Path

    from sealvault.app import EvidenceServices
    from sealvault.domain.context import RequestScope


def _line(**fields: object) -> str:
    return json.dumps(fields) + "\n"


def test_submission_defaults() -> None:
    submission = submission_from_mapping(
        {"evidence_type": "SKU_MASTER_V1", "payload": {"sku_code": "A"}}
    )

    assert submission.draft.ingestion_method is IngestionMethod.FILE_UPLOAD
    assert submission.draft.binding_mode is BindingMode.UNBOUND
    assert submission.draft.bound_entity_type is None
    assert submission.seal is True
    assert submission.reference is None


def test_submission_reads_binding_and_seal_flag() -> None:
    submission = submission_from_mapping(
        {
            "evidence_type": "CBAM_IMPORT_V1",
            "payload": {"cn_code": "72081000"},
            "binding_mode": "BIND_EXISTING",
            "bound_entity_type": "SUPPLIER",
            "bound_entity_id": "SUP-001",
            "seal": False,
            "reference": "row-7",
            "external_reference_id": "erp-4711",
        },
        seal=True,
    )

    assert submission.draft.binding_mode is BindingMode.BIND_EXISTING
    assert submission.draft.bound_entity_type is EntityType.SUPPLIER
    assert submission.seal is False
    assert submission.reference == "row-7"
    assert submission.draft.external_reference_id == "erp-4711"


@pytest.mark.parametrize("missing", ["evidence_type", "payload"])
def test_submission_requires_type_and_payload(missing: str) -> None:
    raw: dict[str, object] = {"evidence_type": "SKU_MASTER_V1", "payload": {}}
    del raw[missing]

    with pytest.raises(InvalidRequestError, match=missing):
        submission_from_mapping(raw)


def test_read_submissions_skips_blank_lines(tmp_path: Path) -> None:
    path = tmp_path / "batch.jsonl"
    path.write_text(
        _line(evidence_type="SKU_MASTER_V1", payload={"sku_code": "A"})
        + "\n"
        + _line(evidence_type="BOM_V1", payload={"parent_sku": "A"}),
        encoding="utf-8",
    )

    submissions = read_submissions(path, seal=False)

    assert [item.draft.evidence_type for item in submissions] == ["SKU_MASTER_V1", "BOM_V1"]
    assert all(not item.seal for item in submissions)


@pytest.mark.parametrize(
    ("content", "message"),
    [
        ("{not json\n", "invalid JSON"),
        ('{"evidence_type": "BOM_V1", "payload": {"qty": NaN}}\n', "invalid JSON"),
        ("[1, 2]\n", "expected a JSON object"),
    ],
)
def test_read_submissions_reports_line_numbers(
    tmp_path: Path, content: str, message: str
) -> None:
    path = tmp_path / "batch.jsonl"
    path.write_text(_line(evidence_type="SKU_MASTER_V1", payload={}) + content, encoding="utf-8")

    with pytest.raises(InvalidRequestError, match=message) as exc:
        read_submissions(path)

    assert ":2:" in str(exc.value)


def test_ingest_file_end_to_end(
    file_services: EvidenceServices, scope: RequestScope, tmp_path: Path
) -> None:
    register_entity(
        file_services,
        scope,
        entity_type="supplier",
        entity_id="SUP-001",
        name="Acme Metals GmbH",
    )
    path = tmp_path / "batch.jsonl"
    path.write_text(
        _line(
            evidence_type="CBAM_IMPORT_V1",
            binding_mode="BIND_EXISTING",
            bound_entity_type="SUPPLIER",
            bound_entity_id="SUP-001",
            justification_text=JUSTIFICATION,
            provenance_source=PROVENANCE,
            payload={"supplier_name": "Acme Metals GmbH", "cn_code": "72081000"},
            reference="cbam",
        )
        + _line(
            evidence_type="SKU_MASTER_V1",
            justification_text=JUSTIFICATION,
            provenance_source=PROVENANCE,
            payload={"sku_code": "SKU-1", "sku_name": "Hex bolt"},
            reference="sku",
        ),
        encoding="utf-8",
    )

    outcomes = ingest_file(file_services, scope, path)

    assert [outcome.reference for outcome in outcomes] == ["cbam", "sku"]
    assert all(outcome.status is DraftStatus.SEALED for outcome in outcomes)
    assert len(outcomes[0].work_item_ids) == 1
    assert len(outcomes[1].work_item_ids) == 1

    summary = kpis(file_services, scope.tenant_id)
    assert summary.total_evidence == 2
    assert summary.readiness == "BLOCKED"

    entity_events = audit_events(
        file_services,
        scope.tenant_id,
        object_type=AuditObjectType.ENTITY,
        object_id="SUPPLIER:SUP-001",
    )
    assert [event.event_type for event in entity_events] == [AuditEventType.ENTITY_REGISTERED]
    assert len(audit_events(file_services, scope.tenant_id, limit=3)) == 3
