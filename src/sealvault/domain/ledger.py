"""Append-only ledger of sealed evidence records."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Final

from sealvault.domain.errors import InvalidStateError, NotFoundError
from sealvault.domain.model import format_display_id

if TYPE_CHECKING:
    from sealvault.domain.context import ServiceContext
    from sealvault.domain.model import EntityRef, EvidenceRecord, Page
    from sealvault.domain.ports import EvidenceUnitOfWork

log = logging.getLogger(__name__)

EVIDENCE_PREFIX: Final[str] = "EV"


class EvidenceLedger:
    def __init__(self, context: ServiceContext) -> None:
        self.context = context

    def next_display_id(self, uow: EvidenceUnitOfWork, tenant_id: str) -> str:
        """Allocate the tenant's next display id. The caller holds the sequence lock."""

        number = uow.repositories.sequences.next_value(tenant_id, EVIDENCE_PREFIX)
        return format_display_id(EVIDENCE_PREFIX, number)

    def append(self, uow: EvidenceUnitOfWork, record: EvidenceRecord) -> None:
        repository = uow.repositories.evidence
        if repository.get_by_display_id(record.tenant_id, record.display_id) is not None:
            raise InvalidStateError(f"Display id {record.display_id} is already in the ledger")
        repository.add(record)
        log.info(
            "Appended %s (%s) to ledger of tenant %s",
            record.display_id,
            record.dataset_type,
            record.tenant_id,
        )

    def get_record(self, tenant_id: str, record_id: str) -> EvidenceRecord:
        """Look a record up by internal id, falling back to its display id."""

        with self.context.unit_of_work_factory() as uow:
            repository = uow.repositories.evidence
            record = repository.get(tenant_id, record_id) or repository.get_by_display_id(
                tenant_id, record_id
            )
        if record is None:
            raise NotFoundError("evidence_record", record_id)
        return record

    def list_records(
        self,
        tenant_id: str,
        *,
        status: str | None = None,
        dataset_type: str | None = None,
        page: int = 1,
        page_size: int | None = None,
    ) -> Page[EvidenceRecord]:
        with self.context.unit_of_work_factory() as uow:
            return uow.repositories.evidence.find(
                tenant_id,
                status=status,
                dataset_type=dataset_type,
                page=page,
                page_size=page_size or self.context.config.evidence_page_size,
            )

    def records_for_entity(self, tenant_id: str, ref: EntityRef) -> list[EvidenceRecord]:
        with self.context.unit_of_work_factory() as uow:
            return uow.repositories.evidence.list_for_entity(tenant_id, ref)
