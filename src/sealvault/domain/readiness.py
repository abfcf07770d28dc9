"""Tenant-level readiness indicators."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from sealvault.domain.model import MappingStatus, WorkItemStatus, WorkItemType

if TYPE_CHECKING:
    from sealvault.domain.context import ServiceContext
    from sealvault.domain.model import WorkItem

READY = "READY"
BLOCKED = "BLOCKED"


def is_blocking(item: WorkItem) -> bool:
    return item.type is WorkItemType.BLOCKED or item.status is WorkItemStatus.BLOCKED


@dataclass(frozen=True, slots=True)
class ReadinessSummary:
    open_work_items: int
    blocked_work_items: int
    pending_reviews: int
    pending_mappings: int
    total_evidence: int
    financial_risk_exposure: int

    @property
    def readiness(self) -> str:
        return BLOCKED if self.blocked_work_items else READY


class ReadinessReporter:
    def __init__(self, context: ServiceContext) -> None:
        self.context = context

    def summary(self, tenant_id: str) -> ReadinessSummary:
        with self.context.unit_of_work_factory() as uow:
            open_items = uow.repositories.work_items.list_open(tenant_id)
            total_evidence = uow.repositories.evidence.count(tenant_id)
            pending_mappings = len(
                uow.repositories.mapping_suggestions.find(tenant_id, status=MappingStatus.PENDING)
            )
        blocking = [item for item in open_items if is_blocking(item)]
        return ReadinessSummary(
            open_work_items=len(open_items),
            blocked_work_items=len(blocking),
            pending_reviews=sum(
                1
                for item in open_items
                if item.type is WorkItemType.REVIEW and item.status is WorkItemStatus.OPEN
            ),
            pending_mappings=pending_mappings,
            total_evidence=total_evidence,
            financial_risk_exposure=sum(item.risk_estimate for item in blocking),
        )
