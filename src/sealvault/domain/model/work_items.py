"""Work items and their resolution."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any

from sealvault.domain.enums import EntityType, Priority, WorkItemStatus, WorkItemType
from sealvault.domain.errors import InvalidStateError

from .base import EntityRef, utcnow

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime


@dataclass(frozen=True, slots=True, kw_only=True)
class WorkItemResolution:
    """How a human closed a work item.

    ``selected_value`` and ``selected_evidence_id`` only matter for CONFLICT items,
    where they become the new canonical value and its provenance.
    """

    decision_type: str | None = None
    reason_code: str | None = None
    comment: str | None = None
    field: str | None = None
    selected_value: Any = None
    selected_evidence_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {key: value for key, value in asdict(self).items() if value is not None}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> WorkItemResolution:
        return cls(
            decision_type=data.get("decision_type"),
            reason_code=data.get("reason_code"),
            comment=data.get("comment"),
            field=data.get("field"),
            selected_value=data.get("selected_value"),
            selected_evidence_id=data.get("selected_evidence_id"),
        )


@dataclass(eq=False, kw_only=True)
class WorkItem:
    tenant_id: str
    work_item_id: str
    type: WorkItemType
    priority: Priority
    title: str
    sla_due_at: datetime
    status: WorkItemStatus = WorkItemStatus.OPEN
    required_action_text: str | None = None
    reason_codes: list[str] = field(default_factory=list)
    linked_entity_type: EntityType | None = None
    linked_entity_id: str | None = None
    linked_evidence_record_ids: list[str] = field(default_factory=list)
    parent_work_item_id: str | None = None
    owner: str | None = None
    estimated_cost: int = 0
    risk_estimate: int = 0
    details: dict[str, Any] | None = None
    resolution: dict[str, Any] | None = None
    created_by: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    resolved_at: datetime | None = None
    resolved_by: str | None = None

    @property
    def linked_entity(self) -> EntityRef | None:
        if self.linked_entity_type is None or self.linked_entity_id is None:
            return None
        return EntityRef(self.linked_entity_type, self.linked_entity_id)

    @property
    def is_open(self) -> bool:
        return self.status is not WorkItemStatus.RESOLVED

    def resolve(
        self, resolution: WorkItemResolution, *, actor: str, at: datetime
    ) -> WorkItemStatus:
        """Close the item and return the status it had before."""

        if not self.is_open:
            raise InvalidStateError(f"Work item {self.work_item_id} is already resolved")
        previous = self.status
        self.status = WorkItemStatus.RESOLVED
        self.resolution = resolution.to_dict()
        self.resolved_at = at
        self.resolved_by = actor
        return previous
