"""Work item derivation rules and the engine that persists work items."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from datetime import timedelta
from typing import TYPE_CHECKING, Any, Final, cast

from sealvault.domain.claims import is_blank
from sealvault.domain.errors import NotFoundError
from sealvault.domain.locking import sequence_key
from sealvault.domain.model import (
    AuditEventType,
    AuditObjectType,
    BlockingIssue,
    EntityRef,
    Priority,
    WorkItem,
    WorkItemStatus,
    WorkItemType,
    format_display_id,
)

if TYPE_CHECKING:
    from sealvault.domain.audit_trail import AuditTrail
    from sealvault.domain.context import RequestScope, ServiceContext
    from sealvault.domain.model import EvidenceRecord, Page
    from sealvault.domain.ports import EvidenceUnitOfWork

log = logging.getLogger(__name__)

WORK_ITEM_PREFIX: Final[str] = "WI"
CN_CODE_PATTERN: Final[re.Pattern[str]] = re.compile(r"\d{8}")
MANUAL_REASON: Final[str] = "MANUAL_CREATION"


@dataclass(frozen=True, slots=True, kw_only=True)
class WorkItemSpec:
    """A work item a rule wants created, before ids and defaults are assigned."""

    type: WorkItemType
    priority: Priority
    title: str
    required_action_text: str | None = None
    reason_codes: tuple[str, ...] = ()
    linked_entity: EntityRef | None = None
    linked_evidence_record_ids: tuple[str, ...] = ()
    parent_work_item_id: str | None = None
    owner: str | None = None
    estimated_cost: int | None = None
    risk_estimate: int | None = None
    details: dict[str, Any] | None = None
    blocking_issue: BlockingIssue | None = None


@dataclass(slots=True)
class Derivation:
    work_items: list[WorkItemSpec] = field(default_factory=list)
    blocking_issues: list[BlockingIssue] = field(default_factory=list)

    def add(self, spec: WorkItemSpec) -> None:
        self.work_items.append(spec)
        if spec.blocking_issue is not None and spec.blocking_issue not in self.blocking_issues:
            self.blocking_issues.append(spec.blocking_issue)


type Rule = Callable[[EvidenceRecord, Mapping[str, Any], Derivation], None]


def _cbam_rule(record: EvidenceRecord, claims: Mapping[str, Any], out: Derivation) -> None:
    supplier_name = claims.get("supplier_name")
    if not record.linked_entities and not is_blank(supplier_name):
        out.add(
            WorkItemSpec(
                type=WorkItemType.MAPPING,
                priority=Priority.HIGH,
                title="Confirm supplier match for CBAM import",
                required_action_text=f"Map supplier '{supplier_name}' to a canonical supplier",
                reason_codes=("PENDING_MATCH", "CBAM_SUPPLIER_MAPPING"),
                details={"supplier_name": supplier_name},
                blocking_issue=BlockingIssue.SUPPLIER_NOT_MAPPED,
            )
        )
    if is_blank(claims.get("installation_id")):
        out.add(
            WorkItemSpec(
                type=WorkItemType.BLOCKED,
                priority=Priority.CRITICAL,
                title="Missing installation data for CBAM calculation",
                required_action_text="Supplier must provide installation operator emission report",
                reason_codes=("MISSING_CBAM_DATA", "REGULATORY_DEADLINE"),
                linked_entity=record.primary_entity,
                blocking_issue=BlockingIssue.INSTALLATION_MISSING,
            )
        )
    cn_code = claims.get("cn_code")
    if not is_blank(cn_code) and not CN_CODE_PATTERN.fullmatch(str(cn_code)):
        out.add(
            WorkItemSpec(
                type=WorkItemType.REVIEW,
                priority=Priority.HIGH,
                title="Validate CBAM CN code format",
                required_action_text="Confirm the 8-digit combined nomenclature code",
                reason_codes=("VALIDATION_ERROR", "CN_CODE_INVALID"),
                linked_entity=record.primary_entity,
                details={"cn_code": cn_code},
                blocking_issue=BlockingIssue.CN_CODE_INVALID,
            )
        )


def _bom_rule(record: EvidenceRecord, claims: Mapping[str, Any], out: Derivation) -> None:
    components = claims.get("components")
    if not isinstance(components, list):
        return
    for index, component in enumerate(cast(list[Any], components)):
        if not isinstance(component, Mapping):
            continue
        entry = cast(Mapping[str, Any], component)
        unresolved = entry.get("status") == "PENDING_MATCH" or is_blank(entry.get("component_ref"))
        if not unresolved:
            continue
        code = entry.get("component_code_raw")
        label = "unknown" if is_blank(code) else str(code)
        out.add(
            WorkItemSpec(
                type=WorkItemType.MAPPING,
                priority=Priority.HIGH,
                title=f"Map BOM component {label}",
                required_action_text="Match the component to a canonical SKU",
                reason_codes=("PENDING_MATCH", "BOM_COMPONENT_MAPPING"),
                linked_entity=record.primary_entity,
                details={"component_index": index, "component_code_raw": code},
                blocking_issue=BlockingIssue.BOM_COMPONENT_UNMATCHED,
            )
        )


def _sku_rule(record: EvidenceRecord, claims: Mapping[str, Any], out: Derivation) -> None:
    if is_blank(claims.get("weight_kg")) and is_blank(claims.get("unit_weight")):
        out.add(
            WorkItemSpec(
                type=WorkItemType.REVIEW,
                priority=Priority.MEDIUM,
                title="SKU missing weight for LCA calculation",
                required_action_text="Provide the unit weight in kg",
                reason_codes=("MISSING_LCA_DATA", "WEIGHT_REQUIRED"),
                linked_entity=record.primary_entity,
                blocking_issue=BlockingIssue.WEIGHT_MISSING,
            )
        )


def _logistics_rule(record: EvidenceRecord, claims: Mapping[str, Any], out: Derivation) -> None:
    legs = claims.get("legs") or claims.get("shipment_legs")
    if not isinstance(legs, list):
        return
    incomplete = [
        index
        for index, leg in enumerate(cast(list[Any], legs))
        if not isinstance(leg, Mapping)
        or is_blank(cast(Mapping[str, Any], leg).get("distance_km"))
        or is_blank(cast(Mapping[str, Any], leg).get("transport_mode"))
    ]
    if incomplete:
        out.add(
            WorkItemSpec(
                type=WorkItemType.REVIEW,
                priority=Priority.MEDIUM,
                title="Shipment leg missing distance or mode",
                required_action_text="Provide distance and transport mode for every leg",
                reason_codes=("MISSING_LOGISTICS_DATA",),
                linked_entity=record.primary_entity,
                details={"incomplete_legs": incomplete},
                blocking_issue=BlockingIssue.SHIPMENT_DATA_INCOMPLETE,
            )
        )


DERIVATION_RULES: Final[tuple[tuple[tuple[str, ...], Rule], ...]] = (
    (("CBAM",), _cbam_rule),
    (("BOM",), _bom_rule),
    (("SKU",), _sku_rule),
    (("LOGISTICS", "SHIPMENT"), _logistics_rule),
)


def derive_work_items(record: EvidenceRecord, claims: Mapping[str, Any]) -> Derivation:
    """Apply every rule whose marker occurs in the record's dataset type."""

    derivation = Derivation()
    for markers, rule in DERIVATION_RULES:
        if any(marker in record.dataset_type for marker in markers):
            rule(record, claims, derivation)
    return derivation


@dataclass(frozen=True, slots=True, kw_only=True)
class WorkItemRequest:
    """Fields a human supplies when opening a work item by hand."""

    type: WorkItemType = WorkItemType.REVIEW
    priority: Priority = Priority.MEDIUM
    title: str = "New Work Item"
    required_action_text: str | None = None
    reason_codes: tuple[str, ...] = (MANUAL_REASON,)
    linked_entity: EntityRef | None = None
    linked_evidence_record_ids: tuple[str, ...] = ()
    owner: str | None = None
    estimated_cost: int | None = None
    risk_estimate: int | None = None
    details: dict[str, Any] | None = None

    def to_spec(self) -> WorkItemSpec:
        return WorkItemSpec(
            type=self.type,
            priority=self.priority,
            title=self.title,
            required_action_text=self.required_action_text,
            reason_codes=self.reason_codes or (MANUAL_REASON,),
            linked_entity=self.linked_entity,
            linked_evidence_record_ids=self.linked_evidence_record_ids,
            owner=self.owner,
            estimated_cost=self.estimated_cost,
            risk_estimate=self.risk_estimate,
            details=self.details,
        )


class WorkItemEngine:
    def __init__(self, context: ServiceContext, audit_trail: AuditTrail) -> None:
        self.context = context
        self.audit_trail = audit_trail

    def create_in(
        self, uow: EvidenceUnitOfWork, scope: RequestScope, spec: WorkItemSpec
    ) -> WorkItem:
        """Stage a work item and its audit event. The caller holds the sequence lock."""

        config = self.context.config
        now = self.context.now()
        number = uow.repositories.sequences.next_value(scope.tenant_id, WORK_ITEM_PREFIX)
        linked = spec.linked_entity
        item = WorkItem(
            tenant_id=scope.tenant_id,
            work_item_id=format_display_id(WORK_ITEM_PREFIX, number),
            type=spec.type,
            status=(
                WorkItemStatus.BLOCKED if spec.type is WorkItemType.BLOCKED else WorkItemStatus.OPEN
            ),
            priority=spec.priority,
            title=spec.title,
            required_action_text=spec.required_action_text,
            reason_codes=list(spec.reason_codes),
            linked_entity_type=None if linked is None else linked.entity_type,
            linked_entity_id=None if linked is None else linked.entity_id,
            linked_evidence_record_ids=list(spec.linked_evidence_record_ids),
            parent_work_item_id=spec.parent_work_item_id,
            owner=spec.owner or config.default_owner,
            estimated_cost=(
                config.cost_for(spec.priority)
                if spec.estimated_cost is None
                else spec.estimated_cost
            ),
            risk_estimate=(
                config.cost_for(spec.priority) if spec.risk_estimate is None else spec.risk_estimate
            ),
            details=None if spec.details is None else dict(spec.details),
            sla_due_at=now + timedelta(hours=config.sla_hours_for(spec.priority)),
            created_by=scope.actor,
            created_at=now,
        )
        uow.repositories.work_items.add(item)
        self.audit_trail.record(
            uow,
            scope,
            event_type=AuditEventType.WORK_ITEM_CREATED,
            object_type=AuditObjectType.WORK_ITEM,
            object_id=item.work_item_id,
            details={
                "type": str(item.type),
                "priority": str(item.priority),
                "title": item.title,
                "reason_codes": list(item.reason_codes),
                "linked_evidence_record_ids": list(item.linked_evidence_record_ids),
                "parent_work_item_id": item.parent_work_item_id,
            },
        )
        log.info("Created %s work item %s: %s", item.type, item.work_item_id, item.title)
        return item

    def persist_derived(
        self,
        uow: EvidenceUnitOfWork,
        scope: RequestScope,
        record: EvidenceRecord,
        specs: Sequence[WorkItemSpec],
    ) -> list[WorkItem]:
        items: list[WorkItem] = []
        for spec in specs:
            linked_spec = replace(spec, linked_evidence_record_ids=(record.record_id,))
            items.append(self.create_in(uow, scope, linked_spec))
        return items

    def create_work_item(self, scope: RequestScope, request: WorkItemRequest) -> WorkItem:
        with (
            self.context.lock_registry.hold(sequence_key(scope.tenant_id)),
            self.context.unit_of_work_factory() as uow,
        ):
            self._check_references(uow, scope.tenant_id, request)
            item = self.create_in(uow, scope, request.to_spec())
            uow.commit()
        self.context.notify_created(scope.tenant_id, [item])
        return item

    def _check_references(
        self, uow: EvidenceUnitOfWork, tenant_id: str, request: WorkItemRequest
    ) -> None:
        for record_id in request.linked_evidence_record_ids:
            if uow.repositories.evidence.get(tenant_id, record_id) is None:
                raise NotFoundError("evidence_record", record_id)
        ref = request.linked_entity
        if (
            ref is not None
            and uow.repositories.entities.get(tenant_id, ref.entity_type, ref.entity_id) is None
        ):
            raise NotFoundError(str(ref.entity_type), ref.entity_id)

    def get_work_item(self, tenant_id: str, work_item_id: str) -> WorkItem:
        with self.context.unit_of_work_factory() as uow:
            item = uow.repositories.work_items.get(tenant_id, work_item_id)
        if item is None:
            raise NotFoundError("work_item", work_item_id)
        return item

    def list_work_items(
        self,
        tenant_id: str,
        *,
        type: WorkItemType | None = None,  # noqa: A002
        status: WorkItemStatus | None = None,
        priority: Priority | None = None,
        page: int = 1,
        page_size: int | None = None,
    ) -> Page[WorkItem]:
        with self.context.unit_of_work_factory() as uow:
            return uow.repositories.work_items.find(
                tenant_id,
                type=type,
                status=status,
                priority=priority,
                page=page,
                page_size=page_size or self.context.config.work_item_page_size,
            )

    def work_items_for_entity(self, tenant_id: str, ref: EntityRef) -> list[WorkItem]:
        with self.context.unit_of_work_factory() as uow:
            return uow.repositories.work_items.list_for_entity(tenant_id, ref)

    def work_items_for_record(self, tenant_id: str, record_id: str) -> list[WorkItem]:
        with self.context.unit_of_work_factory() as uow:
            return uow.repositories.work_items.list_for_record(tenant_id, record_id)
