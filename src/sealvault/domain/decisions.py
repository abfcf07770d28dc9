"""Decision registry: resolving work items and recording decisions."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Final

from sealvault.domain.errors import InvalidRequestError, NotFoundError
from sealvault.domain.locking import entity_key, sequence_key, work_item_key
from sealvault.domain.model import (
    AuditEventType,
    AuditObjectType,
    Decision,
    Priority,
    WorkItemStatus,
    WorkItemType,
    format_display_id,
)
from sealvault.domain.work_items import WorkItemSpec

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sealvault.domain.audit_trail import AuditTrail
    from sealvault.domain.canonical_store import EntityCanonicalStore
    from sealvault.domain.context import RequestScope, ServiceContext
    from sealvault.domain.locking import LockKey
    from sealvault.domain.model import EntityRef, WorkItem, WorkItemResolution
    from sealvault.domain.ports import EvidenceUnitOfWork
    from sealvault.domain.work_items import WorkItemEngine

log = logging.getLogger(__name__)

DECISION_PREFIX: Final[str] = "D"
DEFAULT_DECISION_TYPE: Final[str] = "RESOLVED"
FOLLOW_UP_REASON: Final[str] = "FOLLOW_UP"


@dataclass(frozen=True, slots=True, kw_only=True)
class FollowUpRequest:
    type: WorkItemType = WorkItemType.FOLLOW_UP
    priority: Priority = Priority.MEDIUM
    title: str | None = None
    required_action_text: str | None = None
    reason_codes: tuple[str, ...] = (FOLLOW_UP_REASON,)
    owner: str | None = None
    details: dict[str, Any] | None = None


class DecisionRegistry:
    def __init__(
        self,
        context: ServiceContext,
        *,
        audit_trail: AuditTrail,
        canonical_store: EntityCanonicalStore,
        work_items: WorkItemEngine,
    ) -> None:
        self.context = context
        self.audit_trail = audit_trail
        self.canonical_store = canonical_store
        self.work_items = work_items

    def record_decision(
        self,
        uow: EvidenceUnitOfWork,
        scope: RequestScope,
        *,
        decision_type: str,
        work_item_id: str | None = None,
        mapping_suggestion_id: str | None = None,
        reason_code: str | None = None,
        comment: str | None = None,
        evidence_refs: Sequence[str] = (),
        entity_refs: Sequence[EntityRef] = (),
    ) -> Decision:
        """Stage a decision and its audit event. The caller holds the sequence lock."""

        number = uow.repositories.sequences.next_value(scope.tenant_id, DECISION_PREFIX)
        decision = Decision(
            tenant_id=scope.tenant_id,
            decision_id=format_display_id(DECISION_PREFIX, number),
            decision_type=decision_type,
            actor=scope.actor,
            work_item_id=work_item_id,
            mapping_suggestion_id=mapping_suggestion_id,
            reason_code=reason_code,
            comment=comment,
            evidence_refs=list(evidence_refs),
            entity_refs=list(entity_refs),
            timestamp=self.context.now(),
        )
        uow.repositories.decisions.add(decision)
        self.audit_trail.record(
            uow,
            scope,
            event_type=AuditEventType.DECISION_CREATED,
            object_type=AuditObjectType.DECISION,
            object_id=decision.decision_id,
            details={
                "decision_type": decision_type,
                "work_item_id": work_item_id,
                "mapping_suggestion_id": mapping_suggestion_id,
                "reason_code": reason_code,
            },
        )
        return decision

    def resolve_work_item(
        self, scope: RequestScope, work_item_id: str, resolution: WorkItemResolution
    ) -> Decision:
        tenant_id = scope.tenant_id
        with self.context.unit_of_work_factory() as uow:
            peeked = self._load(uow, tenant_id, work_item_id)
        keys: list[LockKey] = [work_item_key(tenant_id, work_item_id), sequence_key(tenant_id)]
        linked = peeked.linked_entity
        if linked is not None:
            keys.append(entity_key(tenant_id, linked.entity_type, linked.entity_id))

        with (
            self.context.lock_registry.hold(*keys),
            self.context.unit_of_work_factory() as uow,
        ):
            item = self._load(uow, tenant_id, work_item_id)
            previous = item.resolve(resolution, actor=scope.actor, at=self.context.now())
            field_name = self._conflict_field(item, resolution)
            self.audit_trail.record_transition(
                uow,
                scope,
                object_type=AuditObjectType.WORK_ITEM,
                object_id=item.work_item_id,
                from_state=previous,
                to_state=WorkItemStatus.RESOLVED,
                decision_type=resolution.decision_type or DEFAULT_DECISION_TYPE,
            )
            decision = self.record_decision(
                uow,
                scope,
                decision_type=resolution.decision_type or DEFAULT_DECISION_TYPE,
                work_item_id=item.work_item_id,
                reason_code=resolution.reason_code,
                comment=resolution.comment,
                evidence_refs=item.linked_evidence_record_ids,
                entity_refs=[] if item.linked_entity is None else [item.linked_entity],
            )
            if field_name is not None and item.linked_entity is not None:
                self.canonical_store.update_field(
                    uow,
                    scope,
                    item.linked_entity,
                    field_name=field_name,
                    value=resolution.selected_value,
                    source_id=resolution.selected_evidence_id or decision.decision_id,
                )
            uow.commit()

        log.info("Resolved work item %s with decision %s", work_item_id, decision.decision_id)
        return decision

    @staticmethod
    def _conflict_field(item: WorkItem, resolution: WorkItemResolution) -> str | None:
        """Name of the canonical field a conflict resolution writes, if any."""

        if item.type is not WorkItemType.CONFLICT or resolution.selected_value is None:
            return None
        if item.linked_entity is None:
            raise InvalidRequestError(
                f"Conflict work item {item.work_item_id} is not linked to an entity"
            )
        field_name = resolution.field or (item.details or {}).get("field")
        if not field_name:
            raise InvalidRequestError(
                f"Conflict work item {item.work_item_id} does not name the field to update"
            )
        return str(field_name)

    def create_follow_up(
        self,
        scope: RequestScope,
        parent_id: str,
        request: FollowUpRequest | None = None,
    ) -> WorkItem:
        request = request or FollowUpRequest()
        with (
            self.context.lock_registry.hold(sequence_key(scope.tenant_id)),
            self.context.unit_of_work_factory() as uow,
        ):
            parent = self._load(uow, scope.tenant_id, parent_id)
            spec = WorkItemSpec(
                type=request.type,
                priority=request.priority,
                title=request.title or f"Follow-up: {parent.title}",
                required_action_text=request.required_action_text,
                reason_codes=request.reason_codes or (FOLLOW_UP_REASON,),
                linked_entity=parent.linked_entity,
                linked_evidence_record_ids=tuple(parent.linked_evidence_record_ids),
                parent_work_item_id=parent.work_item_id,
                owner=request.owner,
                details=request.details,
            )
            item = self.work_items.create_in(uow, scope, spec)
            uow.commit()
        self.context.notify_created(scope.tenant_id, [item])
        return item

    def get_decision(self, tenant_id: str, decision_id: str) -> Decision:
        with self.context.unit_of_work_factory() as uow:
            decision = uow.repositories.decisions.get(tenant_id, decision_id)
        if decision is None:
            raise NotFoundError("decision", decision_id)
        return decision

    def list_decisions(self, tenant_id: str, *, work_item_id: str | None = None) -> list[Decision]:
        with self.context.unit_of_work_factory() as uow:
            return uow.repositories.decisions.find(tenant_id, work_item_id=work_item_id)

    @staticmethod
    def _load(uow: EvidenceUnitOfWork, tenant_id: str, work_item_id: str) -> WorkItem:
        item = uow.repositories.work_items.get(tenant_id, work_item_id)
        if item is None:
            raise NotFoundError("work_item", work_item_id)
        return item
