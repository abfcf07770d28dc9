"""Append-only audit trail."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sealvault.domain.model import AuditEvent, AuditEventType

if TYPE_CHECKING:
    from sealvault.domain.context import RequestScope, ServiceContext
    from sealvault.domain.model import AuditObjectType
    from sealvault.domain.ports import EvidenceUnitOfWork

log = logging.getLogger(__name__)


class AuditTrail:
    def __init__(self, context: ServiceContext) -> None:
        self.context = context

    def record(
        self,
        uow: EvidenceUnitOfWork,
        scope: RequestScope,
        *,
        event_type: AuditEventType,
        object_type: AuditObjectType,
        object_id: str,
        details: dict[str, Any] | None = None,
    ) -> AuditEvent:
        """Stage an event inside ``uow``; it becomes durable with the caller's commit."""

        event = AuditEvent(
            tenant_id=scope.tenant_id,
            event_type=event_type,
            object_type=object_type,
            object_id=object_id,
            actor=scope.actor,
            timestamp=self.context.now(),
            details=dict(details or {}),
        )
        uow.repositories.audit_events.add(event)
        log.debug("Audit %s on %s %s", event_type, object_type, object_id)
        return event

    def record_transition(
        self,
        uow: EvidenceUnitOfWork,
        scope: RequestScope,
        *,
        object_type: AuditObjectType,
        object_id: str,
        from_state: str | None,
        to_state: str,
        **details: Any,
    ) -> AuditEvent:
        return self.record(
            uow,
            scope,
            event_type=AuditEventType.STATE_TRANSITION,
            object_type=object_type,
            object_id=object_id,
            details={
                "from_state": None if from_state is None else str(from_state),
                "to_state": str(to_state),
                **details,
            },
        )

    def list_events(
        self,
        tenant_id: str,
        *,
        object_type: AuditObjectType | None = None,
        object_id: str | None = None,
        limit: int | None = None,
    ) -> list[AuditEvent]:
        """Return the tenant's events, newest first."""

        with self.context.unit_of_work_factory() as uow:
            return uow.repositories.audit_events.find(
                tenant_id, object_type=object_type, object_id=object_id, limit=limit
            )
