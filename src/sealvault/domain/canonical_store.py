"""Canonical entities and provenance-carrying field updates."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sealvault.domain.errors import InvalidStateError, NotFoundError
from sealvault.domain.locking import entity_key
from sealvault.domain.model import (
    AuditEventType,
    AuditObjectType,
    CanonicalEntity,
    CanonicalFieldValue,
)

if TYPE_CHECKING:
    from sealvault.domain.audit_trail import AuditTrail
    from sealvault.domain.context import RequestScope, ServiceContext
    from sealvault.domain.model import EntityRef, EntityType
    from sealvault.domain.ports import EvidenceUnitOfWork

log = logging.getLogger(__name__)


class EntityCanonicalStore:
    def __init__(self, context: ServiceContext, audit_trail: AuditTrail) -> None:
        self.context = context
        self.audit_trail = audit_trail

    def register_entity(
        self,
        scope: RequestScope,
        *,
        entity_type: EntityType,
        entity_id: str,
        name: str = "",
        attributes: dict[str, Any] | None = None,
    ) -> CanonicalEntity:
        with (
            self.context.lock_registry.hold(entity_key(scope.tenant_id, entity_type, entity_id)),
            self.context.unit_of_work_factory() as uow,
        ):
            if uow.repositories.entities.get(scope.tenant_id, entity_type, entity_id) is not None:
                raise InvalidStateError(f"{entity_type} {entity_id} already exists")
            now = self.context.now()
            entity = CanonicalEntity(
                tenant_id=scope.tenant_id,
                entity_type=entity_type,
                entity_id=entity_id,
                name=name,
                attributes=dict(attributes or {}),
                created_at=now,
                updated_at=now,
            )
            uow.repositories.entities.add(entity)
            self.audit_trail.record(
                uow,
                scope,
                event_type=AuditEventType.ENTITY_REGISTERED,
                object_type=AuditObjectType.ENTITY,
                object_id=f"{entity_type}:{entity_id}",
                details={"entity_type": str(entity_type), "name": name},
            )
            uow.commit()
        log.info("Registered %s %s for tenant %s", entity_type, entity_id, scope.tenant_id)
        return entity

    def exists(self, uow: EvidenceUnitOfWork, tenant_id: str, ref: EntityRef) -> bool:
        return uow.repositories.entities.get(tenant_id, ref.entity_type, ref.entity_id) is not None

    def get_entity(
        self, tenant_id: str, entity_type: EntityType, entity_id: str
    ) -> CanonicalEntity:
        with self.context.unit_of_work_factory() as uow:
            entity = uow.repositories.entities.get(tenant_id, entity_type, entity_id)
        if entity is None:
            raise NotFoundError(str(entity_type), entity_id)
        return entity

    def list_entities(
        self, tenant_id: str, *, entity_type: EntityType | None = None
    ) -> list[CanonicalEntity]:
        with self.context.unit_of_work_factory() as uow:
            return uow.repositories.entities.find(tenant_id, entity_type=entity_type)

    def update_field(
        self,
        uow: EvidenceUnitOfWork,
        scope: RequestScope,
        ref: EntityRef,
        *,
        field_name: str,
        value: Any,
        source_id: str,
    ) -> CanonicalEntity | None:
        """Overwrite one canonical field together with its provenance.

        Returns ``None`` without changing anything when the entity does not exist.
        The caller must hold the entity lock; the store's version check rejects a
        concurrent writer at commit.
        """

        if not source_id:
            raise InvalidStateError(f"Canonical field {field_name} needs a source id")
        entity = uow.repositories.entities.get(scope.tenant_id, ref.entity_type, ref.entity_id)
        if entity is None:
            log.info(
                "Skipping update of %s on missing %s %s",
                field_name,
                ref.entity_type,
                ref.entity_id,
            )
            return None
        previous = entity.canonical_fields.get(field_name)
        entity.set_canonical_field(
            field_name,
            CanonicalFieldValue(
                value=value,
                source_id=source_id,
                updated_at=self.context.now(),
                updated_by=scope.actor,
            ),
        )
        self.audit_trail.record(
            uow,
            scope,
            event_type=AuditEventType.CANONICAL_FIELD_UPDATED,
            object_type=AuditObjectType.ENTITY,
            object_id=f"{ref.entity_type}:{ref.entity_id}",
            details={
                "field": field_name,
                "previous_value": None if previous is None else previous.value,
                "value": value,
                "source_id": source_id,
            },
        )
        return entity
