"""Canonical business entities with per-field provenance."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .base import EntityRef, utcnow

if TYPE_CHECKING:
    from datetime import datetime

    from sealvault.domain.enums import EntityType


@dataclass(frozen=True, slots=True, kw_only=True)
class CanonicalFieldValue:
    """Current value of one canonical field and where it came from."""

    value: Any
    source_id: str
    updated_at: datetime
    updated_by: str


@dataclass(eq=False, kw_only=True)
class CanonicalEntity:
    tenant_id: str
    entity_type: EntityType
    entity_id: str
    name: str = ""
    attributes: dict[str, Any] = field(default_factory=dict)
    canonical_fields: dict[str, CanonicalFieldValue] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    # optimistic concurrency counter, maintained by the store
    version: int | None = None

    @property
    def ref(self) -> EntityRef:
        return EntityRef(self.entity_type, self.entity_id)

    def canonical_value(self, field_name: str, default: Any = None) -> Any:
        current = self.canonical_fields.get(field_name)
        return default if current is None else current.value

    def set_canonical_field(self, field_name: str, value: CanonicalFieldValue) -> None:
        # reassign so the store notices the change
        self.canonical_fields = {**self.canonical_fields, field_name: value}
        self.updated_at = value.updated_at
