"""Shared value objects and helpers for the domain model."""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sealvault.domain.enums import EntityType

if TYPE_CHECKING:
    from collections.abc import Mapping


def utcnow() -> datetime:
    return datetime.now(tz=UTC)


def new_id() -> str:
    return str(uuid.uuid4())


def format_display_id(prefix: str, value: int) -> str:
    """Render a per-tenant counter value, e.g. ``EV-0001``."""

    return f"{prefix}-{value:04d}"


@dataclass(frozen=True, slots=True)
class EntityRef:
    """Typed reference to a canonical entity."""

    entity_type: EntityType
    entity_id: str

    def to_dict(self) -> dict[str, str]:
        return {"entity_type": str(self.entity_type), "entity_id": self.entity_id}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> EntityRef:
        return cls(entity_type=EntityType(data["entity_type"]), entity_id=str(data["entity_id"]))


@dataclass(frozen=True, slots=True)
class FieldError:
    field: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> FieldError:
        return cls(field=str(data["field"]), message=str(data["message"]))


@dataclass(slots=True)
class Page[T]:
    items: list[T] = field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 50

    @property
    def pages(self) -> int:
        if self.page_size <= 0:
            return 0
        return math.ceil(self.total / self.page_size)
