"""Append-only audit trail entries."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .base import new_id, utcnow

if TYPE_CHECKING:
    from datetime import datetime

    from sealvault.domain.enums import AuditEventType, AuditObjectType


@dataclass(eq=False, kw_only=True)
class AuditEvent:
    """One recorded action. ``details`` is stored as the event metadata."""

    tenant_id: str
    event_type: AuditEventType
    object_type: AuditObjectType
    object_id: str
    actor: str
    event_id: str = field(default_factory=new_id)
    timestamp: datetime = field(default_factory=utcnow)
    details: dict[str, Any] = field(default_factory=dict)
    # insertion order, assigned by the store; breaks timestamp ties
    sequence: int | None = None
