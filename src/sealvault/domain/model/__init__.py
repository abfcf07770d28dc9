"""Domain model for evidence, work items, decisions and canonical entities."""

from __future__ import annotations

from sealvault.domain.enums import (
    AuditEventType,
    AuditObjectType,
    BindingMode,
    BlockingIssue,
    DraftStatus,
    EntityType,
    IngestionMethod,
    MappingStatus,
    Priority,
    QuarantineReason,
    RecordStatus,
    RetentionPolicy,
    ScopeBindingStatus,
    WorkItemStatus,
    WorkItemType,
)

from .audit import AuditEvent
from .base import EntityRef, FieldError, Page, format_display_id, new_id, utcnow
from .decisions import Decision
from .drafts import ALLOWED_TRANSITIONS, EvidenceDraft, retention_end
from .entities import CanonicalEntity, CanonicalFieldValue
from .evidence import EvidenceRecord
from .mapping import MappingSuggestion
from .work_items import WorkItem, WorkItemResolution

__all__ = [
    "ALLOWED_TRANSITIONS",
    "AuditEvent",
    "AuditEventType",
    "AuditObjectType",
    "BindingMode",
    "BlockingIssue",
    "CanonicalEntity",
    "CanonicalFieldValue",
    "Decision",
    "DraftStatus",
    "EntityRef",
    "EntityType",
    "EvidenceDraft",
    "EvidenceRecord",
    "FieldError",
    "IngestionMethod",
    "MappingStatus",
    "MappingSuggestion",
    "Page",
    "Priority",
    "QuarantineReason",
    "RecordStatus",
    "RetentionPolicy",
    "ScopeBindingStatus",
    "WorkItem",
    "WorkItemResolution",
    "WorkItemStatus",
    "WorkItemType",
    "format_display_id",
    "new_id",
    "retention_end",
]
