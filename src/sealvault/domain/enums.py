"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class DraftStatus(StrEnum):
    DRAFT_CREATED = "DRAFT_CREATED"
    PAYLOAD_ATTACHED = "PAYLOAD_ATTACHED"
    VALIDATED = "VALIDATED"
    QUARANTINED = "QUARANTINED"
    READY_TO_SEAL = "READY_TO_SEAL"
    SEALED = "SEALED"


class QuarantineReason(StrEnum):
    ENTITY_NOT_FOUND = "ENTITY_NOT_FOUND"
    SCHEMA_MISMATCH = "SCHEMA_MISMATCH"
    VALIDATION_FAILED = "VALIDATION_FAILED"


class IngestionMethod(StrEnum):
    MANUAL_ENTRY = "MANUAL_ENTRY"
    FILE_UPLOAD = "FILE_UPLOAD"
    ERP_EXPORT = "ERP_EXPORT"
    ERP_API = "ERP_API"
    SUPPLIER_PORTAL = "SUPPLIER_PORTAL"
    API_PUSH = "API_PUSH"


class BindingMode(StrEnum):
    BIND_EXISTING = "BIND_EXISTING"
    UNBOUND = "UNBOUND"


class ScopeBindingStatus(StrEnum):
    BOUND = "BOUND"
    UNRESOLVED = "UNRESOLVED"


class RetentionPolicy(StrEnum):
    STANDARD_1_YEAR = "STANDARD_1_YEAR"
    THREE_YEARS = "3_YEARS"
    SEVEN_YEARS = "7_YEARS"
    CUSTOM = "CUSTOM"


class RecordStatus(StrEnum):
    SEALED = "SEALED"


class EntityType(StrEnum):
    """Kinds of canonical entity that evidence can bind to."""

    SUPPLIER = "SUPPLIER"
    SKU = "SKU"
    SITE = "SITE"
    BOM = "BOM"


class WorkItemType(StrEnum):
    REVIEW = "REVIEW"
    MAPPING = "MAPPING"
    BLOCKED = "BLOCKED"
    CONFLICT = "CONFLICT"
    FOLLOW_UP = "FOLLOW_UP"


class WorkItemStatus(StrEnum):
    OPEN = "OPEN"
    BLOCKED = "BLOCKED"
    RESOLVED = "RESOLVED"


class Priority(StrEnum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class BlockingIssue(StrEnum):
    SUPPLIER_NOT_MAPPED = "SUPPLIER_NOT_MAPPED"
    INSTALLATION_MISSING = "INSTALLATION_MISSING"
    CN_CODE_INVALID = "CN_CODE_INVALID"
    BOM_COMPONENT_UNMATCHED = "BOM_COMPONENT_UNMATCHED"
    WEIGHT_MISSING = "WEIGHT_MISSING"
    SHIPMENT_DATA_INCOMPLETE = "SHIPMENT_DATA_INCOMPLETE"


class MappingStatus(StrEnum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class AuditEventType(StrEnum):
    STATE_TRANSITION = "STATE_TRANSITION"
    EVIDENCE_SEALED = "EVIDENCE_SEALED"
    WORK_ITEM_CREATED = "WORK_ITEM_CREATED"
    DECISION_CREATED = "DECISION_CREATED"
    MAPPING_SUGGESTION_CREATED = "MAPPING_SUGGESTION_CREATED"
    CANONICAL_FIELD_UPDATED = "CANONICAL_FIELD_UPDATED"
    ENTITY_REGISTERED = "ENTITY_REGISTERED"


class AuditObjectType(StrEnum):
    EVIDENCE_DRAFT = "evidence_draft"
    EVIDENCE_RECORD = "evidence_record"
    WORK_ITEM = "work_item"
    DECISION = "decision"
    MAPPING_SUGGESTION = "mapping_suggestion"
    ENTITY = "entity"
