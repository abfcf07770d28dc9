"""Request bodies, response views and the JSON envelopes of the HTTP API."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from sealvault.domain.decisions import FollowUpRequest
from sealvault.domain.drafts import DraftRequest
from sealvault.domain.mapping_suggestions import SuggestionRequest
from sealvault.domain.model import (
    AuditEventType,
    AuditObjectType,
    BindingMode,
    BlockingIssue,
    DraftStatus,
    EntityRef,
    EntityType,
    IngestionMethod,
    MappingStatus,
    Priority,
    QuarantineReason,
    RecordStatus,
    RetentionPolicy,
    ScopeBindingStatus,
    WorkItemResolution,
    WorkItemStatus,
    WorkItemType,
)
from sealvault.domain.work_items import WorkItemRequest

if TYPE_CHECKING:
    from collections.abc import Callable

    from sealvault.domain.model import Page


def success_envelope(data: Any, trace_id: str) -> dict[str, Any]:
    return {"success": True, "data": data, "meta": {"trace_id": trace_id}}


def error_envelope(
    *,
    code: str,
    message: str,
    error_class: str,
    retryable: bool,
    trace_id: str,
    details: Any = None,
) -> dict[str, Any]:
    error: dict[str, Any] = {
        "code": code,
        "message": message,
        "error_class": error_class,
        "retryable": retryable,
    }
    if details is not None:
        error["details"] = details
    return {"success": False, "error": error, "meta": {"trace_id": trace_id}}


def page_payload[T](page: Page[T], render: Callable[[T], dict[str, Any]]) -> dict[str, Any]:
    return {
        "items": [render(item) for item in page.items],
        "total": page.total,
        "page": page.page,
        "page_size": page.page_size,
        "pages": page.pages,
    }


# Requests ----------------------------------------------------------------------


class DraftCreateRequest(BaseModel):
    evidence_type: str
    ingestion_method: IngestionMethod = IngestionMethod.MANUAL_ENTRY
    declared_scope: str | None = None
    binding_mode: BindingMode = BindingMode.UNBOUND
    bound_entity_type: EntityType | None = None
    bound_entity_id: str | None = None
    justification_text: str = ""
    provenance_source: str = ""
    retention_policy: RetentionPolicy | None = None
    retention_custom_days: int | None = None
    external_reference_id: str | None = Field(default=None, max_length=128)

    def to_domain(self) -> DraftRequest:
        return DraftRequest(**self.model_dump())


class PayloadAttachRequest(BaseModel):
    payload: Any


class EntityRefBody(BaseModel):
    entity_type: EntityType
    entity_id: str

    def to_domain(self) -> EntityRef:
        return EntityRef(self.entity_type, self.entity_id)


class WorkItemCreateRequest(BaseModel):
    type: WorkItemType = WorkItemType.REVIEW
    priority: Priority = Priority.MEDIUM
    title: str = "New Work Item"
    required_action_text: str | None = None
    reason_codes: list[str] = Field(default_factory=list)
    linked_entity: EntityRefBody | None = None
    linked_evidence_record_ids: list[str] = Field(default_factory=list)
    owner: str | None = None
    estimated_cost: int | None = Field(default=None, ge=0)
    risk_estimate: int | None = Field(default=None, ge=0)
    details: dict[str, Any] | None = None

    def to_domain(self) -> WorkItemRequest:
        return WorkItemRequest(
            type=self.type,
            priority=self.priority,
            title=self.title,
            required_action_text=self.required_action_text,
            reason_codes=tuple(self.reason_codes),
            linked_entity=None if self.linked_entity is None else self.linked_entity.to_domain(),
            linked_evidence_record_ids=tuple(self.linked_evidence_record_ids),
            owner=self.owner,
            estimated_cost=self.estimated_cost,
            risk_estimate=self.risk_estimate,
            details=self.details,
        )


class ResolveRequest(BaseModel):
    decision_type: str | None = None
    reason_code: str | None = None
    comment: str | None = None
    field: str | None = None
    selected_value: Any = None
    selected_evidence_id: str | None = None

    def to_domain(self) -> WorkItemResolution:
        return WorkItemResolution(**self.model_dump())


class FollowUpCreateRequest(BaseModel):
    type: WorkItemType = WorkItemType.FOLLOW_UP
    priority: Priority = Priority.MEDIUM
    title: str | None = None
    required_action_text: str | None = None
    reason_codes: list[str] = Field(default_factory=list)
    owner: str | None = None
    details: dict[str, Any] | None = None

    def to_domain(self) -> FollowUpRequest:
        return FollowUpRequest(
            type=self.type,
            priority=self.priority,
            title=self.title,
            required_action_text=self.required_action_text,
            reason_codes=tuple(self.reason_codes),
            owner=self.owner,
            details=self.details,
        )


class SuggestionCreateRequest(BaseModel):
    mapping_type: str
    source_type: str
    source_id: str
    target_entity_type: EntityType
    target_entity_id: str
    confidence_score: float
    source_label: str | None = None
    target_label: str | None = None
    reasoning: str | None = None
    matched_attributes: list[str] = Field(default_factory=list)

    def to_domain(self) -> SuggestionRequest:
        data = self.model_dump()
        data["matched_attributes"] = tuple(self.matched_attributes)
        return SuggestionRequest(**data)


class ApproveRequest(BaseModel):
    comment: str | None = None


class RejectRequest(BaseModel):
    reason: str | None = None


class EntityCreateRequest(BaseModel):
    entity_type: EntityType
    entity_id: str = Field(min_length=1)
    name: str = ""
    attributes: dict[str, Any] = Field(default_factory=dict)


# Views -------------------------------------------------------------------------


class View(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def render(cls, obj: Any) -> dict[str, Any]:
        return cls.model_validate(obj).model_dump(mode="json")


class FieldErrorView(View):
    field: str
    message: str


class EntityRefView(View):
    entity_type: EntityType
    entity_id: str


class DraftView(View):
    draft_id: str
    tenant_id: str
    evidence_type: str
    ingestion_method: IngestionMethod
    declared_scope: str | None
    binding_mode: BindingMode
    bound_entity_type: EntityType | None
    bound_entity_id: str | None
    justification_text: str
    provenance_source: str
    retention_policy: RetentionPolicy
    retention_custom_days: int | None
    external_reference_id: str | None
    payload_hash: str | None
    metadata_hash: str | None
    status: DraftStatus
    validation_errors: list[FieldErrorView]
    quarantine_reason: QuarantineReason | None
    sealed_record_id: str | None
    created_by: str | None
    created_at: datetime
    updated_at: datetime


class ValidationView(View):
    valid: bool
    status: DraftStatus
    errors: list[FieldErrorView]
    quarantine_reason: QuarantineReason | None


class RecordView(View):
    record_id: str
    display_id: str
    receipt_id: str
    draft_id: str
    dataset_type: str
    ingestion_method: IngestionMethod
    declared_scope: str | None
    provenance_source: str
    justification_text: str
    linked_entities: list[EntityRefView]
    scope_binding_status: ScopeBindingStatus
    claims: dict[str, Any]
    payload_hash: str
    metadata_hash: str
    blocking_issues: list[BlockingIssue]
    status: RecordStatus
    sealed_at: datetime
    sealed_by: str | None
    retention_ends_at: datetime
    external_reference_id: str | None


class WorkItemView(View):
    work_item_id: str
    type: WorkItemType
    status: WorkItemStatus
    priority: Priority
    title: str
    required_action_text: str | None
    reason_codes: list[str]
    linked_entity_type: EntityType | None
    linked_entity_id: str | None
    linked_evidence_record_ids: list[str]
    parent_work_item_id: str | None
    owner: str | None
    estimated_cost: int
    risk_estimate: int
    details: dict[str, Any] | None
    resolution: dict[str, Any] | None
    sla_due_at: datetime
    created_by: str | None
    created_at: datetime
    resolved_at: datetime | None
    resolved_by: str | None


class SealView(View):
    record: RecordView
    work_items: list[WorkItemView]
    scope_binding_status: ScopeBindingStatus
    receipt_id: str


class DecisionView(View):
    decision_id: str
    decision_type: str
    actor: str
    work_item_id: str | None
    mapping_suggestion_id: str | None
    reason_code: str | None
    comment: str | None
    evidence_refs: list[str]
    entity_refs: list[EntityRefView]
    timestamp: datetime


class AuditEventView(View):
    event_id: str
    event_type: AuditEventType
    object_type: AuditObjectType
    object_id: str
    actor: str
    timestamp: datetime
    metadata: dict[str, Any] = Field(validation_alias="details")


class CanonicalFieldView(View):
    value: Any
    source_id: str
    updated_at: datetime
    updated_by: str


class EntityView(View):
    entity_type: EntityType
    entity_id: str
    name: str
    attributes: dict[str, Any]
    canonical_fields: dict[str, CanonicalFieldView]
    created_at: datetime
    updated_at: datetime
    version: int | None


class SuggestionView(View):
    suggestion_id: str
    mapping_type: str
    source_type: str
    source_id: str
    source_label: str | None
    target_entity_type: EntityType
    target_entity_id: str
    target_label: str | None
    confidence_score: float
    reasoning: str | None
    matched_attributes: list[str]
    status: MappingStatus
    reviewed_by: str | None
    reviewed_at: datetime | None
    review_comment: str | None
    rejection_reason: str | None
    created_at: datetime


class ReviewView(View):
    suggestion: SuggestionView
    decision: DecisionView


class KpiView(View):
    open_work_items: int
    blocked_work_items: int
    pending_reviews: int
    pending_mappings: int
    total_evidence: int
    financial_risk_exposure: int
    readiness: str
