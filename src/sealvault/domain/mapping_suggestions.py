"""Review of suggested entity mappings."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from sealvault.domain.errors import InvalidRequestError, NotFoundError
from sealvault.domain.locking import sequence_key, suggestion_key
from sealvault.domain.model import (
    AuditEventType,
    AuditObjectType,
    MappingSuggestion,
    format_display_id,
)

if TYPE_CHECKING:
    from sealvault.domain.audit_trail import AuditTrail
    from sealvault.domain.context import RequestScope, ServiceContext
    from sealvault.domain.decisions import DecisionRegistry
    from sealvault.domain.model import Decision, EntityType, MappingStatus
    from sealvault.domain.ports import EvidenceUnitOfWork

log = logging.getLogger(__name__)

SUGGESTION_PREFIX: Final[str] = "MS"
APPROVED_DECISION: Final[str] = "MAPPING_APPROVED"
APPROVED_REASON: Final[str] = "AI_SUGGESTION_APPROVED"
REJECTED_DECISION: Final[str] = "MAPPING_REJECTED"
REJECTED_REASON: Final[str] = "AI_SUGGESTION_REJECTED"


@dataclass(frozen=True, slots=True, kw_only=True)
class SuggestionRequest:
    mapping_type: str
    source_type: str
    source_id: str
    target_entity_type: EntityType
    target_entity_id: str
    confidence_score: float
    source_label: str | None = None
    target_label: str | None = None
    reasoning: str | None = None
    matched_attributes: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ReviewOutcome:
    suggestion: MappingSuggestion
    decision: Decision


class MappingSuggestionEngine:
    def __init__(
        self,
        context: ServiceContext,
        *,
        audit_trail: AuditTrail,
        decisions: DecisionRegistry,
    ) -> None:
        self.context = context
        self.audit_trail = audit_trail
        self.decisions = decisions

    def propose(self, scope: RequestScope, request: SuggestionRequest) -> MappingSuggestion:
        """Record a suggestion produced by an external matching process."""

        if not 0.0 <= request.confidence_score <= 1.0:
            raise InvalidRequestError("confidence_score must be between 0 and 1")
        with (
            self.context.lock_registry.hold(sequence_key(scope.tenant_id)),
            self.context.unit_of_work_factory() as uow,
        ):
            target = uow.repositories.entities.get(
                scope.tenant_id, request.target_entity_type, request.target_entity_id
            )
            if target is None:
                raise NotFoundError(str(request.target_entity_type), request.target_entity_id)
            number = uow.repositories.sequences.next_value(scope.tenant_id, SUGGESTION_PREFIX)
            suggestion = MappingSuggestion(
                tenant_id=scope.tenant_id,
                suggestion_id=format_display_id(SUGGESTION_PREFIX, number),
                mapping_type=request.mapping_type,
                source_type=request.source_type,
                source_id=request.source_id,
                source_label=request.source_label,
                target_entity_type=request.target_entity_type,
                target_entity_id=request.target_entity_id,
                target_label=request.target_label or target.name or None,
                confidence_score=request.confidence_score,
                reasoning=request.reasoning,
                matched_attributes=list(request.matched_attributes),
                created_at=self.context.now(),
            )
            uow.repositories.mapping_suggestions.add(suggestion)
            self.audit_trail.record(
                uow,
                scope,
                event_type=AuditEventType.MAPPING_SUGGESTION_CREATED,
                object_type=AuditObjectType.MAPPING_SUGGESTION,
                object_id=suggestion.suggestion_id,
                details={
                    "mapping_type": suggestion.mapping_type,
                    "source_id": suggestion.source_id,
                    "target_entity_id": suggestion.target_entity_id,
                    "confidence_score": suggestion.confidence_score,
                },
            )
            uow.commit()
        return suggestion

    def approve(
        self, scope: RequestScope, suggestion_id: str, comment: str | None = None
    ) -> ReviewOutcome:
        with (
            self.context.lock_registry.hold(
                suggestion_key(scope.tenant_id, suggestion_id), sequence_key(scope.tenant_id)
            ),
            self.context.unit_of_work_factory() as uow,
        ):
            suggestion = self._load(uow, scope.tenant_id, suggestion_id)
            previous = suggestion.approve(actor=scope.actor, at=self.context.now(), comment=comment)
            self._audit_review(uow, scope, suggestion, previous)
            decision = self.decisions.record_decision(
                uow,
                scope,
                decision_type=APPROVED_DECISION,
                mapping_suggestion_id=suggestion.suggestion_id,
                reason_code=APPROVED_REASON,
                comment=comment,
                entity_refs=[suggestion.target],
            )
            uow.commit()
        log.info("Approved mapping suggestion %s", suggestion_id)
        return ReviewOutcome(suggestion=suggestion, decision=decision)

    def reject(
        self, scope: RequestScope, suggestion_id: str, reason: str | None = None
    ) -> ReviewOutcome:
        with (
            self.context.lock_registry.hold(
                suggestion_key(scope.tenant_id, suggestion_id), sequence_key(scope.tenant_id)
            ),
            self.context.unit_of_work_factory() as uow,
        ):
            suggestion = self._load(uow, scope.tenant_id, suggestion_id)
            previous = suggestion.reject(actor=scope.actor, at=self.context.now(), reason=reason)
            self._audit_review(uow, scope, suggestion, previous)
            decision = self.decisions.record_decision(
                uow,
                scope,
                decision_type=REJECTED_DECISION,
                mapping_suggestion_id=suggestion.suggestion_id,
                reason_code=REJECTED_REASON,
                comment=reason,
                entity_refs=[suggestion.target],
            )
            uow.commit()
        log.info("Rejected mapping suggestion %s", suggestion_id)
        return ReviewOutcome(suggestion=suggestion, decision=decision)

    def _audit_review(
        self,
        uow: EvidenceUnitOfWork,
        scope: RequestScope,
        suggestion: MappingSuggestion,
        previous: MappingStatus,
    ) -> None:
        self.audit_trail.record_transition(
            uow,
            scope,
            object_type=AuditObjectType.MAPPING_SUGGESTION,
            object_id=suggestion.suggestion_id,
            from_state=previous,
            to_state=suggestion.status,
            target_entity_id=suggestion.target_entity_id,
        )

    def get_suggestion(self, tenant_id: str, suggestion_id: str) -> MappingSuggestion:
        with self.context.unit_of_work_factory() as uow:
            return self._load(uow, tenant_id, suggestion_id)

    def list_suggestions(
        self, tenant_id: str, *, status: MappingStatus | None = None
    ) -> list[MappingSuggestion]:
        with self.context.unit_of_work_factory() as uow:
            return uow.repositories.mapping_suggestions.find(tenant_id, status=status)

    @staticmethod
    def _load(uow: EvidenceUnitOfWork, tenant_id: str, suggestion_id: str) -> MappingSuggestion:
        suggestion = uow.repositories.mapping_suggestions.get(tenant_id, suggestion_id)
        if suggestion is None:
            raise NotFoundError("mapping_suggestion", suggestion_id)
        return suggestion
