"""Application orchestration entry points."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Any, cast

from sealvault.adapters.notifications import LoggingWorkItemNotifier, WebhookWorkItemNotifier
from sealvault.adapters.sqlalchemy.unit_of_work import startup, unit_of_work_factory
from sealvault.config import get_lifecycle_config, get_webhook_config
from sealvault.domain.audit_trail import AuditTrail
from sealvault.domain.canonical_store import EntityCanonicalStore
from sealvault.domain.context import ServiceContext
from sealvault.domain.decisions import DecisionRegistry
from sealvault.domain.drafts import DraftRequest, EvidenceDraftStore
from sealvault.domain.errors import InvalidRequestError
from sealvault.domain.hashing import load_json
from sealvault.domain.ingest_queue import IngestionSubmission, IngestionWorkerPool
from sealvault.domain.ledger import EvidenceLedger
from sealvault.domain.mapping_suggestions import MappingSuggestionEngine
from sealvault.domain.model import (
    BindingMode,
    EntityType,
    IngestionMethod,
    RetentionPolicy,
    utcnow,
)
from sealvault.domain.readiness import ReadinessReporter
from sealvault.domain.work_items import WorkItemEngine

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime
    from pathlib import Path

    from sqlalchemy.engine import Engine

    from sealvault.config import LifecycleConfig
    from sealvault.domain.context import RequestScope
    from sealvault.domain.ingest_queue import IngestionOutcome
    from sealvault.domain.model import AuditEvent, AuditObjectType, CanonicalEntity
    from sealvault.domain.ports import WorkItemNotifier
    from sealvault.domain.readiness import ReadinessSummary

log = getLogger(__name__)


@dataclass(slots=True)
class EvidenceServices:
    """Every service of one running instance, wired to a shared context."""

    context: ServiceContext
    audit_trail: AuditTrail
    entities: EntityCanonicalStore
    ledger: EvidenceLedger
    work_items: WorkItemEngine
    drafts: EvidenceDraftStore
    decisions: DecisionRegistry
    mapping_suggestions: MappingSuggestionEngine
    readiness: ReadinessReporter
    ingestion: IngestionWorkerPool


def default_notifier() -> WorkItemNotifier:
    webhook = get_webhook_config()
    if webhook is None:
        return LoggingWorkItemNotifier()
    log.info("Work item notifications go to %s", webhook.url)
    return WebhookWorkItemNotifier(webhook)


def build_services(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    config: LifecycleConfig | None = None,
    notifier: WorkItemNotifier | None = None,
    clock: Callable[[], datetime] | None = None,
) -> EvidenceServices:
    """Bring the database to head and wire the services around it."""

    resolved_engine = startup(engine=engine, database_uri=database_uri)
    context = ServiceContext(
        unit_of_work_factory=unit_of_work_factory(resolved_engine),
        config=config or get_lifecycle_config(),
        clock=clock or utcnow,
        notifier=notifier or default_notifier(),
    )

    audit_trail = AuditTrail(context)
    entities = EntityCanonicalStore(context, audit_trail)
    ledger = EvidenceLedger(context)
    work_items = WorkItemEngine(context, audit_trail)
    drafts = EvidenceDraftStore(
        context,
        audit_trail=audit_trail,
        canonical_store=entities,
        ledger=ledger,
        work_items=work_items,
    )
    decisions = DecisionRegistry(
        context, audit_trail=audit_trail, canonical_store=entities, work_items=work_items
    )
    return EvidenceServices(
        context=context,
        audit_trail=audit_trail,
        entities=entities,
        ledger=ledger,
        work_items=work_items,
        drafts=drafts,
        decisions=decisions,
        mapping_suggestions=MappingSuggestionEngine(
            context, audit_trail=audit_trail, decisions=decisions
        ),
        readiness=ReadinessReporter(context),
        ingestion=IngestionWorkerPool(drafts, max_workers=context.config.ingest_workers),
    )


# CLI-facing helpers ------------------------------------------------------------


def register_entity(
    services: EvidenceServices,
    scope: RequestScope,
    *,
    entity_type: str,
    entity_id: str,
    name: str = "",
    attributes: dict[str, Any] | None = None,
) -> CanonicalEntity:
    return services.entities.register_entity(
        scope,
        entity_type=EntityType(entity_type.upper()),
        entity_id=entity_id,
        name=name,
        attributes=attributes,
    )


def submission_from_mapping(raw: dict[str, Any], *, seal: bool = True) -> IngestionSubmission:
    """Build a submission from one decoded JSON line.

    The line holds the draft fields next to a ``payload`` member; an optional
    ``reference`` is echoed back in the outcome.
    """

    if "evidence_type" not in raw:
        raise InvalidRequestError("evidence_type is required")
    if "payload" not in raw:
        raise InvalidRequestError("payload is required")
    policy = raw.get("retention_policy")
    bound_type = raw.get("bound_entity_type")
    request = DraftRequest(
        evidence_type=str(raw["evidence_type"]),
        ingestion_method=IngestionMethod(raw.get("ingestion_method", IngestionMethod.FILE_UPLOAD)),
        declared_scope=raw.get("declared_scope"),
        binding_mode=BindingMode(raw.get("binding_mode", BindingMode.UNBOUND)),
        bound_entity_type=None if bound_type is None else EntityType(bound_type),
        bound_entity_id=raw.get("bound_entity_id"),
        justification_text=raw.get("justification_text", ""),
        provenance_source=raw.get("provenance_source", ""),
        retention_policy=None if policy is None else RetentionPolicy(policy),
        retention_custom_days=raw.get("retention_custom_days"),
        external_reference_id=raw.get("external_reference_id"),
    )
    return IngestionSubmission(
        draft=request,
        payload=raw["payload"],
        seal=bool(raw.get("seal", seal)),
        reference=raw.get("reference"),
    )


def read_submissions(path: Path, *, seal: bool = True) -> list[IngestionSubmission]:
    submissions: list[IngestionSubmission] = []
    with path.open(encoding="utf-8") as handle:
        for line_number, line in enumerate(handle, start=1):
            if not line.strip():
                continue
            try:
                raw = load_json(line)
            except ValueError as exc:
                raise InvalidRequestError(f"{path}:{line_number}: invalid JSON ({exc})") from exc
            if not isinstance(raw, dict):
                raise InvalidRequestError(f"{path}:{line_number}: expected a JSON object")
            submissions.append(submission_from_mapping(cast(dict[str, Any], raw), seal=seal))
    return submissions


def ingest_file(
    services: EvidenceServices, scope: RequestScope, path: Path, *, seal: bool = True
) -> list[IngestionOutcome]:
    submissions = read_submissions(path, seal=seal)
    log.info("Ingesting %d submission(s) from %s", len(submissions), path)
    return services.ingestion.run(scope, submissions)


def audit_events(
    services: EvidenceServices,
    tenant_id: str,
    *,
    object_type: AuditObjectType | None = None,
    object_id: str | None = None,
    limit: int | None = None,
) -> list[AuditEvent]:
    return services.audit_trail.list_events(
        tenant_id, object_type=object_type, object_id=object_id, limit=limit
    )


def kpis(services: EvidenceServices, tenant_id: str) -> ReadinessSummary:
    return services.readiness.summary(tenant_id)
