from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING, Any

from dotenv import load_dotenv

from sealvault.app import audit_events, build_services, ingest_file, kpis, register_entity
from sealvault.config import configure_logging, get_api_config, get_lifecycle_config
from sealvault.domain.context import RequestScope
from sealvault.domain.model import AuditObjectType, EntityType

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Sealvault evidence lifecycle service")
    parser.add_argument(
        "--database-uri",
        type=str,
        help="SQLAlchemy database URI (defaults to DATABASE_URI or the data directory)",
    )
    parser.add_argument("--verbose", action="store_true", help="Log at DEBUG level")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create or upgrade the database schema")

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", type=str, help="Bind address (defaults to SEALVAULT_HOST)")
    serve.add_argument("--port", type=int, help="Bind port (defaults to SEALVAULT_PORT)")

    entity = subparsers.add_parser("entity", help="Canonical entity commands")
    entity_sub = entity.add_subparsers(dest="entity_command", required=True)
    entity_register = entity_sub.add_parser("register", help="Register a canonical entity")
    _add_scope_arguments(entity_register)
    entity_register.add_argument(
        "--type",
        dest="entity_type",
        required=True,
        choices=[member.value for member in EntityType],
        type=str.upper,
        help="Entity type",
    )
    entity_register.add_argument("--id", dest="entity_id", required=True, help="Entity id")
    entity_register.add_argument("--name", default="", help="Display name")
    entity_register.add_argument(
        "--attributes",
        type=str,
        help="JSON object of additional attributes",
    )

    ingest = subparsers.add_parser("ingest", help="Ingest evidence from a JSON-lines file")
    _add_scope_arguments(ingest)
    ingest.add_argument("path", type=Path, help="One JSON submission per line")
    ingest.add_argument(
        "--no-seal",
        action="store_true",
        help="Stop after validation instead of sealing valid drafts",
    )

    audit = subparsers.add_parser("audit", help="Print audit events, newest first")
    _add_scope_arguments(audit)
    audit.add_argument(
        "--object-type",
        choices=[member.value for member in AuditObjectType],
        help="Only events about this kind of object",
    )
    audit.add_argument("--object-id", type=str, help="Only events about this object")
    audit.add_argument("--limit", type=int, default=50, help="Maximum number of events")

    kpi = subparsers.add_parser("kpis", help="Print readiness indicators")
    _add_scope_arguments(kpi)

    return parser.parse_args(list(argv))


def _add_scope_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--tenant", required=True, help="Tenant id")
    parser.add_argument("--actor", type=str, help="Acting user (defaults to the system actor)")


def _scope(args: argparse.Namespace) -> RequestScope:
    return RequestScope(
        tenant_id=args.tenant, actor=args.actor or get_lifecycle_config().system_actor
    )


def _parse_attributes(value: str | None) -> dict[str, Any]:
    if not value:
        return {}
    try:
        attributes = json.loads(value)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid --attributes JSON: {exc}") from exc
    if not isinstance(attributes, dict):
        raise ValueError("--attributes must be a JSON object")
    return attributes


def _emit(data: Any) -> None:
    sys.stdout.write(json.dumps(data, indent=2, default=str) + "\n")


def _serve(args: argparse.Namespace) -> None:
    import uvicorn

    from sealvault.ui.api import create_app

    api = get_api_config()
    app = create_app(build_services(database_uri=args.database_uri))
    uvicorn.run(app, host=args.host or api.host, port=args.port or api.port)


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        attributes = (
            _parse_attributes(parsed_args.attributes) if parsed_args.command == "entity" else {}
        )
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else None)

    try:
        if parsed_args.command == "init-db":
            build_services(database_uri=parsed_args.database_uri)
            log.info("Database schema is up to date")
        elif parsed_args.command == "serve":
            _serve(parsed_args)
        elif parsed_args.command == "entity" and parsed_args.entity_command == "register":
            services = build_services(database_uri=parsed_args.database_uri)
            entity = register_entity(
                services,
                _scope(parsed_args),
                entity_type=parsed_args.entity_type,
                entity_id=parsed_args.entity_id,
                name=parsed_args.name,
                attributes=attributes,
            )
            _emit({"entity_type": entity.entity_type, "entity_id": entity.entity_id})
        elif parsed_args.command == "ingest":
            services = build_services(database_uri=parsed_args.database_uri)
            outcomes = ingest_file(
                services, _scope(parsed_args), parsed_args.path, seal=not parsed_args.no_seal
            )
            _emit(
                [
                    {
                        "reference": outcome.reference,
                        "draft_id": outcome.draft_id,
                        "status": outcome.status,
                        "display_id": outcome.display_id,
                        "work_item_ids": outcome.work_item_ids,
                        "errors": [error.to_dict() for error in outcome.errors],
                        "failure": outcome.failure,
                        "replayed": outcome.replayed,
                    }
                    for outcome in outcomes
                ]
            )
        elif parsed_args.command == "audit":
            services = build_services(database_uri=parsed_args.database_uri)
            events = audit_events(
                services,
                parsed_args.tenant,
                object_type=(
                    None
                    if parsed_args.object_type is None
                    else AuditObjectType(parsed_args.object_type)
                ),
                object_id=parsed_args.object_id,
                limit=parsed_args.limit,
            )
            _emit(
                [
                    {
                        "event_id": event.event_id,
                        "event_type": event.event_type,
                        "object_type": event.object_type,
                        "object_id": event.object_id,
                        "actor": event.actor,
                        "timestamp": event.timestamp.isoformat(),
                        "metadata": event.details,
                    }
                    for event in events
                ]
            )
        elif parsed_args.command == "kpis":
            services = build_services(database_uri=parsed_args.database_uri)
            summary = kpis(services, parsed_args.tenant)
            _emit(
                {
                    "open_work_items": summary.open_work_items,
                    "blocked_work_items": summary.blocked_work_items,
                    "pending_reviews": summary.pending_reviews,
                    "pending_mappings": summary.pending_mappings,
                    "total_evidence": summary.total_evidence,
                    "financial_risk_exposure": summary.financial_risk_exposure,
                    "readiness": summary.readiness,
                }
            )
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except Exception:
        log.exception("Fatal error")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
