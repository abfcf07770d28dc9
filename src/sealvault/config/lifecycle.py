"""Lifecycle defaults for drafts, work items and the locking layer."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from .env import env_float, env_int, optional_env_str

DEFAULT_OWNER = "system-default"
SYSTEM_ACTOR = "system"
DEFAULT_RETENTION_POLICY = "7_YEARS"
DEFAULT_LOCK_TIMEOUT_SECONDS = 30.0
DEFAULT_EVIDENCE_PAGE_SIZE = 50
DEFAULT_WORK_ITEM_PAGE_SIZE = 100
DEFAULT_INGEST_WORKERS = 4

# keyed by work item priority; anything not listed costs nothing
COST_BY_PRIORITY: Mapping[str, int] = MappingProxyType(
    {"CRITICAL": 15000, "HIGH": 1200, "MEDIUM": 500}
)
SLA_HOURS_BY_PRIORITY: Mapping[str, int] = MappingProxyType(
    {"CRITICAL": 24, "HIGH": 48, "MEDIUM": 72, "LOW": 120}
)
DEFAULT_SLA_HOURS = 48


@dataclass(frozen=True, slots=True)
class LifecycleConfig:
    default_owner: str = DEFAULT_OWNER
    system_actor: str = SYSTEM_ACTOR
    default_retention_policy: str = DEFAULT_RETENTION_POLICY
    lock_timeout_seconds: float = DEFAULT_LOCK_TIMEOUT_SECONDS
    evidence_page_size: int = DEFAULT_EVIDENCE_PAGE_SIZE
    work_item_page_size: int = DEFAULT_WORK_ITEM_PAGE_SIZE
    ingest_workers: int = DEFAULT_INGEST_WORKERS
    default_sla_hours: int = DEFAULT_SLA_HOURS
    cost_by_priority: Mapping[str, int] = field(default=COST_BY_PRIORITY)
    sla_hours_by_priority: Mapping[str, int] = field(default=SLA_HOURS_BY_PRIORITY)

    def cost_for(self, priority: str) -> int:
        return self.cost_by_priority.get(priority, 0)

    def sla_hours_for(self, priority: str) -> int:
        return self.sla_hours_by_priority.get(priority, self.default_sla_hours)


def get_lifecycle_config() -> LifecycleConfig:
    return LifecycleConfig(
        default_owner=optional_env_str("SEALVAULT_DEFAULT_OWNER") or DEFAULT_OWNER,
        lock_timeout_seconds=env_float(
            "SEALVAULT_LOCK_TIMEOUT_SECONDS", DEFAULT_LOCK_TIMEOUT_SECONDS
        ),
        ingest_workers=env_int("SEALVAULT_INGEST_WORKERS", DEFAULT_INGEST_WORKERS),
    )
