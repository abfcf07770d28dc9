"""Collaborators shared by the domain services."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sealvault.config.lifecycle import LifecycleConfig
from sealvault.domain.locking import KeyedLocks
from sealvault.domain.model import utcnow

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from datetime import datetime

    from sealvault.domain.model import WorkItem
    from sealvault.domain.ports import EvidenceUnitOfWork, WorkItemNotifier

log = logging.getLogger(__name__)

type UnitOfWorkFactory = Callable[[], EvidenceUnitOfWork]


@dataclass(frozen=True, slots=True)
class RequestScope:
    """Who is acting, and for which tenant."""

    tenant_id: str
    actor: str


@dataclass(slots=True)
class ServiceContext:
    unit_of_work_factory: UnitOfWorkFactory
    config: LifecycleConfig = field(default_factory=LifecycleConfig)
    clock: Callable[[], datetime] = utcnow
    notifier: WorkItemNotifier | None = None
    lock_registry: KeyedLocks = field(init=False)

    def __post_init__(self) -> None:
        self.lock_registry = KeyedLocks(timeout=self.config.lock_timeout_seconds)

    def now(self) -> datetime:
        return self.clock()

    def notify_created(self, tenant_id: str, items: Sequence[WorkItem]) -> None:
        """Hand committed work items to the notifier without failing the caller."""

        if self.notifier is None or not items:
            return
        try:
            self.notifier.work_items_created(tenant_id, items)
        except Exception:
            log.exception("Work item notification failed for tenant %s", tenant_id)
