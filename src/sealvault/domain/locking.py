"""Per-key exclusive locks for mutating operations."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sealvault.domain.errors import LockTimeoutError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sealvault.domain.model import EntityType

log = logging.getLogger(__name__)

type LockKey = tuple[str, ...]


def draft_key(tenant_id: str, draft_id: str) -> LockKey:
    return ("draft", tenant_id, draft_id)


def work_item_key(tenant_id: str, work_item_id: str) -> LockKey:
    return ("work_item", tenant_id, work_item_id)


def entity_key(tenant_id: str, entity_type: EntityType, entity_id: str) -> LockKey:
    return ("entity", tenant_id, str(entity_type), entity_id)


def reference_key(tenant_id: str, evidence_type: str, external_reference_id: str) -> LockKey:
    return ("external_reference", tenant_id, evidence_type, external_reference_id)


def suggestion_key(tenant_id: str, suggestion_id: str) -> LockKey:
    return ("mapping_suggestion", tenant_id, suggestion_id)


def sequence_key(tenant_id: str) -> LockKey:
    """Guards the per-tenant display id counters."""

    return ("sequence", tenant_id)


@dataclass(slots=True)
class _Entry:
    lock: threading.Lock = field(default_factory=threading.Lock)
    holders: int = 0


class KeyedLocks:
    """Registry of exclusive locks addressed by key.

    Keys are acquired in sorted order so that callers holding several keys cannot
    deadlock each other. Entries are dropped once nobody holds or waits for them.
    """

    def __init__(self, *, timeout: float = 30.0) -> None:
        self.timeout = timeout
        self._guard = threading.Lock()
        self._entries: dict[LockKey, _Entry] = {}

    def _checkout(self, key: LockKey) -> _Entry:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _Entry()
            entry.holders += 1
            return entry

    def _checkin(self, key: LockKey, entry: _Entry) -> None:
        with self._guard:
            entry.holders -= 1
            if entry.holders == 0:
                del self._entries[key]

    @contextmanager
    def hold(self, *keys: LockKey) -> Iterator[None]:
        acquired: list[tuple[LockKey, _Entry]] = []
        try:
            for key in sorted(set(keys)):
                entry = self._checkout(key)
                if not entry.lock.acquire(timeout=self.timeout):
                    self._checkin(key, entry)
                    log.warning("Timed out after %.1fs waiting for lock %s", self.timeout, key)
                    raise LockTimeoutError(f"Timed out waiting for {':'.join(key)}")
                acquired.append((key, entry))
            yield
        finally:
            for key, entry in reversed(acquired):
                entry.lock.release()
                self._checkin(key, entry)

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)
