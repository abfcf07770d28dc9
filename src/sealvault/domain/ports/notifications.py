"""Outbound notification port."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sealvault.domain.model import WorkItem


@runtime_checkable
class WorkItemNotifier(Protocol):
    """Told about work items once they are committed. Delivery is best effort."""

    def work_items_created(self, tenant_id: str, items: Sequence[WorkItem]) -> None: ...
