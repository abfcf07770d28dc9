"""Work item notifiers: a log sink and an HTTP webhook."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sealvault.config import WebhookConfig
    from sealvault.domain.model import WorkItem

log = logging.getLogger(__name__)


def work_item_summary(item: WorkItem) -> dict[str, Any]:
    linked = item.linked_entity
    return {
        "work_item_id": item.work_item_id,
        "type": str(item.type),
        "status": str(item.status),
        "priority": str(item.priority),
        "title": item.title,
        "owner": item.owner,
        "sla_due_at": item.sla_due_at.isoformat(),
        "linked_entity": None if linked is None else linked.to_dict(),
        "linked_evidence_record_ids": list(item.linked_evidence_record_ids),
    }


class LoggingWorkItemNotifier:
    def work_items_created(self, tenant_id: str, items: Sequence[WorkItem]) -> None:
        for item in items:
            log.info(
                "Work item %s (%s, %s) opened for tenant %s: %s",
                item.work_item_id,
                item.type,
                item.priority,
                tenant_id,
                item.title,
            )


class WebhookWorkItemNotifier:
    """POST newly created work items to an external endpoint.

    Delivery is best effort: a failing endpoint is logged and never undoes the
    committed work items.
    """

    def __init__(self, config: WebhookConfig, *, client: httpx.Client | None = None) -> None:
        self.config = config
        self._client = client

    def work_items_created(self, tenant_id: str, items: Sequence[WorkItem]) -> None:
        body = {
            "event": "work_items.created",
            "tenant_id": tenant_id,
            "work_items": [work_item_summary(item) for item in items],
        }
        try:
            if self._client is not None:
                response = self._client.post(self.config.url, json=body)
            else:
                with httpx.Client(timeout=self.config.timeout_seconds) as client:
                    response = client.post(self.config.url, json=body)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            log.warning("Webhook delivery to %s failed: %s", self.config.url, exc)
            return
        log.debug("Delivered %d work item(s) to %s", len(items), self.config.url)
