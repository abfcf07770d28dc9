from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import Any

import httpx
import pytest

from sealvault.adapters.notifications import (
    LoggingWorkItemNotifier,
    WebhookWorkItemNotifier,
    work_item_summary,
)
from sealvault.config import WebhookConfig
from sealvault.domain.context import ServiceContext
from sealvault.domain.model import EntityType, Priority, WorkItem, WorkItemStatus, WorkItemType

WEBHOOK = WebhookConfig(url="https://hooks.example.com/sealvault")


def _item() -> WorkItem:
    return WorkItem(
        tenant_id="tenant-a",
        work_item_id="WI-0001",
        type=WorkItemType.BLOCKED,
        status=WorkItemStatus.BLOCKED,
        priority=Priority.CRITICAL,
        title="Missing installation data for CBAM calculation",
        sla_due_at=datetime(2026, 1, 16, 9, 0, tzinfo=UTC),
        linked_entity_type=EntityType.SUPPLIER,
        linked_entity_id="SUP-001",
        linked_evidence_record_ids=["record-1"],
        owner="system-default",
    )


def test_summary_is_json_ready() -> None:
    summary = work_item_summary(_item())

    assert summary["linked_entity"] == {"entity_type": "SUPPLIER", "entity_id": "SUP-001"}
    assert summary["sla_due_at"] == "2026-01-16T09:00:00+00:00"
    json.dumps(summary)


def test_webhook_posts_created_items() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(202)

    client = httpx.Client(transport=httpx.MockTransport(handler))
    WebhookWorkItemNotifier(WEBHOOK, client=client).work_items_created("tenant-a", [_item()])

    assert len(requests) == 1
    assert str(requests[0].url) == WEBHOOK.url
    body = json.loads(requests[0].content)
    assert body["event"] == "work_items.created"
    assert body["tenant_id"] == "tenant-a"
    assert [item["work_item_id"] for item in body["work_items"]] == ["WI-0001"]


def test_webhook_failure_is_logged_not_raised(caplog: pytest.LogCaptureFixture) -> None:
    client = httpx.Client(transport=httpx.MockTransport(lambda _: httpx.Response(503)))
    notifier = WebhookWorkItemNotifier(WEBHOOK, client=client)

    with caplog.at_level(logging.WARNING, logger="sealvault.adapters.notifications"):
        notifier.work_items_created("tenant-a", [_item()])

    assert "Webhook delivery" in caplog.text


def test_logging_notifier_logs_each_item(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="sealvault.adapters.notifications"):
        LoggingWorkItemNotifier().work_items_created("tenant-a", [_item()])

    assert "WI-0001" in caplog.text


def test_context_swallows_notifier_errors(caplog: pytest.LogCaptureFixture) -> None:
    class Broken:
        def work_items_created(self, tenant_id: str, items: object) -> None:
            raise RuntimeError("smtp down")

    def no_uow() -> object:
        raise AssertionError("not used")

    broken: Any = Broken()
    context = ServiceContext(unit_of_work_factory=no_uow, notifier=broken)

    with caplog.at_level(logging.ERROR, logger="sealvault.domain.context"):
        context.notify_created("tenant-a", [_item()])

    assert "notification failed" in caplog.text
