from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.pool import StaticPool

from sealvault.app import EvidenceServices, build_services
from sealvault.config import LifecycleConfig
from sealvault.domain.context import RequestScope
from tests.helpers.evidence import RecordingNotifier, TickingClock

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine(
        "sqlite+pysqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def file_engine(tmp_path: Path) -> Iterator[Engine]:
    """File-backed database for tests that use several threads."""

    engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'sealvault.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def services(
    sqlite_engine: Engine, clock: TickingClock, notifier: RecordingNotifier
) -> EvidenceServices:
    return build_services(
        engine=sqlite_engine, config=LifecycleConfig(), notifier=notifier, clock=clock
    )


@pytest.fixture
def file_services(
    file_engine: Engine, clock: TickingClock, notifier: RecordingNotifier
) -> EvidenceServices:
    return build_services(
        engine=file_engine, config=LifecycleConfig(), notifier=notifier, clock=clock
    )


@pytest.fixture
def scope() -> RequestScope:
    return RequestScope(tenant_id="tenant-a", actor="analyst@example.com")
