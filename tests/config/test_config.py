from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from sealvault.config import (
    ConfigurationError,
    MissingConfigurationError,
    get_api_config,
    get_database_config,
    get_lifecycle_config,
    get_storage_config,
    get_webhook_config,
    require_env_vars,
)
from sealvault.config.lifecycle import LifecycleConfig
from sealvault.config.logging import resolve_log_level

if TYPE_CHECKING:
    from pathlib import Path


def test_require_env_vars_returns_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "value")

    assert require_env_vars(["EXAMPLE_VAR"]) == {"EXAMPLE_VAR": "value"}


def test_require_env_vars_lists_every_missing_name(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MISSING_B", raising=False)
    monkeypatch.setenv("MISSING_A", "   ")

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["MISSING_B", "MISSING_A"])

    assert "MISSING_A, MISSING_B" in str(exc.value)


def test_lifecycle_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "SEALVAULT_DEFAULT_OWNER",
        "SEALVAULT_LOCK_TIMEOUT_SECONDS",
        "SEALVAULT_INGEST_WORKERS",
    ):
        monkeypatch.delenv(name, raising=False)

    config = get_lifecycle_config()

    assert config == LifecycleConfig()
    assert config.cost_for("CRITICAL") == 15000
    assert config.cost_for("LOW") == 0
    assert config.sla_hours_for("LOW") == 120
    assert config.sla_hours_for("UNKNOWN") == config.default_sla_hours


def test_lifecycle_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SEALVAULT_DEFAULT_OWNER", "data-steward")
    monkeypatch.setenv("SEALVAULT_LOCK_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("SEALVAULT_INGEST_WORKERS", "8")

    config = get_lifecycle_config()

    assert config.default_owner == "data-steward"
    assert config.lock_timeout_seconds == 2.5
    assert config.ingest_workers == 8


def test_invalid_number_is_a_configuration_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SEALVAULT_INGEST_WORKERS", "many")

    with pytest.raises(ConfigurationError, match="SEALVAULT_INGEST_WORKERS"):
        get_lifecycle_config()


def test_webhook_is_optional(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("SEALVAULT_WEBHOOK_URL", raising=False)
    assert get_webhook_config() is None

    monkeypatch.setenv("SEALVAULT_WEBHOOK_URL", "https://hooks.example.com/x")
    monkeypatch.setenv("SEALVAULT_WEBHOOK_TIMEOUT", "1.5")
    webhook = get_webhook_config()

    assert webhook is not None
    assert webhook.url == "https://hooks.example.com/x"
    assert webhook.timeout_seconds == 1.5


def test_api_config(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SEALVAULT_HOST", "0.0.0.0")
    monkeypatch.setenv("SEALVAULT_PORT", "9000")

    api = get_api_config()

    assert (api.host, api.port) == ("0.0.0.0", 9000)


def test_database_uri_prefers_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URI", "postgresql+psycopg://db/sealvault")

    assert get_database_config().uri == "postgresql+psycopg://db/sealvault"


def test_database_uri_falls_back_to_data_dir(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.delenv("DATABASE_URI", raising=False)
    monkeypatch.setenv("SEALVAULT_DATA_DIR", str(tmp_path / "data"))

    uri = get_database_config().uri

    assert uri == f"sqlite+pysqlite:///{(tmp_path / 'data').resolve() / 'sealvault.db'}"
    assert get_storage_config().resolve_data_dir().is_dir()


def test_sqlite_engines_share_connections_across_threads() -> None:
    options = get_database_config(uri="sqlite+pysqlite:///evidence.db").engine_options()

    assert options["connect_args"]["check_same_thread"] is False
    assert get_database_config(uri="postgresql+psycopg://db/x").engine_options() == {
        "pool_pre_ping": True
    }


def test_log_level_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SEALVAULT_LOG_LEVEL", "warning")
    assert resolve_log_level() == logging.WARNING
    assert resolve_log_level(logging.DEBUG) == logging.DEBUG

    monkeypatch.setenv("SEALVAULT_LOG_LEVEL", "chatty")
    with pytest.raises(ConfigurationError, match="SEALVAULT_LOG_LEVEL"):
        resolve_log_level()
