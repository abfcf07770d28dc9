"""Application configuration helpers."""

from __future__ import annotations

from .env import require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .lifecycle import LifecycleConfig, get_lifecycle_config
from .logging import configure_logging
from .notifications import WebhookConfig, get_webhook_config
from .server import ApiConfig, get_api_config
from .storage import (
    DatabaseConfig,
    StorageConfig,
    get_database_config,
    get_database_uri,
    get_storage_config,
)

__all__ = [
    "ApiConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "LifecycleConfig",
    "MissingConfigurationError",
    "StorageConfig",
    "WebhookConfig",
    "configure_logging",
    "get_api_config",
    "get_database_config",
    "get_database_uri",
    "get_lifecycle_config",
    "get_storage_config",
    "get_webhook_config",
    "require_env_vars",
]
