"""Outbound notification settings."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_float, optional_env_str

DEFAULT_WEBHOOK_TIMEOUT_SECONDS = 5.0


@dataclass(frozen=True, slots=True)
class WebhookConfig:
    url: str
    timeout_seconds: float = DEFAULT_WEBHOOK_TIMEOUT_SECONDS


def get_webhook_config() -> WebhookConfig | None:
    """Return webhook settings, or ``None`` when no endpoint is configured."""

    url = optional_env_str("SEALVAULT_WEBHOOK_URL")
    if url is None:
        return None
    return WebhookConfig(
        url=url,
        timeout_seconds=env_float("SEALVAULT_WEBHOOK_TIMEOUT", DEFAULT_WEBHOOK_TIMEOUT_SECONDS),
    )
