"""HTTP server settings."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_int, optional_env_str

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000


@dataclass(frozen=True, slots=True)
class ApiConfig:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT


def get_api_config() -> ApiConfig:
    return ApiConfig(
        host=optional_env_str("SEALVAULT_HOST") or DEFAULT_HOST,
        port=env_int("SEALVAULT_PORT", DEFAULT_PORT),
    )
