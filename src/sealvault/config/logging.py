"""Root logger setup for the CLI and the API server."""

from __future__ import annotations

import logging
from typing import Final

from .env import optional_env_str
from .errors import ConfigurationError

LOG_FORMAT: Final[str] = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# chatty below WARNING; only shown when running at DEBUG
LIBRARY_LOGGERS: Final[tuple[str, ...]] = ("sqlalchemy.engine", "httpx", "alembic.runtime")


def resolve_log_level(level: int | None = None) -> int:
    """Explicit level, else ``SEALVAULT_LOG_LEVEL``, else INFO."""

    if level is not None:
        return level
    name = optional_env_str("SEALVAULT_LOG_LEVEL")
    if name is None:
        return logging.INFO
    resolved = logging.getLevelNamesMapping().get(name.upper())
    if resolved is None:
        raise ConfigurationError(f"SEALVAULT_LOG_LEVEL is not a log level: {name!r}")
    return resolved


def configure_logging(*, level: int | None = None, force: bool = False) -> int:
    """Initialise the root logger once and return the level in effect."""

    effective = resolve_log_level(level)
    logging.basicConfig(level=effective, format=LOG_FORMAT, datefmt="%H:%M:%S", force=force)
    library_level = logging.DEBUG if effective <= logging.DEBUG else logging.WARNING
    for name in LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)
    return effective
