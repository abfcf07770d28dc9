"""Where the evidence database lives and how engines connect to it."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final

from .env import env_float, optional_env_str

APP_DIR_NAME: Final[str] = "sealvault"
DEFAULT_DB_FILENAME: Final[str] = "sealvault.db"
DEFAULT_SQLITE_TIMEOUT_SECONDS: Final[float] = 30.0


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path
    database_filename: str = DEFAULT_DB_FILENAME

    def resolve_data_dir(self) -> Path:
        return self.data_dir.expanduser().resolve()

    def database_uri(self) -> str:
        data_dir = self.resolve_data_dir()
        data_dir.mkdir(parents=True, exist_ok=True)
        return f"sqlite+pysqlite:///{data_dir / self.database_filename}"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str
    sqlite_timeout_seconds: float = DEFAULT_SQLITE_TIMEOUT_SECONDS

    @property
    def is_sqlite(self) -> bool:
        return self.uri.startswith("sqlite")

    def engine_options(self) -> dict[str, Any]:
        """Keyword arguments for ``sqlalchemy.create_engine``."""

        if self.is_sqlite:
            # request and ingest threads share the pool; writers queue on the file lock
            return {
                "connect_args": {
                    "check_same_thread": False,
                    "timeout": self.sqlite_timeout_seconds,
                }
            }
        return {"pool_pre_ping": True}


def _default_data_dir() -> Path:
    if os.name == "nt":
        base = os.getenv("LOCALAPPDATA")
        base_path = Path(base) if base else (Path.home() / "AppData" / "Local")
    else:
        base = os.getenv("XDG_DATA_HOME")
        base_path = Path(base) if base else (Path.home() / ".local" / "share")
    return base_path / APP_DIR_NAME


def get_storage_config() -> StorageConfig:
    env_dir = optional_env_str("SEALVAULT_DATA_DIR")
    return StorageConfig(data_dir=Path(env_dir) if env_dir else _default_data_dir())


def get_database_config(
    *, uri: str | None = None, storage: StorageConfig | None = None
) -> DatabaseConfig:
    """Resolve the database: explicit ``uri``, then ``DATABASE_URI``, then the data dir."""

    resolved = uri or optional_env_str("DATABASE_URI")
    if resolved is None:
        resolved = (storage or get_storage_config()).database_uri()
    return DatabaseConfig(
        uri=resolved,
        sqlite_timeout_seconds=env_float(
            "SEALVAULT_SQLITE_TIMEOUT", DEFAULT_SQLITE_TIMEOUT_SECONDS
        ),
    )


def get_database_uri() -> str:
    return get_database_config().uri
