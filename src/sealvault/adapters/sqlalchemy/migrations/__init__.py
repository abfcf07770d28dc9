"""Programmatic access to the packaged Alembic migrations."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Final

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory

from sealvault.config.storage import get_database_uri

MIGRATIONS_PATH: Final[Path] = Path(__file__).resolve().parent
FILE_TEMPLATE: Final[str] = "%%(rev)s_%%(slug)s"

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine


def build_config(database_uri: str | None = None) -> Config:
    """Alembic config for the scripts shipped inside the package.

    Works the same from a checkout and from an installed wheel; no ``alembic.ini``
    is read.
    """

    config = Config()
    config.set_main_option("script_location", str(MIGRATIONS_PATH))
    config.set_main_option("file_template", FILE_TEMPLATE)
    if database_uri is not None:
        config.set_main_option("sqlalchemy.url", database_uri)
    return config


def head_revision() -> str | None:
    return ScriptDirectory.from_config(build_config()).get_current_head()


def current_revision(engine: Engine) -> str | None:
    with engine.connect() as connection:
        return MigrationContext.configure(connection).get_current_revision()


def upgrade_head(*, engine: Engine | None = None, database_uri: str | None = None) -> None:
    """Upgrade the evidence schema to the latest revision.

    With an ``engine`` the upgrade shares one transaction with the caller's
    connection, which keeps in-memory SQLite databases intact.
    """

    if engine is None:
        command.upgrade(build_config(database_uri or get_database_uri()), "head")
        return
    config = build_config()
    with engine.begin() as connection:
        config.attributes["connection"] = connection
        command.upgrade(config, "head")
