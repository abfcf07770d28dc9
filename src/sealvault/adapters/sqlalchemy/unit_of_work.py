"""SQLAlchemy-backed units of work."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from sealvault.adapters.sqlalchemy.mappings import start_mappers
from sealvault.adapters.sqlalchemy.migrations import upgrade_head
from sealvault.adapters.sqlalchemy.repositories import (
    SqlAlchemyAuditEventRepository,
    SqlAlchemyDecisionRepository,
    SqlAlchemyDraftRepository,
    SqlAlchemyEntityRepository,
    SqlAlchemyEvidenceRecordRepository,
    SqlAlchemyMappingSuggestionRepository,
    SqlAlchemySequenceRepository,
    SqlAlchemyWorkItemRepository,
)
from sealvault.config.storage import get_database_config
from sealvault.domain.errors import ConcurrentUpdateError
from sealvault.domain.ports.unit_of_work import EvidenceRepositories, RepositoryCollection

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when a SQLAlchemy unit of work is used outside its ``with`` block."""


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    migrate: bool = True,
) -> Engine:
    """Create (or adopt) an engine, configure mappers, and bring the schema to head."""

    resolved_engine = engine
    if resolved_engine is None:
        database = get_database_config(uri=database_uri)
        resolved_engine = create_engine(database.uri, **database.engine_options())
    start_mappers()
    if migrate:
        upgrade_head(engine=resolved_engine)
    log.info("Database ready at %s", resolved_engine.url.render_as_string(hide_password=True))
    return resolved_engine


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False)


class BaseSqlAlchemyUnitOfWork[TRepositories: RepositoryCollection](ABC):
    """Generic SQLAlchemy unit of work with pluggable repository collections."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self.session_factory = session_factory
        self._session: Session | None = None

    @abstractmethod
    def _build_repositories(self, session: Session) -> TRepositories: ...

    def __enter__(self) -> BaseSqlAlchemyUnitOfWork[TRepositories]:
        self.session = self.session_factory()
        self._repositories = self._build_repositories(self.session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if exc_type is not None:
            self.rollback()
        self.session.close()
        self.session = None
        return False

    def commit(self) -> None:
        try:
            self.session.commit()
        except StaleDataError as exc:
            self.session.rollback()
            raise ConcurrentUpdateError(
                "A concurrent writer changed the same entity; retry the operation"
            ) from exc

    def rollback(self) -> None:
        self.session.rollback()

    @property
    def repositories(self) -> TRepositories:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._repositories

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._session

    @session.setter
    def session(self, session: Session | None) -> None:
        if self._session is not None and session is not None:
            raise StartupError("Unit of work session already initialised")
        self._session = session


class SqlAlchemyUnitOfWork(BaseSqlAlchemyUnitOfWork[EvidenceRepositories]):
    """Unit of work managing SQLAlchemy sessions for the evidence lifecycle."""

    def _build_repositories(self, session: Session) -> EvidenceRepositories:
        return EvidenceRepositories(
            drafts=SqlAlchemyDraftRepository(session),
            evidence=SqlAlchemyEvidenceRecordRepository(session),
            audit_events=SqlAlchemyAuditEventRepository(session),
            work_items=SqlAlchemyWorkItemRepository(session),
            decisions=SqlAlchemyDecisionRepository(session),
            entities=SqlAlchemyEntityRepository(session),
            mapping_suggestions=SqlAlchemyMappingSuggestionRepository(session),
            sequences=SqlAlchemySequenceRepository(session),
        )


def unit_of_work_factory(engine: Engine) -> Callable[[], SqlAlchemyUnitOfWork]:
    """Return a factory producing fresh units of work bound to ``engine``."""

    session_factory = build_session_factory(engine)

    def factory() -> SqlAlchemyUnitOfWork:
        return SqlAlchemyUnitOfWork(session_factory)

    return factory


if TYPE_CHECKING:
    from sealvault.domain.ports.unit_of_work import EvidenceUnitOfWork

    _uow_check: EvidenceUnitOfWork = SqlAlchemyUnitOfWork(sessionmaker())
