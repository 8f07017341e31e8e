"""Engine lifecycle and the unit of work sync runs use.

The adapter holds one engine per process. ``startup`` binds it and creates the
schema; every ``SqlAlchemySyncUnitOfWork`` opens its own session on that engine.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from idsync.adapters.sqlalchemy.mappings import create_all_tables, start_mappers
from idsync.adapters.sqlalchemy.repositories import (
    SqlAlchemyConnectedSystemObjectRepository,
    SqlAlchemyMetaverseObjectRepository,
    SqlAlchemyPendingExportRepository,
    SqlAlchemyWatermarkRepository,
)
from idsync.config import get_database_config
from idsync.domain.ports.unit_of_work import SyncRepositories

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when the adapter is used before ``startup`` or configured twice."""


_engine: Engine | None = None
_sessions: sessionmaker[Session] | None = None


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Bind the adapter to ``engine`` (or a new one for ``database_uri``) and create tables."""

    global _engine, _sessions  # noqa: PLW0603
    if _engine is not None and not force:
        raise StartupError("SQLAlchemy adapter already started; pass force=True to rebind")

    bound = engine or create_engine(database_uri or get_database_config().uri, future=True)
    start_mappers()
    create_all_tables(bound)
    _engine = bound
    _sessions = sessionmaker(bind=bound, expire_on_commit=False)
    log.debug("SQLAlchemy adapter bound to %s", bound.url.render_as_string(hide_password=True))


def configured_engine() -> Engine | None:
    return _engine


def is_started() -> bool:
    return _engine is not None


def shutdown() -> None:
    """Dispose the engine; the next unit of work needs another ``startup``."""

    global _engine, _sessions  # noqa: PLW0603
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _sessions = None


class SqlAlchemySyncUnitOfWork:
    """One session per ``with`` block; leaving it after an error rolls back."""

    def __init__(self) -> None:
        if _sessions is None:
            raise StartupError(
                "SQLAlchemy adapter not started. Call "
                "idsync.adapters.sqlalchemy.unit_of_work.startup() first."
            )
        self._session_factory = _sessions
        self._session: Session | None = None
        self._repositories: SyncRepositories | None = None

    def __enter__(self) -> SqlAlchemySyncUnitOfWork:
        if self._session is not None:
            raise StartupError("Unit of work is already open")
        session = self._session_factory()
        self._session = session
        self._repositories = SyncRepositories(
            connected_system_objects=SqlAlchemyConnectedSystemObjectRepository(session),
            metaverse_objects=SqlAlchemyMetaverseObjectRepository(session),
            pending_exports=SqlAlchemyPendingExportRepository(session),
            watermarks=SqlAlchemyWatermarkRepository(session),
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        session = self.session
        if exc_type is not None:
            session.rollback()
        session.close()
        self._session = None
        self._repositories = None
        return False

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work is not open")
        return self._session

    @property
    def repositories(self) -> SyncRepositories:
        if self._repositories is None:
            raise StartupError("Unit of work is not open")
        return self._repositories

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()


if TYPE_CHECKING:
    from idsync.domain.ports.unit_of_work import SyncUnitOfWork

    _uow_check: SyncUnitOfWork = SqlAlchemySyncUnitOfWork()
