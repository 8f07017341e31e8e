"""SQLAlchemy adapter package for idsync."""

from __future__ import annotations

from .mappings import create_all_tables, mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyConnectedSystemObjectRepository,
    SqlAlchemyMetaverseObjectRepository,
    SqlAlchemyPendingExportRepository,
    SqlAlchemyWatermarkRepository,
)
from .unit_of_work import (
    SqlAlchemySyncUnitOfWork,
    StartupError,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyConnectedSystemObjectRepository",
    "SqlAlchemyMetaverseObjectRepository",
    "SqlAlchemyPendingExportRepository",
    "SqlAlchemySyncUnitOfWork",
    "SqlAlchemyWatermarkRepository",
    "StartupError",
    "create_all_tables",
    "is_started",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
