"""Domain port definitions for adapters."""

from __future__ import annotations

from .connectors import ImportConnector, ImportedAttribute, ImportedObject
from .persistence import (
    ConnectedSystemObjectRepository,
    MetaverseObjectRepository,
    PagedResult,
    PendingExportRepository,
    Repository,
    WatermarkRepository,
)
from .unit_of_work import (
    RepositoryCollection,
    SyncRepositories,
    SyncUnitOfWork,
    UnitOfWork,
)

__all__ = [
    "ConnectedSystemObjectRepository",
    "ImportConnector",
    "ImportedAttribute",
    "ImportedObject",
    "MetaverseObjectRepository",
    "PagedResult",
    "PendingExportRepository",
    "Repository",
    "RepositoryCollection",
    "SyncRepositories",
    "SyncUnitOfWork",
    "UnitOfWork",
    "WatermarkRepository",
]
