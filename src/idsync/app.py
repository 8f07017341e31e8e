"""Application orchestration entry points."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from idsync.adapters.files import JsonLinesImportConnector, load_definitions
from idsync.adapters.sqlalchemy.unit_of_work import SqlAlchemySyncUnitOfWork, is_started, startup
from idsync.config import get_definitions_path, get_sync_config
from idsync.domain.model import RunProfile, RunType
from idsync.domain.sync import (
    CancellationSignal,
    perform_delta_sync,
    perform_full_import,
    perform_full_sync,
)
from idsync.domain.sync import run_housekeeping as run_domain_housekeeping

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from idsync.domain.model import Activity, SyncDefinitions
    from idsync.domain.ports import ImportConnector, SyncUnitOfWork

    type UnitOfWorkFactory = Callable[[], SyncUnitOfWork]


log = getLogger(__name__)


def _prepare(
    definitions: SyncDefinitions | None,
    definitions_path: Path | None,
    unit_of_work_factory: UnitOfWorkFactory | None,
) -> tuple[SyncDefinitions, UnitOfWorkFactory]:
    if unit_of_work_factory is None:
        if not is_started():
            startup()
        unit_of_work_factory = SqlAlchemySyncUnitOfWork
    if definitions is None:
        definitions = load_definitions(definitions_path or get_definitions_path())
    return definitions, unit_of_work_factory


def _profile(system_id: int, run_type: RunType, page_size: int | None) -> RunProfile:
    return RunProfile(
        connected_system_id=system_id,
        run_type=run_type,
        page_size=page_size or get_sync_config().page_size,
    )


def run_full_import(  # noqa: PLR0913
    system_id: int,
    records_path: Path | None = None,
    *,
    connector: ImportConnector | None = None,
    definitions: SyncDefinitions | None = None,
    definitions_path: Path | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    page_size: int | None = None,
    cancellation: CancellationSignal | None = None,
) -> Activity:
    """Import a connected system's objects from a JSON-lines file (or a given connector)."""

    if connector is None:
        if records_path is None:
            raise ValueError("A records file or a connector is required for a full import")
        connector = JsonLinesImportConnector(records_path)
    effective_definitions, effective_uow = _prepare(
        definitions, definitions_path, unit_of_work_factory
    )
    profile = _profile(system_id, RunType.FULL_IMPORT, page_size)
    log.info("Starting full import: system=%s, page_size=%s", system_id, profile.page_size)
    return perform_full_import(
        effective_uow,
        effective_definitions,
        profile,
        connector,
        cancellation or CancellationSignal(),
    )


def run_full_sync(
    system_id: int,
    *,
    definitions: SyncDefinitions | None = None,
    definitions_path: Path | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    page_size: int | None = None,
    cancellation: CancellationSignal | None = None,
) -> Activity:
    """Synchronise every object of a connected system into the metaverse."""

    effective_definitions, effective_uow = _prepare(
        definitions, definitions_path, unit_of_work_factory
    )
    profile = _profile(system_id, RunType.FULL_SYNC, page_size)
    log.info("Starting full sync: system=%s, page_size=%s", system_id, profile.page_size)
    return perform_full_sync(
        effective_uow, effective_definitions, profile, cancellation or CancellationSignal()
    )


def run_delta_sync(
    system_id: int,
    *,
    definitions: SyncDefinitions | None = None,
    definitions_path: Path | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    page_size: int | None = None,
    cancellation: CancellationSignal | None = None,
) -> Activity:
    """Synchronise objects changed since the connected system's last completed sync."""

    effective_definitions, effective_uow = _prepare(
        definitions, definitions_path, unit_of_work_factory
    )
    profile = _profile(system_id, RunType.DELTA_SYNC, page_size)
    log.info("Starting delta sync: system=%s, page_size=%s", system_id, profile.page_size)
    return perform_delta_sync(
        effective_uow, effective_definitions, profile, cancellation or CancellationSignal()
    )


def run_housekeeping(
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    batch_size: int | None = None,
) -> int:
    """Delete metaverse objects whose deletion grace period has passed."""

    if unit_of_work_factory is None:
        if not is_started():
            startup()
        unit_of_work_factory = SqlAlchemySyncUnitOfWork
    effective_batch_size = batch_size or get_sync_config().housekeeping_batch_size
    deleted = run_domain_housekeeping(unit_of_work_factory, batch_size=effective_batch_size)
    log.info("Housekeeping deleted %d metaverse object(s)", deleted)
    return deleted
