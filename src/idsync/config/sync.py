"""Synchronization defaults for sync runs and housekeeping."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .env import positive_int_env_var, require_env_vars

DEFAULT_PAGE_SIZE = 500
DEFAULT_HOUSEKEEPING_BATCH_SIZE = 100


@dataclass(frozen=True, slots=True)
class SyncConfig:
    page_size: int = DEFAULT_PAGE_SIZE
    housekeeping_batch_size: int = DEFAULT_HOUSEKEEPING_BATCH_SIZE


def get_sync_config() -> SyncConfig:
    return SyncConfig(
        page_size=positive_int_env_var("IDSYNC_PAGE_SIZE", DEFAULT_PAGE_SIZE),
        housekeeping_batch_size=positive_int_env_var(
            "IDSYNC_HOUSEKEEPING_BATCH_SIZE", DEFAULT_HOUSEKEEPING_BATCH_SIZE
        ),
    )


def get_definitions_path() -> Path:
    """Location of the JSON definitions document (``IDSYNC_DEFINITIONS``)."""

    values = require_env_vars(("IDSYNC_DEFINITIONS",))
    return Path(values["IDSYNC_DEFINITIONS"]).expanduser()
