"""Location of the sync store.

``DATABASE_URI`` wins when set. Otherwise the store is a SQLite file inside the
idsync data directory, which is ``IDSYNC_DATA_DIR`` or the platform's per-user
data location.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DATABASE_FILENAME = "idsync.db"


def data_directory() -> Path:
    configured = os.getenv("IDSYNC_DATA_DIR", "").strip()
    if configured:
        return Path(configured).expanduser().resolve()
    if os.name == "nt":
        root = os.getenv("LOCALAPPDATA") or str(Path.home() / "AppData" / "Local")
    else:
        root = os.getenv("XDG_DATA_HOME") or str(Path.home() / ".local" / "share")
    return (Path(root) / "idsync").expanduser().resolve()


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str

    @classmethod
    def sqlite_file(cls, directory: Path, filename: str = DATABASE_FILENAME) -> DatabaseConfig:
        """SQLite store in ``directory``, which is created if missing."""

        directory = directory.expanduser().resolve()
        directory.mkdir(parents=True, exist_ok=True)
        return cls(uri=f"sqlite+pysqlite:///{directory / filename}")


def get_database_config() -> DatabaseConfig:
    uri = os.getenv("DATABASE_URI", "").strip()
    if uri:
        return DatabaseConfig(uri=uri)
    return DatabaseConfig.sqlite_file(data_directory())
