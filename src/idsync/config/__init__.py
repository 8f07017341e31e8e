"""Application configuration helpers."""

from __future__ import annotations

from idsync.common.logging import configure_logging

from .database import DatabaseConfig, data_directory, get_database_config
from .env import positive_int_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .sync import SyncConfig, get_definitions_path, get_sync_config

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "MissingConfigurationError",
    "SyncConfig",
    "configure_logging",
    "data_directory",
    "get_database_config",
    "get_definitions_path",
    "get_sync_config",
    "positive_int_env_var",
    "require_env_vars",
]
