"""File-based adapters: JSON-lines import connector and definitions loader."""

from __future__ import annotations

from .connector import ImportFileError, JsonLinesImportConnector
from .definitions import load_definitions, parse_definitions
from .schema import DefinitionsDocument, ImportRecordModel
from .translator import DefinitionsError, to_imported_object, to_sync_definitions

__all__ = [
    "DefinitionsDocument",
    "DefinitionsError",
    "ImportFileError",
    "ImportRecordModel",
    "JsonLinesImportConnector",
    "load_definitions",
    "parse_definitions",
    "to_imported_object",
    "to_sync_definitions",
]
