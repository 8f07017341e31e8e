"""Load sync definitions from a JSON document."""

from __future__ import annotations

from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError

from .schema import DefinitionsDocument
from .translator import DefinitionsError, to_sync_definitions

if TYPE_CHECKING:
    from idsync.domain.model import SyncDefinitions


log = getLogger(__name__)


def parse_definitions(raw: str | bytes) -> SyncDefinitions:
    try:
        document = DefinitionsDocument.model_validate_json(raw)
    except ValidationError as exc:
        raise DefinitionsError(f"Invalid definitions document: {exc}") from exc
    return to_sync_definitions(document)


def load_definitions(path: Path | str) -> SyncDefinitions:
    definitions_path = Path(path)
    log.info("Loading sync definitions from %s", definitions_path)
    try:
        raw = definitions_path.read_bytes()
    except OSError as exc:
        raise DefinitionsError(f"Cannot read definitions file {definitions_path}: {exc}") from exc
    return parse_definitions(raw)
