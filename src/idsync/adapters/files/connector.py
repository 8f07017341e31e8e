"""JSON-lines import connector: one exported object per line."""

from __future__ import annotations

import json
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError

from .schema import ImportRecordModel
from .translator import to_imported_object

if TYPE_CHECKING:
    from collections.abc import Iterator

    from idsync.domain.ports import ImportedObject


log = getLogger(__name__)


class ImportFileError(RuntimeError):
    """Raised when an import file cannot be read or a line is malformed."""

    def __init__(self, path: Path, line_number: int | None, message: str) -> None:
        location = f"{path}:{line_number}" if line_number is not None else str(path)
        super().__init__(f"{location}: {message}")
        self.path = path
        self.line_number = line_number


class JsonLinesImportConnector:
    """Reads a JSON-lines export file; blank lines and ``#`` comments are skipped.

    Records are parsed lazily so a failure half-way through surfaces during the
    run, which leaves the import uncommitted.
    """

    def __init__(self, path: Path | str, *, encoding: str = "utf-8") -> None:
        self.path = Path(path)
        self.encoding = encoding

    def __call__(self) -> Iterator[ImportedObject]:
        if not self.path.is_file():
            raise ImportFileError(self.path, None, "import file does not exist")
        log.info("Reading import records from %s", self.path)
        count = 0
        with self.path.open(encoding=self.encoding) as handle:
            for line_number, line in enumerate(handle, start=1):
                stripped = line.strip()
                if not stripped or stripped.startswith("#"):
                    continue
                yield self._parse_line(stripped, line_number)
                count += 1
        log.info("Read %d import record(s) from %s", count, self.path)

    def _parse_line(self, line: str, line_number: int) -> ImportedObject:
        try:
            record = ImportRecordModel.model_validate(json.loads(line))
        except json.JSONDecodeError as exc:
            raise ImportFileError(self.path, line_number, f"invalid JSON: {exc.msg}") from exc
        except ValidationError as exc:
            raise ImportFileError(self.path, line_number, str(exc)) from exc
        return to_imported_object(record)


if TYPE_CHECKING:
    from idsync.domain.ports import ImportConnector

    _connector_check: ImportConnector = JsonLinesImportConnector("records.jsonl")
