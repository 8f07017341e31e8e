"""Ports for pulling raw records out of connected systems."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from idsync.domain.model import ImportChangeType

if TYPE_CHECKING:
    from collections.abc import Iterable


@dataclass(slots=True, kw_only=True)
class ImportedAttribute:
    """A named attribute as delivered by a connector; values may contain ``None``."""

    name: str
    values: list[object] = field(default_factory=list[object])


@dataclass(slots=True, kw_only=True)
class ImportedObject:
    object_type: str
    change_type: ImportChangeType = ImportChangeType.ADD
    attributes: list[ImportedAttribute] = field(default_factory=list["ImportedAttribute"])


@runtime_checkable
class ImportConnector(Protocol):
    """Callable port yielding every object of a connected system.

    Errors raised while iterating propagate out of the run unchanged.
    """

    def __call__(self) -> Iterable[ImportedObject]: ...


__all__ = ["ImportConnector", "ImportedAttribute", "ImportedObject"]
