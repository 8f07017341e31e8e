"""Ports for persisting connected system objects, metaverse objects and run state."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime
    from uuid import UUID

    from idsync.domain.model import (
        AttributePayload,
        ConnectedSystemObject,
        MetaverseObject,
        PendingExport,
    )


@dataclass(slots=True, kw_only=True)
class PagedResult[T]:
    results: list[T] = field(default_factory=list["T"])
    page: int
    page_size: int
    total_results: int

    @property
    def total_pages(self) -> int:
        if self.total_results <= 0:
            return 0
        return -(-self.total_results // self.page_size)


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent store."""

    def add(self, entity: TEntity) -> None: ...

    def add_all(self, entities: Iterable[TEntity]) -> None: ...

    def delete_all(self, entities: Iterable[TEntity]) -> None: ...


@runtime_checkable
class ConnectedSystemObjectRepository(Repository["ConnectedSystemObject"], Protocol):
    def get(self, object_id: UUID) -> ConnectedSystemObject | None: ...

    def find_by_external_id(
        self,
        connected_system_id: int,
        object_type: str,
        external_id: str,
    ) -> ConnectedSystemObject | None:
        """Return the single matching object.

        More than one match violates the uniqueness invariant and raises
        ``DuplicateConnectedSystemObjectError``.
        """
        ...

    def find_by_external_id_any_type(
        self,
        connected_system_id: int,
        external_id: str,
    ) -> list[ConnectedSystemObject]: ...

    def list_for_system(
        self,
        connected_system_id: int,
        object_type: str | None = None,
    ) -> list[ConnectedSystemObject]: ...

    def list_with_unresolved_references(
        self,
        connected_system_id: int,
    ) -> list[ConnectedSystemObject]: ...

    def count_modified_since(self, connected_system_id: int, watermark: datetime) -> int: ...

    def get_modified_since(
        self,
        connected_system_id: int,
        watermark: datetime,
        page: int,
        page_size: int,
    ) -> PagedResult[ConnectedSystemObject]: ...


@runtime_checkable
class MetaverseObjectRepository(Repository["MetaverseObject"], Protocol):
    def get(self, object_id: UUID) -> MetaverseObject | None: ...

    def find_by_attribute_value(
        self,
        object_type: str,
        attribute: str,
        value: AttributePayload,
        *,
        case_sensitive: bool = True,
    ) -> list[MetaverseObject]: ...

    def list_eligible_for_deletion(self, now: datetime, limit: int) -> list[MetaverseObject]: ...


@runtime_checkable
class PendingExportRepository(Repository["PendingExport"], Protocol):
    def list_for_object(self, connected_system_object_id: UUID) -> list[PendingExport]: ...


@runtime_checkable
class WatermarkRepository(Protocol):
    def get(self, connected_system_id: int) -> datetime | None: ...

    def set(self, connected_system_id: int, completed_at: datetime) -> None: ...
