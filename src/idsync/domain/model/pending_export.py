"""Outbound changes queued against connected system objects."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from idsync.domain.model.entity import Entity, utc_now
from idsync.domain.model.enums import PendingExportChangeType, PendingExportStatus

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from idsync.domain.model.enums import AttributeChangeType
    from idsync.domain.model.values import AttributePayload


@dataclass(eq=False, kw_only=True)
class PendingExportAttributeChange:
    attribute: str
    change_type: AttributeChangeType
    value: AttributePayload | None = None


@dataclass(eq=False, kw_only=True)
class PendingExport(Entity):
    connected_system_id: int
    connected_system_object_id: UUID | None
    change_type: PendingExportChangeType
    status: PendingExportStatus = PendingExportStatus.PENDING
    error_count: int = 0
    created: datetime = field(default_factory=utc_now)

    _attribute_changes: list[PendingExportAttributeChange] = field(
        default_factory=list["PendingExportAttributeChange"], repr=False
    )

    @property
    def attribute_changes(self) -> tuple[PendingExportAttributeChange, ...]:
        return tuple(self._attribute_changes)

    @property
    def awaiting_confirmation(self) -> bool:
        return self.status in {
            PendingExportStatus.EXPORTED,
            PendingExportStatus.EXPORT_NOT_IMPORTED,
        }

    def add_attribute_change(self, change: PendingExportAttributeChange) -> None:
        self._attribute_changes.append(change)

    def remove_attribute_change(self, change: PendingExportAttributeChange) -> None:
        self._attribute_changes.remove(change)

    def mark_exported(self) -> None:
        self.status = PendingExportStatus.EXPORTED

    def record_unconfirmed(self) -> None:
        """Mark the export for retry after an import that did not confirm all changes."""

        self.error_count += 1
        self.status = PendingExportStatus.EXPORT_NOT_IMPORTED
        if self.change_type is PendingExportChangeType.CREATE:
            # the object exists now; what is left is an update
            self.change_type = PendingExportChangeType.UPDATE
