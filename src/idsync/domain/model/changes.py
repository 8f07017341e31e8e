"""Staged metaverse attribute changes produced while processing one connected system object."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

    from idsync.domain.model.metaverse import MetaverseObject, MetaverseObjectAttributeValue


@dataclass(slots=True)
class PendingChangeSet:
    """Additions and removals staged for one metaverse object.

    The set is built per connected system object and applied in one step, so a
    metaverse object never carries half-applied changes between objects.
    """

    additions: list[MetaverseObjectAttributeValue] = field(
        default_factory=list["MetaverseObjectAttributeValue"]
    )
    removals: list[MetaverseObjectAttributeValue] = field(
        default_factory=list["MetaverseObjectAttributeValue"]
    )
    deferred: list[str] = field(default_factory=list[str])

    @property
    def is_empty(self) -> bool:
        return not self.additions and not self.removals

    def extend(self, other: PendingChangeSet) -> None:
        for addition in other.additions:
            if not self._stages(addition):
                self.additions.append(addition)
        for removal in other.removals:
            if removal not in self.removals:
                self.removals.append(removal)
        self.deferred.extend(other.deferred)

    def _stages(self, addition: MetaverseObjectAttributeValue) -> bool:
        wanted = addition.attribute.casefold()
        return any(
            staged.attribute.casefold() == wanted and staged.value == addition.value
            for staged in self.additions
        )

    def apply_to(self, metaverse_object: MetaverseObject, now: datetime) -> bool:
        """Drain the staged changes into ``metaverse_object``; returns whether anything changed."""

        if self.is_empty:
            return False
        for removal in self.removals:
            metaverse_object.remove_attribute_value(removal)
        for addition in self.additions:
            metaverse_object.add_attribute_value(addition)
        metaverse_object.last_updated = now
        self.additions.clear()
        self.removals.clear()
        return True
