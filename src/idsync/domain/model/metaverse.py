"""Metaverse (aggregate) objects: one per real-world entity across connected systems."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from idsync.domain.model.entity import Entity, utc_now
from idsync.domain.model.enums import DeletionRule, MetaverseObjectOrigin

if TYPE_CHECKING:
    from datetime import datetime

    from idsync.domain.model.connected_system import ConnectedSystemObject
    from idsync.domain.model.values import AttributePayload


@dataclass(eq=False, kw_only=True)
class MetaverseObjectType:
    name: str
    deletion_rule: DeletionRule = DeletionRule.MANUAL
    deletion_grace_period_days: int | None = None
    # connected systems whose disconnect alone marks an object for deletion
    deletion_trigger_connected_system_ids: frozenset[int] = frozenset()


@dataclass(eq=False, kw_only=True)
class MetaverseObjectAttributeValue:
    """A stored value plus the connected system that contributed it (``None`` = internal)."""

    attribute: str
    value: AttributePayload
    contributed_by_system_id: int | None = None


@dataclass(eq=False, kw_only=True)
class MetaverseObject(Entity):
    object_type: str
    origin: MetaverseObjectOrigin = MetaverseObjectOrigin.PROJECTED
    created: datetime = field(default_factory=utc_now)
    last_updated: datetime | None = None
    last_connector_disconnected_date: datetime | None = None
    deletion_eligible_date: datetime | None = None
    # set when an authoritative source triggered deletion while other connectors remain
    deletion_triggered_by_system_id: int | None = None

    _attribute_values: list[MetaverseObjectAttributeValue] = field(
        default_factory=list["MetaverseObjectAttributeValue"], repr=False
    )
    # Bidirectional view; owned by ConnectedSystemObject.join_to / disconnect
    _connected_system_objects: list[ConnectedSystemObject] = field(
        default_factory=list["ConnectedSystemObject"], repr=False
    )

    @property
    def attribute_values(self) -> tuple[MetaverseObjectAttributeValue, ...]:
        return tuple(self._attribute_values)

    @property
    def connected_system_objects(self) -> tuple[ConnectedSystemObject, ...]:
        return tuple(self._connected_system_objects)

    @property
    def has_pending_disconnect(self) -> bool:
        return self.last_connector_disconnected_date is not None

    def values_for(self, attribute: str) -> list[MetaverseObjectAttributeValue]:
        wanted = attribute.casefold()
        return [av for av in self._attribute_values if av.attribute.casefold() == wanted]

    def connector_from(self, connected_system_id: int) -> ConnectedSystemObject | None:
        for cso in self._connected_system_objects:
            if cso.connected_system_id == connected_system_id:
                return cso
        return None

    def add_attribute_value(self, attribute_value: MetaverseObjectAttributeValue) -> None:
        self._attribute_values.append(attribute_value)

    def remove_attribute_value(self, attribute_value: MetaverseObjectAttributeValue) -> None:
        if attribute_value in self._attribute_values:
            self._attribute_values.remove(attribute_value)

    def record_last_connector_disconnected(
        self,
        now: datetime,
        deletion_eligible_date: datetime | None,
        *,
        triggered_by_system_id: int | None = None,
    ) -> None:
        self.last_connector_disconnected_date = now
        self.deletion_eligible_date = deletion_eligible_date
        self.deletion_triggered_by_system_id = triggered_by_system_id
        self.last_updated = now

    def clear_pending_disconnect(self) -> None:
        self.last_connector_disconnected_date = None
        self.deletion_eligible_date = None
        self.deletion_triggered_by_system_id = None

    # Friend primitives (called only by ConnectedSystemObject)
    def _attach_connected_system_object(self, cso: ConnectedSystemObject) -> None:
        if cso not in self._connected_system_objects:
            self._connected_system_objects.append(cso)

    def _detach_connected_system_object(self, cso: ConnectedSystemObject) -> None:
        if cso in self._connected_system_objects:
            self._connected_system_objects.remove(cso)
