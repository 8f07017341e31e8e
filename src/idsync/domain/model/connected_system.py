"""Connected systems, their object schema, and the objects observed in them."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from idsync.domain.model.entity import Entity, utc_now
from idsync.domain.model.enums import (
    AttributeDataType,
    ConnectedSystemObjectStatus,
    JoinType,
)

if TYPE_CHECKING:
    from datetime import datetime

    from idsync.domain.model.metaverse import MetaverseObject
    from idsync.domain.model.values import AttributePayload


@dataclass(frozen=True, slots=True, kw_only=True)
class SchemaAttribute:
    name: str
    data_type: AttributeDataType
    multi_valued: bool = False


@dataclass(eq=False, kw_only=True)
class ConnectedSystemObjectType:
    """Schema of one object type exposed by a connected system."""

    name: str
    attributes: list[SchemaAttribute] = field(default_factory=list["SchemaAttribute"])
    external_id_attribute: str
    remove_contributed_attributes_on_obsoletion: bool = False

    def attribute(self, name: str) -> SchemaAttribute | None:
        wanted = name.casefold()
        for attribute in self.attributes:
            if attribute.name.casefold() == wanted:
                return attribute
        return None

    @property
    def external_id_schema(self) -> SchemaAttribute:
        attribute = self.attribute(self.external_id_attribute)
        if attribute is None:
            raise ValueError(
                f"External id attribute {self.external_id_attribute!r} "
                f"is not part of object type {self.name!r}"
            )
        return attribute


@dataclass(eq=False, kw_only=True)
class ConnectedSystem:
    id: int
    name: str
    object_types: list[ConnectedSystemObjectType] = field(
        default_factory=list["ConnectedSystemObjectType"]
    )

    def object_type(self, name: str) -> ConnectedSystemObjectType | None:
        wanted = name.casefold()
        for object_type in self.object_types:
            if object_type.name.casefold() == wanted:
                return object_type
        return None


@dataclass(eq=False, kw_only=True)
class ConnectedSystemObjectAttributeValue:
    """One value of one attribute; multi-valued attributes hold several of these."""

    attribute: str
    value: AttributePayload


@dataclass(eq=False, kw_only=True)
class ConnectedSystemObject(Entity):
    """A record as observed in one connected system.

    ``last_updated`` is stamped by every mutating method, which is what the delta
    watermark relies on. Obsoletion goes through ``mark_obsolete`` only.
    """

    connected_system_id: int
    object_type: str
    external_id_attribute: str
    external_id: str
    status: ConnectedSystemObjectStatus = ConnectedSystemObjectStatus.NORMAL
    join_type: JoinType = JoinType.NOT_JOINED
    date_joined: datetime | None = None
    created: datetime = field(default_factory=utc_now)
    last_updated: datetime | None = None

    _metaverse_object: MetaverseObject | None = field(default=None, repr=False)
    _attribute_values: list[ConnectedSystemObjectAttributeValue] = field(
        default_factory=list["ConnectedSystemObjectAttributeValue"], repr=False
    )

    # Read views

    @property
    def metaverse_object(self) -> MetaverseObject | None:
        return self._metaverse_object

    @property
    def is_joined(self) -> bool:
        return self._metaverse_object is not None

    @property
    def is_obsolete(self) -> bool:
        return self.status is ConnectedSystemObjectStatus.OBSOLETE

    @property
    def attribute_values(self) -> tuple[ConnectedSystemObjectAttributeValue, ...]:
        return tuple(self._attribute_values)

    def values_for(self, attribute: str) -> list[AttributePayload]:
        wanted = attribute.casefold()
        return [av.value for av in self._attribute_values if av.attribute.casefold() == wanted]

    def first_value(self, attribute: str) -> AttributePayload | None:
        values = self.values_for(attribute)
        return values[0] if values else None

    # Commands

    def touch(self, now: datetime) -> None:
        self.last_updated = now

    def add_value(self, attribute: str, value: AttributePayload) -> ConnectedSystemObjectAttributeValue:
        attribute_value = ConnectedSystemObjectAttributeValue(attribute=attribute, value=value)
        self._attribute_values.append(attribute_value)
        return attribute_value

    def remove_value(self, attribute_value: ConnectedSystemObjectAttributeValue) -> None:
        self._attribute_values.remove(attribute_value)

    def replace_value(
        self,
        attribute_value: ConnectedSystemObjectAttributeValue,
        value: AttributePayload,
    ) -> None:
        attribute_value.value = value

    def mark_obsolete(self, now: datetime) -> None:
        """Obsolete the object; always stamps ``last_updated``."""

        self.status = ConnectedSystemObjectStatus.OBSOLETE
        self.touch(now)

    def restore(self, now: datetime) -> None:
        if self.status is not ConnectedSystemObjectStatus.NORMAL:
            self.status = ConnectedSystemObjectStatus.NORMAL
            self.touch(now)

    def join_to(self, metaverse_object: MetaverseObject, join_type: JoinType, now: datetime) -> None:
        self._metaverse_object = metaverse_object
        metaverse_object._attach_connected_system_object(self)  # noqa: SLF001
        self.join_type = join_type
        self.date_joined = now
        self.touch(now)

    def disconnect(self, now: datetime) -> MetaverseObject | None:
        """Break the join; returns the metaverse object that lost this connector."""

        metaverse_object = self._metaverse_object
        if metaverse_object is None:
            return None
        self._metaverse_object = None
        metaverse_object._detach_connected_system_object(self)  # noqa: SLF001
        self.join_type = JoinType.NOT_JOINED
        self.date_joined = None
        self.touch(now)
        return metaverse_object
