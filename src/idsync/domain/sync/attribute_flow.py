"""Inbound attribute flow: connected system object values onto metaverse objects."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from idsync.domain.model import (
    AttributeFlowMapping,
    MetaverseObjectAttributeValue,
    PendingChangeSet,
    ReferenceValue,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from uuid import UUID

    from idsync.domain.model import (
        AttributePayload,
        ConnectedSystemObject,
        ConnectedSystemObjectType,
        MetaverseObject,
    )

    type MetaverseIdLookup = Callable[[UUID], UUID | None]

log = logging.getLogger(__name__)


def is_reference_mapping(mapping: AttributeFlowMapping, object_type: ConnectedSystemObjectType) -> bool:
    for source in mapping.source_attributes:
        schema = object_type.attribute(source)
        if schema is not None and schema.data_type == ReferenceValue.DATA_TYPE:
            return True
    return False


def merge_mappings(mappings: Iterable[AttributeFlowMapping]) -> list[AttributeFlowMapping]:
    """Fold mappings that share a target attribute into one, keeping first-seen order.

    Each target attribute is then differenced once against the union of its sources.
    """

    merged: dict[str, AttributeFlowMapping] = {}
    for mapping in mappings:
        key = mapping.target_attribute.casefold()
        existing = merged.get(key)
        if existing is None:
            merged[key] = mapping
            continue
        sources = existing.source_attributes + tuple(
            source for source in mapping.source_attributes if source not in existing.source_attributes
        )
        merged[key] = AttributeFlowMapping(
            target_attribute=existing.target_attribute, source_attributes=sources
        )
    return list(merged.values())


class AttributeFlowProcessor:
    """Compute the changes one mapping implies for a metaverse object.

    The processor never mutates the metaverse object; it returns a
    ``PendingChangeSet`` for the caller to apply once per connected system object.
    ``metaverse_id_for`` maps a referenced connected system object id to the id of
    the metaverse object it is joined to. References that cannot be mapped yet are
    left out and the target attribute is listed in ``deferred``; the other values
    still flow.
    """

    def __init__(self, metaverse_id_for: MetaverseIdLookup) -> None:
        self._metaverse_id_for = metaverse_id_for

    def flow(
        self,
        cso: ConnectedSystemObject,
        object_type: ConnectedSystemObjectType,
        mapping: AttributeFlowMapping,
        mvo: MetaverseObject,
    ) -> PendingChangeSet:
        changes = PendingChangeSet()
        sources = [name for name in mapping.source_attributes if object_type.attribute(name)]
        if not sources:
            log.debug(
                "Mapping to %s has no known source on %s; nothing flows",
                mapping.target_attribute,
                object_type.name,
            )
            return changes

        desired, unmapped = self._desired_values(cso, sources)
        if unmapped:
            log.debug(
                "Deferring %d reference(s) in %s on %s: target not joined yet",
                unmapped,
                mapping.target_attribute,
                cso.external_id,
            )
            changes.deferred.append(mapping.target_attribute)

        current = mvo.values_for(mapping.target_attribute)
        current_payloads = [av.value for av in current]
        for payload in desired:
            if payload not in current_payloads:
                changes.additions.append(
                    MetaverseObjectAttributeValue(
                        attribute=mapping.target_attribute,
                        value=payload,
                        contributed_by_system_id=cso.connected_system_id,
                    )
                )
        for attribute_value in current:
            if (
                attribute_value.contributed_by_system_id == cso.connected_system_id
                and attribute_value.value not in desired
            ):
                changes.removals.append(attribute_value)
        return changes

    def _desired_values(
        self,
        cso: ConnectedSystemObject,
        sources: list[str],
    ) -> tuple[list[AttributePayload], int]:
        """Mapped values for ``sources`` plus the number of references that could not be mapped."""

        desired: list[AttributePayload] = []
        unmapped = 0
        for source in sources:
            for payload in cso.values_for(source):
                mapped = self._map_reference(payload) if isinstance(payload, ReferenceValue) else payload
                if mapped is None:
                    unmapped += 1
                elif mapped not in desired:
                    desired.append(mapped)
        return desired, unmapped

    def _map_reference(self, payload: ReferenceValue) -> ReferenceValue | None:
        if payload.target_id is None:
            return None
        metaverse_id = self._metaverse_id_for(payload.target_id)
        if metaverse_id is None:
            return None
        return ReferenceValue(target_id=metaverse_id)
