"""Validate raw imported records against the object type schema and apply them to objects."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from idsync.domain.model import (
    ConnectedSystemObject,
    ImportChangeType,
    ReferenceValue,
    coerce_payload,
    payload_text,
)
from idsync.domain.sync.errors import (
    DuplicateImportedAttributesError,
    InvalidAttributeValueError,
    MissingExternalIdError,
    UnexpectedAttributeError,
    UnknownObjectTypeError,
)

if TYPE_CHECKING:
    from datetime import datetime

    from idsync.domain.model import (
        AttributePayload,
        ConnectedSystem,
        ConnectedSystemObjectAttributeValue,
        ConnectedSystemObjectType,
        SchemaAttribute,
    )
    from idsync.domain.ports import ImportedAttribute, ImportedObject

log = logging.getLogger(__name__)


@dataclass(slots=True, kw_only=True)
class NormalizedObject:
    """An imported record that passed schema validation.

    ``values`` holds only attributes present on the record, keyed by the schema
    attribute name. An empty list means the record explicitly cleared the attribute.
    """

    object_type: ConnectedSystemObjectType
    change_type: ImportChangeType
    external_id: str
    values: dict[str, list[AttributePayload]] = field(default_factory=dict[str, list["AttributePayload"]])


def normalize_imported_object(
    imported: ImportedObject,
    connected_system: ConnectedSystem,
) -> NormalizedObject:
    """Validate ``imported`` and convert its values to typed payloads.

    Raises a ``SyncObjectError`` subclass when the record cannot be used.
    """

    object_type = connected_system.object_type(imported.object_type)
    if object_type is None:
        raise UnknownObjectTypeError(
            f"Object type {imported.object_type!r} is not defined for "
            f"connected system {connected_system.name!r}",
            object_type=imported.object_type,
        )

    _check_duplicate_attributes(imported)

    values: dict[str, list[AttributePayload]] = {}
    for attribute in imported.attributes:
        schema = object_type.attribute(attribute.name)
        if schema is None:
            raise UnexpectedAttributeError(
                f"Attribute {attribute.name!r} is not part of object type {object_type.name!r}",
                object_type=object_type.name,
                attribute=attribute.name,
            )
        values[schema.name] = _coerce_values(attribute, schema, object_type)

    external_id_values = values.get(object_type.external_id_schema.name, [])
    if not external_id_values:
        raise MissingExternalIdError(
            f"Record of type {object_type.name!r} has no value for external id "
            f"attribute {object_type.external_id_attribute!r}",
            object_type=object_type.name,
            attribute=object_type.external_id_attribute,
        )

    return NormalizedObject(
        object_type=object_type,
        change_type=imported.change_type,
        external_id=payload_text(external_id_values[0]),
        values=values,
    )


def _check_duplicate_attributes(imported: ImportedObject) -> None:
    seen: set[str] = set()
    for attribute in imported.attributes:
        key = attribute.name.casefold()
        if key in seen:
            raise DuplicateImportedAttributesError(
                f"Attribute {attribute.name!r} appears more than once on a "
                f"{imported.object_type!r} record",
                object_type=imported.object_type,
                attribute=attribute.name,
            )
        seen.add(key)


def _coerce_values(
    attribute: ImportedAttribute,
    schema: SchemaAttribute,
    object_type: ConnectedSystemObjectType,
) -> list[AttributePayload]:
    payloads: list[AttributePayload] = []
    for raw in attribute.values:
        # null and empty entries mean "no value"; they are never stored
        if raw is None or raw == "":
            continue
        try:
            payload = coerce_payload(schema.data_type, raw)
        except (TypeError, ValueError) as exc:
            raise InvalidAttributeValueError(
                f"Value {raw!r} of attribute {schema.name!r} is not a valid {schema.data_type}",
                object_type=object_type.name,
                attribute=schema.name,
            ) from exc
        if payload not in payloads:
            payloads.append(payload)

    if len(payloads) > 1 and not schema.multi_valued:
        raise InvalidAttributeValueError(
            f"Single-valued attribute {schema.name!r} received {len(payloads)} values",
            object_type=object_type.name,
            attribute=schema.name,
        )
    return payloads


def create_connected_system_object(
    normalized: NormalizedObject,
    connected_system_id: int,
    now: datetime,
) -> ConnectedSystemObject:
    cso = ConnectedSystemObject(
        connected_system_id=connected_system_id,
        object_type=normalized.object_type.name,
        external_id_attribute=normalized.object_type.external_id_schema.name,
        external_id=normalized.external_id,
        created=now,
    )
    for attribute, payloads in normalized.values.items():
        for payload in payloads:
            cso.add_value(attribute, payload)
    return cso


def apply_to_connected_system_object(
    cso: ConnectedSystemObject,
    normalized: NormalizedObject,
    now: datetime,
) -> bool:
    """Bring ``cso`` in line with the imported values; returns whether anything changed.

    Attributes missing from the record are left alone. Reference values whose
    external id text did not change keep their existing resolution.
    """

    changed = False
    for attribute, payloads in normalized.values.items():
        existing = [av for av in cso.attribute_values if av.attribute.casefold() == attribute.casefold()]
        kept: list[ConnectedSystemObjectAttributeValue] = []
        for attribute_value in existing:
            if _find_equivalent(attribute_value.value, payloads) is None:
                cso.remove_value(attribute_value)
                changed = True
            else:
                kept.append(attribute_value)
        for payload in payloads:
            if any(_equivalent(av.value, payload) for av in kept):
                continue
            cso.add_value(attribute, payload)
            changed = True

    if changed:
        cso.touch(now)
        log.debug("Connected system object %s (%s) updated from import", cso.id, cso.external_id)
    return changed


def _equivalent(stored: AttributePayload, imported: AttributePayload) -> bool:
    if isinstance(stored, ReferenceValue) and isinstance(imported, ReferenceValue):
        return stored.unresolved_reference == imported.unresolved_reference
    return stored == imported


def _find_equivalent(
    stored: AttributePayload,
    imported: list[AttributePayload],
) -> AttributePayload | None:
    for payload in imported:
        if _equivalent(stored, payload):
            return payload
    return None
