"""Typed attribute payloads.

Each payload class carries exactly one typed slot, so a value can never hold data
for a type other than the one it declares. The union ``AttributePayload`` is what
source-side and aggregate-side attribute values store.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, ClassVar
from uuid import UUID

from idsync.domain.model.enums import AttributeDataType

if TYPE_CHECKING:
    from collections.abc import Callable


type PayloadColumns = tuple[
    AttributeDataType | None,
    str | None,
    int | None,
    datetime | None,
    bool | None,
    UUID | None,
    bytes | None,
    str | None,
    UUID | None,
]

_EMPTY_SLOTS = (None, None, None, None, None, None, None, None)


def _ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


@dataclass(frozen=True, slots=True)
class TextValue:
    DATA_TYPE: ClassVar[AttributeDataType] = AttributeDataType.TEXT

    value: str

    def __composite_values__(self) -> PayloadColumns:
        """For SQLAlchemy composite columns (adapter-side convenience)."""
        return (self.DATA_TYPE, self.value, *_EMPTY_SLOTS[1:])


@dataclass(frozen=True, slots=True)
class NumberValue:
    DATA_TYPE: ClassVar[AttributeDataType] = AttributeDataType.NUMBER

    value: int

    def __composite_values__(self) -> PayloadColumns:
        return (self.DATA_TYPE, None, self.value, None, None, None, None, None, None)


@dataclass(frozen=True, slots=True)
class DateTimeValue:
    DATA_TYPE: ClassVar[AttributeDataType] = AttributeDataType.DATETIME

    value: datetime

    def __post_init__(self) -> None:
        # naive timestamps are treated as UTC so equality is stable across storage
        object.__setattr__(self, "value", _ensure_utc(self.value))

    def __composite_values__(self) -> PayloadColumns:
        return (self.DATA_TYPE, None, None, self.value, None, None, None, None, None)


@dataclass(frozen=True, slots=True)
class BooleanValue:
    DATA_TYPE: ClassVar[AttributeDataType] = AttributeDataType.BOOLEAN

    value: bool

    def __composite_values__(self) -> PayloadColumns:
        return (self.DATA_TYPE, None, None, None, self.value, None, None, None, None)


@dataclass(frozen=True, slots=True)
class GuidValue:
    DATA_TYPE: ClassVar[AttributeDataType] = AttributeDataType.GUID

    value: UUID

    def __composite_values__(self) -> PayloadColumns:
        return (self.DATA_TYPE, None, None, None, None, self.value, None, None, None)


@dataclass(frozen=True, slots=True)
class BinaryValue:
    DATA_TYPE: ClassVar[AttributeDataType] = AttributeDataType.BINARY

    value: bytes

    def __composite_values__(self) -> PayloadColumns:
        return (self.DATA_TYPE, None, None, None, None, None, self.value, None, None)


@dataclass(frozen=True, slots=True)
class ReferenceValue:
    """Reference to another object.

    On connected system objects ``unresolved_reference`` holds the external id text
    as imported and ``target_id`` the referenced CSO once resolved; both stay set
    together after resolution. On metaverse objects only ``target_id`` is used and
    points at another metaverse object.
    """

    DATA_TYPE: ClassVar[AttributeDataType] = AttributeDataType.REFERENCE

    unresolved_reference: str | None = None
    target_id: UUID | None = None

    def __post_init__(self) -> None:
        if self.unresolved_reference is None and self.target_id is None:
            raise ValueError("ReferenceValue requires an unresolved reference or a target id")

    @property
    def is_resolved(self) -> bool:
        return self.target_id is not None

    def resolved_to(self, target_id: UUID) -> ReferenceValue:
        return ReferenceValue(unresolved_reference=self.unresolved_reference, target_id=target_id)

    def __composite_values__(self) -> PayloadColumns:
        return (
            self.DATA_TYPE,
            None,
            None,
            None,
            None,
            None,
            None,
            self.unresolved_reference,
            self.target_id,
        )


type AttributePayload = (
    TextValue | NumberValue | DateTimeValue | BooleanValue | GuidValue | BinaryValue | ReferenceValue
)


def payload_from_columns(  # noqa: PLR0913
    data_type: AttributeDataType | None,
    text: str | None,
    number: int | None,
    timestamp: datetime | None,
    flag: bool | None,
    guid: UUID | None,
    binary: bytes | None,
    unresolved_reference: str | None,
    target_id: UUID | None,
) -> AttributePayload | None:
    """Rebuild a payload from its storage columns (``None`` when nothing is stored)."""

    if data_type is None:
        return None
    match AttributeDataType(data_type):
        case AttributeDataType.TEXT if text is not None:
            return TextValue(text)
        case AttributeDataType.NUMBER if number is not None:
            return NumberValue(number)
        case AttributeDataType.DATETIME if timestamp is not None:
            return DateTimeValue(timestamp)
        case AttributeDataType.BOOLEAN if flag is not None:
            return BooleanValue(flag)
        case AttributeDataType.GUID if guid is not None:
            return GuidValue(guid)
        case AttributeDataType.BINARY if binary is not None:
            return BinaryValue(bytes(binary))
        case AttributeDataType.REFERENCE if unresolved_reference is not None or target_id is not None:
            return ReferenceValue(unresolved_reference=unresolved_reference, target_id=target_id)
        case _:
            raise ValueError(f"Stored {data_type} value is missing its payload")


def _coerce_text(raw: object) -> TextValue:
    if isinstance(raw, str):
        return TextValue(raw)
    if isinstance(raw, (int, float, bool, UUID)):
        return TextValue(str(raw))
    raise TypeError(f"cannot use {type(raw).__name__} as text")


def _coerce_number(raw: object) -> NumberValue:
    if isinstance(raw, bool):
        raise TypeError("booleans are not numbers")
    if isinstance(raw, int):
        return NumberValue(raw)
    if isinstance(raw, float) and raw.is_integer():
        return NumberValue(int(raw))
    if isinstance(raw, str):
        return NumberValue(int(raw.strip()))
    raise TypeError(f"cannot use {type(raw).__name__} as number")


def _coerce_datetime(raw: object) -> DateTimeValue:
    if isinstance(raw, datetime):
        return DateTimeValue(raw)
    if isinstance(raw, str):
        normalized = raw.strip()
        if normalized.endswith("Z"):
            normalized = normalized[:-1] + "+00:00"
        return DateTimeValue(datetime.fromisoformat(normalized))
    raise TypeError(f"cannot use {type(raw).__name__} as datetime")


def _coerce_boolean(raw: object) -> BooleanValue:
    if isinstance(raw, bool):
        return BooleanValue(raw)
    if isinstance(raw, str):
        lowered = raw.strip().lower()
        if lowered in {"true", "1", "yes"}:
            return BooleanValue(True)  # noqa: FBT003
        if lowered in {"false", "0", "no"}:
            return BooleanValue(False)  # noqa: FBT003
        raise ValueError(f"not a boolean: {raw!r}")
    raise TypeError(f"cannot use {type(raw).__name__} as boolean")


def _coerce_guid(raw: object) -> GuidValue:
    if isinstance(raw, UUID):
        return GuidValue(raw)
    if isinstance(raw, str):
        return GuidValue(UUID(raw.strip()))
    raise TypeError(f"cannot use {type(raw).__name__} as guid")


def _coerce_binary(raw: object) -> BinaryValue:
    if isinstance(raw, (bytes, bytearray)):
        return BinaryValue(bytes(raw))
    if isinstance(raw, str):
        return BinaryValue(base64.b64decode(raw, validate=True))
    raise TypeError(f"cannot use {type(raw).__name__} as binary")


def _coerce_reference(raw: object) -> ReferenceValue:
    if isinstance(raw, (str, int, UUID)) and not isinstance(raw, bool):
        return ReferenceValue(unresolved_reference=str(raw))
    raise TypeError(f"cannot use {type(raw).__name__} as reference")


_COERCERS: dict[AttributeDataType, Callable[[object], AttributePayload]] = {
    AttributeDataType.TEXT: _coerce_text,
    AttributeDataType.NUMBER: _coerce_number,
    AttributeDataType.DATETIME: _coerce_datetime,
    AttributeDataType.BOOLEAN: _coerce_boolean,
    AttributeDataType.GUID: _coerce_guid,
    AttributeDataType.BINARY: _coerce_binary,
    AttributeDataType.REFERENCE: _coerce_reference,
}


def coerce_payload(data_type: AttributeDataType, raw: object) -> AttributePayload:
    """Convert a raw connector value into the payload for ``data_type``.

    Raises ``ValueError`` or ``TypeError`` when the raw value cannot represent the type.
    """

    return _COERCERS[data_type](raw)


def payload_text(payload: AttributePayload) -> str:
    """Textual form used for external ids and reference lookups."""

    match payload:
        case ReferenceValue(unresolved_reference=text) if text is not None:
            return text
        case ReferenceValue(target_id=target_id):
            return str(target_id)
        case BinaryValue(value=data):
            return base64.b64encode(data).decode("ascii")
        case DateTimeValue(value=moment):
            return moment.isoformat()
        case _:
            return str(payload.value)
