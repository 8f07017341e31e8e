"""Errors raised by the sync engine.

``SyncObjectError`` subclasses concern a single object: the orchestrators record
them as execution items and continue with the next object. Everything else
propagates and aborts the run.
"""

from __future__ import annotations

from typing import ClassVar

from idsync.domain.model import ExecutionItemErrorType


class SyncError(RuntimeError):
    """Base class for sync engine errors."""


class DuplicateConnectedSystemObjectError(SyncError):
    """More than one object shares a (system, object type, external id) key."""

    def __init__(self, connected_system_id: int, object_type: str, external_id: str) -> None:
        super().__init__(
            f"Connected system {connected_system_id} holds more than one {object_type!r} "
            f"object with external id {external_id!r}"
        )
        self.connected_system_id = connected_system_id
        self.object_type = object_type
        self.external_id = external_id


class SyncObjectError(SyncError):
    """Classified error scoped to one object."""

    error_type: ClassVar[ExecutionItemErrorType]

    def __init__(
        self,
        message: str,
        *,
        object_type: str | None = None,
        external_id: str | None = None,
        attribute: str | None = None,
    ) -> None:
        super().__init__(message)
        self.object_type = object_type
        self.external_id = external_id
        self.attribute = attribute


class DuplicateImportedAttributesError(SyncObjectError):
    error_type = ExecutionItemErrorType.DUPLICATE_IMPORTED_ATTRIBUTES


class UnexpectedAttributeError(SyncObjectError):
    error_type = ExecutionItemErrorType.UNEXPECTED_ATTRIBUTE


class UnknownObjectTypeError(SyncObjectError):
    error_type = ExecutionItemErrorType.COULD_NOT_MATCH_OBJECT_TYPE


class MissingExternalIdError(SyncObjectError):
    error_type = ExecutionItemErrorType.MISSING_EXTERNAL_ID


class InvalidAttributeValueError(SyncObjectError):
    error_type = ExecutionItemErrorType.INVALID_ATTRIBUTE_VALUE


class JoinConflictError(SyncObjectError):
    error_type = ExecutionItemErrorType.COULD_NOT_JOIN_DUE_TO_EXISTING_JOIN


class AmbiguousMatchError(SyncObjectError):
    error_type = ExecutionItemErrorType.AMBIGUOUS_MATCH


class AmbiguousReferenceError(SyncObjectError):
    error_type = ExecutionItemErrorType.AMBIGUOUS_REFERENCE
