"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class AttributeDataType(StrEnum):
    TEXT = "text"
    NUMBER = "number"
    DATETIME = "datetime"
    BOOLEAN = "boolean"
    GUID = "guid"
    BINARY = "binary"
    REFERENCE = "reference"


class ConnectedSystemObjectStatus(StrEnum):
    NORMAL = "normal"
    OBSOLETE = "obsolete"
    PENDING_PROVISIONING = "pending_provisioning"


class JoinType(StrEnum):
    NOT_JOINED = "not_joined"
    JOINED = "joined"
    PROJECTED = "projected"
    PROVISIONED = "provisioned"


class MetaverseObjectOrigin(StrEnum):
    """Internal objects (e.g. admin accounts) are never deleted automatically."""

    PROJECTED = "projected"
    INTERNAL = "internal"


class DeletionRule(StrEnum):
    MANUAL = "manual"
    WHEN_LAST_CONNECTOR_DISCONNECTED = "when_last_connector_disconnected"
    WHEN_AUTHORITATIVE_SOURCE_DISCONNECTED = "when_authoritative_source_disconnected"


class SyncRuleDirection(StrEnum):
    IMPORT = "import"
    EXPORT = "export"


class InboundOutOfScopeAction(StrEnum):
    DISCONNECT = "disconnect"
    REMAIN_JOINED = "remain_joined"


class ScopingGroupType(StrEnum):
    ALL = "all"
    ANY = "any"


class ComparisonType(StrEnum):
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    STARTS_WITH = "starts_with"
    NOT_STARTS_WITH = "not_starts_with"
    ENDS_WITH = "ends_with"
    NOT_ENDS_WITH = "not_ends_with"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    LESS_THAN = "less_than"
    LESS_THAN_OR_EQUALS = "less_than_or_equals"
    GREATER_THAN = "greater_than"
    GREATER_THAN_OR_EQUALS = "greater_than_or_equals"


class ImportChangeType(StrEnum):
    ADD = "add"
    UPDATE = "update"
    DELETE = "delete"


class PendingExportChangeType(StrEnum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class PendingExportStatus(StrEnum):
    PENDING = "pending"
    EXPORTED = "exported"
    EXPORT_NOT_IMPORTED = "export_not_imported"


class AttributeChangeType(StrEnum):
    ADD = "add"
    UPDATE = "update"
    REMOVE = "remove"
    REMOVE_ALL = "remove_all"


class RunType(StrEnum):
    FULL_IMPORT = "full_import"
    FULL_SYNC = "full_sync"
    DELTA_SYNC = "delta_sync"


class ObjectChangeType(StrEnum):
    """Outcome recorded on an execution item."""

    CREATED = "created"
    UPDATED = "updated"
    OBSOLETED = "obsoleted"
    DELETED = "deleted"
    JOINED = "joined"
    PROJECTED = "projected"
    ATTRIBUTE_FLOW = "attribute_flow"
    DISCONNECTED = "disconnected"
    DISCONNECTED_OUT_OF_SCOPE = "disconnected_out_of_scope"
    OUT_OF_SCOPE_RETAIN_JOIN = "out_of_scope_retain_join"


class ExecutionItemErrorType(StrEnum):
    DUPLICATE_IMPORTED_ATTRIBUTES = "DuplicateImportedAttributes"
    UNEXPECTED_ATTRIBUTE = "UnexpectedAttribute"
    COULD_NOT_MATCH_OBJECT_TYPE = "CouldNotMatchObjectType"
    MISSING_EXTERNAL_ID = "MissingExternalId"
    INVALID_ATTRIBUTE_VALUE = "InvalidAttributeValue"
    COULD_NOT_JOIN_DUE_TO_EXISTING_JOIN = "CouldNotJoinDueToExistingJoin"
    AMBIGUOUS_MATCH = "AmbiguousMatch"
    AMBIGUOUS_REFERENCE = "AmbiguousReference"
