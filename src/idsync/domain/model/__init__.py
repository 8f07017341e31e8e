"""Public domain model surface."""

from __future__ import annotations

from idsync.domain.model.activity import Activity, ExecutionItem, RunProfile, SyncWatermark
from idsync.domain.model.changes import PendingChangeSet
from idsync.domain.model.connected_system import (
    ConnectedSystem,
    ConnectedSystemObject,
    ConnectedSystemObjectAttributeValue,
    ConnectedSystemObjectType,
    SchemaAttribute,
)
from idsync.domain.model.definitions import SyncDefinitions, UnknownDefinitionError
from idsync.domain.model.entity import Entity, new_id, utc_now
from idsync.domain.model.enums import (
    AttributeChangeType,
    AttributeDataType,
    ComparisonType,
    ConnectedSystemObjectStatus,
    DeletionRule,
    ExecutionItemErrorType,
    ImportChangeType,
    InboundOutOfScopeAction,
    JoinType,
    MetaverseObjectOrigin,
    ObjectChangeType,
    PendingExportChangeType,
    PendingExportStatus,
    RunType,
    ScopingGroupType,
    SyncRuleDirection,
)
from idsync.domain.model.metaverse import (
    MetaverseObject,
    MetaverseObjectAttributeValue,
    MetaverseObjectType,
)
from idsync.domain.model.pending_export import PendingExport, PendingExportAttributeChange
from idsync.domain.model.rules import (
    AttributeFlowMapping,
    ObjectMatchingRule,
    ScopingCriteriaGroup,
    ScopingCriterion,
    SyncRule,
)
from idsync.domain.model.values import (
    AttributePayload,
    BinaryValue,
    BooleanValue,
    DateTimeValue,
    GuidValue,
    NumberValue,
    ReferenceValue,
    TextValue,
    coerce_payload,
    payload_from_columns,
    payload_text,
)

__all__ = [  # noqa: RUF022
    # base
    "Entity",
    "new_id",
    "utc_now",
    # values
    "AttributePayload",
    "TextValue",
    "NumberValue",
    "DateTimeValue",
    "BooleanValue",
    "GuidValue",
    "BinaryValue",
    "ReferenceValue",
    "coerce_payload",
    "payload_from_columns",
    "payload_text",
    # connected systems
    "SchemaAttribute",
    "ConnectedSystemObjectType",
    "ConnectedSystem",
    "ConnectedSystemObject",
    "ConnectedSystemObjectAttributeValue",
    # metaverse
    "MetaverseObjectType",
    "MetaverseObject",
    "MetaverseObjectAttributeValue",
    "PendingChangeSet",
    # rules
    "ScopingCriterion",
    "ScopingCriteriaGroup",
    "ObjectMatchingRule",
    "AttributeFlowMapping",
    "SyncRule",
    "SyncDefinitions",
    "UnknownDefinitionError",
    # exports
    "PendingExport",
    "PendingExportAttributeChange",
    # runs
    "RunProfile",
    "SyncWatermark",
    "Activity",
    "ExecutionItem",
    # enums
    "AttributeChangeType",
    "AttributeDataType",
    "ComparisonType",
    "ConnectedSystemObjectStatus",
    "DeletionRule",
    "ExecutionItemErrorType",
    "ImportChangeType",
    "InboundOutOfScopeAction",
    "JoinType",
    "MetaverseObjectOrigin",
    "ObjectChangeType",
    "PendingExportChangeType",
    "PendingExportStatus",
    "RunType",
    "ScopingGroupType",
    "SyncRuleDirection",
]
