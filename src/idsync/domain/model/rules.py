"""Sync rules: matching, attribute flow and scoping definitions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from idsync.domain.model.enums import (
    InboundOutOfScopeAction,
    ScopingGroupType,
    SyncRuleDirection,
)

if TYPE_CHECKING:
    from idsync.domain.model.enums import ComparisonType
    from idsync.domain.model.values import AttributePayload


@dataclass(frozen=True, slots=True, kw_only=True)
class ScopingCriterion:
    attribute: str
    comparison: ComparisonType
    value: AttributePayload


@dataclass(slots=True, kw_only=True)
class ScopingCriteriaGroup:
    group_type: ScopingGroupType = ScopingGroupType.ALL
    criteria: list[ScopingCriterion] = field(default_factory=list["ScopingCriterion"])
    child_groups: list[ScopingCriteriaGroup] = field(default_factory=list["ScopingCriteriaGroup"])

    @property
    def is_empty(self) -> bool:
        return not self.criteria and not self.child_groups


@dataclass(frozen=True, slots=True, kw_only=True)
class ObjectMatchingRule:
    """Join key: source attribute value(s) compared against one metaverse attribute."""

    source_attributes: tuple[str, ...]
    target_attribute: str
    case_sensitive: bool = True


@dataclass(frozen=True, slots=True, kw_only=True)
class AttributeFlowMapping:
    target_attribute: str
    source_attributes: tuple[str, ...]


@dataclass(eq=False, kw_only=True)
class SyncRule:
    id: int
    name: str
    connected_system_id: int
    direction: SyncRuleDirection
    connected_system_object_type: str
    metaverse_object_type: str
    enabled: bool = True
    project_to_metaverse: bool = False
    priority: int = 0
    object_matching_rules: list[ObjectMatchingRule] = field(
        default_factory=list["ObjectMatchingRule"]
    )
    attribute_flow_mappings: list[AttributeFlowMapping] = field(
        default_factory=list["AttributeFlowMapping"]
    )
    scoping_criteria_groups: list[ScopingCriteriaGroup] = field(
        default_factory=list["ScopingCriteriaGroup"]
    )
    inbound_out_of_scope_action: InboundOutOfScopeAction = InboundOutOfScopeAction.DISCONNECT

    @property
    def is_import(self) -> bool:
        return self.direction is SyncRuleDirection.IMPORT

    @property
    def has_scoping(self) -> bool:
        return bool(self.scoping_criteria_groups)

    def applies_to(self, connected_system_id: int, object_type: str) -> bool:
        return (
            self.connected_system_id == connected_system_id
            and self.connected_system_object_type.casefold() == object_type.casefold()
        )
