"""Pydantic models describing definition documents and JSON-lines import records."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated, cast

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from idsync.domain.model.enums import (
    AttributeDataType,
    ComparisonType,
    DeletionRule,
    ImportChangeType,
    InboundOutOfScopeAction,
    ScopingGroupType,
    SyncRuleDirection,
)

type RawValue = str | int | float | bool | None


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def _lowercase(value: object) -> object:
    return value.strip().lower() if isinstance(value, str) else value


class IdsyncBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


# Definitions document ---------------------------------------------------------


class SchemaAttributeModel(IdsyncBaseModel):
    name: str
    data_type: AttributeDataType = AttributeDataType.TEXT
    multi_valued: bool = False

    _normalize_data_type = field_validator("data_type", mode="before")(_lowercase)


class ObjectTypeModel(IdsyncBaseModel):
    name: str
    external_id_attribute: str
    attributes: list[SchemaAttributeModel] = Field(default_factory=list["SchemaAttributeModel"])
    remove_contributed_attributes_on_obsoletion: bool = False

    @model_validator(mode="after")
    def _external_id_is_declared(self) -> ObjectTypeModel:
        wanted = self.external_id_attribute.casefold()
        if not any(attribute.name.casefold() == wanted for attribute in self.attributes):
            raise ValueError(
                f"external id attribute {self.external_id_attribute!r} "
                f"is not declared on object type {self.name!r}"
            )
        return self


class ConnectedSystemModel(IdsyncBaseModel):
    id: int
    name: str
    object_types: list[ObjectTypeModel] = Field(default_factory=list["ObjectTypeModel"])


class MetaverseObjectTypeModel(IdsyncBaseModel):
    name: str
    deletion_rule: DeletionRule = DeletionRule.MANUAL
    deletion_grace_period_days: Annotated[int, Field(ge=0)] | None = None
    deletion_trigger_connected_system_ids: list[int] = Field(default_factory=list[int])

    _normalize_deletion_rule = field_validator("deletion_rule", mode="before")(_lowercase)


class ScopingCriterionModel(IdsyncBaseModel):
    attribute: str
    comparison: ComparisonType
    value: RawValue
    # defaults to the data type of the source attribute in the rule's object type
    data_type: AttributeDataType | None = None

    _normalize_comparison = field_validator("comparison", mode="before")(_lowercase)


class ScopingCriteriaGroupModel(IdsyncBaseModel):
    group_type: ScopingGroupType = ScopingGroupType.ALL
    criteria: list[ScopingCriterionModel] = Field(default_factory=list["ScopingCriterionModel"])
    child_groups: list[ScopingCriteriaGroupModel] = Field(
        default_factory=list["ScopingCriteriaGroupModel"]
    )


class ObjectMatchingRuleModel(IdsyncBaseModel):
    source_attributes: list[str] = Field(min_length=1)
    target_attribute: str
    case_sensitive: bool = True


class AttributeFlowMappingModel(IdsyncBaseModel):
    target_attribute: str
    source_attributes: list[str] = Field(min_length=1)


class SyncRuleModel(IdsyncBaseModel):
    id: int
    name: str
    connected_system_id: int
    direction: SyncRuleDirection = SyncRuleDirection.IMPORT
    connected_system_object_type: str
    metaverse_object_type: str
    enabled: bool = True
    project_to_metaverse: bool = False
    priority: int = 0
    object_matching_rules: list[ObjectMatchingRuleModel] = Field(
        default_factory=list["ObjectMatchingRuleModel"]
    )
    attribute_flow_mappings: list[AttributeFlowMappingModel] = Field(
        default_factory=list["AttributeFlowMappingModel"]
    )
    scoping_criteria_groups: list[ScopingCriteriaGroupModel] = Field(
        default_factory=list["ScopingCriteriaGroupModel"]
    )
    inbound_out_of_scope_action: InboundOutOfScopeAction = InboundOutOfScopeAction.DISCONNECT


class DefinitionsDocument(IdsyncBaseModel):
    connected_systems: list[ConnectedSystemModel] = Field(
        default_factory=list["ConnectedSystemModel"]
    )
    metaverse_object_types: list[MetaverseObjectTypeModel] = Field(
        default_factory=list["MetaverseObjectTypeModel"]
    )
    sync_rules: list[SyncRuleModel] = Field(default_factory=list["SyncRuleModel"])

    @model_validator(mode="after")
    def _identifiers_are_unique(self) -> DefinitionsDocument:
        system_ids = [system.id for system in self.connected_systems]
        if len(system_ids) != len(set(system_ids)):
            raise ValueError("connected system ids must be unique")
        rule_ids = [rule.id for rule in self.sync_rules]
        if len(rule_ids) != len(set(rule_ids)):
            raise ValueError("sync rule ids must be unique")
        return self


# Import records ---------------------------------------------------------------


class ImportedAttributeModel(IdsyncBaseModel):
    name: str
    values: list[RawValue] = Field(default_factory=list[RawValue])

    @field_validator("values", mode="before")
    @classmethod
    def _wrap_scalar(cls, value: object) -> object:
        if isinstance(value, list):
            return value
        return [value]


class ImportRecordModel(IdsyncBaseModel):
    """One line of a JSON-lines export.

    ``attributes`` is either a list of ``{"name": ..., "values": [...]}`` entries
    (which preserves duplicate names) or a compact ``{"name": value}`` mapping.
    """

    object_type: str
    change_type: ImportChangeType = ImportChangeType.ADD
    attributes: list[ImportedAttributeModel] = Field(
        default_factory=list["ImportedAttributeModel"]
    )

    _normalize_change_type = field_validator("change_type", mode="before")(_lowercase)

    @model_validator(mode="before")
    @classmethod
    def _expand_compact_attributes(cls, value: object) -> object:
        if not isinstance(value, Mapping):
            return value
        data: dict[str, object] = dict(cast(Mapping[str, object], value))
        attributes = data.get("attributes")
        if isinstance(attributes, Mapping):
            compact = cast(Mapping[str, object], attributes)
            data["attributes"] = [
                {"name": name, "values": values} for name, values in compact.items()
            ]
        if "object_type" in data:
            data["object_type"] = _blank_to_none(data["object_type"])
        return data
