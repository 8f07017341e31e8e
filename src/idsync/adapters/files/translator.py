"""Translate validated file payloads into domain definitions and import records."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from idsync.domain.model import (
    AttributeDataType,
    AttributeFlowMapping,
    ConnectedSystem,
    ConnectedSystemObjectType,
    MetaverseObjectType,
    ObjectMatchingRule,
    SchemaAttribute,
    ScopingCriteriaGroup,
    ScopingCriterion,
    SyncDefinitions,
    SyncRule,
    coerce_payload,
)
from idsync.domain.ports import ImportedAttribute, ImportedObject

if TYPE_CHECKING:
    from .schema import (
        ConnectedSystemModel,
        DefinitionsDocument,
        ImportRecordModel,
        MetaverseObjectTypeModel,
        ScopingCriteriaGroupModel,
        ScopingCriterionModel,
        SyncRuleModel,
    )


log = getLogger(__name__)


class DefinitionsError(ValueError):
    """Raised when a definitions document is structurally valid but inconsistent."""


def to_sync_definitions(document: DefinitionsDocument) -> SyncDefinitions:
    systems = [_to_connected_system(model) for model in document.connected_systems]
    definitions = SyncDefinitions(
        connected_systems=systems,
        metaverse_object_types=[
            _to_metaverse_object_type(model, systems) for model in document.metaverse_object_types
        ],
    )
    definitions.sync_rules = [_to_sync_rule(model, definitions) for model in document.sync_rules]
    log.debug(
        "Loaded %d connected system(s), %d metaverse type(s), %d sync rule(s)",
        len(definitions.connected_systems),
        len(definitions.metaverse_object_types),
        len(definitions.sync_rules),
    )
    return definitions


def _to_metaverse_object_type(
    model: MetaverseObjectTypeModel,
    systems: list[ConnectedSystem],
) -> MetaverseObjectType:
    known = {system.id for system in systems}
    unknown = sorted(set(model.deletion_trigger_connected_system_ids) - known)
    if unknown:
        raise DefinitionsError(
            f"Metaverse object type {model.name!r}: deletion trigger system(s) {unknown} "
            "are not defined"
        )
    return MetaverseObjectType(
        name=model.name,
        deletion_rule=model.deletion_rule,
        deletion_grace_period_days=model.deletion_grace_period_days,
        deletion_trigger_connected_system_ids=frozenset(model.deletion_trigger_connected_system_ids),
    )


def _to_connected_system(model: ConnectedSystemModel) -> ConnectedSystem:
    return ConnectedSystem(
        id=model.id,
        name=model.name,
        object_types=[
            ConnectedSystemObjectType(
                name=object_type.name,
                external_id_attribute=object_type.external_id_attribute,
                remove_contributed_attributes_on_obsoletion=(
                    object_type.remove_contributed_attributes_on_obsoletion
                ),
                attributes=[
                    SchemaAttribute(
                        name=attribute.name,
                        data_type=attribute.data_type,
                        multi_valued=attribute.multi_valued,
                    )
                    for attribute in object_type.attributes
                ],
            )
            for object_type in model.object_types
        ],
    )


def _to_sync_rule(model: SyncRuleModel, definitions: SyncDefinitions) -> SyncRule:
    try:
        object_type = definitions.object_type(
            model.connected_system_id, model.connected_system_object_type
        )
        definitions.metaverse_object_type(model.metaverse_object_type)
    except LookupError as exc:
        raise DefinitionsError(f"Sync rule {model.id} ({model.name}): {exc}") from exc
    if object_type is None:
        raise DefinitionsError(
            f"Sync rule {model.id} ({model.name}): object type "
            f"{model.connected_system_object_type!r} is not defined"
        )

    return SyncRule(
        id=model.id,
        name=model.name,
        connected_system_id=model.connected_system_id,
        direction=model.direction,
        connected_system_object_type=object_type.name,
        metaverse_object_type=model.metaverse_object_type,
        enabled=model.enabled,
        project_to_metaverse=model.project_to_metaverse,
        priority=model.priority,
        object_matching_rules=[
            ObjectMatchingRule(
                source_attributes=tuple(matching.source_attributes),
                target_attribute=matching.target_attribute,
                case_sensitive=matching.case_sensitive,
            )
            for matching in model.object_matching_rules
        ],
        attribute_flow_mappings=[
            AttributeFlowMapping(
                target_attribute=mapping.target_attribute,
                source_attributes=tuple(mapping.source_attributes),
            )
            for mapping in model.attribute_flow_mappings
        ],
        scoping_criteria_groups=[
            _to_scoping_group(group, object_type) for group in model.scoping_criteria_groups
        ],
        inbound_out_of_scope_action=model.inbound_out_of_scope_action,
    )


def _to_scoping_group(
    model: ScopingCriteriaGroupModel,
    object_type: ConnectedSystemObjectType,
) -> ScopingCriteriaGroup:
    return ScopingCriteriaGroup(
        group_type=model.group_type,
        criteria=[_to_scoping_criterion(criterion, object_type) for criterion in model.criteria],
        child_groups=[_to_scoping_group(child, object_type) for child in model.child_groups],
    )


def _to_scoping_criterion(
    model: ScopingCriterionModel,
    object_type: ConnectedSystemObjectType,
) -> ScopingCriterion:
    data_type = model.data_type
    if data_type is None:
        attribute = object_type.attribute(model.attribute)
        data_type = attribute.data_type if attribute is not None else AttributeDataType.TEXT
    if model.value is None:
        raise DefinitionsError(f"Scoping criterion on {model.attribute!r} has no value")
    try:
        value = coerce_payload(data_type, model.value)
    except (TypeError, ValueError) as exc:
        raise DefinitionsError(
            f"Scoping criterion on {model.attribute!r}: {model.value!r} is not a valid {data_type}"
        ) from exc
    return ScopingCriterion(attribute=model.attribute, comparison=model.comparison, value=value)


def to_imported_object(record: ImportRecordModel) -> ImportedObject:
    return ImportedObject(
        object_type=record.object_type,
        change_type=record.change_type,
        attributes=[
            ImportedAttribute(name=attribute.name, values=list(attribute.values))
            for attribute in record.attributes
        ],
    )
