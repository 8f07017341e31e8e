"""Configured definitions a run works against: systems, metaverse types and sync rules."""

from __future__ import annotations

from dataclasses import dataclass, field

from idsync.domain.model.connected_system import ConnectedSystem, ConnectedSystemObjectType
from idsync.domain.model.metaverse import MetaverseObjectType
from idsync.domain.model.rules import SyncRule


class UnknownDefinitionError(LookupError):
    """Raised when a run references a connected system or type that is not defined."""


@dataclass(slots=True, kw_only=True)
class SyncDefinitions:
    connected_systems: list[ConnectedSystem] = field(default_factory=list["ConnectedSystem"])
    metaverse_object_types: list[MetaverseObjectType] = field(
        default_factory=list["MetaverseObjectType"]
    )
    sync_rules: list[SyncRule] = field(default_factory=list["SyncRule"])

    def connected_system(self, connected_system_id: int) -> ConnectedSystem:
        for system in self.connected_systems:
            if system.id == connected_system_id:
                return system
        raise UnknownDefinitionError(f"Connected system {connected_system_id} is not defined")

    def object_type(self, connected_system_id: int, name: str) -> ConnectedSystemObjectType | None:
        return self.connected_system(connected_system_id).object_type(name)

    def metaverse_object_type(self, name: str) -> MetaverseObjectType:
        wanted = name.casefold()
        for object_type in self.metaverse_object_types:
            if object_type.name.casefold() == wanted:
                return object_type
        raise UnknownDefinitionError(f"Metaverse object type {name!r} is not defined")

    def import_rules_for(self, connected_system_id: int, object_type: str) -> list[SyncRule]:
        """Enabled import rules for the object type, in evaluation order."""

        rules = [
            rule
            for rule in self.sync_rules
            if rule.is_import and rule.enabled and rule.applies_to(connected_system_id, object_type)
        ]
        return sorted(rules, key=lambda rule: (rule.priority, rule.id))
