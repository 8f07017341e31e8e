"""Join and projection decisions for connected system objects.

Matching runs over every in-scope import rule before projection is considered,
so an existing metaverse object always wins over creating a new one. A metaverse
object accepts at most one connector per connected system.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from idsync.domain.model import (
    GuidValue,
    JoinType,
    MetaverseObject,
    NumberValue,
    ObjectChangeType,
    PendingChangeSet,
    TextValue,
)
from idsync.domain.sync.deletion import clear_pending_disconnect, record_connector_disconnected
from idsync.domain.sync.errors import AmbiguousMatchError, JoinConflictError
from idsync.domain.sync.scoping import is_cso_in_scope

if TYPE_CHECKING:
    from datetime import datetime

    from idsync.domain.model import (
        ConnectedSystemObject,
        ObjectMatchingRule,
        SyncDefinitions,
        SyncRule,
    )
    from idsync.domain.ports import MetaverseObjectRepository

log = logging.getLogger(__name__)

_MATCHABLE = (TextValue, NumberValue, GuidValue)


@dataclass(slots=True, kw_only=True)
class JoinOutcome:
    change_type: ObjectChangeType | None = None
    metaverse_object: MetaverseObject | None = None
    sync_rule: SyncRule | None = None


class JoinProjectionEngine:
    def __init__(
        self,
        definitions: SyncDefinitions,
        metaverse_objects: MetaverseObjectRepository,
    ) -> None:
        self._definitions = definitions
        self._metaverse_objects = metaverse_objects

    def join_or_project(
        self,
        cso: ConnectedSystemObject,
        rules: list[SyncRule],
        now: datetime,
    ) -> JoinOutcome:
        """Link ``cso`` to a metaverse object if any rule allows it.

        ``rules`` are the enabled import rules for the object type in priority order.
        Objects that are already joined, including provisioned ones, are returned
        unchanged. Raises ``JoinConflictError`` or ``AmbiguousMatchError``.
        """

        if cso.metaverse_object is not None:
            return JoinOutcome(metaverse_object=cso.metaverse_object)

        in_scope = [rule for rule in rules if is_cso_in_scope(cso, rule)]

        for rule in in_scope:
            match = self._find_match(cso, rule)
            if match is None:
                continue
            self._join(cso, match, rule, now)
            return JoinOutcome(
                change_type=ObjectChangeType.JOINED, metaverse_object=match, sync_rule=rule
            )

        for rule in in_scope:
            if not rule.project_to_metaverse:
                continue
            mvo = self._project(cso, rule, now)
            return JoinOutcome(
                change_type=ObjectChangeType.PROJECTED, metaverse_object=mvo, sync_rule=rule
            )

        log.debug("No join or projection for %s %s", cso.object_type, cso.external_id)
        return JoinOutcome()

    def disconnect(
        self,
        cso: ConnectedSystemObject,
        now: datetime,
        *,
        remove_contributed_attributes: bool,
    ) -> MetaverseObject | None:
        """Break the join of ``cso`` and run deletion bookkeeping on the metaverse object."""

        mvo = cso.metaverse_object
        if mvo is None:
            return None

        changes = PendingChangeSet()
        if remove_contributed_attributes:
            changes.removals.extend(
                av
                for av in mvo.attribute_values
                if av.contributed_by_system_id == cso.connected_system_id
            )
        cso.disconnect(now)
        changes.apply_to(mvo, now)
        log.info(
            "Disconnected %s %s from metaverse object %s",
            cso.object_type,
            cso.external_id,
            mvo.id,
        )
        record_connector_disconnected(
            mvo,
            self._definitions.metaverse_object_type(mvo.object_type),
            cso.connected_system_id,
            now,
        )
        return mvo

    def _find_match(self, cso: ConnectedSystemObject, rule: SyncRule) -> MetaverseObject | None:
        for matching_rule in rule.object_matching_rules:
            candidates = self._candidates(cso, rule, matching_rule)
            if not candidates:
                continue
            if len(candidates) > 1:
                raise AmbiguousMatchError(
                    f"Matching rule on {matching_rule.target_attribute!r} of sync rule "
                    f"{rule.name!r} found {len(candidates)} metaverse objects",
                    object_type=cso.object_type,
                    external_id=cso.external_id,
                    attribute=matching_rule.target_attribute,
                )
            return candidates[0]
        return None

    def _candidates(
        self,
        cso: ConnectedSystemObject,
        rule: SyncRule,
        matching_rule: ObjectMatchingRule,
    ) -> list[MetaverseObject]:
        found: dict[object, MetaverseObject] = {}
        for source_attribute in matching_rule.source_attributes:
            for value in cso.values_for(source_attribute):
                if not isinstance(value, _MATCHABLE):
                    log.debug(
                        "Skipping %s value of %s for matching", value.DATA_TYPE, source_attribute
                    )
                    continue
                for mvo in self._metaverse_objects.find_by_attribute_value(
                    rule.metaverse_object_type,
                    matching_rule.target_attribute,
                    value,
                    case_sensitive=matching_rule.case_sensitive,
                ):
                    found.setdefault(mvo.id, mvo)
        return list(found.values())

    def _join(
        self,
        cso: ConnectedSystemObject,
        mvo: MetaverseObject,
        rule: SyncRule,
        now: datetime,
    ) -> None:
        existing = mvo.connector_from(cso.connected_system_id)
        if existing is not None and existing is not cso:
            raise JoinConflictError(
                f"Metaverse object {mvo.id} is already joined to {existing.object_type} "
                f"{existing.external_id!r} from connected system {cso.connected_system_id}",
                object_type=cso.object_type,
                external_id=cso.external_id,
            )
        cso.join_to(mvo, JoinType.JOINED, now)
        clear_pending_disconnect(mvo)
        log.info(
            "Joined %s %s to metaverse object %s via %r",
            cso.object_type,
            cso.external_id,
            mvo.id,
            rule.name,
        )

    def _project(self, cso: ConnectedSystemObject, rule: SyncRule, now: datetime) -> MetaverseObject:
        mvo = MetaverseObject(object_type=rule.metaverse_object_type, created=now)
        cso.join_to(mvo, JoinType.PROJECTED, now)
        self._metaverse_objects.add(mvo)
        log.info(
            "Projected %s %s to new %s metaverse object %s via %r",
            cso.object_type,
            cso.external_id,
            mvo.object_type,
            mvo.id,
            rule.name,
        )
        return mvo
