"""Resolution of imported reference values to connected system objects."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from idsync.domain.model import ReferenceValue
from idsync.domain.sync.errors import AmbiguousReferenceError

if TYPE_CHECKING:
    from datetime import datetime

    from idsync.domain.model import ConnectedSystemObject
    from idsync.domain.ports import ConnectedSystemObjectRepository

log = logging.getLogger(__name__)


class ReferenceResolver:
    """Resolve unresolved reference text within one connected system.

    The lookup spans every object type of the system. Two objects of different
    types sharing the referenced external id make the reference ambiguous, which
    raises instead of picking one.
    """

    def __init__(self, repository: ConnectedSystemObjectRepository) -> None:
        self._repository = repository

    def resolve(self, cso: ConnectedSystemObject, now: datetime) -> int:
        """Resolve what can be resolved on ``cso``; returns the number of newly resolved values."""

        resolved = 0
        for attribute_value in cso.attribute_values:
            payload = attribute_value.value
            if not isinstance(payload, ReferenceValue) or payload.is_resolved:
                continue
            if payload.unresolved_reference is None:
                continue
            target = self.lookup(cso, payload.unresolved_reference, attribute_value.attribute)
            if target is None:
                log.debug(
                    "Reference %r on %s of %s not resolvable yet",
                    payload.unresolved_reference,
                    attribute_value.attribute,
                    cso.external_id,
                )
                continue
            cso.replace_value(attribute_value, payload.resolved_to(target.id))
            resolved += 1

        if resolved:
            cso.touch(now)
        return resolved

    def lookup(
        self,
        cso: ConnectedSystemObject,
        external_id: str,
        attribute: str,
    ) -> ConnectedSystemObject | None:
        candidates = [
            candidate
            for candidate in self._repository.find_by_external_id_any_type(
                cso.connected_system_id, external_id
            )
            if not candidate.is_obsolete
        ]
        if not candidates:
            return None
        if len(candidates) > 1:
            types = ", ".join(sorted({candidate.object_type for candidate in candidates}))
            raise AmbiguousReferenceError(
                f"Reference {external_id!r} on {attribute!r} matches {len(candidates)} objects "
                f"({types}) in connected system {cso.connected_system_id}",
                object_type=cso.object_type,
                external_id=cso.external_id,
                attribute=attribute,
            )
        return candidates[0]
