"""Metaverse object deletion bookkeeping.

Sync runs only ever mark a metaverse object for deletion. Removal happens in a
separate housekeeping pass.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING

from idsync.domain.model import DeletionRule, MetaverseObjectOrigin

if TYPE_CHECKING:
    from datetime import datetime

    from idsync.domain.model import MetaverseObject, MetaverseObjectType
    from idsync.domain.ports import MetaverseObjectRepository

log = logging.getLogger(__name__)


def record_connector_disconnected(
    mvo: MetaverseObject,
    object_type: MetaverseObjectType,
    disconnecting_system_id: int,
    now: datetime,
) -> bool:
    """Apply the deletion rule after ``disconnecting_system_id`` left ``mvo``.

    ``WhenLastConnectorDisconnected`` marks the object once no connector remains.
    ``WhenAuthoritativeSourceDisconnected`` marks it as soon as one of the type's
    trigger systems disconnects, and behaves like the last-connector rule when the
    type names no triggers. ``Manual`` types and internal objects are never marked.
    A missing grace period leaves the eligible date empty, which housekeeping reads
    as "eligible now". Returns whether bookkeeping changed.
    """

    if mvo.origin is MetaverseObjectOrigin.INTERNAL:
        log.debug("Metaverse object %s is internal; no deletion bookkeeping", mvo.id)
        return False

    triggered_by: int | None = None
    match object_type.deletion_rule:
        case DeletionRule.MANUAL:
            return False
        case DeletionRule.WHEN_AUTHORITATIVE_SOURCE_DISCONNECTED if (
            object_type.deletion_trigger_connected_system_ids
        ):
            if disconnecting_system_id not in object_type.deletion_trigger_connected_system_ids:
                return False
            if mvo.connected_system_objects:
                triggered_by = disconnecting_system_id
        case DeletionRule.WHEN_AUTHORITATIVE_SOURCE_DISCONNECTED:
            log.warning(
                "Metaverse type %s deletes on authoritative disconnect but names no trigger "
                "systems; using last-connector behaviour",
                object_type.name,
            )
            if mvo.connected_system_objects:
                return False
        case _:
            if mvo.connected_system_objects:
                return False

    eligible: datetime | None = None
    if object_type.deletion_grace_period_days is not None:
        eligible = now + timedelta(days=object_type.deletion_grace_period_days)
    mvo.record_last_connector_disconnected(now, eligible, triggered_by_system_id=triggered_by)
    log.info(
        "Connected system %s disconnected from metaverse object %s; eligible for deletion %s",
        disconnecting_system_id,
        mvo.id,
        eligible.isoformat() if eligible else "immediately",
    )
    return True


def clear_pending_disconnect(mvo: MetaverseObject) -> bool:
    """Cancel deletion bookkeeping after a connector joins again."""

    if not mvo.has_pending_disconnect and mvo.deletion_eligible_date is None:
        return False
    mvo.clear_pending_disconnect()
    log.info("Metaverse object %s rejoined; pending deletion cleared", mvo.id)
    return True


def is_eligible_for_deletion(mvo: MetaverseObject, now: datetime) -> bool:
    """Marked, past its grace period, and either unconnected or marked by an authoritative source."""

    if mvo.origin is MetaverseObjectOrigin.INTERNAL:
        return False
    if mvo.last_connector_disconnected_date is None:
        return False
    if mvo.connected_system_objects and mvo.deletion_triggered_by_system_id is None:
        return False
    return mvo.deletion_eligible_date is None or mvo.deletion_eligible_date <= now


def delete_eligible_metaverse_objects(
    repository: MetaverseObjectRepository,
    now: datetime,
    batch_size: int,
) -> list[MetaverseObject]:
    """Delete up to ``batch_size`` metaverse objects whose grace period has passed.

    Connectors still joined to a deleted object are disconnected first.
    """

    candidates = repository.list_eligible_for_deletion(now, batch_size)
    doomed = [mvo for mvo in candidates if is_eligible_for_deletion(mvo, now)][:batch_size]
    for mvo in doomed:
        for cso in mvo.connected_system_objects:
            cso.disconnect(now)
    if doomed:
        repository.delete_all(doomed)
        log.info("Housekeeping deleted %d metaverse object(s)", len(doomed))
    return doomed
