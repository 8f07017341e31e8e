"""Confirm exported changes against freshly imported connected system object state."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from idsync.domain.model import (
    AttributeChangeType,
    PendingExportAttributeChange,
    PendingExportChangeType,
    ReferenceValue,
)

if TYPE_CHECKING:
    from idsync.domain.model import AttributePayload, ConnectedSystemObject, PendingExport

log = logging.getLogger(__name__)


class ReconciliationOutcome(StrEnum):
    SKIPPED = "skipped"
    CONFIRMED = "confirmed"
    PARTIALLY_CONFIRMED = "partially_confirmed"
    UNCONFIRMED = "unconfirmed"


@dataclass(slots=True, kw_only=True)
class ReconciliationResult:
    outcome: ReconciliationOutcome
    confirmed: list[PendingExportAttributeChange] = field(
        default_factory=list["PendingExportAttributeChange"]
    )
    unconfirmed: list[PendingExportAttributeChange] = field(
        default_factory=list["PendingExportAttributeChange"]
    )

    @property
    def delete_export(self) -> bool:
        return self.outcome is ReconciliationOutcome.CONFIRMED


def reconcile_pending_export(
    pending_export: PendingExport,
    cso: ConnectedSystemObject,
) -> ReconciliationResult:
    """Compare ``pending_export`` against the live state of ``cso``.

    Fully confirmed exports are reported for deletion. Otherwise the confirmed
    changes are dropped from the export, its error count goes up and it stays
    queued as ``ExportNotImported``. Exports not yet sent are skipped.
    """

    if not pending_export.awaiting_confirmation:
        return ReconciliationResult(outcome=ReconciliationOutcome.SKIPPED)

    if pending_export.change_type is PendingExportChangeType.DELETE:
        if cso.is_obsolete:
            return ReconciliationResult(outcome=ReconciliationOutcome.CONFIRMED)
        pending_export.record_unconfirmed()
        return ReconciliationResult(outcome=ReconciliationOutcome.UNCONFIRMED)

    result = ReconciliationResult(outcome=ReconciliationOutcome.CONFIRMED)
    for change in pending_export.attribute_changes:
        if is_change_confirmed(change, cso.values_for(change.attribute)):
            result.confirmed.append(change)
        else:
            result.unconfirmed.append(change)

    if not result.unconfirmed:
        log.debug("Pending export %s confirmed by %s", pending_export.id, cso.external_id)
        return result

    for change in result.confirmed:
        pending_export.remove_attribute_change(change)
    pending_export.record_unconfirmed()
    result.outcome = (
        ReconciliationOutcome.PARTIALLY_CONFIRMED
        if result.confirmed
        else ReconciliationOutcome.UNCONFIRMED
    )
    log.info(
        "Pending export %s for %s: %d change(s) not yet imported (attempt %d)",
        pending_export.id,
        cso.external_id,
        len(result.unconfirmed),
        pending_export.error_count,
    )
    return result


def is_change_confirmed(
    change: PendingExportAttributeChange,
    live_values: list[AttributePayload],
) -> bool:
    match change.change_type:
        case AttributeChangeType.REMOVE_ALL:
            return not live_values
        case AttributeChangeType.REMOVE if change.value is None:
            return not live_values
        case AttributeChangeType.REMOVE:
            return not any(_same_value(change.value, live) for live in live_values)
        case AttributeChangeType.UPDATE if change.value is None:
            return not live_values
        case AttributeChangeType.UPDATE:
            return len(live_values) == 1 and _same_value(change.value, live_values[0])
        case _:
            if change.value is None:
                return False
            return any(_same_value(change.value, live) for live in live_values)


def _same_value(expected: AttributePayload | None, live: AttributePayload) -> bool:
    if isinstance(expected, ReferenceValue) and isinstance(live, ReferenceValue):
        if expected.target_id is not None and expected.target_id == live.target_id:
            return True
        return (
            expected.unresolved_reference is not None
            and expected.unresolved_reference == live.unresolved_reference
        )
    return expected == live
