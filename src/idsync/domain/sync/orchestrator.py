"""Run orchestration: full import, full sync, delta sync and housekeeping.

Objects are processed strictly one after another; join conflicts and export
reconciliation depend on seeing the effects of earlier objects in the same run.
Per-object ``SyncObjectError``s are recorded on the activity and the run moves
on. Anything else propagates and the unit of work rolls back its open work.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from idsync.domain.model import (
    Activity,
    ConnectedSystemObjectStatus,
    ExecutionItem,
    ImportChangeType,
    InboundOutOfScopeAction,
    ObjectChangeType,
    PendingChangeSet,
    RunType,
    utc_now,
)
from idsync.domain.sync.attribute_flow import (
    AttributeFlowProcessor,
    is_reference_mapping,
    merge_mappings,
)
from idsync.domain.sync.deletion import delete_eligible_metaverse_objects
from idsync.domain.sync.errors import DuplicateConnectedSystemObjectError, SyncObjectError
from idsync.domain.sync.import_normalizer import (
    apply_to_connected_system_object,
    create_connected_system_object,
    normalize_imported_object,
)
from idsync.domain.sync.joins import JoinProjectionEngine
from idsync.domain.sync.pending_exports import reconcile_pending_export
from idsync.domain.sync.references import ReferenceResolver
from idsync.domain.sync.scoping import is_cso_in_scope
from idsync.domain.sync.watermark import MIN_WATERMARK, iter_modified_pages

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime
    from uuid import UUID

    from idsync.domain.model import (
        AttributeFlowMapping,
        ConnectedSystem,
        ConnectedSystemObject,
        ConnectedSystemObjectType,
        PendingExport,
        RunProfile,
        SyncDefinitions,
        SyncRule,
    )
    from idsync.domain.ports import ImportConnector, SyncRepositories, SyncUnitOfWork
    from idsync.domain.sync.cancellation import CancellationSignal

    type Clock = Callable[[], datetime]
    type UnitOfWorkFactory = Callable[[], SyncUnitOfWork]
    type _ReferenceFlow = tuple[
        ConnectedSystemObject, ConnectedSystemObjectType, AttributeFlowMapping
    ]

log = logging.getLogger(__name__)


def _require_run_type(profile: RunProfile, expected: RunType) -> None:
    if profile.run_type is not expected:
        raise ValueError(f"Run profile is {profile.run_type}, expected {expected}")


def _record_error(activity: Activity, error: SyncObjectError, cso: ConnectedSystemObject | None = None) -> None:
    log.warning("%s: %s", error.error_type, error)
    activity.record(
        ExecutionItem(
            error_type=error.error_type,
            message=str(error),
            connected_system_object_id=cso.id if cso is not None else None,
            object_type=cso.object_type if cso is not None else error.object_type,
            external_id=cso.external_id if cso is not None else error.external_id,
        )
    )


def _record_change(
    activity: Activity,
    change_type: ObjectChangeType,
    cso: ConnectedSystemObject,
) -> ExecutionItem:
    return activity.record(
        ExecutionItem(
            change_type=change_type,
            connected_system_object_id=cso.id,
            object_type=cso.object_type,
            external_id=cso.external_id,
        )
    )


# Full import ------------------------------------------------------------------


def perform_full_import(  # noqa: C901, PLR0912
    uow_factory: UnitOfWorkFactory,
    definitions: SyncDefinitions,
    profile: RunProfile,
    connector: ImportConnector,
    cancellation: CancellationSignal,
    *,
    clock: Clock = utc_now,
) -> Activity:
    """Import every object the connector yields into the connected system's object set.

    Objects of an imported type that the connector no longer returns are marked
    obsolete, unless the connector returned nothing at all. Connector errors
    propagate and nothing from the run is persisted.
    """

    _require_run_type(profile, RunType.FULL_IMPORT)
    system = definitions.connected_system(profile.connected_system_id)
    activity = Activity(run_type=profile.run_type, connected_system_id=system.id, started=clock())
    log.info("Full import for connected system %s (%s) started", system.id, system.name)

    with uow_factory() as uow:
        repositories = uow.repositories
        existing = _index_existing_objects(repositories, system)
        seen: set[tuple[str, str]] = set()
        imported_types: set[str] = set()
        to_add: list[ConnectedSystemObject] = []
        received = 0
        cancelled = False

        for imported in connector():
            if cancellation.is_cancelled:
                cancelled = True
                break
            received += 1
            now = clock()
            try:
                normalized = normalize_imported_object(imported, system)
            except SyncObjectError as exc:
                _record_error(activity, exc)
                continue

            key = (normalized.object_type.name.casefold(), normalized.external_id)
            seen.add(key)
            imported_types.add(key[0])
            cso = existing.get(key)

            if normalized.change_type is ImportChangeType.DELETE:
                if cso is not None and not cso.is_obsolete:
                    cso.mark_obsolete(now)
                    _record_change(activity, ObjectChangeType.OBSOLETED, cso)
                continue

            if cso is None:
                cso = create_connected_system_object(normalized, system.id, now)
                existing[key] = cso
                to_add.append(cso)
                _record_change(activity, ObjectChangeType.CREATED, cso)
                if len(to_add) >= profile.page_size:
                    repositories.connected_system_objects.add_all(to_add)
                    to_add = []
                continue

            changed = apply_to_connected_system_object(cso, normalized, now)
            if cso.status is not ConnectedSystemObjectStatus.NORMAL:
                cso.restore(now)
                changed = True
            if changed:
                _record_change(activity, ObjectChangeType.UPDATED, cso)

        if to_add:
            repositories.connected_system_objects.add_all(to_add)

        if cancellation.is_cancelled:
            cancelled = True
        if not cancelled:
            if received:
                _obsolete_missing_objects(activity, existing, seen, imported_types, clock())
            else:
                log.info("Connector returned no objects; skipping deletion detection")
            _resolve_references(activity, repositories, system, clock())

        uow.commit()

    activity.finish(clock(), cancelled=cancelled)
    log.info("Full import for connected system %s finished: %s", system.id, activity.summary())
    return activity


def _index_existing_objects(
    repositories: SyncRepositories,
    system: ConnectedSystem,
) -> dict[tuple[str, str], ConnectedSystemObject]:
    existing: dict[tuple[str, str], ConnectedSystemObject] = {}
    for cso in repositories.connected_system_objects.list_for_system(system.id):
        key = (cso.object_type.casefold(), cso.external_id)
        if key in existing:
            raise DuplicateConnectedSystemObjectError(system.id, cso.object_type, cso.external_id)
        existing[key] = cso
    return existing


def _obsolete_missing_objects(
    activity: Activity,
    existing: dict[tuple[str, str], ConnectedSystemObject],
    seen: set[tuple[str, str]],
    imported_types: set[str],
    now: datetime,
) -> None:
    obsoleted = 0
    for key, cso in existing.items():
        if key in seen or key[0] not in imported_types:
            continue
        if cso.status is not ConnectedSystemObjectStatus.NORMAL:
            continue
        cso.mark_obsolete(now)
        _record_change(activity, ObjectChangeType.OBSOLETED, cso)
        obsoleted += 1
    if obsoleted:
        log.info("Marked %d object(s) obsolete after full import", obsoleted)


def _resolve_references(
    activity: Activity,
    repositories: SyncRepositories,
    system: ConnectedSystem,
    now: datetime,
) -> None:
    resolver = ReferenceResolver(repositories.connected_system_objects)
    resolved = 0
    for cso in repositories.connected_system_objects.list_with_unresolved_references(system.id):
        try:
            resolved += resolver.resolve(cso, now)
        except SyncObjectError as exc:
            _record_error(activity, exc, cso)
    log.info("Resolved %d reference(s) in connected system %s", resolved, system.id)


# Full and delta sync ----------------------------------------------------------


def perform_full_sync(
    uow_factory: UnitOfWorkFactory,
    definitions: SyncDefinitions,
    profile: RunProfile,
    cancellation: CancellationSignal,
    *,
    clock: Clock = utc_now,
) -> Activity:
    """Synchronise every object of the connected system into the metaverse."""

    _require_run_type(profile, RunType.FULL_SYNC)
    return _perform_sync(uow_factory, definitions, profile, cancellation, clock, full=True)


def perform_delta_sync(
    uow_factory: UnitOfWorkFactory,
    definitions: SyncDefinitions,
    profile: RunProfile,
    cancellation: CancellationSignal,
    *,
    clock: Clock = utc_now,
) -> Activity:
    """Synchronise only objects created or updated after the stored watermark."""

    _require_run_type(profile, RunType.DELTA_SYNC)
    return _perform_sync(uow_factory, definitions, profile, cancellation, clock, full=False)


def _perform_sync(  # noqa: PLR0913
    uow_factory: UnitOfWorkFactory,
    definitions: SyncDefinitions,
    profile: RunProfile,
    cancellation: CancellationSignal,
    clock: Clock,
    *,
    full: bool,
) -> Activity:
    system = definitions.connected_system(profile.connected_system_id)
    activity = Activity(run_type=profile.run_type, connected_system_id=system.id, started=clock())
    log.info("%s for connected system %s (%s) started", profile.run_type, system.id, system.name)

    with uow_factory() as uow:
        repositories = uow.repositories
        watermark = MIN_WATERMARK
        if not full:
            watermark = repositories.watermarks.get(system.id) or MIN_WATERMARK
        sync_pass = _SyncPass(definitions, system, repositories, activity, clock)

        cancelled = False
        for page in iter_modified_pages(
            repositories.connected_system_objects,
            system.id,
            watermark,
            profile.page_size,
            cancellation,
        ):
            log.debug("Processing page %d of %d", page.page, page.total_pages)
            for cso in page.results:
                if cancellation.is_cancelled:
                    cancelled = True
                    break
                sync_pass.process(cso)
            sync_pass.finish_page()
            uow.commit()
            if cancelled:
                break

        if cancellation.is_cancelled:
            cancelled = True
        if not cancelled:
            sync_pass.retry_deferred_references()
            sync_pass.delete_obsolete_objects()
            repositories.watermarks.set(system.id, clock())
        uow.commit()

    activity.finish(clock(), cancelled=cancelled)
    log.info(
        "%s for connected system %s finished: %s", profile.run_type, system.id, activity.summary()
    )
    return activity


class _SyncPass:
    """State of one full or delta sync run over a connected system."""

    def __init__(
        self,
        definitions: SyncDefinitions,
        system: ConnectedSystem,
        repositories: SyncRepositories,
        activity: Activity,
        clock: Clock,
    ) -> None:
        self._definitions = definitions
        self._system = system
        self._repositories = repositories
        self._activity = activity
        self._clock = clock
        self._joins = JoinProjectionEngine(definitions, repositories.metaverse_objects)
        self._flow = AttributeFlowProcessor(self._metaverse_id_for)
        self._page_items: dict[UUID, ExecutionItem] = {}
        self._recorded: set[UUID] = set()
        self._deferred_references: list[_ReferenceFlow] = []
        self._retry_references: list[_ReferenceFlow] = []
        self._exports_to_delete: list[PendingExport] = []
        self._obsolete_to_delete: list[ConnectedSystemObject] = []

    def process(self, cso: ConnectedSystemObject) -> None:
        object_type = self._system.object_type(cso.object_type)
        if object_type is None:
            log.warning("Skipping %s: object type %r is no longer defined", cso.id, cso.object_type)
            return
        rules = self._definitions.import_rules_for(self._system.id, cso.object_type)
        now = self._clock()
        try:
            self._reconcile_exports(cso)
            if cso.is_obsolete:
                self._process_obsolete(cso, object_type, rules, now)
            elif cso.status is ConnectedSystemObjectStatus.NORMAL:
                self._process_active(cso, object_type, rules, now)
        except SyncObjectError as exc:
            _record_error(self._activity, exc, cso)

    def finish_page(self) -> None:
        """Flow reference mappings for the page, then flush batched export deletions."""

        deferred = self._deferred_references
        self._deferred_references = []
        self._retry_references.extend(self._flow_references(deferred))

        if self._exports_to_delete:
            self._repositories.pending_exports.delete_all(self._exports_to_delete)
            self._exports_to_delete = []
        self._page_items = {}

    def retry_deferred_references(self) -> None:
        """Flow references whose targets joined on a later page of this run.

        Runs after the final page so a delta run does not leave them for a later
        full sync. Objects already reported this run get no second item.
        """

        retry = self._retry_references
        self._retry_references = []
        if not retry:
            return
        still_deferred = self._flow_references(retry, report_once_per_run=True)
        self._page_items = {}
        if still_deferred:
            log.info(
                "%d reference mapping(s) still wait for their targets to join", len(still_deferred)
            )

    def _flow_references(
        self,
        entries: list[_ReferenceFlow],
        *,
        report_once_per_run: bool = False,
    ) -> list[_ReferenceFlow]:
        """Apply reference mappings per object; returns the entries with values left deferred."""

        by_object: dict[UUID, tuple[ConnectedSystemObject, PendingChangeSet]] = {}
        still_deferred: list[_ReferenceFlow] = []
        for entry in entries:
            cso, object_type, mapping = entry
            mvo = cso.metaverse_object
            if mvo is None or cso.is_obsolete:
                continue
            _, changes = by_object.setdefault(cso.id, (cso, PendingChangeSet()))
            flowed = self._flow.flow(cso, object_type, mapping, mvo)
            if flowed.deferred:
                still_deferred.append(entry)
            changes.extend(flowed)

        now = self._clock()
        for cso, changes in by_object.values():
            mvo = cso.metaverse_object
            if mvo is None or not changes.apply_to(mvo, now):
                continue
            if report_once_per_run and cso.id in self._recorded:
                continue
            self._record_page_change(ObjectChangeType.ATTRIBUTE_FLOW, cso)
        return still_deferred

    def delete_obsolete_objects(self) -> None:
        """Delete obsolete objects with their pending exports.

        Objects still joined at this point kept their join under ``RemainJoined``;
        they leave the metaverse object without deletion bookkeeping.
        """

        doomed = [cso for cso in self._obsolete_to_delete if cso.is_obsolete]
        self._obsolete_to_delete = []
        if not doomed:
            return
        now = self._clock()
        exports: list[PendingExport] = []
        for cso in doomed:
            cso.disconnect(now)
            exports.extend(self._repositories.pending_exports.list_for_object(cso.id))
            _record_change(self._activity, ObjectChangeType.DELETED, cso)
        if exports:
            self._repositories.pending_exports.delete_all(exports)
        self._repositories.connected_system_objects.delete_all(doomed)
        log.info("Deleted %d obsolete connected system object(s)", len(doomed))

    # Per-object steps

    def _reconcile_exports(self, cso: ConnectedSystemObject) -> None:
        for pending_export in self._repositories.pending_exports.list_for_object(cso.id):
            result = reconcile_pending_export(pending_export, cso)
            if result.delete_export:
                self._exports_to_delete.append(pending_export)

    def _process_obsolete(
        self,
        cso: ConnectedSystemObject,
        object_type: ConnectedSystemObjectType,
        rules: list[SyncRule],
        now: datetime,
    ) -> None:
        if cso.is_joined:
            if self._out_of_scope_action(rules) is InboundOutOfScopeAction.REMAIN_JOINED:
                log.debug("Obsolete %s is deleted without disconnect handling", cso.external_id)
                self._obsolete_to_delete.append(cso)
                return
            self._joins.disconnect(
                cso,
                now,
                remove_contributed_attributes=object_type.remove_contributed_attributes_on_obsoletion,
            )
            self._record_page_change(ObjectChangeType.DISCONNECTED, cso)
        self._obsolete_to_delete.append(cso)

    def _process_active(
        self,
        cso: ConnectedSystemObject,
        object_type: ConnectedSystemObjectType,
        rules: list[SyncRule],
        now: datetime,
    ) -> None:
        if not rules:
            return
        in_scope = [rule for rule in rules if is_cso_in_scope(cso, rule)]
        if not in_scope:
            self._process_out_of_scope(cso, object_type, rules, now)
            return

        outcome = self._joins.join_or_project(cso, in_scope, now)
        mvo = cso.metaverse_object
        if mvo is None:
            return

        mappings = merge_mappings(
            mapping
            for rule in in_scope
            if rule.metaverse_object_type.casefold() == mvo.object_type.casefold()
            for mapping in rule.attribute_flow_mappings
        )
        changes = PendingChangeSet()
        for mapping in mappings:
            if is_reference_mapping(mapping, object_type):
                self._deferred_references.append((cso, object_type, mapping))
                continue
            changes.extend(self._flow.flow(cso, object_type, mapping, mvo))
        flowed = changes.apply_to(mvo, now)

        if outcome.change_type is not None:
            self._record_page_change(outcome.change_type, cso)
        elif flowed:
            self._record_page_change(ObjectChangeType.ATTRIBUTE_FLOW, cso)

    def _process_out_of_scope(
        self,
        cso: ConnectedSystemObject,
        object_type: ConnectedSystemObjectType,
        rules: list[SyncRule],
        now: datetime,
    ) -> None:
        if not cso.is_joined:
            return
        if self._out_of_scope_action(rules) is InboundOutOfScopeAction.REMAIN_JOINED:
            self._record_page_change(ObjectChangeType.OUT_OF_SCOPE_RETAIN_JOIN, cso)
            return
        self._joins.disconnect(
            cso,
            now,
            remove_contributed_attributes=object_type.remove_contributed_attributes_on_obsoletion,
        )
        self._record_page_change(ObjectChangeType.DISCONNECTED_OUT_OF_SCOPE, cso)

    # Helpers

    @staticmethod
    def _out_of_scope_action(rules: list[SyncRule]) -> InboundOutOfScopeAction:
        for rule in rules:
            if rule.has_scoping:
                return rule.inbound_out_of_scope_action
        return rules[0].inbound_out_of_scope_action if rules else InboundOutOfScopeAction.DISCONNECT

    def _record_page_change(self, change_type: ObjectChangeType, cso: ConnectedSystemObject) -> None:
        if cso.id in self._page_items:
            return
        self._page_items[cso.id] = _record_change(self._activity, change_type, cso)
        self._recorded.add(cso.id)

    def _metaverse_id_for(self, cso_id: UUID) -> UUID | None:
        target = self._repositories.connected_system_objects.get(cso_id)
        if target is None or target.metaverse_object is None:
            return None
        return target.metaverse_object.id


# Housekeeping -----------------------------------------------------------------


def run_housekeeping(
    uow_factory: UnitOfWorkFactory,
    *,
    batch_size: int,
    clock: Clock = utc_now,
) -> int:
    """Delete up to ``batch_size`` metaverse objects past their deletion date."""

    with uow_factory() as uow:
        deleted = delete_eligible_metaverse_objects(
            uow.repositories.metaverse_objects, clock(), batch_size
        )
        uow.commit()
    return len(deleted)
