"""Import, sync and housekeeping runs against an in-memory SQLite database."""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

from idsync.domain.model import (
    AttributeFlowMapping,
    ObjectChangeType,
    ReferenceValue,
    RunProfile,
    RunType,
    TextValue,
)
from idsync.domain.sync import (
    CancellationSignal,
    perform_delta_sync,
    perform_full_import,
    perform_full_sync,
    run_housekeeping,
)
from tests.helpers.fakes import FakeConnector
from tests.helpers.sync_objects import (
    HR_SYSTEM_ID,
    FakeClock,
    imported_person,
    make_definitions,
    make_import_rule,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from idsync.adapters.sqlalchemy.unit_of_work import SqlAlchemySyncUnitOfWork
    from idsync.domain.model import ConnectedSystemObject
    from idsync.domain.ports import ImportedObject

    type UnitOfWorkFactory = Callable[[], SqlAlchemySyncUnitOfWork]
    type ChangeCounts = dict[ObjectChangeType, int]

DEFINITIONS = make_definitions(
    rules=[
        make_import_rule(
            flows=[
                AttributeFlowMapping(
                    target_attribute="employeeId", source_attributes=("employeeId",)
                ),
                AttributeFlowMapping(
                    target_attribute="displayName", source_attributes=("displayName",)
                ),
                AttributeFlowMapping(target_attribute="manager", source_attributes=("manager",)),
            ]
        )
    ]
)


def _profile(run_type: RunType) -> RunProfile:
    return RunProfile(connected_system_id=HR_SYSTEM_ID, run_type=run_type, page_size=2)


def _import(
    factory: UnitOfWorkFactory, records: list[ImportedObject], clock: FakeClock
) -> ChangeCounts:
    activity = perform_full_import(
        factory,
        DEFINITIONS,
        _profile(RunType.FULL_IMPORT),
        FakeConnector(records),
        CancellationSignal(),
        clock=clock,
    )
    return dict(activity.change_counts())


def _by_external_id(uow: SqlAlchemySyncUnitOfWork) -> dict[str, ConnectedSystemObject]:
    return {
        cso.external_id: cso
        for cso in uow.repositories.connected_system_objects.list_for_system(HR_SYSTEM_ID)
    }


def test_import_sync_and_housekeeping_round_trip(
    sqlite_unit_of_work: UnitOfWorkFactory,
) -> None:
    clock = FakeClock()
    records = [
        imported_person("E1", displayName="Ann", manager="E9"),
        imported_person("E9", displayName="Nina"),
        imported_person("E5", displayName="Sam"),
    ]

    assert _import(sqlite_unit_of_work, records, clock) == {ObjectChangeType.CREATED: 3}

    with sqlite_unit_of_work() as uow:
        objects = _by_external_id(uow)
        assert objects["E1"].values_for("manager") == [
            ReferenceValue(unresolved_reference="E9", target_id=objects["E9"].id)
        ]

    full = perform_full_sync(
        sqlite_unit_of_work,
        DEFINITIONS,
        _profile(RunType.FULL_SYNC),
        CancellationSignal(),
        clock=clock,
    )
    assert dict(full.change_counts()) == {ObjectChangeType.PROJECTED: 3}
    assert full.errors == []

    with sqlite_unit_of_work() as uow:
        objects = _by_external_id(uow)
        ann = objects["E1"].metaverse_object
        nina = objects["E9"].metaverse_object
        assert ann is not None
        assert nina is not None
        assert [av.value for av in ann.values_for("manager")] == [ReferenceValue(target_id=nina.id)]
        assert uow.repositories.watermarks.get(HR_SYSTEM_ID) is not None

    reimport = [
        imported_person("E1", displayName="Anne", manager="E9"),
        imported_person("E9", displayName="Nina"),
    ]
    assert _import(sqlite_unit_of_work, reimport, clock) == {
        ObjectChangeType.UPDATED: 1,
        ObjectChangeType.OBSOLETED: 1,
    }

    delta = perform_delta_sync(
        sqlite_unit_of_work,
        DEFINITIONS,
        _profile(RunType.DELTA_SYNC),
        CancellationSignal(),
        clock=clock,
    )
    assert sorted((item.external_id, item.change_type) for item in delta.items) == [
        ("E1", ObjectChangeType.ATTRIBUTE_FLOW),
        ("E5", ObjectChangeType.DELETED),
        ("E5", ObjectChangeType.DISCONNECTED),
    ]

    with sqlite_unit_of_work() as uow:
        objects = _by_external_id(uow)
        assert sorted(objects) == ["E1", "E9"]
        ann = objects["E1"].metaverse_object
        assert ann is not None
        assert [av.value for av in ann.values_for("displayName")] == [TextValue("Anne")]

    clock.advance(timedelta(minutes=1))
    assert run_housekeeping(sqlite_unit_of_work, batch_size=10, clock=clock) == 1
    assert run_housekeeping(sqlite_unit_of_work, batch_size=10, clock=clock) == 0


def test_delta_sync_without_changes_keeps_objects_untouched(
    sqlite_unit_of_work: UnitOfWorkFactory,
) -> None:
    clock = FakeClock()
    _import(sqlite_unit_of_work, [imported_person("E1", displayName="Ann")], clock)
    perform_full_sync(
        sqlite_unit_of_work,
        DEFINITIONS,
        _profile(RunType.FULL_SYNC),
        CancellationSignal(),
        clock=clock,
    )

    delta = perform_delta_sync(
        sqlite_unit_of_work,
        DEFINITIONS,
        _profile(RunType.DELTA_SYNC),
        CancellationSignal(),
        clock=clock,
    )

    assert delta.items == []
    assert not delta.cancelled
