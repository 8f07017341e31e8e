from __future__ import annotations

import json
from datetime import timedelta
from typing import TYPE_CHECKING

import pytest

from idsync import app as app_module
from idsync.app import run_delta_sync, run_full_import, run_full_sync, run_housekeeping
from idsync.domain.model import ObjectChangeType, RunType
from tests.helpers.fakes import FakeConnector, FakeSyncStore
from tests.helpers.sync_objects import (
    FIXED_NOW,
    HR_SYSTEM_ID,
    imported_person,
    make_cso,
    make_definitions,
    make_mvo,
)

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture(autouse=True)
def no_database_startup(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    calls: list[str] = []
    monkeypatch.setattr(app_module, "startup", lambda: calls.append("startup"))
    return calls


def test_full_import_uses_configured_page_size(
    monkeypatch: pytest.MonkeyPatch, fake_store: FakeSyncStore, no_database_startup: list[str]
) -> None:
    monkeypatch.setenv("IDSYNC_PAGE_SIZE", "1")

    activity = run_full_import(
        HR_SYSTEM_ID,
        connector=FakeConnector([imported_person("E1"), imported_person("E2")]),
        definitions=make_definitions(),
        unit_of_work_factory=fake_store.unit_of_work,
    )

    assert activity.run_type is RunType.FULL_IMPORT
    assert activity.change_counts() == {ObjectChangeType.CREATED: 2}
    assert fake_store.connected_system_objects.add_all_calls == [1, 1]
    assert no_database_startup == []


def test_full_import_reads_records_file(tmp_path: Path, fake_store: FakeSyncStore) -> None:
    records = tmp_path / "hr.jsonl"
    records.write_text(
        json.dumps({"object_type": "person", "attributes": {"employeeId": "E1"}}) + "\n",
        encoding="utf-8",
    )

    activity = run_full_import(
        HR_SYSTEM_ID,
        records,
        definitions=make_definitions(),
        unit_of_work_factory=fake_store.unit_of_work,
        page_size=10,
    )

    assert [item.external_id for item in activity.items] == ["E1"]
    assert fake_store.commits == 1


def test_full_import_needs_records_or_connector(fake_store: FakeSyncStore) -> None:
    with pytest.raises(ValueError, match="records file or a connector"):
        run_full_import(
            HR_SYSTEM_ID,
            definitions=make_definitions(),
            unit_of_work_factory=fake_store.unit_of_work,
        )


def test_definitions_are_loaded_from_configured_path(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, fake_store: FakeSyncStore
) -> None:
    loaded: list[Path] = []
    definitions_path = tmp_path / "definitions.json"

    def fake_load(path: Path) -> object:
        loaded.append(path)
        return make_definitions()

    monkeypatch.setattr(app_module, "load_definitions", fake_load)
    monkeypatch.setenv("IDSYNC_DEFINITIONS", str(definitions_path))
    fake_store.connected_system_objects.add(make_cso("E1"))

    activity = run_full_sync(HR_SYSTEM_ID, unit_of_work_factory=fake_store.unit_of_work)

    assert loaded == [definitions_path]
    assert activity.change_counts() == {ObjectChangeType.PROJECTED: 1}


def test_delta_sync_after_full_sync_sees_nothing_new(fake_store: FakeSyncStore) -> None:
    definitions = make_definitions()
    fake_store.connected_system_objects.add(make_cso("E1"))
    run_full_sync(
        HR_SYSTEM_ID, definitions=definitions, unit_of_work_factory=fake_store.unit_of_work
    )

    activity = run_delta_sync(
        HR_SYSTEM_ID, definitions=definitions, unit_of_work_factory=fake_store.unit_of_work
    )

    assert activity.run_type is RunType.DELTA_SYNC
    assert activity.items == []


def test_housekeeping_defaults_to_database_and_configured_batch(
    monkeypatch: pytest.MonkeyPatch, fake_store: FakeSyncStore, no_database_startup: list[str]
) -> None:
    monkeypatch.setenv("IDSYNC_HOUSEKEEPING_BATCH_SIZE", "1")
    monkeypatch.setattr(app_module, "is_started", lambda: False)
    monkeypatch.setattr(app_module, "SqlAlchemySyncUnitOfWork", fake_store.unit_of_work)
    for offset in range(2):
        mvo = make_mvo()
        mvo.record_last_connector_disconnected(FIXED_NOW - timedelta(days=offset + 1), None)
        fake_store.metaverse_objects.add(mvo)

    assert run_housekeeping() == 1
    assert len(fake_store.metaverse_objects.items) == 1
    assert no_database_startup == ["startup"]
