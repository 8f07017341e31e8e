from __future__ import annotations

from datetime import timedelta

import pytest

from idsync.domain.model import (
    Activity,
    ConnectedSystemObjectStatus,
    ExecutionItem,
    ExecutionItemErrorType,
    JoinType,
    MetaverseObjectAttributeValue,
    ObjectChangeType,
    PendingChangeSet,
    PendingExport,
    PendingExportChangeType,
    PendingExportStatus,
    RunProfile,
    RunType,
    SyncRuleDirection,
    TextValue,
    UnknownDefinitionError,
)
from tests.helpers.sync_objects import (
    FIXED_NOW,
    HR_SYSTEM_ID,
    make_cso,
    make_definitions,
    make_import_rule,
    make_mvo,
)


def test_join_and_disconnect_keep_both_sides_in_step() -> None:
    cso = make_cso("E1")
    mvo = make_mvo()
    later = FIXED_NOW + timedelta(minutes=5)

    cso.join_to(mvo, JoinType.JOINED, later)

    assert cso.is_joined
    assert cso.metaverse_object is mvo
    assert mvo.connected_system_objects == (cso,)
    assert mvo.connector_from(HR_SYSTEM_ID) is cso
    assert cso.date_joined == later
    assert cso.last_updated == later

    released = cso.disconnect(later + timedelta(minutes=1))

    assert released is mvo
    assert not cso.is_joined
    assert cso.join_type is JoinType.NOT_JOINED
    assert cso.date_joined is None
    assert mvo.connected_system_objects == ()
    assert cso.last_updated == later + timedelta(minutes=1)


def test_disconnect_without_join_is_a_no_op() -> None:
    cso = make_cso("E1")

    assert cso.disconnect(FIXED_NOW) is None
    assert cso.last_updated is None


def test_mark_obsolete_always_stamps_last_updated() -> None:
    cso = make_cso("E1")
    later = FIXED_NOW + timedelta(hours=1)

    cso.mark_obsolete(later)

    assert cso.is_obsolete
    assert cso.last_updated == later

    cso.restore(later + timedelta(hours=1))
    assert cso.status is ConnectedSystemObjectStatus.NORMAL
    assert cso.last_updated == later + timedelta(hours=1)


def test_values_for_ignores_attribute_case() -> None:
    cso = make_cso("E1", values={"mail": ["a@example.com", "b@example.com"]})

    assert cso.values_for("MAIL") == [TextValue("a@example.com"), TextValue("b@example.com")]
    assert cso.first_value("displayname") is None


def test_pending_change_set_applies_once_and_drains() -> None:
    mvo = make_mvo({"displayName": TextValue("Old")}, contributed_by=HR_SYSTEM_ID)
    old_value = mvo.values_for("displayName")[0]
    changes = PendingChangeSet()
    changes.removals.append(old_value)
    changes.additions.append(
        MetaverseObjectAttributeValue(attribute="displayName", value=TextValue("New"))
    )

    assert changes.apply_to(mvo, FIXED_NOW)
    assert [av.value for av in mvo.values_for("displayName")] == [TextValue("New")]
    assert mvo.last_updated == FIXED_NOW
    assert changes.is_empty
    assert not changes.apply_to(mvo, FIXED_NOW + timedelta(seconds=1))
    assert mvo.last_updated == FIXED_NOW


def test_pending_change_set_extend_skips_duplicate_removals() -> None:
    mvo = make_mvo({"displayName": TextValue("Old")})
    value = mvo.values_for("displayName")[0]
    first = PendingChangeSet(removals=[value])
    second = PendingChangeSet(removals=[value], deferred=["manager"])

    first.extend(second)

    assert first.removals == [value]
    assert first.deferred == ["manager"]


def test_pending_change_set_extend_skips_already_staged_additions() -> None:
    mvo = make_mvo()
    first = PendingChangeSet(
        additions=[
            MetaverseObjectAttributeValue(
                attribute="mail", value=TextValue("ann@example.com"), contributed_by_system_id=1
            )
        ]
    )
    second = PendingChangeSet(
        additions=[
            MetaverseObjectAttributeValue(
                attribute="Mail", value=TextValue("ann@example.com"), contributed_by_system_id=1
            ),
            MetaverseObjectAttributeValue(
                attribute="mail", value=TextValue("a.n@example.com"), contributed_by_system_id=1
            ),
        ]
    )

    first.extend(second)
    first.apply_to(mvo, FIXED_NOW)

    assert [av.value for av in mvo.values_for("mail")] == [
        TextValue("ann@example.com"),
        TextValue("a.n@example.com"),
    ]


def test_unconfirmed_create_export_turns_into_update() -> None:
    pending_export = PendingExport(
        connected_system_id=HR_SYSTEM_ID,
        connected_system_object_id=None,
        change_type=PendingExportChangeType.CREATE,
        status=PendingExportStatus.EXPORTED,
    )

    pending_export.record_unconfirmed()

    assert pending_export.change_type is PendingExportChangeType.UPDATE
    assert pending_export.status is PendingExportStatus.EXPORT_NOT_IMPORTED
    assert pending_export.error_count == 1
    assert pending_export.awaiting_confirmation


def test_run_profile_requires_positive_page_size() -> None:
    with pytest.raises(ValueError, match="page_size"):
        RunProfile(connected_system_id=1, run_type=RunType.FULL_SYNC, page_size=0)


def test_activity_counts_changes_and_errors() -> None:
    activity = Activity(run_type=RunType.FULL_SYNC, connected_system_id=1)
    activity.record(ExecutionItem(change_type=ObjectChangeType.PROJECTED))
    activity.record(ExecutionItem(change_type=ObjectChangeType.PROJECTED))
    activity.record(ExecutionItem(error_type=ExecutionItemErrorType.AMBIGUOUS_MATCH))

    activity.finish(FIXED_NOW)

    assert activity.change_counts()[ObjectChangeType.PROJECTED] == 2
    assert activity.error_counts()[ExecutionItemErrorType.AMBIGUOUS_MATCH] == 1
    assert len(activity.errors) == 1
    assert activity.completed == FIXED_NOW
    assert "projected=2" in activity.summary()


def test_import_rules_are_enabled_import_rules_in_priority_order() -> None:
    low = make_import_rule(1, priority=5)
    high = make_import_rule(2, priority=1)
    disabled = make_import_rule(3, enabled=False)
    export = make_import_rule(4)
    export.direction = SyncRuleDirection.EXPORT
    other_type = make_import_rule(5, object_type="group", metaverse_object_type="group")
    definitions = make_definitions(rules=[low, high, disabled, export, other_type])

    assert definitions.import_rules_for(HR_SYSTEM_ID, "PERSON") == [high, low]


def test_unknown_definitions_raise_lookup_errors() -> None:
    definitions = make_definitions()

    with pytest.raises(UnknownDefinitionError):
        definitions.connected_system(99)
    with pytest.raises(UnknownDefinitionError):
        definitions.metaverse_object_type("device")
    assert definitions.object_type(HR_SYSTEM_ID, "device") is None
