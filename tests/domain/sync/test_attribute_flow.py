from __future__ import annotations

from uuid import uuid4

from idsync.domain.model import (
    AttributeFlowMapping,
    JoinType,
    MetaverseObjectAttributeValue,
    ReferenceValue,
    TextValue,
)
from idsync.domain.sync import AttributeFlowProcessor, is_reference_mapping, merge_mappings
from tests.helpers.sync_objects import (
    DIRECTORY_SYSTEM_ID,
    FIXED_NOW,
    HR_SYSTEM_ID,
    group_type,
    make_cso,
    make_mvo,
    person_type,
)

DISPLAY_NAME = AttributeFlowMapping(
    target_attribute="displayName", source_attributes=("displayName",)
)
MAIL = AttributeFlowMapping(target_attribute="mail", source_attributes=("mail",))
MANAGER = AttributeFlowMapping(target_attribute="manager", source_attributes=("manager",))
MEMBERS = AttributeFlowMapping(target_attribute="members", source_attributes=("members",))


def _no_references(_cso_id: object) -> None:
    return None


def test_flow_adds_missing_values_with_contributor() -> None:
    cso = make_cso("E1", values={"displayName": "Ann"})
    mvo = make_mvo()

    changes = AttributeFlowProcessor(_no_references).flow(cso, person_type(), DISPLAY_NAME, mvo)

    assert [(av.attribute, av.value, av.contributed_by_system_id) for av in changes.additions] == [
        ("displayName", TextValue("Ann"), HR_SYSTEM_ID)
    ]
    assert changes.removals == []


def test_flow_is_idempotent() -> None:
    cso = make_cso("E1", values={"mail": ["a@example.com", "b@example.com"]})
    mvo = make_mvo()
    processor = AttributeFlowProcessor(_no_references)

    processor.flow(cso, person_type(), MAIL, mvo).apply_to(mvo, FIXED_NOW)
    second = processor.flow(cso, person_type(), MAIL, mvo)

    assert second.is_empty
    assert len(mvo.values_for("mail")) == 2


def test_flow_replaces_stale_values_from_the_same_system() -> None:
    cso = make_cso("E1", values={"displayName": "Anne"})
    mvo = make_mvo({"displayName": TextValue("Ann")}, contributed_by=HR_SYSTEM_ID)

    changes = AttributeFlowProcessor(_no_references).flow(cso, person_type(), DISPLAY_NAME, mvo)
    changes.apply_to(mvo, FIXED_NOW)

    assert [av.value for av in mvo.values_for("displayName")] == [TextValue("Anne")]


def test_flow_never_removes_values_contributed_by_other_systems() -> None:
    cso = make_cso("E1")
    mvo = make_mvo({"displayName": TextValue("Dir")}, contributed_by=DIRECTORY_SYSTEM_ID)
    mvo.add_attribute_value(
        MetaverseObjectAttributeValue(attribute="displayName", value=TextValue("Admin"))
    )

    changes = AttributeFlowProcessor(_no_references).flow(cso, person_type(), DISPLAY_NAME, mvo)

    assert changes.is_empty


def test_flow_removes_own_values_when_source_is_cleared() -> None:
    cso = make_cso("E1")
    mvo = make_mvo({"displayName": TextValue("Ann")}, contributed_by=HR_SYSTEM_ID)

    changes = AttributeFlowProcessor(_no_references).flow(cso, person_type(), DISPLAY_NAME, mvo)

    assert [av.value for av in changes.removals] == [TextValue("Ann")]


def test_mapping_without_known_sources_is_skipped() -> None:
    mapping = AttributeFlowMapping(target_attribute="title", source_attributes=("jobTitle",))

    changes = AttributeFlowProcessor(_no_references).flow(
        make_cso("E1"), person_type(), mapping, make_mvo()
    )

    assert changes.is_empty
    assert changes.deferred == []


def test_reference_flows_as_metaverse_reference() -> None:
    manager_cso = make_cso("E9")
    manager_mvo = make_mvo()
    manager_cso.join_to(manager_mvo, JoinType.PROJECTED, FIXED_NOW)
    cso = make_cso("E1")
    cso.add_value("manager", ReferenceValue(unresolved_reference="E9", target_id=manager_cso.id))
    lookup = {manager_cso.id: manager_mvo.id}

    changes = AttributeFlowProcessor(lookup.get).flow(cso, person_type(), MANAGER, make_mvo())

    assert [av.value for av in changes.additions] == [ReferenceValue(target_id=manager_mvo.id)]


def test_unresolved_or_unjoined_references_defer_the_mapping() -> None:
    cso = make_cso("E1", values={"manager": "E9"})
    resolved_elsewhere = make_cso("E2")
    resolved_elsewhere.add_value(
        "manager", ReferenceValue(unresolved_reference="E9", target_id=uuid4())
    )
    processor = AttributeFlowProcessor(_no_references)

    unresolved = processor.flow(cso, person_type(), MANAGER, make_mvo())
    unjoined = processor.flow(resolved_elsewhere, person_type(), MANAGER, make_mvo())

    assert unresolved.deferred == ["manager"]
    assert unresolved.is_empty
    assert unjoined.deferred == ["manager"]


def test_is_reference_mapping_checks_source_types() -> None:
    assert is_reference_mapping(MANAGER, person_type())
    assert not is_reference_mapping(DISPLAY_NAME, person_type())


def test_unjoined_member_is_deferred_while_joined_members_flow() -> None:
    joined = {uuid4(): uuid4() for _ in range(2)}
    group = make_cso("G1", object_type=group_type())
    for cso_id in joined:
        group.add_value("members", ReferenceValue(unresolved_reference="E", target_id=cso_id))
    group.add_value("members", ReferenceValue(unresolved_reference="GONE"))
    group.add_value("members", ReferenceValue(unresolved_reference="E7", target_id=uuid4()))
    mvo = make_mvo(object_type="group")
    stale = MetaverseObjectAttributeValue(
        attribute="members",
        value=ReferenceValue(target_id=uuid4()),
        contributed_by_system_id=HR_SYSTEM_ID,
    )
    mvo.add_attribute_value(stale)

    changes = AttributeFlowProcessor(joined.get).flow(group, group_type(), MEMBERS, mvo)

    assert [av.value for av in changes.additions] == [
        ReferenceValue(target_id=mvo_id) for mvo_id in joined.values()
    ]
    assert changes.removals == [stale]
    assert changes.deferred == ["members"]


def test_merge_mappings_unions_sources_per_target() -> None:
    work = AttributeFlowMapping(target_attribute="mail", source_attributes=("mail",))
    private = AttributeFlowMapping(target_attribute="Mail", source_attributes=("displayName", "mail"))

    assert merge_mappings([work, DISPLAY_NAME, private]) == [
        AttributeFlowMapping(target_attribute="mail", source_attributes=("mail", "displayName")),
        DISPLAY_NAME,
    ]


def test_merged_mappings_onto_one_target_are_idempotent() -> None:
    cso = make_cso("E1", values={"displayName": "Ann", "mail": ["ann@example.com"]})
    mvo = make_mvo()
    processor = AttributeFlowProcessor(_no_references)
    (merged,) = merge_mappings(
        [
            AttributeFlowMapping(target_attribute="alias", source_attributes=("displayName",)),
            AttributeFlowMapping(target_attribute="alias", source_attributes=("mail",)),
        ]
    )

    processor.flow(cso, person_type(), merged, mvo).apply_to(mvo, FIXED_NOW)
    second = processor.flow(cso, person_type(), merged, mvo)

    assert second.is_empty
    assert [av.value for av in mvo.values_for("alias")] == [
        TextValue("Ann"),
        TextValue("ann@example.com"),
    ]
