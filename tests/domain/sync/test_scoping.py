from __future__ import annotations

from datetime import UTC, datetime

import pytest

from idsync.domain.model import (
    ComparisonType,
    DateTimeValue,
    NumberValue,
    ScopingCriteriaGroup,
    ScopingCriterion,
    ScopingGroupType,
    SyncRuleDirection,
    TextValue,
)
from idsync.domain.sync import is_cso_in_scope, is_mvo_in_scope
from tests.helpers.sync_objects import make_cso, make_import_rule, make_mvo


def _criterion(attribute: str, comparison: ComparisonType, value: object) -> ScopingCriterion:
    payload = value if not isinstance(value, str) else TextValue(value)
    return ScopingCriterion(attribute=attribute, comparison=comparison, value=payload)  # pyright: ignore[reportArgumentType]


def test_rule_without_groups_scopes_everything_in() -> None:
    assert is_cso_in_scope(make_cso("E1"), make_import_rule())


def test_all_group_requires_every_criterion() -> None:
    group = ScopingCriteriaGroup(
        group_type=ScopingGroupType.ALL,
        criteria=[
            _criterion("department", ComparisonType.EQUALS, "sales"),
            _criterion("displayName", ComparisonType.STARTS_WITH, "Ann"),
        ],
    )
    rule = make_import_rule(scoping=[group])

    assert is_cso_in_scope(make_cso("E1", values={"department": "Sales", "displayName": "Anna"}), rule)
    assert not is_cso_in_scope(
        make_cso("E2", values={"department": "Sales", "displayName": "Bob"}), rule
    )


def test_any_group_with_nested_all_group() -> None:
    nested = ScopingCriteriaGroup(
        group_type=ScopingGroupType.ALL,
        criteria=[
            _criterion("badge", ComparisonType.GREATER_THAN_OR_EQUALS, NumberValue(100)),
            _criterion("badge", ComparisonType.LESS_THAN, NumberValue(200)),
        ],
    )
    group = ScopingCriteriaGroup(
        group_type=ScopingGroupType.ANY,
        criteria=[_criterion("department", ComparisonType.EQUALS, "IT")],
        child_groups=[nested],
    )
    rule = make_import_rule(scoping=[group])

    assert is_cso_in_scope(make_cso("E1", values={"department": "it"}), rule)
    assert is_cso_in_scope(make_cso("E2", values={"department": "HR", "badge": 150}), rule)
    assert not is_cso_in_scope(make_cso("E3", values={"department": "HR", "badge": 250}), rule)


def test_top_level_groups_are_or_ed() -> None:
    rule = make_import_rule(
        scoping=[
            ScopingCriteriaGroup(criteria=[_criterion("department", ComparisonType.EQUALS, "HR")]),
            ScopingCriteriaGroup(criteria=[_criterion("department", ComparisonType.EQUALS, "IT")]),
        ]
    )

    assert is_cso_in_scope(make_cso("E1", values={"department": "IT"}), rule)
    assert not is_cso_in_scope(make_cso("E2", values={"department": "Ops"}), rule)


def test_empty_group_is_true() -> None:
    rule = make_import_rule(scoping=[ScopingCriteriaGroup()])

    assert is_cso_in_scope(make_cso("E1"), rule)


def test_criterion_on_missing_attribute_is_false_even_when_negated() -> None:
    rule = make_import_rule(
        scoping=[
            ScopingCriteriaGroup(
                criteria=[_criterion("department", ComparisonType.NOT_EQUALS, "HR")]
            )
        ]
    )

    assert not is_cso_in_scope(make_cso("E1"), rule)


@pytest.mark.parametrize(
    ("comparison", "expected"),
    [
        (ComparisonType.CONTAINS, True),
        (ComparisonType.NOT_CONTAINS, False),
        (ComparisonType.ENDS_WITH, True),
        (ComparisonType.NOT_ENDS_WITH, False),
        (ComparisonType.NOT_STARTS_WITH, True),
        (ComparisonType.GREATER_THAN, False),
    ],
)
def test_text_comparisons_ignore_case(comparison: ComparisonType, expected: bool) -> None:  # noqa: FBT001
    rule = make_import_rule(
        scoping=[ScopingCriteriaGroup(criteria=[_criterion("displayName", comparison, "SMITH")])]
    )

    assert is_cso_in_scope(make_cso("E1", values={"displayName": "Jo Smith"}), rule) is expected


def test_datetime_criteria_compare_chronologically() -> None:
    cutoff = DateTimeValue(datetime(2020, 1, 1, tzinfo=UTC))
    rule = make_import_rule(
        scoping=[
            ScopingCriteriaGroup(
                criteria=[_criterion("hireDate", ComparisonType.LESS_THAN_OR_EQUALS, cutoff)]
            )
        ]
    )

    assert is_cso_in_scope(make_cso("E1", values={"hireDate": "2019-06-01T00:00:00Z"}), rule)
    assert not is_cso_in_scope(make_cso("E2", values={"hireDate": "2021-06-01T00:00:00Z"}), rule)


def test_type_mismatch_is_false() -> None:
    rule = make_import_rule(
        scoping=[
            ScopingCriteriaGroup(
                criteria=[_criterion("badge", ComparisonType.EQUALS, "100")]
            )
        ]
    )

    assert not is_cso_in_scope(make_cso("E1", values={"badge": 100}), rule)


def test_only_first_value_of_multi_valued_attribute_is_compared() -> None:
    rule = make_import_rule(
        scoping=[
            ScopingCriteriaGroup(
                criteria=[_criterion("mail", ComparisonType.ENDS_WITH, "@example.org")]
            )
        ]
    )

    cso = make_cso("E1", values={"mail": ["first@example.com", "second@example.org"]})

    assert not is_cso_in_scope(cso, rule)


def test_wrong_direction_is_out_of_scope(caplog: pytest.LogCaptureFixture) -> None:
    import_rule = make_import_rule()
    export_rule = make_import_rule(2)
    export_rule.direction = SyncRuleDirection.EXPORT

    assert not is_cso_in_scope(make_cso("E1"), export_rule)
    assert not is_mvo_in_scope(make_mvo(), import_rule)
    assert "not an import rule" in caplog.text


def test_export_rule_scopes_metaverse_objects() -> None:
    rule = make_import_rule(
        scoping=[
            ScopingCriteriaGroup(
                criteria=[_criterion("department", ComparisonType.EQUALS, "Sales")]
            )
        ]
    )
    rule.direction = SyncRuleDirection.EXPORT

    assert is_mvo_in_scope(make_mvo({"department": TextValue("SALES")}), rule)
    assert not is_mvo_in_scope(make_mvo({"department": TextValue("Ops")}), rule)
