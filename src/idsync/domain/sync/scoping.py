"""Scoping criteria evaluation shared by import and export rules.

Top-level groups of a rule are OR'ed; a rule without groups scopes in everything.
Inside a group ``All`` is AND and ``Any`` is OR over its criteria and child groups.
A criterion on an attribute without a value is false. Text comparisons ignore case.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from idsync.domain.model import (
    BooleanValue,
    ComparisonType,
    DateTimeValue,
    GuidValue,
    NumberValue,
    ScopingGroupType,
    SyncRuleDirection,
    TextValue,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from idsync.domain.model import (
        AttributePayload,
        ConnectedSystemObject,
        MetaverseObject,
        ScopingCriteriaGroup,
        ScopingCriterion,
        SyncRule,
    )

    type ValueLookup = Callable[[str], AttributePayload | None]

log = logging.getLogger(__name__)


def is_cso_in_scope(cso: ConnectedSystemObject, rule: SyncRule) -> bool:
    """Evaluate an import rule's scoping criteria against a connected system object."""

    if rule.direction is not SyncRuleDirection.IMPORT:
        log.warning(
            "Sync rule %s (%s) is not an import rule; object %s treated as out of scope",
            rule.id,
            rule.direction,
            cso.id,
        )
        return False
    return _evaluate_groups(rule.scoping_criteria_groups, cso.first_value)


def is_mvo_in_scope(mvo: MetaverseObject, rule: SyncRule) -> bool:
    """Evaluate an export rule's scoping criteria against a metaverse object."""

    if rule.direction is not SyncRuleDirection.EXPORT:
        log.warning(
            "Sync rule %s (%s) is not an export rule; object %s treated as out of scope",
            rule.id,
            rule.direction,
            mvo.id,
        )
        return False

    def lookup(attribute: str) -> AttributePayload | None:
        values = mvo.values_for(attribute)
        return values[0].value if values else None

    return _evaluate_groups(rule.scoping_criteria_groups, lookup)


def _evaluate_groups(groups: list[ScopingCriteriaGroup], lookup: ValueLookup) -> bool:
    if not groups:
        return True
    return any(_evaluate_group(group, lookup) for group in groups)


def _evaluate_group(group: ScopingCriteriaGroup, lookup: ValueLookup) -> bool:
    if group.is_empty:
        return True
    results = [_evaluate_criterion(criterion, lookup) for criterion in group.criteria]
    results.extend(_evaluate_group(child, lookup) for child in group.child_groups)
    if group.group_type is ScopingGroupType.ALL:
        return all(results)
    return any(results)


def _evaluate_criterion(criterion: ScopingCriterion, lookup: ValueLookup) -> bool:
    actual = lookup(criterion.attribute)
    if actual is None:
        return False
    expected = criterion.value
    match actual, expected:
        case TextValue(value=left), TextValue(value=right):
            return _compare_text(left, right, criterion.comparison)
        case NumberValue(value=left), NumberValue(value=right):
            return _compare_ordered((left > right) - (left < right), criterion.comparison)
        case DateTimeValue(value=left), DateTimeValue(value=right):
            return _compare_ordered((left > right) - (left < right), criterion.comparison)
        case (BooleanValue(), BooleanValue()) | (GuidValue(), GuidValue()):
            return _compare_equality(actual == expected, criterion.comparison)
        case _:
            log.debug(
                "Scoping criterion on %s compares %s with %s; treated as false",
                criterion.attribute,
                type(actual).__name__,
                type(expected).__name__,
            )
            return False


def _compare_text(actual: str, expected: str, comparison: ComparisonType) -> bool:
    left = actual.casefold()
    right = expected.casefold()
    match comparison:
        case ComparisonType.EQUALS:
            return left == right
        case ComparisonType.NOT_EQUALS:
            return left != right
        case ComparisonType.STARTS_WITH:
            return left.startswith(right)
        case ComparisonType.NOT_STARTS_WITH:
            return not left.startswith(right)
        case ComparisonType.ENDS_WITH:
            return left.endswith(right)
        case ComparisonType.NOT_ENDS_WITH:
            return not left.endswith(right)
        case ComparisonType.CONTAINS:
            return right in left
        case ComparisonType.NOT_CONTAINS:
            return right not in left
        case _:
            return False


def _compare_ordered(order: int, comparison: ComparisonType) -> bool:
    """Apply ``comparison`` to a three-way ordering result (-1, 0, 1)."""

    match comparison:
        case ComparisonType.EQUALS:
            return order == 0
        case ComparisonType.NOT_EQUALS:
            return order != 0
        case ComparisonType.LESS_THAN:
            return order < 0
        case ComparisonType.LESS_THAN_OR_EQUALS:
            return order <= 0
        case ComparisonType.GREATER_THAN:
            return order > 0
        case ComparisonType.GREATER_THAN_OR_EQUALS:
            return order >= 0
        case _:
            return False


def _compare_equality(equal: bool, comparison: ComparisonType) -> bool:  # noqa: FBT001
    match comparison:
        case ComparisonType.EQUALS:
            return equal
        case ComparisonType.NOT_EQUALS:
            return not equal
        case _:
            return False
