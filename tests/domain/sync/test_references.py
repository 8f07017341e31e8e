from __future__ import annotations

from datetime import timedelta

import pytest

from idsync.domain.model import ReferenceValue
from idsync.domain.sync import AmbiguousReferenceError, ReferenceResolver
from tests.helpers.fakes import FakeConnectedSystemObjectRepository
from tests.helpers.sync_objects import (
    DIRECTORY_SYSTEM_ID,
    FIXED_NOW,
    group_type,
    make_cso,
)


def test_resolves_reference_to_object_in_same_system() -> None:
    manager = make_cso("E9")
    employee = make_cso("E1", values={"manager": "E9"})
    resolver = ReferenceResolver(FakeConnectedSystemObjectRepository([manager, employee]))
    later = FIXED_NOW + timedelta(minutes=1)

    resolved = resolver.resolve(employee, later)

    assert resolved == 1
    assert employee.first_value("manager") == ReferenceValue(
        unresolved_reference="E9", target_id=manager.id
    )
    assert employee.last_updated == later


def test_unresolvable_reference_stays_unresolved() -> None:
    employee = make_cso("E1", values={"manager": "E404"})
    resolver = ReferenceResolver(FakeConnectedSystemObjectRepository([employee]))

    assert resolver.resolve(employee, FIXED_NOW) == 0
    assert employee.first_value("manager") == ReferenceValue(unresolved_reference="E404")
    assert employee.last_updated is None


def test_references_never_cross_connected_systems() -> None:
    elsewhere = make_cso("E9", system_id=DIRECTORY_SYSTEM_ID)
    employee = make_cso("E1", values={"manager": "E9"})
    resolver = ReferenceResolver(FakeConnectedSystemObjectRepository([elsewhere, employee]))

    assert resolver.resolve(employee, FIXED_NOW) == 0


def test_obsolete_targets_are_ignored() -> None:
    manager = make_cso("E9")
    manager.mark_obsolete(FIXED_NOW)
    employee = make_cso("E1", values={"manager": "E9"})
    resolver = ReferenceResolver(FakeConnectedSystemObjectRepository([manager, employee]))

    assert resolver.resolve(employee, FIXED_NOW) == 0


def test_same_external_id_in_two_object_types_is_ambiguous() -> None:
    person = make_cso("X1")
    group = make_cso("X1", object_type=group_type())
    employee = make_cso("E1", values={"manager": "X1"})
    resolver = ReferenceResolver(FakeConnectedSystemObjectRepository([person, group, employee]))

    with pytest.raises(AmbiguousReferenceError) as excinfo:
        resolver.resolve(employee, FIXED_NOW)

    assert excinfo.value.attribute == "manager"
    assert employee.first_value("manager") == ReferenceValue(unresolved_reference="X1")


def test_multi_valued_references_resolve_individually() -> None:
    alice = make_cso("E1")
    members = make_cso("G1", object_type=group_type(), values={"members": ["E1", "E2"]})
    resolver = ReferenceResolver(FakeConnectedSystemObjectRepository([alice, members]))

    assert resolver.resolve(members, FIXED_NOW) == 1
    assert members.values_for("members") == [
        ReferenceValue(unresolved_reference="E1", target_id=alice.id),
        ReferenceValue(unresolved_reference="E2"),
    ]
