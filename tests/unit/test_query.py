"""Tests for query operations."""
import dataclasses

import pytest

from medichannel.query import Collection, Select, eq, matches


def test_eq_keeps_argument_order():
    assert eq(doctor_id="d1", appointment_date="2025-01-15") == (
        ("doctor_id", "d1"),
        ("appointment_date", "2025-01-15"),
    )


def test_matches_requires_every_predicate():
    record = {"doctor_id": "d1", "status": "pending"}
    assert matches(record, eq(doctor_id="d1"))
    assert matches(record, eq(doctor_id="d1", status="pending"))
    assert not matches(record, eq(doctor_id="d1", status="cancelled"))
    assert matches(record, ())


def test_operations_are_immutable():
    select = Select(Collection.USERS, eq(role="doctor"))
    with pytest.raises(dataclasses.FrozenInstanceError):
        select.single = True


def test_operations_compare_by_value():
    assert Select(Collection.USERS, eq(id="1"), single=True) == Select(
        Collection.USERS, eq(id="1"), single=True
    )
