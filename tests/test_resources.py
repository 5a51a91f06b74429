"""Tests for the technician roster."""

from datetime import date

import pytest

from fleetplan.domain.mutations import AddTechnician, SetAvailability
from fleetplan.services.resources import ResourceStore


@pytest.fixture
def store():
    return ResourceStore().seed_default(date(2025, 8, 22), days=7)


def test_seed_default(store):
    assert [t.id for t in store.technicians] == ["T01", "T02", "T03"]
    assert len(store.availability) == 21
    assert store.available_hours("T01", "2025-08-22") == 8.0
    assert store.available_hours("T01", "2025-08-29") == 0.0
    assert [t.id for t in store.technicians_with_skill("Mechanic")] == ["T01", "T02"]


def test_add_technician(store):
    notes = store.apply([AddTechnician(skill="AutoElec", name="Dana K", hours_per_day=6)])
    assert notes == ["Added technician T04 (Dana K, AutoElec, 6h/day)"]
    assert store.available_hours("T04", "2025-08-25") == 6.0
    assert store.apply([AddTechnician(skill="Mechanic", id="t01")]) == ["ADD_TECH: t01 already exists"]


def test_set_availability_replaces_day(store):
    notes = store.apply([SetAvailability("t02", "2025-08-23", 4)])
    assert notes == ["Set T02 availability on 2025-08-23 to 4h"]
    assert store.available_hours("T02", "2025-08-23") == 4.0
    assert len(store.availability) == 21


def test_set_availability_errors(store):
    notes = store.apply(
        [
            SetAvailability("T99", "2025-08-23", 4),
            SetAvailability("T01", "someday", 4),
            SetAvailability("T01", "2025-08-23", -1),
        ]
    )
    assert notes == [
        "SET_AVAILABILITY: T99 not found",
        "SET_AVAILABILITY: invalid date 'someday' for T01",
        "SET_AVAILABILITY: negative hours for T01",
    ]


def test_snapshot_is_plain_data(store):
    snap = store.snapshot()
    snap["technicians"][0]["name"] = "Changed"
    assert store.technicians[0].name == "Alex M"
