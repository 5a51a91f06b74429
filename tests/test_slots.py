"""Tests for the earliest-fit slot finder."""

from datetime import datetime

from fleetplan.domain.models import WorkOrder, WorkOrderStatus
from fleetplan.services.slots import find_earliest_slot, vehicle_bookings

WEEK_START = datetime(2025, 8, 22)


def test_slot_after_last_booking(work_orders, ops_tasks):
    # TRK-01 day 0: WO-001 09-11, OPS-1 10-12, WO-002 13-15
    slot = find_earliest_slot("TRK-01", 2, work_orders, ops_tasks, week_start=WEEK_START)
    assert slot.feasible
    assert (slot.start, slot.end) == ("2025-08-22T15:00:00", "2025-08-22T17:00:00")


def test_short_job_fits_first_gap(work_orders, ops_tasks):
    slot = find_earliest_slot("TRK-01", 1, work_orders, ops_tasks, week_start=WEEK_START)
    assert (slot.start, slot.end) == ("2025-08-22T08:00:00", "2025-08-22T09:00:00")


def test_free_vehicle_gets_window_open():
    slot = find_earliest_slot("TRK-09", 2, [], [], week_start=WEEK_START)
    assert (slot.start, slot.end) == ("2025-08-22T08:00:00", "2025-08-22T10:00:00")


def test_full_day_rolls_to_next_day():
    wos = [
        WorkOrder("WO-1", "TRK-05", "All day", status=WorkOrderStatus.SCHEDULED,
                  start="2025-08-22T08:00:00", end="2025-08-22T17:00:00"),
    ]
    slot = find_earliest_slot("TRK-05", 2, wos, [], week_start=WEEK_START)
    assert slot.start == "2025-08-23T08:00:00"


def test_closed_orders_do_not_block():
    wos = [
        WorkOrder("WO-1", "TRK-05", "Cancelled", status=WorkOrderStatus.CLOSED,
                  start="2025-08-22T08:00:00", end="2025-08-22T17:00:00"),
    ]
    assert vehicle_bookings("TRK-05", wos, []) == []
    slot = find_earliest_slot("TRK-05", 2, wos, [], week_start=WEEK_START)
    assert slot.start == "2025-08-22T08:00:00"


def test_no_room_falls_back_to_default_slot():
    slot = find_earliest_slot("TRK-09", 10, [], [], week_start=WEEK_START)
    assert not slot.feasible
    assert (slot.start, slot.end) == ("2025-08-22T09:00:00", "2025-08-22T19:00:00")


def test_custom_business_hours_and_horizon():
    slot = find_earliest_slot("TRK-09", 3, [], [], business_hours=(6, 10), week_start=WEEK_START, horizon_days=1)
    assert (slot.start, slot.end) == ("2025-08-22T06:00:00", "2025-08-22T09:00:00")
