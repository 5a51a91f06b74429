"""Greedy earliest-fit slot search for new maintenance."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import List, Sequence, Tuple

from fleetplan.config import SchedulerConfig
from fleetplan.domain.models import OpsTask, Slot, WorkOrder, WorkOrderStatus

from .timeplan import add_hours, at_hour, business_window, overlaps, parse_local, to_local_iso

logger = logging.getLogger(__name__)


def vehicle_bookings(
    vehicle_id: str,
    work_orders: Sequence[WorkOrder],
    ops_tasks: Sequence[OpsTask],
) -> List[Tuple[datetime, datetime]]:
    """All timed ops tasks and non-closed work orders of a vehicle, sorted by start."""
    blocks: List[Tuple[datetime, datetime]] = []
    for t in ops_tasks:
        if t.vehicle_id != vehicle_id:
            continue
        s, e = parse_local(t.start), parse_local(t.end)
        if s is not None and e is not None:
            blocks.append((s, e))
    for w in work_orders:
        if w.vehicle_id != vehicle_id or w.status == WorkOrderStatus.CLOSED:
            continue
        s, e = parse_local(w.start), parse_local(w.end)
        if s is not None and e is not None:
            blocks.append((s, e))
    blocks.sort(key=lambda b: b[0])
    return blocks


def find_earliest_slot(
    vehicle_id: str,
    hours_needed: float,
    work_orders: Sequence[WorkOrder],
    ops_tasks: Sequence[OpsTask],
    business_hours: Tuple[float, float] = (8, 17),
    week_start: datetime | None = None,
    horizon_days: int = 7,
    default_hour: int = 9,
) -> Slot:
    """
    Find the earliest gap that fits ``hours_needed`` inside business hours.

    Days are scanned from day 0 of the horizon; within a day the vehicle's
    bookings are walked in start order with a cursor. The first fit wins
    (earliest-fit, not best-fit).

    Args:
        vehicle_id: Vehicle to book
        hours_needed: Duration of the new job
        work_orders: Existing work orders (closed ones are ignored)
        ops_tasks: Existing ops tasks
        business_hours: (open, close) hour-of-day window
        week_start: Local midnight of horizon day 0
        horizon_days: Number of days to search
        default_hour: Hour of the fallback slot on day 0

    Returns:
        Slot with ``feasible=True``, or the fixed default slot with
        ``feasible=False`` when no day has room (it may double-book).
    """
    if week_start is None:
        week_start = SchedulerConfig().week_start_dt

    open_h, close_h = business_hours
    blocks = vehicle_bookings(vehicle_id, work_orders, ops_tasks)

    for d in range(horizon_days):
        day = week_start + timedelta(days=d)
        win_open, win_close = business_window(day, open_h, close_h)
        day_blocks = [b for b in blocks if overlaps(b[0], b[1], win_open, win_close)]

        cursor = win_open
        for i in range(len(day_blocks) + 1):
            next_start = day_blocks[i][0] if i < len(day_blocks) else win_close
            candidate_end = add_hours(cursor, hours_needed)
            if next_start >= candidate_end and candidate_end <= win_close:
                return Slot(start=to_local_iso(cursor), end=to_local_iso(candidate_end))
            if i < len(day_blocks):
                cursor = max(cursor, day_blocks[i][1])

    fallback = at_hour(week_start, default_hour)
    logger.warning(
        "No %.2fh slot for %s within %d day(s); falling back to %s",
        hours_needed, vehicle_id, horizon_days, to_local_iso(fallback),
    )
    return Slot(
        start=to_local_iso(fallback),
        end=to_local_iso(add_hours(fallback, hours_needed)),
        feasible=False,
    )
