"""Policy transformer: rewrites a working copy of the plan into a preview snapshot."""

from __future__ import annotations

import copy
import logging
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from fleetplan.config import SchedulerConfig
from fleetplan.domain.models import OpsTask, PlanSnapshot, SchedulerPolicy, WorkOrder, WorkOrderStatus
from fleetplan.services.timeplan import (
    add_hours,
    at_hour,
    clamp_to_business_window,
    hours_between,
    parse_local,
    round_half_up,
    same_day,
    to_local_iso,
)

logger = logging.getLogger(__name__)


def _fmt_hour(h: float) -> str:
    return f"{int(h):02d}:{int(round((h - int(h)) * 60)):02d}"


def ops_duration(start: datetime, end: datetime) -> int:
    """Whole-hour duration used when ops are re-timed (never below 1h)."""
    return max(1, round_half_up(hours_between(start, end)))


class _Scope:
    def __init__(self, policy: SchedulerPolicy, vehicle_depots: Optional[Mapping[str, str]]):
        self.vehicles = policy.scoped_vehicles
        self.depots = set(policy.depot_scope)
        self.vehicle_depots = dict(vehicle_depots or {})
        self.depot_resolvable = bool(self.depots) and bool(self.vehicle_depots)

    @property
    def active(self) -> bool:
        return bool(self.vehicles) or self.depot_resolvable

    def __contains__(self, vehicle_id: str) -> bool:
        if not self.active:
            return True
        if vehicle_id in self.vehicles:
            return True
        return self.depot_resolvable and self.vehicle_depots.get(vehicle_id) in self.depots


def shift_ops_to_night(
    ops_tasks: List[OpsTask],
    max_shift_days: int,
    night_hour: int,
    scope=None,
) -> int:
    """
    Move ops tasks to the night anchor hour, drifting at most ``max_shift_days``.

    Edits ``ops_tasks`` in place; callers pass a working copy.

    Returns:
        Number of ops tasks whose times changed
    """
    changed = 0
    for t in ops_tasks:
        if scope is not None and t.vehicle_id not in scope:
            continue
        start, end = parse_local(t.start), parse_local(t.end)
        if start is None or end is None:
            continue
        dur = ops_duration(start, end)

        preferred = at_hour(start, night_hour)
        delta_days = (preferred.date() - start.date()).days
        if abs(delta_days) > max_shift_days:
            step = max_shift_days if delta_days > 0 else -max_shift_days
            preferred = at_hour(start + timedelta(days=step), night_hour)

        new_start, new_end = to_local_iso(preferred), to_local_iso(add_hours(preferred, dur))
        if (new_start, new_end) != (t.start, t.end):
            changed += 1
        t.start, t.end, t.hours = new_start, new_end, float(dur)
    return changed


def remove_ops_overlaps(ops_tasks: List[OpsTask], scope=None) -> int:
    """
    Push overlapping ops tasks of each vehicle back-to-back, earliest first.

    Edits ``ops_tasks`` in place.

    Returns:
        Number of fixes (one per shifted task)
    """
    by_vehicle: Dict[str, List[Tuple[datetime, OpsTask]]] = defaultdict(list)
    for t in ops_tasks:
        if scope is not None and t.vehicle_id not in scope:
            continue
        start = parse_local(t.start)
        if start is None or parse_local(t.end) is None:
            continue
        by_vehicle[t.vehicle_id].append((start, t))

    fixes = 0
    for vehicle_id, items in by_vehicle.items():
        items.sort(key=lambda pair: (pair[0], pair[1].id))
        last_end: Optional[datetime] = None
        for _, t in items:
            start, end = parse_local(t.start), parse_local(t.end)
            if last_end is not None and start < last_end:
                dur = ops_duration(start, end)
                start, end = last_end, add_hours(last_end, dur)
                t.start, t.end, t.hours = to_local_iso(start), to_local_iso(end), float(dur)
                fixes += 1
                logger.debug("Shifted %s on %s to %s", t.id, vehicle_id, t.start)
            last_end = end if last_end is None else max(last_end, end)
    return fixes


def clamp_maintenance(
    work_orders: List[WorkOrder],
    business_hours: Tuple[float, float],
    scope=None,
) -> int:
    """
    Clamp active same-day work orders into business hours.

    Returns:
        Number of work orders whose times changed
    """
    open_h, close_h = business_hours
    clamped = 0
    for w in work_orders:
        if not w.is_active or (scope is not None and w.vehicle_id not in scope):
            continue
        start, end = parse_local(w.start), parse_local(w.end)
        if start is None or end is None or not same_day(start, end):
            continue
        if start >= at_hour(start, open_h) and end <= at_hour(start, close_h):
            continue
        new_start, new_end = clamp_to_business_window(start, end, open_h, close_h)
        w.start, w.end = to_local_iso(new_start), to_local_iso(new_end)
        w.hours = round(hours_between(new_start, new_end), 2)
        clamped += 1
    return clamped


def tally(
    work_orders: Sequence[WorkOrder],
    before: Mapping[str, Tuple[Optional[str], Optional[str]]],
) -> Tuple[List[str], List[str], List[str]]:
    """
    Split work orders into (moved, scheduled, unscheduled) id lists.

    Closed orders count as neither. Moved means the start or end differs from
    the ``before`` times of the same id.
    """
    moved: List[str] = []
    scheduled: List[str] = []
    unscheduled: List[str] = []
    for w in work_orders:
        if w.status == WorkOrderStatus.CLOSED:
            continue
        if w.is_unscheduled:
            unscheduled.append(w.id)
            continue
        scheduled.append(w.id)
        if w.id in before and before[w.id] != (w.start, w.end):
            moved.append(w.id)
    return moved, scheduled, unscheduled


def build_snapshot(
    work_orders: List[WorkOrder],
    ops_tasks: List[OpsTask],
    rationale: List[str],
    before: Mapping[str, Tuple[Optional[str], Optional[str]]],
    moved_ops_ids: List[str],
    id_list_cap: int,
    status: str = "preview",
) -> PlanSnapshot:
    moved, scheduled, unscheduled = tally(work_orders, before)
    return PlanSnapshot(
        work_orders=work_orders,
        ops_tasks=ops_tasks,
        rationale=rationale,
        moved=len(moved),
        scheduled=len(scheduled),
        unscheduled=len(unscheduled),
        moved_ids=moved[:id_list_cap],
        scheduled_ids=scheduled[:id_list_cap],
        unscheduled_ids=unscheduled[:id_list_cap],
        moved_ops_ids=moved_ops_ids[:id_list_cap],
        when=to_local_iso(datetime.now()),
        status=status,
    )


def propose_schedule(
    work_orders: Sequence[WorkOrder],
    ops_tasks: Sequence[OpsTask],
    policy: SchedulerPolicy | None = None,
    cfg: SchedulerConfig | None = None,
    vehicle_depots: Optional[Mapping[str, str]] = None,
) -> PlanSnapshot:
    """
    Apply a scheduling policy to a copy of the plan and return a preview.

    Steps run in a fixed order, each only when its policy field is set:
    ops shift to night, ops de-overlap, business-hour clamping of maintenance.

    Args:
        work_orders: Current work orders (not modified)
        ops_tasks: Current ops tasks (not modified)
        policy: Requested transformations
        cfg: SchedulerConfig (defaults when omitted)
        vehicle_depots: vehicle_id -> depot, used to resolve ``depot_scope``

    Returns:
        PlanSnapshot with status "preview"
    """
    cfg = cfg or SchedulerConfig()
    policy = policy or SchedulerPolicy()
    wos = copy.deepcopy(list(work_orders))
    ops = copy.deepcopy(list(ops_tasks))

    wo_before = {w.id: (w.start, w.end) for w in wos}
    ops_before = {t.id: (t.start, t.end) for t in ops}
    rationale: List[str] = []

    scope = _Scope(policy, vehicle_depots)
    if scope.vehicles:
        rationale.append(f"Scoped to vehicle(s): {', '.join(sorted(scope.vehicles))}.")
    if policy.depot_scope:
        if scope.depot_resolvable:
            rationale.append(f"Scoped to depot(s): {', '.join(sorted(scope.depots))}.")
        else:
            rationale.append("Depot scope ignored: no vehicle depot assignments available.")

    if policy.ops_shift_days is not None:
        n = shift_ops_to_night(ops, policy.ops_shift_days, cfg.night_anchor_hour, scope)
        rationale.append(
            f"Shifted ops to night within ±{policy.ops_shift_days} day(s) ({n} task(s) re-timed)."
        )

    if policy.avoid_ops_overlap:
        fixes = remove_ops_overlaps(ops, scope)
        rationale.append(f"Removed ops overlaps ({fixes} fix(es)).")

    if policy.business_hours:
        open_h, close_h = policy.business_hours
        n = clamp_maintenance(wos, (open_h, close_h), scope)
        rationale.append(
            f"Clamped maintenance into {_fmt_hour(open_h)}–{_fmt_hour(close_h)} ({n} job(s) adjusted)."
        )

    if not rationale:
        rationale.append("No changes requested by policy.")

    moved_ops = [t.id for t in ops if ops_before.get(t.id) != (t.start, t.end)]
    snapshot = build_snapshot(wos, ops, rationale, wo_before, moved_ops, cfg.id_list_cap)
    logger.info(
        "Proposed plan: %d moved, %d scheduled, %d unscheduled, %d ops re-timed",
        snapshot.moved, snapshot.scheduled, snapshot.unscheduled, len(moved_ops),
    )
    return snapshot
