"""Maintenance vs ops clash detection."""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, List, Sequence, Tuple

import pandas as pd

from fleetplan.domain.models import Clash, OpsTask, WorkOrder

from .timeplan import overlap_hours, parse_local, round_hours

# Touching boundaries (and float noise) are not clashes
CLASH_EPSILON_HOURS = 0.01

CLASH_COLUMNS = ["vehicle_id", "work_order_id", "ops_id", "overlap_hours"]


def compute_clashes(work_orders: Sequence[WorkOrder], ops_tasks: Sequence[OpsTask]) -> List[Clash]:
    """
    Find time overlaps between active maintenance and ops on the same vehicle.

    Only Scheduled/InProgress work orders with both start and end are
    considered. Purely informational: nothing is moved.

    Args:
        work_orders: Work orders of the plan
        ops_tasks: Ops tasks of the plan

    Returns:
        One Clash per overlapping (work order, ops task) pair, overlap rounded half-up to 0.1h
    """
    ops_by_vehicle: Dict[str, List[Tuple[OpsTask, object, object]]] = defaultdict(list)
    for t in ops_tasks:
        s, e = parse_local(t.start), parse_local(t.end)
        if s is None or e is None:
            continue
        ops_by_vehicle[t.vehicle_id].append((t, s, e))

    clashes: List[Clash] = []
    for w in work_orders:
        if not w.is_active or not w.start or not w.end:
            continue
        ws, we = parse_local(w.start), parse_local(w.end)
        if ws is None or we is None:
            continue
        for t, ts, te in ops_by_vehicle.get(w.vehicle_id, []):
            hours = overlap_hours(ws, we, ts, te)
            if hours > CLASH_EPSILON_HOURS:
                clashes.append(
                    Clash(
                        vehicle_id=w.vehicle_id,
                        work_order_id=w.id,
                        ops_id=t.id,
                        overlap_hours=round_hours(hours, 1),
                    )
                )
    return clashes


def clashes_frame(clashes: Sequence[Clash]) -> pd.DataFrame:
    return pd.DataFrame(
        [[c.vehicle_id, c.work_order_id, c.ops_id, c.overlap_hours] for c in clashes],
        columns=CLASH_COLUMNS,
    )


def summarize_clashes(clashes: Sequence[Clash]) -> str:
    if not clashes:
        return "No clashes."
    df = clashes_frame(clashes)
    per_vehicle = df.groupby("vehicle_id").agg(
        clashes=("work_order_id", "size"),
        overlap_hours=("overlap_hours", "sum"),
    )
    lines = [f"{len(df)} clash(es) across {df['vehicle_id'].nunique()} vehicle(s):"]
    lines.append(per_vehicle.to_string())
    lines.append("")
    lines.append(df.to_string(index=False))
    return "\n".join(lines)
