"""Plan validation and plain-text plan summaries."""

from __future__ import annotations

from typing import Sequence, Tuple

import pandas as pd

from fleetplan.domain.models import OpsTask, WorkOrder, WorkOrderStatus
from fleetplan.io.export_csv import ops_tasks_frame, work_orders_frame


def _with_times(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    df["start_dt"] = pd.to_datetime(df["start"], errors="coerce")
    df["end_dt"] = pd.to_datetime(df["end"], errors="coerce")
    df["dur_h"] = (df["end_dt"] - df["start_dt"]).dt.total_seconds() / 3600.0
    return df


def validate_plan(
    work_orders: Sequence[WorkOrder],
    ops_tasks: Sequence[OpsTask],
    business_hours: Tuple[float, float] | None = None,
    require_no_ops_overlap: bool = False,
) -> None:
    """
    Check a plan for structural problems.

    Raises:
        ValueError: On the first violated rule
    """
    wo = _with_times(work_orders_frame(work_orders))
    ops = _with_times(ops_tasks_frame(ops_tasks))

    # Referential integrity
    if wo["id"].duplicated().any():
        dups = sorted(set(wo.loc[wo["id"].duplicated(), "id"]))
        raise ValueError(f"Duplicate work order ids: {', '.join(dups)}")
    if ops["id"].duplicated().any():
        dups = sorted(set(ops.loc[ops["id"].duplicated(), "id"]))
        raise ValueError(f"Duplicate ops task ids: {', '.join(dups)}")

    active_statuses = [WorkOrderStatus.SCHEDULED.value, WorkOrderStatus.IN_PROGRESS.value]
    active_all = wo[wo["status"].isin(active_statuses)]
    missing = active_all[active_all["start_dt"].isna() | active_all["end_dt"].isna()]
    if not missing.empty:
        raise ValueError(f"Scheduled or in-progress work orders without times: {', '.join(missing['id'])}")

    open_timed = wo[(wo["status"] == WorkOrderStatus.OPEN.value) & wo["start_dt"].notna()]
    if not open_timed.empty:
        raise ValueError(f"Open work orders carrying a start time: {', '.join(open_timed['id'])}")

    timed = wo[wo["start_dt"].notna() & wo["end_dt"].notna()]
    backwards = timed[timed["dur_h"] <= 0]
    if not backwards.empty:
        raise ValueError(f"Work orders ending before they start: {', '.join(backwards['id'])}")

    bad_ops = ops[ops["start_dt"].isna() | ops["end_dt"].isna() | (ops["dur_h"] <= 0)]
    if not bad_ops.empty:
        raise ValueError(f"Ops tasks with invalid times: {', '.join(bad_ops['id'])}")

    if business_hours is not None:
        open_h, close_h = business_hours
        active = timed[timed["status"].isin(active_statuses)]
        same_day = active[active["start_dt"].dt.date == active["end_dt"].dt.date]
        start_h = same_day["start_dt"].dt.hour + same_day["start_dt"].dt.minute / 60.0
        end_h = same_day["end_dt"].dt.hour + same_day["end_dt"].dt.minute / 60.0
        outside = same_day[(start_h < open_h) | (end_h > close_h)]
        if not outside.empty:
            raise ValueError(
                f"Maintenance outside business hours {open_h:g}-{close_h:g}: {', '.join(outside['id'])}"
            )

    if require_no_ops_overlap:
        for vehicle_id, group in ops.sort_values(["vehicle_id", "start_dt"]).groupby("vehicle_id"):
            prev_end = group["end_dt"].cummax().shift()
            clashing = group[group["start_dt"] < prev_end]
            if not clashing.empty:
                raise ValueError(f"Overlapping ops tasks on {vehicle_id}: {', '.join(clashing['id'])}")


def summarize_plan(work_orders: Sequence[WorkOrder], ops_tasks: Sequence[OpsTask]) -> str:
    if not work_orders and not ops_tasks:
        return "Empty plan."
    wo = _with_times(work_orders_frame(work_orders))
    ops = _with_times(ops_tasks_frame(ops_tasks))

    lines = []
    if not wo.empty:
        status = wo.groupby(["vehicle_id", "status"]).size().unstack(fill_value=0)
        lines.append("Work orders per vehicle by status:")
        lines.append(status.to_string())
        lines.append("")
        active = wo[wo["status"] != WorkOrderStatus.CLOSED.value]
        hours = active.groupby("vehicle_id")["dur_h"].sum().round(2)
        lines.append("Scheduled maintenance hours per vehicle:")
        lines.append(hours.to_string())
    if not ops.empty:
        if lines:
            lines.append("")
        ops_hours = ops.groupby("vehicle_id").agg(tasks=("id", "size"), hours=("dur_h", "sum"))
        lines.append("Ops tasks per vehicle:")
        lines.append(ops_hours.round(2).to_string())
    return "\n".join(lines)
