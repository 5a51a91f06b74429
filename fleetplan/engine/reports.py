"""Plain-text reports over the current plan and its history."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from fleetplan.domain.models import WorkOrder, WorkOrderStatus

from .history import PlanDelta, PlanHistory, unscheduled_work_orders

REPORT_KINDS = ("UNSCHEDULED", "MOVED", "SUMMARY", "SCHEDULED_FOR_VEHICLE", "DELTA")
PICK_LIMIT = 50
DELTA_LIMIT = 40


@dataclass
class ReportQuery:
    kind: str
    vehicle_id: Optional[str] = None
    n_back: int = 1


def _line(w: WorkOrder) -> str:
    return f"{w.id} - {w.title} ({w.vehicle_id})"


def _pick(ids: Sequence[str], by_id: Dict[str, WorkOrder]) -> List[str]:
    return [_line(by_id[i]) for i in ids if i in by_id][:PICK_LIMIT]


def _bullets(items: Sequence[str]) -> str:
    return "\n- " + "\n- ".join(items)


def format_delta(delta: PlanDelta, by_id: Dict[str, WorkOrder]) -> str:
    def section(ids: List[str], title: str) -> str:
        if not ids:
            return ""
        shown = [_line(by_id[i]) if i in by_id else i for i in ids[:DELTA_LIMIT]]
        more = f"\n- …and {len(ids) - DELTA_LIMIT} more" if len(ids) > DELTA_LIMIT else ""
        return f"{title}:{_bullets(shown)}{more}"

    parts = [
        f"Changes since previous accepted plan (baseline: {delta.baseline_when[:16].replace('T', ' ')})",
        section(delta.moved, "Moved"),
        section(delta.newly_scheduled, "Newly scheduled"),
        section(delta.no_longer_scheduled, "No longer scheduled"),
    ]
    if delta.empty:
        parts.append("No work orders changed.")
    return "\n".join(p for p in parts if p)


def build_report(query: ReportQuery, history: PlanHistory, work_orders: Sequence[WorkOrder]) -> str:
    """
    Answer a report query against the preview, the accepted plans or the
    raw work orders, in that order of preference.
    """
    kind = query.kind.upper()
    plan = history.current_plan()
    plan_wos = plan.work_orders if plan else list(work_orders)
    by_id = {w.id: w for w in plan_wos}

    if kind == "DELTA":
        delta = history.delta(query.n_back)
        if delta is None:
            return "Only one accepted plan so far; accept another proposal to compare changes."
        newer = {w.id: w for w in history.accepted[-1].work_orders}
        return format_delta(delta, newer)

    if kind == "UNSCHEDULED":
        if plan:
            items = _pick(plan.unscheduled_ids, by_id)
            if not items:
                return "All maintenance tasks are scheduled within the selected context."
            heading = (
                "Could not be scheduled in the current proposal"
                if plan.status == "preview"
                else "Currently unscheduled (last accepted plan)"
            )
            return f"{heading}:{_bullets(items)}"
        items = [_line(w) for w in unscheduled_work_orders(work_orders)]
        if not items:
            return "All visible work orders appear to be scheduled."
        return f"Currently unscheduled (no proposal context):{_bullets(items)}"

    if kind == "MOVED":
        latest = history.latest
        if latest is None:
            return "No accepted plan yet, so nothing to compare moves against."
        items = _pick(latest.moved_ids, {w.id: w for w in latest.work_orders})
        if not items:
            return "No maintenance tasks were moved in this context."
        return f"Moved in the last accepted plan:{_bullets(items)}"

    if kind == "SCHEDULED_FOR_VEHICLE":
        if not query.vehicle_id:
            return "SCHEDULED_FOR_VEHICLE needs a vehicle id."
        latest = history.latest
        source = latest.work_orders if latest else work_orders
        rows = [
            f"{w.id} - {w.title}: {w.start} -> {w.end}"
            for w in source
            if w.vehicle_id == query.vehicle_id and w.is_active and w.start
        ]
        scope = "accepted plan" if latest else "current state"
        if not rows:
            return f"No scheduled maintenance found for {query.vehicle_id} ({scope})."
        return f"Scheduled for {query.vehicle_id} ({scope}):{_bullets(rows)}"

    if kind == "SUMMARY":
        sched = sum(1 for w in work_orders if w.status == WorkOrderStatus.SCHEDULED)
        uns = len(unscheduled_work_orders(work_orders))
        text = f"Summary (current state): {sched} scheduled, {uns} unscheduled."
        if plan is not None:
            text += (
                f"\n{plan.status.capitalize()} plan: {plan.moved} moved, "
                f"{plan.scheduled} scheduled, {plan.unscheduled} unscheduled."
            )
        return text

    return f"Unknown report kind {query.kind!r}; expected one of {', '.join(REPORT_KINDS)}."
