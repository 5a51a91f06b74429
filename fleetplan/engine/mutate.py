"""Mutation applier: ordered, partial-failure tolerant edits to a plan."""

from __future__ import annotations

import copy
import logging
import math
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Tuple

from fleetplan.config import SchedulerConfig
from fleetplan.domain.models import (
    OpsTask,
    Priority,
    SchedulerPolicy,
    WorkOrder,
    WorkOrderStatus,
    WorkOrderType,
    coerce_enum,
)
from fleetplan.domain.mutations import (
    RESOURCE_MUTATIONS,
    AddWorkOrder,
    CancelOps,
    CancelWorkOrder,
    InvalidMutation,
    MoveOps,
    MoveWorkOrder,
    parse_mutations,
)
from fleetplan.services.resources import ResourceStore
from fleetplan.services.slots import find_earliest_slot
from fleetplan.services.timeplan import (
    add_hours,
    duration_hours,
    hours_between,
    normalize_timestamp,
    overlaps,
    parse_local,
    snap_year,
    to_local_iso,
)

logger = logging.getLogger(__name__)

_WO_ID = re.compile(r"^WO-(\d+)$")
_OPS_REF = re.compile(r"^([A-Z]*)[^A-Z0-9]*(\d+)$")


@dataclass
class MutationResult:
    work_orders: List[WorkOrder]
    ops_tasks: List[OpsTask]
    notes: List[str] = field(default_factory=list)


def next_work_order_id(existing: Iterable[WorkOrder]) -> str:
    highest = 0
    for w in existing:
        m = _WO_ID.match(w.id)
        if m:
            highest = max(highest, int(m.group(1)))
    return f"WO-{highest + 1:03d}"


def infer_work_order_type(title: str) -> WorkOrderType:
    text = title.lower()
    if "inspect" in text:
        return WorkOrderType.INSPECTION
    if "service" in text or "preventive" in text or re.search(r"\bpm\b", text):
        return WorkOrderType.PREVENTIVE
    return WorkOrderType.CORRECTIVE


def _split_ops_ref(value: str) -> Optional[Tuple[str, int]]:
    m = _OPS_REF.match(value.strip().upper())
    if not m:
        return None
    return m.group(1), int(m.group(2))


def ops_id_candidates(ops_tasks: Sequence[OpsTask], ref: str) -> List[OpsTask]:
    """
    Ops tasks a loosely written reference may point at.

    Exact id first, then case-insensitive, then by number so that ``OPS-7``,
    ``ops7``, ``OPS-007`` and ``7`` all reach the same task. A lettered
    reference only matches ids with the same letters, so ``WO-7`` never
    reaches ``OPS-7``.
    """
    exact = [t for t in ops_tasks if t.id == ref]
    if exact:
        return exact
    ref_norm = ref.strip().upper()
    folded = [t for t in ops_tasks if t.id.upper() == ref_norm]
    if folded:
        return folded
    wanted = _split_ops_ref(ref_norm)
    if wanted is None:
        return []
    prefix, number = wanted
    matches = []
    for t in ops_tasks:
        own = _split_ops_ref(t.id)
        if own is None or own[1] != number:
            continue
        if not prefix or prefix == own[0]:
            matches.append(t)
    return matches


class _Applier:
    def __init__(
        self,
        work_orders: List[WorkOrder],
        ops_tasks: List[OpsTask],
        cfg: SchedulerConfig,
        business_hours: Tuple[float, float],
        resources: Optional[ResourceStore],
        auto_place: bool,
    ):
        self.work_orders = work_orders
        self.ops_tasks = ops_tasks
        self.cfg = cfg
        self.business_hours = business_hours
        self.resources = resources
        self.auto_place = auto_place
        self.notes: List[str] = []

    def _parse(self, value: Optional[str]) -> Optional[datetime]:
        return snap_year(parse_local(value, self.cfg.timezone), self.cfg.anchor_year)

    def _shift(self, label: str, target: str, dt: datetime, hours: float) -> Optional[datetime]:
        try:
            return add_hours(dt, hours)
        except OverflowError:
            self.notes.append(f"{label}: hours out of range for {target}")
            return None

    def _ops_task(self, label: str, ref: str) -> Optional[OpsTask]:
        matches = ops_id_candidates(self.ops_tasks, ref)
        if len(matches) > 1:
            ids = ", ".join(t.id for t in matches)
            self.notes.append(f"{label}: {ref} is ambiguous ({ids})")
            return None
        if not matches:
            self.notes.append(f"{label}: {ref} not found")
            return None
        return matches[0]

    def _work_order(self, wo_id: str) -> Optional[WorkOrder]:
        for w in self.work_orders:
            if w.id == wo_id:
                return w
        return None

    def _new_times(
        self, label: str, target_id: str, start: Optional[str], end: Optional[str], hours: float
    ) -> Optional[Tuple[datetime, datetime, float]]:
        """Resolve the (start, end, hours) of a move, or record why it cannot be done."""
        if not math.isfinite(hours):
            self.notes.append(f"{label}: hours out of range for {target_id}")
            return None
        if start:
            new_start = self._parse(start)
            if new_start is None:
                self.notes.append(f"{label}: invalid start {start!r} for {target_id}")
                return None
            if end:
                new_end = self._parse(end)
                if new_end is None:
                    self.notes.append(f"{label}: invalid end {end!r} for {target_id}")
                    return None
                hours = hours_between(new_start, new_end)
            else:
                new_end = self._shift(label, target_id, new_start, hours)
                if new_end is None:
                    return None
        elif end:
            new_end = self._parse(end)
            if new_end is None:
                self.notes.append(f"{label}: invalid end {end!r} for {target_id}")
                return None
            new_start = self._shift(label, target_id, new_end, -hours)
            if new_start is None:
                return None
        else:
            self.notes.append(f"{label}: {target_id} requires start or end")
            return None

        if new_end <= new_start:
            self.notes.append(f"{label}: end must be after start for {target_id}")
            return None
        return new_start, new_end, hours

    def move_work_order(self, m: MoveWorkOrder) -> None:
        w = self._work_order(m.id)
        if w is None:
            self.notes.append(f"MOVE_WO: {m.id} not found")
            return
        fallback = w.hours if w.hours is not None else self.cfg.default_work_order_hours
        hours = m.hours if m.hours is not None else duration_hours(w.start, w.end, fallback)
        resolved = self._new_times("MOVE_WO", m.id, m.start, m.end, hours)
        if resolved is None:
            return
        start, end, hours = resolved
        w.start, w.end = to_local_iso(start), to_local_iso(end)
        w.status = WorkOrderStatus.SCHEDULED
        w.hours = round(hours, 2)
        self.notes.append(f"Moved {w.id} → {w.start} ({w.hours:g}h)")

    def cancel_work_order(self, m: CancelWorkOrder) -> None:
        w = self._work_order(m.id)
        if w is None:
            self.notes.append(f"CANCEL_WO: {m.id} not found")
            return
        if w.status == WorkOrderStatus.CLOSED and not w.start and not w.end:
            self.notes.append(f"{w.id} already cancelled")
            return
        w.status = WorkOrderStatus.CLOSED
        w.start = None
        w.end = None
        self.notes.append(f"Cancelled {w.id}")

    def add_work_order(self, m: AddWorkOrder) -> None:
        hours = m.hours if m.hours is not None else self.cfg.default_work_order_hours
        if not m.vehicle_id or not m.title:
            self.notes.append("ADD_WO: missing vehicleId/title")
            return
        if not math.isfinite(hours):
            self.notes.append(f"ADD_WO: hours out of range for {m.vehicle_id}")
            return
        if hours <= 0:
            self.notes.append(f"ADD_WO: hours must be positive for {m.vehicle_id}")
            return

        start: Optional[datetime] = None
        end: Optional[datetime] = None
        if m.start:
            start = self._parse(m.start)
            if start is None:
                self.notes.append(f"ADD_WO: invalid start {m.start!r} for {m.vehicle_id}")
                return
            end = self._shift("ADD_WO", m.vehicle_id, start, hours)
            if end is None:
                return

        w = WorkOrder(
            id=next_work_order_id(self.work_orders),
            vehicle_id=m.vehicle_id,
            title=m.title,
            type=coerce_enum(WorkOrderType, m.type, infer_work_order_type(m.title)),
            priority=coerce_enum(Priority, m.priority, Priority.MEDIUM),
            hours=hours,
            required_skills=list(m.required_skills),
        )

        if start is not None:
            w.start, w.end = to_local_iso(start), to_local_iso(end)
            w.status = WorkOrderStatus.SCHEDULED
        elif self.auto_place:
            try:
                slot = find_earliest_slot(
                    m.vehicle_id,
                    hours,
                    self.work_orders,
                    self.ops_tasks,
                    self.business_hours,
                    week_start=self.cfg.week_start_dt,
                    horizon_days=self.cfg.horizon_days,
                    default_hour=self.cfg.default_slot_hour,
                )
            except OverflowError:
                self.notes.append(f"ADD_WO: hours out of range for {m.vehicle_id}")
                return
            w.start, w.end = slot.start, slot.end
            w.status = WorkOrderStatus.SCHEDULED
            if not slot.feasible:
                self.notes.append(
                    f"ADD_WO: no free {hours:g}h slot for {m.vehicle_id}; placed at default slot (may double-book)"
                )

        self.work_orders.append(w)
        if w.start:
            self.notes.append(f"Added {w.id} for {w.vehicle_id} → {w.start} ({hours:g}h)")
        else:
            self.notes.append(f"Added {w.id} for {w.vehicle_id} as Open ({hours:g}h, unscheduled)")

    def move_ops(self, m: MoveOps) -> None:
        t = self._ops_task("MOVE_OPS", m.id)
        if t is None:
            return
        hours = m.hours if m.hours is not None else duration_hours(t.start, t.end, t.hours or self.cfg.default_ops_hours)
        resolved = self._new_times("MOVE_OPS", t.id, m.start, m.end, hours)
        if resolved is None:
            return
        start, end, hours = resolved

        for other in self.ops_tasks:
            if other is t or other.vehicle_id != t.vehicle_id:
                continue
            os_, oe = parse_local(other.start), parse_local(other.end)
            if os_ is not None and oe is not None and overlaps(start, end, os_, oe):
                self.notes.append(
                    f"MOVE_OPS: refused for {t.id}; would overlap {other.id} on {t.vehicle_id}"
                )
                return

        t.start, t.end = to_local_iso(start), to_local_iso(end)
        t.hours = round(hours, 2)
        self.notes.append(f"Moved {t.id} → {t.start} ({t.hours:g}h)")

    def cancel_ops(self, m: CancelOps) -> None:
        t = self._ops_task("CANCEL_OPS", m.id)
        if t is None:
            return
        self.ops_tasks.remove(t)
        self.notes.append(f"Cancelled {t.id}")

    def forward_resource(self, m) -> None:
        if self.resources is None:
            self.notes.append(f"{type(m).__name__}: no resource store configured; ignored")
            return
        self.notes.extend(self.resources.apply([m]))

    def apply(self, mutation) -> None:
        if isinstance(mutation, MoveWorkOrder):
            self.move_work_order(mutation)
        elif isinstance(mutation, CancelWorkOrder):
            self.cancel_work_order(mutation)
        elif isinstance(mutation, AddWorkOrder):
            self.add_work_order(mutation)
        elif isinstance(mutation, MoveOps):
            self.move_ops(mutation)
        elif isinstance(mutation, CancelOps):
            self.cancel_ops(mutation)
        elif isinstance(mutation, RESOURCE_MUTATIONS):
            self.forward_resource(mutation)
        elif isinstance(mutation, InvalidMutation):
            self.notes.append(f"Ignored {mutation.describe()}")
        else:
            self.notes.append(f"Ignored unsupported mutation {mutation!r}")

    def normalize(self) -> None:
        tz = self.cfg.timezone
        for w in self.work_orders:
            if w.start:
                w.start = normalize_timestamp(w.start, tz) or w.start
            if w.end:
                w.end = normalize_timestamp(w.end, tz) or w.end
        for t in self.ops_tasks:
            t.start = normalize_timestamp(t.start, tz) or t.start
            t.end = normalize_timestamp(t.end, tz) or t.end


def apply_mutations_to_plan(
    work_orders: Sequence[WorkOrder],
    ops_tasks: Sequence[OpsTask],
    mutations: Iterable,
    policy: SchedulerPolicy | None = None,
    *,
    cfg: SchedulerConfig | None = None,
    resources: ResourceStore | None = None,
    auto_place: bool = False,
) -> MutationResult:
    """
    Apply an ordered batch of mutations to a copy of the plan.

    Later mutations see the effects of earlier ones. A mutation that cannot be
    applied (unknown id, malformed time, unknown op) leaves a note and is
    skipped; the batch itself never aborts.

    Args:
        work_orders: Current work orders (not modified)
        ops_tasks: Current ops tasks (not modified)
        mutations: Typed mutations or raw dict payloads
        policy: Optional policy; its business hours drive auto-placement
        cfg: SchedulerConfig (defaults when omitted)
        resources: Store receiving forwarded technician/availability edits
        auto_place: Place added work orders without a start via the slot finder

    Returns:
        MutationResult with the new work orders, ops tasks and audit notes
    """
    cfg = cfg or SchedulerConfig()
    business_hours = (policy.business_hours if policy and policy.business_hours else None) or cfg.business_hours
    applier = _Applier(
        copy.deepcopy(list(work_orders)),
        copy.deepcopy(list(ops_tasks)),
        cfg,
        tuple(business_hours),
        resources,
        auto_place,
    )

    for mutation in parse_mutations(mutations):
        applier.apply(mutation)
    applier.normalize()

    logger.info("Applied %d mutation note(s)", len(applier.notes))
    return MutationResult(applier.work_orders, applier.ops_tasks, applier.notes)
