"""Preview / accept / reject lifecycle and diffs between accepted plans."""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from fleetplan.domain.models import PlanSnapshot, WorkOrder, WorkOrderStatus
from fleetplan.services.timeplan import to_local_iso

logger = logging.getLogger(__name__)


@dataclass
class PlanDelta:
    baseline_when: str
    moved: List[str] = field(default_factory=list)
    newly_scheduled: List[str] = field(default_factory=list)
    no_longer_scheduled: List[str] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not (self.moved or self.newly_scheduled or self.no_longer_scheduled)


def _is_scheduled(w: Optional[WorkOrder]) -> bool:
    return bool(w is not None and w.is_active and w.start)


def diff_work_orders(older: Sequence[WorkOrder], newer: Sequence[WorkOrder], baseline_when: str = "") -> PlanDelta:
    """Classify every work order id by how its scheduled state changed."""
    a = {w.id: w for w in older}
    b = {w.id: w for w in newer}
    delta = PlanDelta(baseline_when=baseline_when)
    for wo_id in sorted(set(a) | set(b)):
        wa, wb = a.get(wo_id), b.get(wo_id)
        a_sched, b_sched = _is_scheduled(wa), _is_scheduled(wb)
        if a_sched and b_sched:
            if (wa.start, wa.end) != (wb.start, wb.end):
                delta.moved.append(wo_id)
        elif b_sched:
            delta.newly_scheduled.append(wo_id)
        elif a_sched:
            delta.no_longer_scheduled.append(wo_id)
    return delta


class PlanHistory:
    """
    Holds at most one preview and a bounded list of accepted plans.

    Exactly one plan (the latest in ``accepted``) is current; a preview is a
    candidate the caller may accept or throw away.
    """

    def __init__(self, limit: int = 6):
        self.limit = limit
        self.accepted: List[PlanSnapshot] = []
        self.preview: Optional[PlanSnapshot] = None
        self._version = 0

    @property
    def latest(self) -> Optional[PlanSnapshot]:
        return self.accepted[-1] if self.accepted else None

    def current_plan(self) -> Optional[PlanSnapshot]:
        """The preview when one is pending, else the latest accepted plan."""
        return self.preview or self.latest

    def propose(self, snapshot: PlanSnapshot) -> PlanSnapshot:
        self.preview = replace(snapshot, status="preview")
        return self.preview

    def accept(self) -> PlanSnapshot:
        """
        Promote the pending preview to the accepted plan.

        Raises:
            ValueError: If there is no preview to accept
        """
        if self.preview is None:
            raise ValueError("No preview plan to accept")
        self._version += 1
        accepted = replace(
            self.preview,
            status="accepted",
            when=to_local_iso(datetime.now()),
            version=self._version,
        )
        self.accepted.append(accepted)
        if len(self.accepted) > self.limit:
            self.accepted = self.accepted[-self.limit:]
        self.preview = None
        logger.info("Accepted plan v%d (%d scheduled)", accepted.version, accepted.scheduled)
        return accepted

    def reject(self) -> Optional[PlanSnapshot]:
        dropped, self.preview = self.preview, None
        return dropped

    def base_work_orders(self, fallback: Sequence[WorkOrder]) -> List[WorkOrder]:
        """Work orders the next proposal should start from (deep copy)."""
        plan = self.current_plan()
        return copy.deepcopy(list(plan.work_orders if plan else fallback))

    def delta(self, n_back: int = 1) -> Optional[PlanDelta]:
        """
        Compare the latest accepted plan against the one ``n_back`` before it.

        Returns:
            PlanDelta, or None when fewer than two plans were accepted
        """
        if len(self.accepted) < 2:
            return None
        n_back = max(1, min(n_back, len(self.accepted) - 1))
        newer = self.accepted[-1]
        older = self.accepted[-1 - n_back]
        return diff_work_orders(older.work_orders, newer.work_orders, older.when)

    def restore(self, accepted: Sequence[PlanSnapshot], preview: Optional[PlanSnapshot] = None) -> "PlanHistory":
        """Rebuild state from stored snapshots (oldest accepted first)."""
        self.accepted = list(accepted)[-self.limit:]
        self._version = max((p.version for p in self.accepted), default=0)
        self.preview = preview
        return self

    def counts(self) -> Dict[str, int]:
        plan = self.current_plan()
        if plan is None:
            return {"moved": 0, "scheduled": 0, "unscheduled": 0}
        return {"moved": plan.moved, "scheduled": plan.scheduled, "unscheduled": plan.unscheduled}


def unscheduled_work_orders(work_orders: Sequence[WorkOrder]) -> List[WorkOrder]:
    return [w for w in work_orders if w.is_unscheduled and w.status != WorkOrderStatus.CLOSED]
