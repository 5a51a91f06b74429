"""Plan records: work orders, ops tasks, policies and plan snapshots."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class WorkOrderType(str, Enum):
    PREVENTIVE = "Preventive"
    CORRECTIVE = "Corrective"
    INSPECTION = "Inspection"
    OTHER = "Other"


class Priority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class WorkOrderStatus(str, Enum):
    OPEN = "Open"
    SCHEDULED = "Scheduled"
    IN_PROGRESS = "InProgress"
    CLOSED = "Closed"


ACTIVE_STATUSES = {WorkOrderStatus.SCHEDULED, WorkOrderStatus.IN_PROGRESS}


def _first(raw: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for k in keys:
        v = raw.get(k)
        if v is not None and v != "":
            return v
    return default


_FALSE_WORDS = {"false", "0", "no", "off", "n"}


def coerce_flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_WORDS
    return bool(value)


def coerce_enum(enum_cls, value: Any, default):
    if isinstance(value, enum_cls):
        return value
    if value is None:
        return default
    key = str(value).replace(" ", "").lower()
    for member in enum_cls:
        if member.value.replace(" ", "").lower() == key:
            return member
    return default


@dataclass
class WorkOrder:
    """A maintenance task tied to one vehicle."""

    id: str
    vehicle_id: str
    title: str
    type: WorkOrderType = WorkOrderType.CORRECTIVE
    priority: Priority = Priority.MEDIUM
    status: WorkOrderStatus = WorkOrderStatus.OPEN
    start: Optional[str] = None  # local ISO
    end: Optional[str] = None  # local ISO
    hours: Optional[float] = None
    required_skills: List[str] = field(default_factory=list)
    technician_id: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def is_unscheduled(self) -> bool:
        return self.status != WorkOrderStatus.CLOSED and (
            self.status == WorkOrderStatus.OPEN or not self.start
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "vehicleId": self.vehicle_id,
            "title": self.title,
            "type": self.type.value,
            "priority": self.priority.value,
            "status": self.status.value,
            "start": self.start,
            "end": self.end,
            "hours": self.hours,
            "requiredSkills": list(self.required_skills),
            "technicianId": self.technician_id,
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "WorkOrder":
        """Build from an external record, folding the known field aliases."""
        skills = _first(raw, "requiredSkills", "required_skills", default=[])
        if isinstance(skills, str):
            skills = [s.strip() for s in skills.split(";") if s.strip()]
        hours = _first(raw, "hours")
        return cls(
            id=str(_first(raw, "id", "work_order_id", "woId", default="")),
            vehicle_id=str(_first(raw, "vehicleId", "vehicle_id", "asset_id", "assetId", default="")),
            title=str(_first(raw, "title", "description", default="Maintenance Task")),
            type=coerce_enum(WorkOrderType, _first(raw, "type", "wo_type"), WorkOrderType.CORRECTIVE),
            priority=coerce_enum(Priority, _first(raw, "priority"), Priority.MEDIUM),
            status=coerce_enum(WorkOrderStatus, _first(raw, "status"), WorkOrderStatus.OPEN),
            start=_first(raw, "start", "scheduled_start", "scheduledStart"),
            end=_first(raw, "end", "scheduled_end", "scheduledEnd"),
            hours=float(hours) if hours is not None else None,
            required_skills=list(skills),
            technician_id=_first(raw, "technicianId", "technician_id", "assigned_to"),
        )


@dataclass
class OpsTask:
    """An operational (non-maintenance) commitment of a vehicle."""

    id: str
    vehicle_id: str
    title: str
    start: str
    end: str
    hours: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "vehicleId": self.vehicle_id,
            "title": self.title,
            "start": self.start,
            "end": self.end,
            "hours": self.hours,
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any], index: int = 0) -> "OpsTask":
        hours = _first(raw, "hours", "demandHours", "demand_hours", default=0)
        return cls(
            id=str(_first(raw, "id", "opsId", "ops_id", default=f"OPS-{index + 1}")),
            vehicle_id=str(_first(raw, "vehicleId", "vehicle_id", "asset_id", default="")),
            title=str(_first(raw, "title", default="Transport Task")),
            start=_first(raw, "start", "scheduled_start", "scheduledStart", default=""),
            end=_first(raw, "end", "scheduled_end", "scheduledEnd", default=""),
            hours=float(hours),
        )


@dataclass
class SchedulerPolicy:
    """Desired plan transformations; every field is optional."""

    business_hours: Optional[Tuple[float, float]] = None
    ops_shift_days: Optional[int] = None
    avoid_ops_overlap: bool = False
    for_vehicle: Optional[str] = None
    vehicle_scope: List[str] = field(default_factory=list)
    depot_scope: List[str] = field(default_factory=list)

    @property
    def scoped_vehicles(self) -> set:
        ids = set(self.vehicle_scope)
        if self.for_vehicle:
            ids.add(self.for_vehicle)
        return ids

    @classmethod
    def from_dict(cls, raw: Dict[str, Any] | None) -> "SchedulerPolicy":
        raw = raw or {}
        bh = _first(raw, "businessHours", "business_hours")
        shift = _first(raw, "opsShiftDays", "ops_shift_days")
        return cls(
            business_hours=(float(bh[0]), float(bh[1])) if bh else None,
            ops_shift_days=int(shift) if shift is not None else None,
            avoid_ops_overlap=coerce_flag(_first(raw, "avoidOpsOverlap", "avoid_ops_overlap", default=False)),
            for_vehicle=_first(raw, "forVehicle", "for_vehicle"),
            vehicle_scope=list(_first(raw, "vehicleScope", "vehicle_scope", default=[])),
            depot_scope=list(_first(raw, "depotScope", "depot_scope", default=[])),
        )


@dataclass
class Clash:
    vehicle_id: str
    work_order_id: str
    ops_id: str
    overlap_hours: float


@dataclass
class Slot:
    start: str
    end: str
    feasible: bool = True


@dataclass
class PlanSnapshot:
    """
    Versioned plan state handed between the engine and its callers.

    Treated as immutable once built: engine entry points always return a new
    snapshot rather than editing one in place. Counts are the true totals even
    when the id lists are capped for transport.
    """

    work_orders: List[WorkOrder]
    ops_tasks: List[OpsTask]
    rationale: List[str] = field(default_factory=list)
    moved: int = 0
    scheduled: int = 0
    unscheduled: int = 0
    moved_ids: List[str] = field(default_factory=list)
    scheduled_ids: List[str] = field(default_factory=list)
    unscheduled_ids: List[str] = field(default_factory=list)
    moved_ops_ids: List[str] = field(default_factory=list)
    when: str = ""
    status: str = "preview"  # preview | accepted
    version: int = 0

    def work_order(self, wo_id: str) -> Optional[WorkOrder]:
        for w in self.work_orders:
            if w.id == wo_id:
                return w
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "workorders": [w.to_dict() for w in self.work_orders],
            "opsTasks": [t.to_dict() for t in self.ops_tasks],
            "rationale": list(self.rationale),
            "moved": self.moved,
            "scheduled": self.scheduled,
            "unscheduled": self.unscheduled,
            "movedIds": list(self.moved_ids),
            "scheduledIds": list(self.scheduled_ids),
            "unscheduledIds": list(self.unscheduled_ids),
            "movedOpsIds": list(self.moved_ops_ids),
            "when": self.when,
            "status": self.status,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "PlanSnapshot":
        return cls(
            work_orders=[WorkOrder.from_dict(w) for w in raw.get("workorders", [])],
            ops_tasks=[OpsTask.from_dict(t, i) for i, t in enumerate(raw.get("opsTasks", []))],
            rationale=list(raw.get("rationale", [])),
            moved=int(raw.get("moved", 0)),
            scheduled=int(raw.get("scheduled", 0)),
            unscheduled=int(raw.get("unscheduled", 0)),
            moved_ids=list(raw.get("movedIds", [])),
            scheduled_ids=list(raw.get("scheduledIds", [])),
            unscheduled_ids=list(raw.get("unscheduledIds", [])),
            moved_ops_ids=list(raw.get("movedOpsIds", [])),
            when=str(raw.get("when", "")),
            status=str(raw.get("status", "preview")),
            version=int(raw.get("version", 0)),
        )
