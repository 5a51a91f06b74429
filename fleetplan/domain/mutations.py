"""Typed plan mutations and boundary normalization of external payloads."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Union


@dataclass(frozen=True)
class MoveWorkOrder:
    id: str
    start: Optional[str] = None
    end: Optional[str] = None
    hours: Optional[float] = None


@dataclass(frozen=True)
class CancelWorkOrder:
    id: str


@dataclass(frozen=True)
class AddWorkOrder:
    vehicle_id: str
    title: str
    hours: Optional[float] = None
    required_skills: tuple = ()
    priority: Optional[str] = None
    type: Optional[str] = None
    start: Optional[str] = None


@dataclass(frozen=True)
class MoveOps:
    id: str
    start: Optional[str] = None
    end: Optional[str] = None
    hours: Optional[float] = None


@dataclass(frozen=True)
class CancelOps:
    id: str


@dataclass(frozen=True)
class AddTechnician:
    skill: str
    id: Optional[str] = None
    name: Optional[str] = None
    depot: Optional[str] = None
    hours_per_day: Optional[float] = None


@dataclass(frozen=True)
class SetAvailability:
    technician_id: str
    date: str
    hours: float


@dataclass(frozen=True)
class InvalidMutation:
    raw: Any
    reason: str = "unknown mutation"

    def describe(self) -> str:
        try:
            payload = json.dumps(self.raw, sort_keys=True, default=str)
        except (TypeError, ValueError):
            payload = repr(self.raw)
        return f"{self.reason}: {payload}"


Mutation = Union[
    MoveWorkOrder,
    CancelWorkOrder,
    AddWorkOrder,
    MoveOps,
    CancelOps,
    AddTechnician,
    SetAvailability,
    InvalidMutation,
]

PLAN_MUTATIONS = (MoveWorkOrder, CancelWorkOrder, AddWorkOrder, MoveOps, CancelOps)
RESOURCE_MUTATIONS = (AddTechnician, SetAvailability)

_KIND_ALIASES = {
    "MOVE_WO": "MOVE_WO",
    "MOVE_WORKORDER": "MOVE_WO",
    "MOVE_WORK_ORDER": "MOVE_WO",
    "CANCEL_WO": "CANCEL_WO",
    "CANCEL_WORKORDER": "CANCEL_WO",
    "CANCEL_WORK_ORDER": "CANCEL_WO",
    "ADD_WO": "ADD_WO",
    "ADD_WORKORDER": "ADD_WO",
    "ADD_WORK_ORDER": "ADD_WO",
    "MOVE_OPS": "MOVE_OPS",
    "MOVE_OPS_TASK": "MOVE_OPS",
    "CANCEL_OPS": "CANCEL_OPS",
    "CANCEL_OPS_TASK": "CANCEL_OPS",
    "ADD_TECH": "ADD_TECH",
    "ADD_TECHNICIAN": "ADD_TECH",
    "SET_AVAILABILITY": "SET_AVAILABILITY",
    "SET_AVAIL": "SET_AVAILABILITY",
}


def _get(raw: Dict[str, Any], *keys: str) -> Any:
    for k in keys:
        v = raw.get(k)
        if v is not None and v != "":
            return v
    return None


def _hours(raw: Dict[str, Any], *keys: str) -> Optional[float]:
    v = _get(raw, *keys)
    if v is None:
        return None
    try:
        return float(v)
    except (TypeError, ValueError):
        return None


_START_KEYS = ("start", "startISO", "start_iso")
_END_KEYS = ("end", "endISO", "end_iso")


def _non_text_time(raw: Dict[str, Any], *keys: str) -> Optional[str]:
    """Name of the first time field holding something other than a string."""
    for k in keys:
        v = raw.get(k)
        if v is not None and v != "" and not isinstance(v, str):
            return k
    return None


def _finite(hours: Optional[float]) -> bool:
    return hours is None or math.isfinite(hours)


def _kind(raw: Dict[str, Any]) -> str:
    kind = str(_get(raw, "op", "type", "kind") or "").strip().upper().replace("-", "_").replace(" ", "_")
    return _KIND_ALIASES.get(kind, kind)


def parse_mutation(raw: Any) -> Mutation:
    """
    Normalize one loosely-shaped mutation payload into its typed variant.

    Never raises: anything that cannot be understood comes back as an
    InvalidMutation carrying the original payload.
    """
    if isinstance(raw, (*PLAN_MUTATIONS, *RESOURCE_MUTATIONS, InvalidMutation)):
        return raw
    if not isinstance(raw, dict):
        return InvalidMutation(raw, "malformed mutation")

    kind = _kind(raw)
    if not kind:
        return InvalidMutation(raw, "malformed mutation (no op)")

    if kind in ("MOVE_WO", "MOVE_OPS", "CANCEL_WO", "CANCEL_OPS"):
        target = _get(raw, "id", "woId", "opsId", "workOrderId")
        if target is None:
            return InvalidMutation(raw, f"{kind} missing id")
        target = str(target)
        if kind == "CANCEL_WO":
            return CancelWorkOrder(target)
        if kind == "CANCEL_OPS":
            return CancelOps(target)
        bad = _non_text_time(raw, *_START_KEYS, *_END_KEYS)
        if bad:
            return InvalidMutation(raw, f"{kind} {bad} is not a timestamp")
        hours = _hours(raw, "hours", "durationHours")
        if not _finite(hours):
            return InvalidMutation(raw, f"{kind} hours out of range")
        move_cls = MoveWorkOrder if kind == "MOVE_WO" else MoveOps
        return move_cls(
            id=target,
            start=_get(raw, *_START_KEYS),
            end=_get(raw, *_END_KEYS),
            hours=hours,
        )

    if kind == "ADD_WO":
        bad = _non_text_time(raw, *_START_KEYS)
        if bad:
            return InvalidMutation(raw, f"ADD_WO {bad} is not a timestamp")
        hours = _hours(raw, "hours")
        if not _finite(hours):
            return InvalidMutation(raw, "ADD_WO hours out of range")
        skills = raw.get("requiredSkills") or raw.get("required_skills")
        if not skills and raw.get("skill"):
            skills = [raw["skill"]]
        return AddWorkOrder(
            vehicle_id=str(_get(raw, "vehicleId", "vehicle_id") or ""),
            title=str(_get(raw, "title") or ""),
            hours=hours,
            required_skills=tuple(skills or ()),
            priority=_get(raw, "priority"),
            # "type" names the op unless "op" is present
            type=_get(raw, "woType", "wo_type", "workOrderType") or (raw.get("type") if raw.get("op") else None),
            start=_get(raw, *_START_KEYS),
        )

    if kind == "ADD_TECH":
        skill = _get(raw, "skill")
        if skill is None:
            return InvalidMutation(raw, "ADD_TECH missing skill")
        per_day = _hours(raw, "hoursPerDay", "hours_per_day")
        if not _finite(per_day):
            return InvalidMutation(raw, "ADD_TECH hours out of range")
        return AddTechnician(
            skill=str(skill),
            id=_get(raw, "id"),
            name=_get(raw, "name"),
            depot=_get(raw, "depot"),
            hours_per_day=per_day,
        )

    if kind == "SET_AVAILABILITY":
        tech = _get(raw, "technicianId", "technician_id")
        day = _get(raw, "date")
        hours = _hours(raw, "hours")
        if tech is None or day is None or hours is None:
            return InvalidMutation(raw, "SET_AVAILABILITY missing technicianId/date/hours")
        if not _finite(hours):
            return InvalidMutation(raw, "SET_AVAILABILITY hours out of range")
        return SetAvailability(technician_id=str(tech), date=str(day), hours=hours)

    return InvalidMutation(raw, f"unknown op {kind}")


def parse_mutations(raw_list: Iterable[Any] | None) -> List[Mutation]:
    return [parse_mutation(m) for m in (raw_list or [])]
