"""Technician roster and availability, edited through forwarded mutations."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional

from fleetplan.domain.mutations import AddTechnician, SetAvailability

from .timeplan import parse_local

logger = logging.getLogger(__name__)

DEFAULT_HOURS_PER_DAY = 8.0


@dataclass
class Technician:
    id: str
    name: str
    skills: List[str] = field(default_factory=list)
    depot: Optional[str] = None


@dataclass
class AvailabilitySlot:
    technician_id: str
    date: str  # YYYY-MM-DD
    hours: float


class ResourceStore:
    """
    Technicians and their daily availability.

    Constructed and seeded explicitly by the caller; the planning engine only
    sees a store that was handed to it.
    """

    def __init__(self, technicians: Iterable[Technician] = (), availability: Iterable[AvailabilitySlot] = ()):
        self.technicians: List[Technician] = list(technicians)
        self.availability: List[AvailabilitySlot] = list(availability)

    def seed_default(self, week_start: datetime | date, days: int = 7) -> "ResourceStore":
        """Reset to three generic technicians with 8h per day across the horizon."""
        self.technicians = [
            Technician("T01", "Alex M", ["Mechanic"]),
            Technician("T02", "Blake R", ["Mechanic"]),
            Technician("T03", "Casey E", ["AutoElec"]),
        ]
        start = week_start.date() if isinstance(week_start, datetime) else week_start
        self.availability = [
            AvailabilitySlot(t.id, (start + timedelta(days=i)).isoformat(), DEFAULT_HOURS_PER_DAY)
            for i in range(days)
            for t in self.technicians
        ]
        return self

    def technician(self, tech_id: str) -> Optional[Technician]:
        for t in self.technicians:
            if t.id.upper() == tech_id.upper():
                return t
        return None

    def available_hours(self, tech_id: str, day: str) -> float:
        return sum(a.hours for a in self.availability if a.technician_id == tech_id and a.date == day)

    def technicians_with_skill(self, skill: str) -> List[Technician]:
        return [t for t in self.technicians if skill in t.skills]

    def _next_tech_id(self) -> str:
        highest = 0
        for t in self.technicians:
            m = re.fullmatch(r"T(\d+)", t.id)
            if m:
                highest = max(highest, int(m.group(1)))
        return f"T{highest + 1:02d}"

    def _dates(self) -> List[str]:
        return sorted({a.date for a in self.availability})

    def apply(self, mutations: Iterable) -> List[str]:
        """Apply resource mutations in order and return one note per mutation."""
        notes: List[str] = []
        for m in mutations:
            if isinstance(m, AddTechnician):
                notes.append(self._add_technician(m))
            elif isinstance(m, SetAvailability):
                notes.append(self._set_availability(m))
            else:
                notes.append(f"Unknown resource mutation {type(m).__name__}; ignored")
        return notes

    def _add_technician(self, m: AddTechnician) -> str:
        tech_id = m.id or self._next_tech_id()
        if self.technician(tech_id):
            return f"ADD_TECH: {tech_id} already exists"
        tech = Technician(tech_id, m.name or f"Technician {tech_id}", [m.skill], m.depot)
        self.technicians.append(tech)
        hours = m.hours_per_day if m.hours_per_day is not None else DEFAULT_HOURS_PER_DAY
        for day in self._dates():
            self.availability.append(AvailabilitySlot(tech_id, day, hours))
        logger.info("Added technician %s (%s)", tech_id, m.skill)
        return f"Added technician {tech_id} ({tech.name}, {m.skill}, {hours:g}h/day)"

    def _set_availability(self, m: SetAvailability) -> str:
        tech = self.technician(m.technician_id)
        if tech is None:
            return f"SET_AVAILABILITY: {m.technician_id} not found"
        day = parse_local(m.date)
        if day is None:
            return f"SET_AVAILABILITY: invalid date {m.date!r} for {m.technician_id}"
        if m.hours < 0:
            return f"SET_AVAILABILITY: negative hours for {m.technician_id}"
        ymd = day.date().isoformat()
        self.availability = [
            a for a in self.availability if not (a.technician_id == tech.id and a.date == ymd)
        ]
        self.availability.append(AvailabilitySlot(tech.id, ymd, m.hours))
        return f"Set {tech.id} availability on {ymd} to {m.hours:g}h"

    def snapshot(self) -> Dict[str, list]:
        return {
            "technicians": [vars(t).copy() for t in self.technicians],
            "availability": [vars(a).copy() for a in self.availability],
        }
