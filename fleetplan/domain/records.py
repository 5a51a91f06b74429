"""SQLAlchemy tables backing the fleet plan."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Float, Integer, String
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all tables."""
    pass


class WorkOrderRecord(Base):
    """Persisted work order; times are naive local wall-clock."""

    __tablename__ = "work_orders"

    id = Column(String(32), primary_key=True)
    vehicle_id = Column(String(32), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    type = Column(String(20), nullable=False, default="Corrective")
    priority = Column(String(20), nullable=False, default="Medium")
    status = Column(String(20), nullable=False, default="Open")
    start = Column(DateTime, nullable=True)
    end = Column(DateTime, nullable=True)
    hours = Column(Float, nullable=True)
    required_skills = Column(String(200), nullable=True)  # Semicolon-separated
    technician_id = Column(String(32), nullable=True)

    def __repr__(self) -> str:
        return f"<WorkOrderRecord(id={self.id}, vehicle={self.vehicle_id}, status='{self.status}')>"


class OpsTaskRecord(Base):
    """Persisted ops task."""

    __tablename__ = "ops_tasks"

    id = Column(String(32), primary_key=True)
    vehicle_id = Column(String(32), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    start = Column(DateTime, nullable=False)
    end = Column(DateTime, nullable=False)
    hours = Column(Float, nullable=False)

    def __repr__(self) -> str:
        return f"<OpsTaskRecord(id={self.id}, vehicle={self.vehicle_id}, start={self.start})>"


class PlanSnapshotRecord(Base):
    """A preview or accepted plan, stored whole as JSON."""

    __tablename__ = "plan_snapshots"

    id = Column(Integer, primary_key=True, autoincrement=True)
    status = Column(String(10), nullable=False)  # preview | accepted
    version = Column(Integer, nullable=False, default=0)
    moved = Column(Integer, nullable=False, default=0)
    scheduled = Column(Integer, nullable=False, default=0)
    unscheduled = Column(Integer, nullable=False, default=0)
    payload = Column(JSON, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    def __repr__(self) -> str:
        return f"<PlanSnapshotRecord(id={self.id}, status='{self.status}', version={self.version})>"
