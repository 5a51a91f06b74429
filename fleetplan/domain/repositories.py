"""Repository classes for data access."""

from __future__ import annotations

import copy
import logging
from typing import List, Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from fleetplan.services.timeplan import parse_local, to_local_iso

from .models import OpsTask, PlanSnapshot, WorkOrder
from .records import Base, OpsTaskRecord, PlanSnapshotRecord, WorkOrderRecord

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Manages database connection and session factory."""

    def __init__(self, db_url: str = "sqlite:///fleetplan.db"):
        """
        Initialize database manager.

        Args:
            db_url: SQLAlchemy database URL (default: sqlite:///fleetplan.db)
        """
        self.engine = create_engine(db_url, echo=False)
        self.SessionLocal = sessionmaker(bind=self.engine)

    def create_tables(self):
        """Create all tables if they don't exist."""
        Base.metadata.create_all(self.engine)

    def get_session(self) -> Session:
        """Get a new database session."""
        return self.SessionLocal()


def _iso(value) -> Optional[str]:
    return to_local_iso(value) if value is not None else None


def work_order_to_record(w: WorkOrder) -> WorkOrderRecord:
    return WorkOrderRecord(
        id=w.id,
        vehicle_id=w.vehicle_id,
        title=w.title,
        type=w.type.value,
        priority=w.priority.value,
        status=w.status.value,
        start=parse_local(w.start),
        end=parse_local(w.end),
        hours=w.hours,
        required_skills=";".join(w.required_skills) or None,
        technician_id=w.technician_id,
    )


def work_order_from_record(r: WorkOrderRecord) -> WorkOrder:
    return WorkOrder.from_dict(
        {
            "id": r.id,
            "vehicleId": r.vehicle_id,
            "title": r.title,
            "type": r.type,
            "priority": r.priority,
            "status": r.status,
            "start": _iso(r.start),
            "end": _iso(r.end),
            "hours": r.hours,
            "requiredSkills": r.required_skills or [],
            "technicianId": r.technician_id,
        }
    )


def ops_task_to_record(t: OpsTask) -> OpsTaskRecord:
    return OpsTaskRecord(
        id=t.id,
        vehicle_id=t.vehicle_id,
        title=t.title,
        start=parse_local(t.start),
        end=parse_local(t.end),
        hours=t.hours,
    )


def ops_task_from_record(r: OpsTaskRecord) -> OpsTask:
    return OpsTask(
        id=r.id,
        vehicle_id=r.vehicle_id,
        title=r.title,
        start=_iso(r.start),
        end=_iso(r.end),
        hours=r.hours,
    )


class WorkOrderRepository:
    """Repository for work order data access."""

    @staticmethod
    def get_all(session: Session) -> List[WorkOrder]:
        """Get all work orders, ordered by id."""
        return [work_order_from_record(r) for r in session.query(WorkOrderRecord).order_by(WorkOrderRecord.id).all()]

    @staticmethod
    def get_by_id(session: Session, wo_id: str) -> Optional[WorkOrder]:
        r = session.query(WorkOrderRecord).filter(WorkOrderRecord.id == wo_id).first()
        return work_order_from_record(r) if r else None

    @staticmethod
    def get_by_vehicle(session: Session, vehicle_id: str) -> List[WorkOrder]:
        rows = session.query(WorkOrderRecord).filter(WorkOrderRecord.vehicle_id == vehicle_id).all()
        return [work_order_from_record(r) for r in rows]

    @staticmethod
    def bulk_create(session: Session, work_orders: List[WorkOrder]) -> None:
        """Create multiple work orders."""
        session.add_all([work_order_to_record(w) for w in work_orders])
        session.commit()

    @staticmethod
    def replace_all(session: Session, work_orders: List[WorkOrder]) -> int:
        """Replace the stored work orders with ``work_orders``. Returns number written."""
        session.query(WorkOrderRecord).delete()
        session.expunge_all()
        session.add_all([work_order_to_record(w) for w in work_orders])
        session.commit()
        return len(work_orders)


class OpsTaskRepository:
    """Repository for ops task data access."""

    @staticmethod
    def get_all(session: Session) -> List[OpsTask]:
        rows = session.query(OpsTaskRecord).order_by(OpsTaskRecord.start, OpsTaskRecord.id).all()
        return [ops_task_from_record(r) for r in rows]

    @staticmethod
    def get_by_id(session: Session, ops_id: str) -> Optional[OpsTask]:
        r = session.query(OpsTaskRecord).filter(OpsTaskRecord.id == ops_id).first()
        return ops_task_from_record(r) if r else None

    @staticmethod
    def bulk_create(session: Session, ops_tasks: List[OpsTask]) -> None:
        session.add_all([ops_task_to_record(t) for t in ops_tasks])
        session.commit()

    @staticmethod
    def replace_all(session: Session, ops_tasks: List[OpsTask]) -> int:
        session.query(OpsTaskRecord).delete()
        session.expunge_all()
        session.add_all([ops_task_to_record(t) for t in ops_tasks])
        session.commit()
        return len(ops_tasks)


class PlanRepository:
    """Repository for stored plan snapshots."""

    @staticmethod
    def save(session: Session, snapshot: PlanSnapshot) -> int:
        """Persist a snapshot. Returns its row id."""
        record = PlanSnapshotRecord(
            status=snapshot.status,
            version=snapshot.version,
            moved=snapshot.moved,
            scheduled=snapshot.scheduled,
            unscheduled=snapshot.unscheduled,
            payload=snapshot.to_dict(),
        )
        session.add(record)
        session.commit()
        session.refresh(record)
        return record.id

    @staticmethod
    def get_latest(session: Session, status: str | None = None) -> Optional[PlanSnapshot]:
        query = session.query(PlanSnapshotRecord)
        if status is not None:
            query = query.filter(PlanSnapshotRecord.status == status)
        record = query.order_by(PlanSnapshotRecord.id.desc()).first()
        return PlanSnapshot.from_dict(record.payload) if record else None

    @staticmethod
    def list_accepted(session: Session, limit: int = 6) -> List[PlanSnapshot]:
        """The last ``limit`` accepted plans, oldest first."""
        records = (
            session.query(PlanSnapshotRecord)
            .filter(PlanSnapshotRecord.status == "accepted")
            .order_by(PlanSnapshotRecord.id.desc())
            .limit(limit)
            .all()
        )
        return [PlanSnapshot.from_dict(r.payload) for r in reversed(records)]

    @staticmethod
    def delete_previews(session: Session) -> int:
        """Delete all stored previews. Returns number of deleted rows."""
        count = (
            session.query(PlanSnapshotRecord)
            .filter(PlanSnapshotRecord.status == "preview")
            .delete(synchronize_session=False)
        )
        session.commit()
        return count

    @staticmethod
    def next_version(session: Session) -> int:
        latest = PlanRepository.get_latest(session, status="accepted")
        return (latest.version if latest else 0) + 1


class FleetDataProvider:
    """
    Data source for the planning engine.

    Built explicitly by the caller and loaded on demand; ``load`` reads the
    database once and later calls hand out deep copies of that state so a
    caller can never edit the cached plan by accident.
    """

    def __init__(self, session: Session):
        self.session = session
        self._work_orders: Optional[List[WorkOrder]] = None
        self._ops_tasks: Optional[List[OpsTask]] = None

    @property
    def loaded(self) -> bool:
        return self._work_orders is not None

    def load(self) -> "FleetDataProvider":
        self._work_orders = WorkOrderRepository.get_all(self.session)
        self._ops_tasks = OpsTaskRepository.get_all(self.session)
        logger.info(
            "Loaded %d work orders and %d ops tasks", len(self._work_orders), len(self._ops_tasks)
        )
        return self

    def reload(self) -> "FleetDataProvider":
        return self.load()

    def _ensure_loaded(self) -> None:
        if not self.loaded:
            raise RuntimeError("FleetDataProvider.load() must be called before reading data")

    def work_orders(self) -> List[WorkOrder]:
        self._ensure_loaded()
        return copy.deepcopy(self._work_orders)

    def ops_tasks(self) -> List[OpsTask]:
        self._ensure_loaded()
        return copy.deepcopy(self._ops_tasks)

    def vehicle_ids(self) -> List[str]:
        self._ensure_loaded()
        return sorted({w.vehicle_id for w in self._work_orders} | {t.vehicle_id for t in self._ops_tasks})

    def commit_plan(self, work_orders: List[WorkOrder], ops_tasks: List[OpsTask]) -> None:
        """Write an accepted plan back and refresh the cached copy."""
        WorkOrderRepository.replace_all(self.session, work_orders)
        OpsTaskRepository.replace_all(self.session, ops_tasks)
        self.load()
