"""CSV export utilities."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

import pandas as pd
from sqlalchemy.orm import Session

from fleetplan.domain.models import Clash, OpsTask, WorkOrder
from fleetplan.domain.repositories import OpsTaskRepository, WorkOrderRepository
from fleetplan.services.clashes import clashes_frame

logger = logging.getLogger(__name__)

WORK_ORDER_COLUMNS = [
    "id", "vehicle_id", "title", "type", "priority", "status",
    "start", "end", "hours", "required_skills", "technician_id",
]
OPS_COLUMNS = ["id", "vehicle_id", "title", "start", "end", "hours"]


def work_orders_frame(work_orders: Sequence[WorkOrder]) -> pd.DataFrame:
    rows = [
        {
            "id": w.id,
            "vehicle_id": w.vehicle_id,
            "title": w.title,
            "type": w.type.value,
            "priority": w.priority.value,
            "status": w.status.value,
            "start": w.start,
            "end": w.end,
            "hours": w.hours,
            "required_skills": ";".join(w.required_skills),
            "technician_id": w.technician_id,
        }
        for w in work_orders
    ]
    return pd.DataFrame(rows, columns=WORK_ORDER_COLUMNS)


def ops_tasks_frame(ops_tasks: Sequence[OpsTask]) -> pd.DataFrame:
    return pd.DataFrame([vars(t) for t in ops_tasks], columns=OPS_COLUMNS)


def export_work_orders_csv(
    csv_path: str | Path,
    work_orders: Sequence[WorkOrder] | None = None,
    session: Session | None = None,
) -> int:
    """
    Export work orders to CSV.

    Args:
        csv_path: Output CSV path
        work_orders: Work orders to write; read from ``session`` when omitted
        session: Database session

    Returns:
        Number of work orders exported
    """
    if work_orders is None:
        if session is None:
            raise ValueError("export_work_orders_csv needs work_orders or a session")
        work_orders = WorkOrderRepository.get_all(session)
    df = work_orders_frame(work_orders)
    df.to_csv(csv_path, index=False)
    logger.info("Exported %d work orders to %s", len(df), csv_path)
    return len(df)


def export_ops_tasks_csv(
    csv_path: str | Path,
    ops_tasks: Sequence[OpsTask] | None = None,
    session: Session | None = None,
) -> int:
    """Export ops tasks to CSV. Returns number exported."""
    if ops_tasks is None:
        if session is None:
            raise ValueError("export_ops_tasks_csv needs ops_tasks or a session")
        ops_tasks = OpsTaskRepository.get_all(session)
    df = ops_tasks_frame(ops_tasks)
    df.to_csv(csv_path, index=False)
    logger.info("Exported %d ops tasks to %s", len(df), csv_path)
    return len(df)


def export_clashes_csv(csv_path: str | Path, clashes: Sequence[Clash]) -> int:
    df = clashes_frame(clashes)
    df.to_csv(csv_path, index=False)
    return len(df)
