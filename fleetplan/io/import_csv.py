"""CSV import utilities to load plan data into the database."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List

import pandas as pd
from sqlalchemy.orm import Session

from fleetplan.domain.models import OpsTask, WorkOrder
from fleetplan.domain.repositories import OpsTaskRepository, WorkOrderRepository
from fleetplan.services.timeplan import duration_hours, normalize_timestamp

logger = logging.getLogger(__name__)

TIME_COLUMNS = ("start", "end")

_COLUMN_ALIASES = {
    "work_order_id": "id",
    "wo_id": "id",
    "ops_id": "id",
    "asset_id": "vehicle_id",
    "vehicle": "vehicle_id",
    "vehicleid": "vehicle_id",
    "scheduled_start": "start",
    "scheduled_end": "end",
    "description": "title",
    "wo_type": "type",
    "skills": "required_skills",
    "requiredskills": "required_skills",
    "demand_hours": "hours",
}


def _read_frame(csv_path: str | Path, tz: str | None) -> pd.DataFrame:
    df = pd.read_csv(csv_path, dtype=str, keep_default_na=False)

    # Normalize column names
    df.columns = df.columns.str.lower().str.strip()
    df.rename(columns=_COLUMN_ALIASES, inplace=True)

    for col in TIME_COLUMNS:
        if col in df.columns:
            df[col] = df[col].map(lambda v: normalize_timestamp(v, tz))
    return df


def _rows(df: pd.DataFrame) -> List[Dict[str, Any]]:
    rows = []
    for record in df.to_dict(orient="records"):
        rows.append({k: v for k, v in record.items() if not pd.isna(v) and v != ""})
    return rows


def read_work_orders_csv(csv_path: str | Path, tz: str | None = None) -> List[WorkOrder]:
    """
    Read work orders from CSV.

    Headers are case-insensitive and common aliases (``asset_id``,
    ``scheduled_start``, ``description``...) are accepted. Required skills are
    semicolon-separated. Timestamps are normalised to local ISO.

    Args:
        csv_path: Path to work orders CSV
        tz: Zone for timestamps that carry an offset

    Returns:
        List of WorkOrder
    """
    df = _read_frame(csv_path, tz)
    if "id" not in df.columns or "vehicle_id" not in df.columns:
        raise ValueError(f"{csv_path}: work order CSV needs id and vehicle_id columns")
    return [WorkOrder.from_dict(row) for row in _rows(df)]


def read_ops_tasks_csv(csv_path: str | Path, tz: str | None = None, default_hours: float = 8.0) -> List[OpsTask]:
    """Read ops tasks from CSV; missing hours are derived from start/end."""
    df = _read_frame(csv_path, tz)
    if "vehicle_id" not in df.columns or "start" not in df.columns or "end" not in df.columns:
        raise ValueError(f"{csv_path}: ops CSV needs vehicle_id, start and end columns")

    tasks = []
    for i, row in enumerate(_rows(df)):
        if "hours" not in row:
            row["hours"] = duration_hours(row.get("start"), row.get("end"), default_hours)
        tasks.append(OpsTask.from_dict(row, i))
    return tasks


def import_work_orders_csv(session: Session, csv_path: str | Path, tz: str | None = None, replace: bool = False) -> int:
    """
    Import work orders from CSV into database.

    Args:
        session: Database session
        csv_path: Path to work orders CSV
        tz: Zone for timestamps that carry an offset
        replace: Drop existing work orders first

    Returns:
        Number of work orders imported
    """
    work_orders = read_work_orders_csv(csv_path, tz)
    if replace:
        WorkOrderRepository.replace_all(session, work_orders)
    else:
        WorkOrderRepository.bulk_create(session, work_orders)
    logger.info("Imported %d work orders from %s", len(work_orders), csv_path)
    return len(work_orders)


def import_ops_tasks_csv(session: Session, csv_path: str | Path, tz: str | None = None, replace: bool = False) -> int:
    """
    Import ops tasks from CSV into database.

    Returns:
        Number of ops tasks imported
    """
    ops_tasks = read_ops_tasks_csv(csv_path, tz)
    if replace:
        OpsTaskRepository.replace_all(session, ops_tasks)
    else:
        OpsTaskRepository.bulk_create(session, ops_tasks)
    logger.info("Imported %d ops tasks from %s", len(ops_tasks), csv_path)
    return len(ops_tasks)
