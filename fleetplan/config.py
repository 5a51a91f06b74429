"""Configuration loading for the fleet planner (YAML or JSON)."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml


@dataclass
class SchedulerConfig:
    """Business rules and demo anchors shared by every planning entry point."""

    week_start: str = "2025-08-22"  # local midnight of horizon day 0
    anchor_year: int = 2025
    horizon_days: int = 7
    business_hours: Tuple[float, float] = (8, 17)
    night_anchor_hour: int = 22  # preferred start hour for shifted ops
    default_slot_hour: int = 9  # fallback slot when nothing fits
    default_work_order_hours: float = 2.0
    default_ops_hours: float = 8.0
    timezone: Optional[str] = None  # None = system local zone
    id_list_cap: int = 200
    history_limit: int = 6
    db_url: str = "sqlite:///fleetplan.db"
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def week_start_dt(self) -> datetime:
        d = date.fromisoformat(self.week_start)
        return datetime(d.year, d.month, d.day)


def _validate(cfg: SchedulerConfig) -> SchedulerConfig:
    try:
        date.fromisoformat(cfg.week_start)
    except ValueError as e:
        raise ValueError(f"week_start must be YYYY-MM-DD, got {cfg.week_start!r}") from e

    if len(cfg.business_hours) != 2:
        raise ValueError("business_hours must be a [open, close] pair")
    open_h, close_h = (float(x) for x in cfg.business_hours)
    if not (0 <= open_h < close_h <= 24):
        raise ValueError(f"Invalid business_hours {cfg.business_hours}: need 0 <= open < close <= 24")
    cfg.business_hours = (open_h, close_h)

    if not 0 <= cfg.night_anchor_hour <= 23:
        raise ValueError("night_anchor_hour must be within 0..23")
    if not 0 <= cfg.default_slot_hour <= 23:
        raise ValueError("default_slot_hour must be within 0..23")
    if cfg.horizon_days < 1:
        raise ValueError("horizon_days must be >= 1")
    if cfg.default_work_order_hours <= 0 or cfg.default_ops_hours <= 0:
        raise ValueError("Default durations must be positive")
    if cfg.history_limit < 1:
        raise ValueError("history_limit must be >= 1")
    return cfg


def config_from_dict(raw: Dict[str, Any]) -> SchedulerConfig:
    known = {f.name for f in fields(SchedulerConfig)} - {"extra"}
    kwargs = {k: v for k, v in raw.items() if k in known}
    if "business_hours" in kwargs:
        kwargs["business_hours"] = tuple(kwargs["business_hours"])
    if "week_start" in kwargs:
        # YAML turns bare dates into date objects
        kwargs["week_start"] = str(kwargs["week_start"])
    cfg = SchedulerConfig(**kwargs)
    cfg.extra = {k: v for k, v in raw.items() if k not in known}
    return _validate(cfg)


def load_config(path: str | Path | None = None) -> SchedulerConfig:
    """
    Load configuration from a YAML or JSON file.

    Args:
        path: Config file path; ``None`` returns the defaults.

    Returns:
        Validated SchedulerConfig

    Raises:
        ValueError: If the file content is not a mapping or a value is out of range
    """
    if path is None:
        return _validate(SchedulerConfig())

    p = Path(path)
    text = p.read_text(encoding="utf-8")
    if p.suffix.lower() == ".json":
        raw = json.loads(text)
    else:
        raw = yaml.safe_load(text)
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValueError(f"Config {p} must contain a mapping, got {type(raw).__name__}")
    return config_from_dict(raw)
