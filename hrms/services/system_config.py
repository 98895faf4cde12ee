"""Key/value settings editable at runtime by admins (stored in ``system_config``)."""
from __future__ import annotations

from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from hrms.models.support import SystemConfig

DEFAULT_CLOCK_IN_TIME_LIMIT = "default_clock_in_time_limit"
MAX_LATE_DAYS = "max_late_days"

DESCRIPTIONS = {
    DEFAULT_CLOCK_IN_TIME_LIMIT: "Clock-in time (HH:MM) after which an arrival counts as late",
    MAX_LATE_DAYS: "Late days allowed per month before a leave deduction",
}


def _row(db: Session, key: str) -> Optional[SystemConfig]:
    return db.scalar(select(SystemConfig).where(SystemConfig.config_key == key))


def get_config(db: Session, key: str, default: Optional[str] = None) -> Optional[str]:
    row = _row(db, key)
    return default if row is None else row.config_value


def set_config(db: Session, key: str, value: str, *, description: Optional[str] = None) -> SystemConfig:
    """Upsert ``key``; the description falls back to the built-in one for known keys."""
    row = _row(db, key)
    if row is None:
        row = SystemConfig(config_key=key)
        db.add(row)
    row.config_value = value
    row.description = description or row.description or DESCRIPTIONS.get(key)
    db.flush()
    return row


def get_max_late_days(db: Session) -> int:
    """Monthly late-day allowance; unset or malformed values mean no allowance."""
    raw = (get_config(db, MAX_LATE_DAYS) or "").strip()
    return max(0, int(raw)) if raw.isdigit() else 0
