from __future__ import annotations

import re
from datetime import date, datetime
from typing import Optional

from pydantic import Field, field_validator

from hrms.models.enums import AttendanceStatus
from hrms.schemas.base import ORMModel, UserBrief


_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class AttendanceRead(ORMModel):
    id: int
    user_id: int
    user: Optional[UserBrief] = None
    work_date: date
    clock_in: datetime
    clock_out: Optional[datetime] = None
    hours_worked: Optional[float] = None
    status: AttendanceStatus


class PenaltyRead(ORMModel):
    id: int
    user_id: int
    penalty_date: date
    late_arrival_date: date
    clock_in_time: str
    time_limit: str
    max_late_days: int
    late_arrival_count: int
    leave_deducted: float
    leave_id: Optional[int] = None
    reason: Optional[str] = None
    created_at: datetime


class ClockInResponse(ORMModel):
    attendance: AttendanceRead
    penalty: Optional[PenaltyRead] = None


class AttendanceStats(ORMModel):
    user_id: int
    year: int
    month: int
    days_present: int
    late_days: int
    total_hours: float
    average_hours: float
    penalties: int


class WeeklyHours(ORMModel):
    user_id: int
    week_start: date
    week_end: date
    weekly_hours: float
    days_worked: int


class AttendanceSettings(ORMModel):
    default_clock_in_time_limit: Optional[str] = None
    max_late_days: int = Field(default=0, ge=0, le=31)

    @field_validator("default_clock_in_time_limit")
    @classmethod
    def validate_limit(cls, value: Optional[str]) -> Optional[str]:
        if value is None or value == "":
            return None
        if not _HHMM.match(value.strip()):
            raise ValueError("default_clock_in_time_limit must be HH:MM")
        return value.strip()
