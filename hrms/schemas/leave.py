from __future__ import annotations

import re
from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import Field, field_validator, model_validator

from hrms.models.enums import HalfDayType, LeaveKind, LeaveStatus
from hrms.schemas.base import ORMModel, UserBrief


_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class LeaveTypeCreate(ORMModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    max_days: Optional[float] = Field(default=None, gt=0)
    is_active: bool = True
    is_short_day: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name is required")
        return value


class LeaveTypeUpdate(ORMModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    max_days: Optional[float] = Field(default=None, gt=0)
    is_active: Optional[bool] = None
    is_short_day: Optional[bool] = None


class LeaveTypeRead(ORMModel):
    id: int
    name: str
    description: Optional[str] = None
    max_days: Optional[float] = None
    is_active: bool
    is_short_day: bool


class _AllotmentQuantity(ORMModel):
    """Either a day count, or an hours/minutes pair for short-day leave types."""

    days: Optional[float] = None
    hours: Optional[int] = Field(default=None, ge=0)
    minutes: Optional[int] = Field(default=None, ge=0, le=59)
    carry_forward: bool = False
    reason: Optional[str] = None

    @property
    def is_timed(self) -> bool:
        return self.hours is not None or self.minutes is not None

    @model_validator(mode="after")
    def validate_quantity(self):
        if self.is_timed:
            if not (self.hours or 0) and not (self.minutes or 0):
                raise ValueError("hours and minutes cannot both be zero")
        else:
            if self.days is None or self.days <= 0:
                raise ValueError("days must be greater than zero")
        return self


class AllocationIn(_AllotmentQuantity):
    user_id: int
    leave_type_id: int


class BulkAllotRequest(ORMModel):
    allocations: List[AllocationIn] = Field(min_length=1)


class AllotmentReplaceItem(_AllotmentQuantity):
    leave_type_id: int


class AllotmentReplaceRequest(ORMModel):
    allocations: List[AllotmentReplaceItem] = Field(min_length=1)

    @model_validator(mode="after")
    def unique_leave_types(self) -> "AllotmentReplaceRequest":
        ids = [item.leave_type_id for item in self.allocations]
        if len(ids) != len(set(ids)):
            raise ValueError("each leave type may appear only once")
        return self


class AllotmentUpdate(ORMModel):
    leave_type_id: Optional[int] = None
    days: Optional[float] = Field(default=None, gt=0)
    hours: Optional[int] = Field(default=None, ge=0)
    minutes: Optional[int] = Field(default=None, ge=0, le=59)
    carry_forward: Optional[bool] = None
    reason: Optional[str] = None

    @model_validator(mode="after")
    def validate_time(self) -> "AllotmentUpdate":
        if self.hours is not None and self.minutes is not None and self.hours == 0 and self.minutes == 0:
            raise ValueError("hours and minutes cannot both be zero")
        return self


class LeaveRequestCreate(ORMModel):
    leave_type_id: int
    start_date: date
    end_date: date
    reason: str = Field(min_length=1, max_length=2000)
    half_day_type: Optional[HalfDayType] = None
    short_day_from_time: Optional[str] = None
    short_day_to_time: Optional[str] = None
    medical_report: Optional[str] = None

    @field_validator("short_day_from_time", "short_day_to_time")
    @classmethod
    def validate_hhmm(cls, value: Optional[str]) -> Optional[str]:
        if value is None or value == "":
            return None
        if not _HHMM.match(value):
            raise ValueError("time must be HH:MM")
        return value

    @model_validator(mode="after")
    def validate_leave(self) -> "LeaveRequestCreate":
        if self.end_date < self.start_date:
            raise ValueError("end_date cannot be before start_date")
        if bool(self.short_day_from_time) != bool(self.short_day_to_time):
            raise ValueError("short-day leave needs both from and to times")
        if self.short_day_from_time and self.short_day_from_time >= self.short_day_to_time:
            raise ValueError("short-day from time must be before to time")
        if self.half_day_type and self.short_day_from_time:
            raise ValueError("a leave cannot be both half-day and short-day")
        return self

    @property
    def is_short_day(self) -> bool:
        return bool(self.short_day_from_time and self.short_day_to_time)


class LeaveDecision(ORMModel):
    status: Literal["approved", "rejected"]
    rejection_reason: Optional[str] = Field(default=None, max_length=2000)


class LeaveRead(ORMModel):
    id: int
    kind: LeaveKind
    status: LeaveStatus
    user_id: int
    user: Optional[UserBrief] = None
    leave_type_id: int
    leave_type: Optional[LeaveTypeRead] = None
    days: float
    hours: int
    minutes: int
    remaining_days: Optional[float] = None
    remaining_hours: Optional[int] = None
    remaining_minutes: Optional[int] = None
    carry_forward: bool
    start_date: date
    end_date: date
    reason: Optional[str] = None
    half_day_type: Optional[HalfDayType] = None
    short_day_time: Optional[str] = None
    medical_report: Optional[str] = None
    approved_by_user_id: Optional[int] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    allotted_by_user_id: Optional[int] = None
    allotted_by: Optional[UserBrief] = None
    allotted_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class AllotmentError(ORMModel):
    user_id: Optional[int] = None
    leave_type_id: Optional[int] = None
    error: str


class BulkAllotResult(ORMModel):
    message: str
    results: List[LeaveRead]
    errors: List[AllotmentError]
    success_count: int
    error_count: int


class LeaveBalance(ORMModel):
    leave_type_id: int
    leave_type_name: str
    is_short_day: bool
    allotted_days: float = 0
    used_days: float = 0
    remaining_days: float = 0
    allotted_minutes: int = 0
    used_minutes: int = 0
    remaining_hours: int = 0
    remaining_minutes: int = 0
    carry_forward: bool = False


class TeamLeaveBrief(ORMModel):
    id: int
    leave_type_name: str
    start_date: date
    end_date: date
    status: LeaveStatus


class TeamMemberOnLeave(ORMModel):
    user: UserBrief
    leaves: List[TeamLeaveBrief]
