"""Clock-in / clock-out and late arrival penalties."""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from hrms.core.settings import settings
from hrms.models.attendance import Attendance, Penalty
from hrms.models.enums import AttendanceStatus, LeaveKind, LeaveStatus, NotificationType
from hrms.models.leave import Leave, LeaveType
from hrms.models.user import NO_RESTRICTION, User
from hrms.services.activity import log_activity
from hrms.services.leave import find_allotment, recalculate_allotment
from hrms.services.notifications import create_notification
from hrms.services.system_config import DEFAULT_CLOCK_IN_TIME_LIMIT, get_config, get_max_late_days

logger = logging.getLogger(__name__)

# Sessions left open are closed at this local time on the day they started.
AUTO_CLOCK_OUT_TIME = time(23, 11)
PENALTY_DEDUCTION_DAYS = 0.5
PENALTY_LEAVE_TYPE_NAME = "Casual Leave"
_CASUAL_LEAVE = re.compile(r"^casual\s*leave$", re.IGNORECASE)
_HHMM = re.compile(r"^(\d{1,2}):(\d{2})$")


def local_zone() -> ZoneInfo:
    return ZoneInfo(settings.attendance_timezone)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_local(value: datetime) -> datetime:
    return _as_utc(value).astimezone(local_zone())


def parse_hhmm(value: Optional[str]) -> Optional[int]:
    """Minutes after midnight for ``HH:MM``; None when unset or malformed."""
    if not value:
        return None
    match = _HHMM.match(value.strip())
    if not match:
        return None
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        return None
    return hours * 60 + minutes


def _minutes_of_day(value: datetime) -> int:
    local = to_local(value)
    return local.hour * 60 + local.minute


def close_stale_sessions(db: Session, *, user_id: Optional[int] = None, now: Optional[datetime] = None) -> int:
    """Clock out sessions from earlier days that were never closed."""
    now = now or datetime.now(timezone.utc)
    today = to_local(now).date()
    query = db.query(Attendance).filter(Attendance.clock_out.is_(None), Attendance.work_date < today)
    if user_id is not None:
        query = query.filter(Attendance.user_id == user_id)
    closed = 0
    for record in query.all():
        auto_out = datetime.combine(record.work_date, AUTO_CLOCK_OUT_TIME, tzinfo=local_zone())
        clock_in = _as_utc(record.clock_in)
        record.clock_out = max(auto_out, clock_in).astimezone(timezone.utc)
        record.hours_worked = round((record.clock_out - clock_in).total_seconds() / 3600, 2)
        db.add(record)
        closed += 1
    if closed:
        db.flush()
        logger.info(f"Auto clocked out {closed} open attendance session(s)")
    return closed


def clock_in(db: Session, *, user: User, now: Optional[datetime] = None) -> tuple[Attendance, Optional[Penalty]]:
    now = now or datetime.now(timezone.utc)
    close_stale_sessions(db, user_id=user.id, now=now)
    work_date = to_local(now).date()
    existing = (
        db.query(Attendance)
        .filter(Attendance.user_id == user.id, Attendance.work_date == work_date)
        .first()
    )
    if existing:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Already clocked in today")

    record = Attendance(user_id=user.id, work_date=work_date, clock_in=now, status=AttendanceStatus.PRESENT)
    limit = resolve_time_limit(db, user)
    if limit is not None and _minutes_of_day(now) > limit[1]:
        record.status = AttendanceStatus.LATE
    db.add(record)
    db.flush()

    penalty = apply_late_penalty(db, user=user, clock_in_at=now)
    return record, penalty


def clock_out(db: Session, *, user: User, now: Optional[datetime] = None) -> Attendance:
    now = now or datetime.now(timezone.utc)
    work_date = to_local(now).date()
    record = (
        db.query(Attendance)
        .filter(
            Attendance.user_id == user.id,
            Attendance.work_date == work_date,
            Attendance.clock_out.is_(None),
        )
        .first()
    )
    if not record:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No active clock-in found for today")
    record.clock_out = now
    record.hours_worked = round((now - _as_utc(record.clock_in)).total_seconds() / 3600, 2)
    db.add(record)
    db.flush()
    return record


def resolve_time_limit(db: Session, user: User) -> Optional[tuple[str, int]]:
    """The user's own limit, else the configured default. None means no check."""
    if user.clock_in_time == NO_RESTRICTION:
        return None
    raw = user.clock_in_time or get_config(db, DEFAULT_CLOCK_IN_TIME_LIMIT)
    minutes = parse_hhmm(raw)
    if minutes is None:
        if raw:
            logger.warning(f"Ignoring malformed clock-in time limit {raw!r} for user {user.id}")
        return None
    return raw.strip(), minutes


def late_days_in_month(db: Session, *, user_id: int, limit_minutes: int, on_date: date) -> set[date]:
    month_start = on_date.replace(day=1)
    records = (
        db.query(Attendance)
        .filter(
            Attendance.user_id == user_id,
            Attendance.work_date >= month_start,
            Attendance.work_date <= on_date,
        )
        .all()
    )
    return {record.work_date for record in records if _minutes_of_day(record.clock_in) > limit_minutes}


def penalty_leave_type(db: Session, *, create_if_missing: bool = True) -> Optional[LeaveType]:
    for leave_type in db.query(LeaveType).all():
        if _CASUAL_LEAVE.match(leave_type.name.strip()):
            return leave_type
    if not create_if_missing:
        return None
    leave_type = LeaveType(name=PENALTY_LEAVE_TYPE_NAME, description="Casual leave for employees", is_active=True)
    db.add(leave_type)
    db.flush()
    logger.info("Created Casual Leave type for penalty deductions")
    return leave_type


def apply_late_penalty(db: Session, *, user: User, clock_in_at: datetime) -> Optional[Penalty]:
    """
    Deduct half a day of casual leave once the month's late arrivals exceed
    the configured maximum. With a maximum of 0 every late arrival counts.
    At most one penalty is recorded per user per day.
    """
    limit = resolve_time_limit(db, user)
    if limit is None:
        return None
    limit_text, limit_minutes = limit
    if _minutes_of_day(clock_in_at) <= limit_minutes:
        return None

    local = to_local(clock_in_at)
    today = local.date()
    late_days = late_days_in_month(db, user_id=user.id, limit_minutes=limit_minutes, on_date=today)
    late_days.add(today)
    max_late_days = get_max_late_days(db)
    if len(late_days) <= max_late_days:
        return None

    existing = db.query(Penalty).filter(Penalty.user_id == user.id, Penalty.penalty_date == today).first()
    if existing:
        return None

    leave_type = penalty_leave_type(db)
    clock_in_text = local.strftime("%H:%M")
    reason = (
        f"Late clock-in penalty: clocked in at {clock_in_text} after {limit_text}; "
        f"{len(late_days)} late day(s) this month exceeds the maximum of {max_late_days}"
    )
    deduction = Leave(
        user_id=user.id,
        leave_type_id=leave_type.id,
        leave_type=leave_type,
        kind=LeaveKind.PENALTY,
        status=LeaveStatus.APPROVED,
        days=PENALTY_DEDUCTION_DAYS,
        start_date=today,
        end_date=today,
        reason=reason,
        approved_at=datetime.now(timezone.utc),
    )
    db.add(deduction)
    db.flush()

    penalty = Penalty(
        user_id=user.id,
        penalty_date=today,
        late_arrival_date=today,
        clock_in_time=clock_in_text,
        time_limit=limit_text,
        max_late_days=max_late_days,
        late_arrival_count=len(late_days),
        leave_deducted=PENALTY_DEDUCTION_DAYS,
        leave_id=deduction.id,
        reason=reason,
    )
    db.add(penalty)
    db.flush()

    allotment = find_allotment(db, user_id=user.id, leave_type_id=leave_type.id)
    if allotment:
        recalculate_allotment(db, allotment)

    create_notification(
        db,
        user_id=user.id,
        notif_type=NotificationType.PENALTY_APPLIED,
        title="Late clock-in penalty",
        message=f"{PENALTY_DEDUCTION_DAYS:g} day of {leave_type.name} was deducted for late arrival",
        leave_id=deduction.id,
    )
    log_activity(
        db,
        actor_user_id=None,
        activity_type="PENALTY_APPLIED",
        message=reason,
        payload={"user_id": user.id, "penalty_id": penalty.id, "leave_id": deduction.id},
    )
    logger.info(f"Late clock-in penalty applied to user {user.id} ({len(late_days)} late days)")
    return penalty


def monthly_stats(db: Session, *, user_id: int, year: int, month: int) -> dict:
    start = date(year, month, 1)
    end = date(year + (month // 12), (month % 12) + 1, 1) - timedelta(days=1)
    records = (
        db.query(Attendance)
        .filter(Attendance.user_id == user_id, Attendance.work_date >= start, Attendance.work_date <= end)
        .all()
    )
    total_hours = sum(record.hours_worked or 0 for record in records)
    completed = [record for record in records if record.hours_worked is not None]
    penalties = (
        db.query(Penalty)
        .filter(Penalty.user_id == user_id, Penalty.penalty_date >= start, Penalty.penalty_date <= end)
        .count()
    )
    return {
        "user_id": user_id,
        "year": year,
        "month": month,
        "days_present": len(records),
        "late_days": sum(1 for record in records if record.status == AttendanceStatus.LATE),
        "total_hours": round(total_hours, 2),
        "average_hours": round(total_hours / len(completed), 2) if completed else 0.0,
        "penalties": penalties,
    }


def weekly_hours(db: Session, *, user_id: int, on_date: Optional[date] = None) -> dict:
    """Completed sessions in the Monday-to-Sunday week containing ``on_date`` (local today by default)."""
    day = on_date or to_local(datetime.now(timezone.utc)).date()
    week_start = day - timedelta(days=day.weekday())
    week_end = week_start + timedelta(days=6)
    records = (
        db.query(Attendance)
        .filter(
            Attendance.user_id == user_id,
            Attendance.work_date >= week_start,
            Attendance.work_date <= week_end,
            Attendance.clock_out.isnot(None),
        )
        .all()
    )
    return {
        "user_id": user_id,
        "week_start": week_start,
        "week_end": week_end,
        "weekly_hours": round(sum(record.hours_worked or 0 for record in records), 1),
        "days_worked": len(records),
    }
