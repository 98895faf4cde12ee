"""Clock-in / clock-out and the late clock-in penalty."""

from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from hrms.core import rbac
from hrms.core.deps import get_current_user, require_privileged
from hrms.db.session import get_db
from hrms.models.attendance import Attendance, Penalty
from hrms.models.enums import Role
from hrms.models.user import User
from hrms.schemas.attendance import AttendanceRead, AttendanceStats, ClockInResponse, PenaltyRead, WeeklyHours
from hrms.services.activity import log_activity
from hrms.services.attendance import clock_in, clock_out, close_stale_sessions, monthly_stats, weekly_hours

router = APIRouter(prefix="/api/attendance", tags=["attendance"])


def _resolve_target_user(current_user: User, user_id: Optional[int]) -> int:
    if user_id is None or user_id == current_user.id:
        return current_user.id
    if not rbac.is_privileged(current_user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorised")
    return user_id


@router.post("/clock-in", response_model=ClockInResponse, status_code=status.HTTP_201_CREATED)
def attendance_clock_in(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ClockInResponse:
    record, penalty = clock_in(db, user=current_user)
    log_activity(
        db,
        actor_user_id=current_user.id,
        activity_type="ATTENDANCE_CLOCK_IN",
        message=f"Clocked in ({record.status.value})",
        payload={"attendance_id": record.id, "penalty_id": penalty.id if penalty else None},
    )
    db.commit()
    db.refresh(record)
    if penalty:
        db.refresh(penalty)
    return ClockInResponse(
        attendance=AttendanceRead.model_validate(record),
        penalty=PenaltyRead.model_validate(penalty) if penalty else None,
    )


@router.post("/clock-out", response_model=AttendanceRead)
def attendance_clock_out(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> AttendanceRead:
    record = clock_out(db, user=current_user)
    log_activity(
        db,
        actor_user_id=current_user.id,
        activity_type="ATTENDANCE_CLOCK_OUT",
        message=f"Clocked out after {record.hours_worked}h",
        payload={"attendance_id": record.id},
    )
    db.commit()
    db.refresh(record)
    return AttendanceRead.model_validate(record)


@router.get("", response_model=List[AttendanceRead])
def list_attendance(
    user_id: Optional[int] = Query(None),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> List[AttendanceRead]:
    """Admins see everyone; employees and HR see their own records."""
    # Sessions left open on earlier days are closed before anyone reads them.
    if close_stale_sessions(db):
        db.commit()

    query = db.query(Attendance)
    if rbac.user_has_role(current_user, Role.ADMIN):
        if user_id is not None:
            query = query.filter(Attendance.user_id == user_id)
    else:
        query = query.filter(Attendance.user_id == current_user.id)
    if start:
        query = query.filter(Attendance.work_date >= start)
    if end:
        query = query.filter(Attendance.work_date <= end)
    records = query.order_by(Attendance.work_date.desc(), Attendance.id.desc()).limit(limit).all()
    return [AttendanceRead.model_validate(record) for record in records]


@router.get("/date/{work_date}", response_model=List[AttendanceRead])
def attendance_on_date(
    work_date: date,
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_privileged),
) -> List[AttendanceRead]:
    records = (
        db.query(Attendance)
        .filter(Attendance.work_date == work_date)
        .order_by(Attendance.clock_in.asc())
        .all()
    )
    return [AttendanceRead.model_validate(record) for record in records]


@router.get("/stats", response_model=AttendanceStats)
def attendance_stats(
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(..., ge=1, le=12),
    user_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> AttendanceStats:
    target_id = _resolve_target_user(current_user, user_id)
    return AttendanceStats(**monthly_stats(db, user_id=target_id, year=year, month=month))


@router.get("/weekly-hours", response_model=WeeklyHours)
def attendance_weekly_hours(
    on_date: Optional[date] = Query(None),
    user_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> WeeklyHours:
    target_id = _resolve_target_user(current_user, user_id)
    return WeeklyHours(**weekly_hours(db, user_id=target_id, on_date=on_date))


@router.get("/penalties", response_model=List[PenaltyRead])
def list_penalties(
    user_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> List[PenaltyRead]:
    query = db.query(Penalty)
    if rbac.is_privileged(current_user):
        if user_id is not None:
            query = query.filter(Penalty.user_id == user_id)
    else:
        query = query.filter(Penalty.user_id == current_user.id)
    penalties = query.order_by(Penalty.penalty_date.desc()).all()
    return [PenaltyRead.model_validate(penalty) for penalty in penalties]
