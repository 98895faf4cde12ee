"""Headline counts for the admin and HR dashboards."""
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from hrms.models.attendance import Attendance
from hrms.models.enums import LeaveKind, LeaveStatus, ResignationStatus, Role
from hrms.models.leave import Leave
from hrms.models.resignation import Resignation
from hrms.models.user import User


def _count(db: Session, stmt) -> int:
    return db.scalar(select(func.count()).select_from(stmt.subquery())) or 0


def _leave_requests(status: LeaveStatus):
    return select(Leave.id).where(Leave.kind == LeaveKind.REQUEST, Leave.status == status)


def _on_leave(day: date):
    return (
        select(Leave.user_id)
        .where(
            Leave.kind == LeaveKind.REQUEST,
            Leave.status == LeaveStatus.APPROVED,
            Leave.start_date <= day,
            Leave.end_date >= day,
        )
        .distinct()
    )


def _clocked_in(day: date):
    return select(Attendance.user_id).where(Attendance.work_date == day).distinct()


def admin_stats(db: Session, *, on_date: Optional[date] = None) -> dict:
    """Staff counts exclude admins and accounts that never verified their email."""
    day = on_date or datetime.now(timezone.utc).date()
    staff = dict(
        db.execute(
            select(User.role, func.count(User.id))
            .where(User.role != Role.ADMIN, User.is_active.is_(True), User.email_verified.is_(True))
            .group_by(User.role)
        ).all()
    )
    return {
        "total_employees": sum(staff.values()),
        "employee_count": staff.get(Role.EMPLOYEE, 0),
        "hr_count": staff.get(Role.HR, 0),
        "pending_approvals": _count(db, select(User.id).where(User.role == Role.EMPLOYEE, User.is_approved.is_(False))),
        "pending_leaves": _count(db, _leave_requests(LeaveStatus.PENDING)),
        "clocked_in_today": _count(db, _clocked_in(day)),
        "on_leave_today": _count(db, _on_leave(day)),
        "pending_resignations": _count(
            db, select(Resignation.id).where(Resignation.status == ResignationStatus.PENDING)
        ),
    }


def hr_stats(db: Session, *, on_date: Optional[date] = None) -> dict:
    day = on_date or datetime.now(timezone.utc).date()
    return {
        "pending_leaves": _count(db, _leave_requests(LeaveStatus.PENDING)),
        "approved_leaves": _count(db, _leave_requests(LeaveStatus.APPROVED)),
        "today_attendance": _count(db, _clocked_in(day)),
        "on_leave_today": _count(db, _on_leave(day)),
    }
