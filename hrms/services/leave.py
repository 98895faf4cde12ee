"""Leave requests, balances and the approval workflow."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from hrms.core.observability import hrms_leave_decisions_total
from hrms.models.enums import LeaveKind, LeaveStatus, NotificationType, Role
from hrms.models.leave import Leave, LeaveType
from hrms.models.team import Team, team_members
from hrms.models.user import User
from hrms.schemas.leave import LeaveRequestCreate
from hrms.services.activity import log_activity
from hrms.services.notifications import create_notification, notify_roles

logger = logging.getLogger(__name__)

APPROVER_ROLES = (Role.ADMIN, Role.HR)
CONSUMING_KINDS = (LeaveKind.REQUEST, LeaveKind.PENALTY)


def _today() -> date:
    return datetime.now(timezone.utc).date()


def _format_days(value: float) -> str:
    return f"{value:g}" if float(value).is_integer() else f"{value:.2f}"


def _format_minutes(total: int) -> str:
    hours, minutes = divmod(max(0, total), 60)
    return f"{hours}h" + (f" {minutes}m" if minutes else "")


def get_leave_type_or_404(db: Session, leave_type_id: int) -> LeaveType:
    leave_type = db.get(LeaveType, leave_type_id)
    if not leave_type:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid leave type")
    return leave_type


def find_allotment(db: Session, *, user_id: int, leave_type_id: int) -> Optional[Leave]:
    return (
        db.query(Leave)
        .filter(
            Leave.user_id == user_id,
            Leave.leave_type_id == leave_type_id,
            Leave.kind == LeaveKind.ALLOTMENT,
        )
        .order_by(Leave.id.asc())
        .first()
    )


def used_quantity(
    db: Session,
    *,
    user_id: int,
    leave_type_id: int,
    exclude_leave_id: Optional[int] = None,
) -> tuple[float, int]:
    """Days and minutes consumed by approved requests and penalty deductions."""
    query = db.query(
        func.coalesce(func.sum(Leave.days), 0.0),
        func.coalesce(func.sum(Leave.hours * 60 + Leave.minutes), 0),
    ).filter(
        Leave.user_id == user_id,
        Leave.leave_type_id == leave_type_id,
        Leave.kind.in_(CONSUMING_KINDS),
        Leave.status == LeaveStatus.APPROVED,
    )
    if exclude_leave_id is not None:
        query = query.filter(Leave.id != exclude_leave_id)
    days, minutes = query.one()
    return float(days or 0), int(minutes or 0)


def recalculate_allotment(db: Session, allotment: Leave) -> Leave:
    used_days, used_minutes = used_quantity(db, user_id=allotment.user_id, leave_type_id=allotment.leave_type_id)
    if allotment.leave_type.is_short_day:
        remaining = max(0, allotment.total_minutes - used_minutes)
        allotment.remaining_hours, allotment.remaining_minutes = divmod(remaining, 60)
        allotment.remaining_days = None
    else:
        allotment.remaining_days = max(0.0, (allotment.days or 0) - used_days)
        allotment.remaining_hours = None
        allotment.remaining_minutes = None
    db.add(allotment)
    return allotment


def recalculate_balances(db: Session, *, user_id: Optional[int] = None) -> int:
    query = db.query(Leave).filter(Leave.kind == LeaveKind.ALLOTMENT)
    if user_id is not None:
        query = query.filter(Leave.user_id == user_id)
    allotments = query.all()
    for allotment in allotments:
        recalculate_allotment(db, allotment)
    db.flush()
    return len(allotments)


def ensure_sufficient_balance(
    db: Session,
    *,
    allotment: Leave,
    days: float,
    minutes: int,
    exclude_leave_id: Optional[int] = None,
) -> None:
    used_days, used_minutes = used_quantity(
        db,
        user_id=allotment.user_id,
        leave_type_id=allotment.leave_type_id,
        exclude_leave_id=exclude_leave_id,
    )
    if allotment.leave_type.is_short_day:
        remaining = max(0, allotment.total_minutes - used_minutes)
        if remaining < minutes:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=(
                    f"Insufficient leave balance. You have {_format_minutes(remaining)} remaining, "
                    f"but requested {_format_minutes(minutes)}."
                ),
            )
        return
    remaining_days = max(0.0, (allotment.days or 0) - used_days)
    if remaining_days < days:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=(
                f"Insufficient leave balance. You have {_format_days(remaining_days)} days remaining, "
                f"but requested {_format_days(days)} days."
            ),
        )


def _minutes_between(start: str, end: str) -> int:
    start_h, start_m = (int(part) for part in start.split(":"))
    end_h, end_m = (int(part) for part in end.split(":"))
    return (end_h * 60 + end_m) - (start_h * 60 + start_m)


def request_quantity(leave_type: LeaveType, payload: LeaveRequestCreate) -> dict:
    """Resolve the days / hours / minutes a request consumes."""
    if payload.half_day_type:
        return {"days": 0.5, "hours": 0, "minutes": 0, "short_day_time": None}
    if payload.is_short_day:
        total = _minutes_between(payload.short_day_from_time, payload.short_day_to_time)
        hours, minutes = divmod(total, 60)
        window = f"{payload.short_day_from_time}-{payload.short_day_to_time}"
        if leave_type.is_short_day:
            return {"days": 0.0, "hours": hours, "minutes": minutes, "short_day_time": window}
        return {"days": round(total / 60 / 24, 4), "hours": 0, "minutes": 0, "short_day_time": window}
    if leave_type.is_short_day:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Short-day leave requires a from and to time",
        )
    span = (payload.end_date - payload.start_date).days + 1
    return {"days": float(span), "hours": 0, "minutes": 0, "short_day_time": None}


def create_leave_request(db: Session, *, user: User, payload: LeaveRequestCreate) -> Leave:
    leave_type = get_leave_type_or_404(db, payload.leave_type_id)
    if not leave_type.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Leave type is inactive")
    quantity = request_quantity(leave_type, payload)

    if user.role == Role.EMPLOYEE:
        allotment = find_allotment(db, user_id=user.id, leave_type_id=leave_type.id)
        if not allotment:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="This leave type has not been allotted to you",
            )
        ensure_sufficient_balance(
            db,
            allotment=allotment,
            days=quantity["days"],
            minutes=quantity["hours"] * 60 + quantity["minutes"],
        )

    leave = Leave(
        user_id=user.id,
        leave_type_id=leave_type.id,
        kind=LeaveKind.REQUEST,
        status=LeaveStatus.PENDING,
        days=quantity["days"],
        hours=quantity["hours"],
        minutes=quantity["minutes"],
        short_day_time=quantity["short_day_time"],
        start_date=payload.start_date,
        end_date=payload.end_date,
        reason=payload.reason,
        half_day_type=payload.half_day_type,
        medical_report=payload.medical_report,
    )
    db.add(leave)
    db.flush()

    log_activity(
        db,
        actor_user_id=user.id,
        activity_type="LEAVE_REQUESTED",
        message=f"Leave requested: {leave_type.name}",
        payload={"leave_id": leave.id},
    )
    notify_roles(
        db,
        roles=APPROVER_ROLES,
        notif_type=NotificationType.LEAVE_REQUESTED,
        title="New leave request",
        message=f"{user.full_name} requested {leave_type.name} from {leave.start_date} to {leave.end_date}",
        leave_id=leave.id,
        exclude_user_ids=[user.id],
    )
    return leave


def _ensure_decidable(leave: Leave) -> None:
    if leave.kind != LeaveKind.REQUEST:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Only leave requests can be decided")
    if leave.status != LeaveStatus.PENDING:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Leave already decided")


def approve_leave(db: Session, *, leave: Leave, approver: User) -> Leave:
    _ensure_decidable(leave)
    allotment = find_allotment(db, user_id=leave.user_id, leave_type_id=leave.leave_type_id)
    if allotment:
        ensure_sufficient_balance(db, allotment=allotment, days=leave.days, minutes=leave.total_minutes)

    leave.status = LeaveStatus.APPROVED
    leave.approved_by_user_id = approver.id
    leave.approved_at = datetime.now(timezone.utc)
    leave.rejection_reason = None
    db.add(leave)
    db.flush()

    if allotment:
        recalculate_allotment(db, allotment)

    create_notification(
        db,
        user_id=leave.user_id,
        notif_type=NotificationType.LEAVE_APPROVED,
        title="Leave approved",
        message=f"Your {leave.leave_type.name} request was approved",
        leave_id=leave.id,
    )
    log_activity(
        db,
        actor_user_id=approver.id,
        activity_type="LEAVE_APPROVED",
        message=f"Leave approved: {leave.id}",
        payload={"leave_id": leave.id, "user_id": leave.user_id},
    )
    hrms_leave_decisions_total.labels(decision="approved").inc()
    return leave


def reject_leave(db: Session, *, leave: Leave, approver: User, reason: Optional[str] = None) -> Leave:
    _ensure_decidable(leave)
    leave.status = LeaveStatus.REJECTED
    leave.approved_by_user_id = approver.id
    leave.approved_at = datetime.now(timezone.utc)
    leave.rejection_reason = reason
    db.add(leave)
    db.flush()

    create_notification(
        db,
        user_id=leave.user_id,
        notif_type=NotificationType.LEAVE_REJECTED,
        title="Leave rejected",
        message=f"Your {leave.leave_type.name} request was rejected",
        leave_id=leave.id,
        payload={"rejection_reason": reason},
    )
    log_activity(
        db,
        actor_user_id=approver.id,
        activity_type="LEAVE_REJECTED",
        message=f"Leave rejected: {leave.id}",
        payload={"leave_id": leave.id, "user_id": leave.user_id, "reason": reason},
    )
    hrms_leave_decisions_total.labels(decision="rejected").inc()
    return leave


def users_on_leave(db: Session, on_date: date | None = None) -> list[Leave]:
    day = on_date or _today()
    return (
        db.query(Leave)
        .filter(
            Leave.kind == LeaveKind.REQUEST,
            Leave.status == LeaveStatus.APPROVED,
            Leave.start_date <= day,
            Leave.end_date >= day,
        )
        .order_by(Leave.start_date.asc())
        .all()
    )


def teammates_on_leave(db: Session, *, user: User, start: date, end: date) -> list[tuple[User, list[Leave]]]:
    """Pending or approved requests of everyone sharing a team with ``user`` that overlap ``start``..``end``."""
    team_ids = select(Team.id).outerjoin(team_members, team_members.c.team_id == Team.id).where(
        or_(Team.leader_id == user.id, team_members.c.user_id == user.id)
    )
    teammate_ids = {
        teammate_id
        for row in db.execute(
            select(Team.leader_id, team_members.c.user_id)
            .outerjoin(team_members, team_members.c.team_id == Team.id)
            .where(Team.id.in_(team_ids))
        )
        for teammate_id in row
        if teammate_id is not None
    }
    teammate_ids.discard(user.id)
    if not teammate_ids:
        return []

    leaves = (
        db.query(Leave)
        .filter(
            Leave.user_id.in_(teammate_ids),
            Leave.kind == LeaveKind.REQUEST,
            Leave.status.in_((LeaveStatus.PENDING, LeaveStatus.APPROVED)),
            Leave.start_date <= end,
            Leave.end_date >= start,
        )
        .order_by(Leave.start_date.asc(), Leave.id.asc())
        .all()
    )
    grouped: dict[int, tuple[User, list[Leave]]] = {}
    for leave in leaves:
        grouped.setdefault(leave.user_id, (leave.user, []))[1].append(leave)
    return list(grouped.values())


def balances_for_user(db: Session, user_id: int) -> list[dict]:
    allotments = (
        db.query(Leave)
        .filter(Leave.user_id == user_id, Leave.kind == LeaveKind.ALLOTMENT)
        .order_by(Leave.leave_type_id.asc())
        .all()
    )
    balances: list[dict] = []
    for allotment in allotments:
        used_days, used_minutes = used_quantity(db, user_id=user_id, leave_type_id=allotment.leave_type_id)
        leave_type = allotment.leave_type
        row = {
            "leave_type_id": leave_type.id,
            "leave_type_name": leave_type.name,
            "is_short_day": leave_type.is_short_day,
            "carry_forward": allotment.carry_forward,
        }
        if leave_type.is_short_day:
            remaining = max(0, allotment.total_minutes - used_minutes)
            row.update(
                {
                    "allotted_minutes": allotment.total_minutes,
                    "used_minutes": used_minutes,
                    "remaining_hours": remaining // 60,
                    "remaining_minutes": remaining % 60,
                }
            )
        else:
            row.update(
                {
                    "allotted_days": allotment.days,
                    "used_days": used_days,
                    "remaining_days": max(0.0, allotment.days - used_days),
                }
            )
        balances.append(row)
    return balances
