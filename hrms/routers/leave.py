from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from hrms.core import rbac
from hrms.core.deps import get_current_user, require_privileged
from hrms.db.session import get_db
from hrms.models.enums import LeaveKind, LeaveStatus, Role
from hrms.models.leave import Leave, LeaveType
from hrms.models.user import User
from hrms.schemas.base import UserBrief
from hrms.schemas.leave import (
    AllocationIn,
    AllotmentReplaceRequest,
    AllotmentUpdate,
    BulkAllotRequest,
    BulkAllotResult,
    LeaveBalance,
    LeaveDecision,
    LeaveRead,
    LeaveRequestCreate,
    LeaveTypeRead,
    TeamLeaveBrief,
    TeamMemberOnLeave,
)
from hrms.services.activity import log_activity
from hrms.services.email_delivery import deliver_email
from hrms.services.leave import (
    APPROVER_ROLES,
    approve_leave,
    balances_for_user,
    create_leave_request,
    recalculate_balances,
    reject_leave,
    teammates_on_leave,
    users_on_leave,
)
from hrms.services.leave_allotment import (
    AllotmentError,
    allot_leave,
    bulk_allot,
    replace_user_allotments,
    update_allotment,
)

router = APIRouter(prefix="/api/leave", tags=["leave"])
logger = logging.getLogger(__name__)


def _require_leave_approver(user: User) -> None:
    if not rbac.user_has_any_role(user, APPROVER_ROLES):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorised to manage leave")


def _get_leave_or_404(db: Session, leave_id: int) -> Leave:
    leave = db.get(Leave, leave_id)
    if not leave:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Leave not found")
    return leave


def _leave_email_context(leave: Leave) -> dict:
    return {
        "employee_name": leave.user.full_name if leave.user else None,
        "leave_type": leave.leave_type.name if leave.leave_type else None,
        "start_date": leave.start_date,
        "end_date": leave.end_date,
        "days": leave.days,
        "hours": leave.hours,
        "minutes": leave.minutes,
        "reason": leave.reason,
        "rejection_reason": leave.rejection_reason,
    }


def _approver_addresses(db: Session) -> list[str]:
    approvers = (
        db.query(User)
        .filter(
            User.role.in_(list(APPROVER_ROLES)),
            User.is_active.is_(True),
            User.email_verified.is_(True),
        )
        .all()
    )
    return [user.email for user in approvers]


@router.get("", response_model=List[LeaveRead])
def list_leaves(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    status_filter: Optional[LeaveStatus] = Query(None, alias="status"),
    user_id: Optional[int] = Query(None),
) -> List[LeaveRead]:
    """Own leaves for employees, everything for admin/HR. Penalty deductions are never listed."""
    query = db.query(Leave).filter(Leave.kind != LeaveKind.PENALTY)
    if not rbac.is_privileged(current_user):
        query = query.filter(Leave.user_id == current_user.id)
    elif user_id is not None:
        query = query.filter(Leave.user_id == user_id)
    if status_filter:
        query = query.filter(Leave.status == status_filter)
    leaves = query.order_by(Leave.created_at.desc(), Leave.id.desc()).all()
    return [LeaveRead.model_validate(leave) for leave in leaves]


@router.post("/request", response_model=LeaveRead, status_code=status.HTTP_201_CREATED)
def request_leave(
    leave_in: LeaveRequestCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> LeaveRead:
    leave = create_leave_request(db, user=current_user, payload=leave_in)
    recipients = [email for email in _approver_addresses(db) if email != current_user.email]
    db.commit()
    db.refresh(leave)

    if recipients:
        background_tasks.add_task(deliver_email, "leave_requested", recipients, _leave_email_context(leave))
    return LeaveRead.model_validate(leave)


@router.get("/requests", response_model=List[LeaveRead])
def list_requests(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    status_filter: Optional[LeaveStatus] = Query(None, alias="status"),
) -> List[LeaveRead]:
    query = db.query(Leave).filter(Leave.kind == LeaveKind.REQUEST)
    if not rbac.is_privileged(current_user):
        query = query.filter(Leave.user_id == current_user.id)
    elif rbac.user_has_role(current_user, Role.HR):
        # HR cannot act on their own requests, so they are not listed for them.
        query = query.filter(Leave.user_id != current_user.id)
    if status_filter:
        query = query.filter(Leave.status == status_filter)
    leaves = query.order_by(Leave.created_at.desc(), Leave.id.desc()).all()
    return [LeaveRead.model_validate(leave) for leave in leaves]


@router.get("/allotments", response_model=List[LeaveRead])
def list_allotments(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    user_id: Optional[int] = Query(None),
) -> List[LeaveRead]:
    query = db.query(Leave).filter(Leave.kind == LeaveKind.ALLOTMENT)
    if not rbac.is_privileged(current_user):
        query = query.filter(Leave.user_id == current_user.id)
    elif user_id is not None:
        query = query.filter(Leave.user_id == user_id)
    leaves = query.order_by(Leave.created_at.desc(), Leave.id.desc()).all()
    return [LeaveRead.model_validate(leave) for leave in leaves]


@router.post("/allot", response_model=LeaveRead, status_code=status.HTTP_201_CREATED)
def allot(
    item: AllocationIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_privileged),
) -> LeaveRead:
    try:
        allotment = allot_leave(db, allocator=current_user, item=item)
    except AllotmentError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)

    log_activity(
        db,
        actor_user_id=current_user.id,
        activity_type="LEAVE_ALLOTTED",
        message=f"Leave allotted: {allotment.leave_type.name}",
        payload={"leave_id": allotment.id, "user_id": allotment.user_id},
    )
    db.commit()
    db.refresh(allotment)
    return LeaveRead.model_validate(allotment)


@router.post("/allot/bulk", response_model=BulkAllotResult, status_code=status.HTTP_201_CREATED)
def allot_bulk(
    body: BulkAllotRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_privileged),
) -> BulkAllotResult:
    results, errors = bulk_allot(db, allocator=current_user, allocations=body.allocations)
    db.commit()
    for allotment in results:
        db.refresh(allotment)
    return BulkAllotResult(
        message=f"Allotted {len(results)} leave(s)" + (f", {len(errors)} failed" if errors else ""),
        results=[LeaveRead.model_validate(allotment) for allotment in results],
        errors=errors,
        success_count=len(results),
        error_count=len(errors),
    )


@router.put("/allot/users/{user_id}", response_model=List[LeaveRead])
def replace_allotments(
    user_id: int,
    body: AllotmentReplaceRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_privileged),
) -> List[LeaveRead]:
    try:
        created = replace_user_allotments(
            db,
            allocator=current_user,
            user_id=user_id,
            allocations=body.allocations,
        )
    except AllotmentError as exc:
        db.rollback()
        logger.warning(f"Allotment replace for user {user_id} rolled back: {exc.message}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)

    db.commit()
    for allotment in created:
        db.refresh(allotment)
    return [LeaveRead.model_validate(allotment) for allotment in created]


@router.get("/balances", response_model=List[LeaveBalance])
def leave_balances(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    user_id: Optional[int] = Query(None),
) -> List[LeaveBalance]:
    target_id = current_user.id
    if user_id is not None and user_id != current_user.id:
        _require_leave_approver(current_user)
        target_id = user_id
    return [LeaveBalance(**row) for row in balances_for_user(db, target_id)]


@router.get("/allotted-types", response_model=List[LeaveTypeRead])
def allotted_types(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> List[LeaveTypeRead]:
    leave_types = (
        db.query(LeaveType)
        .join(Leave, Leave.leave_type_id == LeaveType.id)
        .filter(
            Leave.user_id == current_user.id,
            Leave.kind == LeaveKind.ALLOTMENT,
            LeaveType.is_active.is_(True),
        )
        .order_by(LeaveType.name.asc())
        .distinct()
        .all()
    )
    return [LeaveTypeRead.model_validate(leave_type) for leave_type in leave_types]


@router.get("/on-leave-today", response_model=List[LeaveRead])
def on_leave_today(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    on_date: Optional[date] = Query(None),
) -> List[LeaveRead]:
    return [LeaveRead.model_validate(leave) for leave in users_on_leave(db, on_date)]


@router.get("/team-members-on-leave", response_model=List[TeamMemberOnLeave])
def team_members_on_leave(
    start_date: date = Query(...),
    end_date: date = Query(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> List[TeamMemberOnLeave]:
    if end_date < start_date:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="end_date cannot be before start_date")
    return [
        TeamMemberOnLeave(
            user=UserBrief.model_validate(member),
            leaves=[
                TeamLeaveBrief(
                    id=leave.id,
                    leave_type_name=leave.leave_type.name,
                    start_date=leave.start_date,
                    end_date=leave.end_date,
                    status=leave.status,
                )
                for leave in leaves
            ],
        )
        for member, leaves in teammates_on_leave(db, user=current_user, start=start_date, end=end_date)
    ]


@router.post("/recalculate-balances")
def recalculate(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_privileged),
    user_id: Optional[int] = Query(None),
) -> dict:
    updated = recalculate_balances(db, user_id=user_id)
    log_activity(
        db,
        actor_user_id=current_user.id,
        activity_type="LEAVE_BALANCES_RECALCULATED",
        message=f"Recalculated {updated} allotment balance(s)",
        payload={"user_id": user_id, "updated": updated},
    )
    db.commit()
    return {"message": "Leave balances recalculated", "updated": updated}


@router.get("/{leave_id}", response_model=LeaveRead)
def get_leave(
    leave_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> LeaveRead:
    leave = _get_leave_or_404(db, leave_id)
    if leave.user_id != current_user.id:
        _require_leave_approver(current_user)
    return LeaveRead.model_validate(leave)


@router.patch("/{leave_id}", response_model=LeaveRead)
def edit_allotment(
    leave_id: int,
    changes: AllotmentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_privileged),
) -> LeaveRead:
    leave = _get_leave_or_404(db, leave_id)
    try:
        update_allotment(db, allotment=leave, changes=changes, actor=current_user)
    except AllotmentError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)
    db.commit()
    db.refresh(leave)
    return LeaveRead.model_validate(leave)


@router.post("/{leave_id}/decision", response_model=LeaveRead)
def decide(
    leave_id: int,
    decision: LeaveDecision,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> LeaveRead:
    _require_leave_approver(current_user)
    leave = _get_leave_or_404(db, leave_id)
    if leave.user_id == current_user.id and not rbac.user_has_role(current_user, Role.ADMIN):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You cannot decide your own leave")

    if decision.status == "approved":
        approve_leave(db, leave=leave, approver=current_user)
        template = "leave_approved"
    else:
        reject_leave(db, leave=leave, approver=current_user, reason=decision.rejection_reason)
        template = "leave_rejected"

    db.commit()
    db.refresh(leave)

    if leave.user and leave.user.email:
        background_tasks.add_task(deliver_email, template, [leave.user.email], _leave_email_context(leave))
    return LeaveRead.model_validate(leave)


@router.delete("/{leave_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_leave(
    leave_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_privileged),
) -> None:
    leave = _get_leave_or_404(db, leave_id)
    user_id = leave.user_id
    kind = leave.kind
    db.delete(leave)
    db.flush()
    if kind != LeaveKind.ALLOTMENT:
        recalculate_balances(db, user_id=user_id)
    log_activity(
        db,
        actor_user_id=current_user.id,
        activity_type="LEAVE_DELETED",
        message=f"Leave deleted: {leave_id}",
        payload={"leave_id": leave_id, "user_id": user_id, "kind": kind.value},
    )
    db.commit()
    return None
