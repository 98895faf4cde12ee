from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from hrms.core.deps import get_current_user, require_privileged
from hrms.db.session import get_db
from hrms.models.leave import Leave, LeaveType, name_is_short_day
from hrms.models.user import User
from hrms.schemas.leave import LeaveTypeCreate, LeaveTypeRead, LeaveTypeUpdate
from hrms.services.activity import log_activity

router = APIRouter(prefix="/api/leave-types", tags=["leave-types"])


def _get_leave_type_or_404(db: Session, leave_type_id: int) -> LeaveType:
    leave_type = db.get(LeaveType, leave_type_id)
    if not leave_type:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Leave type not found")
    return leave_type


def _ensure_unique_name(db: Session, name: str, *, exclude_id: int | None = None) -> None:
    query = db.query(LeaveType).filter(LeaveType.name == name)
    if exclude_id is not None:
        query = query.filter(LeaveType.id != exclude_id)
    if query.first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Leave type already exists")


@router.get("", response_model=List[LeaveTypeRead])
def list_leave_types(
    include_inactive: bool = Query(False),
    db: Session = Depends(get_db),
    _current_user: User = Depends(get_current_user),
) -> List[LeaveTypeRead]:
    query = db.query(LeaveType)
    if not include_inactive:
        query = query.filter(LeaveType.is_active.is_(True))
    return [LeaveTypeRead.model_validate(t) for t in query.order_by(LeaveType.name.asc()).all()]


@router.post("", response_model=LeaveTypeRead, status_code=status.HTTP_201_CREATED)
def create_leave_type(
    type_in: LeaveTypeCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_privileged),
) -> LeaveTypeRead:
    _ensure_unique_name(db, type_in.name)
    data = type_in.model_dump()
    if data["is_short_day"] is None:
        data["is_short_day"] = name_is_short_day(type_in.name)
    leave_type = LeaveType(**data)
    db.add(leave_type)
    db.flush()
    log_activity(
        db,
        actor_user_id=current_user.id,
        activity_type="LEAVE_TYPE_CREATED",
        message=f"Leave type created: {leave_type.name}",
        payload={"leave_type_id": leave_type.id},
    )
    db.commit()
    db.refresh(leave_type)
    return LeaveTypeRead.model_validate(leave_type)


@router.patch("/{leave_type_id}", response_model=LeaveTypeRead)
def update_leave_type(
    leave_type_id: int,
    type_update: LeaveTypeUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_privileged),
) -> LeaveTypeRead:
    leave_type = _get_leave_type_or_404(db, leave_type_id)
    update_data = type_update.model_dump(exclude_unset=True)
    if update_data.get("name"):
        update_data["name"] = update_data["name"].strip()
        _ensure_unique_name(db, update_data["name"], exclude_id=leave_type.id)
    for field, value in update_data.items():
        setattr(leave_type, field, value)
    db.add(leave_type)
    log_activity(
        db,
        actor_user_id=current_user.id,
        activity_type="LEAVE_TYPE_UPDATED",
        message=f"Leave type updated: {leave_type.name}",
        payload={"leave_type_id": leave_type.id, "fields": sorted(update_data.keys())},
    )
    db.commit()
    db.refresh(leave_type)
    return LeaveTypeRead.model_validate(leave_type)


@router.delete("/{leave_type_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_leave_type(
    leave_type_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_privileged),
) -> None:
    leave_type = _get_leave_type_or_404(db, leave_type_id)
    if db.query(Leave).filter(Leave.leave_type_id == leave_type.id).first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Leave type is in use; deactivate it instead",
        )
    db.delete(leave_type)
    log_activity(
        db,
        actor_user_id=current_user.id,
        activity_type="LEAVE_TYPE_DELETED",
        message=f"Leave type deleted: {leave_type.name}",
        payload={"leave_type_id": leave_type_id},
    )
    db.commit()
    return None
