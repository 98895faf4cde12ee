"""Granting leave balances to employees and editing them afterwards."""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from hrms.models.enums import LeaveKind, LeaveStatus, NotificationType
from hrms.models.leave import Leave, LeaveType
from hrms.models.user import User
from hrms.schemas.leave import AllocationIn, AllotmentReplaceItem, AllotmentUpdate
from hrms.services.activity import log_activity
from hrms.services.leave import find_allotment, recalculate_allotment
from hrms.services.notifications import create_notification

logger = logging.getLogger(__name__)


class AllotmentError(ValueError):
    """A single allocation could not be applied."""

    def __init__(self, message: str, *, user_id: Optional[int] = None, leave_type_id: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.user_id = user_id
        self.leave_type_id = leave_type_id

    def as_dict(self) -> dict:
        return {"user_id": self.user_id, "leave_type_id": self.leave_type_id, "error": self.message}


def _quantity_for(
    leave_type: LeaveType,
    *,
    days: Optional[float],
    hours: Optional[int],
    minutes: Optional[int],
    user_id: int,
) -> dict:
    """Normalised ``days``/``hours``/``minutes`` for ``leave_type``; every allotment must be positive."""
    timed = hours is not None or minutes is not None
    if leave_type.is_short_day:
        total = (hours or 0) * 60 + (minutes or 0)
        if not timed or total <= 0:
            raise AllotmentError(
                f"{leave_type.name} is allotted in hours and minutes",
                user_id=user_id,
                leave_type_id=leave_type.id,
            )
        hours, minutes = divmod(total, 60)
        return {"days": 0.0, "hours": hours, "minutes": minutes}
    if timed or not days or days <= 0:
        raise AllotmentError(
            f"{leave_type.name} is allotted in days",
            user_id=user_id,
            leave_type_id=leave_type.id,
        )
    if leave_type.max_days is not None and days > leave_type.max_days:
        raise AllotmentError(
            f"{leave_type.name} allows at most {leave_type.max_days:g} days",
            user_id=user_id,
            leave_type_id=leave_type.id,
        )
    return {"days": float(days), "hours": 0, "minutes": 0}


def _build_allotment(
    db: Session,
    *,
    allocator: User,
    user_id: int,
    leave_type: LeaveType,
    item: AllocationIn | AllotmentReplaceItem,
) -> Leave:
    quantity = _quantity_for(leave_type, days=item.days, hours=item.hours, minutes=item.minutes, user_id=user_id)
    now = datetime.now(timezone.utc)
    today = now.date()
    span = max(1, math.ceil(quantity["days"]))
    allotment = Leave(
        user_id=user_id,
        leave_type_id=leave_type.id,
        leave_type=leave_type,
        kind=LeaveKind.ALLOTMENT,
        status=LeaveStatus.APPROVED,
        days=quantity["days"],
        hours=quantity["hours"],
        minutes=quantity["minutes"],
        carry_forward=item.carry_forward,
        start_date=today,
        end_date=today + timedelta(days=span - 1),
        reason=item.reason or f"{leave_type.name} allotment",
        allotted_by_user_id=allocator.id,
        allotted_at=now,
        approved_by_user_id=allocator.id,
        approved_at=now,
    )
    db.add(allotment)
    db.flush()
    recalculate_allotment(db, allotment)
    return allotment


def _resolve_target(db: Session, user_id: int, leave_type_id: int) -> tuple[User, LeaveType]:
    user = db.get(User, user_id)
    if not user or not user.is_active:
        raise AllotmentError("Employee not found", user_id=user_id, leave_type_id=leave_type_id)
    leave_type = db.get(LeaveType, leave_type_id)
    if not leave_type:
        raise AllotmentError("Leave type not found", user_id=user_id, leave_type_id=leave_type_id)
    return user, leave_type


def allot_leave(db: Session, *, allocator: User, item: AllocationIn) -> Leave:
    """Create one allotment; raises ``AllotmentError`` when it cannot be applied."""
    user, leave_type = _resolve_target(db, item.user_id, item.leave_type_id)
    if find_allotment(db, user_id=user.id, leave_type_id=leave_type.id):
        raise AllotmentError("Already allotted", user_id=user.id, leave_type_id=leave_type.id)
    allotment = _build_allotment(db, allocator=allocator, user_id=user.id, leave_type=leave_type, item=item)
    create_notification(
        db,
        user_id=user.id,
        notif_type=NotificationType.LEAVE_ALLOTTED,
        title="Leave allotted",
        message=f"{leave_type.name} has been allotted to you",
        leave_id=allotment.id,
    )
    return allotment


def bulk_allot(db: Session, *, allocator: User, allocations: Iterable[AllocationIn]) -> tuple[list[Leave], list[dict]]:
    """Apply every allocation independently, collecting per-allocation errors."""
    results: list[Leave] = []
    errors: list[dict] = []
    for item in allocations:
        try:
            results.append(allot_leave(db, allocator=allocator, item=item))
        except AllotmentError as exc:
            errors.append(exc.as_dict())

    if errors:
        logger.warning(f"Bulk allotment by user {allocator.id}: {len(errors)} allocation(s) failed: {errors}")
    log_activity(
        db,
        actor_user_id=allocator.id,
        activity_type="LEAVE_BULK_ALLOTTED",
        message=f"Bulk allotment: {len(results)} created, {len(errors)} failed",
        payload={"success_count": len(results), "error_count": len(errors)},
    )
    return results, errors


def replace_user_allotments(
    db: Session,
    *,
    allocator: User,
    user_id: int,
    allocations: list[AllotmentReplaceItem],
) -> list[Leave]:
    """
    Replace ``user_id``'s allotments for the supplied leave types.

    Deletes and inserts happen in the caller's transaction; on
    ``AllotmentError`` the caller rolls back and the prior records survive.
    """
    leave_type_ids = [item.leave_type_id for item in allocations]
    existing = (
        db.query(Leave)
        .filter(
            Leave.user_id == user_id,
            Leave.kind == LeaveKind.ALLOTMENT,
            Leave.leave_type_id.in_(leave_type_ids),
        )
        .all()
    )
    for allotment in existing:
        db.delete(allotment)
    db.flush()

    created: list[Leave] = []
    for item in allocations:
        _, leave_type = _resolve_target(db, user_id, item.leave_type_id)
        created.append(_build_allotment(db, allocator=allocator, user_id=user_id, leave_type=leave_type, item=item))

    log_activity(
        db,
        actor_user_id=allocator.id,
        activity_type="LEAVE_ALLOTMENTS_REPLACED",
        message=f"Allotments replaced for user {user_id}",
        payload={
            "user_id": user_id,
            "leave_type_ids": leave_type_ids,
            "removed": len(existing),
            "created": len(created),
        },
    )
    return created


def update_allotment(db: Session, *, allotment: Leave, changes: AllotmentUpdate, actor: User) -> Leave:
    """
    Edit one allotment in place.

    A change of leave type re-validates the quantity against the new type;
    switching between day-based and short-day types needs the new unit in
    the same request.
    """
    if allotment.kind != LeaveKind.ALLOTMENT:
        raise AllotmentError("Only allotted leaves can be edited", user_id=allotment.user_id)

    data = changes.model_dump(exclude_unset=True)
    current_type = allotment.leave_type
    target_type = current_type
    new_type_id = data.get("leave_type_id")
    if new_type_id is not None and new_type_id != allotment.leave_type_id:
        target_type = db.get(LeaveType, new_type_id)
        if not target_type:
            raise AllotmentError("Leave type not found", user_id=allotment.user_id, leave_type_id=new_type_id)
        if find_allotment(db, user_id=allotment.user_id, leave_type_id=new_type_id):
            raise AllotmentError(
                "This leave type is already allotted to the employee",
                user_id=allotment.user_id,
                leave_type_id=new_type_id,
            )

    unit_changed = target_type.is_short_day != current_type.is_short_day
    timed_keys = {"hours", "minutes"} & data.keys()
    if target_type is not current_type or timed_keys or "days" in data:
        if target_type.is_short_day:
            if "days" in data or (unit_changed and not timed_keys):
                raise AllotmentError(
                    f"{target_type.name} is allotted in hours and minutes",
                    user_id=allotment.user_id,
                    leave_type_id=target_type.id,
                )
            fallback_hours, fallback_minutes = (0, 0) if unit_changed else (allotment.hours or 0, allotment.minutes or 0)
            quantity = _quantity_for(
                target_type,
                days=None,
                hours=data.get("hours", fallback_hours),
                minutes=data.get("minutes", fallback_minutes),
                user_id=allotment.user_id,
            )
        else:
            if unit_changed and "days" not in data:
                raise AllotmentError(
                    f"{target_type.name} is allotted in days",
                    user_id=allotment.user_id,
                    leave_type_id=target_type.id,
                )
            quantity = _quantity_for(
                target_type,
                days=data.get("days", allotment.days),
                hours=data.get("hours"),
                minutes=data.get("minutes"),
                user_id=allotment.user_id,
            )
        allotment.leave_type_id = target_type.id
        allotment.leave_type = target_type
        allotment.days = quantity["days"]
        allotment.hours = quantity["hours"]
        allotment.minutes = quantity["minutes"]
        allotment.end_date = allotment.start_date + timedelta(days=max(1, math.ceil(allotment.days)) - 1)

    if "carry_forward" in data:
        allotment.carry_forward = bool(data["carry_forward"])
    if "reason" in data:
        allotment.reason = data["reason"]

    db.add(allotment)
    db.flush()
    recalculate_allotment(db, allotment)
    log_activity(
        db,
        actor_user_id=actor.id,
        activity_type="LEAVE_ALLOTMENT_UPDATED",
        message=f"Allotment updated: {allotment.id}",
        payload={"leave_id": allotment.id, "changes": list(data.keys())},
    )
    return allotment
