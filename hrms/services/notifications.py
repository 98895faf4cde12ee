"""In-app notification inbox: creation, fan-out by role, and read state."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Optional, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from hrms.models.enums import NotificationType, Role
from hrms.models.notification import Notification
from hrms.models.user import User


def create_notification(
    db: Session,
    *,
    user_id: int,
    notif_type: NotificationType,
    title: str,
    message: str,
    leave_id: Optional[int] = None,
    payload: Optional[dict] = None,
) -> Notification:
    notification = Notification(
        user_id=user_id,
        type=notif_type,
        title=title,
        message=message,
        leave_id=leave_id,
        payload_json=payload,
    )
    db.add(notification)
    db.flush()
    return notification


def notify_roles(
    db: Session,
    *,
    roles: Sequence[Role],
    notif_type: NotificationType,
    title: str,
    message: str,
    leave_id: Optional[int] = None,
    payload: Optional[dict] = None,
    exclude_user_ids: Optional[Iterable[int]] = None,
) -> list[Notification]:
    """One notification per active user holding any of ``roles``."""
    skipped = set(exclude_user_ids or ())
    recipients = db.scalars(
        select(User.id).where(User.role.in_(list(roles)), User.is_active.is_(True)).order_by(User.id)
    )
    return [
        create_notification(
            db,
            user_id=recipient_id,
            notif_type=notif_type,
            title=title,
            message=message,
            leave_id=leave_id,
            payload=payload,
        )
        for recipient_id in recipients.all()
        if recipient_id not in skipped
    ]


def _inbox(user_id: int):
    return select(Notification).where(Notification.user_id == user_id, Notification.dismissed.is_(False))


def list_for_user(
    db: Session,
    *,
    user_id: int,
    since_id: Optional[int] = None,
    unread_only: bool = False,
    limit: int = 50,
) -> list[Notification]:
    """Most recent non-dismissed notifications, newest first."""
    stmt = _inbox(user_id)
    if since_id is not None:
        stmt = stmt.where(Notification.id > since_id)
    if unread_only:
        stmt = stmt.where(Notification.read_at.is_(None))
    return list(db.scalars(stmt.order_by(Notification.id.desc()).limit(limit)))


def unread_counts(db: Session, *, user_id: int) -> dict[str, int]:
    stmt = (
        select(Notification.type, func.count(Notification.id))
        .where(
            Notification.user_id == user_id,
            Notification.dismissed.is_(False),
            Notification.read_at.is_(None),
        )
        .group_by(Notification.type)
    )
    return {notif_type.value: count for notif_type, count in db.execute(stmt)}


def mark_read(notification: Notification) -> Notification:
    if notification.read_at is None:
        notification.read_at = datetime.now(timezone.utc)
    return notification


def mark_all_read(db: Session, *, user_id: int) -> int:
    result = db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.read_at.is_(None))
        .values(read_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


def dismiss(notification: Notification) -> Notification:
    now = datetime.now(timezone.utc)
    notification.dismissed = True
    notification.dismissed_at = now
    if notification.read_at is None:
        notification.read_at = now
    return notification
