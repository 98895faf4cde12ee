from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from hrms.core.deps import get_current_user, require_privileged
from hrms.db.session import get_db
from hrms.models.notification import Notification
from hrms.models.user import User
from hrms.schemas.notification import NotificationCreate, NotificationRead, UnreadCount
from hrms.services import notifications as inbox
from hrms.services.activity import log_activity

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


def _owned(db: Session, notification_id: int, user: User) -> Notification:
    notification = db.get(Notification, notification_id)
    if notification is None or notification.user_id != user.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    return notification


@router.get("", response_model=List[NotificationRead])
def list_notifications(
    since_id: Optional[int] = Query(None, ge=0),
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> List[Notification]:
    return inbox.list_for_user(db, user_id=current_user.id, since_id=since_id, unread_only=unread_only, limit=limit)


@router.post("", response_model=NotificationRead, status_code=status.HTTP_201_CREATED)
def send_notification(
    body: NotificationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_privileged),
) -> Notification:
    if db.get(User, body.user_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    notification = inbox.create_notification(
        db,
        user_id=body.user_id,
        notif_type=body.type,
        title=body.title,
        message=body.message,
        leave_id=body.leave_id,
        payload={"sent_by": current_user.id},
    )
    log_activity(
        db,
        actor_user_id=current_user.id,
        activity_type="NOTIFICATION_SENT",
        message=f"Notification {notification.id} sent to user {body.user_id}",
    )
    db.commit()
    db.refresh(notification)
    return notification


@router.get("/unread-count", response_model=UnreadCount)
def unread_count(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)) -> UnreadCount:
    by_type = inbox.unread_counts(db, user_id=current_user.id)
    return UnreadCount(total=sum(by_type.values()), by_type=by_type)


@router.post("/read-all")
def read_all(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)) -> dict:
    marked = inbox.mark_all_read(db, user_id=current_user.id)
    db.commit()
    return {"marked": marked}


@router.post("/{notification_id}/read", response_model=NotificationRead)
def read_one(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Notification:
    notification = inbox.mark_read(_owned(db, notification_id, current_user))
    db.commit()
    db.refresh(notification)
    return notification


@router.patch("/{notification_id}/dismiss", response_model=NotificationRead)
def dismiss(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Notification:
    notification = inbox.dismiss(_owned(db, notification_id, current_user))
    db.commit()
    db.refresh(notification)
    return notification
