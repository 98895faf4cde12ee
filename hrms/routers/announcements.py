from __future__ import annotations

from datetime import datetime, timezone
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import and_
from sqlalchemy.orm import Session

from hrms.core import rbac
from hrms.core.deps import get_current_user, require_privileged
from hrms.db.session import get_db
from hrms.models.announcement import MAX_ANNOUNCEMENT_VIEWS, Announcement, AnnouncementView
from hrms.models.enums import NotificationType, Role
from hrms.models.user import User
from hrms.schemas.announcement import AnnouncementCreate, AnnouncementRead, AnnouncementUpdate
from hrms.services.activity import log_activity
from hrms.services.notifications import notify_roles

router = APIRouter(prefix="/api/announcements", tags=["announcements"])


def _today():
    return datetime.now(timezone.utc).date()


def _get_announcement_or_404(db: Session, announcement_id: int) -> Announcement:
    announcement = db.get(Announcement, announcement_id)
    if not announcement:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Announcement not found")
    return announcement


@router.get("", response_model=List[AnnouncementRead])
def list_announcements(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> List[AnnouncementRead]:
    """Everything for admin/HR; employees only see current announcements they have not used up."""
    if rbac.is_privileged(current_user):
        announcements = (
            db.query(Announcement)
            .order_by(Announcement.announcement_date.desc(), Announcement.id.desc())
            .all()
        )
        return [AnnouncementRead.model_validate(a) for a in announcements]

    rows = (
        db.query(Announcement, AnnouncementView.view_count)
        .outerjoin(
            AnnouncementView,
            and_(
                AnnouncementView.announcement_id == Announcement.id,
                AnnouncementView.user_id == current_user.id,
            ),
        )
        .filter(Announcement.announcement_date <= _today())
        .order_by(Announcement.announcement_date.desc(), Announcement.id.desc())
        .all()
    )
    visible: list[AnnouncementRead] = []
    for announcement, view_count in rows:
        count = view_count or 0
        if count >= MAX_ANNOUNCEMENT_VIEWS:
            continue
        item = AnnouncementRead.model_validate(announcement)
        item.view_count = count
        visible.append(item)
    return visible


@router.post("", response_model=AnnouncementRead, status_code=status.HTTP_201_CREATED)
def create_announcement(
    body: AnnouncementCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_privileged),
) -> AnnouncementRead:
    announcement = Announcement(
        title=body.title.strip(),
        content=body.content,
        announcement_date=body.announcement_date or _today(),
        created_by_user_id=current_user.id,
    )
    db.add(announcement)
    db.flush()
    notify_roles(
        db,
        roles=[Role.EMPLOYEE],
        notif_type=NotificationType.ANNOUNCEMENT,
        title=announcement.title,
        message=announcement.content[:200],
        payload={"announcement_id": announcement.id},
    )
    log_activity(
        db,
        actor_user_id=current_user.id,
        activity_type="ANNOUNCEMENT_CREATED",
        message=f"Announcement created: {announcement.title}",
        payload={"announcement_id": announcement.id},
    )
    db.commit()
    db.refresh(announcement)
    return AnnouncementRead.model_validate(announcement)


@router.patch("/{announcement_id}", response_model=AnnouncementRead)
def update_announcement(
    announcement_id: int,
    body: AnnouncementUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_privileged),
) -> AnnouncementRead:
    announcement = _get_announcement_or_404(db, announcement_id)
    update_data = body.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        if value is not None:
            setattr(announcement, field, value)
    db.add(announcement)
    log_activity(
        db,
        actor_user_id=current_user.id,
        activity_type="ANNOUNCEMENT_UPDATED",
        message=f"Announcement updated: {announcement.id}",
        payload={"announcement_id": announcement.id, "fields": sorted(update_data.keys())},
    )
    db.commit()
    db.refresh(announcement)
    return AnnouncementRead.model_validate(announcement)


@router.delete("/{announcement_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_announcement(
    announcement_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_privileged),
) -> None:
    announcement = _get_announcement_or_404(db, announcement_id)
    db.delete(announcement)
    log_activity(
        db,
        actor_user_id=current_user.id,
        activity_type="ANNOUNCEMENT_DELETED",
        message=f"Announcement deleted: {announcement_id}",
        payload={"announcement_id": announcement_id},
    )
    db.commit()
    return None


@router.post("/{announcement_id}/view", response_model=dict)
def record_view(
    announcement_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict:
    announcement = _get_announcement_or_404(db, announcement_id)
    view = (
        db.query(AnnouncementView)
        .filter(
            AnnouncementView.announcement_id == announcement.id,
            AnnouncementView.user_id == current_user.id,
        )
        .first()
    )
    if view is None:
        view = AnnouncementView(announcement_id=announcement.id, user_id=current_user.id, view_count=0)
    if view.view_count < MAX_ANNOUNCEMENT_VIEWS:
        view.view_count += 1
    db.add(view)
    db.commit()
    return {"announcement_id": announcement.id, "view_count": view.view_count}
