from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from hrms.core.deps import get_current_user
from hrms.db.session import get_db
from hrms.models.user import User
from hrms.schemas.user import ProfileRead, ProfileUpdate
from hrms.services.activity import log_activity

router = APIRouter(prefix="/api/profile", tags=["profile"])


@router.get("", response_model=ProfileRead)
def read_profile(current_user: User = Depends(get_current_user)) -> ProfileRead:
    return ProfileRead.model_validate(current_user)


@router.patch("", response_model=ProfileRead)
def update_profile(
    profile_update: ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ProfileRead:
    update_data = profile_update.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(current_user, field, value)
    db.add(current_user)
    log_activity(
        db,
        actor_user_id=current_user.id,
        activity_type="PROFILE_UPDATED",
        message="Profile updated",
        payload={"fields": sorted(update_data.keys())},
    )
    db.commit()
    db.refresh(current_user)
    return ProfileRead.model_validate(current_user)
