from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from hrms.core.deps import require_admin, require_privileged
from hrms.db.session import get_db
from hrms.models.user import User
from hrms.schemas.attendance import AttendanceSettings
from hrms.schemas.base import ActivityRead
from hrms.services.activity import log_activity, recent_activity
from hrms.services.system_config import (
    DEFAULT_CLOCK_IN_TIME_LIMIT,
    MAX_LATE_DAYS,
    get_config,
    get_max_late_days,
    set_config,
)

router = APIRouter(prefix="/api/settings", tags=["settings"])


def _current(db: Session) -> AttendanceSettings:
    return AttendanceSettings(
        default_clock_in_time_limit=get_config(db, DEFAULT_CLOCK_IN_TIME_LIMIT),
        max_late_days=get_max_late_days(db),
    )


@router.get("/attendance", response_model=AttendanceSettings)
def read_attendance_settings(
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_privileged),
) -> AttendanceSettings:
    return _current(db)


@router.put("/attendance", response_model=AttendanceSettings)
def update_attendance_settings(
    body: AttendanceSettings,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
) -> AttendanceSettings:
    set_config(db, DEFAULT_CLOCK_IN_TIME_LIMIT, body.default_clock_in_time_limit or "")
    set_config(db, MAX_LATE_DAYS, str(body.max_late_days))
    log_activity(
        db,
        actor_user_id=current_user.id,
        activity_type="SETTINGS_UPDATED",
        message="Attendance settings updated",
        payload=body.model_dump(),
    )
    db.commit()
    return _current(db)


@router.get("/activity", response_model=list[ActivityRead])
def list_activity(
    activity_type: Optional[str] = None,
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_admin),
) -> list[ActivityRead]:
    return recent_activity(db, activity_type=activity_type, limit=limit)
