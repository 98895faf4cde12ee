"""Append-only audit trail of who changed what."""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from hrms.models.support import ActivityLog

logger = logging.getLogger("hrms.activity")


def log_activity(
    db: Session,
    *,
    actor_user_id: Optional[int],
    activity_type: str,
    message: Optional[str] = None,
    payload: Optional[dict] = None,
) -> ActivityLog:
    """Stage an activity row in the caller's transaction; the caller commits."""
    entry = ActivityLog(actor_user_id=actor_user_id, type=activity_type, message=message, payload_json=payload)
    db.add(entry)
    db.flush()
    logger.info("%s by user %s: %s", activity_type, actor_user_id or "system", message or "")
    return entry


def recent_activity(db: Session, *, activity_type: Optional[str] = None, limit: int = 50) -> list[ActivityLog]:
    stmt = select(ActivityLog).order_by(ActivityLog.id.desc()).limit(limit)
    if activity_type:
        stmt = stmt.where(ActivityLog.type == activity_type)
    return list(db.scalars(stmt))
