from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from hrms.core.deps import require_admin, require_privileged
from hrms.db.session import get_db
from hrms.models.user import User
from hrms.schemas.dashboard import AdminStats, HRStats
from hrms.services.dashboard import admin_stats, hr_stats

router = APIRouter(prefix="/api", tags=["dashboard"])


@router.get("/admin/stats", response_model=AdminStats)
def read_admin_stats(
    on_date: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_admin),
) -> AdminStats:
    return AdminStats(**admin_stats(db, on_date=on_date))


@router.get("/hr/stats", response_model=HRStats)
def read_hr_stats(
    on_date: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_privileged),
) -> HRStats:
    return HRStats(**hr_stats(db, on_date=on_date))
