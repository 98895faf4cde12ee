from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import Field

from hrms.schemas.base import ORMModel, UserBrief


class AnnouncementCreate(ORMModel):
    title: str = Field(min_length=1, max_length=200)
    content: str = Field(min_length=1, max_length=5000)
    announcement_date: Optional[date] = None


class AnnouncementUpdate(ORMModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    content: Optional[str] = Field(default=None, min_length=1, max_length=5000)
    announcement_date: Optional[date] = None


class AnnouncementRead(ORMModel):
    id: int
    title: str
    content: str
    announcement_date: date
    created_by_user_id: Optional[int] = None
    created_by: Optional[UserBrief] = None
    created_at: datetime
    view_count: Optional[int] = None
