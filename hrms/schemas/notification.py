from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from hrms.models.enums import NotificationType
from hrms.schemas.base import ORMModel


class NotificationCreate(ORMModel):
    user_id: int
    type: NotificationType = NotificationType.GENERAL
    title: str = Field(min_length=1, max_length=200)
    message: str = Field(min_length=1, max_length=5000)
    leave_id: Optional[int] = None


class NotificationRead(ORMModel):
    id: int
    user_id: int
    type: NotificationType
    title: str
    message: str
    leave_id: Optional[int] = None
    read_at: Optional[datetime] = None
    dismissed: bool
    payload_json: Optional[dict] = None
    created_at: datetime


class UnreadCount(ORMModel):
    total: int
    by_type: dict[str, int]
