from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from hrms.schemas.base import ORMModel, UserBrief


class TeamCreate(ORMModel):
    name: str = Field(min_length=1, max_length=120)
    description: Optional[str] = None
    leader_id: int
    member_ids: List[int] = Field(default_factory=list)


class TeamUpdate(ORMModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    description: Optional[str] = None
    leader_id: Optional[int] = None
    member_ids: Optional[List[int]] = None


class TeamRead(ORMModel):
    id: int
    name: str
    description: Optional[str] = None
    leader_id: int
    leader: Optional[UserBrief] = None
    members: List[UserBrief] = Field(default_factory=list)
    created_by_user_id: Optional[int] = None
    created_at: datetime
