from __future__ import annotations

from datetime import datetime
from typing import List

from pydantic import Field, field_validator

from hrms.schemas.base import ORMModel, UserBrief


class FeedPostCreate(ORMModel):
    content: str = Field(min_length=1, max_length=5000)
    mentioned_user_ids: List[int] = Field(default_factory=list)

    @field_validator("content")
    @classmethod
    def strip_content(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("content is required")
        return value


class FeedPostRead(ORMModel):
    id: int
    author_user_id: int
    author: UserBrief
    content: str
    mentions: List[UserBrief] = Field(default_factory=list)
    created_at: datetime
