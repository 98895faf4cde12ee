from datetime import datetime

from pydantic import BaseModel, ConfigDict


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class UserBrief(ORMModel):
    id: int
    full_name: str
    email: str
    emp_id: str | None = None
    profile_image: str | None = None


class ActivityRead(ORMModel):
    id: int
    actor_user_id: int | None = None
    type: str
    message: str | None = None
    payload_json: dict | None = None
    created_at: datetime
