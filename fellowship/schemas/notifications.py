from datetime import datetime
from pydantic import BaseModel, ConfigDict
from typing import Optional


class NotificationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: Optional[datetime] = None
    type: str
    title: Optional[str] = None
    body: Optional[str] = None
    church_id: Optional[str] = None
    membership_id: Optional[str] = None
    related_user_id: Optional[str] = None
    is_read: bool = False


class UnreadCountOut(BaseModel):
    count: int


class ActionOkOut(BaseModel):
    ok: bool = True
