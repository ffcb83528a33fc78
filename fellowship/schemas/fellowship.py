from datetime import datetime
from pydantic import BaseModel, ConfigDict
from typing import Literal, Optional

FollowStatus = Literal['pending', 'accepted', 'declined']


class ProfileOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    is_verified: Optional[bool] = False


class FollowOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    follower_id: str
    followed_id: str
    status: FollowStatus
    created_at: Optional[datetime] = None


class FollowRequestOut(FollowOut):
    follower: Optional[ProfileOut] = None
