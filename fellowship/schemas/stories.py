from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, Dict, List, Literal, Optional

from ..overlays import Overlay, OverlayList

MediaType = Literal['image', 'video']


class StoryCreateIn(BaseModel):
    media_type: MediaType
    media_url: str = Field(min_length=1)
    caption: Optional[str] = Field(default=None, max_length=500)
    overlays: Optional[List[Overlay]] = None

    @field_validator('overlays')
    @classmethod
    def unique_ids(cls, v):
        if v is not None:
            # raises on duplicate ids
            OverlayList(v)
        return v or None

    @field_validator('caption')
    @classmethod
    def blank_caption(cls, v):
        if v is not None and not v.strip():
            return None
        return v


class StoryAuthor(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None


class StoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    media_type: MediaType
    media_url: str
    caption: Optional[str] = None
    # stored shape, already validated on write
    overlays: Optional[List[Dict[str, Any]]] = None
    created_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    profile: Optional[StoryAuthor] = None


class StoryBucket(BaseModel):
    user_id: str
    profile: Optional[StoryAuthor] = None
    stories: List[StoryOut]


class PlacedOverlayOut(BaseModel):
    id: str
    type: str
    value: str
    x: float
    y: float
    scale: float
    highlight: bool


class StoryLayoutOut(BaseModel):
    story_id: int
    width: float
    height: float
    overlays: List[PlacedOverlayOut]
