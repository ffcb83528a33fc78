from datetime import datetime
from pydantic import BaseModel, Field, field_validator
from typing import Dict, Literal, Optional, get_args

ReactionType = Literal['like', 'love', 'pray']
REACTION_TYPES = get_args(ReactionType)


class ReactionIn(BaseModel):
    type: Optional[ReactionType] = None


class ReactionOut(BaseModel):
    post_id: int
    user_id: str
    type: Optional[ReactionType] = None


class ReactionSummaryOut(BaseModel):
    post_id: int
    counts: Dict[str, int]
    mine: Optional[ReactionType] = None


class PostIn(BaseModel):
    content: str = Field(max_length=5000)
    url: Optional[str] = None
    media_url: Optional[str] = None
    media_type: Optional[Literal['image', 'video']] = None
    church_id: Optional[str] = None
    is_anonymous: bool = False

    @field_validator('content')
    @classmethod
    def content_not_blank(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('content must not be blank')
        return v

    @field_validator('url', 'media_url', 'church_id')
    @classmethod
    def blank_to_none(cls, v):
        if v is None:
            return None
        return v.strip() or None


class LinkInfoOut(BaseModel):
    url: str
    domain: Optional[str] = None
    video_id: Optional[str] = None
    thumbnail_url: Optional[str] = None
    embed_url: Optional[str] = None


class AuthorOut(BaseModel):
    id: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None


class PostOut(BaseModel):
    id: int
    # hidden on anonymous posts
    user_id: Optional[str] = None
    profile: Optional[AuthorOut] = None
    content: str
    url: Optional[str] = None
    link: Optional[LinkInfoOut] = None
    media_url: Optional[str] = None
    media_type: Optional[str] = None
    church_id: Optional[str] = None
    is_anonymous: bool = False
    comment_count: int = 0
    created_at: Optional[datetime] = None


class CommentIn(BaseModel):
    content: str = Field(max_length=2000)
    is_anonymous: bool = False

    @field_validator('content')
    @classmethod
    def content_not_blank(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('content must not be blank')
        return v


class CommentOut(BaseModel):
    id: int
    post_id: int
    user_id: Optional[str] = None
    content: str
    is_anonymous: bool = False
    created_at: Optional[datetime] = None


class LinkPreviewOut(BaseModel):
    ok: bool
    inputUrl: str
    finalUrl: Optional[str] = None
    domain: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    siteName: Optional[str] = None
    type: Optional[Literal['website', 'video', 'unknown']] = None
    embedUrl: Optional[str] = None
    error: Optional[str] = None
