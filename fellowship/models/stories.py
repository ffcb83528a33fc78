from datetime import timedelta
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, JSON, event, func
from . import Base, utcnow

STORY_TTL = timedelta(hours=24)


class Story(Base):
    __tablename__ = 'stories'
    id = Column(Integer, primary_key=True)
    user_id = Column(String(36), ForeignKey('profiles.id', ondelete='CASCADE'), index=True, nullable=False)
    media_type = Column(String(16), nullable=False)  # image, video
    media_url = Column(String, nullable=False)
    caption = Column(Text, nullable=True)
    overlays = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)


@event.listens_for(Story, 'before_insert')
def _stamp_expiry(mapper, connection, story):
    # both timestamps come from one clock reading
    if story.created_at is None:
        story.created_at = utcnow()
    if story.expires_at is None:
        story.expires_at = story.created_at + STORY_TTL
