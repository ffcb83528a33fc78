from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint, func
from . import Base, utcnow
from ..schemas.posts import REACTION_TYPES  # noqa: F401

class PostReaction(Base):
    __tablename__ = 'post_reactions'
    id = Column(Integer, primary_key=True)
    post_id = Column(Integer, ForeignKey('posts.id', ondelete='CASCADE'), index=True, nullable=False)
    user_id = Column(String(36), ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False)
    type = Column(String(16), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    __table_args__ = (
        UniqueConstraint('post_id', 'user_id', name='uix_post_user_reaction'),
    )
