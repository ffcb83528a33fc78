from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint, func
from . import Base, utcnow

FOLLOW_STATUSES = ('pending', 'accepted', 'declined')

class Follow(Base):
    """One direction of a fellowship; an accepted request is stored as two accepted rows."""
    __tablename__ = 'follows'
    id = Column(Integer, primary_key=True)
    follower_id = Column(String(36), ForeignKey('profiles.id', ondelete='CASCADE'), index=True, nullable=False)
    followed_id = Column(String(36), ForeignKey('profiles.id', ondelete='CASCADE'), index=True, nullable=False)
    status = Column(String(16), nullable=False, default='pending')
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    __table_args__ = (
        UniqueConstraint('follower_id', 'followed_id', name='uix_follow_pair'),
    )
