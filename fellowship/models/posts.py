from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, func
from . import Base, utcnow

class Post(Base):
    __tablename__ = 'posts'
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(36), ForeignKey('profiles.id', ondelete='CASCADE'), index=True)
    church_id = Column(String(36), nullable=True, index=True)
    content = Column(Text, nullable=False)
    url = Column(String, nullable=True)
    media_url = Column(String, nullable=True)
    media_type = Column(String(64), nullable=True)
    is_anonymous = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
