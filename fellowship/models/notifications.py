from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, func
from . import Base, utcnow

class Notification(Base):
    __tablename__ = 'notifications'
    id = Column(Integer, primary_key=True)
    user_id = Column(String(36), ForeignKey('profiles.id', ondelete='CASCADE'), index=True, nullable=False)
    type = Column(String(64), nullable=False)
    title = Column(String(255), nullable=True)
    body = Column(Text, nullable=True)
    church_id = Column(String(36), nullable=True, index=True)
    membership_id = Column(String(36), nullable=True)
    related_user_id = Column(String(36), nullable=True)
    is_read = Column(Boolean, default=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
