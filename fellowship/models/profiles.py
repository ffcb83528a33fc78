from sqlalchemy import Column, String, Boolean, DateTime, func
from . import Base, utcnow

class Profile(Base):
    __tablename__ = 'profiles'
    # id matches the auth provider's user id (uuid string)
    id = Column(String(36), primary_key=True)
    display_name = Column(String(150), nullable=True)
    avatar_url = Column(String, nullable=True)
    is_verified = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
