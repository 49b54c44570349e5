from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.sql import func
from app.db.base import Base

class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, index=True)  # Supabase auth user id (uuid)
    email = Column(String, unique=True, index=True, nullable=True)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    subscription_tier = Column(String, default="free", nullable=False)
    is_admin = Column(Boolean, default=False, nullable=False)
    notify_usage = Column(Boolean, default=True, nullable=False)  # Email when approaching/at usage limits
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
