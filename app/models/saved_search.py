from sqlalchemy import Column, Integer, String, Boolean, JSON, DateTime
from datetime import datetime
from app.db.base import Base


class SavedSearch(Base):
    __tablename__ = "saved_searches"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    city = Column(String, nullable=False)
    state = Column(String, nullable=True)
    sources = Column(JSON, nullable=False, default=list)
    keywords = Column(String, nullable=True)
    days_on_market = Column(Integer, nullable=True)
    days_on_market_option = Column(String, nullable=True, default="less")
    price_min = Column(Integer, nullable=True)
    price_max = Column(Integer, nullable=True)
    enabled = Column(Boolean, default=True, nullable=False)  # Paused searches are disabled, not deleted
    email_alert = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
