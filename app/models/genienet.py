"""
Community deal board (GenieNet) and its waitlist.
"""
from sqlalchemy import Column, Integer, String, Text, Numeric, DateTime
from datetime import datetime
from app.db.base import Base


class GenieNetDeal(Base):
    __tablename__ = "genienet_deals"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, nullable=False, index=True)
    address = Column(String, nullable=False)
    normalized_address = Column(String, nullable=False, unique=True)
    zip_code = Column(String, nullable=True, index=True)
    state = Column(String, nullable=True, index=True)
    property_type = Column(String, nullable=True)
    purchase_price = Column(Numeric(14, 2), nullable=True)
    arv = Column(Numeric(14, 2), nullable=True)
    rehab_cost = Column(Numeric(14, 2), nullable=True)
    monthly_rent = Column(Numeric(14, 2), nullable=True)
    noi = Column(Numeric(14, 2), nullable=True)
    deal_score = Column(Integer, nullable=False, default=50)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class WaitlistEntry(Base):
    __tablename__ = "genienet_waitlist"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, nullable=False, unique=True)
    name = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
