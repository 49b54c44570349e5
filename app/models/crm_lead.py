"""
Leads a user has saved into their CRM pipeline.
"""
import uuid
from sqlalchemy import Column, Integer, String, Text, JSON, DateTime, UniqueConstraint, Index, text
from datetime import datetime
from app.db.base import Base

CRM_STATUSES = ("new", "contacted", "offer_made", "closed", "dead")


class CrmLead(Base):
    __tablename__ = "crm_leads"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, nullable=False, index=True)
    property_id = Column(String, nullable=True)  # External listing id from the source, when known
    address = Column(String, nullable=False)
    normalized_address = Column(String, nullable=False, index=True)
    city = Column(String, nullable=False)
    state = Column(String, nullable=True)
    zipcode = Column(String, nullable=True)
    price = Column(Integer, nullable=True)
    property_type = Column(String, nullable=True)
    days_on_market = Column(Integer, nullable=True)
    source = Column(String, nullable=False, default="lead-genie")
    status = Column(String, nullable=False, default="new")
    lead_notes = Column(Text, nullable=True)
    listing_url = Column(String, nullable=True)
    keywords_matched = Column(JSON, nullable=True)
    enrichment = Column(JSON, nullable=True)  # Property data provider payload, absent if lookup failed
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "property_id", name="uq_crm_leads_user_property"),
        # Leads without a listing id are deduplicated on their address
        Index(
            "uq_crm_leads_user_address",
            "user_id",
            "normalized_address",
            unique=True,
            postgresql_where=text("property_id IS NULL"),
            sqlite_where=text("property_id IS NULL"),
        ),
    )

    def __repr__(self):
        return f"<CrmLead(id={self.id}, user_id={self.user_id}, address={self.address}, status={self.status})>"
