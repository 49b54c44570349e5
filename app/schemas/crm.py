from pydantic import BaseModel, Field
from typing import Any, Dict, List, Literal, Optional
from datetime import datetime

CrmStatus = Literal["new", "contacted", "offer_made", "closed", "dead"]


class CrmLeadCreate(BaseModel):
    property_id: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    zipcode: str | None = None
    price: int | None = None
    property_type: str | None = None
    days_on_market: int | None = None
    source: str = "lead-genie"
    status: CrmStatus = "new"
    lead_notes: str | None = None
    listing_url: str | None = None
    keywords_matched: List[str] | None = None


class CrmLeadUpdate(BaseModel):
    status: CrmStatus | None = None
    lead_notes: str | None = None


class CrmLeadResponse(BaseModel):
    id: str
    user_id: str
    property_id: str | None
    address: str
    normalized_address: str
    city: str
    state: str | None
    zipcode: str | None
    price: int | None
    property_type: str | None
    days_on_market: int | None
    source: str
    status: str
    lead_notes: str | None
    listing_url: str | None
    keywords_matched: List[str] | None
    enrichment: Dict[str, Any] | None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class SaveResult(BaseModel):
    """Outcome of a CRM save. created=False means the lead was already there."""
    created: bool
    id: str
    enriched: bool = False
