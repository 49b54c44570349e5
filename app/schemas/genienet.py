from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from decimal import Decimal


class DealSubmission(BaseModel):
    address: str = Field(min_length=1)
    property_type: str | None = None
    purchase_price: float | None = Field(default=None, gt=0)
    arv: float | None = Field(default=None, ge=0)
    rehab_cost: float | None = Field(default=None, ge=0)
    monthly_rent: float | None = Field(default=None, ge=0)
    noi: float | None = None  # Monthly net operating income
    notes: str | None = None


class DealResponse(BaseModel):
    id: int
    user_id: str
    address: str
    normalized_address: str
    zip_code: str | None
    state: str | None
    property_type: str | None
    purchase_price: Decimal | None
    arv: Decimal | None
    deal_score: int
    created_at: datetime

    class Config:
        from_attributes = True


class WaitlistSubmission(BaseModel):
    email: EmailStr
    name: str | None = None
