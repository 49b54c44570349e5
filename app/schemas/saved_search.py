from pydantic import BaseModel, Field
from typing import List, Literal
from datetime import datetime


class SavedSearchCreate(BaseModel):
    name: str | None = None
    city: str | None = None
    state: str | None = None
    sources: List[str] = Field(default_factory=list)
    keywords: str | None = None
    days_on_market: int | None = Field(default=None, ge=0)
    days_on_market_option: Literal["less", "more"] = "less"
    price_min: int | None = Field(default=None, ge=0)
    price_max: int | None = Field(default=None, ge=0)
    email_alert: bool = False


class SavedSearchUpdate(BaseModel):
    name: str | None = None
    city: str | None = None
    state: str | None = None
    sources: List[str] | None = None
    keywords: str | None = None
    days_on_market: int | None = Field(default=None, ge=0)
    days_on_market_option: Literal["less", "more"] | None = None
    price_min: int | None = Field(default=None, ge=0)
    price_max: int | None = Field(default=None, ge=0)
    enabled: bool | None = None
    email_alert: bool | None = None


class SavedSearchResponse(BaseModel):
    id: int
    user_id: str
    name: str
    city: str
    state: str | None
    sources: List[str]
    keywords: str | None
    days_on_market: int | None
    days_on_market_option: str | None
    price_min: int | None
    price_max: int | None
    enabled: bool
    email_alert: bool
    created_at: datetime

    class Config:
        from_attributes = True
