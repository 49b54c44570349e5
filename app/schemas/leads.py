from pydantic import BaseModel, Field, field_validator
from typing import List, Literal, Optional
from datetime import datetime

SOURCES = ("zillow", "craigslist", "facebook", "realtor")


def split_keywords(value) -> List[str]:
    """Accept 'a, b' or ['a', 'b'] and return trimmed, non-empty keywords."""
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    return [k.strip() for k in value if isinstance(k, str) and k.strip()]


class Lead(BaseModel):
    """A raw listing pulled from a source. Not persisted unless saved to the CRM."""
    source_id: str
    source: str
    address: str
    city: str | None = None
    state: str | None = None
    zip: str | None = None
    price: int | None = None
    days_on_market: int | None = None
    listing_url: str | None = None
    description: str | None = None
    date_listed: datetime | None = None
    property_type: str | None = None
    listing_type: str | None = None  # "fsbo" or "agent"
    keywords_matched: List[str] = Field(default_factory=list)


class LeadCriteria(BaseModel):
    days_on_market: int | None = Field(default=None, ge=0)
    days_on_market_option: Literal["less", "more"] = "less"
    price_min: int | None = Field(default=None, ge=0)
    price_max: int | None = Field(default=None, ge=0)
    keywords: List[str] = Field(default_factory=list)
    property_type: str | None = None
    listing_type: Literal["fsbo", "agent", "both"] = "both"

    @field_validator("keywords", mode="before")
    @classmethod
    def _split_keywords(cls, value):
        return split_keywords(value)


class LeadSearchParams(LeadCriteria):
    city: str = Field(min_length=1)
    state: str | None = None
    sources: List[str] = Field(default_factory=lambda: list(SOURCES))

    @field_validator("sources")
    @classmethod
    def _known_sources(cls, value: List[str]) -> List[str]:
        cleaned = [s.strip().lower() for s in value if s and s.strip()]
        unknown = [s for s in cleaned if s not in SOURCES]
        if unknown:
            raise ValueError(f"Unknown sources: {', '.join(unknown)}")
        # Keep request order, drop repeats
        return list(dict.fromkeys(cleaned))

    def criteria(self) -> LeadCriteria:
        return LeadCriteria(**self.model_dump(include=set(LeadCriteria.model_fields)))


class LeadSearchResponse(BaseModel):
    leads: List[Lead]
    count: int
    failed_sources: List[str] = Field(default_factory=list)
