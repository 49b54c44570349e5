"""
Lead filtering. Every supplied criterion must hold (AND); keywords match if any
one of them appears in the description (OR).
"""
from typing import Iterable, List

from app.schemas.leads import Lead, LeadCriteria


def matches_days_on_market(lead: Lead, days: int | None, option: str) -> bool:
    if days is None:
        return True
    if lead.days_on_market is None:
        return False
    if option == "less":
        return lead.days_on_market <= days
    return lead.days_on_market >= days


def matches_price(lead: Lead, price_min: int | None, price_max: int | None) -> bool:
    if price_min is None and price_max is None:
        return True
    if lead.price is None:
        return False
    if price_min is not None and lead.price < price_min:
        return False
    if price_max is not None and lead.price > price_max:
        return False
    return True


def matches_keywords(lead: Lead, keywords: List[str]) -> bool:
    if not keywords:
        return True
    description = (lead.description or "").lower()
    return any(keyword.lower() in description for keyword in keywords)


def matches_property_type(lead: Lead, property_type: str | None) -> bool:
    if not property_type:
        return True
    return property_type.lower() in (lead.property_type or "").lower()


def matches_listing_type(lead: Lead, listing_type: str) -> bool:
    if listing_type == "both":
        return True
    return lead.listing_type == listing_type


def filter_leads(leads: Iterable[Lead], criteria: LeadCriteria) -> List[Lead]:
    return [
        lead for lead in leads
        if matches_days_on_market(lead, criteria.days_on_market, criteria.days_on_market_option)
        and matches_price(lead, criteria.price_min, criteria.price_max)
        and matches_keywords(lead, criteria.keywords)
        and matches_property_type(lead, criteria.property_type)
        and matches_listing_type(lead, criteria.listing_type)
    ]
