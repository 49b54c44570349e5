"""
Realtor.com search results (agent listings), read from __NEXT_DATA__.
"""
import logging
from typing import List, Optional
from urllib.parse import quote

import httpx

from app.schemas.leads import Lead
from app.scrapers.base import (
    days_since,
    dig,
    fetch_html,
    match_keywords,
    next_data,
    parse_datetime,
    parse_price,
    ScrapeError,
)

logger = logging.getLogger(__name__)

SOURCE = "realtor"
FSBO_INDICATORS = ("for sale by owner", "fsbo", "direct from owner", "no agent fees")


def search_url(city: str, state: Optional[str]) -> str:
    slug = city.strip().replace(" ", "-")
    if state:
        slug = f"{slug}_{state.strip().upper()}"
    return f"https://www.realtor.com/realestateandhomes-search/{quote(slug)}"


def parse_results(data: dict, keywords: List[str]) -> List[Lead]:
    properties = dig(data, "props", "pageProps", "properties") or []
    leads = []
    for p in properties:
        address = dig(p, "location", "address", default={})
        street = address.get("line")
        if not street:
            continue
        details = p.get("description") or {}
        listed = parse_datetime(p.get("list_date"))
        parts = []
        if details.get("beds") and details.get("baths"):
            parts.append(f"{details['beds']} beds, {details['baths']} baths")
        if details.get("sqft"):
            parts.append(f"{details['sqft']} sqft")
        if details.get("text"):
            parts.append(details["text"])
        description = ". ".join(parts) or None
        href = p.get("href") or p.get("permalink")
        if href and href.startswith("/"):
            href = f"https://www.realtor.com{href}"
        elif href and not href.startswith("http"):
            href = f"https://www.realtor.com/realestateandhomes-detail/{href}"
        text = (description or "").lower()
        leads.append(Lead(
            source_id=str(p.get("property_id") or p.get("listing_id") or street),
            source=SOURCE,
            address=street,
            city=address.get("city"),
            state=address.get("state_code"),
            zip=address.get("postal_code"),
            price=parse_price(p.get("list_price")),
            days_on_market=days_since(listed),
            listing_url=href,
            description=description,
            date_listed=listed,
            property_type=(details.get("type") or "").replace("_", " ") or None,
            listing_type="fsbo" if any(i in text for i in FSBO_INDICATORS) else "agent",
            keywords_matched=match_keywords(keywords, description, street),
        ))
    return leads


async def fetch_realtor(client: httpx.AsyncClient, city: str, state: Optional[str], keywords: List[str]) -> List[Lead]:
    html = await fetch_html(client, search_url(city, state))
    try:
        data = next_data(html)
    except ScrapeError:
        logger.info("Realtor.com page for %s has no embedded results", city)
        return []
    return parse_results(data, keywords)
