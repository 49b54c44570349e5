"""
Zillow for-sale-by-owner search results, read from the page's __NEXT_DATA__.
"""
import logging
from typing import List, Optional
from urllib.parse import quote

import httpx

from app.schemas.leads import Lead
from app.scrapers.base import dig, fetch_html, match_keywords, next_data, parse_price, ScrapeError

logger = logging.getLogger(__name__)

SOURCE = "zillow"


def search_url(city: str, state: Optional[str]) -> str:
    location = f"{city} {state}" if state else city
    return f"https://www.zillow.com/homes/fsbo/{quote(location.replace(' ', '-'))}/"


def _list_results(data: dict) -> list:
    page_props = dig(data, "props", "pageProps", default={})
    return (
        dig(page_props, "searchPageState", "cat1", "searchResults", "listResults")
        or dig(page_props, "searchResults", "listResults")
        or []
    )


def parse_results(data: dict, keywords: List[str]) -> List[Lead]:
    leads = []
    for r in _list_results(data):
        address = r.get("address") or ""
        street = address.split(", ")[0] if address else ""
        if not street:
            continue
        home_info = dig(r, "hdpData", "homeInfo", default={})
        beds, baths, area = r.get("beds"), r.get("baths"), r.get("area")
        parts = []
        if beds and baths:
            parts.append(f"{beds} beds, {baths} baths")
        if area:
            parts.append(f"{area} sqft")
        description = ". ".join(parts + ["For sale by owner property listed on Zillow."])
        leads.append(Lead(
            source_id=str(r.get("zpid") or home_info.get("zpid") or r.get("id") or street),
            source=SOURCE,
            address=street,
            city=r.get("addressCity") or home_info.get("city"),
            state=r.get("addressState") or home_info.get("state"),
            zip=r.get("addressZipcode") or home_info.get("zipcode"),
            price=parse_price(r.get("unformattedPrice") or r.get("price")),
            days_on_market=home_info.get("daysOnZillow"),
            listing_url=r.get("detailUrl"),
            description=description,
            property_type=(home_info.get("homeType") or "").replace("_", " ").lower() or None,
            listing_type="fsbo",
            keywords_matched=match_keywords(keywords, description, address),
        ))
    return leads


async def fetch_zillow(client: httpx.AsyncClient, city: str, state: Optional[str], keywords: List[str]) -> List[Lead]:
    html = await fetch_html(client, search_url(city, state))
    try:
        data = next_data(html)
    except ScrapeError:
        logger.info("Zillow page for %s has no embedded results", city)
        return []
    return parse_results(data, keywords)
