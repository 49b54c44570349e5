"""
Facebook Marketplace property listings.

Marketplace renders from JSON embedded in <script type="application/json">
blocks; listings are the objects carrying a marketplace_listing_title.
"""
import json
from typing import List, Optional
from urllib.parse import quote

import httpx
from bs4 import BeautifulSoup

from app.schemas.leads import Lead
from app.scrapers.base import dig, fetch_html, match_keywords, parse_price, walk

SOURCE = "facebook"


def search_url(city: str) -> str:
    slug = "".join(city.lower().split())
    return f"https://www.facebook.com/marketplace/{quote(slug)}/propertyforsale"


def _embedded_json(html: str) -> list:
    soup = BeautifulSoup(html, "html.parser")
    blobs = []
    for node in soup.find_all("script", attrs={"type": "application/json"}):
        if not node.string or "marketplace_listing_title" not in node.string:
            continue
        try:
            blobs.append(json.loads(node.string))
        except ValueError:
            continue
    return blobs


def parse_results(html: str, city: str, state: Optional[str], keywords: List[str]) -> List[Lead]:
    leads = []
    seen = set()
    for blob in _embedded_json(html):
        for item in walk(blob):
            title = item.get("marketplace_listing_title")
            listing_id = item.get("id")
            if not title or not listing_id or listing_id in seen:
                continue
            seen.add(listing_id)
            geo = dig(item, "location", "reverse_geocode", default={})
            description = item.get("custom_title") or title
            leads.append(Lead(
                source_id=str(listing_id),
                source=SOURCE,
                address=title,
                city=geo.get("city") or city,
                state=geo.get("state") or state,
                price=parse_price(dig(item, "listing_price", "amount")),
                listing_url=f"https://www.facebook.com/marketplace/item/{listing_id}/",
                description=description,
                listing_type="fsbo",
                keywords_matched=match_keywords(keywords, description, title),
            ))
    return leads


async def fetch_facebook(client: httpx.AsyncClient, city: str, state: Optional[str], keywords: List[str]) -> List[Lead]:
    html = await fetch_html(client, search_url(city))
    return parse_results(html, city, state, keywords)
