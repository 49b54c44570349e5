"""
Craigslist real-estate-by-owner listings.
"""
from typing import List, Optional

import httpx
from bs4 import BeautifulSoup

from app.schemas.leads import Lead
from app.scrapers.base import days_since, fetch_html, match_keywords, parse_datetime, parse_price

SOURCE = "craigslist"

# City names whose Craigslist subdomain is not just the squashed name
CITY_SUBDOMAINS = {
    "nyc": "newyork",
    "la": "losangeles",
    "sanfrancisco": "sfbay",
    "sf": "sfbay",
    "washingtondc": "washingtondc",
    "dc": "washingtondc",
    "saintlouis": "stlouis",
    "stlouis": "stlouis",
}


def city_subdomain(city: str) -> str:
    squashed = "".join(city.lower().split()).replace(".", "")
    return CITY_SUBDOMAINS.get(squashed, squashed)


def search_url(city: str) -> str:
    return f"https://{city_subdomain(city)}.craigslist.org/search/rea?purveyor=owner"


def parse_results(html: str, city: str, state: Optional[str], keywords: List[str]) -> List[Lead]:
    soup = BeautifulSoup(html, "html.parser")
    rows = soup.select("li.cl-static-search-result") or soup.select(".result-info") or soup.select("li.result-row")
    leads = []
    for row in rows:
        link = row.find("a")
        title_node = row.select_one(".title, .titlestring, .result-title") or link
        title = title_node.get_text(" ", strip=True) if title_node else ""
        if not title:
            continue
        url = link.get("href") if link else None
        price_node = row.select_one(".price, .result-price")
        hood_node = row.select_one(".location, .result-hood, .neighborhood")
        housing_node = row.select_one(".housing")
        time_node = row.find("time")
        listed = parse_datetime(time_node.get("datetime")) if time_node else None
        hood = hood_node.get_text(" ", strip=True).strip("() ") if hood_node else ""
        description = " ".join(
            part for part in (title, housing_node.get_text(" ", strip=True) if housing_node else "", hood) if part
        )
        source_id = row.get("data-pid") or (url.rstrip("/").split("/")[-1].split(".")[0] if url else title)
        leads.append(Lead(
            source_id=str(source_id),
            source=SOURCE,
            address=title,
            city=city,
            state=state,
            price=parse_price(price_node.get_text(strip=True)) if price_node else None,
            days_on_market=days_since(listed),
            listing_url=url,
            description=description,
            date_listed=listed,
            listing_type="fsbo",
            keywords_matched=match_keywords(keywords, description),
        ))
    return leads


async def fetch_craigslist(client: httpx.AsyncClient, city: str, state: Optional[str], keywords: List[str]) -> List[Lead]:
    html = await fetch_html(client, search_url(city))
    return parse_results(html, city, state, keywords)
