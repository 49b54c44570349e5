"""
Shared helpers for listing-source scrapers.

Every scraper is an async callable (client, city, state, keywords) -> List[Lead]
that raises on transport or HTTP errors so the caller can retry it.
"""
import json
import re
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Iterator, List, Optional

import httpx
from bs4 import BeautifulSoup

from app.schemas.leads import Lead

ScraperFn = Callable[[httpx.AsyncClient, str, Optional[str], List[str]], Awaitable[List[Lead]]]

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}

_PRICE_RE = re.compile(r"\d[\d,]*(?:\.\d+)?")


class ScrapeError(Exception):
    """The page was fetched but did not contain the data we expect."""


async def fetch_html(client: httpx.AsyncClient, url: str) -> str:
    response = await client.get(url, headers=BROWSER_HEADERS)
    response.raise_for_status()
    return response.text


def next_data(html: str) -> dict:
    """Return the JSON blob Next.js sites embed in <script id="__NEXT_DATA__">."""
    soup = BeautifulSoup(html, "html.parser")
    node = soup.find("script", id="__NEXT_DATA__")
    if node is None or not node.string:
        raise ScrapeError("No __NEXT_DATA__ found in page")
    try:
        return json.loads(node.string)
    except ValueError as e:
        raise ScrapeError(f"Invalid __NEXT_DATA__ JSON: {e}") from e


def dig(data: Any, *path: str, default: Any = None) -> Any:
    for key in path:
        if not isinstance(data, dict):
            return default
        data = data.get(key)
        if data is None:
            return default
    return data


def walk(data: Any) -> Iterator[dict]:
    """Yield every dict nested anywhere inside data."""
    if isinstance(data, dict):
        yield data
        for value in data.values():
            yield from walk(value)
    elif isinstance(data, list):
        for item in data:
            yield from walk(item)


def parse_price(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    # Ranges like "$1,200 - $1,500" keep the first figure
    match = _PRICE_RE.search(str(value))
    if not match:
        return None
    return int(float(match.group(0).replace(",", "")))


def parse_datetime(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, (int, float)):
        # Epoch milliseconds or seconds
        seconds = value / 1000 if value > 10_000_000_000 else value
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    text = str(value).strip().replace("Z", "+00:00")
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def days_since(value: Optional[datetime], now: Optional[datetime] = None) -> Optional[int]:
    if value is None:
        return None
    now = now or datetime.now(timezone.utc)
    return max((now - value).days, 0)


def match_keywords(keywords: List[str], *texts: Optional[str]) -> List[str]:
    haystack = " ".join(t for t in texts if t).lower()
    return [k for k in keywords if k.lower() in haystack]
