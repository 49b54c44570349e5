"""
Property-data enrichment for CRM leads (ATTOM property API).

Lookups are cached per normalized address. Every provider failure surfaces as
UpstreamUnavailable("attom") so callers can decide whether to carry on without
enrichment.
"""
import logging
import os
from typing import Any, Dict, Optional

import httpx

from app.core.exceptions import UpstreamUnavailable
from app.utils.address import cache_key_for_address, normalize_address
from app.utils.cache import CacheBackend, DEFAULT_TTL_SECONDS, InMemoryTTLCache
from app.utils.retry import RetryPolicy, retry_async

logger = logging.getLogger(__name__)

ATTOM_API_KEY = os.getenv("ATTOM_API_KEY", "").strip()
ATTOM_BASE_URL = os.getenv("ATTOM_BASE_URL", "https://api.attomdata.com/propertyapi/v1.0.0")
ENRICHMENT_CACHE_TTL_SECONDS = float(os.getenv("ENRICHMENT_CACHE_TTL_SECONDS", str(DEFAULT_TTL_SECONDS)))
PROVIDER = "attom"


def _node(value: Any, key: str) -> Dict[str, Any]:
    child = value.get(key) if isinstance(value, dict) else None
    return child if isinstance(child, dict) else {}


def _first_property(payload: Any) -> Dict[str, Any]:
    if not isinstance(payload, dict):
        return {}
    prop = payload.get("property", payload)
    if isinstance(prop, list):
        prop = prop[0] if prop else {}
    return prop if isinstance(prop, dict) else {}


def _to_number(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def summarize_property(payload: Any) -> Dict[str, Any]:
    """Pull the fields we keep on a CRM lead out of a /property/detail response."""
    prop = _first_property(payload)
    lot = _node(prop, "lot")
    owner1 = _node(_node(prop, "owner"), "owner1")
    estimated_value = _to_number(
        prop.get("estimatedValue") or prop.get("avmValue") or prop.get("marketValue")
        or _node(_node(prop, "avm"), "amount").get("value")
    )
    mortgage = _to_number(prop.get("lastMortgageAmount") or prop.get("mortgageAmount"))
    equity = estimated_value - mortgage if estimated_value is not None and mortgage is not None else None
    return {
        "attom_id": _node(prop, "identifier").get("attomId"),
        "zoning": prop.get("zoning") or prop.get("zoningcode") or lot.get("zoningType"),
        "ownership": prop.get("ownername") or prop.get("ownership") or owner1.get("fullName"),
        "estimated_value": estimated_value,
        "last_mortgage_amount": mortgage,
        "equity": equity,
        "year_built": _node(prop, "summary").get("yearBuilt"),
    }


class PropertyDataClient:
    def __init__(self, api_key: str = ATTOM_API_KEY, base_url: str = ATTOM_BASE_URL, timeout: float = 10.0):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def fetch_details(self, address: str) -> Dict[str, Any]:
        if not self.api_key:
            raise UpstreamUnavailable(PROVIDER, "ATTOM_API_KEY is not configured")
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(
                f"{self.base_url}/property/detail",
                params={"address": address},
                headers={"apikey": self.api_key, "Accept": "application/json"},
            )
            response.raise_for_status()
            return response.json()


class PropertyEnricher:
    def __init__(
        self,
        client: Optional[PropertyDataClient] = None,
        cache: Optional[CacheBackend] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self.client = client or PropertyDataClient()
        self.cache = cache if cache is not None else enrichment_cache
        self.retry_policy = retry_policy or RetryPolicy(max_attempts=2)

    async def enrich(self, address: str) -> Dict[str, Any]:
        key = cache_key_for_address(normalize_address(address))
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Enrichment cache hit for %s", key)
            return cached

        try:
            payload = await retry_async(
                lambda: self.client.fetch_details(address),
                policy=self.retry_policy,
                retry_exceptions=(httpx.TransportError,),
                label="attom property detail",
            )
            summary = summarize_property(payload)
        except UpstreamUnavailable:
            raise
        except httpx.HTTPStatusError as e:
            raise UpstreamUnavailable(PROVIDER, f"Property lookup failed ({e.response.status_code})") from e
        except (httpx.HTTPError, ValueError) as e:
            raise UpstreamUnavailable(PROVIDER, f"Property lookup failed: {e}") from e
        except (AttributeError, TypeError, KeyError) as e:
            logger.warning("Unexpected property detail payload for %s: %s", key, e)
            raise UpstreamUnavailable(PROVIDER, "Property lookup returned an unreadable payload") from e

        self.cache.set(key, summary)
        return summary


enrichment_cache = InMemoryTTLCache(default_ttl=ENRICHMENT_CACHE_TTL_SECONDS)
property_enricher = PropertyEnricher()


def get_property_enricher() -> PropertyEnricher:
    return property_enricher
