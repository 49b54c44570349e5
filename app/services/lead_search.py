"""
Lead search pipeline: fan out to every requested listing source at once,
retry each source independently, then filter the merged results.

A source that still fails after its retries contributes no leads; the search
as a whole never fails because of one source.
"""
import asyncio
import logging
import os
from typing import Dict, List, Optional, Tuple

import httpx

from app.core.exceptions import UpstreamUnavailable
from app.schemas.leads import Lead, LeadSearchParams
from app.scrapers import SCRAPERS, ScraperFn
from app.services.lead_filter import filter_leads
from app.utils.retry import RetryPolicy, retry_async

logger = logging.getLogger(__name__)

SCRAPER_TIMEOUT_SECONDS = float(os.getenv("SCRAPER_TIMEOUT_SECONDS", "15"))
SCRAPER_MAX_ATTEMPTS = int(os.getenv("SCRAPER_MAX_ATTEMPTS", "3"))


class LeadSearchService:
    def __init__(
        self,
        scrapers: Optional[Dict[str, ScraperFn]] = None,
        retry_policy: Optional[RetryPolicy] = None,
        timeout: float = SCRAPER_TIMEOUT_SECONDS,
    ):
        self.scrapers = scrapers if scrapers is not None else SCRAPERS
        self.retry_policy = retry_policy or RetryPolicy(max_attempts=SCRAPER_MAX_ATTEMPTS)
        self.timeout = timeout

    async def _fetch_source(
        self,
        client: httpx.AsyncClient,
        source: str,
        params: LeadSearchParams,
    ) -> List[Lead]:
        scraper = self.scrapers.get(source)
        if scraper is None:
            raise UpstreamUnavailable(source, f"No scraper registered for {source}")
        try:
            return await retry_async(
                lambda: scraper(client, params.city, params.state, params.keywords),
                policy=self.retry_policy,
                label=f"{source} scraper",
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise UpstreamUnavailable(source, f"{source} failed after {self.retry_policy.max_attempts} attempts: {e}") from e

    async def search_with_report(self, params: LeadSearchParams) -> Tuple[List[Lead], List[str]]:
        """
        Run the pipeline and also report which sources gave up.
        Leads are merged in the order the sources were requested.
        """
        async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
            results = await asyncio.gather(
                *(self._fetch_source(client, source, params) for source in params.sources),
                return_exceptions=True,
            )

        merged: List[Lead] = []
        failed: List[str] = []
        for source, result in zip(params.sources, results):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                logger.warning("Lead source %s unavailable: %s", source, getattr(result, "detail", result))
                failed.append(source)
                continue
            merged.extend(result)

        leads = filter_leads(merged, params.criteria())
        logger.info(
            "Lead search in %s: %s raw, %s after filtering, failed sources: %s",
            params.city, len(merged), len(leads), failed or "none",
        )
        return leads, failed

    async def search(self, params: LeadSearchParams) -> List[Lead]:
        leads, _ = await self.search_with_report(params)
        return leads


lead_search_service = LeadSearchService()


def get_lead_search_service() -> LeadSearchService:
    return lead_search_service
