"""Builders and fakes shared by the test modules."""

from app.schemas.leads import Lead
from app.utils.retry import RetryPolicy


TEST_USER_ID = "user-1"
NO_WAIT = RetryPolicy(max_attempts=3, base_delay=0)


def make_lead(**overrides) -> Lead:
    data = {
        "source_id": "1",
        "source": "zillow",
        "address": "123 Main St",
        "city": "Austin",
        "state": "TX",
        "price": 250000,
        "days_on_market": 10,
        "description": "Charming bungalow, motivated seller",
        "listing_type": "fsbo",
        "property_type": "single family",
    }
    data.update(overrides)
    return Lead(**data)


def static_scraper(leads):
    async def scrape(client, city, state, keywords):
        return list(leads)
    return scrape


def failing_scraper(counter=None):
    async def scrape(client, city, state, keywords):
        if counter is not None:
            counter.append(1)
        raise ConnectionError("source down")
    return scrape


class FakeEnricher:
    def __init__(self, result=None, error=None):
        self.result = result if result is not None else {"zoning": "R1", "equity": 100000.0}
        self.error = error
        self.calls = []

    async def enrich(self, address):
        self.calls.append(address)
        if self.error:
            raise self.error
        return self.result


