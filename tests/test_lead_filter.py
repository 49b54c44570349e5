import pytest

from app.schemas.leads import LeadCriteria
from app.services.lead_filter import filter_leads
from helpers import make_lead


def _ids(leads):
    return [lead.source_id for lead in leads]


@pytest.mark.unit
class TestDaysOnMarket:
    def test_more_keeps_older_listings(self):
        leads = [make_lead(source_id="a", days_on_market=10), make_lead(source_id="b", days_on_market=45)]
        result = filter_leads(leads, LeadCriteria(days_on_market=30, days_on_market_option="more"))
        assert _ids(result) == ["b"]

    def test_less_is_the_default(self):
        leads = [make_lead(source_id="a", days_on_market=10), make_lead(source_id="b", days_on_market=45)]
        result = filter_leads(leads, LeadCriteria(days_on_market=30))
        assert _ids(result) == ["a"]

    def test_bounds_are_inclusive(self):
        leads = [make_lead(source_id="a", days_on_market=30)]
        assert _ids(filter_leads(leads, LeadCriteria(days_on_market=30, days_on_market_option="less"))) == ["a"]
        assert _ids(filter_leads(leads, LeadCriteria(days_on_market=30, days_on_market_option="more"))) == ["a"]

    def test_unknown_days_excluded_when_filtering(self):
        leads = [make_lead(source_id="a", days_on_market=None)]
        assert filter_leads(leads, LeadCriteria(days_on_market=30)) == []
        assert _ids(filter_leads(leads, LeadCriteria())) == ["a"]


@pytest.mark.unit
class TestPrice:
    def test_inclusive_range(self):
        leads = [
            make_lead(source_id="low", price=100000),
            make_lead(source_id="mid", price=200000),
            make_lead(source_id="high", price=300000),
        ]
        result = filter_leads(leads, LeadCriteria(price_min=100000, price_max=200000))
        assert _ids(result) == ["low", "mid"]

    def test_open_ended(self):
        leads = [make_lead(source_id="a", price=50000), make_lead(source_id="b", price=5000000)]
        assert _ids(filter_leads(leads, LeadCriteria(price_min=100000))) == ["b"]
        assert _ids(filter_leads(leads, LeadCriteria(price_max=100000))) == ["a"]

    def test_unknown_price_excluded_only_with_a_bound(self):
        leads = [make_lead(source_id="a", price=None)]
        assert filter_leads(leads, LeadCriteria(price_max=100000)) == []
        assert _ids(filter_leads(leads, LeadCriteria())) == ["a"]


@pytest.mark.unit
class TestKeywordsAndTypes:
    def test_any_keyword_matches_case_insensitively(self):
        leads = [
            make_lead(source_id="a", description="Needs TLC, as-is"),
            make_lead(source_id="b", description="Motivated Seller"),
            make_lead(source_id="c", description="Brand new build"),
        ]
        result = filter_leads(leads, LeadCriteria(keywords="tlc, motivated seller"))
        assert _ids(result) == ["a", "b"]

    def test_keywords_accept_a_list(self):
        criteria = LeadCriteria(keywords=["  probate ", "", "estate"])
        assert criteria.keywords == ["probate", "estate"]

    def test_property_type_substring(self):
        leads = [
            make_lead(source_id="a", property_type="Single Family"),
            make_lead(source_id="b", property_type="condo"),
        ]
        assert _ids(filter_leads(leads, LeadCriteria(property_type="family"))) == ["a"]

    def test_listing_type(self):
        leads = [make_lead(source_id="a", listing_type="fsbo"), make_lead(source_id="b", listing_type="agent")]
        assert _ids(filter_leads(leads, LeadCriteria(listing_type="agent"))) == ["b"]
        assert _ids(filter_leads(leads, LeadCriteria(listing_type="both"))) == ["a", "b"]

    def test_all_criteria_must_hold(self):
        leads = [
            make_lead(source_id="a", price=150000, days_on_market=5, description="motivated"),
            make_lead(source_id="b", price=150000, days_on_market=90, description="motivated"),
            make_lead(source_id="c", price=150000, days_on_market=5, description="pristine"),
        ]
        criteria = LeadCriteria(price_max=200000, days_on_market=30, keywords="motivated")
        assert _ids(filter_leads(leads, criteria)) == ["a"]
