import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from app.models import SavedSearch, UsageLog
from app.services.lead_alerts import recent_leads, run_daily_lead_alerts
from app.services.lead_search import LeadSearchService
from helpers import NO_WAIT, TEST_USER_ID, make_lead, static_scraper

NOW = datetime(2026, 6, 15, 9, 0, tzinfo=timezone.utc)


def _search(db, user_id=TEST_USER_ID, **overrides):
    fields = {
        "user_id": user_id,
        "name": "Austin FSBO",
        "city": "Austin",
        "sources": ["zillow"],
        "enabled": True,
        "email_alert": True,
    }
    fields.update(overrides)
    search = SavedSearch(**fields)
    db.add(search)
    db.commit()
    return search


def _service(leads):
    return LeadSearchService(scrapers={"zillow": static_scraper(leads)}, retry_policy=NO_WAIT)


class _Outbox:
    def __init__(self, fail_for=()):
        self.sent = []
        self.fail_for = set(fail_for)

    def __call__(self, email, search_name, leads, search_id):
        if email in self.fail_for:
            raise RuntimeError("provider rejected")
        self.sent.append((email, search_name, [lead.source_id for lead in leads], search_id))


@pytest.mark.unit
def test_recent_leads_window():
    leads = [
        make_lead(source_id="fresh", date_listed=NOW - timedelta(hours=2)),
        make_lead(source_id="naive", date_listed=(NOW - timedelta(hours=20)).replace(tzinfo=None)),
        make_lead(source_id="old", date_listed=NOW - timedelta(days=3)),
        make_lead(source_id="undated", date_listed=None),
    ]
    assert [lead.source_id for lead in recent_leads(leads, NOW)] == ["fresh", "naive"]


@pytest.mark.integration
class TestDailyLeadAlerts:
    def test_sends_recent_leads_and_logs_usage(self, db, make_user):
        make_user(email="a@example.com")
        search = _search(db)
        service = _service([
            make_lead(source_id="new", date_listed=NOW - timedelta(hours=1)),
            make_lead(source_id="stale", date_listed=NOW - timedelta(days=5)),
        ])
        outbox = _Outbox()

        stats = asyncio.run(run_daily_lead_alerts(db, service, notifier=outbox, now=NOW))

        assert stats == {"total": 1, "processed": 1, "successful": 1, "failed": 0, "leads_sent": 1}
        assert outbox.sent == [("a@example.com", "Austin FSBO", ["new"], search.id)]
        row = db.query(UsageLog).filter(UsageLog.feature == "lead_alert_email").one()
        assert row.extra_metadata == {"search_id": search.id, "lead_count": 1}

    def test_disabled_and_silent_searches_skipped(self, db, make_user):
        make_user()
        _search(db, enabled=False)
        _search(db, email_alert=False)

        stats = asyncio.run(run_daily_lead_alerts(db, _service([]), notifier=_Outbox(), now=NOW))

        assert stats["total"] == 0

    def test_one_failure_does_not_stop_others(self, db, make_user):
        make_user(user_id="u1", email="ok@example.com")
        make_user(user_id="u2", email="bounce@example.com")
        _search(db, user_id="u1")
        _search(db, user_id="u2")
        _search(db, user_id="nobody")  # no profile row, so no email
        service = _service([make_lead(source_id="new", date_listed=NOW - timedelta(hours=1))])
        outbox = _Outbox(fail_for={"bounce@example.com"})

        stats = asyncio.run(run_daily_lead_alerts(db, service, notifier=outbox, now=NOW))

        assert stats == {"total": 3, "processed": 3, "successful": 1, "failed": 2, "leads_sent": 1}
        assert [email for email, *_ in outbox.sent] == ["ok@example.com"]
        assert db.query(UsageLog).filter(UsageLog.feature == "lead_alert_email").count() == 1

    def test_no_new_leads_sends_nothing(self, db, make_user):
        make_user()
        _search(db)
        outbox = _Outbox()
        service = _service([make_lead(date_listed=NOW - timedelta(days=2))])

        stats = asyncio.run(run_daily_lead_alerts(db, service, notifier=outbox, now=NOW))

        assert stats["successful"] == 0
        assert stats["failed"] == 0
        assert outbox.sent == []
