import asyncio

import pytest

from app.models import CrmLead, UsageLog
from helpers import TEST_USER_ID

pytestmark = pytest.mark.integration


class TestLeadSearchRoute:
    def test_search_returns_filtered_leads_and_failed_sources(self, client, make_user):
        make_user()
        response = client.post("/api/leads/search", json={"city": "Austin", "state": "TX", "price_max": 500000})

        assert response.status_code == 200
        body = response.json()
        assert [lead["source_id"] for lead in body["leads"]] == ["z1", "c1"]
        assert body["count"] == 2
        assert body["failed_sources"] == ["facebook"]

    def test_state_required(self, client, make_user):
        make_user()
        response = client.post("/api/leads/search", json={"city": "Austin"})
        assert response.status_code == 422
        assert response.json()["detail"]["fields"] == [{"field": "state", "error": "required"}]

    def test_quota_exhaustion_is_429(self, client, make_user, db):
        make_user(tier="free")
        for _ in range(10):
            assert client.post("/api/leads/search", json={"city": "Austin", "state": "TX"}).status_code == 200

        response = client.post("/api/leads/search", json={"city": "Austin", "state": "TX"})

        assert response.status_code == 429
        detail = response.json()["detail"]
        assert detail["code"] == "usage_limit_reached"
        assert detail["upgrade_required"] is True
        assert db.query(UsageLog).filter(UsageLog.feature == "lead_search").count() == 10

    def test_usage_email_sent_off_the_event_loop(self, client, make_user, db, monkeypatch):
        make_user(tier="free")
        sends = []

        def fake_send_email(to_email, subject, html_body):
            try:
                asyncio.get_running_loop()
                sends.append("event loop")
            except RuntimeError:
                sends.append("worker thread")
            return True

        monkeypatch.setattr("app.services.usage_notifications.send_email", fake_send_email)
        for _ in range(8):
            assert client.post("/api/leads/search", json={"city": "Austin", "state": "TX"}).status_code == 200

        assert sends == ["worker thread"]
        assert db.query(UsageLog).filter(UsageLog.feature == "email_notification").count() == 1


class TestUsageRoutes:
    def test_check_enforce_summary(self, client, make_user):
        make_user()
        assert client.get("/api/usage/check", params={"feature": "offer"}).json() == {
            "feature": "offer", "has_reached_limit": False, "current_usage": 0, "limit": 3,
        }

        response = client.post("/api/usage/enforce", json={"feature": "offer", "metadata": {"deal": 7}})
        assert response.status_code == 200
        assert response.json()["current_usage"] == 1

        summary = client.get("/api/usage/summary").json()
        assert summary["offer"] == {"current_usage": 1, "limit": 3, "percentage": 33}

    def test_enforce_mirrors_429(self, client, make_user):
        make_user()
        for _ in range(3):
            client.post("/api/usage/enforce", json={"feature": "offer"})
        response = client.post("/api/usage/enforce", json={"feature": "offer"})
        assert response.status_code == 429
        assert response.json()["success"] is False

    def test_record(self, client, make_user, db):
        make_user()
        assert client.post("/api/usage/record", json={"feature": "csv_import"}).json() == {"success": True}
        assert db.query(UsageLog).filter(UsageLog.feature == "csv_import").count() == 1

    @pytest.mark.parametrize("feature", ["teleport", "email_notification"])
    def test_record_rejects_unknown_feature(self, client, make_user, db, feature):
        make_user()
        response = client.post("/api/usage/record", json={"feature": feature, "metadata": {"email_type": "limit_reached"}})

        assert response.status_code == 422
        assert response.json()["detail"]["fields"] == [{"field": "feature", "error": "unknown"}]
        assert db.query(UsageLog).count() == 0

    def test_check_and_enforce_reject_unknown_feature(self, client, make_user, db):
        make_user()
        assert client.get("/api/usage/check", params={"feature": "teleport"}).status_code == 422
        assert client.post("/api/usage/enforce", json={"feature": "teleport"}).status_code == 422
        assert db.query(UsageLog).count() == 0


class TestCrmRoutes:
    def test_save_then_conflict(self, client, db):
        payload = {"address": "123 Main St", "city": "Austin", "property_id": "zpid-1"}
        first = client.post("/api/crm/save-lead", json=payload)
        second = client.post("/api/crm/save-lead", json=payload)

        assert first.status_code == 201
        assert first.json()["enriched"] is True
        assert second.status_code == 409
        assert second.json()["leadId"] == first.json()["leadId"]
        assert db.query(CrmLead).count() == 1

    def test_save_requires_address_and_city(self, client):
        response = client.post("/api/crm/save-lead", json={"address": "123 Main St"})
        assert response.status_code == 422

    def test_list_update_delete(self, client):
        lead_id = client.post("/api/crm/save-lead", json={"address": "9 Elm Ave", "city": "Austin"}).json()["leadId"]

        leads = client.get("/api/crm/leads").json()
        assert [lead["id"] for lead in leads] == [lead_id]

        updated = client.patch(f"/api/crm/leads/{lead_id}", json={"status": "contacted"})
        assert updated.status_code == 200
        assert updated.json()["status"] == "contacted"

        assert client.patch(f"/api/crm/leads/{lead_id}", json={"status": "sold"}).status_code == 422
        assert client.delete(f"/api/crm/leads/{lead_id}").status_code == 200
        assert client.get(f"/api/crm/leads/{lead_id}").status_code == 404


class TestSavedSearchRoutes:
    def test_crud_and_rerun(self, client, make_user, db):
        make_user()
        created = client.post("/api/saved-searches", json={
            "name": "Austin deals", "city": "Austin", "state": "TX", "sources": ["zillow", "craigslist"],
        })
        assert created.status_code == 201
        search_id = created.json()["search"]["id"]

        assert len(client.get("/api/saved-searches").json()["searches"]) == 1

        rerun = client.get(f"/api/saved-searches/{search_id}", params={"include_leads": "true"})
        assert rerun.status_code == 200
        assert rerun.json()["count"] == 3
        assert db.query(UsageLog).filter(UsageLog.feature == "lead_search").count() == 1

        paused = client.patch(f"/api/saved-searches/{search_id}", json={"enabled": False})
        assert paused.json()["search"]["enabled"] is False

        assert client.delete(f"/api/saved-searches/{search_id}").status_code == 200
        assert client.get(f"/api/saved-searches/{search_id}").status_code == 404

    def test_free_tier_limit_is_403(self, client, make_user):
        make_user(tier="free")
        body = {"name": "s", "city": "Austin", "sources": ["zillow"]}
        client.post("/api/saved-searches", json=body)
        client.post("/api/saved-searches", json=body)
        response = client.post("/api/saved-searches", json=body)
        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "plan_limit_reached"


class TestCronRoute:
    def test_requires_secret(self, client):
        assert client.get("/api/cron/daily-lead-alerts").status_code == 401

    def test_runs_with_secret(self, client):
        response = client.get("/api/cron/daily-lead-alerts", headers={"Authorization": "Bearer test-cron-secret"})
        assert response.status_code == 200
        assert response.json()["stats"]["total"] == 0


class TestGenieNetRoutes:
    def test_deal_submission_and_listing(self, client):
        created = client.post("/api/genienet/deals", json={
            "address": "77 Lake Dr, Austin, TX 78703", "purchase_price": 200000, "arv": 300000,
        })
        assert created.status_code == 201
        assert created.json()["deal"]["deal_score"] == 60

        duplicate = client.post("/api/genienet/deals", json={"address": "77 Lake Drive, Austin, TX 78703"})
        assert duplicate.status_code == 409

        deals = client.get("/api/genienet/deals", params={"state": "TX"}).json()["deals"]
        assert [d["zip_code"] for d in deals] == ["78703"]

    def test_waitlist(self, client):
        first = client.post("/api/genienet/waitlist", json={"email": "sam@example.com"})
        second = client.post("/api/genienet/waitlist", json={"email": "sam@example.com"})
        assert first.status_code == 201
        assert second.status_code == 200
        assert second.json()["alreadyJoined"] is True

    def test_waitlist_rejects_bad_email(self, client):
        assert client.post("/api/genienet/waitlist", json={"email": "not-an-email"}).status_code == 422
