from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import SQLAlchemyError

from app.core.plan_limits import UNLIMITED
from app.models import UsageLog
from app.services.usage_limit import (
    check_usage_limit,
    enforce_usage_limit,
    get_usage_window_start,
    get_user_usage_summary,
    record_usage,
    resolve_subscription_tier,
)
from helpers import TEST_USER_ID


def _rows(db, feature):
    return db.query(UsageLog).filter(UsageLog.user_id == TEST_USER_ID, UsageLog.feature == feature).count()


@pytest.mark.integration
class TestEnforceUsageLimit:
    def test_free_analyze_allows_five_then_429(self, db, make_user):
        make_user(tier="free")

        results = [enforce_usage_limit(TEST_USER_ID, "analyze", db) for _ in range(6)]

        assert all(r.success and r.status_code == 200 for r in results[:5])
        assert [r.current_usage for r in results[:5]] == [1, 2, 3, 4, 5]
        assert results[5].success is False
        assert results[5].status_code == 429
        assert results[5].current_usage == 5
        assert results[5].limit == 5
        assert _rows(db, "analyze") == 5

    def test_rejection_writes_nothing(self, db, make_user):
        make_user(tier="free")
        for _ in range(3):
            enforce_usage_limit(TEST_USER_ID, "offer", db)
        before = _rows(db, "offer")

        result = enforce_usage_limit(TEST_USER_ID, "offer", db)

        assert result.status_code == 429
        assert _rows(db, "offer") == before == 3

    def test_pro_is_always_unlimited(self, db, make_user, make_subscription):
        make_user(tier="free")
        make_subscription(tier="pro", status="active")

        for _ in range(20):
            result = enforce_usage_limit(TEST_USER_ID, "offer", db)
            assert result.success is True
            assert result.limit == UNLIMITED
        assert _rows(db, "offer") == 20

    def test_missing_user_is_401(self, db):
        result = enforce_usage_limit("", "analyze", db)
        assert result.status_code == 401
        assert db.query(UsageLog).count() == 0

    def test_unknown_feature_is_400(self, db, make_user):
        make_user()
        result = enforce_usage_limit(TEST_USER_ID, "teleport", db)
        assert result.status_code == 400
        assert db.query(UsageLog).count() == 0

    def test_failed_insert_is_500_and_leaves_no_row(self, db, make_user, monkeypatch):
        make_user()

        def broken_commit():
            raise SQLAlchemyError("disk full")

        monkeypatch.setattr(db, "commit", broken_commit)
        result = enforce_usage_limit(TEST_USER_ID, "analyze", db)
        monkeypatch.undo()

        assert result.status_code == 500
        assert result.success is False
        assert _rows(db, "analyze") == 0


@pytest.mark.integration
class TestCheckUsageLimit:
    def test_empty_user_fails_closed(self, db):
        check = check_usage_limit("", "analyze", db)
        assert check.has_reached_limit is True
        assert check.current_usage == 0
        assert check.limit == 0

    def test_unknown_feature_fails_closed(self, db, make_user):
        make_user()
        check = check_usage_limit(TEST_USER_ID, "teleport", db)
        assert check.has_reached_limit is True
        assert check.limit == 0

    def test_check_never_writes(self, db, make_user):
        make_user()
        for _ in range(3):
            check_usage_limit(TEST_USER_ID, "analyze", db)
        assert db.query(UsageLog).count() == 0

    def test_admin_is_unlimited(self, db, make_user):
        make_user(is_admin=True)
        for _ in range(7):
            record_usage(TEST_USER_ID, "analyze", db)
        check = check_usage_limit(TEST_USER_ID, "analyze", db)
        assert check.has_reached_limit is False
        assert check.limit == UNLIMITED

    def test_previous_month_does_not_count(self, db, make_user):
        make_user()
        last_month = get_usage_window_start() - timedelta(days=1)
        for _ in range(5):
            db.add(UsageLog(user_id=TEST_USER_ID, feature="analyze", created_at=last_month))
        db.commit()

        check = check_usage_limit(TEST_USER_ID, "analyze", db)

        assert check.current_usage == 0
        assert check.has_reached_limit is False

    def test_trial_profile_tier(self, db, make_user):
        make_user(tier="trial")
        assert check_usage_limit(TEST_USER_ID, "offer", db).limit == 20


@pytest.mark.integration
class TestResolveSubscriptionTier:
    def test_subscription_overrides_profile(self, db, make_user, make_subscription):
        make_user(tier="free")
        make_subscription(tier="team", status="trialing")
        assert resolve_subscription_tier(TEST_USER_ID, db).tier == "team"

    def test_lapsed_subscription_is_free(self, db, make_user, make_subscription):
        make_user(tier="pro")
        make_subscription(tier="pro", status="active", current_period_end=datetime.utcnow() - timedelta(days=1))
        assert resolve_subscription_tier(TEST_USER_ID, db).tier == "free"

    def test_canceled_keeps_tier_until_period_end(self, db, make_user, make_subscription):
        make_user()
        make_subscription(tier="pro", status="canceled", current_period_end=datetime.utcnow() + timedelta(days=5))
        assert resolve_subscription_tier(TEST_USER_ID, db).tier == "pro"

    def test_unknown_tier_is_free(self, db, make_user):
        make_user(tier="platinum")
        assert resolve_subscription_tier(TEST_USER_ID, db).tier == "free"

    def test_missing_user_is_free(self, db):
        resolved = resolve_subscription_tier("ghost", db)
        assert resolved.tier == "free"
        assert resolved.is_admin is False


@pytest.mark.integration
class TestUsageSummary:
    def test_every_feature_reported(self, db, make_user):
        make_user()
        record_usage(TEST_USER_ID, "analyze", db)
        record_usage(TEST_USER_ID, "analyze", db)
        record_usage(TEST_USER_ID, "email_notification", db)

        summary = get_user_usage_summary(TEST_USER_ID, db)

        assert set(summary) == {"analyze", "offer", "csv_import", "lead_search"}
        assert summary["analyze"].current_usage == 2
        assert summary["analyze"].limit == 5
        assert summary["analyze"].percentage == 40
        assert summary["offer"].current_usage == 0
        assert summary["offer"].percentage == 0

    def test_unlimited_percentage_is_zero(self, db, make_user, make_subscription):
        make_user()
        make_subscription(tier="enterprise")
        record_usage(TEST_USER_ID, "offer", db)
        summary = get_user_usage_summary(TEST_USER_ID, db)
        assert summary["offer"].limit == UNLIMITED
        assert summary["offer"].percentage == 0

    def test_percentage_is_capped(self, db, make_user):
        make_user()
        for _ in range(8):
            record_usage(TEST_USER_ID, "offer", db)
        assert get_user_usage_summary(TEST_USER_ID, db)["offer"].percentage == 100

    def test_empty_user(self, db):
        assert get_user_usage_summary("", db) == {}
