import os

# Must be set before any app module reads its settings at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RUN_MIGRATIONS"] = "false"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret-with-enough-length-for-hs256"
os.environ["CRON_SECRET"] = "test-cron-secret"
os.environ.pop("RESEND_API_KEY", None)
os.environ.pop("ATTOM_API_KEY", None)

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from app.db.base import Base
from app.db.session import SessionLocal, engine, get_db
from app.dependencies.auth import get_current_user_id
from app.main import app
from app.models import Subscription, User
from app.services.enrichment import get_property_enricher
from app.services.lead_search import LeadSearchService, get_lead_search_service
from helpers import NO_WAIT, TEST_USER_ID, FakeEnricher, failing_scraper, make_lead, static_scraper


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def make_user(db):
    def _make_user(user_id=TEST_USER_ID, tier="free", is_admin=False, email="investor@example.com", **kwargs):
        user = User(id=user_id, email=email, subscription_tier=tier, is_admin=is_admin, **kwargs)
        db.add(user)
        db.commit()
        return user
    return _make_user


@pytest.fixture
def make_subscription(db):
    def _make_subscription(user_id=TEST_USER_ID, tier="pro", status="active", current_period_end=None):
        sub = Subscription(user_id=user_id, tier=tier, status=status, current_period_end=current_period_end)
        db.add(sub)
        db.commit()
        return sub
    return _make_subscription


@pytest.fixture
def search_service():
    return LeadSearchService(
        scrapers={
            "zillow": static_scraper([
                make_lead(source_id="z1", date_listed=datetime.now(timezone.utc)),
                make_lead(source_id="z2", address="9 Elm Ave", price=900000),
            ]),
            "craigslist": static_scraper([make_lead(source_id="c1", source="craigslist", address="44 Oak Ln")]),
            "facebook": failing_scraper(),
            "realtor": static_scraper([]),
        },
        retry_policy=NO_WAIT,
    )


@pytest.fixture
def client(db, search_service):
    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_current_user_id] = lambda: TEST_USER_ID
    app.dependency_overrides[get_lead_search_service] = lambda: search_service
    app.dependency_overrides[get_property_enricher] = lambda: FakeEnricher()
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
