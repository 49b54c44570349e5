from typing import Dict

# Sentinel for "no cap", same convention the billing tables use.
UNLIMITED = -1

# Billable features tracked in usage_log
FEATURE_ANALYZE = "analyze"
FEATURE_OFFER = "offer"
FEATURE_CSV_IMPORT = "csv_import"
FEATURE_LEAD_SEARCH = "lead_search"

FEATURES = (
    FEATURE_ANALYZE,
    FEATURE_OFFER,
    FEATURE_CSV_IMPORT,
    FEATURE_LEAD_SEARCH,
)

# Bookkeeping rows that share usage_log but are never billed or summarized
FEATURE_EMAIL_NOTIFICATION = "email_notification"
FEATURE_LEAD_ALERT_EMAIL = "lead_alert_email"
FEATURE_SAVED_SEARCH_CREATE = "saved_search_create"

TIER_FREE = "free"
TIER_TRIAL = "trial"
TIER_PROFESSIONAL = "professional"
TIER_PRO = "pro"
TIER_TEAM = "team"
TIER_ENTERPRISE = "enterprise"

TIERS = (TIER_FREE, TIER_TRIAL, TIER_PROFESSIONAL, TIER_PRO, TIER_TEAM, TIER_ENTERPRISE)
PAID_TIERS = (TIER_PROFESSIONAL, TIER_PRO, TIER_TEAM, TIER_ENTERPRISE)

# Monthly quotas: tier -> feature -> count (UNLIMITED means no cap)
USAGE_LIMITS: Dict[str, Dict[str, int]] = {
    TIER_FREE: {
        FEATURE_ANALYZE: 5,
        FEATURE_OFFER: 3,
        FEATURE_CSV_IMPORT: 10,
        FEATURE_LEAD_SEARCH: 10,
    },
    TIER_TRIAL: {
        FEATURE_ANALYZE: 50,
        FEATURE_OFFER: 20,
        FEATURE_CSV_IMPORT: 100,
        FEATURE_LEAD_SEARCH: 100,
    },
    TIER_PROFESSIONAL: {
        FEATURE_ANALYZE: UNLIMITED,
        FEATURE_OFFER: UNLIMITED,
        FEATURE_CSV_IMPORT: UNLIMITED,
        FEATURE_LEAD_SEARCH: UNLIMITED,
    },
    TIER_PRO: {
        FEATURE_ANALYZE: UNLIMITED,
        FEATURE_OFFER: UNLIMITED,
        FEATURE_CSV_IMPORT: UNLIMITED,
        FEATURE_LEAD_SEARCH: UNLIMITED,
    },
    TIER_TEAM: {
        FEATURE_ANALYZE: UNLIMITED,
        FEATURE_OFFER: UNLIMITED,
        FEATURE_CSV_IMPORT: UNLIMITED,
        FEATURE_LEAD_SEARCH: UNLIMITED,
    },
    TIER_ENTERPRISE: {
        FEATURE_ANALYZE: UNLIMITED,
        FEATURE_OFFER: UNLIMITED,
        FEATURE_CSV_IMPORT: UNLIMITED,
        FEATURE_LEAD_SEARCH: UNLIMITED,
    },
}

# Saved searches are capped by row count, not by monthly usage
SAVED_SEARCH_LIMITS: Dict[str, int] = {
    TIER_FREE: 2,
    TIER_TRIAL: 5,
    TIER_PROFESSIONAL: 10,
    TIER_PRO: 10,
    TIER_TEAM: 25,
    TIER_ENTERPRISE: 50,
}

# Response status codes surfaced by the usage endpoints
STATUS_CODES: Dict[str, int] = {
    "SUCCESS": 200,
    "BAD_REQUEST": 400,
    "UNAUTHORIZED": 401,
    "USAGE_LIMIT_REACHED": 429,
    "SERVER_ERROR": 500,
}

# Usage notification thresholds (percent of quota)
APPROACHING_LIMIT_PERCENT = 80


def validate_usage_limits(
    limits: Dict[str, Dict[str, int]] = USAGE_LIMITS,
    saved_search_limits: Dict[str, int] = SAVED_SEARCH_LIMITS,
) -> None:
    """
    Check that every tier defines every feature with an integer quota.
    Raises ValueError on the first problem so a bad table never reaches a request.
    """
    missing_tiers = [tier for tier in TIERS if tier not in limits]
    if missing_tiers:
        raise ValueError(f"Usage limits missing tiers: {', '.join(missing_tiers)}")

    for tier, table in limits.items():
        if tier not in TIERS:
            raise ValueError(f"Unknown tier in usage limits: {tier}")
        missing = [feature for feature in FEATURES if feature not in table]
        if missing:
            raise ValueError(f"Tier '{tier}' is missing quotas for: {', '.join(missing)}")
        for feature, value in table.items():
            if feature not in FEATURES:
                raise ValueError(f"Tier '{tier}' defines unknown feature '{feature}'")
            if isinstance(value, bool) or not isinstance(value, int) or value < UNLIMITED:
                raise ValueError(f"Invalid quota {value!r} for {tier}.{feature}")

    for tier in TIERS:
        value = saved_search_limits.get(tier)
        if isinstance(value, bool) or not isinstance(value, int) or value < UNLIMITED:
            raise ValueError(f"Invalid saved search limit {value!r} for tier '{tier}'")


def is_unlimited(limit: int) -> bool:
    return limit == UNLIMITED


def is_paid_tier(tier: str) -> bool:
    return tier in PAID_TIERS


def get_plan_limit(plan_tier: str, feature: str) -> int:
    """Get the monthly quota for a feature. Unknown tiers fall back to free."""
    return USAGE_LIMITS.get(plan_tier, USAGE_LIMITS[TIER_FREE]).get(feature, 0)


def get_saved_search_limit(plan_tier: str) -> int:
    return SAVED_SEARCH_LIMITS.get(plan_tier, SAVED_SEARCH_LIMITS[TIER_FREE])


validate_usage_limits()
