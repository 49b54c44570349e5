"""
Entitlement enforcement: resolve the caller's tier, compare monthly usage with
the tier quota, and append usage records for permitted actions.

The check and the insert in enforce_usage_limit are separate statements, so two
concurrent requests at limit - 1 can both pass. This is an accepted soft limit.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import InternalError, QuotaExceeded, RequestValidationFailed, Unauthorized
from app.core.plan_limits import (
    FEATURES,
    STATUS_CODES,
    TIER_FREE,
    TIERS,
    UNLIMITED,
    get_plan_limit,
    is_unlimited,
)
from app.models.subscription import Subscription
from app.models.usage_log import UsageLog
from app.models.user import User
from app.schemas.usage import EnforcementResult, FeatureUsage, UsageCheck

logger = logging.getLogger(__name__)

CURRENT_STATUSES = ("active", "trialing")


@dataclass(frozen=True)
class ResolvedTier:
    tier: str = TIER_FREE
    status: Optional[str] = None
    period_end: Optional[datetime] = None
    is_admin: bool = False


def get_usage_window_start(now: Optional[datetime] = None) -> datetime:
    """Usage is counted per calendar month (UTC)."""
    now = now or datetime.utcnow()
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def _subscription_is_current(subscription: Subscription, now: datetime) -> bool:
    if subscription.current_period_end and subscription.current_period_end < now:
        return False
    if subscription.status in CURRENT_STATUSES:
        return True
    # Canceled plans stay usable until the paid period runs out
    return subscription.status == "canceled" and subscription.current_period_end is not None


def resolve_subscription_tier(user_id: str, db: Session, now: Optional[datetime] = None) -> ResolvedTier:
    """
    Work out the tier that applies right now.
    A subscription row wins over the profile's subscription_tier; a lapsed
    subscription means free.
    """
    now = now or datetime.utcnow()
    user = db.query(User).filter(User.id == user_id).first()
    subscription = db.query(Subscription).filter(Subscription.user_id == user_id).first()
    is_admin = bool(user and user.is_admin)

    if subscription is not None:
        if _subscription_is_current(subscription, now):
            tier = subscription.tier
        else:
            tier = TIER_FREE
        status = subscription.status
        period_end = subscription.current_period_end
    else:
        tier = (user.subscription_tier if user else None) or TIER_FREE
        status = None
        period_end = None

    if tier not in TIERS:
        logger.warning("Unknown subscription tier %r for user %s, using free", tier, user_id)
        tier = TIER_FREE

    return ResolvedTier(tier=tier, status=status, period_end=period_end, is_admin=is_admin)


def resolve_tier_or_free(user_id: str, db: Session) -> ResolvedTier:
    try:
        return resolve_subscription_tier(user_id, db)
    except SQLAlchemyError:
        # Never grant access on a failed lookup: fall back to the free quota
        logger.exception("Subscription lookup failed for user %s, applying free tier", user_id)
        db.rollback()
        return ResolvedTier()


def count_usage(user_id: str, feature: str, db: Session, since: datetime) -> int:
    return db.query(func.count(UsageLog.id)).filter(
        UsageLog.user_id == user_id,
        UsageLog.feature == feature,
        UsageLog.created_at >= since,
    ).scalar() or 0


def check_usage_limit(user_id: str, feature: str, db: Session, now: Optional[datetime] = None) -> UsageCheck:
    """
    Read-only check of the caller's quota for a feature.
    Missing user ids and unknown features fail closed.
    """
    if not user_id:
        logger.error("Cannot check usage limit: no user id provided")
        return UsageCheck(has_reached_limit=True, current_usage=0, limit=0)

    if feature not in FEATURES:
        logger.error("Cannot check usage limit: unknown feature %r", feature)
        return UsageCheck(has_reached_limit=True, current_usage=0, limit=0)

    resolved = resolve_tier_or_free(user_id, db)
    if resolved.is_admin:
        return UsageCheck(has_reached_limit=False, current_usage=0, limit=UNLIMITED)

    limit = get_plan_limit(resolved.tier, feature)
    if is_unlimited(limit):
        return UsageCheck(has_reached_limit=False, current_usage=0, limit=UNLIMITED)

    try:
        current_usage = count_usage(user_id, feature, db, get_usage_window_start(now))
    except SQLAlchemyError:
        logger.exception("Usage count failed for user %s feature %s", user_id, feature)
        db.rollback()
        return UsageCheck(has_reached_limit=True, current_usage=0, limit=limit)

    return UsageCheck(
        has_reached_limit=current_usage >= limit,
        current_usage=current_usage,
        limit=limit,
    )


def record_usage(user_id: str, feature: str, db: Session, metadata: Optional[Dict[str, Any]] = None) -> bool:
    """Append one usage row. Returns False (after rolling back) if the insert fails."""
    if not user_id:
        logger.error("Cannot record usage: no user id provided")
        return False

    try:
        db.add(UsageLog(user_id=user_id, feature=feature, extra_metadata=metadata or {}))
        db.commit()
    except SQLAlchemyError:
        logger.exception("Error recording usage for user %s feature %s", user_id, feature)
        db.rollback()
        return False
    return True


def enforce_usage_limit(
    user_id: str,
    feature: str,
    db: Session,
    metadata: Optional[Dict[str, Any]] = None,
    notify: bool = True,
) -> EnforcementResult:
    """
    Check the quota and, if there is room, record exactly one usage row.
    Rejected calls write nothing.
    """
    if not user_id:
        return EnforcementResult(
            success=False,
            status_code=STATUS_CODES["UNAUTHORIZED"],
            message="User ID is required",
        )

    if feature not in FEATURES:
        return EnforcementResult(
            success=False,
            status_code=STATUS_CODES["BAD_REQUEST"],
            message=f"Unknown feature: {feature}",
        )

    check = check_usage_limit(user_id, feature, db)
    if check.has_reached_limit:
        return EnforcementResult(
            success=False,
            status_code=STATUS_CODES["USAGE_LIMIT_REACHED"],
            message=f"Usage limit reached for {feature}. Upgrade your plan for more.",
            current_usage=check.current_usage,
            limit=check.limit,
        )

    if not record_usage(user_id, feature, db, metadata):
        return EnforcementResult(
            success=False,
            status_code=STATUS_CODES["SERVER_ERROR"],
            message="Failed to record usage",
        )

    if is_unlimited(check.limit):
        return EnforcementResult(
            success=True,
            status_code=STATUS_CODES["SUCCESS"],
            message="Usage recorded successfully",
            limit=UNLIMITED,
        )

    current_usage = check.current_usage + 1
    if notify:
        # usage_notifications imports this module
        from app.services.usage_notifications import maybe_send_usage_notification
        try:
            maybe_send_usage_notification(user_id, feature, current_usage, check.limit, db)
        except SQLAlchemyError:
            logger.exception("Usage notification bookkeeping failed for user %s", user_id)
            db.rollback()

    return EnforcementResult(
        success=True,
        status_code=STATUS_CODES["SUCCESS"],
        message="Usage recorded successfully",
        current_usage=current_usage,
        limit=check.limit,
    )


def _percentage(current_usage: int, limit: int) -> int:
    if is_unlimited(limit):
        return 0
    if limit <= 0:
        return 100
    return min(round(current_usage / limit * 100), 100)


def get_user_usage_summary(user_id: str, db: Session, now: Optional[datetime] = None) -> Dict[str, FeatureUsage]:
    """
    Usage and quota for every known feature this month, for display only.
    Features with no rows report zero usage.
    """
    if not user_id:
        logger.error("Cannot get usage summary: no user id provided")
        return {}

    resolved = resolve_tier_or_free(user_id, db)

    try:
        rows = db.query(UsageLog.feature, func.count(UsageLog.id)).filter(
            UsageLog.user_id == user_id,
            UsageLog.created_at >= get_usage_window_start(now),
            UsageLog.feature.in_(FEATURES),
        ).group_by(UsageLog.feature).all()
    except SQLAlchemyError:
        logger.exception("Error getting usage summary for user %s", user_id)
        db.rollback()
        return {}

    counts = {feature: count for feature, count in rows}
    summary: Dict[str, FeatureUsage] = {}
    for feature in FEATURES:
        limit = UNLIMITED if resolved.is_admin else get_plan_limit(resolved.tier, feature)
        current_usage = counts.get(feature, 0)
        summary[feature] = FeatureUsage(
            current_usage=current_usage,
            limit=limit,
            percentage=_percentage(current_usage, limit),
        )
    return summary


def enforce_or_raise(
    user_id: str,
    feature: str,
    db: Session,
    metadata: Optional[Dict[str, Any]] = None,
) -> EnforcementResult:
    """enforce_usage_limit for route handlers: failures become HTTP errors."""
    result = enforce_usage_limit(user_id, feature, db, metadata)
    if result.success:
        return result
    if result.status_code == STATUS_CODES["USAGE_LIMIT_REACHED"]:
        raise QuotaExceeded(feature, result.current_usage or 0, result.limit or 0, result.message)
    if result.status_code == STATUS_CODES["UNAUTHORIZED"]:
        raise Unauthorized(result.message)
    if result.status_code == STATUS_CODES["BAD_REQUEST"]:
        raise RequestValidationFailed(result.message, fields=[{"field": "feature", "error": "unknown"}])
    raise InternalError(result.message)
