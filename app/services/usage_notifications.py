"""
Emails users when they approach or hit a monthly quota.
Each notice goes out at most once per feature per month; sent notices are
logged in usage_log as email_notification rows.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from app.core.plan_limits import APPROACHING_LIMIT_PERCENT, FEATURE_EMAIL_NOTIFICATION, is_unlimited
from app.models.usage_log import UsageLog
from app.models.user import User
from app.services.email import render_usage_notice, send_email
from app.services.usage_limit import get_usage_window_start

logger = logging.getLogger(__name__)

LIMIT_REACHED = "limit_reached"
APPROACHING_LIMIT = "approaching_limit"


def notification_kind(current_usage: int, limit: int) -> Optional[str]:
    if is_unlimited(limit) or limit <= 0:
        return None
    if current_usage >= limit:
        return LIMIT_REACHED
    if current_usage * 100 >= limit * APPROACHING_LIMIT_PERCENT:
        return APPROACHING_LIMIT
    return None


def already_notified(user_id: str, feature: str, kind: str, db: Session, now: Optional[datetime] = None) -> bool:
    rows = db.query(UsageLog).filter(
        UsageLog.user_id == user_id,
        UsageLog.feature == FEATURE_EMAIL_NOTIFICATION,
        UsageLog.created_at >= get_usage_window_start(now),
    ).all()
    for row in rows:
        meta = row.extra_metadata or {}
        if meta.get("email_type") == kind and meta.get("feature") == feature:
            return True
    return False


def maybe_send_usage_notification(
    user_id: str,
    feature: str,
    current_usage: int,
    limit: int,
    db: Session,
) -> Optional[str]:
    """
    Send the approaching / reached notice if this usage crosses a threshold.
    Returns the kind of notice sent, or None.
    """
    kind = notification_kind(current_usage, limit)
    if kind is None:
        return None

    if already_notified(user_id, feature, kind, db):
        logger.info("Already sent %s email to user %s for %s this month", kind, user_id, feature)
        return None

    user = db.query(User).filter(User.id == user_id).first()
    if not user or not user.email or not user.notify_usage:
        return None

    subject, body = render_usage_notice(feature, current_usage, limit, reached=kind == LIMIT_REACHED)
    if not send_email(user.email, subject, body):
        return None

    db.add(UsageLog(
        user_id=user_id,
        feature=FEATURE_EMAIL_NOTIFICATION,
        extra_metadata={
            "email_type": kind,
            "feature": feature,
            "current_usage": current_usage,
            "limit": limit,
        },
    ))
    db.commit()
    return kind
