"""
Daily lead alert job: re-run every saved search that has email alerts on and
mail the user whatever was listed in the last 24 hours.
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from app.core.plan_limits import FEATURE_LEAD_ALERT_EMAIL
from app.models.saved_search import SavedSearch
from app.models.user import User
from app.schemas.leads import Lead
from app.services.email import send_lead_alert
from app.services.lead_search import LeadSearchService
from app.services.saved_searches import to_search_params
from app.services.usage_limit import record_usage

logger = logging.getLogger(__name__)

ALERT_WINDOW = timedelta(hours=24)

Notifier = Callable[[str, str, List[Lead], int], None]


@dataclass
class AlertOutcome:
    search_id: int
    sent: bool = False
    lead_count: int = 0
    error: Optional[str] = None


def _as_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value.astimezone(timezone.utc)


def recent_leads(leads: List[Lead], now: datetime) -> List[Lead]:
    """Leads listed within the alert window. Leads without a listing date are skipped."""
    cutoff = _as_utc(now) - ALERT_WINDOW
    return [lead for lead in leads if lead.date_listed and _as_utc(lead.date_listed) >= cutoff]


async def _process_search(
    search: SavedSearch,
    email: Optional[str],
    db: Session,
    search_service: LeadSearchService,
    notifier: Notifier,
    now: datetime,
) -> AlertOutcome:
    outcome = AlertOutcome(search_id=search.id)
    try:
        if not email:
            raise ValueError(f"User email not found for search {search.id}")

        leads = await search_service.search(to_search_params(search))
        new_leads = recent_leads(leads, now)
        if not new_leads:
            logger.info("No new leads in the last 24 hours for search %s", search.id)
            return outcome

        await asyncio.to_thread(notifier, email, search.name, new_leads, search.id)
        logger.info("Sent alert email for search %s with %s leads", search.id, len(new_leads))

        record_usage(
            search.user_id,
            FEATURE_LEAD_ALERT_EMAIL,
            db,
            {"search_id": search.id, "lead_count": len(new_leads)},
        )
        outcome.sent = True
        outcome.lead_count = len(new_leads)
    except asyncio.CancelledError:
        raise
    except Exception as e:
        logger.warning("Error processing saved search %s: %s", search.id, getattr(e, "detail", e))
        outcome.error = str(e)
    return outcome


async def run_daily_lead_alerts(
    db: Session,
    search_service: LeadSearchService,
    notifier: Notifier = send_lead_alert,
    now: Optional[datetime] = None,
) -> Dict[str, int]:
    """
    Process every enabled saved search with email alerts. One failing search
    never stops the others. Returns counts for the run.
    """
    now = now or datetime.now(timezone.utc)
    rows = db.query(SavedSearch, User.email).outerjoin(
        User, User.id == SavedSearch.user_id
    ).filter(
        SavedSearch.enabled.is_(True),
        SavedSearch.email_alert.is_(True),
    ).all()

    stats = {"total": len(rows), "processed": 0, "successful": 0, "failed": 0, "leads_sent": 0}
    if not rows:
        logger.info("No active saved searches found with email alerts enabled")
        return stats

    logger.info("Found %s saved searches with alerts enabled", len(rows))
    results = await asyncio.gather(
        *(_process_search(search, email, db, search_service, notifier, now) for search, email in rows),
        return_exceptions=True,
    )

    stats["processed"] = len(results)
    for result in results:
        if isinstance(result, BaseException):
            stats["failed"] += 1
        elif result.error:
            stats["failed"] += 1
        elif result.sent:
            stats["successful"] += 1
            stats["leads_sent"] += result.lead_count

    logger.info("Daily lead alert job completed: %s", stats)
    return stats
