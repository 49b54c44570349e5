"""
Scheduler-invoked jobs. Protected by CRON_SECRET rather than user auth.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.dependencies.auth import verify_cron_secret
from app.services.lead_alerts import run_daily_lead_alerts
from app.services.lead_search import LeadSearchService, get_lead_search_service

router = APIRouter()


@router.get("/daily-lead-alerts", dependencies=[Depends(verify_cron_secret)])
async def daily_lead_alerts(
    db: Session = Depends(get_db),
    search_service: LeadSearchService = Depends(get_lead_search_service),
):
    stats = await run_daily_lead_alerts(db, search_service)
    if not stats["total"]:
        return {"message": "No active saved searches found", "stats": stats}
    return {"message": "Daily lead alert job completed", "stats": stats}
