"""
Lead search across listing sources.
"""
import asyncio

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.exceptions import missing_fields_error
from app.core.plan_limits import FEATURE_LEAD_SEARCH
from app.db.session import get_db
from app.dependencies.auth import get_current_user_id
from app.schemas.leads import LeadSearchParams, LeadSearchResponse
from app.services.lead_search import LeadSearchService, get_lead_search_service
from app.services.usage_limit import enforce_or_raise

router = APIRouter()


@router.post("/search", response_model=LeadSearchResponse)
async def search_leads(
    params: LeadSearchParams,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    search_service: LeadSearchService = Depends(get_lead_search_service),
):
    """
    Search every requested source for listings in a city. Counts against the
    caller's monthly lead_search quota; 429 once it is used up.
    """
    error = missing_fields_error(params.model_dump(), ["city", "state"])
    if error:
        raise error

    # Blocking: may send a usage email
    await asyncio.to_thread(enforce_or_raise, user_id, FEATURE_LEAD_SEARCH, db, {
        "city": params.city,
        "state": params.state,
        "sources": params.sources,
    })

    leads, failed_sources = await search_service.search_with_report(params)
    return LeadSearchResponse(leads=leads, count=len(leads), failed_sources=failed_sources)
