"""
Saved searches: CRUD, plus an on-demand re-run of a search's criteria.
"""
import asyncio

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.core.plan_limits import FEATURE_LEAD_SEARCH
from app.db.session import get_db
from app.dependencies.auth import get_current_user_id
from app.schemas.saved_search import SavedSearchCreate, SavedSearchResponse, SavedSearchUpdate
from app.services.lead_search import LeadSearchService, get_lead_search_service
from app.services.saved_searches import (
    create_saved_search,
    delete_saved_search,
    get_saved_search,
    list_saved_searches,
    to_search_params,
    update_saved_search,
)
from app.services.usage_limit import enforce_or_raise

router = APIRouter()


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Saved search not found")


@router.get("")
def get_searches(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    searches = list_saved_searches(user_id, db)
    return {"searches": [SavedSearchResponse.model_validate(s) for s in searches]}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_search(
    data: SavedSearchCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    search = create_saved_search(user_id, data, db)
    return {"search": SavedSearchResponse.model_validate(search)}


@router.get("/{search_id}")
async def get_search(
    search_id: int,
    include_leads: bool = False,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    search_service: LeadSearchService = Depends(get_lead_search_service),
):
    """With include_leads=true the search is re-run and billed as a lead search."""
    search = get_saved_search(user_id, search_id, db)
    if search is None:
        raise _not_found()

    response = {"search": SavedSearchResponse.model_validate(search)}
    if include_leads:
        await asyncio.to_thread(enforce_or_raise, user_id, FEATURE_LEAD_SEARCH, db, {"saved_search_id": search.id})
        leads, failed_sources = await search_service.search_with_report(to_search_params(search))
        response.update(leads=leads, count=len(leads), failed_sources=failed_sources)
    return response


@router.patch("/{search_id}")
def update_search(
    search_id: int,
    changes: SavedSearchUpdate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    search = update_saved_search(user_id, search_id, changes, db)
    if search is None:
        raise _not_found()
    return {"search": SavedSearchResponse.model_validate(search)}


@router.delete("/{search_id}")
def delete_search(
    search_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    if not delete_saved_search(user_id, search_id, db):
        raise _not_found()
    return {"success": True}
