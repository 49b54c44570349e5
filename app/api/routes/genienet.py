"""
GenieNet deal board and waitlist.
"""
from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from typing import Optional

from app.db.session import get_db
from app.dependencies.auth import get_current_user_id
from app.schemas.genienet import DealResponse, DealSubmission, WaitlistSubmission
from app.services.genienet import join_waitlist, list_deals, submit_deal

router = APIRouter()


@router.get("/deals")
def get_deals(
    zip: Optional[str] = None,
    state: Optional[str] = None,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    deals = list_deals(db, zip_code=zip, state=state, limit=limit, offset=offset)
    return {"deals": [DealResponse.model_validate(d) for d in deals]}


@router.post("/deals", status_code=status.HTTP_201_CREATED)
def create_deal(
    deal: DealSubmission,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    row = submit_deal(user_id, deal, db)
    return {"deal": DealResponse.model_validate(row)}


@router.post("/waitlist")
def join(
    submission: WaitlistSubmission,
    db: Session = Depends(get_db),
):
    _, already_joined = join_waitlist(submission, db)
    if already_joined:
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content={"message": "You are already on the waitlist", "alreadyJoined": True},
        )
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content={"success": True, "message": "Successfully joined the GenieNet waitlist!"},
    )
