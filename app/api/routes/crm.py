"""
CRM endpoints: save a lead, list, update status / notes, delete.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from typing import List, Optional

from app.db.session import get_db
from app.dependencies.auth import get_current_user_id
from app.schemas.crm import CrmLeadCreate, CrmLeadResponse, CrmLeadUpdate
from app.services.crm import CrmLeadStore
from app.services.enrichment import PropertyEnricher, get_property_enricher

router = APIRouter()


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Lead not found")


@router.post("/save-lead", status_code=status.HTTP_201_CREATED)
async def save_lead(
    lead: CrmLeadCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    enricher: PropertyEnricher = Depends(get_property_enricher),
):
    result = await CrmLeadStore(db, enricher).save(user_id, lead)
    if not result.created:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"error": "Lead already exists in your CRM", "leadId": result.id},
        )
    return {
        "success": True,
        "leadId": result.id,
        "enriched": result.enriched,
        "message": "Lead saved successfully",
    }


@router.get("/leads", response_model=List[CrmLeadResponse])
def get_leads(
    status: Optional[str] = None,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return CrmLeadStore(db).list(user_id, status)


@router.get("/leads/{lead_id}", response_model=CrmLeadResponse)
def get_lead(
    lead_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    lead = CrmLeadStore(db).get(user_id, lead_id)
    if lead is None:
        raise _not_found()
    return lead


@router.patch("/leads/{lead_id}", response_model=CrmLeadResponse)
def update_lead(
    lead_id: str,
    changes: CrmLeadUpdate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    lead = CrmLeadStore(db).update(user_id, lead_id, changes)
    if lead is None:
        raise _not_found()
    return lead


@router.delete("/leads/{lead_id}")
def delete_lead(
    lead_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    if not CrmLeadStore(db).delete(user_id, lead_id):
        raise _not_found()
    return {"success": True, "message": "Lead deleted successfully"}
