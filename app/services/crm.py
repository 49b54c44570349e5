"""
CRM lead storage with duplicate detection.

A lead is identified per user by its source listing id when one is known,
otherwise by its normalized address. Saving a duplicate never overwrites the
stored lead; the existing id is returned instead.
"""
import logging
import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import (
    InternalError,
    RequestValidationFailed,
    UpstreamUnavailable,
    missing_fields_error,
)
from app.models.crm_lead import CRM_STATUSES, CrmLead
from app.schemas.crm import CrmLeadCreate, CrmLeadUpdate, SaveResult
from app.services.enrichment import PropertyEnricher
from app.utils.address import normalize_address

logger = logging.getLogger(__name__)


class CrmLeadStore:
    def __init__(self, db: Session, enricher: Optional[PropertyEnricher] = None):
        self.db = db
        self.enricher = enricher

    def find_existing(self, user_id: str, property_id: Optional[str], normalized_address: str) -> Optional[CrmLead]:
        query = self.db.query(CrmLead).filter(CrmLead.user_id == user_id)
        if property_id:
            return query.filter(CrmLead.property_id == property_id).first()
        return query.filter(
            CrmLead.property_id.is_(None),
            CrmLead.normalized_address == normalized_address,
        ).first()

    async def _enrichment_for(self, address: str, city: str, state: Optional[str]) -> Optional[dict]:
        if self.enricher is None:
            return None
        full_address = ", ".join(part for part in (address, city, state) if part)
        try:
            return await self.enricher.enrich(full_address)
        except UpstreamUnavailable as e:
            logger.warning("Enrichment unavailable for %s, saving without it: %s", full_address, e.detail.get("message"))
            return None

    async def save(self, user_id: str, lead: CrmLeadCreate) -> SaveResult:
        error = missing_fields_error(lead.model_dump(), ["address", "city"])
        if error:
            raise error

        property_id = (lead.property_id or "").strip() or None
        normalized = normalize_address(lead.address)
        if not normalized:
            raise RequestValidationFailed(
                "Address has no usable characters",
                fields=[{"field": "address", "error": "invalid"}],
            )

        existing = self.find_existing(user_id, property_id, normalized)
        if existing:
            logger.info("Lead %s already in CRM for user %s", existing.id, user_id)
            return SaveResult(created=False, id=existing.id)

        enrichment = await self._enrichment_for(lead.address, lead.city, lead.state)

        row = CrmLead(
            id=str(uuid.uuid4()),
            user_id=user_id,
            property_id=property_id,
            address=lead.address.strip(),
            normalized_address=normalized,
            city=lead.city.strip(),
            state=lead.state,
            zipcode=lead.zipcode,
            price=lead.price,
            property_type=lead.property_type,
            days_on_market=lead.days_on_market,
            source=lead.source or "lead-genie",
            status=lead.status,
            lead_notes=lead.lead_notes,
            listing_url=lead.listing_url,
            keywords_matched=lead.keywords_matched,
            enrichment=enrichment,
        )
        try:
            self.db.add(row)
            self.db.commit()
        except IntegrityError:
            # Another request inserted the same lead between our lookup and insert
            self.db.rollback()
            existing = self.find_existing(user_id, property_id, normalized)
            if existing is None:
                logger.exception("Unique violation saving lead for user %s but no existing row found", user_id)
                raise InternalError("Failed to save lead")
            return SaveResult(created=False, id=existing.id)
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Error saving lead for user %s", user_id)
            raise InternalError("Failed to save lead")

        logger.info("Saved CRM lead %s for user %s", row.id, user_id)
        return SaveResult(created=True, id=row.id, enriched=enrichment is not None)

    def list(self, user_id: str, status: Optional[str] = None) -> List[CrmLead]:
        query = self.db.query(CrmLead).filter(CrmLead.user_id == user_id)
        if status:
            if status not in CRM_STATUSES:
                raise RequestValidationFailed(
                    f"Invalid status: {status}",
                    fields=[{"field": "status", "error": f"must be one of {', '.join(CRM_STATUSES)}"}],
                )
            query = query.filter(CrmLead.status == status)
        return query.order_by(CrmLead.created_at.desc()).all()

    def get(self, user_id: str, lead_id: str) -> Optional[CrmLead]:
        return self.db.query(CrmLead).filter(CrmLead.id == lead_id, CrmLead.user_id == user_id).first()

    def update(self, user_id: str, lead_id: str, changes: CrmLeadUpdate) -> Optional[CrmLead]:
        """Apply status / notes changes. Returns None if the lead is not the user's."""
        values = changes.model_dump(exclude_unset=True)
        if not values:
            raise RequestValidationFailed("No valid fields to update")

        row = self.get(user_id, lead_id)
        if row is None:
            return None
        if "status" in values and values["status"] is None:
            values.pop("status")
        for field, value in values.items():
            setattr(row, field, value)
        row.updated_at = datetime.utcnow()
        try:
            self.db.commit()
            self.db.refresh(row)
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Error updating lead %s", lead_id)
            raise InternalError("Failed to update lead")
        return row

    def delete(self, user_id: str, lead_id: str) -> bool:
        row = self.get(user_id, lead_id)
        if row is None:
            return False
        try:
            self.db.delete(row)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Error deleting lead %s", lead_id)
            raise InternalError("Failed to delete lead")
        return True
