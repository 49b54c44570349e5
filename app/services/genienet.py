"""
GenieNet: a shared board of investor-submitted deals, plus its waitlist.
Deals are unique by normalized address across all users.
"""
import logging
import re
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import Conflict, InternalError, RequestValidationFailed
from app.models.genienet import GenieNetDeal, WaitlistEntry
from app.schemas.genienet import DealSubmission, WaitlistSubmission
from app.utils.address import normalize_address

logger = logging.getLogger(__name__)

BASE_DEAL_SCORE = 50
MAX_PAGE_SIZE = 100

US_STATE_CODES = frozenset((
    "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "FL", "GA", "HI", "ID", "IL", "IN", "IA",
    "KS", "KY", "LA", "ME", "MD", "MA", "MI", "MN", "MS", "MO", "MT", "NE", "NV", "NH", "NJ",
    "NM", "NY", "NC", "ND", "OH", "OK", "OR", "PA", "RI", "SC", "SD", "TN", "TX", "UT", "VT",
    "VA", "WA", "WV", "WI", "WY", "DC",
))

_ZIP_RE = re.compile(r"\b(\d{5})(?:-\d{4})?\b")
_TWO_LETTER_RE = re.compile(r"\b([A-Za-z]{2})\b")


def calculate_deal_score(deal: DealSubmission) -> int:
    score = BASE_DEAL_SCORE
    price = deal.purchase_price
    if not price:
        return score
    if deal.arv and deal.arv > price * 1.3:
        score += 10
    if deal.noi and (deal.noi * 12) / price > 0.08:
        score += 10
    if deal.monthly_rent and deal.monthly_rent / price > 0.01:
        score += 10
    return score


def extract_zip_code(address: str) -> Optional[str]:
    matches = _ZIP_RE.findall(address or "")
    # House numbers can be five digits too, so take the last one
    return matches[-1] if matches else None


def extract_state(address: str) -> Optional[str]:
    codes = [m.upper() for m in _TWO_LETTER_RE.findall(address or "") if m.upper() in US_STATE_CODES]
    return codes[-1] if codes else None


def _find_deal(normalized: str, db: Session) -> Optional[GenieNetDeal]:
    return db.query(GenieNetDeal).filter(GenieNetDeal.normalized_address == normalized).first()


def submit_deal(user_id: str, deal: DealSubmission, db: Session) -> GenieNetDeal:
    normalized = normalize_address(deal.address)
    if not normalized:
        raise RequestValidationFailed("Address is required", fields=[{"field": "address", "error": "required"}])

    existing = _find_deal(normalized, db)
    if existing:
        raise Conflict("Deal with this address already exists", existing_id=str(existing.id))

    row = GenieNetDeal(
        user_id=user_id,
        address=deal.address.strip(),
        normalized_address=normalized,
        zip_code=extract_zip_code(deal.address),
        state=extract_state(deal.address),
        property_type=deal.property_type,
        purchase_price=deal.purchase_price,
        arv=deal.arv,
        rehab_cost=deal.rehab_cost,
        monthly_rent=deal.monthly_rent,
        noi=deal.noi,
        notes=deal.notes,
        deal_score=calculate_deal_score(deal),
    )
    try:
        db.add(row)
        db.commit()
        db.refresh(row)
    except IntegrityError:
        db.rollback()
        existing = _find_deal(normalized, db)
        raise Conflict(
            "Deal with this address already exists",
            existing_id=str(existing.id) if existing else None,
        )
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error inserting deal for user %s", user_id)
        raise InternalError("Failed to save deal")

    logger.info("GenieNet deal %s submitted by %s (score %s)", row.id, user_id, row.deal_score)
    return row


def list_deals(
    db: Session,
    zip_code: Optional[str] = None,
    state: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[GenieNetDeal]:
    query = db.query(GenieNetDeal)
    if zip_code:
        query = query.filter(GenieNetDeal.zip_code == zip_code)
    if state:
        query = query.filter(GenieNetDeal.state == state.upper())
    limit = max(1, min(limit, MAX_PAGE_SIZE))
    return query.order_by(
        GenieNetDeal.created_at.desc(), GenieNetDeal.id.desc()
    ).offset(max(offset, 0)).limit(limit).all()


def join_waitlist(submission: WaitlistSubmission, db: Session) -> Tuple[WaitlistEntry, bool]:
    """Add an email to the waitlist. Returns (entry, already_joined)."""
    email = str(submission.email).strip().lower()
    existing = db.query(WaitlistEntry).filter(WaitlistEntry.email == email).first()
    if existing:
        return existing, True

    entry = WaitlistEntry(email=email, name=submission.name)
    try:
        db.add(entry)
        db.commit()
        db.refresh(entry)
    except IntegrityError:
        db.rollback()
        existing = db.query(WaitlistEntry).filter(WaitlistEntry.email == email).first()
        if existing is None:
            logger.exception("Unique violation joining waitlist but no entry found for %s", email)
            raise InternalError("Failed to join waitlist")
        return existing, True
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error adding %s to waitlist", email)
        raise InternalError("Failed to join waitlist")
    return entry, False
