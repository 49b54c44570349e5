"""
Saved lead searches: CRUD with a per-tier cap on how many a user may keep.
"""
import logging
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import InternalError, PlanLimitReached, RequestValidationFailed
from app.core.plan_limits import FEATURE_SAVED_SEARCH_CREATE, get_saved_search_limit, is_unlimited
from app.models.saved_search import SavedSearch
from app.schemas.leads import SOURCES, LeadSearchParams
from app.schemas.saved_search import SavedSearchCreate, SavedSearchUpdate
from app.services.usage_limit import resolve_tier_or_free, record_usage

logger = logging.getLogger(__name__)


def _validate_sources(sources: Optional[List[str]]) -> List[str]:
    cleaned = list(dict.fromkeys(s.strip().lower() for s in sources or [] if s and s.strip()))
    if not cleaned:
        raise RequestValidationFailed(
            "At least one source is required",
            fields=[{"field": "sources", "error": "required"}],
        )
    unknown = [s for s in cleaned if s not in SOURCES]
    if unknown:
        raise RequestValidationFailed(
            f"Unknown sources: {', '.join(unknown)}",
            fields=[{"field": "sources", "error": f"must be among {', '.join(SOURCES)}"}],
        )
    return cleaned


def _validate_price_range(price_min: Optional[int], price_max: Optional[int]) -> None:
    if price_min is not None and price_max is not None and price_min > price_max:
        raise RequestValidationFailed(
            "price_min cannot be greater than price_max",
            fields=[{"field": "price_min", "error": "greater than price_max"}],
        )


def count_saved_searches(user_id: str, db: Session) -> int:
    return db.query(func.count(SavedSearch.id)).filter(SavedSearch.user_id == user_id).scalar() or 0


def create_saved_search(user_id: str, data: SavedSearchCreate, db: Session) -> SavedSearch:
    resolved = resolve_tier_or_free(user_id, db)
    if not resolved.is_admin:
        limit = get_saved_search_limit(resolved.tier)
        if not is_unlimited(limit) and count_saved_searches(user_id, db) >= limit:
            raise PlanLimitReached(
                f"You have reached your limit of {limit} saved searches for your {resolved.tier} plan",
                limit=limit,
            )

    missing = [name for name in ("name", "city") if not (getattr(data, name) or "").strip()]
    if missing:
        raise RequestValidationFailed(
            f"Missing required fields: {', '.join(missing)}",
            fields=[{"field": name, "error": "required"} for name in missing],
        )
    sources = _validate_sources(data.sources)
    _validate_price_range(data.price_min, data.price_max)

    search = SavedSearch(
        user_id=user_id,
        name=data.name.strip(),
        city=data.city.strip(),
        state=data.state,
        sources=sources,
        keywords=data.keywords or None,
        days_on_market=data.days_on_market,
        days_on_market_option=data.days_on_market_option,
        price_min=data.price_min,
        price_max=data.price_max,
        email_alert=data.email_alert,
        enabled=True,
    )
    try:
        db.add(search)
        db.commit()
        db.refresh(search)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error creating saved search for user %s", user_id)
        raise InternalError("Failed to create saved search")

    record_usage(user_id, FEATURE_SAVED_SEARCH_CREATE, db, {"search_id": search.id})
    return search


def list_saved_searches(user_id: str, db: Session) -> List[SavedSearch]:
    return db.query(SavedSearch).filter(
        SavedSearch.user_id == user_id
    ).order_by(SavedSearch.created_at.desc(), SavedSearch.id.desc()).all()


def get_saved_search(user_id: str, search_id: int, db: Session) -> Optional[SavedSearch]:
    return db.query(SavedSearch).filter(
        SavedSearch.id == search_id,
        SavedSearch.user_id == user_id,
    ).first()


def update_saved_search(user_id: str, search_id: int, changes: SavedSearchUpdate, db: Session) -> Optional[SavedSearch]:
    """Edit criteria or toggle enabled / email_alert. Returns None if not found."""
    values = changes.model_dump(exclude_unset=True)
    if not values:
        raise RequestValidationFailed("No valid fields to update")

    search = get_saved_search(user_id, search_id, db)
    if search is None:
        return None

    for name in ("name", "city"):
        if name in values and not (values[name] or "").strip():
            raise RequestValidationFailed(
                f"{name} cannot be empty",
                fields=[{"field": name, "error": "required"}],
            )
    if "sources" in values:
        values["sources"] = _validate_sources(values["sources"])
    for flag in ("enabled", "email_alert", "days_on_market_option"):
        if flag in values and values[flag] is None:
            values.pop(flag)
    _validate_price_range(
        values.get("price_min", search.price_min),
        values.get("price_max", search.price_max),
    )

    for field, value in values.items():
        setattr(search, field, value.strip() if field in ("name", "city") else value)
    try:
        db.commit()
        db.refresh(search)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error updating saved search %s", search_id)
        raise InternalError("Failed to update saved search")
    return search


def delete_saved_search(user_id: str, search_id: int, db: Session) -> bool:
    search = get_saved_search(user_id, search_id, db)
    if search is None:
        return False
    try:
        db.delete(search)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error deleting saved search %s", search_id)
        raise InternalError("Failed to delete saved search")
    return True


def to_search_params(search: SavedSearch) -> LeadSearchParams:
    return LeadSearchParams(
        city=search.city,
        state=search.state,
        sources=search.sources or list(SOURCES),
        keywords=search.keywords,
        days_on_market=search.days_on_market,
        days_on_market_option=search.days_on_market_option or "less",
        price_min=search.price_min,
        price_max=search.price_max,
    )
