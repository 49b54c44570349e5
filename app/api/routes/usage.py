"""
Usage quota endpoints: read-only check, check-and-record, plain record, and a
per-feature summary for the account page.
"""
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.core.exceptions import InternalError, RequestValidationFailed
from app.core.plan_limits import FEATURES
from app.db.session import get_db
from app.dependencies.auth import get_current_user_id
from app.schemas.usage import UsageRequest
from app.services.usage_limit import (
    check_usage_limit,
    enforce_usage_limit,
    get_user_usage_summary,
    record_usage,
)

router = APIRouter()


def _require_known_feature(feature: str) -> None:
    if feature not in FEATURES:
        raise RequestValidationFailed(
            f"Unknown feature: {feature}",
            fields=[{"field": "feature", "error": "unknown"}],
        )


@router.get("/check")
def check_usage(
    feature: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    _require_known_feature(feature)
    check = check_usage_limit(user_id, feature, db)
    return {"feature": feature, **check.model_dump()}


@router.post("/enforce")
def enforce_usage(
    body: UsageRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Record one use if the quota allows it. The status code mirrors the result."""
    _require_known_feature(body.feature)
    result = enforce_usage_limit(user_id, body.feature, db, body.metadata)
    return JSONResponse(status_code=result.status_code, content=result.model_dump())


@router.post("/record")
def record(
    body: UsageRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    _require_known_feature(body.feature)
    if not record_usage(user_id, body.feature, db, body.metadata):
        raise InternalError("Failed to record usage")
    return {"success": True}


@router.get("/summary")
def usage_summary(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    summary = get_user_usage_summary(user_id, db)
    return {feature: usage.model_dump() for feature, usage in summary.items()}
