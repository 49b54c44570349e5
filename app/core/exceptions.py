"""
Error kinds that cross into client-facing responses.

All of them are HTTPExceptions so routes and helpers can raise them directly
and FastAPI renders a structured `detail` payload.
"""
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status


class Unauthorized(HTTPException):
    def __init__(self, message: str = "Authentication required"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "unauthorized", "message": message},
        )


class QuotaExceeded(HTTPException):
    """Tier quota used up. The client turns this into an upgrade prompt."""

    def __init__(self, feature: str, current_usage: int, limit: int, message: Optional[str] = None):
        self.feature = feature
        self.current_usage = current_usage
        self.limit = limit
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "code": "usage_limit_reached",
                "message": message or f"Usage limit reached for {feature}. Upgrade your plan for more.",
                "feature": feature,
                "current_usage": current_usage,
                "limit": limit,
                "upgrade_required": True,
            },
        )


class PlanLimitReached(HTTPException):
    """A count-based plan cap (e.g. saved searches). Not a monthly quota."""

    def __init__(self, message: str, limit: int):
        self.limit = limit
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"code": "plan_limit_reached", "message": message, "limit": limit, "upgrade_required": True},
        )


class Conflict(HTTPException):
    def __init__(self, message: str, existing_id: Optional[str] = None):
        self.existing_id = existing_id
        detail: Dict[str, Any] = {"code": "already_exists", "message": message}
        if existing_id is not None:
            detail["existing_id"] = existing_id
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class UpstreamUnavailable(HTTPException):
    """A scraper source or data provider failed after exhausting retries."""

    def __init__(self, provider: str, message: str = "Upstream provider unavailable"):
        self.provider = provider
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"code": "upstream_unavailable", "provider": provider, "message": message},
        )


class RequestValidationFailed(HTTPException):
    def __init__(self, message: str, fields: Optional[List[Dict[str, str]]] = None):
        self.fields = fields or []
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"code": "validation_error", "message": message, "fields": self.fields},
        )


class InternalError(HTTPException):
    def __init__(self, message: str = "Internal server error"):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"code": "internal_error", "message": message},
        )


def missing_fields_error(payload: Dict[str, Any], required: List[str]) -> Optional[RequestValidationFailed]:
    """Build a validation error listing required fields that are absent or blank."""
    missing = [
        name for name in required
        if payload.get(name) is None or (isinstance(payload.get(name), str) and not payload[name].strip())
    ]
    if not missing:
        return None
    return RequestValidationFailed(
        f"Missing required fields: {', '.join(missing)}",
        fields=[{"field": name, "error": "required"} for name in missing],
    )
