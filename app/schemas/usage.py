from pydantic import BaseModel, Field
from typing import Any, Dict


class UsageCheck(BaseModel):
    has_reached_limit: bool
    current_usage: int
    limit: int  # -1 means unlimited


class EnforcementResult(BaseModel):
    success: bool
    status_code: int
    message: str
    current_usage: int | None = None
    limit: int | None = None


class FeatureUsage(BaseModel):
    current_usage: int
    limit: int
    percentage: int


class UsageRequest(BaseModel):
    feature: str = Field(min_length=1)
    metadata: Dict[str, Any] = Field(default_factory=dict)
