"""Quota and admission models."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .enums import QuotaStrategy


class QuotaRecord(BaseModel):
    """Request count for one (identifier, UTC day) pair held in process memory."""

    count: int = Field(..., ge=0, description="Requests admitted so far")
    reset_at: datetime = Field(..., description="Midnight UTC following the counted day")


class RateLimitResult(BaseModel):
    """Outcome of an admission check."""

    allowed: bool = Field(..., description="Whether the request may proceed")
    remaining: int = Field(..., ge=0, description="Requests left in the current window")
    retry_after_seconds: float = Field(
        default=0.0,
        ge=0,
        alias="retryAfterSeconds",
        description="Seconds until the window resets when not allowed",
    )
    strategy: QuotaStrategy = Field(
        default=QuotaStrategy.IN_PROCESS, exclude=True, description="Store that answered"
    )

    model_config = ConfigDict(populate_by_name=True)
