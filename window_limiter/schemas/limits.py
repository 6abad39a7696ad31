"""Pydantic schemas for rate limit inspection and check responses."""

from __future__ import annotations

from pydantic import BaseModel, Field


class LimitStatusResponse(BaseModel):
    """Read-only view of an identifier's current window."""

    limit: int = Field(..., description="Maximum requests allowed per window.")
    remaining: int = Field(..., description="Requests left in the current window.")
    reset_after_seconds: int = Field(
        ...,
        description="Seconds until the current window ends; -1 when no window is active.",
    )
    window_seconds: int = Field(..., description="Configured window length in seconds.")


class CheckResponse(BaseModel):
    """Outcome of an allowed check (denials are returned as 429 errors)."""

    allowed: bool = Field(..., description="Always true; denied checks raise 429.")
    limit: int = Field(..., description="Maximum requests allowed per window.")
    count: int = Field(..., description="Requests counted in the current window.")
    remaining: int = Field(..., description="Requests left in the current window.")
    reset_after_seconds: int = Field(..., description="Seconds until the current window ends.")
