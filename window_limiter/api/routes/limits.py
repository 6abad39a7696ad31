"""Rate limit endpoints exposing the limiter as a service.

``GET`` inspects a window without counting a request; ``POST .../check``
counts one request and answers 429 once the quota is used up.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from window_limiter.core.limiter import RateLimiter
from window_limiter.core.rate_limit import get_rate_limiter
from window_limiter.schemas.limits import CheckResponse, LimitStatusResponse

router = APIRouter(tags=["Limits"])


@router.get("/limits/{identifier}", response_model=LimitStatusResponse)
def get_limit_status(
    identifier: str,
    limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
) -> LimitStatusResponse:
    """Report the identifier's remaining quota and window time.

    Args:
        identifier: Identifier whose window is inspected.
        limiter: Process-wide limiter.

    Returns:
        LimitStatusResponse: Current quota state; the counter is untouched.
    """
    return LimitStatusResponse(
        limit=limiter.config.max_requests,
        remaining=limiter.get_remaining(identifier),
        reset_after_seconds=limiter.get_time_remaining(identifier),
        window_seconds=limiter.config.window_seconds,
    )


@router.post("/limits/{identifier}/check", response_model=CheckResponse)
def check_limit(
    identifier: str,
    limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
) -> CheckResponse:
    """Count one request for the identifier.

    Raises:
        RateLimitExceeded: Rendered as 429 by the exception handlers.
        StoreError: Rendered as 503 by the exception handlers.
    """
    result = limiter.check(identifier)
    return CheckResponse(
        allowed=result.allowed,
        limit=result.limit,
        count=result.count,
        remaining=result.remaining,
        reset_after_seconds=result.reset_after_seconds,
    )
