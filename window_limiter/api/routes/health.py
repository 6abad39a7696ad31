from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from window_limiter.core.limiter import RateLimiter
from window_limiter.core.rate_limit import get_rate_limiter

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(limiter: Annotated[RateLimiter, Depends(get_rate_limiter)]) -> dict:
    """Health check endpoint.

    Pings the backing store so load balancers take the instance out of
    rotation when it cannot make rate limit decisions. A store failure is
    answered with 503 by the store error handler.

    Returns:
        dict: A dictionary with a single "status" key set to "ok".
    """

    limiter.store.ping()
    return {"status": "ok"}
