"""Distributed fixed-window rate limiting backed by Redis."""

from window_limiter.core.errors import (
    RateLimiterError,
    RateLimitExceeded,
    StoreConnectionError,
    StoreError,
    ValidationAppError,
)
from window_limiter.core.limiter import RateLimitConfig, RateLimiter, RateLimitResult, connect

__all__ = [
    "RateLimitConfig",
    "RateLimitExceeded",
    "RateLimitResult",
    "RateLimiter",
    "RateLimiterError",
    "StoreConnectionError",
    "StoreError",
    "ValidationAppError",
    "connect",
]
