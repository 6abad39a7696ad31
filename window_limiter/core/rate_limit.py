"""Rate limiting dependency for FastAPI routes.

This module wires the limiter into the HTTP layer.

Rate limiting strategy:
- Fixed-window limit per API key, shared by every worker through the store.
- If the API key header is missing, fall back to the client IP.
- Denials surface as ``RateLimitExceeded`` and store failures as
  ``StoreError``; the exception handlers turn them into 429 and 503.
"""

from __future__ import annotations

import logging
import threading
from typing import Annotated

from fastapi import Header, Request, Response

from window_limiter.core.config import settings
from window_limiter.core.limiter import RateLimiter, RateLimitResult
from window_limiter.core.logging import hash_identifier

logger = logging.getLogger(__name__)


_limiter: RateLimiter | None = None
_limiter_config: tuple | None = None
_limiter_lock = threading.Lock()


def _current_config() -> tuple:
    return (
        settings.store.url,
        settings.store.socket_timeout_seconds,
        settings.store.connect_timeout_seconds,
        settings.limiter.key_prefix,
        settings.limiter.max_requests,
        settings.limiter.window_seconds,
    )


def get_rate_limiter() -> RateLimiter:
    """Return the process-wide rate limiter instance.

    Only the store client is cached; counts always live in the store. If the
    configuration changes (primarily in tests), the limiter is rebuilt.

    Returns:
        RateLimiter: Connected limiter.

    Raises:
        StoreConnectionError: If the store cannot be reached.
    """

    global _limiter, _limiter_config

    config = _current_config()
    with _limiter_lock:
        if _limiter is None or _limiter_config != config:
            if _limiter is not None:
                _limiter.close()
                _limiter = None
            _limiter = RateLimiter.from_settings(settings)
            _limiter_config = config
        return _limiter


def reset_rate_limiter() -> None:
    """Close and forget the cached limiter."""

    global _limiter, _limiter_config

    with _limiter_lock:
        if _limiter is not None:
            _limiter.close()
        _limiter = None
        _limiter_config = None


def build_rate_limit_identifier(request: Request, x_api_key: str | None) -> str:
    """Build the limiter identifier for the current request.

    API keys are hashed so the raw key never becomes part of a store key.

    Args:
        request: FastAPI request.
        x_api_key: API key value from the X-API-Key header.

    Returns:
        str: Namespaced identifier.
    """

    if x_api_key:
        return f"api_key:{hash_identifier(x_api_key)}"

    client_host = request.client.host if request.client else "unknown"
    return f"ip:{client_host}"


def apply_rate_limit_headers(response: Response, result: RateLimitResult) -> None:
    """Set X-RateLimit-* headers describing the current window."""

    response.headers["X-RateLimit-Limit"] = str(result.limit)
    response.headers["X-RateLimit-Remaining"] = str(result.remaining)
    response.headers["X-RateLimit-Reset"] = str(max(0, result.reset_after_seconds))


def enforce_rate_limit(
    request: Request,
    response: Response,
    x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
) -> None:
    """FastAPI dependency enforcing rate limits.

    When enabled, counts one request against the requester's quota.

    Args:
        request: FastAPI request.
        response: Response whose headers receive the quota state.
        x_api_key: API key from X-API-Key header.

    Raises:
        RateLimitExceeded: When the requester is over quota.
        StoreError: When the store cannot make a decision.
    """

    if not settings.limiter.enabled:
        return

    limiter = get_rate_limiter()
    identifier = build_rate_limit_identifier(request, x_api_key)
    result = limiter.check(identifier)

    logger.info(
        "rate_limit.request_counted",
        extra={
            "key_type": "api_key" if x_api_key else "ip",
            "key_hash": hash_identifier(identifier),
            "remaining": result.remaining,
            "path": request.url.path,
        },
    )

    if settings.limiter.include_headers:
        apply_rate_limit_headers(response, result)
