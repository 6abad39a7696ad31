"""Global exception handlers for consistent error responses.

Design:
- RateLimitExceeded → 429 with Retry-After and X-RateLimit-* headers
- StoreError → 503 (the store could not make a decision)
- Other AppError subclasses → 400
- Unexpected Exception → generic 500 (safety net)
- All responses include request_id for distributed tracing
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from window_limiter.core.config import settings
from window_limiter.core.errors import AppError, RateLimitExceeded, StoreError
from window_limiter.core.logging import get_request_id

logger = logging.getLogger(__name__)


def _error_response(exc: AppError, status_code: int, headers: dict[str, str] | None = None) -> JSONResponse:
    error_content = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }
    if exc.details:
        error_content["details"] = exc.details

    return JSONResponse(
        status_code=status_code,
        content={"error": error_content},
        headers=headers,
    )


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Handle an exhausted quota with HTTP 429.

    Args:
        request: FastAPI request object.
        exc: RateLimitExceeded raised by the limiter.

    Returns:
        JSONResponse with status 429 and retry headers when enabled.
    """
    details = exc.details or {}
    retry_after = int(details.get("retry_after", 0))

    logger.warning(
        "rate_limit.exceeded",
        extra={
            "limit": details.get("limit"),
            "retry_after_s": retry_after,
            "path": request.url.path,
        },
    )

    headers: dict[str, str] = {}
    if settings.limiter.include_headers:
        headers["Retry-After"] = str(retry_after)
        headers["X-RateLimit-Limit"] = str(details.get("limit", ""))
        headers["X-RateLimit-Remaining"] = "0"
        headers["X-RateLimit-Reset"] = str(retry_after)

    return _error_response(exc, 429, headers or None)


async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    """Handle a backing store failure with HTTP 503.

    The request is neither allowed nor denied; clients should retry later.
    """
    logger.error(
        "store_error_handled",
        extra={
            "error_code": exc.code,
            "error_type": type(exc.__cause__).__name__ if exc.__cause__ else None,
            "request_path": request.url.path,
        },
    )
    return _error_response(exc, 503)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle remaining domain errors (validation and the like) with HTTP 400."""
    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": 400,
            "has_details": bool(exc.details),
        },
    )
    return _error_response(exc, 400)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs detailed information for debugging while returning a generic message
    (no stack traces to the client).
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": get_request_id(),
            }
        },
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with the FastAPI app.

    Starlette resolves handlers through the exception's MRO, so the more
    specific RateLimitExceeded and StoreError win over AppError.

    Args:
        app: FastAPI application instance.
    """
    app.exception_handler(RateLimitExceeded)(rate_limit_exceeded_handler)
    app.exception_handler(StoreError)(store_error_handler)
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
