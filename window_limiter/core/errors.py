"""Application-level exception types.

This module defines the error taxonomy shared by the store adapters, the
rate limiter facade and the HTTP layer. Callers tell a store outage apart
from an exhausted quota by exception type, never by message text.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, NotRequired, TypedDict

if TYPE_CHECKING:
    from window_limiter.core.limiter import RateLimitResult


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep backward compatibility while encouraging
    consistent shapes across the codebase.
    """

    code: str
    message: str
    hint: str
    limit: int
    remaining: int
    retry_after: int
    backend: str
    operation: str
    field: str
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class RateLimiterError(AppError):
    """Base class for errors produced while making a rate limit decision."""


class StoreError(RateLimiterError):
    """Raised when the backing store fails to execute an operation.

    The store client's original exception is always chained as
    ``__cause__``. The limiter never retries and never turns this into an
    allow or a deny.
    """


class StoreConnectionError(StoreError):
    """Raised when the backing store is unreachable or a call timed out."""


@dataclass
class RateLimitExceeded(RateLimiterError):
    """Raised by ``check`` when the identifier has exhausted its quota.

    Attributes:
        result: The decision that was denied, including the remaining
            window time.
    """

    result: RateLimitResult | None = None
