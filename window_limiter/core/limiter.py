"""Fixed-window rate limiter.

Each identifier gets one counter in the backing store under
``{key_prefix}:{identifier}``. The first request of a window creates the
counter with an expiry of ``window`` seconds; later requests increment it
without moving the expiry, so a window always ends ``window`` seconds after
its first request. Once the counter reaches ``max_requests`` further checks
are denied until the store expires the key.

This is a fixed (tumbling) window counter, not a sliding log or token bucket.

The limiter holds no counts in process memory. Every decision comes from a
fresh store round-trip, which is what keeps the limit consistent across
threads, processes and hosts sharing the store.

Identifiers are embedded verbatim, so avoid colons in identifiers from
different namespaces that could collide once prefixed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta

from window_limiter.adapters.store.base import AbstractCounterStore
from window_limiter.adapters.store.factory import create_counter_store
from window_limiter.core.config import Settings
from window_limiter.core.errors import RateLimitExceeded, StoreError, ValidationAppError
from window_limiter.core.logging import hash_identifier

logger = logging.getLogger(__name__)


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class RateLimitConfig:
    """Quota applied to every identifier of one limiter.

    Attributes:
        key_prefix: Namespace for counter keys.
        max_requests: Requests allowed per window.
        window_seconds: Window length in whole seconds.
    """

    key_prefix: str
    max_requests: int
    window_seconds: int

    def __post_init__(self) -> None:
        if not self.key_prefix:
            raise ValidationAppError(
                code="invalid_key_prefix",
                message="key_prefix must be a non-empty string",
                details={"field": "key_prefix"},
            )
        if not _is_int(self.max_requests) or self.max_requests < 1:
            raise ValidationAppError(
                code="invalid_max_requests",
                message="max_requests must be an integer >= 1",
                details={"field": "max_requests"},
            )
        if not _is_int(self.window_seconds) or self.window_seconds < 1:
            raise ValidationAppError(
                code="invalid_window",
                message="window must be a whole number of seconds, at least one",
                details={"field": "window"},
            )

    @classmethod
    def build(
        cls, key_prefix: str, max_requests: int, window: int | float | timedelta
    ) -> "RateLimitConfig":
        """Build a config from a window given as seconds or a timedelta.

        Integral floats (``60.0``) are accepted; ``1.5`` is not.

        Raises:
            ValidationAppError: If the window is not a whole number of seconds
                or any value is out of range.
        """
        seconds = window.total_seconds() if isinstance(window, timedelta) else window
        if isinstance(seconds, float):
            if not seconds.is_integer():
                raise ValidationAppError(
                    code="invalid_window",
                    message="window must be a whole number of seconds",
                    details={"field": "window"},
                )
            seconds = int(seconds)
        return cls(key_prefix=key_prefix, max_requests=max_requests, window_seconds=seconds)


@dataclass(frozen=True)
class RateLimitResult:
    """Decision for one ``check`` call.

    Attributes:
        allowed: Whether the request was counted.
        limit: Max requests per window.
        count: Requests counted in the current window.
        remaining: Requests left in the current window (0 when denied).
        reset_after_seconds: Seconds until the window ends, -1 if unknown.
    """

    allowed: bool
    limit: int
    count: int
    remaining: int
    reset_after_seconds: int


class RateLimiter:
    """Distributed fixed-window rate limiter facade."""

    def __init__(self, store: AbstractCounterStore, config: RateLimitConfig) -> None:
        self._store = store
        self._config = config

    @classmethod
    def from_settings(cls, settings: Settings) -> "RateLimiter":
        """Build and connect a limiter from the settings container."""

        return connect(
            settings.store.url,
            key_prefix=settings.limiter.key_prefix,
            max_requests=settings.limiter.max_requests,
            window=settings.limiter.window_seconds,
            socket_timeout=settings.store.socket_timeout_seconds,
            connect_timeout=settings.store.connect_timeout_seconds,
        )

    @property
    def config(self) -> RateLimitConfig:
        return self._config

    @property
    def store(self) -> AbstractCounterStore:
        return self._store

    def build_key(self, identifier: str) -> str:
        """Derive the store key for an identifier.

        Raises:
            ValidationAppError: If the identifier is empty.
        """
        if not identifier:
            raise ValidationAppError(
                code="invalid_identifier",
                message="identifier must be a non-empty string",
                details={"field": "identifier"},
            )
        return f"{self._config.key_prefix}:{identifier}"

    def check(self, identifier: str) -> RateLimitResult:
        """Count one request for ``identifier`` if its quota allows it.

        Args:
            identifier: Caller identity (user id, IP, API key).

        Returns:
            RateLimitResult for the allowed request.

        Raises:
            RateLimitExceeded: The quota for the current window is used up.
                The denied attempt is not counted.
            StoreError: The store failed; no decision was made.
        """
        key = self.build_key(identifier)
        limit = self._config.max_requests

        try:
            outcome = self._store.evaluate(key, limit, self._config.window_seconds)
        except StoreError as exc:
            logger.error(
                "rate_limit.store_error",
                extra={
                    "key_hash": hash_identifier(identifier),
                    "error_code": exc.code,
                    "operation": "check",
                },
            )
            raise

        result = RateLimitResult(
            allowed=outcome.allowed,
            limit=limit,
            count=outcome.count,
            remaining=max(0, limit - outcome.count),
            reset_after_seconds=outcome.ttl,
        )

        if outcome.allowed:
            logger.debug(
                "rate_limit.allowed",
                extra={
                    "key_hash": hash_identifier(identifier),
                    "limit": limit,
                    "remaining": result.remaining,
                    "reset_after_s": result.reset_after_seconds,
                },
            )
            return result

        logger.info(
            "rate_limit.denied",
            extra={
                "key_hash": hash_identifier(identifier),
                "limit": limit,
                "count": outcome.count,
                "retry_after_s": outcome.ttl,
            },
        )
        raise RateLimitExceeded(
            code="rate_limit_exceeded",
            message="Rate limit exceeded. Try again later.",
            details={
                "limit": limit,
                "remaining": 0,
                "retry_after": max(0, outcome.ttl),
            },
            result=result,
        )

    def get_remaining(self, identifier: str) -> int:
        """Return the requests left in the current window without counting one.

        An identifier without an active window has its full quota.

        Raises:
            StoreError: The store failed.
        """
        count = self._store.get_count(self.build_key(identifier))
        return max(0, self._config.max_requests - count)

    def get_time_remaining(self, identifier: str) -> int:
        """Return seconds until the identifier's window ends, or -1 without one.

        Raises:
            StoreError: The store failed.
        """
        return self._store.get_ttl(self.build_key(identifier))

    def close(self) -> None:
        self._store.close()


def connect(
    store_url: str,
    key_prefix: str,
    max_requests: int,
    window: int | float | timedelta,
    *,
    socket_timeout: float = 2.0,
    connect_timeout: float = 2.0,
) -> RateLimiter:
    """Create a limiter and verify the store is reachable.

    Args:
        store_url: Store URL (see ``create_counter_store``).
        key_prefix: Namespace for counter keys.
        max_requests: Requests allowed per window.
        window: Window length, in seconds or as a timedelta.
        socket_timeout: Per-command store timeout in seconds.
        connect_timeout: Store connection timeout in seconds.

    Returns:
        RateLimiter: Connected limiter.

    Raises:
        ValidationAppError: If the configuration or URL scheme is invalid.
        StoreConnectionError: If the store cannot be reached.
        StoreError: If the store is reachable but rejects the ping.
    """
    config = RateLimitConfig.build(key_prefix, max_requests, window)
    store = create_counter_store(
        store_url,
        socket_timeout=socket_timeout,
        connect_timeout=connect_timeout,
    )
    try:
        store.ping()
    except StoreError:
        store.close()
        raise

    logger.info(
        "store.connected",
        extra={
            "store_backend": type(store).__name__,
            "key_prefix": config.key_prefix,
            "limit": config.max_requests,
            "window_s": config.window_seconds,
        },
    )
    return RateLimiter(store, config)
