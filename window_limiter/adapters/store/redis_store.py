"""Redis counter store adapter.

The window evaluation runs as one Lua script, so Redis executes the
read-check-increment-expire sequence without interleaving any other command.
"""

from __future__ import annotations

import logging

import redis

from window_limiter.adapters.store.base import NO_TTL, AbstractCounterStore, EvalResult
from window_limiter.core.errors import StoreConnectionError, StoreError

logger = logging.getLogger(__name__)

# KEYS[1] = counter key, ARGV[1] = max requests, ARGV[2] = window seconds.
# Returns {allowed (0/1), count after evaluation, ttl seconds}.
WINDOW_SCRIPT = """
local key = KEYS[1]
local limit = tonumber(ARGV[1])
local window = tonumber(ARGV[2])

local current = redis.call("GET", key)
if not current then
    redis.call("SET", key, 1, "EX", window)
    return {1, 1, redis.call("TTL", key)}
end

current = tonumber(current)
local allowed = 0
if current < limit then
    current = redis.call("INCR", key)
    allowed = 1
end

local ttl = redis.call("TTL", key)
if ttl == -1 then
    -- a counter without expiry would never reset
    redis.call("EXPIRE", key, window)
    ttl = window
end

return {allowed, current, ttl}
"""


def _translate_error(exc: redis.RedisError, operation: str) -> StoreError:
    """Map a redis-py exception onto the store error taxonomy."""

    details = {"backend": "redis", "operation": operation}
    if isinstance(exc, (redis.ConnectionError, redis.TimeoutError)):
        return StoreConnectionError(
            code="store_unavailable",
            message=f"Redis unavailable during {operation}",
            details=details,
        )
    return StoreError(
        code="store_error",
        message=f"Redis error during {operation}",
        details=details,
    )


class RedisCounterStore(AbstractCounterStore):
    """Counter store backed by a Redis server.

    The client's connection pool is the only shared resource; the store
    keeps no counts in process memory.
    """

    def __init__(self, client: redis.Redis) -> None:
        """Wrap an existing Redis client.

        Args:
            client: Redis client created with ``decode_responses=True``.
        """
        self._client = client
        self._script = client.register_script(WINDOW_SCRIPT)

    @classmethod
    def from_url(
        cls,
        url: str,
        *,
        socket_timeout: float = 2.0,
        connect_timeout: float = 2.0,
    ) -> "RedisCounterStore":
        """Create a store from a redis://, rediss:// or unix:// URL.

        Args:
            url: Redis connection URL.
            socket_timeout: Timeout for a single command round-trip in seconds.
            connect_timeout: Timeout for opening a connection in seconds.

        Returns:
            RedisCounterStore: Store bound to a new connection pool.
        """
        client = redis.Redis.from_url(
            url,
            socket_timeout=socket_timeout,
            socket_connect_timeout=connect_timeout,
            decode_responses=True,
        )
        return cls(client)

    def evaluate(self, key: str, max_requests: int, window_seconds: int) -> EvalResult:
        try:
            allowed, count, ttl = self._script(keys=[key], args=[max_requests, window_seconds])
        except redis.RedisError as exc:
            raise _translate_error(exc, "evaluate") from exc

        return EvalResult(allowed=bool(int(allowed)), count=int(count), ttl=int(ttl))

    def get_count(self, key: str) -> int:
        try:
            value = self._client.get(key)
        except redis.RedisError as exc:
            raise _translate_error(exc, "get_count") from exc

        if value is None:
            return 0
        try:
            return int(value)
        except ValueError as exc:
            raise StoreError(
                code="store_invalid_value",
                message=f"Counter value is not an integer: {value!r}",
                details={"backend": "redis", "operation": "get_count"},
            ) from exc

    def get_ttl(self, key: str) -> int:
        try:
            ttl = int(self._client.ttl(key))
        except redis.RedisError as exc:
            raise _translate_error(exc, "get_ttl") from exc

        # Redis answers -2 for a missing key and -1 for a key without expiry.
        return ttl if ttl >= 0 else NO_TTL

    def ping(self) -> None:
        try:
            self._client.ping()
        except redis.RedisError as exc:
            raise _translate_error(exc, "ping") from exc
        logger.debug("store.ping", extra={"backend": "redis"})

    def close(self) -> None:
        self._client.close()
