"""Factory for creating counter store instances from a URL."""

from urllib.parse import urlsplit

from window_limiter.adapters.store.base import AbstractCounterStore
from window_limiter.adapters.store.in_memory import InMemoryCounterStore
from window_limiter.adapters.store.redis_store import RedisCounterStore
from window_limiter.core.errors import ValidationAppError

REDIS_SCHEMES = {"redis", "rediss", "unix"}


def create_counter_store(
    url: str,
    *,
    socket_timeout: float = 2.0,
    connect_timeout: float = 2.0,
) -> AbstractCounterStore:
    """Instantiate a counter store based on the URL scheme.

    Args:
        url: Store URL. ``redis://``, ``rediss://`` and ``unix://`` select
            Redis; ``memory://`` selects the process-local store.
        socket_timeout: Per-command timeout for network stores.
        connect_timeout: Connection timeout for network stores.

    Returns:
        AbstractCounterStore: Store instance (not yet pinged).

    Raises:
        ValidationAppError: If the scheme is not supported.
    """
    scheme = urlsplit(url).scheme.lower()

    if scheme in REDIS_SCHEMES:
        return RedisCounterStore.from_url(
            url,
            socket_timeout=socket_timeout,
            connect_timeout=connect_timeout,
        )

    if scheme == "memory":
        return InMemoryCounterStore()

    raise ValidationAppError(
        code="store_unknown_scheme",
        message=(
            f"Unsupported store URL scheme: '{scheme}'. "
            "Supported schemes: redis, rediss, unix, memory"
        ),
        details={"field": "store.url"},
    )
