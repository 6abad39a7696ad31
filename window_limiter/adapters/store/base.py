"""Counter store interfaces.

The rate limiter depends on this abstraction (not a concrete client) so any
store offering atomic per-key scripting, per-key TTL and plain reads can back
it. Implementations must translate their client's failures into
``StoreError`` / ``StoreConnectionError``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

# Returned by TTL reads when the key is absent or carries no expiry.
NO_TTL = -1


@dataclass(frozen=True)
class EvalResult:
    """Raw outcome of one atomic window evaluation.

    Attributes:
        allowed: Whether the evaluated request was counted.
        count: Counter value after the evaluation.
        ttl: Seconds left in the window, or ``NO_TTL``.
    """

    allowed: bool
    count: int
    ttl: int


class AbstractCounterStore(ABC):
    """Interface for fixed-window counter stores."""

    @abstractmethod
    def evaluate(self, key: str, max_requests: int, window_seconds: int) -> EvalResult:
        """Atomically check and update the window counter stored at ``key``.

        A missing key is created with count 1 and an expiry of
        ``window_seconds``. An existing key below ``max_requests`` is
        incremented without touching its expiry. An existing key at or above
        ``max_requests`` is left as is and the request is denied. The TTL is
        read inside the same atomic unit.

        Args:
            key: Fully derived counter key.
            max_requests: Requests allowed per window.
            window_seconds: Window length applied when a window starts.

        Returns:
            EvalResult describing the decision and the counter state.

        Raises:
            StoreError: If the store cannot execute the operation.
        """
        raise NotImplementedError

    @abstractmethod
    def get_count(self, key: str) -> int:
        """Read the counter without mutating it (0 when the key is absent)."""
        raise NotImplementedError

    @abstractmethod
    def get_ttl(self, key: str) -> int:
        """Read the key's remaining TTL in whole seconds, or ``NO_TTL``."""
        raise NotImplementedError

    @abstractmethod
    def ping(self) -> None:
        """Verify the store is reachable.

        Raises:
            StoreConnectionError: If the store cannot be reached.
        """
        raise NotImplementedError

    def close(self) -> None:
        """Release client resources. Stores without any may ignore this."""
