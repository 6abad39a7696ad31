"""In-memory fixed-window counter store.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: a single lock makes every evaluation atomic.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from window_limiter.adapters.store.base import NO_TTL, AbstractCounterStore, EvalResult


@dataclass
class _CounterState:
    count: int
    expires_at: float


class InMemoryCounterStore(AbstractCounterStore):
    """Counter store keeping windows in a process-local dict.

    Expiry mirrors a store-managed TTL: an entry whose ``expires_at`` has
    passed is treated as absent and dropped on the next access. Windows of
    identifiers that never return are swept out during ``evaluate`` at most
    once per ``sweep_interval`` seconds.

    Important:
        This store does not coordinate across processes. Use the Redis store
        whenever more than one process enforces the same quota.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.monotonic,
        sweep_interval: float = 60.0,
    ) -> None:
        """Initialize the store.

        Args:
            clock: Time source returning seconds as a float.
            sweep_interval: Minimum seconds between sweeps of expired windows.
        """
        self._clock = clock
        self._lock = threading.RLock()
        self._state_by_key: dict[str, _CounterState] = {}
        self._sweep_interval = sweep_interval
        self._next_sweep_at = clock() + sweep_interval

    def _sweep_expired_locked(self, now: float) -> None:
        if now < self._next_sweep_at:
            return
        expired = [k for k, state in self._state_by_key.items() if state.expires_at <= now]
        for key in expired:
            del self._state_by_key[key]
        self._next_sweep_at = now + self._sweep_interval

    def _get_live_state_locked(self, key: str, now: float) -> _CounterState | None:
        state = self._state_by_key.get(key)
        if state is not None and state.expires_at <= now:
            del self._state_by_key[key]
            return None
        return state

    @staticmethod
    def _ttl(state: _CounterState, now: float) -> int:
        return max(0, int(math.ceil(state.expires_at - now)))

    def evaluate(self, key: str, max_requests: int, window_seconds: int) -> EvalResult:
        now = self._clock()

        with self._lock:
            self._sweep_expired_locked(now)
            state = self._get_live_state_locked(key, now)

            if state is None:
                state = _CounterState(count=1, expires_at=now + window_seconds)
                self._state_by_key[key] = state
                return EvalResult(allowed=True, count=1, ttl=self._ttl(state, now))

            if state.count < max_requests:
                state.count += 1
                return EvalResult(allowed=True, count=state.count, ttl=self._ttl(state, now))

            return EvalResult(allowed=False, count=state.count, ttl=self._ttl(state, now))

    def get_count(self, key: str) -> int:
        with self._lock:
            state = self._get_live_state_locked(key, self._clock())
            return state.count if state is not None else 0

    def get_ttl(self, key: str) -> int:
        now = self._clock()
        with self._lock:
            state = self._get_live_state_locked(key, now)
            return self._ttl(state, now) if state is not None else NO_TTL

    def ping(self) -> None:
        return None

    def stats(self) -> dict[str, int]:
        """Return the number of stored windows, expired ones included."""

        with self._lock:
            return {"entries": len(self._state_by_key)}

    def clear(self) -> None:
        """Drop every window (test helper)."""

        with self._lock:
            self._state_by_key.clear()
