"""End-to-end tests against a real Redis server.

Run with ``REDIS_URL=redis://127.0.0.1:6379/15 pytest``; skipped otherwise.
"""

from __future__ import annotations

import itertools
import os
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from window_limiter.core.errors import RateLimitExceeded, StoreConnectionError
from window_limiter.core.limiter import RateLimiter, connect

REDIS_URL = os.environ.get("REDIS_URL")

pytestmark = pytest.mark.skipif(not REDIS_URL, reason="REDIS_URL not set")

_prefix_counter = itertools.count(1)


def _limiter(max_requests: int, window: int) -> RateLimiter:
    prefix = f"test_rate_limiter_{os.getpid()}_{time.time_ns()}_{next(_prefix_counter)}"
    return connect(REDIS_URL, prefix, max_requests, window)


def test_basic_rate_limiting() -> None:
    limiter = _limiter(3, 1)

    limiter.check("user_1")
    limiter.check("user_1")
    limiter.check("user_1")
    with pytest.raises(RateLimitExceeded):
        limiter.check("user_1")

    time.sleep(2)

    assert limiter.get_time_remaining("user_1") == -1
    limiter.check("user_1")
    assert limiter.get_remaining("user_1") == 2


def test_multiple_identifiers() -> None:
    limiter = _limiter(2, 1)

    limiter.check("user_1")
    limiter.check("user_2")
    limiter.check("user_1")
    limiter.check("user_2")
    with pytest.raises(RateLimitExceeded):
        limiter.check("user_1")
    with pytest.raises(RateLimitExceeded):
        limiter.check("user_2")

    time.sleep(2)

    limiter.check("user_1")
    limiter.check("user_2")


def test_get_remaining() -> None:
    limiter = _limiter(5, 5)

    assert limiter.get_remaining("user_3") == 5
    limiter.check("user_3")
    assert limiter.get_remaining("user_3") == 4
    limiter.check("user_3")
    assert limiter.get_remaining("user_3") == 3


def test_get_time_remaining() -> None:
    limiter = _limiter(2, 3)

    limiter.check("user_4")
    ttl1 = limiter.get_time_remaining("user_4")
    assert 0 < ttl1 <= 3

    time.sleep(2)
    ttl2 = limiter.get_time_remaining("user_4")
    assert 0 <= ttl2 <= 1

    time.sleep(2)
    assert limiter.get_time_remaining("user_4") == -1


def test_denied_checks_leave_counter_and_ttl() -> None:
    limiter = _limiter(1, 30)

    limiter.check("user_5")
    ttl_before = limiter.get_time_remaining("user_5")
    for _ in range(5):
        with pytest.raises(RateLimitExceeded):
            limiter.check("user_5")

    assert limiter.get_remaining("user_5") == 0
    assert limiter.get_time_remaining("user_5") <= ttl_before
    assert limiter.store.get_count(limiter.build_key("user_5")) == 1


def test_concurrent_checks_are_bounded() -> None:
    limiter = _limiter(10, 30)

    def attempt(_: int) -> bool:
        try:
            limiter.check("hot")
        except RateLimitExceeded:
            return False
        return True

    with ThreadPoolExecutor(max_workers=16) as pool:
        outcomes = list(pool.map(attempt, range(100)))

    assert outcomes.count(True) == 10


def test_unreachable_store_fails_fast() -> None:
    with pytest.raises(StoreConnectionError):
        connect("redis://127.0.0.1:1/0", "p", 1, 1, connect_timeout=0.2, socket_timeout=0.2)
