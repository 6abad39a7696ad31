"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests. It
points the settings at the in-memory store so no test needs a Redis server
unless it asks for one explicitly.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["LIMITER_ENV"] = "testing"
os.environ["STORE_URL"] = "memory://"
os.environ.setdefault("RATE_LIMIT_KEY_PREFIX", "test_rate_limit")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from unittest.mock import Mock

import pytest

from window_limiter.adapters.store.in_memory import InMemoryCounterStore
from window_limiter.core.limiter import RateLimitConfig, RateLimiter
from window_limiter.core.rate_limit import reset_rate_limiter


@pytest.fixture
def clock() -> Mock:
    """Controllable time source starting at t=1000s."""
    return Mock(return_value=1000.0)


@pytest.fixture
def memory_store(clock: Mock) -> InMemoryCounterStore:
    return InMemoryCounterStore(clock=clock)


@pytest.fixture
def limiter(memory_store: InMemoryCounterStore) -> RateLimiter:
    """Limiter with max_requests=3 and a 60 second window."""
    return RateLimiter(
        memory_store,
        RateLimitConfig(key_prefix="test", max_requests=3, window_seconds=60),
    )


@pytest.fixture(autouse=True)
def _fresh_process_limiter():
    """Drop the cached process-wide limiter between tests."""
    reset_rate_limiter()
    yield
    reset_rate_limiter()
