"""Tests for the rate limit service endpoints."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from window_limiter.adapters.store.in_memory import InMemoryCounterStore
from window_limiter.core.app_factory import create_app
from window_limiter.core.errors import StoreConnectionError
from window_limiter.core.limiter import RateLimitConfig, RateLimiter
from window_limiter.core.rate_limit import get_rate_limiter


@pytest.fixture
def limiter(clock) -> RateLimiter:
    return RateLimiter(
        InMemoryCounterStore(clock=clock),
        RateLimitConfig(key_prefix="svc", max_requests=3, window_seconds=60),
    )


@pytest.fixture
def client(limiter: RateLimiter) -> TestClient:
    app = create_app()
    app.dependency_overrides[get_rate_limiter] = lambda: limiter
    return TestClient(app)


def test_status_of_unknown_identifier(client: TestClient):
    response = client.get("/v1/limits/u1")

    assert response.status_code == 200
    assert response.json() == {
        "limit": 3,
        "remaining": 3,
        "reset_after_seconds": -1,
        "window_seconds": 60,
    }


def test_check_consumes_quota_until_429(client: TestClient, clock):
    bodies = [client.post("/v1/limits/u1/check").json() for _ in range(3)]

    assert [body["remaining"] for body in bodies] == [2, 1, 0]
    assert all(body["allowed"] for body in bodies)

    clock.return_value += 10
    denied = client.post("/v1/limits/u1/check")
    assert denied.status_code == 429
    assert denied.headers["Retry-After"] == "50"


def test_status_does_not_count_requests(client: TestClient):
    client.post("/v1/limits/u1/check")

    for _ in range(5):
        body = client.get("/v1/limits/u1").json()
        assert body["remaining"] == 2
        assert body["reset_after_seconds"] == 60


def test_window_expiry_restores_quota(client: TestClient, clock):
    for _ in range(3):
        client.post("/v1/limits/u1/check")

    clock.return_value += 60

    assert client.get("/v1/limits/u1").json()["reset_after_seconds"] == -1
    assert client.post("/v1/limits/u1/check").json()["remaining"] == 2


def test_health_reports_store_outage():
    limiter = MagicMock()
    limiter.store.ping.side_effect = StoreConnectionError(code="store_unavailable", message="down")
    app = create_app()
    app.dependency_overrides[get_rate_limiter] = lambda: limiter

    response = TestClient(app).get("/health")

    assert response.status_code == 503
    assert response.json()["error"]["code"] == "store_unavailable"
