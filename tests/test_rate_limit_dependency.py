"""Tests for the FastAPI rate limiting dependency."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from fastapi import Depends, FastAPI, Request
from fastapi.testclient import TestClient

from window_limiter.adapters.store.in_memory import InMemoryCounterStore
from window_limiter.core import rate_limit
from window_limiter.core.config import settings
from window_limiter.core.errors import StoreConnectionError
from window_limiter.core.exception_handlers import setup_exception_handlers
from window_limiter.core.logging import hash_identifier
from window_limiter.core.rate_limit import (
    build_rate_limit_identifier,
    enforce_rate_limit,
    get_rate_limiter,
)


@pytest.fixture
def app(monkeypatch: pytest.MonkeyPatch) -> FastAPI:
    monkeypatch.setattr(settings.limiter, "max_requests", 2)
    monkeypatch.setattr(settings.limiter, "window_seconds", 60)

    app = FastAPI()
    setup_exception_handlers(app)

    @app.get("/protected", dependencies=[Depends(enforce_rate_limit)])
    def protected() -> dict:
        return {"ok": True}

    return app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


def test_allows_requests_up_to_limit_then_429(client: TestClient):
    headers = {"X-API-Key": "key-a"}

    first = client.get("/protected", headers=headers)
    second = client.get("/protected", headers=headers)
    third = client.get("/protected", headers=headers)

    assert first.status_code == 200
    assert first.headers["X-RateLimit-Limit"] == "2"
    assert first.headers["X-RateLimit-Remaining"] == "1"
    assert second.headers["X-RateLimit-Remaining"] == "0"

    assert third.status_code == 429
    assert third.json()["error"]["code"] == "rate_limit_exceeded"
    assert 1 <= int(third.headers["Retry-After"]) <= 60


def test_api_keys_are_limited_independently(client: TestClient):
    for _ in range(2):
        client.get("/protected", headers={"X-API-Key": "key-a"})

    assert client.get("/protected", headers={"X-API-Key": "key-a"}).status_code == 429
    assert client.get("/protected", headers={"X-API-Key": "key-b"}).status_code == 200


def test_falls_back_to_client_ip(client: TestClient):
    assert client.get("/protected").status_code == 200
    assert client.get("/protected").status_code == 200
    assert client.get("/protected").status_code == 429


def test_disabled_limiter_skips_store(client: TestClient, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(settings.limiter, "enabled", False)
    monkeypatch.setattr(settings.store, "url", "redis://unreachable.invalid:6379/0")

    for _ in range(5):
        assert client.get("/protected").status_code == 200


def test_store_outage_returns_503_not_allow(client: TestClient, monkeypatch: pytest.MonkeyPatch):
    limiter = MagicMock()
    limiter.check.side_effect = StoreConnectionError(code="store_unavailable", message="down")
    monkeypatch.setattr(rate_limit, "get_rate_limiter", lambda: limiter)

    response = client.get("/protected")

    assert response.status_code == 503
    assert response.json()["error"]["code"] == "store_unavailable"


def test_headers_omitted_when_disabled(client: TestClient, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(settings.limiter, "include_headers", False)

    response = client.get("/protected")

    assert response.status_code == 200
    assert "X-RateLimit-Limit" not in response.headers


def test_api_key_is_hashed_in_identifier():
    request = MagicMock(spec=Request)

    identifier = build_rate_limit_identifier(request, "sk-live-123")

    assert identifier == f"api_key:{hash_identifier('sk-live-123')}"
    assert "sk-live-123" not in identifier


def test_limiter_is_rebuilt_when_config_changes(monkeypatch: pytest.MonkeyPatch):
    first = get_rate_limiter()
    assert get_rate_limiter() is first
    assert isinstance(first.store, InMemoryCounterStore)

    monkeypatch.setattr(settings.limiter, "max_requests", settings.limiter.max_requests + 1)

    second = get_rate_limiter()
    assert second is not first
    assert second.config.max_requests == first.config.max_requests + 1

