"""
Hbook Backend — Middleware Tests
=================================

What we test:
    ✅ Sliding window: limit reached → RateLimitExceededError with Retry-After
    ✅ Old timestamps leave the window
    ✅ Idle clients are forgotten
    ✅ Client key honours X-Forwarded-For
    ✅ 429 response shape through a real app; /health is never limited
"""

import logging
from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from starlette.requests import Request

from hbook.exceptions import RateLimitExceededError
from hbook.middleware.logging import level_for_status
from hbook.middleware.rate_limit import RateLimitMiddleware, client_key


def make_request(headers=None, client=("10.0.0.1", 5000)) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


class TestSlidingWindow:

    def setup_method(self):
        self.limiter = RateLimitMiddleware(app=MagicMock(), limit=2, window=60)

    def test_third_request_is_rejected(self):
        self.limiter.check("ip", 1000.0)
        self.limiter.check("ip", 1000.0)

        with pytest.raises(RateLimitExceededError) as exc_info:
            self.limiter.check("ip", 1000.0)

        assert exc_info.value.retry_after == 61
        assert exc_info.value.context["retry_after"] == 61

    def test_window_slides(self):
        self.limiter.check("ip", 1000.0)
        self.limiter.check("ip", 1030.0)

        # First request has left the window
        self.limiter.check("ip", 1060.5)

        with pytest.raises(RateLimitExceededError) as exc_info:
            self.limiter.check("ip", 1061.0)
        assert exc_info.value.retry_after == 30

    def test_clients_are_independent(self):
        self.limiter.check("a", 1000.0)
        self.limiter.check("a", 1000.0)
        self.limiter.check("b", 1000.0)

    def test_idle_clients_are_forgotten(self):
        self.limiter.check("idle", 1000.0)
        self.limiter.check("busy", 2000.0)

        self.limiter._cleanup_inactive(window_start=1500.0)

        assert "idle" not in self.limiter._requests
        assert "busy" in self.limiter._requests


class TestClientKey:

    def test_peer_address(self):
        assert client_key(make_request()) == "10.0.0.1"

    def test_first_forwarded_hop(self):
        request = make_request({"X-Forwarded-For": "203.0.113.9, 10.0.0.2"})
        assert client_key(request) == "203.0.113.9"

    def test_no_client(self):
        assert client_key(make_request(client=None)) == "unknown"


class TestRateLimitResponse:

    @pytest.mark.asyncio
    async def test_429_with_retry_after(self):
        app = FastAPI()

        @app.get("/ping")
        async def ping():
            return {"ok": True}

        @app.get("/health")
        async def health():
            return {"status": "healthy"}

        app.add_middleware(RateLimitMiddleware, limit=1, window=60)

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            assert (await client.get("/ping")).status_code == 200
            limited = await client.get("/ping")
            for _ in range(3):
                assert (await client.get("/health")).status_code == 200

        assert limited.status_code == 429
        assert limited.json()["error"] == "rate_limit_exceeded"
        assert int(limited.headers["retry-after"]) >= 1


@pytest.mark.parametrize(
    "status_code,level",
    [(200, "INFO"), (404, "WARNING"), (500, "ERROR")],
)
def test_access_log_level(status_code, level):
    assert level_for_status(status_code) == getattr(logging, level)


def test_rate_limit_error_has_no_app_handler():
    """The middleware answers 429 itself; the app registers no handler for it."""
    from hbook.main import create_app

    assert RateLimitExceededError not in create_app().exception_handlers
