"""
Hbook Backend — Rate Limiting Middleware
=========================================

What:  Per-client sliding window rate limiter.
How:   Keeps the timestamps of each client's requests inside the current
       window; a client at the limit gets 429 with Retry-After.
When:  First in the middleware chain, before the session is looked up.

Algorithm: Sliding Window Log
    1. Drop the client's timestamps older than now - window
    2. count >= limit → reject; retry after the oldest timestamp leaves the window
    3. Otherwise record now and continue

Scope:
    State lives in this process. Multiple uvicorn workers each enforce
    their own window.
"""

import logging
import time
from collections import defaultdict, deque
from typing import Deque, Dict

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from hbook.config import settings
from hbook.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)

# Sweep idle clients every this many recorded requests
CLEANUP_INTERVAL = 1000


def client_key(request: Request) -> str:
    """First X-Forwarded-For hop when behind a proxy, else the peer address."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory sliding window rate limiter.

    Configuration (from settings):
        rate_limit_requests: Max requests per window
        rate_limit_window:   Window length in seconds

    Health checks and the API docs are never limited.
    """

    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}

    def __init__(self, app, limit: int = None, window: int = None, **kwargs):
        super().__init__(app, **kwargs)
        self.limit = limit or settings.rate_limit_requests
        self.window = window or settings.rate_limit_window
        self._requests: Dict[str, Deque[float]] = defaultdict(deque)
        self._recorded = 0

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        key = client_key(request)
        now = time.time()

        try:
            self.check(key, now)
        except RateLimitExceededError as exc:
            # The app's exception handlers sit inside this middleware
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "message": exc.message,
                    "details": exc.context,
                },
                headers={"Retry-After": str(exc.retry_after)},
            )

        return await call_next(request)

    def check(self, key: str, now: float) -> None:
        """
        Record a request for `key` or raise if the client is over the limit.

        Raises:
            RateLimitExceededError: carrying the seconds until a slot frees up.
        """
        window_start = now - self.window
        timestamps = self._requests[key]
        while timestamps and timestamps[0] <= window_start:
            timestamps.popleft()

        if len(timestamps) >= self.limit:
            retry_after = int(timestamps[0] + self.window - now) + 1
            logger.warning(
                "Rate limit exceeded for %s: %d requests in %ds window",
                key,
                len(timestamps),
                self.window,
            )
            raise RateLimitExceededError(retry_after=retry_after)

        timestamps.append(now)
        self._recorded += 1
        if self._recorded % CLEANUP_INTERVAL == 0:
            self._cleanup_inactive(window_start)

    def _cleanup_inactive(self, window_start: float) -> None:
        """Forget clients with no request inside the current window."""
        inactive = [
            key for key, timestamps in self._requests.items()
            if not timestamps or timestamps[-1] <= window_start
        ]
        for key in inactive:
            del self._requests[key]

        if inactive:
            logger.debug("Cleaned up %d inactive rate limit entries", len(inactive))
