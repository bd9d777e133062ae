"""
NoteKeep Backend — Rate Limiting Middleware
=============================================

What:  Per-IP sliding window rate limiter.
How:   Keeps a deque of recent request times per IP, in memory.
When:  First in the middleware chain.

Default budget: 100 requests per 15 minutes per IP
(settings.rate_limit_requests / settings.rate_limit_window).

Algorithm: Sliding Window Log
    1. Pop timestamps older than the window off the left of the IP's deque
    2. If the deque is full, answer 429; Retry-After is when its oldest
       entry leaves the window
    3. Otherwise append now and continue

The state lives in this middleware instance, so it is per process. A
multi-worker deployment needs a shared store (Redis) instead.
"""

import logging
import math
import time
from collections import deque
from typing import Deque, Dict, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from app.config import settings
from app.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)

# Sweep idle IPs once per this many admitted requests
SWEEP_INTERVAL = 1000

EXCLUDED_PATHS = frozenset({"/health", "/docs", "/openapi.json", "/redoc"})


def client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def too_many_requests(retry_after: int) -> JSONResponse:
    """429 in the standard error envelope."""
    exc = RateLimitExceededError(retry_after=retry_after)
    return JSONResponse(
        status_code=429,
        content={
            "success": False,
            "error": "rate_limit_exceeded",
            "message": exc.message,
            "details": exc.context,
        },
        headers={"Retry-After": str(retry_after)},
    )


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory sliding window rate limiter.

    `max_requests` and `window_seconds` default to the settings; tests
    pass small values to exercise the 429 path.
    """

    def __init__(
        self,
        app,
        max_requests: Optional[int] = None,
        window_seconds: Optional[int] = None,
        **kwargs,
    ):
        super().__init__(app, **kwargs)
        self.max_requests = max_requests or settings.rate_limit_requests
        self.window_seconds = window_seconds or settings.rate_limit_window
        self._hits: Dict[str, Deque[float]] = {}
        self._admitted = 0

    def _retry_after(self, key: str, now: float) -> Optional[int]:
        """Record a hit for `key`, or return seconds to wait if over budget."""
        hits = self._hits.setdefault(key, deque())
        cutoff = now - self.window_seconds
        while hits and hits[0] <= cutoff:
            hits.popleft()

        if len(hits) >= self.max_requests:
            return max(1, math.ceil(hits[0] + self.window_seconds - now))

        hits.append(now)
        return None

    def _sweep(self, now: float) -> None:
        cutoff = now - self.window_seconds
        idle = [key for key, hits in self._hits.items() if not hits or hits[-1] <= cutoff]
        for key in idle:
            del self._hits[key]
        if idle:
            logger.debug("Rate limiter dropped %d idle clients", len(idle))

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in EXCLUDED_PATHS:
            return await call_next(request)

        key = client_key(request)
        now = time.monotonic()
        retry_after = self._retry_after(key, now)

        if retry_after is not None:
            logger.warning(
                "Rate limit exceeded for %s: %d requests in %ds",
                key,
                self.max_requests,
                self.window_seconds,
            )
            return too_many_requests(retry_after)

        self._admitted += 1
        if self._admitted % SWEEP_INTERVAL == 0:
            self._sweep(now)

        return await call_next(request)
