"""
NoteKeep Backend — Request Logging Middleware
===============================================

What:  One access-log line per HTTP request.
How:   Times the downstream call, then logs the matched route template,
       status, duration, request ID and (when the auth guard ran) user ID.
Who:   Applied to every request via Starlette middleware.
When:  After RequestIDMiddleware (uses request ID for correlation).

Example:
    PUT /api/notes/{note_id}/archive 200 4.2ms [a1b2c3d4] user=6f1c...

The route template is logged instead of the raw path, so note ids do not
end up in log indexes and per-endpoint latency can be grouped directly.

What we log vs what we DON'T log (privacy):
    ✅ Log: method, route, status, duration, IP, request ID, user ID
    ❌ Don't log: request bodies (passwords, note content), Authorization
       headers, query strings (the OAuth callback carries codes in them)
"""

import logging
import time
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.middleware.request_id import request_id_var

logger = logging.getLogger("notekeep.access")

# Probed every few seconds by Docker and load balancers
QUIET_PATHS = {"/health"}


def _level_for(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


def _route_template(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


def _user_id(request: Request) -> Optional[str]:
    user = getattr(request.state, "user", None)
    return str(user.id) if user is not None else None


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs each request at INFO, WARNING (4xx) or ERROR (5xx)."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in QUIET_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - started) * 1000

        rid = request_id_var.get("")
        route = _route_template(request)
        user_id = _user_id(request)
        client_ip = request.client.host if request.client else "unknown"

        logger.log(
            _level_for(response.status_code),
            "%s %s %d %.1fms [%s] user=%s from %s",
            request.method,
            route,
            response.status_code,
            duration_ms,
            rid,
            user_id or "-",
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "route": route,
                "status": response.status_code,
                "duration_ms": round(duration_ms, 2),
                "user_id": user_id,
                "client_ip": client_ip,
            },
        )
        return response
