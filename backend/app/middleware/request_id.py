"""
NoteKeep Backend — Request ID Middleware
==========================================

What:  Assigns an ID to each incoming request and echoes it in the response.
How:   Reuses a well-formed client X-Request-ID, otherwise generates one;
       stores it in a ContextVar and on request.state; returns it as a header.
Who:   Applied to every request via Starlette middleware.

Every log line written while handling the request, and every error body,
carries the same ID, so a user can quote it from an error message.

Client-supplied IDs are accepted only if they are short and made of
[A-Za-z0-9._-]; anything else (newlines, spaces) is replaced, since the ID
is written verbatim into log lines.
"""

import re
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

HEADER = "X-Request-ID"
CLIENT_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,64}$")

# Coroutine-local storage for the current request ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def new_request_id() -> str:
    return uuid.uuid4().hex[:8]


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Binds a correlation ID to the request, its logs and its response."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        supplied = request.headers.get(HEADER, "")
        rid = supplied if CLIENT_ID_PATTERN.match(supplied) else new_request_id()

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers[HEADER] = rid
        return response
