"""
SealNote Backend — Request ID Middleware
==========================================

What:  Tags every request with a short correlation id and echoes it in the
       X-Request-ID response header.
Why:   Error bodies carry the id, so a user reporting "could not store
       note" hands support the exact log lines for that request without
       anyone ever needing to see the note itself.
How:   Honors a client-supplied X-Request-ID (bounded length), otherwise
       generates one; stores it in a ContextVar for the loggers and
       exception handlers.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own id
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# Client-supplied ids longer than this are replaced; they end up in log lines
MAX_REQUEST_ID_LENGTH = 64


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assigns a correlation id to each request (see module docstring)."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID", "")
        if not rid or len(rid) > MAX_REQUEST_ID_LENGTH:
            rid = uuid.uuid4().hex[:8]

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
