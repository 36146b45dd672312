"""
SealNote Backend — Access Logging Middleware
==============================================

One log line per request: method, route, status, duration, request id.

Privacy:
    Note ids are bearer tokens (whoever has the link can read the note), so
    the logged path has the id segment replaced by `{id}`. Bodies,
    ciphertext and query strings are never logged.
"""

import logging
import re
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.middleware.request_id import request_id_var

logger = logging.getLogger("sealnote.access")

_NOTE_PATH = re.compile(r"^/api/note/[^/]+")


def redact_path(path: str) -> str:
    """Replace the note id in /api/note/<id>[/...] with a placeholder."""
    return _NOTE_PATH.sub("/api/note/{id}", path)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs each request at a level chosen by status code:
    5xx → ERROR, 4xx → WARNING, otherwise INFO. /health is not logged.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path == "/health":
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        rid = request_id_var.get("")
        path = redact_path(request.url.path)
        client_ip = request.client.host if request.client else "unknown"

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
