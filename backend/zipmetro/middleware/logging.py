"""
ZipMetro Backend — Request Logging Middleware
===============================================

What:  One access log line per request: method, path, status, duration,
       response size, request ID and client IP.
Why:   Uvicorn's own access log has no request ID and no duration.
When:  After RequestIDMiddleware, so the ID is already set.

What we log vs what we DON'T log (privacy):
    ✅ Log: method, path, status, duration, size, IP, request ID
    ❌ Don't log: request bodies (passwords, addresses, ID data), Authorization headers,
       query strings (search terms are customer input)
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from zipmetro.middleware.request_id import request_id_var

logger = logging.getLogger("zipmetro.access")

# Probes and the interactive docs' asset fetches
QUIET_PATHS = frozenset({"/health", "/docs", "/redoc", "/openapi.json"})


def level_for(status: int) -> int:
    """5xx → ERROR, 4xx → WARNING, everything else → INFO."""
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in QUIET_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)

        entry = {
            "request_id": request_id_var.get(""),
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "duration_ms": elapsed_ms,
            "bytes": response.headers.get("content-length", "-"),
            "client_ip": request.client.host if request.client else "unknown",
        }
        logger.log(
            level_for(response.status_code),
            "%(method)s %(path)s %(status)d %(duration_ms).1fms %(bytes)sB [%(request_id)s] from %(client_ip)s",
            entry,
            extra=entry,
        )
        return response
