"""
ZipMetro Backend — Request ID Middleware
==========================================

What:  Assigns an ID to each request and returns it in X-Request-ID.
Why:   Every log line of one request, and its error body, share the ID.
How:   Uses the client's X-Request-ID when sent, otherwise a short UUID;
       stores it in a ContextVar for loggers and exception handlers.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Sets request_id_var and request.state.request_id; echoes the ID back."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # 8 chars is enough to correlate and stays readable in logs
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
