"""
ZipMetro Backend — Rate Limiting Middleware
=============================================

What:  Per-IP sliding window rate limiter on the credential endpoints.
Why:   Slows down password guessing against /api/auth/login and mass
       account creation against /api/auth/register.
How:   Tracks request timestamps per (IP, path) in memory.
When:  First in the middleware chain (rejects abuse before any processing).

Algorithm: Sliding Window Counter
    1. Each client/path pair gets a list of request timestamps
    2. On each request, drop timestamps older than the window
    3. If the remaining count >= limit, reject with 429 and Retry-After
    4. Otherwise record the timestamp and let the request through

Production Upgrade Path:
    In-memory state is per process. Behind several workers, move the
    counters to a shared store (e.g. Redis INCR with TTL).
"""

import logging
import time
from collections import defaultdict
from typing import Dict, Iterable, List, Tuple

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from zipmetro.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Sliding window limiter for a fixed set of paths.

    Args:
        max_requests: Requests allowed per client and path within the window
        window:       Window length in seconds
        paths:        Exact request paths the limit applies to; all other
                      paths pass through untouched
    """

    def __init__(
        self,
        app,
        max_requests: int = 20,
        window: int = 900,
        paths: Iterable[str] = ("/api/auth/login", "/api/auth/register"),
    ):
        super().__init__(app)
        self.max_requests = max_requests
        self.window = window
        self.paths = frozenset(paths)
        self._requests: Dict[Tuple[str, str], List[float]] = defaultdict(list)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path not in self.paths or request.method == "OPTIONS":
            return await call_next(request)

        # Behind a proxy this is the proxy's address; run uvicorn with
        # --proxy-headers so request.client reflects X-Forwarded-For
        client_ip = (
            getattr(request.client, "host", "unknown")
            if request.client
            else "unknown"
        )
        key = (client_ip, path)

        now = time.time()
        window_start = now - self.window

        # ── Sliding Window: Clean old entries ─────────────────────────────
        self._requests[key] = [ts for ts in self._requests[key] if ts > window_start]

        # ── Check rate limit ──────────────────────────────────────────────
        if len(self._requests[key]) >= self.max_requests:
            oldest = self._requests[key][0]
            retry_after = int(oldest + self.window - now) + 1

            logger.warning(
                "Rate limit exceeded for IP %s on %s: %d requests in %ds window",
                client_ip,
                path,
                len(self._requests[key]),
                self.window,
            )
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "message": f"Too many requests. Please wait {retry_after} seconds before retrying.",
                    "details": {"retry_after": retry_after},
                    "request_id": request_id_var.get(""),
                },
                headers={"Retry-After": str(retry_after)},
            )

        # ── Record this request ───────────────────────────────────────────
        self._requests[key].append(now)

        # ── Periodic cleanup of inactive clients ──────────────────────────
        if sum(len(v) for v in self._requests.values()) % 1000 == 0:
            self._cleanup_inactive(window_start)

        return await call_next(request)

    def _cleanup_inactive(self, window_start: float) -> None:
        """Drops client/path entries with no request inside the window."""
        inactive = [
            key for key, timestamps in self._requests.items()
            if not timestamps or max(timestamps) < window_start
        ]
        for key in inactive:
            del self._requests[key]

        if inactive:
            logger.debug("Cleaned up %d inactive rate-limit entries", len(inactive))
