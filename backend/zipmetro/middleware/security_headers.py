"""
ZipMetro Backend — Security Headers Middleware
================================================

What:  Adds browser hardening headers to every response.
Why:   The storefront SPA is served from the same origin as the API; these
       headers limit what an injected script or a framing page can do.
How:   Sets each header unless the route already set it.

Headers:
    Content-Security-Policy   same-origin scripts/styles, Google Fonts, any https image
    X-Content-Type-Options    nosniff
    X-Frame-Options           SAMEORIGIN
    Referrer-Policy           no-referrer
    Strict-Transport-Security only when running in production (behind TLS)
"""

from typing import Dict

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

CONTENT_SECURITY_POLICY = "; ".join(
    [
        "default-src 'self'",
        "style-src 'self' 'unsafe-inline' https://fonts.googleapis.com",
        "font-src 'self' https://fonts.gstatic.com",
        "img-src 'self' data: https: http:",
        "script-src 'self' 'unsafe-inline'",
    ]
)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """The interactive API docs load their assets from a CDN, so they get no CSP."""

    DOCS_PATHS = {"/docs", "/redoc"}

    def __init__(self, app, hsts: bool = False):
        super().__init__(app)
        self.headers: Dict[str, str] = {
            "Content-Security-Policy": CONTENT_SECURITY_POLICY,
            "X-Content-Type-Options": "nosniff",
            "X-Frame-Options": "SAMEORIGIN",
            "Referrer-Policy": "no-referrer",
        }
        if hsts:
            self.headers["Strict-Transport-Security"] = "max-age=15552000; includeSubDomains"

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await call_next(request)
        docs = request.url.path in self.DOCS_PATHS
        for name, value in self.headers.items():
            if docs and name == "Content-Security-Policy":
                continue
            response.headers.setdefault(name, value)
        return response
