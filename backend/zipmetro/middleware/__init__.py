# Middleware package init
"""
ZipMetro Backend — Middleware Package
=======================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (order matters!):
    Request → [Rate Limit] → [Request ID] → [Logging] → [Security Headers] → [CORS] → Route

    1. Rate Limit FIRST: reject credential brute-forcing before any work
    2. Request ID: correlation ID for logs and error bodies
    3. Logging: method, path, status and duration with the request ID
    4. Security Headers: browser hardening headers on every response
    5. CORS: FastAPI's CORSMiddleware (handles preflight)
"""
