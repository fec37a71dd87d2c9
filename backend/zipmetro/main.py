"""
ZipMetro Backend — FastAPI Application Factory
================================================

What:  Creates and configures the FastAPI application instance.
Why:   Centralizes configuration, store selection, middleware, routes and
       lifecycle in one place.
How:   Factory pattern: create_app(settings) returns a configured app with
       its own store facade and settings-bound services on app.state.
Who:   uvicorn (uvicorn zipmetro.main:app); tests call create_app() with
       their own Settings.
When:  Once at server startup.

Application Architecture:
    ┌───────────────────────────────────────────────────────────┐
    │                        FastAPI App                        │
    │                                                           │
    │  Middleware Chain:                                        │
    │  ┌────────────┐ ┌────────┐ ┌─────────┐ ┌──────────────┐   │
    │  │ Rate Limit │→│ Req ID │→│ Logging │→│ Sec. Headers │   │
    │  └────────────┘ └────────┘ └─────────┘ └──────────────┘   │
    │                                                           │
    │  Routes:                                                  │
    │  /api/auth  /api/products  /api/orders  /api/users        │
    │  /api/upload  /api/admin  /health                         │
    │                                                           │
    │  Exception Handlers:                                      │
    │  Validation→400 │ Auth→401 │ Perm→403 │ NotFound→404      │
    │  RateLimit→429  │ Database/Store/Translation/File→500     │
    └───────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Configure logging
    2. Warn about insecure configuration defaults
    3. Connect the store (SQLite: create tables; MongoDB: connect + indexes)
    4. Ensure the admin account; seed the catalog if configured
    A store that cannot be reached is logged, not fatal: the process keeps
    serving (health reports it) and the document store reconnects lazily.

    Shutdown:
    1. Close the store (dispose engine / close Motor client)
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from zipmetro import __version__
from zipmetro.config import Settings, settings as default_settings
from zipmetro.exceptions import (
    AuthenticationError,
    CircuitBreakerOpenError,
    DatabaseError,
    FileStorageError,
    NotFoundError,
    PermissionDeniedError,
    StoreUnavailableError,
    ValidationError,
    ZipMetroError,
)
from zipmetro.middleware.logging import RequestLoggingMiddleware
from zipmetro.middleware.rate_limit import RateLimitMiddleware
from zipmetro.middleware.request_id import RequestIDMiddleware, request_id_var
from zipmetro.middleware.security_headers import SecurityHeadersMiddleware
from zipmetro.routes import admin, auth, health, orders, products, upload, users
from zipmetro.services.auth_service import AuthService
from zipmetro.services.file_service import FileService
from zipmetro.services.seed import seed_products
from zipmetro.store.facade import StoreFacade

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(settings: Settings) -> None:
    """
    Configure logging for the whole process.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Called once during startup, before anything else logs.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party loggers that are noisy at INFO/DEBUG
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("pymongo").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings: Settings = app.state.settings
    store: StoreFacade = app.state.store

    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging(settings)
    logger.info("=" * 60)
    logger.info("ZipMetro Backend starting up (store: %s)...", store.backend)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        if settings.is_production:
            logger.error("Configuration error: %s", str(e))
        else:
            logger.warning("Insecure development configuration: %s", str(e))

    try:
        await store.connect()
        await app.state.auth_service.ensure_admin(store)
        if settings.seed_products_path:
            try:
                await seed_products(store, settings.seed_products_path)
            except (OSError, ValueError, ValidationError) as e:
                logger.error(
                    "Product seed from %s failed: %s", settings.seed_products_path, str(e)
                )
    except StoreUnavailableError as e:
        logger.error("Store unavailable at startup: %s | Context: %s", e.message, e.context)
        logger.error("Serving anyway; store calls will fail until it is reachable.")

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("API docs: http://%s:%d/docs", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("ZipMetro Backend shutting down...")
    await store.close()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(error: str, message: str, details: Optional[dict] = None) -> dict:
    body = {"error": error, "message": message, "request_id": request_id_var.get("")}
    if details:
        body["details"] = details
    return body


def register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    """
    Maps exception types to HTTP status codes and the error envelope
    {error, message, details?, request_id}.

    Handler hierarchy:
        ValidationError, RequestValidationError → 400
        AuthenticationError                     → 401
        PermissionDeniedError                   → 403
        NotFoundError                           → 404
        Rate limit (middleware)                 → 429 (+ Retry-After)
        CircuitBreakerOpenError                 → 500 (+ Retry-After)
        DatabaseError (and subclasses)          → 500
        FileStorageError                        → 500
        ZipMetroError (base), Exception         → 500

    Server errors: generic message in production, the fault detail otherwise.
    The full context is always logged server-side.
    """

    def server_error(error: str, exc: ZipMetroError, headers: Optional[dict] = None) -> JSONResponse:
        if settings.is_production:
            body = _error_body(error, "An internal error occurred. Please try again later.")
        else:
            body = _error_body(error, exc.message, exc.context)
        return JSONResponse(status_code=500, content=jsonable_encoder(body), headers=headers)

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return JSONResponse(
            status_code=400,
            content=jsonable_encoder(_error_body("validation_error", exc.message, exc.context)),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = first.get("msg", "Invalid request")
        if location:
            message = f"{location}: {message}"
        logger.warning("[%s] Request validation error: %s", request_id_var.get(""), message)
        return JSONResponse(
            status_code=400,
            content=jsonable_encoder(
                _error_body("validation_error", message, {"errors": errors})
            ),
        )

    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(request: Request, exc: AuthenticationError):
        return JSONResponse(
            status_code=401,
            content=_error_body("authentication_error", exc.message),
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(PermissionDeniedError)
    async def handle_permission_denied(request: Request, exc: PermissionDeniedError):
        return JSONResponse(status_code=403, content=_error_body("forbidden", exc.message))

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content=_error_body("not_found", exc.message))

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            message = "API route not found" if request.url.path.startswith("/api/") else "Route not found"
            return JSONResponse(status_code=404, content=_error_body("not_found", message))
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body("http_error", str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(CircuitBreakerOpenError)
    async def handle_circuit_breaker(request: Request, exc: CircuitBreakerOpenError):
        logger.warning("[%s] Circuit breaker open: %s", request_id_var.get(""), exc.message)
        return server_error(
            "store_unavailable", exc, headers={"Retry-After": str(exc.recovery_time)}
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error(
            "[%s] %s: %s | Context: %s",
            request_id_var.get(""),
            type(exc).__name__,
            exc.message,
            exc.context,
        )
        error = "store_unavailable" if isinstance(exc, StoreUnavailableError) else "database_error"
        return server_error(error, exc)

    @app.exception_handler(FileStorageError)
    async def handle_file_storage_error(request: Request, exc: FileStorageError):
        logger.error(
            "[%s] File storage error: %s | Context: %s",
            request_id_var.get(""),
            exc.message,
            exc.context,
        )
        return server_error("file_storage_error", exc)

    @app.exception_handler(ZipMetroError)
    async def handle_application_error(request: Request, exc: ZipMetroError):
        logger.error(
            "[%s] Unhandled application error: %s | Context: %s",
            request_id_var.get(""),
            exc.message,
            exc.context,
        )
        return server_error("server_error", exc)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        message = (
            "An unexpected error occurred. Please try again or contact support."
            if settings.is_production
            else str(exc)
        )
        return JSONResponse(status_code=500, content=_error_body("internal_server_error", message))


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Overrides the process settings (tests pass a temp database).

    The store backend is chosen here, once, from the settings; nothing is
    connected until the lifespan starts.
    """
    settings = settings or default_settings

    app = FastAPI(
        title="ZipMetro API",
        description=(
            "Storefront backend: product catalog, checkout, customer accounts "
            "and the admin dashboard, on SQLite or MongoDB."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.store = StoreFacade.from_settings(settings)
    app.state.auth_service = AuthService(settings)
    app.state.file_service = FileService(settings)

    # ── Register Middleware ───────────────────────────────────────────────
    # Middleware executes in REVERSE order of addition (last added runs first)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(SecurityHeadersMiddleware, hsts=settings.is_production)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        max_requests=settings.rate_limit_requests,
        window=settings.rate_limit_window,
        paths=settings.rate_limit_paths_list,
    )

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app, settings)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(auth.router)
    app.include_router(products.router)
    app.include_router(orders.router)
    app.include_router(users.router)
    app.include_router(upload.router)
    app.include_router(admin.router)
    app.include_router(health.router)

    return app


# ── Application Instance ─────────────────────────────────────────────────
# uvicorn expects `zipmetro.main:app` to be importable
app = create_app()
