"""
ZipMetro Backend — Custom Exception Hierarchy
===============================================

What:  Application-specific exceptions for the error scenarios of the API and store.
Why:   Targeted handling with the right HTTP status code, without leaking
       internal details (query text, driver messages) to clients by default.
How:   Each exception carries a message and an optional context dict.
       Global exception handlers (registered in main.py) turn them into
       structured JSON error responses.

Exception Hierarchy:
    ZipMetroError (base)
    ├── ValidationError          → 400 Bad Request
    ├── AuthenticationError      → 401 Unauthorized
    ├── PermissionDeniedError    → 403 Forbidden
    ├── NotFoundError            → 404 Not Found
    ├── FileStorageError         → 500 Internal Server Error
    └── DatabaseError            → 500 Internal Server Error
        ├── TranslationError         (literal query outside the supported grammar)
        └── StoreUnavailableError    (store unreachable after retries)
            └── CircuitBreakerOpenError (connect attempts suspended)
"""

from typing import Any, Dict, Optional


class ZipMetroError(Exception):
    """
    Base exception for all ZipMetro application errors.

    Attributes:
        message:  User-facing error description
        context:  Additional debug info (logged; returned only outside production)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(ZipMetroError):
    """
    Raised when client input fails validation.

    When:    Missing required fields, invalid status value, duplicate email,
             unknown or inactive product in an order, bad upload.
    HTTP:    400 Bad Request
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthenticationError(ZipMetroError):
    """
    Raised when the caller cannot be identified.

    When:    Missing, malformed or expired bearer token; token for a deleted
             user; wrong email/password on login.
    HTTP:    401 Unauthorized
    """

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PermissionDeniedError(ZipMetroError):
    """Authenticated caller lacks the required role. HTTP 403."""

    def __init__(
        self,
        message: str = "Admin access required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(ZipMetroError):
    """
    Raised when a requested resource does not exist.

    Both store adapters return None for a missing row/document; services
    convert that into this exception so routes stay free of None checks.
    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"{resource.capitalize()} not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id is not None:
            ctx["resource_id"] = str(resource_id)
        super().__init__(message=message, context=ctx)


class FileStorageError(ZipMetroError):
    """Reading or writing an uploaded file failed. HTTP 500."""

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(ZipMetroError):
    """
    Raised when a store operation fails.

    What:    A query, insert, update or delete failed in either adapter.
    HTTP:    500 Internal Server Error

    Security Note:
        In production the response carries a generic message only. The
        context (statement, collection, driver error) is logged server-side.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class TranslationError(DatabaseError):
    """
    Raised when a literal query cannot be turned into a document-store plan.

    When:    No collection name, unparseable INSERT field list, unsupported
             statement verb or WHERE condition, placeholder/parameter count
             mismatch.
    """

    def __init__(
        self,
        message: str = "Query could not be translated",
        sql: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if sql is not None:
            ctx["sql"] = " ".join(sql.split())
        super().__init__(message=message, context=ctx)


class StoreUnavailableError(DatabaseError):
    """The document store could not be reached after all connection attempts."""

    def __init__(
        self,
        message: str = "The database is temporarily unavailable",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class CircuitBreakerOpenError(StoreUnavailableError):
    """
    Raised while the connection circuit breaker is OPEN.

    How circuit breaker works:
        CLOSED (normal) → failed connection rounds increment counter
        → After N failures → OPEN (reject immediately for recovery_time seconds)
        → After recovery_time → HALF-OPEN (allow one connection attempt)
        → Success → CLOSED, failure → OPEN again
    """

    def __init__(
        self,
        recovery_time: int = 30,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            "The database is temporarily unavailable due to repeated connection failures. "
            f"Retrying in approximately {recovery_time} seconds."
        )
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        super().__init__(message=message, context=ctx)
        self.recovery_time = recovery_time

