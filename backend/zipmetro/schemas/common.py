"""
ZipMetro Backend — Shared Response Schemas
============================================

What:  Response models used by more than one router: errors, health, and
       plain acknowledgements.
Why:   One definition of the error envelope for the OpenAPI docs of every route.
Who:   Route `responses={...}` declarations and the health route.
"""

from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field

# What: An entity identifier as published above the store facade.
# int on the relational store, 24-char hex string on the document store.
EntityId = Union[int, str]


class ErrorResponse(BaseModel):
    """
    What:  Standard error response format for all API errors.
    Who:   Returned by the global exception handlers in main.py.

    Example:
        {
            "error": "validation_error",
            "message": "Email and password are required",
            "details": {"field": "email"},
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Additional context (omitted for server errors in production)",
    )
    request_id: Optional[str] = Field(
        default=None,
        description="Request ID for support and log correlation",
    )


class HealthResponse(BaseModel):
    """
    What:  Health check response for monitoring systems.
    Who:   Returned by GET /health.

    Status values:
        healthy:   Store reachable
        degraded:  Store unreachable but the circuit is still closed (transient)
        unhealthy: Store unreachable with the circuit open, or SQLite unusable
    """
    status: str = Field(description="Overall status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    store_backend: str = Field(description="Active store: document or relational")
    database: str = Field(description="Store connectivity: connected or disconnected")
    circuit_breaker: Optional[str] = Field(
        default=None,
        description="Document store circuit state: closed, open, half_open (null for SQLite)",
    )
    uptime_seconds: float = Field(description="Seconds since service started")


class MessageResponse(BaseModel):
    message: str = Field(description="Human-readable confirmation")
