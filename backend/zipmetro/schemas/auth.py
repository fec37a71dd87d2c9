"""
ZipMetro Backend — Authentication Schemas
===========================================

What:  Request/response models for /api/auth.
Why:   Request fields are optional at the schema level so the service can
       answer a missing credential with the storefront's own message
       ("Email and password are required") instead of a generic
       validation error.
"""

from typing import Optional

from pydantic import BaseModel, Field

from zipmetro.schemas.common import EntityId


class RegisterRequest(BaseModel):
    email: Optional[str] = Field(default=None, description="Login email (unique)")
    password: Optional[str] = Field(default=None, description="Plain-text password")
    first_name: Optional[str] = Field(default=None, description="Given name")
    last_name: Optional[str] = Field(default=None, description="Family name")
    phone: Optional[str] = Field(default=None, description="Contact phone number")


class LoginRequest(BaseModel):
    email: Optional[str] = Field(default=None, description="Login email")
    password: Optional[str] = Field(default=None, description="Plain-text password")


class UserPublic(BaseModel):
    """
    What:  The account fields safe to hand back to any client.
    Who:   Embedded in AuthResponse and VerifyResponse.
    Never includes the password hash.
    """
    id: EntityId = Field(description="User identifier")
    email: str = Field(description="Login email")
    first_name: Optional[str] = Field(default=None, description="Given name")
    last_name: Optional[str] = Field(default=None, description="Family name")
    role: str = Field(description="customer or admin")

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    """Returned by register (201) and login (200)."""
    token: str = Field(description="Bearer token (HS256 JWT)")
    user: UserPublic = Field(description="The authenticated account")


class VerifyResponse(BaseModel):
    user: UserPublic = Field(description="The account the token belongs to")
