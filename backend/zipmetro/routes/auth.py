"""
ZipMetro Backend — Authentication Routes
==========================================

What:  Account creation, login and token verification.
Who:   The storefront's sign-up and sign-in forms; the SPA calls /verify on
       load to restore a session from a stored token.
Rate limited: /register and /login (see RateLimitMiddleware).
"""

import logging

from fastapi import APIRouter, Depends, Request

from zipmetro.dependencies import bearer_token, get_auth_service, get_store
from zipmetro.exceptions import AuthenticationError
from zipmetro.schemas.auth import (
    AuthResponse,
    LoginRequest,
    RegisterRequest,
    VerifyResponse,
)
from zipmetro.schemas.common import ErrorResponse
from zipmetro.services.auth_service import AuthService, public_user
from zipmetro.store.facade import StoreFacade

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=201,
    responses={
        400: {"description": "Missing fields or email already registered", "model": ErrorResponse},
        429: {"description": "Too many attempts", "model": ErrorResponse},
    },
    summary="Create a customer account",
)
async def register(
    body: RegisterRequest,
    store: StoreFacade = Depends(get_store),
    auth: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    token, user = await auth.register(
        store,
        email=body.email,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
        phone=body.phone,
    )
    return AuthResponse(token=token, user=user)


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={
        400: {"description": "Missing email or password", "model": ErrorResponse},
        401: {"description": "Invalid credentials", "model": ErrorResponse},
        429: {"description": "Too many attempts", "model": ErrorResponse},
    },
    summary="Exchange email and password for a bearer token",
)
async def login(
    body: LoginRequest,
    store: StoreFacade = Depends(get_store),
    auth: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    token, user = await auth.login(store, email=body.email, password=body.password)
    return AuthResponse(token=token, user=user)


@router.get(
    "/verify",
    response_model=VerifyResponse,
    responses={401: {"description": "Missing, invalid or expired token", "model": ErrorResponse}},
    summary="Resolve a bearer token to its account",
)
async def verify(
    request: Request,
    store: StoreFacade = Depends(get_store),
    auth: AuthService = Depends(get_auth_service),
) -> VerifyResponse:
    token = bearer_token(request)
    if token is None:
        raise AuthenticationError(message="No token provided")
    user = await auth.authenticate(store, token)
    return VerifyResponse(user=public_user(user))
