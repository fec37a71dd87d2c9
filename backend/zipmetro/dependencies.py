"""
ZipMetro Backend — FastAPI Dependencies
=========================================

What:  Request-scoped accessors for the store, the per-app services and the
       authenticated caller.
Why:   Handlers declare what they need (`user: Row = Depends(get_current_user)`)
       instead of parsing headers themselves.
How:   The store and settings-bound services live on app.state (set by
       create_app); the caller is resolved from the Authorization header.

Auth Levels:
    get_optional_user:  guest allowed; a bad or missing token means guest
    get_current_user:   401 unless a valid token for an existing user
    require_admin:      403 unless that user has the admin role
"""

from typing import Optional

from fastapi import Depends, Request

from zipmetro.exceptions import AuthenticationError, PermissionDeniedError
from zipmetro.services.auth_service import AuthService
from zipmetro.services.file_service import FileService
from zipmetro.store.base import Row
from zipmetro.store.facade import StoreFacade


def get_store(request: Request) -> StoreFacade:
    return request.app.state.store


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_file_service(request: Request) -> FileService:
    return request.app.state.file_service


def bearer_token(request: Request) -> Optional[str]:
    """The token of an `Authorization: Bearer <token>` header, if any."""
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_current_user(
    request: Request,
    store: StoreFacade = Depends(get_store),
    auth: AuthService = Depends(get_auth_service),
) -> Row:
    token = bearer_token(request)
    if token is None:
        raise AuthenticationError(message="Authentication required")
    return await auth.authenticate(store, token)


async def get_optional_user(
    request: Request,
    store: StoreFacade = Depends(get_store),
    auth: AuthService = Depends(get_auth_service),
) -> Optional[Row]:
    token = bearer_token(request)
    if token is None:
        return None
    try:
        return await auth.authenticate(store, token)
    except AuthenticationError:
        return None


async def require_admin(user: Row = Depends(get_current_user)) -> Row:
    if user.get("role") != "admin":
        raise PermissionDeniedError()
    return user
