"""
ZipMetro Backend — Account Routes
===================================

What:  The signed-in customer's own profile, ID verification submission and
       notification preferences.
Who:   Storefront account page.
"""

import logging

from fastapi import APIRouter, Depends

from zipmetro.dependencies import get_current_user, get_store
from zipmetro.schemas.common import ErrorResponse, MessageResponse
from zipmetro.schemas.user import (
    IdSubmission,
    NotificationPreferences,
    ProfileResponse,
    ProfileUpdate,
)
from zipmetro.services.user_service import user_service
from zipmetro.store.base import Row
from zipmetro.store.facade import StoreFacade

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/users",
    tags=["Users"],
    responses={401: {"description": "Authentication required", "model": ErrorResponse}},
)


@router.get("/me", response_model=ProfileResponse, summary="Get own profile")
async def get_me(
    store: StoreFacade = Depends(get_store),
    user: Row = Depends(get_current_user),
) -> Row:
    return await user_service.get_profile(store, user["id"])


@router.put(
    "/me",
    response_model=ProfileResponse,
    summary="Update own profile",
    description="Sets first_name, last_name, phone and dob; omitted fields are cleared.",
)
async def update_me(
    body: ProfileUpdate,
    store: StoreFacade = Depends(get_store),
    user: Row = Depends(get_current_user),
) -> Row:
    return await user_service.update_profile(store, user["id"], body.model_dump())


@router.post(
    "/me/id",
    response_model=MessageResponse,
    responses={400: {"description": "Missing ID fields or consent", "model": ErrorResponse}},
    summary="Submit an ID for age verification",
)
async def submit_id(
    body: IdSubmission,
    store: StoreFacade = Depends(get_store),
    user: Row = Depends(get_current_user),
) -> MessageResponse:
    await user_service.submit_id(store, user["id"], body.model_dump())
    return MessageResponse(message="ID submitted for verification")


@router.get(
    "/me/notifications",
    response_model=NotificationPreferences,
    summary="Get notification preferences",
)
async def get_notifications(
    store: StoreFacade = Depends(get_store),
    user: Row = Depends(get_current_user),
) -> dict:
    return await user_service.get_notifications(store, user["id"])


@router.put(
    "/me/notifications",
    response_model=NotificationPreferences,
    summary="Replace notification preferences",
    description="Channels not sent are switched off.",
)
async def update_notifications(
    body: NotificationPreferences,
    store: StoreFacade = Depends(get_store),
    user: Row = Depends(get_current_user),
) -> dict:
    return await user_service.update_notifications(
        store, user["id"], body.model_dump(exclude_unset=True)
    )
