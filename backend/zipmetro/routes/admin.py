"""
ZipMetro Backend — Admin Routes
=================================

What:  Dashboard figures, site settings and the recent-orders feed.
Who:   The admin dashboard. Every route requires an admin bearer token.
"""

import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends

from zipmetro.dependencies import get_store, require_admin
from zipmetro.schemas.admin import AdminStats, SettingResponse, SettingUpdate
from zipmetro.schemas.common import ErrorResponse
from zipmetro.schemas.order import OrderResponse
from zipmetro.services.admin_service import admin_service
from zipmetro.services.order_service import order_service
from zipmetro.store.base import Row
from zipmetro.store.facade import StoreFacade

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/admin",
    tags=["Admin"],
    dependencies=[Depends(require_admin)],
    responses={
        401: {"description": "Authentication required", "model": ErrorResponse},
        403: {"description": "Admin access required", "model": ErrorResponse},
    },
)


@router.get("/stats", response_model=AdminStats, summary="Sales figures")
async def get_stats(store: StoreFacade = Depends(get_store)) -> dict:
    return await admin_service.stats(store)


@router.get(
    "/settings",
    response_model=Dict[str, Optional[str]],
    summary="All site settings as {key: value}",
)
async def get_settings(store: StoreFacade = Depends(get_store)) -> Dict[str, Optional[str]]:
    return await admin_service.get_settings(store)


@router.put(
    "/settings",
    response_model=SettingResponse,
    responses={400: {"description": "Key is required", "model": ErrorResponse}},
    summary="Create or update one site setting",
)
async def put_setting(body: SettingUpdate, store: StoreFacade = Depends(get_store)) -> dict:
    return await admin_service.put_setting(store, body.key, body.value)


@router.get(
    "/orders",
    response_model=List[OrderResponse],
    summary="The 100 most recent orders with items",
)
async def recent_orders(store: StoreFacade = Depends(get_store)) -> List[Row]:
    return await order_service.recent_orders(store)
