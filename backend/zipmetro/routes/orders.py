"""
ZipMetro Backend — Order Routes
=================================

What:  Checkout, order history and fulfilment status changes.
Who:   Storefront checkout (guests included) and order history pages; the
       admin order board for status changes.

Visibility:
    Customers only ever see their own orders; someone else's order id is a
    404, not a 403, so order ids cannot be probed.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends

from zipmetro.dependencies import get_current_user, get_optional_user, get_store, require_admin
from zipmetro.schemas.common import ErrorResponse
from zipmetro.schemas.order import OrderCreate, OrderResponse, OrderStatusUpdate
from zipmetro.services.order_service import order_service
from zipmetro.store.base import Row
from zipmetro.store.facade import StoreFacade

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/orders", tags=["Orders"])


@router.get(
    "",
    response_model=List[OrderResponse],
    responses={401: {"description": "Authentication required", "model": ErrorResponse}},
    summary="List orders (own, or all for admins)",
)
async def list_orders(
    store: StoreFacade = Depends(get_store),
    user: Row = Depends(get_current_user),
) -> List[Row]:
    return await order_service.list_orders(store, user)


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    responses={
        401: {"description": "Authentication required", "model": ErrorResponse},
        404: {"description": "Order not found", "model": ErrorResponse},
    },
    summary="Get one order with its items",
)
async def get_order(
    order_id: str,
    store: StoreFacade = Depends(get_store),
    user: Row = Depends(get_current_user),
) -> Row:
    return await order_service.get_order(store, order_id, user)


@router.post(
    "",
    response_model=OrderResponse,
    status_code=201,
    responses={400: {"description": "Invalid order", "model": ErrorResponse}},
    summary="Place an order",
    description=(
        "Guest checkout is allowed; with a valid bearer token the order is linked "
        "to the account. Prices and the total are taken from the catalog."
    ),
)
async def create_order(
    body: OrderCreate,
    store: StoreFacade = Depends(get_store),
    user: Optional[Row] = Depends(get_optional_user),
) -> Row:
    return await order_service.create_order(store, body.model_dump(), user)


@router.patch(
    "/{order_id}/status",
    response_model=OrderResponse,
    responses={
        400: {"description": "Invalid status", "model": ErrorResponse},
        403: {"description": "Admin access required", "model": ErrorResponse},
        404: {"description": "Order not found", "model": ErrorResponse},
    },
    summary="Change an order's status (admin)",
)
async def update_order_status(
    order_id: str,
    body: OrderStatusUpdate,
    store: StoreFacade = Depends(get_store),
    admin: Row = Depends(require_admin),
) -> Row:
    return await order_service.update_status(store, order_id, body.status)
