"""
ZipMetro Backend — Product Routes
===================================

What:  Public catalog browsing and admin catalog maintenance.
Who:   Storefront product grid and detail pages; admin product editor.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response

from zipmetro.dependencies import get_store, require_admin
from zipmetro.schemas.common import ErrorResponse
from zipmetro.schemas.product import ProductCreate, ProductResponse, ProductUpdate
from zipmetro.services.product_service import product_service
from zipmetro.store.base import Row
from zipmetro.store.facade import StoreFacade

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/products", tags=["Products"])


@router.get(
    "",
    response_model=List[ProductResponse],
    summary="List products",
    description=(
        "Products newest first. Only active products are listed unless `active` "
        "is given explicitly; `search` matches name or description, case-insensitively."
    ),
)
async def list_products(
    category: Optional[str] = Query(default=None, description="Exact category"),
    search: Optional[str] = Query(default=None, description="Substring of name or description"),
    active: Optional[str] = Query(default=None, description="'true' or 'false'; default active only"),
    store: StoreFacade = Depends(get_store),
) -> List[Row]:
    # Anything but the literal 'true' selects inactive products
    active_filter = True if active is None else active == "true"
    return await product_service.list_products(
        store, category=category, search=search, active=active_filter
    )


@router.get(
    "/{product_id}",
    response_model=ProductResponse,
    responses={404: {"description": "Product not found", "model": ErrorResponse}},
    summary="Get one product",
)
async def get_product(product_id: str, store: StoreFacade = Depends(get_store)) -> Row:
    return await product_service.get_product(store, product_id)


@router.post(
    "",
    response_model=ProductResponse,
    status_code=201,
    responses={
        400: {"description": "Name, category or price missing", "model": ErrorResponse},
        403: {"description": "Admin access required", "model": ErrorResponse},
    },
    summary="Create a product (admin)",
)
async def create_product(
    body: ProductCreate,
    store: StoreFacade = Depends(get_store),
    admin: Row = Depends(require_admin),
) -> Row:
    return await product_service.create_product(store, body.model_dump())


@router.put(
    "/{product_id}",
    response_model=ProductResponse,
    responses={
        403: {"description": "Admin access required", "model": ErrorResponse},
        404: {"description": "Product not found", "model": ErrorResponse},
    },
    summary="Update a product (admin)",
    description="Partial update: only the fields sent are changed.",
)
async def update_product(
    product_id: str,
    body: ProductUpdate,
    store: StoreFacade = Depends(get_store),
    admin: Row = Depends(require_admin),
) -> Row:
    return await product_service.update_product(
        store, product_id, body.model_dump(exclude_unset=True)
    )


@router.delete(
    "/{product_id}",
    status_code=204,
    responses={
        403: {"description": "Admin access required", "model": ErrorResponse},
        404: {"description": "Product not found", "model": ErrorResponse},
    },
    summary="Delete a product (admin)",
)
async def delete_product(
    product_id: str,
    store: StoreFacade = Depends(get_store),
    admin: Row = Depends(require_admin),
) -> Response:
    await product_service.delete_product(store, product_id)
    return Response(status_code=204)
