"""
ZipMetro Backend — Order Schemas
==================================

What:  Request/response models for /api/orders and /api/admin/orders.
Why:   Line-item prices and the order total are computed server-side, so the
       create request carries product ids and quantities only.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from zipmetro.schemas.common import EntityId

# What: Every status an order may be moved to
ORDER_STATUSES = (
    "pending",
    "confirmed",
    "preparing",
    "out_for_delivery",
    "delivered",
    "cancelled",
)


class OrderItemIn(BaseModel):
    product_id: EntityId = Field(description="Product to order")
    quantity: int = Field(default=1, ge=1, description="Units of the product")


class OrderCreate(BaseModel):
    """
    What:  Checkout payload.
    Who:   POST /api/orders, with or without a bearer token (guest checkout).
    """
    customer_name: Optional[str] = Field(default=None, description="Recipient name (required)")
    customer_phone: Optional[str] = Field(default=None, description="Recipient phone (required)")
    delivery_address: Optional[str] = Field(default=None, description="Delivery address (required)")
    delivery_window: Optional[str] = Field(default=None, description="Requested window, ASAP if omitted")
    order_notes: Optional[str] = Field(default=None, description="Free-text notes for the driver")
    items: Optional[List[OrderItemIn]] = Field(default=None, description="At least one line item")
    age_confirmed: bool = Field(default=False, description="Customer confirmed the legal age")


class OrderStatusUpdate(BaseModel):
    status: Optional[str] = Field(default=None, description=f"One of: {', '.join(ORDER_STATUSES)}")


class OrderItemResponse(BaseModel):
    id: EntityId = Field(description="Line item identifier")
    order_id: EntityId = Field(description="Owning order")
    product_id: EntityId = Field(description="Ordered product")
    quantity: int = Field(description="Units ordered")
    price: float = Field(description="Unit price at checkout")
    name: Optional[str] = Field(default=None, description="Product name")
    image: Optional[str] = Field(default=None, description="Product image")


class OrderResponse(BaseModel):
    """
    What:  An order with its line items.
    Who:   Returned by the order endpoints and the admin order list.

    `email` is the account email of the ordering user (null for guest orders).
    """
    id: EntityId = Field(description="Order identifier")
    user_id: Optional[EntityId] = Field(default=None, description="Ordering user, null for guests")
    email: Optional[str] = Field(default=None, description="Ordering user's account email")
    customer_name: str = Field(description="Recipient name")
    customer_phone: str = Field(description="Recipient phone")
    delivery_address: str = Field(description="Delivery address")
    delivery_window: Optional[str] = Field(default=None, description="Requested window")
    order_notes: Optional[str] = Field(default=None, description="Notes for the driver")
    status: str = Field(description="Current order status")
    total: float = Field(description="Order total at checkout prices")
    created_at: Optional[datetime] = Field(default=None, description="Placed at (UTC)")
    updated_at: Optional[datetime] = Field(default=None, description="Last change (UTC)")
    items: List[OrderItemResponse] = Field(default_factory=list, description="Line items")

    model_config = {"from_attributes": True}
