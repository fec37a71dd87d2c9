"""
ZipMetro Backend — Order Service (Checkout & Fulfilment)
==========================================================

What:  Order placement, order history, status changes and the admin order feed.
Why:   Totals must be computed from the catalog, never trusted from the client,
       and the same join logic must run on a store without joins.
How:   Typed store operations. Orders are enriched in Python: the ordering
       user's email, and for each line item the product's name and image.
Who:   routes/orders.py, routes/admin.py
When:  Every checkout and every order listing.

Checkout Flow (POST /api/orders):
    ┌──────────┐    ┌──────────────┐    ┌────────────┐    ┌────────────┐
    │ Validate │───▶│ Price items  │───▶│ Insert     │───▶│ Insert     │
    │ payload  │    │ (active only)│    │ order      │    │ line items │
    └──────────┘    └──────────────┘    └────────────┘    └────────────┘

    Every product is priced before anything is written, so an unknown or
    inactive product rejects the whole order with nothing stored.

Identifiers:
    Foreign keys (user_id, order_id, product_id) are stored in the active
    store's native identifier type (store.native_id), so a document-store
    order references its user by ObjectId just as its own _id is one.
"""

import logging
from typing import Any, Dict, List, Optional

from zipmetro.exceptions import NotFoundError, ValidationError
from zipmetro.schemas.order import ORDER_STATUSES
from zipmetro.store.base import Row
from zipmetro.store.facade import StoreFacade
from zipmetro.store.query import Sort

logger = logging.getLogger(__name__)

NEWEST_FIRST = Sort("created_at", descending=True)

# What: Size of the admin order feed
ADMIN_FEED_LIMIT = 100


def is_admin(user: Row) -> bool:
    return user.get("role") == "admin"


class OrderService:
    """
    Business logic layer for orders.

    Responsibilities:
        - create_order(): price, validate and persist a checkout
        - list_orders() / get_order(): history with ownership rules
        - update_status(): admin status transitions
        - recent_orders(): admin feed
    """

    # ── Enrichment ────────────────────────────────────────────────────────

    async def _attach_details(self, store: StoreFacade, orders: List[Row]) -> List[Row]:
        """Adds `email` and `items` to each order, looking each user/product up once."""
        emails: Dict[Any, Optional[str]] = {}
        products: Dict[Any, Optional[Row]] = {}

        for order in orders:
            user_id = order.get("user_id")
            if user_id is None:
                order["email"] = None
            else:
                if user_id not in emails:
                    user = await store.find_by_id("users", user_id, fields=["email"])
                    emails[user_id] = user["email"] if user else None
                order["email"] = emails[user_id]

            items = await store.find_many(
                "order_items", {"order_id": store.native_id(order["id"])}
            )
            for item in items:
                product_id = item["product_id"]
                if product_id not in products:
                    products[product_id] = await store.find_by_id(
                        "products", product_id, fields=["name", "image"]
                    )
                product = products[product_id] or {}
                item["name"] = product.get("name")
                item["image"] = product.get("image")
            order["items"] = items
        return orders

    # ── Reads ─────────────────────────────────────────────────────────────

    async def list_orders(self, store: StoreFacade, user: Row) -> List[Row]:
        """Own orders for customers, every order for admins; newest first."""
        where = None if is_admin(user) else {"user_id": store.native_id(user["id"])}
        orders = await store.find_many("orders", where, sort=NEWEST_FIRST)
        return await self._attach_details(store, orders)

    async def get_order(self, store: StoreFacade, order_id: Any, user: Optional[Row] = None) -> Row:
        """
        One order with details. With a non-admin `user`, someone else's order
        is reported as not found.
        """
        where: Dict[str, Any] = {"id": order_id}
        if user is not None and not is_admin(user):
            where["user_id"] = store.native_id(user["id"])
        order = await store.find_one("orders", where)
        if order is None:
            raise NotFoundError(resource="order", resource_id=order_id)
        (order,) = await self._attach_details(store, [order])
        return order

    async def recent_orders(self, store: StoreFacade, limit: int = ADMIN_FEED_LIMIT) -> List[Row]:
        orders = await store.find_many("orders", sort=NEWEST_FIRST, limit=limit)
        return await self._attach_details(store, orders)

    # ── Writes ────────────────────────────────────────────────────────────

    async def create_order(
        self,
        store: StoreFacade,
        data: Dict[str, Any],
        user: Optional[Row] = None,
    ) -> Row:
        """
        Places an order priced from the current catalog.

        Args:
            data: OrderCreate fields; `items` is a list of
                  {"product_id", "quantity"} mappings
            user: The authenticated customer, None for guest checkout

        Raises:
            ValidationError: missing fields, no age confirmation, unknown or
                             inactive product
        """
        items = data.get("items") or []
        if (
            not data.get("customer_name")
            or not data.get("customer_phone")
            or not data.get("delivery_address")
            or not items
        ):
            raise ValidationError(message="Missing required fields")
        if not data.get("age_confirmed"):
            raise ValidationError(message="Age confirmation required", field="age_confirmed")

        priced = []
        total = 0.0
        for item in items:
            product = await store.find_one(
                "products",
                {"id": item["product_id"], "active": True},
                fields=["id", "price"],
            )
            if product is None:
                raise ValidationError(
                    message=f"Product {item['product_id']} not found",
                    field="items",
                    context={"product_id": str(item["product_id"])},
                )
            quantity = item.get("quantity") or 1
            total += product["price"] * quantity
            priced.append((product, quantity))

        result = await store.insert(
            "orders",
            {
                "user_id": store.native_id(user["id"]) if user else None,
                "customer_name": data["customer_name"],
                "customer_phone": data["customer_phone"],
                "delivery_address": data["delivery_address"],
                "delivery_window": data.get("delivery_window") or "ASAP",
                "order_notes": data.get("order_notes") or "",
                "status": "pending",
                "total": round(total, 2),
            },
        )
        order_id = store.native_id(result.last_id)
        for product, quantity in priced:
            await store.insert(
                "order_items",
                {
                    "order_id": order_id,
                    "product_id": store.native_id(product["id"]),
                    "quantity": quantity,
                    "price": product["price"],
                },
            )

        logger.info(
            "Order %s placed: %d item(s), total %.2f, %s",
            result.last_id,
            len(priced),
            total,
            f"user {user['id']}" if user else "guest",
        )
        return await self.get_order(store, result.last_id)

    async def update_status(self, store: StoreFacade, order_id: Any, status: Optional[str]) -> Row:
        """
        Raises:
            ValidationError: status not in ORDER_STATUSES
            NotFoundError:   no such order
        """
        if status not in ORDER_STATUSES:
            raise ValidationError(
                message="Invalid status",
                field="status",
                context={"allowed": list(ORDER_STATUSES)},
            )
        result = await store.update_by_id("orders", order_id, {"status": status})
        if result.changes == 0:
            raise NotFoundError(resource="order", resource_id=order_id)
        logger.info("Order %s status → %s", order_id, status)
        return await self.get_order(store, order_id)


# ── Singleton Instance ────────────────────────────────────────────────────
order_service = OrderService()
