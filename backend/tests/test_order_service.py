"""
ZipMetro Backend — Order Service Unit Tests
=============================================

What:  Tests for checkout, order visibility, status changes and the
       enrichment that stands in for SQL joins.
Why:   Totals and ownership checks are the parts of the storefront where a
       bug costs money or leaks another customer's address.
How:   Real temp SQLite store; users and products inserted directly.

What we test:
    ✅ Total computed from catalog prices, not the client
    ✅ Unknown or inactive product rejects the whole order, nothing stored
    ✅ Required fields and age confirmation
    ✅ Guest checkout and account-linked checkout
    ✅ Customers see only their orders; admins see all
    ✅ Items enriched with product name/image, email with the user's email
    ✅ Status validation and 404 on unknown order
"""

import asyncio

import pytest

from zipmetro.exceptions import NotFoundError, ValidationError
from zipmetro.services.order_service import OrderService


async def add_user(store, email, role="customer"):
    result = await store.insert("users", {"email": email, "password_hash": "x", "role": role})
    return {"id": result.last_id, "email": email, "role": role}


async def add_product(store, name, price, active=True, image=""):
    result = await store.insert(
        "products",
        {"name": name, "category": "flower", "price": price, "active": active, "image": image},
    )
    return result.last_id


def checkout(items, **overrides):
    data = {
        "customer_name": "Jane Doe",
        "customer_phone": "555-0100",
        "delivery_address": "1 Main St",
        "delivery_window": None,
        "order_notes": None,
        "items": items,
        "age_confirmed": True,
    }
    data.update(overrides)
    return data


class TestCreateOrder:

    def setup_method(self):
        self.service = OrderService()

    @pytest.mark.asyncio
    async def test_total_from_catalog_prices(self, store):
        """Prices are looked up server-side and the total is rounded to cents."""
        a = await add_product(store, "Blue Dream", 35.10, image="/img/bd.jpg")
        b = await add_product(store, "Gummies", 12.05)

        order = await self.service.create_order(
            store,
            checkout([{"product_id": a, "quantity": 2}, {"product_id": str(b), "quantity": 1}]),
        )

        assert order["total"] == 82.25
        assert order["status"] == "pending"
        assert order["delivery_window"] == "ASAP"
        assert order["user_id"] is None
        assert order["email"] is None
        items = sorted(order["items"], key=lambda i: i["product_id"])
        assert [(i["name"], i["quantity"], i["price"]) for i in items] == [
            ("Blue Dream", 2, 35.10),
            ("Gummies", 1, 12.05),
        ]
        assert items[0]["image"] == "/img/bd.jpg"

    @pytest.mark.asyncio
    async def test_linked_to_authenticated_user(self, store):
        user = await add_user(store, "jane@example.com")
        product = await add_product(store, "Blue Dream", 30)

        order = await self.service.create_order(
            store, checkout([{"product_id": product, "quantity": 1}]), user
        )

        assert order["user_id"] == user["id"]
        assert order["email"] == "jane@example.com"

    @pytest.mark.asyncio
    async def test_quantity_defaults_to_one(self, store):
        product = await add_product(store, "Pre-roll", 8)
        order = await self.service.create_order(store, checkout([{"product_id": product}]))
        assert order["total"] == 8
        assert order["items"][0]["quantity"] == 1

    @pytest.mark.asyncio
    async def test_inactive_product_rejects_order(self, store):
        """Nothing is written when any line item cannot be priced."""
        good = await add_product(store, "Blue Dream", 30)
        hidden = await add_product(store, "Retired", 10, active=False)

        with pytest.raises(ValidationError, match=f"Product {hidden} not found"):
            await self.service.create_order(
                store,
                checkout([{"product_id": good, "quantity": 1}, {"product_id": hidden, "quantity": 1}]),
            )

        assert await store.count("orders") == 0
        assert await store.count("order_items") == 0

    @pytest.mark.asyncio
    async def test_unknown_product_rejects_order(self, store):
        with pytest.raises(ValidationError, match="Product 999 not found"):
            await self.service.create_order(store, checkout([{"product_id": 999, "quantity": 1}]))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("missing", ["customer_name", "customer_phone", "delivery_address"])
    async def test_missing_required_field(self, store, missing):
        product = await add_product(store, "Blue Dream", 30)
        with pytest.raises(ValidationError, match="Missing required fields"):
            await self.service.create_order(
                store, checkout([{"product_id": product}], **{missing: ""})
            )

    @pytest.mark.asyncio
    async def test_empty_items(self, store):
        with pytest.raises(ValidationError, match="Missing required fields"):
            await self.service.create_order(store, checkout([]))

    @pytest.mark.asyncio
    async def test_age_confirmation_required(self, store):
        product = await add_product(store, "Blue Dream", 30)
        with pytest.raises(ValidationError, match="Age confirmation required"):
            await self.service.create_order(
                store, checkout([{"product_id": product}], age_confirmed=False)
            )


class TestOrderVisibility:

    def setup_method(self):
        self.service = OrderService()

    async def _place(self, store, user):
        product = await add_product(store, "Blue Dream", 30)
        return await self.service.create_order(store, checkout([{"product_id": product}]), user)

    @pytest.mark.asyncio
    async def test_customer_lists_only_own_orders(self, store):
        jane = await add_user(store, "jane@example.com")
        joe = await add_user(store, "joe@example.com")
        mine = await self._place(store, jane)
        await self._place(store, joe)

        orders = await self.service.list_orders(store, jane)

        assert [o["id"] for o in orders] == [mine["id"]]

    @pytest.mark.asyncio
    async def test_admin_lists_all_newest_first(self, store):
        admin = await add_user(store, "admin@example.com", role="admin")
        jane = await add_user(store, "jane@example.com")
        first = await self._place(store, jane)
        await asyncio.sleep(0.01)
        second = await self._place(store, None)

        orders = await self.service.list_orders(store, admin)

        assert [o["id"] for o in orders] == [second["id"], first["id"]]

    @pytest.mark.asyncio
    async def test_other_customers_order_is_not_found(self, store):
        jane = await add_user(store, "jane@example.com")
        joe = await add_user(store, "joe@example.com")
        order = await self._place(store, joe)

        with pytest.raises(NotFoundError):
            await self.service.get_order(store, str(order["id"]), jane)

    @pytest.mark.asyncio
    async def test_admin_gets_any_order(self, store):
        admin = await add_user(store, "admin@example.com", role="admin")
        order = await self._place(store, None)
        fetched = await self.service.get_order(store, str(order["id"]), admin)
        assert fetched["id"] == order["id"]

    @pytest.mark.asyncio
    async def test_deleted_product_keeps_line_item(self, store):
        product = await add_product(store, "Blue Dream", 30)
        order = await self.service.create_order(store, checkout([{"product_id": product}]))
        await store.delete_by_id("products", product)

        fetched = await self.service.get_order(store, order["id"])

        assert len(fetched["items"]) == 1
        assert fetched["items"][0]["name"] is None

    @pytest.mark.asyncio
    async def test_recent_orders_limit(self, store):
        for _ in range(3):
            await self._place(store, None)
        assert len(await self.service.recent_orders(store, limit=2)) == 2


class TestUpdateStatus:

    def setup_method(self):
        self.service = OrderService()

    @pytest.mark.asyncio
    async def test_valid_status(self, store):
        product = await add_product(store, "Blue Dream", 30)
        order = await self.service.create_order(store, checkout([{"product_id": product}]))

        updated = await self.service.update_status(store, str(order["id"]), "out_for_delivery")

        assert updated["status"] == "out_for_delivery"

    @pytest.mark.asyncio
    async def test_invalid_status(self, store):
        with pytest.raises(ValidationError, match="Invalid status"):
            await self.service.update_status(store, 1, "shipped")

    @pytest.mark.asyncio
    async def test_unknown_order(self, store):
        with pytest.raises(NotFoundError, match="Order not found"):
            await self.service.update_status(store, 404, "confirmed")
