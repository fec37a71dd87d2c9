"""
ZipMetro Backend — Product Service
====================================

What:  Catalog listing, lookup and admin maintenance.
Why:   The filtering rules (active-only by default, search over name and
       description, newest first) live here once and run on either store.
How:   Typed store operations only; conditions are built from the query
       parameters and handed to the facade.
Who:   routes/products.py, services/seed.py
"""

import logging
from typing import Any, Dict, List, Optional

from zipmetro.exceptions import NotFoundError, ValidationError
from zipmetro.store.base import Row
from zipmetro.store.facade import StoreFacade
from zipmetro.store.query import AnyLike, Condition, Like, Sort

logger = logging.getLogger(__name__)

NEWEST_FIRST = Sort("created_at", descending=True)


def search_pattern(term: str) -> str:
    """Substring LIKE pattern for a search term."""
    return f"%{term}%"


class ProductService:
    """Stateless; every call receives the store it should use."""

    async def list_products(
        self,
        store: StoreFacade,
        category: Optional[str] = None,
        search: Optional[str] = None,
        active: Optional[bool] = True,
    ) -> List[Row]:
        """
        Products matching all given filters, newest first.

        `active=None` lists active and inactive products alike.
        """
        where: Dict[str, Any] = {}
        conditions: List[Condition] = []
        if category:
            where["category"] = category
        if search:
            pattern = search_pattern(search)
            conditions.append(
                AnyLike((Like("name", pattern), Like("description", pattern)))
            )
        if active is not None:
            where["active"] = active
        return await store.find_many(
            "products", where, conditions=conditions, sort=NEWEST_FIRST
        )

    async def get_product(self, store: StoreFacade, product_id: Any) -> Row:
        product = await store.find_by_id("products", product_id)
        if product is None:
            raise NotFoundError(resource="product", resource_id=product_id)
        return product

    async def create_product(self, store: StoreFacade, data: Dict[str, Any]) -> Row:
        """
        Raises:
            ValidationError: name, category or price missing
        """
        if not data.get("name") or not data.get("category") or data.get("price") is None:
            raise ValidationError(message="Name, category, and price are required")

        result = await store.insert(
            "products",
            {
                "name": data["name"],
                "category": data["category"],
                "description": data.get("description") or "",
                "price": data["price"],
                "thc": data.get("thc") or 0,
                "image": data.get("image") or "",
                "stock": data.get("stock") or 0,
                "active": True,
            },
        )
        logger.info("Product created: %s (%s)", result.last_id, data["name"])
        return await self.get_product(store, result.last_id)

    async def update_product(
        self, store: StoreFacade, product_id: Any, changes: Dict[str, Any]
    ) -> Row:
        """
        Merges the sent fields over the stored product.

        Null for a required field (name, category, price) keeps the stored
        value; null for an optional field clears it.
        """
        existing = await self.get_product(store, product_id)
        values: Dict[str, Any] = {}
        for field, value in changes.items():
            if value is None and field in ("name", "category", "price", "active"):
                continue
            values[field] = value
        await store.update_by_id("products", existing["id"], values)
        logger.info("Product updated: %s (%s)", existing["id"], ", ".join(sorted(values)) or "no fields")
        return await self.get_product(store, existing["id"])

    async def delete_product(self, store: StoreFacade, product_id: Any) -> None:
        result = await store.delete_by_id("products", product_id)
        if result.changes == 0:
            raise NotFoundError(resource="product", resource_id=product_id)
        logger.info("Product deleted: %s", product_id)


# ── Singleton Instance ────────────────────────────────────────────────────
product_service = ProductService()
