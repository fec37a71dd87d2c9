"""
ZipMetro Backend — Catalog Seeding
====================================

What:  Loads a starter product catalog from a JSON file into an empty store.
Why:   A fresh deployment (either store) gets a browsable storefront without
       a separate init script.
How:   Reads SEED_PRODUCTS_PATH (a JSON list of product objects) with
       aiofiles; does nothing when the catalog already has products.
When:  lifespan startup, after the admin account is ensured.

File Format:
    [
        {"name": "Blue Dream", "category": "flower", "description": "...",
         "price": 35.0, "thc": 21.5, "image": "/img/blue-dream.jpg", "stock": 40},
        ...
    ]
    `desc` is accepted as an alias of `description`.
"""

import json
import logging

import aiofiles

from zipmetro.services.product_service import product_service
from zipmetro.store.facade import StoreFacade

logger = logging.getLogger(__name__)


async def seed_products(store: StoreFacade, path: str) -> int:
    """
    Returns:
        Number of products inserted (0 when the catalog was not empty)

    Raises:
        OSError, ValueError: unreadable file or invalid JSON
        ValidationError:     a product without name, category or price
    """
    if await store.count("products") > 0:
        logger.info("Catalog not empty, skipping product seed")
        return 0

    async with aiofiles.open(path, "r", encoding="utf-8") as f:
        products = json.loads(await f.read())
    if not isinstance(products, list):
        raise ValueError(f"Seed file {path} must contain a JSON list")

    for product in products:
        data = dict(product)
        if "description" not in data and "desc" in data:
            data["description"] = data.pop("desc")
        await product_service.create_product(store, data)

    logger.info("Seeded %d products from %s", len(products), path)
    return len(products)
