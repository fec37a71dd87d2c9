"""
ZipMetro Backend — Store Parity Tests
=======================================

What:  Runs the same literal statements against the SQLite store and the
       MongoDB store and compares what comes back.
Why:   Services are written once against the literal-SQL contract; a row
       that reads differently on the two backends breaks them on one of them.
How:   The `any_store` fixture is parametrised over both adapters. The
       document side uses an in-memory mongomock-motor client passed in
       through DocumentConnection's client_factory, so the real adapter code
       (translation, rendering, normalisation) runs end to end.

What we test:
    ✅ Equality, LIKE, OR-LIKE, `1=1 AND`, `active = 1` and ORDER BY
    ✅ COUNT with an alias
    ✅ A literal INSERT reads back with table defaults and typed values
    ✅ UPDATE changes every matching row
    ✅ Document DELETE removes exactly one of several matches
"""

from datetime import datetime

import pytest
import pytest_asyncio
from mongomock_motor import AsyncMongoMockClient

from zipmetro.store.connection import DocumentConnection
from zipmetro.store.document import DocumentStore
from zipmetro.store.relational import RelationalStore

CATALOG = [
    {
        "name": "Blue Dream",
        "category": "flower",
        "description": "Sweet berry aroma",
        "price": 30.0,
        "active": True,
        "created_at": datetime(2026, 1, 1, 9, 0),
    },
    {
        "name": "OG Kush",
        "category": "flower",
        "description": "Earthy pine",
        "price": 35.0,
        "active": True,
        "created_at": datetime(2026, 1, 2, 9, 0),
    },
    {
        "name": "Kush Cookies",
        "category": "edibles",
        "description": "Baked with og kush butter",
        "price": 12.0,
        "active": True,
        "created_at": datetime(2026, 1, 3, 9, 0),
    },
    {
        "name": "Retired Gummies",
        "category": "edibles",
        "description": "Sour",
        "price": 8.0,
        "active": False,
        "created_at": datetime(2026, 1, 4, 9, 0),
    },
]


def mock_mongo_connection() -> DocumentConnection:
    return DocumentConnection(
        "mongodb://localhost:27017",
        "zipmetro_test",
        max_attempts=1,
        min_wait=0,
        max_wait=0,
        jitter=0,
        client_factory=lambda uri, **options: AsyncMongoMockClient(),
    )


async def open_store(backend: str, tmp_path):
    if backend == "relational":
        store = RelationalStore(str(tmp_path / "parity.db"))
    else:
        store = DocumentStore(mock_mongo_connection())
    await store.connect()
    return store


async def names(store, sql, params=()):
    return [row["name"] for row in await store.get_many(sql, params)]


@pytest_asyncio.fixture(params=["relational", "document"])
async def any_store(request, tmp_path):
    """A connected store of each backend, seeded with CATALOG."""
    store = await open_store(request.param, tmp_path)
    for product in CATALOG:
        await store.insert("products", product)
    yield store
    await store.close()


class TestLiteralReads:

    @pytest.mark.asyncio
    async def test_equality(self, any_store):
        result = await names(
            any_store, "SELECT * FROM products WHERE category = ? ORDER BY name", ["flower"]
        )
        assert result == ["Blue Dream", "OG Kush"]

    @pytest.mark.asyncio
    async def test_like_is_case_insensitive(self, any_store):
        result = await names(
            any_store, "SELECT * FROM products WHERE name LIKE ? ORDER BY name", ["%KUSH%"]
        )
        assert result == ["Kush Cookies", "OG Kush"]

    @pytest.mark.asyncio
    async def test_or_like_search(self, any_store):
        result = await names(
            any_store,
            "SELECT * FROM products WHERE 1=1 AND (name LIKE ? OR description LIKE ?) "
            "ORDER BY name",
            ["%berry%", "%berry%"],
        )
        assert result == ["Blue Dream"]

    @pytest.mark.asyncio
    async def test_always_true_prefix(self, any_store):
        result = await names(
            any_store,
            "SELECT * FROM products WHERE 1=1 AND category = ? ORDER BY name",
            ["edibles"],
        )
        assert result == ["Kush Cookies", "Retired Gummies"]

    @pytest.mark.asyncio
    async def test_active_listing_newest_first(self, any_store):
        result = await names(
            any_store, "SELECT * FROM products WHERE active = 1 ORDER BY created_at DESC"
        )
        assert result == ["Kush Cookies", "OG Kush", "Blue Dream"]

    @pytest.mark.asyncio
    async def test_count_alias(self, any_store):
        row = await any_store.get_one(
            "SELECT COUNT(*) AS n FROM products WHERE category = ?", ["edibles"]
        )
        assert row == {"n": 2}

    @pytest.mark.asyncio
    async def test_projection(self, any_store):
        row = await any_store.get_one(
            "SELECT name, price FROM products WHERE name = ?", ["OG Kush"]
        )
        assert row == {"name": "OG Kush", "price": 35.0}

    @pytest.mark.asyncio
    async def test_seeded_rows_read_back_typed(self, any_store):
        row = await any_store.get_one(
            "SELECT * FROM products WHERE name = ?", ["Retired Gummies"]
        )
        assert row["active"] is False
        assert row["created_at"] == datetime(2026, 1, 4, 9, 0)


class TestLiteralInsert:

    @pytest.mark.asyncio
    async def test_insert_then_fetch_by_id(self, any_store):
        """A product inserted without active/stock gets the table defaults."""
        result = await any_store.run(
            "INSERT INTO products (name, category, price) VALUES (?, ?, ?)",
            ["Widget", "tools", 9.99],
        )

        row = await any_store.get_one("SELECT * FROM products WHERE id = ?", [result.last_id])

        assert row["id"] == result.last_id
        assert "_id" not in row
        assert row["name"] == "Widget"
        assert row["active"] is True
        assert row["stock"] == 0
        assert row["description"] is None
        assert isinstance(row["created_at"], datetime)

    @pytest.mark.asyncio
    async def test_inserted_product_is_listed(self, any_store):
        await any_store.run(
            "INSERT INTO products (name, category, price) VALUES (?, ?, ?)",
            ["Widget", "tools", 9.99],
        )
        result = await names(any_store, "SELECT * FROM products WHERE active = 1")
        assert "Widget" in result

    @pytest.mark.asyncio
    async def test_row_keys_match_across_backends(self, tmp_path):
        keys = []
        for backend in ("relational", "document"):
            store = await open_store(backend, tmp_path)
            try:
                result = await store.run(
                    "INSERT INTO products (name, category, price) VALUES (?, ?, ?)",
                    ["Widget", "tools", 9.99],
                )
                row = await store.get_one(
                    "SELECT * FROM products WHERE id = ?", [result.last_id]
                )
                keys.append(set(row))
            finally:
                await store.close()

        assert keys[0] == keys[1]


class TestLiteralWrites:

    @pytest.mark.asyncio
    async def test_update_changes_every_match(self, any_store):
        result = await any_store.run(
            "UPDATE products SET stock = ? WHERE category = ?", [7, "flower"]
        )

        assert result.changes == 2
        rows = await any_store.get_many(
            "SELECT * FROM products WHERE category = ?", ["flower"]
        )
        assert [row["stock"] for row in rows] == [7, 7]

    @pytest.mark.asyncio
    async def test_update_without_match(self, any_store):
        result = await any_store.run(
            "UPDATE products SET stock = ? WHERE category = ?", [7, "topicals"]
        )
        assert result.changes == 0

    @pytest.mark.asyncio
    async def test_delete_by_id(self, any_store):
        row = await any_store.get_one("SELECT * FROM products WHERE name = ?", ["OG Kush"])

        result = await any_store.run("DELETE FROM products WHERE id = ?", [row["id"]])

        assert result.changes == 1
        assert await any_store.get_one(
            "SELECT * FROM products WHERE id = ?", [row["id"]]
        ) is None


class TestDocumentDelete:
    """DELETE on the document store removes the first match only."""

    @pytest.mark.asyncio
    async def test_removes_one_of_two_matches(self):
        store = DocumentStore(mock_mongo_connection())
        try:
            for product in CATALOG:
                await store.insert("products", product)

            result = await store.run("DELETE FROM products WHERE category = ?", ["flower"])

            assert result.changes == 1
            remaining = await store.get_one(
                "SELECT COUNT(*) AS n FROM products WHERE category = ?", ["flower"]
            )
            assert remaining == {"n": 1}
        finally:
            await store.close()
