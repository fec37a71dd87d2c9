"""
ZipMetro Backend — Document Store Adapter (MongoDB)
=====================================================

What:  Executes translated literal queries and typed operations against
       MongoDB collections through Motor.
Why:   Lets the storefront run on a hosted MongoDB with the same call sites
       that run on SQLite.
How:   Literal statements go through the translator; every plan is rendered
       to a Mongo filter/projection/sort and executed on the collection named
       by the plan. Documents come back with `_id` republished as `id`.
Who:   StoreFacade, when DATABASE_URL or MONGODB_URI is configured.
When:  Connects lazily on first use (or at startup via connect()).

Semantics worth knowing:
    - UPDATE applies to every matching document (update_many) with the same
      values; a warning is logged when more than one matched.
    - DELETE removes the first match only (delete_one).
    - INSERT OR REPLACE with an id overwrites exactly one document (upsert).
    - Inserted documents carry every column of the matching table, with the
      column defaults filled in, so filters like `active = 1` see them.
    - LIKE patterns become anchored, case-insensitive regexes; everything but
      % and _ is matched literally.
    - ObjectId values are published as 24-char hex strings; integer ids stay
      integers.

Indexes (created once, after the first successful connection):
    users.email (unique), products.category, orders.user_id,
    order_items.order_id
"""

import logging
import re
from typing import Any, Dict, List, Optional, Sequence

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

from zipmetro.database import Base
from zipmetro.exceptions import DatabaseError, StoreUnavailableError, TranslationError
from zipmetro.models import storefront  # noqa: F401  (registers the tables)
from zipmetro.store.base import Row, StoreAdapter
from zipmetro.store.connection import DocumentConnection
from zipmetro.store.query import (
    AnyLike,
    AtLeast,
    Condition,
    DeletePlan,
    Equals,
    InsertPlan,
    Like,
    ParsedQuery,
    RunResult,
    UpdatePlan,
)
from zipmetro.store.translator import translate

logger = logging.getLogger(__name__)

# (collection, field, unique)
INDEXES = (
    ("users", "email", True),
    ("products", "category", False),
    ("orders", "user_id", False),
    ("order_items", "order_id", False),
)


# ══════════════════════════════════════════════════════════════════════════
# Rendering helpers
# ══════════════════════════════════════════════════════════════════════════

def like_to_regex(pattern: str) -> str:
    """SQL LIKE pattern → anchored regex (% → .*, _ → ., rest literal)."""
    parts = []
    for char in pattern:
        if char == "%":
            parts.append(".*")
        elif char == "_":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return "^" + "".join(parts) + "$"


def _key(field: str) -> str:
    return "_id" if field == "id" else field


def _render_condition(condition: Condition) -> Dict[str, Any]:
    if isinstance(condition, Equals):
        return {_key(condition.field): condition.value}
    if isinstance(condition, Like):
        # s: % must also span newlines, as it does in SQL
        return {
            _key(condition.field): {
                "$regex": like_to_regex(condition.pattern),
                "$options": "is",
            }
        }
    if isinstance(condition, AnyLike):
        return {"$or": [_render_condition(option) for option in condition.options]}
    if isinstance(condition, AtLeast):
        return {_key(condition.field): {"$gte": condition.value}}
    raise TranslationError(f"Unsupported condition: {condition!r}")


def render_filter(conditions: Sequence[Condition]) -> Dict[str, Any]:
    """
    Conditions → one Mongo filter.

    Conditions on distinct keys merge into a flat document; a repeated key
    (two conditions on one field, or two disjunctions) falls back to $and so
    no condition overwrites another.
    """
    clauses = [_render_condition(c) for c in conditions]
    merged: Dict[str, Any] = {}
    for clause in clauses:
        if any(key in merged for key in clause):
            return {"$and": clauses}
        merged.update(clause)
    return merged


def render_projection(fields: Optional[List[str]]) -> Optional[Dict[str, int]]:
    if not fields:
        return None
    projection = {_key(f): 1 for f in fields}
    if "_id" not in projection:
        projection["_id"] = 0
    return projection


def _publish(value: Any) -> Any:
    return str(value) if isinstance(value, ObjectId) else value


def normalize_document(doc: Optional[Dict[str, Any]]) -> Optional[Row]:
    """Moves `_id` to `id` and turns every ObjectId value into its hex string."""
    if doc is None:
        return None
    row: Row = {}
    if "_id" in doc:
        row["id"] = _publish(doc["_id"])
    for key, value in doc.items():
        if key != "_id":
            row[key] = _publish(value)
    return row


def complete_document(plan: InsertPlan) -> Dict[str, Any]:
    """
    The document an insert writes, shaped like the relational row would be.

    Columns the insert leaves out get their table default (`active` True,
    `stock` 0, ...) or None, and stamped timestamps the table has no column
    for are dropped. Collections without a table are written as given.
    """
    table = Base.metadata.tables.get(plan.collection)
    if table is None:
        return dict(plan.values)

    doc: Dict[str, Any] = {}
    for column in table.columns:
        if column.primary_key:
            continue
        default = column.default
        doc[column.name] = default.arg if default is not None and default.is_scalar else None
    for field, value in plan.values.items():
        if field in plan.stamped and field not in table.c:
            continue
        doc[field] = value
    return doc


# ══════════════════════════════════════════════════════════════════════════
# Adapter
# ══════════════════════════════════════════════════════════════════════════

class DocumentStore(StoreAdapter):
    """MongoDB implementation of the store contract."""

    backend = "document"

    def __init__(self, connection: DocumentConnection):
        self.connection = connection
        self._indexes_ready = False

    # ── Identity & lifecycle ──────────────────────────────────────────────

    def native_id(self, value: Any) -> Any:
        """24-hex strings become ObjectIds, digit strings become ints."""
        if isinstance(value, str):
            if ObjectId.is_valid(value):
                return ObjectId(value)
            if value.isdigit():
                return int(value)
        return value

    async def connect(self) -> None:
        await self._database()

    async def close(self) -> None:
        await self.connection.close()
        self._indexes_ready = False

    async def health_check(self) -> bool:
        try:
            db = await self._database()
            await db.command("ping")
            return True
        except (PyMongoError, StoreUnavailableError) as e:
            logger.warning("Health check: MongoDB unreachable: %s", str(e))
            return False

    @property
    def circuit_state(self) -> Optional[str]:
        return self.connection.circuit_breaker.state

    async def _database(self):
        db = await self.connection.database()
        if not self._indexes_ready:
            await self.ensure_indexes(db)
            self._indexes_ready = True
        return db

    async def ensure_indexes(self, db) -> None:
        """
        Creates the lookup indexes. Failures are logged, not raised: the
        store still works without them, only slower (and without the
        unique-email guard).
        """
        for collection, field, unique in INDEXES:
            try:
                await db[collection].create_index([(field, ASCENDING)], unique=unique)
            except PyMongoError as e:
                logger.warning(
                    "Could not create index %s.%s: %s", collection, field, str(e)
                )
        logger.info("MongoDB indexes ensured")

    def _error(self, error: PyMongoError, collection: str, operation: str) -> DatabaseError:
        logger.error(
            "MongoDB %s on '%s' failed: %s", operation, collection, str(error)
        )
        return DatabaseError(
            context={
                "collection": collection,
                "operation": operation,
                "error_type": type(error).__name__,
                "error": str(error),
            },
        )

    # ── Literal operations ────────────────────────────────────────────────

    def _translate_query(self, sql: str, params: Sequence[Any]) -> ParsedQuery:
        plan = translate(sql, params, native_id=self.native_id)
        if not isinstance(plan, ParsedQuery):
            raise TranslationError("Expected a SELECT statement", sql=sql)
        return plan

    async def get_one(self, sql: str, params: Sequence[Any] = ()) -> Optional[Row]:
        query = self._translate_query(sql, params)
        if query.is_count:
            return {query.count_alias: await self._count(query)}
        return await self._fetch_one(query)

    async def get_many(self, sql: str, params: Sequence[Any] = ()) -> List[Row]:
        query = self._translate_query(sql, params)
        if query.is_count:
            return [{query.count_alias: await self._count(query)}]
        return await self._fetch(query)

    async def run(self, sql: str, params: Sequence[Any] = ()) -> RunResult:
        plan = translate(sql, params, native_id=self.native_id)
        if isinstance(plan, InsertPlan):
            return await self._insert(plan)
        if isinstance(plan, UpdatePlan):
            return await self._update(plan)
        if isinstance(plan, DeletePlan):
            return await self._delete(plan)
        raise TranslationError("Expected an INSERT, UPDATE or DELETE statement", sql=sql)

    # ── Plan executors ────────────────────────────────────────────────────

    def _sort(self, query: ParsedQuery):
        if query.sort is None:
            return None
        direction = DESCENDING if query.sort.descending else ASCENDING
        return [(_key(query.sort.field), direction)]

    async def _fetch(self, query: ParsedQuery) -> List[Row]:
        # Mongo treats limit(0) as "no limit"
        if query.limit == 0:
            return []
        db = await self._database()
        try:
            cursor = db[query.collection].find(
                render_filter(query.conditions),
                render_projection(query.fields),
            )
            sort = self._sort(query)
            if sort:
                cursor = cursor.sort(sort)
            if query.limit is not None:
                cursor = cursor.limit(query.limit)
            docs = await cursor.to_list(length=None)
        except PyMongoError as e:
            raise self._error(e, query.collection, "find")
        return [normalize_document(doc) for doc in docs]

    async def _fetch_one(self, query: ParsedQuery) -> Optional[Row]:
        db = await self._database()
        try:
            doc = await db[query.collection].find_one(
                render_filter(query.conditions),
                render_projection(query.fields),
                sort=self._sort(query),
            )
        except PyMongoError as e:
            raise self._error(e, query.collection, "find_one")
        return normalize_document(doc)

    async def _count(self, query: ParsedQuery) -> int:
        db = await self._database()
        try:
            return await db[query.collection].count_documents(render_filter(query.conditions))
        except PyMongoError as e:
            raise self._error(e, query.collection, "count_documents")

    async def _insert(self, plan: InsertPlan) -> RunResult:
        db = await self._database()
        doc = {_key(field): value for field, value in complete_document(plan).items()}
        collection = db[plan.collection]
        try:
            if plan.replace and doc.get("_id") is not None:
                await collection.replace_one({"_id": doc["_id"]}, doc, upsert=True)
                return RunResult(last_id=_publish(doc["_id"]), changes=1)
            result = await collection.insert_one(doc)
        except PyMongoError as e:
            raise self._error(e, plan.collection, "insert")
        return RunResult(last_id=_publish(result.inserted_id), changes=1)

    async def _update(self, plan: UpdatePlan) -> RunResult:
        db = await self._database()
        changes = {_key(field): value for field, value in plan.values.items()}
        try:
            result = await db[plan.collection].update_many(
                render_filter(plan.conditions),
                {"$set": changes},
            )
        except PyMongoError as e:
            raise self._error(e, plan.collection, "update")
        if result.matched_count > 1:
            logger.warning(
                "UPDATE on '%s' matched %d documents; all received the same values",
                plan.collection,
                result.matched_count,
            )
        return RunResult(changes=result.matched_count)

    async def _delete(self, plan: DeletePlan) -> RunResult:
        db = await self._database()
        try:
            result = await db[plan.collection].delete_one(render_filter(plan.conditions))
        except PyMongoError as e:
            raise self._error(e, plan.collection, "delete")
        return RunResult(changes=result.deleted_count)
