"""
ZipMetro Backend — Relational Store Adapter (SQLite)
======================================================

What:  Runs literal SQL natively and typed operations through SQLAlchemy
       Core, over an async aiosqlite engine.
Why:   Zero-setup embedded database for local development and single-box
       deployments.
How:   Literal statements are passed through unchanged with their `?`
       parameters (exec_driver_sql). Typed operations compile the structured
       conditions against the ORM tables in Base.metadata, so column names
       are checked and values go through the column types (booleans come
       back as bool, timestamps as datetime).
Who:   StoreFacade, when no document store is configured.
When:  connect() at startup creates the data directory and all tables.

Transactions:
    Every write runs in its own transaction (engine.begin()) and is committed
    before the call returns. Reads use a plain connection.
"""

import logging
from pathlib import Path
from typing import Any, Callable, List, Mapping, Optional, Sequence

from sqlalchemy import Table, delete, func, insert, or_, select, text, update
from sqlalchemy.exc import SQLAlchemyError

from zipmetro.database import Base, create_relational_engine, sqlite_url
from zipmetro.exceptions import DatabaseError, TranslationError
from zipmetro.models import storefront  # noqa: F401  (registers the tables)
from zipmetro.store.base import Row, StoreAdapter
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
from zipmetro.store.translator import collection_name

logger = logging.getLogger(__name__)


class RelationalStore(StoreAdapter):
    """SQLite implementation of the store contract."""

    backend = "relational"

    def __init__(self, database_path: str, echo: bool = False):
        self.database_path = database_path
        self.engine = create_relational_engine(sqlite_url(database_path), echo=echo)
        self.metadata = Base.metadata

    # ── Identity & lifecycle ──────────────────────────────────────────────

    def native_id(self, value: Any) -> Any:
        """Digit strings become ints; anything else is left as is."""
        if isinstance(value, str) and value.isdigit():
            return int(value)
        return value

    async def connect(self) -> None:
        Path(self.database_path).parent.mkdir(parents=True, exist_ok=True)
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(self.metadata.create_all)
        except SQLAlchemyError as e:
            raise self._error(e, "create_all")
        logger.info("SQLite database ready at %s", Path(self.database_path).resolve())

    async def close(self) -> None:
        await self.engine.dispose()

    async def health_check(self) -> bool:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.warning("Health check: database unreachable: %s", str(e))
            return False

    def _error(self, error: SQLAlchemyError, operation: str, sql: Optional[str] = None) -> DatabaseError:
        logger.error("SQLite %s failed: %s", operation, str(error))
        context = {
            "operation": operation,
            "error_type": type(error).__name__,
            "error": str(getattr(error, "orig", None) or error),
        }
        if sql is not None:
            context["sql"] = " ".join(sql.split())
        return DatabaseError(context=context)

    # ── Literal operations ────────────────────────────────────────────────

    def _decoder(self, sql: str) -> Callable[[Mapping[str, Any]], Row]:
        """
        Row converter for a literal statement's table.

        exec_driver_sql hands back raw SQLite values (0/1, timestamp text);
        columns of the statement's table go through their column type so
        `active` reads as bool and timestamps as datetime, as typed reads do.
        """
        try:
            table = self.metadata.tables.get(collection_name(sql))
        except TranslationError:
            table = None
        if table is None:
            return dict

        processors = {}
        for column in table.columns:
            processor = column.type.result_processor(self.engine.dialect, None)
            if processor is not None:
                processors[column.name] = processor

        def decode(row: Mapping[str, Any]) -> Row:
            return {
                key: processors[key](value) if key in processors else value
                for key, value in row.items()
            }

        return decode

    async def get_one(self, sql: str, params: Sequence[Any] = ()) -> Optional[Row]:
        try:
            async with self.engine.connect() as conn:
                result = await conn.exec_driver_sql(sql, tuple(params))
                row = result.mappings().first()
        except SQLAlchemyError as e:
            raise self._error(e, "get_one", sql)
        return self._decoder(sql)(row) if row is not None else None

    async def get_many(self, sql: str, params: Sequence[Any] = ()) -> List[Row]:
        try:
            async with self.engine.connect() as conn:
                result = await conn.exec_driver_sql(sql, tuple(params))
                rows = result.mappings().all()
        except SQLAlchemyError as e:
            raise self._error(e, "get_many", sql)
        decode = self._decoder(sql)
        return [decode(row) for row in rows]

    async def run(self, sql: str, params: Sequence[Any] = ()) -> RunResult:
        try:
            async with self.engine.begin() as conn:
                result = await conn.exec_driver_sql(sql, tuple(params))
                return RunResult(last_id=result.lastrowid, changes=result.rowcount)
        except SQLAlchemyError as e:
            raise self._error(e, "run", sql)

    # ── Statement building ────────────────────────────────────────────────

    def _table(self, name: str) -> Table:
        table = self.metadata.tables.get(name)
        if table is None:
            raise DatabaseError(
                message=f"Unknown table: {name}",
                context={"table": name},
            )
        return table

    def _column(self, table: Table, field: str):
        column = table.c.get(field)
        if column is None:
            raise DatabaseError(
                message=f"Unknown column: {table.name}.{field}",
                context={"table": table.name, "column": field},
            )
        return column

    def _clause(self, table: Table, condition: Condition):
        if isinstance(condition, Equals):
            return self._column(table, condition.field) == condition.value
        if isinstance(condition, Like):
            return self._column(table, condition.field).ilike(condition.pattern)
        if isinstance(condition, AnyLike):
            return or_(*[self._clause(table, option) for option in condition.options])
        if isinstance(condition, AtLeast):
            return self._column(table, condition.field) >= condition.value
        raise DatabaseError(message=f"Unsupported condition: {condition!r}")

    def _select(self, query: ParsedQuery):
        table = self._table(query.collection)
        if query.fields:
            stmt = select(*[self._column(table, f) for f in query.fields])
        else:
            stmt = select(table)
        stmt = stmt.where(*[self._clause(table, c) for c in query.conditions])
        if query.sort is not None:
            column = self._column(table, query.sort.field)
            stmt = stmt.order_by(column.desc() if query.sort.descending else column.asc())
        if query.limit is not None:
            stmt = stmt.limit(query.limit)
        return stmt

    # ── Plan executors ────────────────────────────────────────────────────

    async def _fetch(self, query: ParsedQuery) -> List[Row]:
        stmt = self._select(query)
        try:
            async with self.engine.connect() as conn:
                result = await conn.execute(stmt)
                rows = result.mappings().all()
        except SQLAlchemyError as e:
            raise self._error(e, f"select {query.collection}")
        return [dict(row) for row in rows]

    async def _fetch_one(self, query: ParsedQuery) -> Optional[Row]:
        stmt = self._select(query).limit(1)
        try:
            async with self.engine.connect() as conn:
                result = await conn.execute(stmt)
                row = result.mappings().first()
        except SQLAlchemyError as e:
            raise self._error(e, f"select {query.collection}")
        return dict(row) if row is not None else None

    async def _count(self, query: ParsedQuery) -> int:
        table = self._table(query.collection)
        stmt = (
            select(func.count())
            .select_from(table)
            .where(*[self._clause(table, c) for c in query.conditions])
        )
        try:
            async with self.engine.connect() as conn:
                result = await conn.execute(stmt)
                return result.scalar_one()
        except SQLAlchemyError as e:
            raise self._error(e, f"count {query.collection}")

    async def _insert(self, plan: InsertPlan) -> RunResult:
        table = self._table(plan.collection)
        values = {
            field: value
            for field, value in plan.values.items()
            if not (field in plan.stamped and field not in table.c)
        }
        for field in values:
            self._column(table, field)

        stmt = insert(table).values(values)
        if plan.replace:
            stmt = stmt.prefix_with("OR REPLACE")
        try:
            async with self.engine.begin() as conn:
                result = await conn.execute(stmt)
                return RunResult(last_id=result.inserted_primary_key[0], changes=result.rowcount)
        except SQLAlchemyError as e:
            raise self._error(e, f"insert {plan.collection}")

    async def _update(self, plan: UpdatePlan) -> RunResult:
        table = self._table(plan.collection)
        values = dict(plan.values)
        if "updated_at" not in table.c:
            values.pop("updated_at", None)
        for field in values:
            self._column(table, field)
        if not values:
            return RunResult()

        stmt = (
            update(table)
            .where(*[self._clause(table, c) for c in plan.conditions])
            .values(values)
        )
        try:
            async with self.engine.begin() as conn:
                result = await conn.execute(stmt)
                return RunResult(changes=result.rowcount)
        except SQLAlchemyError as e:
            raise self._error(e, f"update {plan.collection}")

    async def _delete(self, plan: DeletePlan) -> RunResult:
        table = self._table(plan.collection)
        stmt = delete(table).where(*[self._clause(table, c) for c in plan.conditions])
        try:
            async with self.engine.begin() as conn:
                result = await conn.execute(stmt)
                return RunResult(changes=result.rowcount)
        except SQLAlchemyError as e:
            raise self._error(e, f"delete {plan.collection}")
