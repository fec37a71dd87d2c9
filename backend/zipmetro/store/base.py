"""
ZipMetro Backend — Abstract Store Adapter Interface
=====================================================

What:  Abstract base class defining the contract both store adapters fulfil.
Why:   Services run unchanged on either database. This is the Strategy
       pattern: the facade holds exactly one concrete adapter.
How:   Concrete adapters implement the literal operations (get_one, get_many,
       run), a handful of plan executors, identifier coercion and lifecycle.
       The typed operations are implemented once, here, on top of the
       executors.
Who:   zipmetro.store.document.DocumentStore, zipmetro.store.relational.RelationalStore
When:  Selected once at process start by StoreFacade.from_settings().

Design Decision:
    Typed operations build the same ParsedQuery / mutation plans the literal
    translator produces, so the document store has a single execution path
    for both styles and the relational store gets its typed path compiled
    by SQLAlchemy Core instead of hand-built SQL strings.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Sequence

from zipmetro.store.query import (
    Condition,
    DeletePlan,
    Equals,
    InsertPlan,
    ParsedQuery,
    RunResult,
    Sort,
    UpdatePlan,
    conditions_from,
)

Row = Dict[str, Any]


class StoreAdapter(ABC):
    """
    Contract for one concrete database backend.

    Row shape:
        Every row/document returned carries its identifier as `id` and never
        as `_id`. Missing single rows are `None`, empty results are `[]`.

    Errors:
        Driver exceptions are wrapped in DatabaseError (or one of its
        subclasses); callers never see SQLAlchemy or PyMongo exceptions.
    """

    #: "document" or "relational"
    backend: str = ""

    # ── Literal operations ────────────────────────────────────────────────

    @abstractmethod
    async def get_one(self, sql: str, params: Sequence[Any] = ()) -> Optional[Row]:
        """First row of a SELECT, `{alias: n}` for COUNT(*), or None."""
        ...

    @abstractmethod
    async def get_many(self, sql: str, params: Sequence[Any] = ()) -> List[Row]:
        ...

    @abstractmethod
    async def run(self, sql: str, params: Sequence[Any] = ()) -> RunResult:
        """Executes an INSERT, UPDATE or DELETE."""
        ...

    # ── Plan executors ────────────────────────────────────────────────────

    @abstractmethod
    async def _fetch(self, query: ParsedQuery) -> List[Row]:
        ...

    @abstractmethod
    async def _fetch_one(self, query: ParsedQuery) -> Optional[Row]:
        ...

    @abstractmethod
    async def _count(self, query: ParsedQuery) -> int:
        ...

    @abstractmethod
    async def _insert(self, plan: InsertPlan) -> RunResult:
        ...

    @abstractmethod
    async def _update(self, plan: UpdatePlan) -> RunResult:
        ...

    @abstractmethod
    async def _delete(self, plan: DeletePlan) -> RunResult:
        ...

    # ── Identity & lifecycle ──────────────────────────────────────────────

    @abstractmethod
    def native_id(self, value: Any) -> Any:
        """Coerces an inbound identifier (often a path string) to the native type."""
        ...

    @abstractmethod
    async def connect(self) -> None:
        ...

    @abstractmethod
    async def close(self) -> None:
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Lightweight connectivity probe for the /health endpoint.

        Returns True if the store answered, False otherwise. Never raises.
        """
        ...

    @property
    def circuit_state(self) -> Optional[str]:
        """Connection circuit-breaker state, None for stores without one."""
        return None

    # ── Typed operations ──────────────────────────────────────────────────

    def _conditions(
        self,
        where: Optional[Mapping[str, Any]],
        extra: Sequence[Condition],
    ) -> List[Condition]:
        conditions = conditions_from(where, extra)
        return [
            Equals(c.field, self.native_id(c.value))
            if isinstance(c, Equals) and c.field == "id"
            else c
            for c in conditions
        ]

    async def find_by_id(
        self,
        collection: str,
        id: Any,
        fields: Optional[List[str]] = None,
    ) -> Optional[Row]:
        return await self.find_one(collection, {"id": id}, fields=fields)

    async def find_one(
        self,
        collection: str,
        where: Optional[Mapping[str, Any]] = None,
        *,
        conditions: Sequence[Condition] = (),
        fields: Optional[List[str]] = None,
        sort: Optional[Sort] = None,
    ) -> Optional[Row]:
        query = ParsedQuery(
            collection=collection,
            conditions=self._conditions(where, conditions),
            fields=fields,
            sort=sort,
        )
        return await self._fetch_one(query)

    async def find_many(
        self,
        collection: str,
        where: Optional[Mapping[str, Any]] = None,
        *,
        conditions: Sequence[Condition] = (),
        fields: Optional[List[str]] = None,
        sort: Optional[Sort] = None,
        limit: Optional[int] = None,
    ) -> List[Row]:
        query = ParsedQuery(
            collection=collection,
            conditions=self._conditions(where, conditions),
            fields=fields,
            sort=sort,
            limit=limit,
        )
        return await self._fetch(query)

    async def count(
        self,
        collection: str,
        where: Optional[Mapping[str, Any]] = None,
        *,
        conditions: Sequence[Condition] = (),
    ) -> int:
        query = ParsedQuery(
            collection=collection,
            conditions=self._conditions(where, conditions),
            count_alias="count",
        )
        return await self._count(query)

    async def insert(
        self,
        collection: str,
        values: Mapping[str, Any],
        *,
        replace: bool = False,
    ) -> RunResult:
        """
        Inserts one row. `created_at`/`updated_at` default to one shared now.

        With `replace=True` and an `id` in `values`, an existing row with that
        id is overwritten instead of duplicated.
        """
        doc = dict(values)
        if "id" in doc:
            doc["id"] = self.native_id(doc["id"])
        return await self._insert(InsertPlan.build(collection, doc, replace=replace))

    async def update_by_id(
        self,
        collection: str,
        id: Any,
        values: Mapping[str, Any],
    ) -> RunResult:
        return await self.update_where(collection, {"id": id}, values)

    async def update_where(
        self,
        collection: str,
        where: Optional[Mapping[str, Any]],
        values: Mapping[str, Any],
        *,
        conditions: Sequence[Condition] = (),
    ) -> RunResult:
        """Sets `values` (plus a fresh `updated_at`) on every matching row."""
        plan = UpdatePlan.build(collection, self._conditions(where, conditions), values)
        return await self._update(plan)

    async def delete_by_id(self, collection: str, id: Any) -> RunResult:
        """Removes at most one row; `changes` is 0 when nothing matched."""
        plan = DeletePlan(collection=collection, conditions=self._conditions({"id": id}, ()))
        return await self._delete(plan)
