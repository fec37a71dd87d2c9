"""
ZipMetro Backend — Store Facade
=================================

What:  The single data-access entry point for services and routes.
Why:   Callers never know (or care) which database is underneath.
How:   Built once from settings; holds exactly one adapter and forwards the
       literal operations (get_one, get_many, run), the typed operations and
       the lifecycle calls to it.
Who:   Created in main.create_app(), stored on app.state.store, injected into
       handlers via zipmetro.dependencies.get_store.
When:  Built at app creation; connect() in lifespan startup, close() at shutdown.

Backend Selection (made once, never re-evaluated):
    DATABASE_URL or MONGODB_URI set → DocumentStore (MongoDB via Motor)
    otherwise                       → RelationalStore (SQLite at DATABASE_PATH)
"""

import logging
from typing import Any, List, Mapping, Optional, Sequence

from zipmetro.config import Settings
from zipmetro.store.base import Row, StoreAdapter
from zipmetro.store.connection import DocumentConnection
from zipmetro.store.document import DocumentStore
from zipmetro.store.query import Condition, RunResult, Sort
from zipmetro.store.relational import RelationalStore

logger = logging.getLogger(__name__)


class StoreFacade:
    """Forwards every store call to the adapter chosen at startup."""

    def __init__(self, adapter: StoreAdapter):
        self.adapter = adapter

    @classmethod
    def from_settings(cls, settings: Settings) -> "StoreFacade":
        url = settings.document_store_url
        if url:
            connection = DocumentConnection(
                url,
                settings.mongo_database,
                max_attempts=settings.retry_max_attempts,
                min_wait=settings.retry_min_wait,
                max_wait=settings.retry_max_wait,
                jitter=settings.retry_jitter,
                failure_threshold=settings.cb_failure_threshold,
                recovery_timeout=settings.cb_recovery_timeout,
                client_options={
                    "serverSelectionTimeoutMS": settings.mongo_server_selection_timeout_ms,
                    "connectTimeoutMS": settings.mongo_connect_timeout_ms,
                    "socketTimeoutMS": settings.mongo_socket_timeout_ms,
                    "maxPoolSize": settings.mongo_max_pool_size,
                    "retryWrites": True,
                    "retryReads": True,
                },
            )
            adapter: StoreAdapter = DocumentStore(connection)
            logger.info("Store backend: document (MongoDB)")
        else:
            adapter = RelationalStore(
                settings.database_path,
                echo=settings.log_level == "DEBUG",
            )
            logger.info("Store backend: relational (SQLite at %s)", settings.database_path)
        return cls(adapter)

    @property
    def backend(self) -> str:
        """Either "document" or "relational"."""
        return self.adapter.backend

    @property
    def circuit_state(self) -> Optional[str]:
        return self.adapter.circuit_state

    def native_id(self, value: Any) -> Any:
        return self.adapter.native_id(value)

    # ── Lifecycle ─────────────────────────────────────────────────────────

    async def connect(self) -> None:
        await self.adapter.connect()

    async def close(self) -> None:
        await self.adapter.close()

    async def health_check(self) -> bool:
        return await self.adapter.health_check()

    # ── Literal operations ────────────────────────────────────────────────

    async def get_one(self, sql: str, params: Sequence[Any] = ()) -> Optional[Row]:
        return await self.adapter.get_one(sql, params)

    async def get_many(self, sql: str, params: Sequence[Any] = ()) -> List[Row]:
        return await self.adapter.get_many(sql, params)

    async def run(self, sql: str, params: Sequence[Any] = ()) -> RunResult:
        return await self.adapter.run(sql, params)

    # ── Typed operations ──────────────────────────────────────────────────

    async def find_by_id(
        self, collection: str, id: Any, fields: Optional[List[str]] = None
    ) -> Optional[Row]:
        return await self.adapter.find_by_id(collection, id, fields=fields)

    async def find_one(
        self,
        collection: str,
        where: Optional[Mapping[str, Any]] = None,
        *,
        conditions: Sequence[Condition] = (),
        fields: Optional[List[str]] = None,
        sort: Optional[Sort] = None,
    ) -> Optional[Row]:
        return await self.adapter.find_one(
            collection, where, conditions=conditions, fields=fields, sort=sort
        )

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
        return await self.adapter.find_many(
            collection, where, conditions=conditions, fields=fields, sort=sort, limit=limit
        )

    async def count(
        self,
        collection: str,
        where: Optional[Mapping[str, Any]] = None,
        *,
        conditions: Sequence[Condition] = (),
    ) -> int:
        return await self.adapter.count(collection, where, conditions=conditions)

    async def insert(
        self, collection: str, values: Mapping[str, Any], *, replace: bool = False
    ) -> RunResult:
        return await self.adapter.insert(collection, values, replace=replace)

    async def update_by_id(
        self, collection: str, id: Any, values: Mapping[str, Any]
    ) -> RunResult:
        return await self.adapter.update_by_id(collection, id, values)

    async def update_where(
        self,
        collection: str,
        where: Optional[Mapping[str, Any]],
        values: Mapping[str, Any],
        *,
        conditions: Sequence[Condition] = (),
    ) -> RunResult:
        return await self.adapter.update_where(
            collection, where, values, conditions=conditions
        )

    async def delete_by_id(self, collection: str, id: Any) -> RunResult:
        return await self.adapter.delete_by_id(collection, id)
