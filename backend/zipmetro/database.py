"""
ZipMetro Backend — Relational Engine & Declarative Base
=========================================================

What:  SQLAlchemy declarative base for the storefront tables, plus the engine
       factory used by the relational store adapter.
Why:   The ORM models are the single schema definition: the relational store
       creates its tables from them, and the typed query path compiles
       conditions against their column metadata.
How:   Async engine over aiosqlite. The engine is created by the relational
       adapter (not at import time) so tests can point it at a temp file.
Who:   zipmetro.store.relational, zipmetro.models.storefront
When:  Engine created when the store facade is built; disposed at shutdown.

Architecture Decision:
    Async SQLAlchemy with the aiosqlite driver:
    1. Non-blocking I/O, the event loop stays free while SQLite works
    2. exec_driver_sql runs the literal `?` placeholder statements unchanged
       (aiosqlite's paramstyle is qmark)
    3. The same AsyncEngine API works against server databases later
    Alternative considered: stdlib sqlite3 in a threadpool, which loses the
    Core statement compiler the typed query path is built on
"""

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import DeclarativeBase


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    All models inherit from this class to register with the shared metadata,
    which the relational adapter uses for `create_all` and for looking up
    tables by collection name.
    """
    pass


def sqlite_url(database_path: str) -> str:
    """Builds the aiosqlite URL for a database file path."""
    return f"sqlite+aiosqlite:///{database_path}"


def create_relational_engine(url: str, echo: bool = False) -> AsyncEngine:
    """
    What:  Creates the async engine for the relational store.
    How:   Server databases get the pooled connection settings. SQLite keeps
           its defaults, foreign keys included (unenforced), so products with
           order history can still be deleted.

    Connection Pooling Strategy (server databases only):
        pool_pre_ping:     Validates connections before use
        pool_recycle=3600: Recycles connections every hour
    """
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=echo)

    return create_async_engine(
        url,
        pool_pre_ping=True,
        pool_recycle=3600,
        echo=echo,
    )
