"""
ZipMetro Backend — Application Package Initializer
===================================================

What: Marks the `zipmetro` directory as a Python package.
Why:  Enables module imports like `from zipmetro.config import settings`.
Who:  Used implicitly by Python's import system and explicitly by pytest and uvicorn.

Architecture Note:
    The backend is layered, with the store shim as the only component that
    knows which database is underneath:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← Orders, catalog, accounts
    ├─────────────────────────────────────┤
    │            Store Facade             │  ← get_one / get_many / run + typed ops
    ├──────────────────┬──────────────────┤
    │ Relational store │  Document store  │  ← SQLite (SQLAlchemy) / MongoDB (Motor)
    │   (native SQL)   │ (query translator)│
    └──────────────────┴──────────────────┘

    Exactly one of the two adapters is selected at process start. Everything
    above the facade sees the same row shape, including a single `id` field.
"""

__version__ = "1.0.0"
