"""
ZipMetro Backend — Store Package
==================================

What:  The dual-backend data-access layer.

Modules:
    - query.py:       structured conditions, parsed queries and mutation plans
    - translator.py:  literal `?`-placeholder SQL → structured plans
    - base.py:        StoreAdapter contract shared by both backends
    - connection.py:  owned MongoDB client with retry and circuit breaker
    - document.py:    MongoDB adapter (Motor)
    - relational.py:  SQLite adapter (SQLAlchemy async + aiosqlite)
    - facade.py:      StoreFacade, picks one adapter at startup
"""
