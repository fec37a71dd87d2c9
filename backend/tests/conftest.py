"""
ZipMetro Backend — Test Configuration (conftest.py)
=====================================================

What:  Shared pytest fixtures for the entire test suite.
Why:   Provides reusable test infrastructure (temp SQLite store, mocked
       Motor objects, API client, auth headers).
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.
Who:   Used by all test files in the tests/ directory.
When:  Fixtures are created fresh for each test.

Fixture Hierarchy:
    ├── test_settings:     Settings pointing at a temp database and storage root
    ├── relational_store:  Connected RelationalStore on a temp SQLite file
    ├── store:             StoreFacade over relational_store
    ├── mock_database:     MagicMock standing in for a Motor database
    ├── app:               create_app(test_settings) with its lifespan running
    ├── test_client:       HTTPX AsyncClient bound to that app
    ├── admin_headers:     Bearer header of the startup admin account
    └── customer_headers:  Bearer header of a freshly registered customer
"""

import os
import tempfile
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient


# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Override settings for testing BEFORE any app imports
# Why: zipmetro.main builds a module-level app from the process settings
_TEST_ROOT = tempfile.mkdtemp(prefix="zipmetro_test_")
os.environ.pop("DATABASE_URL", None)
os.environ.pop("MONGODB_URI", None)
os.environ["DATABASE_PATH"] = os.path.join(_TEST_ROOT, "default.db")
os.environ["STORAGE_ROOT"] = os.path.join(_TEST_ROOT, "uploads")
os.environ["JWT_SECRET"] = "test-secret-0123456789abcdef0123456789abcdef"
os.environ["LOG_LEVEL"] = "WARNING"  # Reduce noise during tests

from zipmetro.config import Settings  # noqa: E402
from zipmetro.store.facade import StoreFacade  # noqa: E402
from zipmetro.store.relational import RelationalStore  # noqa: E402

ADMIN_EMAIL = "admin@zipmetro.test"
ADMIN_PASSWORD = "admin-password-for-tests"


# ══════════════════════════════════════════════════════════════════════════
# Function-Scoped Fixtures (created fresh for each test)
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def test_settings(tmp_path):
    """
    Settings for one test.

    What:    Relational store on a temp file, uploads under tmp_path.
    Why:     Every test gets an empty database.
    How:     bcrypt at its minimum work factor so hashing stays fast.
    """
    return Settings(
        database_url=None,
        mongodb_uri=None,
        database_path=str(tmp_path / "zipmetro.db"),
        storage_root=str(tmp_path / "uploads"),
        jwt_secret="test-secret-0123456789abcdef0123456789abcdef",
        bcrypt_rounds=4,
        admin_email=ADMIN_EMAIL,
        admin_password=ADMIN_PASSWORD,
        rate_limit_requests=1000,
        log_level="WARNING",
    )


@pytest_asyncio.fixture
async def relational_store(tmp_path):
    """A connected SQLite store with all tables created."""
    store = RelationalStore(str(tmp_path / "store.db"))
    await store.connect()
    yield store
    await store.close()


@pytest.fixture
def store(relational_store):
    """A StoreFacade over the temp SQLite store, as services receive it."""
    return StoreFacade(relational_store)


@pytest.fixture
def mock_collection():
    """
    Provides a mock Motor collection.

    Usage:
        mock_collection.find_one.return_value = {"_id": oid, "name": "Blue Dream"}
    """
    collection = MagicMock()
    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.limit.return_value = cursor
    cursor.to_list = AsyncMock(return_value=[])
    collection.find = MagicMock(return_value=cursor)
    collection.find_one = AsyncMock(return_value=None)
    collection.count_documents = AsyncMock(return_value=0)
    collection.insert_one = AsyncMock()
    collection.replace_one = AsyncMock()
    collection.update_many = AsyncMock(return_value=MagicMock(matched_count=1))
    collection.delete_one = AsyncMock(return_value=MagicMock(deleted_count=1))
    collection.create_index = AsyncMock()
    return collection


@pytest.fixture
def mock_database(mock_collection):
    """A mock Motor database; every collection name returns `mock_collection`."""
    db = MagicMock()
    db.name = "zipmetro"
    db.__getitem__.return_value = mock_collection
    db.command = AsyncMock(return_value={"ok": 1})
    return db


@pytest.fixture
def mock_connection(mock_database):
    """A DocumentConnection stand-in that is already connected."""
    connection = MagicMock()
    connection.database = AsyncMock(return_value=mock_database)
    connection.close = AsyncMock()
    connection.circuit_breaker.state = "closed"
    return connection


@pytest_asyncio.fixture
async def app(test_settings):
    """The application with its lifespan (store connect, admin account) running."""
    from zipmetro.main import create_app, lifespan

    application = create_app(test_settings)
    async with lifespan(application):
        yield application


@pytest_asyncio.fixture
async def test_client(app):
    """
    Provides an async HTTP test client for endpoint testing.

    What:    HTTPX AsyncClient configured to talk to our FastAPI app.
    Why:     Enables testing of HTTP endpoints without running a server.
    How:     Uses ASGITransport to route requests directly to the app.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def admin_headers(test_client):
    response = await test_client.post(
        "/api/auth/login",
        json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD},
    )
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest_asyncio.fixture
async def customer_headers(test_client):
    response = await test_client.post(
        "/api/auth/register",
        json={
            "email": "jane@example.com",
            "password": "s3cret-pass",
            "first_name": "Jane",
            "last_name": "Doe",
            "phone": "555-0100",
        },
    )
    assert response.status_code == 201
    return {"Authorization": f"Bearer {response.json()['token']}"}
