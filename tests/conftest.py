"""Shared pytest fixtures for all tests."""

import bcrypt
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from fragments.config import Settings
from fragments.storage import (
    FileBlobStore,
    MemoryBlobStore,
    MemoryMetadataStore,
    SQLiteMetadataStore,
    StorageBackend,
)
from server.auth import UserStore
from server.main import create_app
from tests.helpers import USERS, make_image


@pytest.fixture
def memory_store():
    """
    Create an in-memory storage backend.

    Returns:
        StorageBackend with memory metadata and blob stores
    """
    return StorageBackend(MemoryMetadataStore(), MemoryBlobStore())


def make_durable_store(root) -> StorageBackend:
    return StorageBackend(
        SQLiteMetadataStore(str(root / "meta" / "fragments.db")),
        FileBlobStore(str(root / "blobs")),
    )


@pytest_asyncio.fixture
async def durable_store(tmp_path):
    """
    Create an initialized SQLite + filesystem storage backend in a temp directory.

    Args:
        tmp_path: pytest tmp_path fixture

    Yields:
        StorageBackend with SQLite metadata and file blobs
    """
    store = make_durable_store(tmp_path)
    await store.init()
    yield store
    await store.shutdown()


@pytest_asyncio.fixture(params=["memory", "durable"])
async def any_store(request, tmp_path):
    """Run a test against both backends."""
    if request.param == "memory":
        store = StorageBackend(MemoryMetadataStore(), MemoryBlobStore())
    else:
        store = make_durable_store(tmp_path)
    await store.init()
    yield store
    await store.shutdown()


@pytest.fixture
def png_bytes():
    return make_image("PNG", "RGBA")


@pytest.fixture
def user_store():
    """
    Credentials for the test users, hashed with a low bcrypt cost.
    """
    return UserStore({
        email: bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=4)).decode("utf-8")
        for email, password in USERS.items()
    })


@pytest.fixture
def settings():
    return Settings(api_url="http://fragments.test", max_body_bytes=1024 * 1024)


@pytest.fixture
def client(settings, memory_store, user_store):
    """
    Create a FastAPI test client running the app lifespan.

    Yields:
        TestClient bound to an app using the in-memory backend
    """
    app = create_app(settings=settings, store=memory_store, user_store=user_store)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def user1():
    return ("user1@email.com", USERS["user1@email.com"])


@pytest.fixture
def user2():
    return ("user2@email.com", USERS["user2@email.com"])
