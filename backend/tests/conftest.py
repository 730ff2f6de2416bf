"""
Conftest

Tests run against a throwaway SQLite file. The environment is set before
content_admin is imported so the engine, cache and storage singletons pick it up.
"""
import fnmatch
import os
import tempfile

_test_dir = tempfile.mkdtemp(prefix="content_admin_tests_")
TEST_DB_PATH = os.path.join(_test_dir, "test.db")

os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{TEST_DB_PATH}"
os.environ["ENABLE_CACHE"] = "false"
os.environ["STORAGE_BACKEND"] = "local"
os.environ["LOCAL_MEDIA_ROOT"] = os.path.join(_test_dir, "media")
os.environ["TRANSACTION_RETRY_BACKOFF"] = "0"
os.environ["ADMIN_API_KEY"] = ""

from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine

from content_admin.database import Base
from content_admin.main import app
from content_admin.models import category, glossary, media  # noqa: F401
from content_admin.services.cache import cache_service
from content_admin.services.document_store import DocumentStore
from content_admin.services.storage import LocalObjectStorage


@pytest.fixture(autouse=True)
def fresh_database():
    # Plain sqlite3 engine so the reset needs no event loop
    sync_engine = create_engine(f"sqlite:///{TEST_DB_PATH}")
    Base.metadata.drop_all(sync_engine)
    Base.metadata.create_all(sync_engine)
    yield
    sync_engine.dispose()


@pytest.fixture
def store() -> DocumentStore:
    """A store with its own change feed"""
    return DocumentStore()


@pytest.fixture
def local_storage(tmp_path) -> LocalObjectStorage:
    return LocalObjectStorage(root=str(tmp_path / "media"), base_url="/media")


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


class InMemoryRedis:
    """The slice of redis.asyncio.Redis the snapshot cache talks to"""

    def __init__(self):
        self.values = {}
        self.ttls = {}

    async def ping(self):
        return True

    async def get(self, key):
        return self.values.get(key)

    async def setex(self, key, ttl, value):
        self.values[key] = value
        self.ttls[key] = ttl

    async def incr(self, key):
        value = int(self.values.get(key, 0)) + 1
        self.values[key] = str(value)
        return value

    async def delete(self, *keys):
        return sum(1 for key in keys if self.values.pop(key, None) is not None)

    async def scan_iter(self, match="*"):
        for key in list(self.values):
            if fnmatch.fnmatchcase(key, match):
                yield key

    async def close(self):
        pass


@pytest.fixture
def redis_cache(monkeypatch) -> InMemoryRedis:
    """Enable the snapshot cache against an in-memory Redis"""
    fake = InMemoryRedis()
    monkeypatch.setattr(cache_service, "redis_client", fake)
    return fake
