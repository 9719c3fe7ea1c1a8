"""
Centralized Test Configuration.
"""

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import NullPool, Pool, StaticPool

from backend.app.main import app
from backend.app.db.session import get_db, Base
from backend.app.models.enums import UserRole
import backend.app.core.redis_client as redis_client_module
from backend.tests.factories import auth_headers, create_user

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)


# Mock Redis for reliability in CI/CD
class MockRedis:
    def __init__(self):
        self.store = {}
        self.ttls = {}
        self._closed = False

    async def ping(self):
        return not self._closed

    async def get(self, key):
        if self._closed:
            return None
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        if self._closed:
            return False
        self.store[key] = value
        if ex is not None:
            self.ttls[key] = ex
        return True

    async def setex(self, key, seconds, value):
        return await self.set(key, value, ex=seconds)

    async def delete(self, key):
        if self._closed or key not in self.store:
            return 0
        del self.store[key]
        self.ttls.pop(key, None)
        return 1

    async def exists(self, key):
        if self._closed:
            return 0
        return 1 if key in self.store else 0

    async def flushdb(self):
        if not self._closed:
            self.store = {}
            self.ttls = {}

    async def aclose(self):
        self._closed = True
        self.store = {}


@pytest.fixture(scope="session")
def redis_client_session():
    return MockRedis()


@pytest.fixture(scope="session", autouse=True)
def apply_overrides(redis_client_session):
    """Apply overrides once for the session."""
    # Patch the global redis client used by token revocation
    original_client = redis_client_module.redis_client
    redis_client_module.redis_client = redis_client_session

    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield

    # Restore and clear
    app.dependency_overrides = {}
    redis_client_module.redis_client = original_client


@pytest.fixture(autouse=True)
async def setup_database(redis_client_session):
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    await redis_client_session.flushdb()

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# Shared session for fixture data creation
@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session


@pytest.fixture
async def admin_user(db_session):
    return await create_user(db_session, "13800000001", UserRole.ADMIN)


@pytest.fixture
async def member_user(db_session):
    return await create_user(db_session, "13800000002", UserRole.MEMBER)


@pytest.fixture
def admin_headers(admin_user):
    return auth_headers(admin_user)


@pytest.fixture
def member_headers(member_user):
    return auth_headers(member_user)


@pytest.fixture
async def file_session_factory(tmp_path):
    """
    Sessions on a file-backed SQLite database, one connection per session.

    Transactions start with BEGIN IMMEDIATE so concurrent writers queue on
    the database lock instead of failing with SQLITE_BUSY.
    """
    file_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}",
        connect_args={"timeout": 30},
        poolclass=NullPool,
    )

    @event.listens_for(file_engine.sync_engine, "connect")
    def disable_driver_transactions(dbapi_conn, connection_record):
        dbapi_conn.isolation_level = None

    @event.listens_for(file_engine.sync_engine, "begin")
    def begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    async with file_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(file_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)

    await file_engine.dispose()
