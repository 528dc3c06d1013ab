"""
Yote — Test Configuration (conftest.py)
========================================

What:  Shared pytest fixtures for the server and cache client suites.
How:   Environment overrides are applied before anything from `yote` is
       imported, so the module-level settings and engine pick them up.

Fixture Hierarchy (all function-scoped):
    ├── clock: FakeClock returning controllable epoch milliseconds
    ├── db_engine: in-memory SQLite engine with every table created
    │   ├── session_factory: sessions bound to that engine
    │   │   ├── db_session: one session for service-level tests
    │   │   └── users: seeded admin + member users
    │   └── app: the FastAPI app with get_db_session overridden
    │       └── test_client: HTTPX AsyncClient over ASGITransport
    └── api_factory: builds ApiClients that talk to the app in-process
"""

import os

# Override settings for testing BEFORE any yote imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["LOG_LEVEL"] = "WARNING"

from typing import AsyncGenerator, Dict

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from yote.client.api import ApiClient
from yote.database import Base, get_db_session
from yote.models import User


class FakeClock:
    """Callable clock for the cache layer; time only moves when told to."""

    def __init__(self, now: int = 1_700_000_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    """
    A fresh in-memory database per test.

    StaticPool keeps a single connection open so every session sees the
    same in-memory database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def users(session_factory) -> Dict[str, User]:
    """
    Seeded users:
        admin:  roles ["admin"]
        member: no roles
    """
    admin = User(username="admin", first_name="Ada", last_name="Admin", roles=["admin"])
    member = User(username="member", first_name="Max", last_name="Member", roles=[])
    async with session_factory() as session:
        session.add_all([admin, member])
        await session.commit()
    return {"admin": admin, "member": member}


# ══════════════════════════════════════════════════════════════════════════
# HTTP
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def app(session_factory):
    """The FastAPI app with its session dependency pointed at the test database."""
    from yote.main import app as fastapi_app

    async def override_get_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    fastapi_app.dependency_overrides[get_db_session] = override_get_db_session
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def test_client(app):
    """
    HTTPX AsyncClient routed straight into the app.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def api_factory(app):
    """
    Builds ApiClients bound to the in-process app.

    Usage:
        api = api_factory(user_id=users["member"].id)
    """
    clients = []

    def factory(user_id=None) -> ApiClient:
        api = ApiClient(base_url="http://test", user_id=user_id, transport=ASGITransport(app=app))
        clients.append(api)
        return api

    yield factory
    for api in clients:
        await api.aclose()
