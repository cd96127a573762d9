"""
Shared test fixtures.

Uses an in-memory SQLite database (via aiosqlite) built from the real
models, so tests run without Docker / PostgreSQL.  Redis is replaced by a
small in-memory stand-in that supports the two commands the revoked-token
store issues.
"""

from __future__ import annotations

from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from roadassist.infrastructure.database import Base
from roadassist.infrastructure import models  # noqa: F401  (registers tables)

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"


class InMemoryRedis:
    """Just enough of ``redis.asyncio.Redis`` for ``TokenRevocationStore``."""

    def __init__(self):
        self.data: dict[str, str] = {}
        self.ttls: dict[str, Optional[int]] = {}

    async def set(self, key, value, ex=None):
        self.data[key] = value
        self.ttls[key] = ex
        return True

    async def exists(self, *keys):
        return sum(1 for k in keys if k in self.data)


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh schema per test; StaticPool keeps the one in-memory DB alive."""
    engine = create_async_engine(TEST_DB_URL, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def file_session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker, None]:
    """Like ``session_factory`` but file-backed, so each session gets its own
    connection and sees only what the others have committed."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'roadassist.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_redis() -> InMemoryRedis:
    return InMemoryRedis()


@pytest_asyncio.fixture
async def client(session_factory, fake_redis) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient wired to the SQLite session factory and in-memory Redis."""
    from roadassist.api.app import create_app
    from roadassist.api.dependencies import get_db
    from roadassist.api.middleware import limiter
    from roadassist.infrastructure.redis_client import get_redis

    async def _test_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def _test_redis():
        return fake_redis

    limiter.reset()
    app = create_app()
    app.dependency_overrides[get_db] = _test_db
    app.dependency_overrides[get_redis] = _test_redis

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def sign_up(client):
    """Factory: create an account and return its bearer headers and tokens."""

    async def _sign_up(
        email: str,
        user_type: str = "customer",
        full_name: str = "Test User",
        password: str = "secret123",
    ) -> dict:
        resp = await client.post(
            "/api/v1/auth/sign-up",
            json={
                "email": email,
                "password": password,
                "full_name": full_name,
                "user_type": user_type,
            },
        )
        assert resp.status_code == 201, resp.text
        tokens = resp.json()
        return {
            "headers": {"Authorization": f"Bearer {tokens['access_token']}"},
            "access_token": tokens["access_token"],
            "refresh_token": tokens["refresh_token"],
        }

    return _sign_up


@pytest.fixture
def garage_account(client, sign_up):
    """Factory: a garage account with its garage record already set up."""

    async def _garage(
        email: str,
        latitude: Optional[float] = 12.9716,
        longitude: Optional[float] = 77.5946,
        is_available: bool = True,
    ) -> dict:
        account = await sign_up(email, user_type="garage", full_name="Garage Owner")
        resp = await client.post(
            "/api/v1/garage/setup",
            json={
                "garage_name": f"Garage {email}",
                "address": "1 Workshop Lane",
                "latitude": latitude,
                "longitude": longitude,
            },
            headers=account["headers"],
        )
        assert resp.status_code == 201, resp.text
        account["garage"] = resp.json()
        if not is_available:
            resp = await client.patch(
                "/api/v1/garage/me/availability",
                json={"is_available": False},
                headers=account["headers"],
            )
            assert resp.status_code == 200
        return account

    return _garage
