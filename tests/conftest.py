"""Shared fixtures for CoParent backend tests.

Uses SQLite (aiosqlite), no PostgreSQL required. Every test gets a fresh
in-memory database; concurrency tests use a file database so that two
sessions really hold separate connections.
"""

import os
import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Ensure settings can be loaded without .env
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-unit-tests")

from coparent.database import Base  # noqa: E402


async def _create_engine(url: str, **kwargs):
    import coparent.models  # noqa: F401  populate Base.metadata

    engine = create_async_engine(url, echo=False, **kwargs)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    return engine


# ---------------------------------------------------------------------------
# Engine: SQLite in-memory with StaticPool (shared across connections)
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture()
async def session_factory():
    engine = await _create_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture()
async def file_session_factory(tmp_path):
    """Sessions on a file database, each with its own connection."""
    engine = await _create_engine(f"sqlite+aiosqlite:///{tmp_path / 'coparent.db'}")
    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


# ---------------------------------------------------------------------------
# No Redis in tests; reset rate-limiter counters before every test
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _no_redis(monkeypatch):
    async def _unavailable():
        return None

    monkeypatch.setattr("coparent.core.redis_client.get_redis", _unavailable)


class FakeRedis:
    """Dict-backed stand-in for the redis.asyncio calls the rule cache makes.

    ``before_set`` runs once, right before the next ``set`` is applied.
    """

    def __init__(self):
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int | None] = {}
        self.before_set = None

    async def ping(self):
        return True

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None, nx=False):
        if self.before_set is not None:
            hook, self.before_set = self.before_set, None
            await hook()
        if nx and key in self.store:
            return None
        self.store[key] = value
        self.ttls[key] = ex
        return True


@pytest.fixture()
def fake_redis(monkeypatch):
    """Route the rule cache to an in-process FakeRedis."""
    fake = FakeRedis()

    async def _connected():
        return fake

    monkeypatch.setattr("coparent.core.redis_client.get_redis", _connected)
    return fake


@pytest.fixture(autouse=True)
def _reset_rate_limits():
    """Clear in-memory rate-limit counters so tests never block each other."""
    from coparent.core.rate_limit import limiter

    storage = getattr(limiter, "_storage", None)
    if storage is not None and hasattr(storage, "reset"):
        storage.reset()


# ---------------------------------------------------------------------------
# Per-test session
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture()
async def db_session(session_factory):
    async with session_factory() as session:
        yield session
        await session.rollback()


# ---------------------------------------------------------------------------
# HTTP test client
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture()
async def client(session_factory):
    """Client whose requests each run in their own committed unit of work."""
    from coparent.database import get_db
    from coparent.main import app

    async def _override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Identities
# ---------------------------------------------------------------------------

@pytest.fixture()
def make_headers():
    """Build bearer headers for an identity-provider user."""
    from coparent.core.security import create_access_token

    def _make(user_id: str | None = None, email: str | None = None, name: str | None = None):
        user_id = user_id or f"uid-{uuid.uuid4().hex[:12]}"
        claims = {"sub": user_id}
        if email:
            claims["email"] = email
        if name:
            claims["name"] = name
        token = create_access_token(claims)
        return {"Authorization": f"Bearer {token}"}

    return _make


@pytest_asyncio.fixture()
async def parent(client: AsyncClient, make_headers):
    """A signed-in parent who created a family.

    Keys: headers, user_id, family_id, email
    """
    suffix = uuid.uuid4().hex[:8]
    user_id = f"parent-a-{suffix}"
    email = f"anna-{suffix}@example.com"
    headers = make_headers(user_id, email, "Anna")

    resp = await client.post(
        "/api/v1/families",
        headers=headers,
        json={"name": "Familie Test", "timezone": "Europe/Berlin"},
    )
    assert resp.status_code == 201, resp.text

    return {
        "headers": headers,
        "user_id": user_id,
        "family_id": resp.json()["id"],
        "email": email,
    }
