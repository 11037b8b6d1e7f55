"""
Shared fixtures: in-memory SQLite store, a fresh notifier per test and an
HTTP client bound to the app with both dependencies overridden.
"""

import os

os.environ.setdefault("FORT_DATABASE_URL", "sqlite+aiosqlite://")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

import app.models  # noqa: F401
from app.core.database import get_session
from app.core.notifier import ResourceUpdateNotifier, get_notifier
from app.main import app as fastapi_app


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def notifier():
    notifier = ResourceUpdateNotifier(queue_size=50, subscriber_queue_size=10, max_subscribers_per_app=2)
    yield notifier
    await notifier.close()


@pytest.fixture
async def client(session_factory, notifier):
    async def override_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    fastapi_app.dependency_overrides[get_session] = override_session
    fastapi_app.dependency_overrides[get_notifier] = lambda: notifier
    try:
        async with AsyncClient(transport=ASGITransport(app=fastapi_app), base_url="http://test") as ac:
            yield ac
    finally:
        fastapi_app.dependency_overrides = {}


@pytest.fixture
async def shop_app(client):
    """App `shop` with key abc123 and a known secret."""
    response = await client.post(
        "/api/security-apps",
        json={"app_name": "shop", "app_key": "abc123", "app_secret": "s3cret"},
    )
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def shop_headers(shop_app):
    return {"X-Fort-App": shop_app["app_key"], "X-Fort-User": "alice"}
