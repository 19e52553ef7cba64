"""Service test fixtures — async DB + FastAPI test client.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db dependency overridden to use the test session factory
    - db_manager patched so the readiness probe pings the test engine

Design Decisions:
    - SQLite in-memory: fast, no external dependency; the affiliation upsert
      uses the SQLite ON CONFLICT dialect, FOR UPDATE is a no-op there
"""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession, async_sessionmaker, create_async_engine,
)

import assetverse.infrastructure.database as db_module
import assetverse.models  # noqa: F401
from assetverse.db.base import Base
from assetverse.infrastructure.database import DatabaseSessionManager, get_db
from assetverse.main import app

from tests.services.seed import add_asset, add_member, add_sponsor


@pytest.fixture
async def test_engine():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
async def client(test_engine, test_session_factory):
    """FastAPI test client with DB dependency overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager


@pytest.fixture
async def sponsor(test_db):
    return await add_sponsor(test_db)


@pytest.fixture
async def member(test_db):
    return await add_member(test_db)


@pytest.fixture
async def asset(test_db, sponsor):
    """Asset A from the lending scenario: total 3, available 3."""
    return await add_asset(test_db, sponsor, total=3)
