"""Service test fixtures — async DB, fake generator, FastAPI test client.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db dependency overridden to use test DB sessions
    - get_content_generator overridden with the per-test FakeContentGenerator
    - db_manager patched so readiness probes see the test engine

Design Decisions:
    - SQLite in-memory: fast, no external dependency, sufficient for service tests
      (deferred FK checks are PostgreSQL-only and not exercised here)
    - StaticPool: every session shares the one in-memory connection, so separate
      sessions can play the two sides of a race
"""

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from sqlalchemy.pool import StaticPool
from httpx import ASGITransport, AsyncClient

from epoch_adventures.api.dependencies import get_content_generator
from epoch_adventures.db.base import Base
from epoch_adventures.infrastructure.database import get_db, DatabaseSessionManager
from epoch_adventures.services.graph_builder import GraphBuilder
import epoch_adventures.models  # noqa: F401
import epoch_adventures.infrastructure.database as db_module
from epoch_adventures.main import app

from tests.outline_factory import branching_outline
from tests.services.fakes import FakeContentGenerator


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False, poolclass=StaticPool,
    )
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
def fake_generator():
    return FakeContentGenerator()


@pytest.fixture
async def published(test_db, fake_generator):
    """The branching scenario built and published; returns the BuildResult."""
    return await GraphBuilder(test_db, fake_generator).build(branching_outline())


@pytest.fixture
async def client(test_engine, test_session_factory, fake_generator):
    """FastAPI test client with DB and generator dependencies overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_content_generator] = lambda: fake_generator

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
