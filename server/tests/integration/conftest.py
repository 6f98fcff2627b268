"""Fixtures for integration tests.

These tests run the database-backed store against a throwaway SQLite file
(through aiosqlite), so no database server is needed. The schema is created
from the ORM models for each test.

To run integration tests:
    pytest server/tests/integration -v

To run only unit tests:
    pytest server/tests/unit -v
"""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from gamerooms.db.models import Base
from gamerooms.db.store import DatabaseMetadataStore


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (require database)"
    )


def pytest_collection_modifyitems(config, items):
    """Auto-mark all tests in this directory as integration tests."""
    for item in items:
        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


@pytest.fixture
async def session_factory(tmp_path: Path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Provide a session factory bound to a fresh database.

    Creates a new engine for each test to avoid event loop issues with
    shared connection pools.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'rooms.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    # Dispose of the engine to clean up connections
    await engine.dispose()


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session for each test."""
    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


@pytest.fixture
def store(session_factory: async_sessionmaker[AsyncSession]) -> DatabaseMetadataStore:
    """Provide a metadata store backed by the test database.

    Overrides the in-memory store, so the shared manager fixture runs on it.
    """
    return DatabaseMetadataStore(session_factory)
