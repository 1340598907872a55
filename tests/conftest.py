"""Shared test fixtures: testcontainers for PostgreSQL.

Integration tests use a real PostgreSQL container managed by
testcontainers-python. The container is session-scoped (started once per
test run). Each test function gets an isolated DB connection whose outer
transaction is rolled back at teardown.

Requires Docker to be available. Tests needing the container should be
marked with ``@pytest.mark.integration``.
"""

from __future__ import annotations

import os
from collections.abc import AsyncIterator, Callable, Iterator

import pytest
import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool
from testcontainers.postgres import PostgresContainer

from toolhub.mcp_server.db.tables import Base
from toolhub.mcp_server.settings import _get_settings_cached


def _set_env(key: str, value: str) -> None:
    """Set an env var and invalidate the settings cache."""
    os.environ[key] = value
    _get_settings_cached.cache_clear()


# ---------------------------------------------------------------------------
# Session-scoped: container (started once, shared across all tests)
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def pg_container() -> Iterator[PostgresContainer]:
    """Start a PostgreSQL 17 container for the test session."""
    with PostgresContainer(
        image="postgres:17",
        username="test",
        password="test",
        dbname="toolhub_test",
        driver="psycopg",
    ) as pg:
        yield pg


# ---------------------------------------------------------------------------
# Session-scoped: connection URL and schema
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def pg_url(pg_container: PostgresContainer) -> str:
    """PostgreSQL URL (psycopg3 dialect) with the ``block`` schema created.

    The schema belongs to the host application, so tests build it straight
    from the table metadata.
    """
    url = pg_container.get_connection_url()
    _set_env("TOOLHUB_DATABASE_URL", url)

    engine = sa.create_engine(url)
    try:
        Base.metadata.create_all(engine)
    finally:
        engine.dispose()

    return url


# ---------------------------------------------------------------------------
# Session-scoped: async engine (shared across all tests)
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def async_engine(pg_url: str) -> Iterator[AsyncEngine]:
    """Session-scoped async SQLAlchemy engine.

    ``NullPool`` keeps connections from leaking across per-test event loops.
    """
    engine = create_async_engine(pg_url, poolclass=NullPool)
    yield engine
    engine.sync_engine.dispose()


# ---------------------------------------------------------------------------
# Function-scoped: connection + sessions with savepoint rollback
# ---------------------------------------------------------------------------


@pytest.fixture
async def db_connection(async_engine: AsyncEngine) -> AsyncIterator[AsyncConnection]:
    """Connection inside an outer transaction that is rolled back at teardown."""
    async with async_engine.connect() as conn:
        await conn.begin()
        yield conn
        await conn.rollback()


@pytest.fixture
async def db_session(db_connection: AsyncConnection) -> AsyncIterator[AsyncSession]:
    """Async SQLAlchemy session; all changes rolled back after the test.

    Uses ``join_transaction_mode="create_savepoint"`` so that session.commit()
    inside tested code only commits a savepoint, while the outer transaction
    is rolled back at teardown -- giving each test a clean database state.
    """
    session = AsyncSession(bind=db_connection, join_transaction_mode="create_savepoint")
    yield session
    await session.close()


@pytest.fixture
def db_session_factory(db_connection: AsyncConnection) -> Callable[[], AsyncSession]:
    """Stand-in for ``async_sessionmaker`` bound to the test connection.

    Code under test opens and closes its own sessions; they all share the
    rolled-back outer transaction.
    """

    def _factory() -> AsyncSession:
        return AsyncSession(bind=db_connection, join_transaction_mode="create_savepoint", expire_on_commit=False)

    return _factory
