"""Async SQLAlchemy engine and session factory for the record store.

Uses psycopg3 (``postgresql+psycopg://``).  ``postgresql://`` URLs, as used by
the host application, are rewritten to the psycopg dialect.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine


def normalize_database_url(database_url: str) -> str:
    """Pin bare ``postgresql://`` / ``postgres://`` URLs to the psycopg driver."""
    for prefix in ("postgresql://", "postgres://"):
        if database_url.startswith(prefix):
            return "postgresql+psycopg://" + database_url.removeprefix(prefix)
    return database_url


def create_engine(database_url: str, **kwargs: object) -> AsyncEngine:
    """Create an async engine with a small fixed-size pool.

    - **pool_size=10**: connections kept open.
    - **pool_pre_ping=True**: test connections before checkout so restarts
      and idle disconnects on the PostgreSQL side are survived.
    - **pool_recycle=3600**: recycle connections after an hour.
    - **connect_args.connect_timeout=10**: seconds to wait for a connection.

    All defaults can be overridden via *kwargs*.
    """
    defaults: dict[str, object] = {
        "echo": False,
        "pool_size": 10,
        "max_overflow": 0,
        "pool_pre_ping": True,
        "pool_recycle": 3600,
        "connect_args": {"connect_timeout": 10},
    }
    defaults.update(kwargs)
    return create_async_engine(normalize_database_url(database_url), **defaults)  # type: ignore[arg-type]


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to *engine*.

    ``expire_on_commit=False`` keeps ORM rows readable after commit, which the
    tool handlers rely on when formatting results.
    """
    return async_sessionmaker(engine, expire_on_commit=False)
