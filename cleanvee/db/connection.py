"""Database connection and session management for Cleanvee.

Engines and session factories are built explicitly (once per process, by the
worker or the CLI) and passed into the reactors, so nothing here holds a
module-level handle.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from cleanvee.config import DBConfig
from cleanvee.db.models import Base


def create_engine_from_config(db_config: DBConfig) -> AsyncEngine:
    """Create an async engine for the configured database.

    Args:
        db_config: Database settings (URL and pool sizing)

    Returns:
        AsyncEngine: SQLAlchemy async engine
    """
    engine_kwargs = {"echo": db_config.echo}

    # SQLite doesn't support connection pooling parameters
    if "sqlite" not in db_config.url.lower():
        engine_kwargs.update({
            "pool_size": db_config.pool_size,
            "max_overflow": db_config.pool_max_overflow,
            "pool_timeout": db_config.pool_timeout,
            "pool_pre_ping": True,  # Verify connections before using
            "pool_recycle": 3600,  # Recycle connections after 1 hour
        })

    return create_async_engine(db_config.url, **engine_kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create the session factory handed to reactors and the watchdog."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,  # Don't expire objects after commit
    )


@asynccontextmanager
async def session_scope(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Open a session that commits on success and rolls back on error.

    Usage:
        async with session_scope(factory) as session:
            session.add(model)

    Yields:
        AsyncSession: SQLAlchemy async session

    Raises:
        SQLAlchemyError: If database operation fails
    """
    session = session_factory()

    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


async def init_db(engine: AsyncEngine, drop: bool = False) -> None:
    """Create all tables (optionally dropping them first).

    Note: This is a convenience function for development/testing.

    Raises:
        SQLAlchemyError: If table creation fails
    """
    async with engine.begin() as conn:
        if drop:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
