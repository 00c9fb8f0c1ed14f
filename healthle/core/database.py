"""
Database configuration and session management.

Provides SQLAlchemy async engine setup, session factory, and dependency
injection for database sessions in FastAPI routes.
"""

import os
from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    AsyncEngine,
    create_async_engine,
    async_sessionmaker,
)
from sqlalchemy import event
from sqlalchemy.pool import StaticPool

from healthle.core.config import settings
from healthle.models.base import Base


def get_async_engine() -> AsyncEngine:
    """
    Create and configure the async SQLAlchemy engine.

    PostgreSQL (asyncpg) uses the driver's default pool with pre-ping.
    SQLite (local runs and tests) uses a StaticPool so an in-memory
    database is shared by every session, with foreign keys enforced.

    Returns:
        Configured AsyncEngine instance
    """
    is_sqlite = "sqlite" in settings.database_url

    connect_args: dict = {"check_same_thread": False} if is_sqlite else {}

    engine_kwargs = {
        "echo": False,
        "connect_args": connect_args,
    }

    if is_sqlite:
        engine_kwargs["poolclass"] = StaticPool
    else:
        engine_kwargs["pool_pre_ping"] = True

    engine = create_async_engine(
        settings.database_url,
        **engine_kwargs,
    )

    if is_sqlite:
        @event.listens_for(engine.sync_engine, "connect")
        def _set_sqlite_pragma(dbapi_connection, connection_record):  # noqa: ANN001
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


# Global async engine instance
engine = get_async_engine()


# Async session factory
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def init_db() -> None:
    """
    Initialize the database.

    The production schema is owned by the hosted database's migrations.
    Set ENABLE_DB_CREATE_ALL=1 to create the tables locally.
    """
    from healthle import models  # noqa: F401

    if os.getenv("ENABLE_DB_CREATE_ALL", "").lower() in {"1", "true", "yes"}:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Dispose the engine and its pooled connections at shutdown."""
    await engine.dispose()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency function to get database session.

    Provides a database session for FastAPI route handlers.
    Commits when the handler returns, rolls back when it raises.

    Yields:
        AsyncSession instance for database operations
    """
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
