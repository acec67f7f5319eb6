# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database connection management using SQLAlchemy async.

Provides the async engine and session factory used by the SQL record store
and by the background workers.

Uses SQLAlchemy 2.0 async API with asyncpg driver.

Example:
    from learner_memory.infrastructure.database.connection import (
        init_database,
        get_session,
    )

    # Initialize at worker startup
    await init_database(settings)

    async with get_session() as session:
        result = await session.execute(select(LearnerMemory))
"""

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, AsyncIterator, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

if TYPE_CHECKING:
    from learner_memory.core.config.settings import Settings

# Module-level state for the database connection
_engine: Optional[AsyncEngine] = None
_sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None


class DatabaseError(Exception):
    """Base exception for database operations.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying SQLAlchemy or database error.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        """Initialize the database error.

        Args:
            message: Human-readable error description.
            original_error: The underlying exception that caused this error.
        """
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


def create_engine(settings: "Settings", url: str | None = None) -> AsyncEngine:
    """Create an async engine from database settings.

    Pool sizing is applied only to server databases; SQLite URLs get the
    driver's default pool.

    Args:
        settings: Application settings containing database configuration.
        url: Optional URL overriding settings.database.url.

    Returns:
        A new async engine. The caller owns it and must dispose it.

    Raises:
        DatabaseError: If the engine cannot be created.
    """
    db_url = url or settings.database.url
    engine_kwargs: dict[str, object] = {
        "pool_pre_ping": True,
        "echo": settings.database.echo,
    }
    if not db_url.startswith("sqlite"):
        engine_kwargs.update(
            pool_size=settings.database.pool_size,
            max_overflow=settings.database.max_overflow,
            pool_recycle=1800,
        )

    try:
        return create_async_engine(db_url, **engine_kwargs)
    except (SQLAlchemyError, ImportError) as e:
        raise DatabaseError("Failed to initialize database connection", e) from e


async def init_database(settings: "Settings", url: str | None = None) -> AsyncEngine:
    """Initialize the process-wide database connection pool.

    This should be called once at startup.

    Args:
        settings: Application settings containing database configuration.
        url: Optional URL overriding settings.database.url.

    Returns:
        The created async engine.

    Raises:
        DatabaseError: If connection pool creation fails.
    """
    global _engine, _sessionmaker

    _engine = create_engine(settings, url)
    _sessionmaker = async_sessionmaker(
        bind=_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    return _engine


async def close_database() -> None:
    """Close the database connection pool.

    This should be called at shutdown to properly close all connections.
    """
    global _engine, _sessionmaker

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _sessionmaker = None


def get_engine() -> AsyncEngine:
    """Get the database async engine.

    Raises:
        DatabaseError: If the database has not been initialized.
    """
    if _engine is None:
        raise DatabaseError("Database not initialized. Call init_database() first.")
    return _engine


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    """Get the database sessionmaker.

    Raises:
        DatabaseError: If the database has not been initialized.
    """
    if _sessionmaker is None:
        raise DatabaseError("Database not initialized. Call init_database() first.")
    return _sessionmaker


@asynccontextmanager
async def get_session() -> AsyncIterator[AsyncSession]:
    """Get an async session for the database.

    The session is automatically committed on success and rolled back
    on exception.

    Yields:
        AsyncSession for database operations.

    Raises:
        DatabaseError: If the database has not been initialized or
            if a database operation fails.
    """
    sessionmaker = get_sessionmaker()

    async with sessionmaker() as session:
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            raise DatabaseError("Database operation failed", e) from e
        except Exception:
            await session.rollback()
            raise


async def check_database_connection() -> bool:
    """Check if the database is reachable.

    Returns:
        True if the database is reachable, False otherwise.
    """
    if _engine is None:
        return False

    try:
        async with _engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        return False
