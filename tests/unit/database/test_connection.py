# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for database connection management.

Uses in-memory SQLite through aiosqlite.
"""

import pytest
import pytest_asyncio
from sqlalchemy import text

from learner_memory.core.config.settings import Settings
from learner_memory.infrastructure.database import connection
from learner_memory.infrastructure.database.connection import (
    DatabaseError,
    check_database_connection,
    close_database,
    create_engine,
    get_engine,
    get_session,
    get_sessionmaker,
    init_database,
)

SQLITE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def initialized_database():
    """Initialize the process-wide engine and close it afterwards."""
    engine = await init_database(Settings(), url=SQLITE_URL)
    yield engine
    await close_database()


@pytest.mark.unit
class TestDatabaseError:
    """Tests for DatabaseError."""

    def test_str_includes_original_error(self) -> None:
        """Test that the cause is appended to the message."""
        error = DatabaseError("Query failed", ValueError("boom"))

        assert str(error) == "Query failed: boom"
        assert error.original_error is not None

    def test_str_without_original_error(self) -> None:
        """Test the bare message form."""
        assert str(DatabaseError("Query failed")) == "Query failed"


@pytest.mark.unit
class TestCreateEngine:
    """Tests for create_engine."""

    @pytest.mark.asyncio
    async def test_sqlite_url(self) -> None:
        """Test that SQLite engines skip server pool sizing."""
        engine = create_engine(Settings(), url=SQLITE_URL)

        try:
            assert engine.dialect.name == "sqlite"
        finally:
            await engine.dispose()

    def test_unknown_driver(self) -> None:
        """Test that an unloadable driver is wrapped in DatabaseError."""
        with pytest.raises(DatabaseError):
            create_engine(Settings(), url="nosuchdb+nodriver://localhost/db")


@pytest.mark.unit
class TestConnectionLifecycle:
    """Tests for the process-wide engine and sessions."""

    @pytest.mark.asyncio
    async def test_accessors_before_init(self) -> None:
        """Test that accessors fail before init_database."""
        assert connection._engine is None

        with pytest.raises(DatabaseError):
            get_engine()
        with pytest.raises(DatabaseError):
            get_sessionmaker()
        assert await check_database_connection() is False

    @pytest.mark.asyncio
    async def test_init_and_check(self, initialized_database) -> None:
        """Test that an initialized engine is reachable."""
        assert get_engine() is initialized_database
        assert await check_database_connection() is True

    @pytest.mark.asyncio
    async def test_get_session_executes(self, initialized_database) -> None:
        """Test that sessions run statements and commit."""
        async with get_session() as session:
            result = await session.execute(text("SELECT 1"))

        assert result.scalar_one() == 1

    @pytest.mark.asyncio
    async def test_get_session_wraps_sqlalchemy_errors(self, initialized_database) -> None:
        """Test that driver errors surface as DatabaseError."""
        with pytest.raises(DatabaseError):
            async with get_session() as session:
                await session.execute(text("SELECT * FROM no_such_table"))

    @pytest.mark.asyncio
    async def test_close_resets_state(self) -> None:
        """Test that close_database forgets the engine."""
        await init_database(Settings(), url=SQLITE_URL)

        await close_database()

        assert connection._engine is None
        assert connection._sessionmaker is None
