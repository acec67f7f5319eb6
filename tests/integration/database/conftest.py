# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest fixtures for database integration tests.

Tests run against a file-backed SQLite database by default. Set
TEST_DATABASE_URL to an asyncpg URL to run them against PostgreSQL.
"""

import os
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine


@pytest.fixture
def db_url(tmp_path) -> str:
    """Get database URL for tests."""
    return os.environ.get(
        "TEST_DATABASE_URL",
        f"sqlite+aiosqlite:///{tmp_path / 'learner_memory_test.db'}",
    )


@pytest_asyncio.fixture(scope="function")
async def db_engine(db_url: str) -> AsyncGenerator[AsyncEngine, None]:
    """Create async engine and drop migrated tables afterwards."""
    engine = create_async_engine(db_url, echo=False)

    yield engine

    async with engine.begin() as conn:
        await conn.execute(text("DROP TABLE IF EXISTS learner_memories"))
        await conn.execute(text("DROP TABLE IF EXISTS alembic_version"))

    await engine.dispose()
