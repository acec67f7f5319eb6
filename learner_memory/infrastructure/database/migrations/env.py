# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Alembic migration environment for the learner memory store.

The database URL is resolved in order from ``-x db_url=...``, the
MEMORY_DB_URL environment variable and the DATABASE_* settings.

Usage:
    alembic upgrade head

    alembic -x db_url=sqlite+aiosqlite:///./memory.db upgrade head
    MEMORY_DB_URL=postgresql+asyncpg://... alembic upgrade head
"""

import asyncio
import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy.engine import Connection

from learner_memory.core.config.settings import get_settings
from learner_memory.infrastructure.database.connection import create_engine
from learner_memory.infrastructure.database.models import Base, LearnerMemory  # noqa: F401

target_metadata = Base.metadata

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)


def get_database_url() -> str:
    """Resolve the database URL for this migration run."""
    x_args = context.get_x_argument(as_dictionary=True)
    return (
        x_args.get("db_url")
        or os.environ.get("MEMORY_DB_URL")
        or get_settings().database.url
    )


def _configure(**kwargs: object) -> None:
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        compare_server_default=True,
        **kwargs,
    )


def run_migrations_offline() -> None:
    """Emit migration SQL to the script output without a connection."""
    url = get_database_url()
    _configure(
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=url.startswith("sqlite"),
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    """Run migrations on a live connection.

    SQLite cannot ALTER constraints in place, so it runs in batch mode.
    """
    _configure(
        connection=connection,
        render_as_batch=connection.dialect.name == "sqlite",
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    """Run migrations in 'online' mode with the application's async engine."""
    engine = create_engine(get_settings(), url=get_database_url())

    try:
        async with engine.connect() as connection:
            await connection.run_sync(do_run_migrations)
    finally:
        await engine.dispose()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode."""
    asyncio.run(run_async_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
