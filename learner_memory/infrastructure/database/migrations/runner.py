# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database migration runner.

Applies the learner memory revisions programmatically, without the alembic
CLI or an ini file. Revisions are discovered from the ``versions`` package
and ordered by following each module's ``down_revision`` link, so adding a
revision file is all it takes to ship it.

Example:
    from learner_memory.infrastructure.database.migrations.runner import run_migrations

    applied = await run_migrations("sqlite+aiosqlite:///./memory.db")
"""

import importlib
import logging
import pkgutil
from functools import lru_cache
from types import ModuleType
from typing import Any

from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

logger = logging.getLogger(__name__)

VERSIONS_PACKAGE = "learner_memory.infrastructure.database.migrations.versions"


class MigrationError(Exception):
    """Raised when the revision history cannot be applied."""


@lru_cache
def _load_revisions() -> dict[str, ModuleType]:
    package = importlib.import_module(VERSIONS_PACKAGE)
    modules: dict[str, ModuleType] = {}
    for info in pkgutil.iter_modules(package.__path__):
        module = importlib.import_module(f"{VERSIONS_PACKAGE}.{info.name}")
        revision = getattr(module, "revision", None)
        if revision is None:
            continue
        if not callable(getattr(module, "upgrade", None)):
            raise MigrationError(f"Migration {revision} has no upgrade() function")
        modules[revision] = module
    return modules


def get_revisions() -> list[str]:
    """Get revision IDs in upgrade order.

    Raises:
        MigrationError: If the history branches or has a gap.
    """
    modules = _load_revisions()

    children: dict[str | None, str] = {}
    for revision, module in modules.items():
        parent = module.down_revision
        if parent in children:
            raise MigrationError(
                f"Revisions {children[parent]} and {revision} share parent {parent}"
            )
        children[parent] = revision

    ordered: list[str] = []
    current: str | None = None
    while current in children:
        current = children[current]
        ordered.append(current)

    if len(ordered) != len(modules):
        orphans = sorted(set(modules) - set(ordered))
        raise MigrationError(f"Revisions not reachable from base: {', '.join(orphans)}")
    return ordered


def _pending(current_version: str | None, target_revision: str | None = None) -> list[str]:
    revisions = get_revisions()

    if current_version is None:
        start_idx = 0
    elif current_version in revisions:
        start_idx = revisions.index(current_version) + 1
    else:
        logger.warning("Database is at unknown revision %s", current_version)
        return []

    if target_revision is None:
        end_idx = len(revisions)
    elif target_revision in revisions:
        end_idx = revisions.index(target_revision) + 1
    else:
        logger.warning("Target revision %s not found", target_revision)
        return []

    return revisions[start_idx:end_idx]


async def run_migrations(db_url: str, target_revision: str | None = None) -> list[str]:
    """Apply pending revisions in order, each in its own transaction.

    Args:
        db_url: Database connection URL (async driver).
        target_revision: Optional revision to stop at. If None, runs all
            pending revisions.

    Returns:
        List of applied revision IDs.

    Raises:
        MigrationError: If the revision history is inconsistent.
    """
    engine = create_async_engine(db_url, echo=False)

    try:
        current_version = await _get_current_version(engine)
        pending = _pending(current_version, target_revision)
        if not pending:
            logger.info("Schema up to date at %s", current_version or "base")
            return []

        for revision in pending:
            async with engine.begin() as conn:
                await conn.run_sync(_upgrade, revision)
            logger.info("Applied migration %s", revision)

        return pending
    finally:
        await engine.dispose()


async def _get_current_version(engine: AsyncEngine) -> str | None:
    async with engine.begin() as conn:
        await conn.execute(
            text(
                "CREATE TABLE IF NOT EXISTS alembic_version ("
                "version_num VARCHAR(128) NOT NULL, "
                "CONSTRAINT alembic_version_pkc PRIMARY KEY (version_num))"
            )
        )
        result = await conn.execute(text("SELECT version_num FROM alembic_version"))
        return result.scalar_one_or_none()


def _upgrade(connection: Connection, revision: str) -> None:
    """Run one revision's upgrade() and record it, on the caller's transaction."""
    from alembic.operations import Operations
    from alembic.runtime.migration import MigrationContext

    module = _load_revisions()[revision]
    context = MigrationContext.configure(connection)
    with Operations.context(context):
        module.upgrade()

    connection.execute(text("DELETE FROM alembic_version"))
    connection.execute(
        text("INSERT INTO alembic_version (version_num) VALUES (:version)"),
        {"version": revision},
    )


async def get_migration_status(db_url: str) -> dict[str, Any]:
    """Get migration status for a database.

    Returns:
        Dict with the current and latest revision and what is pending.
    """
    engine = create_async_engine(db_url, echo=False)

    try:
        current_version = await _get_current_version(engine)
    finally:
        await engine.dispose()

    revisions = get_revisions()
    pending = _pending(current_version)
    return {
        "current_version": current_version,
        "latest_version": revisions[-1] if revisions else None,
        "pending_count": len(pending),
        "pending_migrations": pending,
        "is_up_to_date": not pending,
    }
