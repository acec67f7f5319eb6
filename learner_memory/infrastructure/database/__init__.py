# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure for the learner memory store.

This package provides the SQLAlchemy async engine and session factory, the
ORM model behind the SQL record store, and the schema migrations.

Example:
    from learner_memory.infrastructure.database import (
        get_engine,
        init_database,
    )

    await init_database(settings)
    store = SQLAlchemyMemoryStore(get_engine())
"""

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
from learner_memory.infrastructure.database.models import Base, LearnerMemory

__all__ = [
    "Base",
    "DatabaseError",
    "LearnerMemory",
    "check_database_connection",
    "close_database",
    "create_engine",
    "get_engine",
    "get_session",
    "get_sessionmaker",
    "init_database",
]
