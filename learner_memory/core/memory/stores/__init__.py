# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Record store contract and its implementations.

- MemoryStore: abstract contract the engine is written against
- InMemoryMemoryStore: process-local, lock-guarded implementation
- SQLAlchemyMemoryStore: PostgreSQL/SQLite implementation using atomic upserts
"""

from learner_memory.core.memory.stores.base import MemoryStore
from learner_memory.core.memory.stores.in_memory import InMemoryMemoryStore
from learner_memory.core.memory.stores.sql import SQLAlchemyMemoryStore

__all__ = [
    "InMemoryMemoryStore",
    "MemoryStore",
    "SQLAlchemyMemoryStore",
]
