# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy implementation of the record store.

Every contract method is a single SQL statement in its own transaction:

- upsert_merge is ``INSERT ... ON CONFLICT (subject_id, layer, key) DO UPDATE
  SET evidence_count = learner_memories.evidence_count + 1 ... RETURNING``,
  so concurrent writers to the same fact never lose an increment
- update_if is ``UPDATE ... WHERE id = :id AND <guard> RETURNING``
- expire_due is one bulk ``UPDATE ... WHERE``

PostgreSQL (asyncpg) is the production target; SQLite (aiosqlite) is
supported for local development and tests.

Example:
    engine = await init_database(settings)
    store = SQLAlchemyMemoryStore(engine)
    manager = TieredMemoryManager(store=store)
"""

import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from enum import Enum
from typing import Any, AsyncIterator

from sqlalchemy import Select, and_, desc, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import RowMapping
from sqlalchemy.exc import (
    DataError,
    DisconnectionError,
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from learner_memory.core.memory.errors import (
    MemoryValidationError,
    StoreUnavailableError,
    TieredMemoryError,
)
from learner_memory.core.memory.models import (
    ConfidenceLevel,
    MemoryChanges,
    MemoryCondition,
    MemoryLayer,
    MemoryQuery,
    MemoryRecord,
    MemoryStatus,
)
from learner_memory.core.memory.stores.base import MemoryStore
from learner_memory.infrastructure.database.models.memory import LearnerMemory

logger = logging.getLogger(__name__)

_table = LearnerMemory.__table__

_DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}

# OSError covers refused connections and TimeoutError raised by drivers.
_UNAVAILABLE_ERRORS = (OperationalError, InterfaceError, DisconnectionError, OSError)


class SQLAlchemyMemoryStore(MemoryStore):
    """Record store backed by the ``learner_memories`` table.

    Attributes:
        dialect: Name of the SQL dialect in use.
    """

    def __init__(
        self,
        engine: AsyncEngine,
        sessionmaker: async_sessionmaker[AsyncSession] | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            engine: Async engine bound to a PostgreSQL or SQLite database.
            sessionmaker: Optional session factory; one is created from the
                engine when omitted.

        Raises:
            ValueError: If the engine's dialect has no upsert support here.
        """
        self.dialect = engine.dialect.name
        if self.dialect not in _DIALECT_INSERTS:
            raise ValueError(f"Unsupported dialect for memory store: {self.dialect}")

        self._insert = _DIALECT_INSERTS[self.dialect]
        self._sessionmaker = sessionmaker or async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self._sessionmaker() as session:
                async with session.begin():
                    yield session
        except IntegrityError as e:
            raise MemoryValidationError(
                f"Memory {operation} violates a store constraint", e
            ) from e
        except DataError as e:
            raise MemoryValidationError(f"Memory {operation} rejected by the store", e) from e
        except _UNAVAILABLE_ERRORS as e:
            logger.warning("Memory store unavailable during %s: %s", operation, e)
            raise StoreUnavailableError(f"Memory store unavailable during {operation}", e) from e
        except SQLAlchemyError as e:
            raise TieredMemoryError(f"Memory {operation} failed", e) from e

    async def upsert_merge(
        self,
        *,
        subject_id: str,
        layer: MemoryLayer,
        key: str,
        content: dict[str, Any],
        confidence: ConfidenceLevel,
        initial_status: MemoryStatus,
        now: datetime,
        expires_at: datetime | None,
    ) -> MemoryRecord:
        stmt = self._insert(_table).values(
            id=str(uuid.uuid4()),
            subject_id=subject_id,
            layer=layer.value,
            key=key,
            content=content,
            status=initial_status.value,
            confidence=confidence.value,
            evidence_count=1,
            first_observed=now.date(),
            last_updated=now,
            expires_at=expires_at,
            created_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[_table.c.subject_id, _table.c.layer, _table.c.key],
            set_={
                "content": stmt.excluded.content,
                "confidence": stmt.excluded.confidence,
                "evidence_count": _table.c.evidence_count + 1,
                "last_updated": stmt.excluded.last_updated,
                "expires_at": stmt.excluded.expires_at,
            },
        ).returning(*_table.c)

        async with self._transaction("write") as session:
            result = await session.execute(stmt)
            row = result.mappings().one()

        return _to_record(row)

    async def get(self, record_id: str) -> MemoryRecord | None:
        async with self._transaction("get") as session:
            result = await session.execute(select(_table).where(_table.c.id == record_id))
            row = result.mappings().one_or_none()

        return _to_record(row) if row is not None else None

    async def query(self, query: MemoryQuery) -> list[MemoryRecord]:
        stmt = self._build_query(query)

        async with self._transaction("query") as session:
            result = await session.execute(stmt)
            rows = result.mappings().all()

        records = [_to_record(row) for row in rows]
        if query.key_pattern is not None:
            # LIKE is case-insensitive on SQLite; enforce case-sensitive match.
            records = [r for r in records if query.key_pattern in r.key]
            if query.limit is not None:
                records = records[: query.limit]
        return records

    def _build_query(self, query: MemoryQuery) -> Select[Any]:
        clauses = []
        if query.subject_id is not None:
            clauses.append(_table.c.subject_id == query.subject_id)
        if query.layers is not None:
            clauses.append(_table.c.layer.in_([layer.value for layer in query.layers]))
        if query.statuses is not None:
            clauses.append(_table.c.status.in_([status.value for status in query.statuses]))
        if query.key is not None:
            clauses.append(_table.c.key == query.key)
        if query.key_pattern is not None:
            clauses.append(_table.c.key.contains(query.key_pattern, autoescape=True))
        if query.confidences is not None:
            clauses.append(
                _table.c.confidence.in_([level.value for level in query.confidences])
            )
        if query.updated_on_or_before is not None:
            clauses.append(_table.c.last_updated <= query.updated_on_or_before)

        stmt = select(_table).order_by(desc(_table.c.last_updated), _table.c.id)
        if clauses:
            stmt = stmt.where(and_(*clauses))
        if query.limit is not None and query.key_pattern is None:
            stmt = stmt.limit(query.limit)
        return stmt

    async def update_if(
        self,
        record_id: str,
        changes: MemoryChanges,
        condition: MemoryCondition | None = None,
    ) -> MemoryRecord | None:
        clauses = [_table.c.id == record_id]
        if condition is not None:
            if condition.layer is not None:
                clauses.append(_table.c.layer == condition.layer.value)
            if condition.status is not None:
                clauses.append(_table.c.status == condition.status.value)
            if condition.confidence is not None:
                clauses.append(_table.c.confidence == condition.confidence.value)
            if condition.updated_on_or_before is not None:
                clauses.append(_table.c.last_updated <= condition.updated_on_or_before)

        values = {
            name: value.value if isinstance(value, Enum) else value
            for name, value in changes.assignments().items()
        }
        if not values:
            raise ValueError("update_if requires at least one change")

        stmt = update(_table).where(and_(*clauses)).values(**values).returning(*_table.c)

        async with self._transaction("update") as session:
            result = await session.execute(stmt)
            row = result.mappings().one_or_none()

        return _to_record(row) if row is not None else None

    async def expire_due(self, now: datetime) -> int:
        stmt = (
            update(_table)
            .where(
                and_(
                    _table.c.layer == MemoryLayer.EPHEMERAL.value,
                    _table.c.status == MemoryStatus.ACTIVE.value,
                    _table.c.expires_at < now,
                )
            )
            .values(status=MemoryStatus.EXPIRED.value, last_updated=now)
        )

        async with self._transaction("expire") as session:
            result = await session.execute(stmt)
            count = result.rowcount or 0

        return count


def _to_record(row: RowMapping) -> MemoryRecord:
    return MemoryRecord.model_validate(dict(row))
