# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Record store contract for the tiered memory engine.

The engine never reads a record and writes it back in two steps. Every
mutation is expressed as a single store call that the implementation must
apply atomically:

- upsert_merge: create-or-merge keyed by (subject_id, layer, key), with the
  evidence counter incremented by the store itself
- update_if: conditional update keyed by id, guarded by a MemoryCondition
- expire_due: bulk conditional update used by the expiration sweep

Implementations raise StoreUnavailableError when the backend cannot be reached.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from learner_memory.core.memory.models import (
    ConfidenceLevel,
    MemoryChanges,
    MemoryCondition,
    MemoryLayer,
    MemoryQuery,
    MemoryRecord,
    MemoryStatus,
)


class MemoryStore(ABC):
    """Abstract record store addressed by id and by composite natural key."""

    @abstractmethod
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
        """Create a record or merge into the existing one, atomically.

        On creation the record gets ``initial_status``, ``evidence_count=1``
        and ``first_observed=now.date()``. On conflict the stored record keeps
        its id, status and first_observed; content and confidence are
        overwritten, evidence_count is incremented by exactly one,
        last_updated is set to ``now`` and expires_at to ``expires_at``.

        Returns:
            The record as stored after the operation.
        """

    @abstractmethod
    async def get(self, record_id: str) -> MemoryRecord | None:
        """Fetch a record by id, or None if it does not exist."""

    @abstractmethod
    async def query(self, query: MemoryQuery) -> list[MemoryRecord]:
        """List records matching every constraint of ``query``.

        ``key_pattern`` matches as a case-sensitive substring. Results are
        ordered by last_updated, most recent first.
        """

    @abstractmethod
    async def update_if(
        self,
        record_id: str,
        changes: MemoryChanges,
        condition: MemoryCondition | None = None,
    ) -> MemoryRecord | None:
        """Apply ``changes`` to one record if it still matches ``condition``.

        Returns:
            The updated record, or None if the id is unknown or the guard
            did not hold.
        """

    @abstractmethod
    async def expire_due(self, now: datetime) -> int:
        """Mark every active ephemeral record with expires_at < now as expired.

        Expired records get last_updated = now.

        Returns:
            Number of records changed.
        """
