# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Process-local record store.

Keeps records in dictionaries behind a single asyncio.Lock so that every
store call is applied as one atomic step, matching the guarantees the
SQL store gets from single statements. Used by unit tests and local tooling.

Example:
    store = InMemoryMemoryStore()
    manager = TieredMemoryManager(store=store)
"""

import asyncio
import uuid
from datetime import datetime
from typing import Any

from learner_memory.core.memory.errors import MemoryValidationError, StoreUnavailableError
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


class InMemoryMemoryStore(MemoryStore):
    """Dictionary-backed implementation of the MemoryStore contract.

    Attributes:
        available: When False every call raises StoreUnavailableError,
            which lets tests exercise outage handling.
    """

    def __init__(self) -> None:
        self._records: dict[str, MemoryRecord] = {}
        self._by_key: dict[tuple[str, MemoryLayer, str], str] = {}
        self._lock = asyncio.Lock()
        self.available = True

    def __len__(self) -> int:
        return len(self._records)

    def _check_available(self) -> None:
        if not self.available:
            raise StoreUnavailableError("In-memory record store is offline")

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
        self._check_available()
        async with self._lock:
            natural_key = (subject_id, layer, key)
            record_id = self._by_key.get(natural_key)

            if record_id is None:
                record = MemoryRecord(
                    id=str(uuid.uuid4()),
                    subject_id=subject_id,
                    layer=layer,
                    key=key,
                    content=dict(content),
                    status=initial_status,
                    confidence=confidence,
                    evidence_count=1,
                    first_observed=now.date(),
                    last_updated=now,
                    expires_at=expires_at,
                )
                self._by_key[natural_key] = record.id
            else:
                existing = self._records[record_id]
                record = _replace(
                    existing,
                    content=dict(content),
                    confidence=confidence,
                    evidence_count=existing.evidence_count + 1,
                    last_updated=now,
                    expires_at=expires_at,
                )

            self._records[record.id] = record
            return record

    async def get(self, record_id: str) -> MemoryRecord | None:
        self._check_available()
        return self._records.get(record_id)

    async def query(self, query: MemoryQuery) -> list[MemoryRecord]:
        self._check_available()
        matches = [r for r in self._records.values() if _matches_query(r, query)]
        matches.sort(key=lambda r: r.last_updated, reverse=True)
        if query.limit is not None:
            matches = matches[: query.limit]
        return matches

    async def update_if(
        self,
        record_id: str,
        changes: MemoryChanges,
        condition: MemoryCondition | None = None,
    ) -> MemoryRecord | None:
        self._check_available()
        async with self._lock:
            current = self._records.get(record_id)
            if current is None:
                return None
            if condition is not None and not _matches_condition(current, condition):
                return None

            if not changes.model_fields_set:
                raise ValueError("update_if requires at least one change")

            updated = _replace(current, **changes.assignments())
            if current.layer != updated.layer:
                target_key = (updated.subject_id, updated.layer, updated.key)
                if target_key in self._by_key:
                    raise MemoryValidationError(
                        f"Memory {updated.key!r} already exists in layer "
                        f"{updated.layer.value!r} for subject {updated.subject_id}"
                    )
                del self._by_key[(current.subject_id, current.layer, current.key)]
                self._by_key[target_key] = updated.id
            self._records[record_id] = updated
            return updated

    async def expire_due(self, now: datetime) -> int:
        self._check_available()
        async with self._lock:
            due = [
                r
                for r in self._records.values()
                if r.layer == MemoryLayer.EPHEMERAL
                and r.status == MemoryStatus.ACTIVE
                and r.expires_at is not None
                and r.expires_at < now
            ]
            for record in due:
                self._records[record.id] = _replace(
                    record, status=MemoryStatus.EXPIRED, last_updated=now
                )
            return len(due)


def _replace(record: MemoryRecord, **fields: Any) -> MemoryRecord:
    # Re-validate so a bad transition cannot be stored.
    return MemoryRecord.model_validate({**record.model_dump(), **fields})


def _matches_query(record: MemoryRecord, query: MemoryQuery) -> bool:
    if query.subject_id is not None and record.subject_id != query.subject_id:
        return False
    if query.layers is not None and record.layer not in query.layers:
        return False
    if query.statuses is not None and record.status not in query.statuses:
        return False
    if query.key is not None and record.key != query.key:
        return False
    if query.key_pattern is not None and query.key_pattern not in record.key:
        return False
    if query.confidences is not None and record.confidence not in query.confidences:
        return False
    if (
        query.updated_on_or_before is not None
        and not record.last_updated <= query.updated_on_or_before
    ):
        return False
    return True


def _matches_condition(record: MemoryRecord, condition: MemoryCondition) -> bool:
    if condition.layer is not None and record.layer != condition.layer:
        return False
    if condition.status is not None and record.status != condition.status:
        return False
    if condition.confidence is not None and record.confidence != condition.confidence:
        return False
    if (
        condition.updated_on_or_before is not None
        and not record.last_updated <= condition.updated_on_or_before
    ):
        return False
    return True
