# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Memory reader: filtered, side-effect free queries over a subject's records."""

from learner_memory.core.memory.errors import MemoryNotFoundError, MemoryValidationError
from learner_memory.core.memory.models import (
    ConfidenceLevel,
    MemoryLayer,
    MemoryQuery,
    MemoryRecord,
    MemoryStatus,
    coerce_enum,
    require_text,
)
from learner_memory.core.memory.stores.base import MemoryStore


class MemoryReader:
    """Read-only access to memory records."""

    def __init__(self, store: MemoryStore) -> None:
        self._store = store

    async def read(
        self,
        subject_id: str,
        layer: MemoryLayer | str | None = None,
        status: MemoryStatus | str | None = None,
        key_pattern: str | None = None,
        min_confidence: ConfidenceLevel | str | None = None,
    ) -> list[MemoryRecord]:
        """Query a subject's records.

        All filters are conjunctive. When status is omitted only active
        records are returned; resolved, expired and suspected records must be
        asked for explicitly.

        Args:
            subject_id: Learner whose records are read.
            layer: Restrict to one confidence tier.
            status: Restrict to one status (default: active).
            key_pattern: Case-sensitive substring of the key.
            min_confidence: Lowest confidence to include.

        Returns:
            Matching records, most recently updated first.

        Raises:
            MemoryValidationError: If subject_id is missing or a filter is invalid.
            StoreUnavailableError: If the store cannot be reached.
        """
        subject_id = require_text(subject_id, "subject_id")
        if key_pattern is not None and not isinstance(key_pattern, str):
            raise MemoryValidationError("key_pattern must be a string")
        wanted_status = (
            MemoryStatus.ACTIVE if status is None else coerce_enum(MemoryStatus, status, "status")
        )

        query = MemoryQuery(
            subject_id=subject_id,
            layers=(
                None if layer is None else frozenset({coerce_enum(MemoryLayer, layer, "layer")})
            ),
            statuses=frozenset({wanted_status}),
            key_pattern=key_pattern,
            confidences=(
                None
                if min_confidence is None
                else frozenset(
                    ConfidenceLevel.at_least(
                        coerce_enum(ConfidenceLevel, min_confidence, "min_confidence")
                    )
                )
            ),
        )
        return await self._store.query(query)

    async def get(self, record_id: str) -> MemoryRecord:
        """Fetch a record by id regardless of its status.

        Raises:
            MemoryNotFoundError: If no record has this id.
        """
        record_id = require_text(record_id, "record_id")
        record = await self._store.get(record_id)
        if record is None:
            raise MemoryNotFoundError(record_id)
        return record

    async def get_by_key(
        self,
        subject_id: str,
        key: str,
        layer: MemoryLayer | str | None = None,
    ) -> MemoryRecord | None:
        """Look up a fact by its key, in any status.

        When layer is omitted and the key exists in several layers, the most
        recently updated record wins.

        Returns:
            The record, or None if the subject has no such key.
        """
        query = MemoryQuery(
            subject_id=require_text(subject_id, "subject_id"),
            key=require_text(key, "key"),
            layers=(
                None if layer is None else frozenset({coerce_enum(MemoryLayer, layer, "layer")})
            ),
            limit=1,
        )
        records = await self._store.query(query)
        return records[0] if records else None
