# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Memory writer: merges observations into tiered memory records.

A write targets the record identified by (subject_id, layer, key). The first
write creates it; every later write merges into it through the store's
atomic upsert, so the evidence counter is incremented by the store and never
read back and re-written by this process.

Ephemeral records get ``expires_at = now + ttl_days`` on every write, which
keeps a repeatedly observed fact alive (sliding window).

Example:
    writer = MemoryWriter(store=store)

    record = await writer.write(
        subject_id="c1",
        layer=MemoryLayer.EPHEMERAL,
        key="likes_dinosaurs",
        content={"source": "reading_session"},
    )
"""

import json
import logging
from collections.abc import Mapping
from datetime import timedelta
from typing import Any

from learner_memory.core.memory.errors import MemoryValidationError
from learner_memory.core.memory.models import (
    INITIAL_STATUS,
    ConfidenceLevel,
    MemoryLayer,
    MemoryRecord,
    coerce_enum,
    require_text,
)
from learner_memory.core.memory.stores.base import MemoryStore
from learner_memory.utils.datetime import Clock, utc_now

logger = logging.getLogger(__name__)

DEFAULT_TTL_DAYS = 10
MAX_KEY_LENGTH = 100
MAX_SUBJECT_ID_LENGTH = 64


class MemoryWriter:
    """Creates and merges memory records.

    Attributes:
        default_ttl_days: TTL applied to ephemeral writes that pass none.
    """

    def __init__(
        self,
        store: MemoryStore,
        clock: Clock = utc_now,
        default_ttl_days: int = DEFAULT_TTL_DAYS,
    ) -> None:
        """Initialize the writer.

        Args:
            store: Record store to write through.
            clock: Source of the current UTC time.
            default_ttl_days: TTL for ephemeral records when a write omits one.
        """
        self._store = store
        self._clock = clock
        self.default_ttl_days = default_ttl_days

    async def write(
        self,
        subject_id: str,
        layer: MemoryLayer | str,
        key: str,
        content: Mapping[str, Any],
        confidence: ConfidenceLevel | str = ConfidenceLevel.LOW,
        ttl_days: int | None = None,
    ) -> MemoryRecord:
        """Record an observation about a learner.

        Creates the record with evidence_count=1, or merges into the existing
        one: content and confidence are overwritten, evidence_count goes up by
        one and last_updated is refreshed. A merge into a resolved or expired
        record keeps its status; reactivation is a separate, explicit call.

        Args:
            subject_id: Learner the observation is about.
            layer: Target confidence tier.
            key: Semantic identifier of the fact.
            content: Payload stored verbatim.
            confidence: Confidence of this observation.
            ttl_days: Lifetime of an ephemeral record, from now. Ignored for
                other layers.

        Returns:
            The record as stored after the write.

        Raises:
            MemoryValidationError: If a required field is missing or malformed.
            StoreUnavailableError: If the store cannot be reached.
        """
        subject_id = require_text(subject_id, "subject_id")
        key = require_text(key, "key")
        layer = coerce_enum(MemoryLayer, layer, "layer")
        confidence = coerce_enum(ConfidenceLevel, confidence, "confidence")

        if len(subject_id) > MAX_SUBJECT_ID_LENGTH:
            raise MemoryValidationError(
                f"subject_id must be at most {MAX_SUBJECT_ID_LENGTH} characters, "
                f"got {len(subject_id)}"
            )
        if len(key) > MAX_KEY_LENGTH:
            raise MemoryValidationError(
                f"key must be at most {MAX_KEY_LENGTH} characters, got {len(key)}"
            )
        if content is None:
            raise MemoryValidationError("content is required")
        if not isinstance(content, Mapping):
            raise MemoryValidationError(
                f"content must be a mapping, got {type(content).__name__}"
            )
        try:
            json.dumps(dict(content), allow_nan=False)
        except (TypeError, ValueError) as e:
            raise MemoryValidationError(f"content must be JSON-serializable: {e}", e) from e

        now = self._clock()
        expires_at = None
        if layer == MemoryLayer.EPHEMERAL:
            ttl = self.default_ttl_days if ttl_days is None else ttl_days
            if isinstance(ttl, bool) or not isinstance(ttl, int) or ttl < 1:
                raise MemoryValidationError(
                    f"ttl_days must be a positive integer, got {ttl!r}"
                )
            expires_at = now + timedelta(days=ttl)

        logger.debug(
            "Writing %s memory %s for subject %s (confidence=%s)",
            layer.value,
            key,
            subject_id,
            confidence.value,
        )

        record = await self._store.upsert_merge(
            subject_id=subject_id,
            layer=layer,
            key=key,
            content=dict(content),
            confidence=confidence,
            initial_status=INITIAL_STATUS[layer],
            now=now,
            expires_at=expires_at,
        )

        if record.is_terminal:
            logger.info(
                "Merged evidence into %s memory %s (%s) for subject %s; status unchanged",
                layer.value,
                key,
                record.status.value,
                subject_id,
            )

        return record
