# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Memory manager orchestrating the tiered memory components.

This module provides the TieredMemoryManager class, the single entry point
used by producers (observation writers), consumers (content planners) and
operators (sweep jobs). It wires the writer, reader, lifecycle engines and
summary builder around one injected record store and one clock.

The manager holds no mutable state between calls; any number of instances
may share a store.

Example:
    from learner_memory.core.memory import TieredMemoryManager
    from learner_memory.core.memory.stores import SQLAlchemyMemoryStore

    manager = TieredMemoryManager(store=SQLAlchemyMemoryStore(engine))

    record = await manager.write(
        subject_id="c1",
        layer="hypothesis",
        key="struggles_fractions",
        content={"evidence": ["quiz_7"]},
    )
    await manager.validate_hypothesis(record.id, "validated")

    summary = await manager.summarize("c1")
"""

import logging
from collections.abc import Mapping
from typing import Any

from learner_memory.core.config.settings import MemorySettings
from learner_memory.core.memory.errors import MemoryValidationError, StoreUnavailableError
from learner_memory.core.memory.lifecycle import (
    DecayEngine,
    ExpirationSweep,
    PromotionEngine,
    ValidationGate,
)
from learner_memory.core.memory.models import (
    ConfidenceLevel,
    MemoryLayer,
    MemoryRecord,
    MemoryStatus,
    MemorySummary,
    ValidationOutcome,
)
from learner_memory.core.memory.reader import MemoryReader
from learner_memory.core.memory.stores.base import MemoryStore
from learner_memory.core.memory.summary import SummaryBuilder
from learner_memory.core.memory.writer import MemoryWriter
from learner_memory.utils.datetime import Clock, utc_now

logger = logging.getLogger(__name__)


class TieredMemoryManager:
    """Facade over the tiered memory engine.

    Attributes:
        writer: Creates and merges records.
        reader: Filtered queries.
        promotion: Tier promotion state machine.
        decay_engine: Confidence decay sweep.
        expiration: Ephemeral expiry sweep.
        validation: Explicit accept/reject and reactivation.
        summaries: Per-subject summary builder.
    """

    def __init__(
        self,
        store: MemoryStore,
        settings: MemorySettings | None = None,
        clock: Clock = utc_now,
    ) -> None:
        """Initialize the manager.

        Args:
            store: Record store shared by all components.
            settings: Time constants; defaults to MemorySettings().
            clock: Source of the current UTC time.
        """
        settings = settings or MemorySettings()
        self._store = store

        self.writer = MemoryWriter(
            store, clock=clock, default_ttl_days=settings.default_ttl_days
        )
        self.reader = MemoryReader(store)
        self.promotion = PromotionEngine(store, clock=clock)
        self.decay_engine = DecayEngine(
            store, clock=clock, staleness_days=settings.staleness_days
        )
        self.expiration = ExpirationSweep(store, clock=clock)
        self.validation = ValidationGate(
            store,
            self.promotion,
            clock=clock,
            default_ttl_days=settings.default_ttl_days,
        )
        self.summaries = SummaryBuilder(
            store, recent_limit=settings.recent_observations_limit
        )

    @property
    def store(self) -> MemoryStore:
        """The record store this manager writes through."""
        return self._store

    # =========================================================================
    # Producers
    # =========================================================================

    async def write(
        self,
        subject_id: str,
        layer: MemoryLayer | str,
        key: str,
        content: Mapping[str, Any],
        confidence: ConfidenceLevel | str = ConfidenceLevel.LOW,
        ttl_days: int | None = None,
    ) -> MemoryRecord:
        """Create or merge a memory record. See MemoryWriter.write."""
        return await self.writer.write(
            subject_id=subject_id,
            layer=layer,
            key=key,
            content=content,
            confidence=confidence,
            ttl_days=ttl_days,
        )

    async def record_observation(
        self,
        subject_id: str,
        layer: MemoryLayer | str,
        key: str,
        content: Mapping[str, Any],
        confidence: ConfidenceLevel | str = ConfidenceLevel.LOW,
        ttl_days: int | None = None,
    ) -> MemoryRecord | None:
        """Best-effort write for producers.

        A failed write is logged and dropped; observations are never queued
        for retry.

        Returns:
            The stored record, or None if the observation was lost.
        """
        try:
            return await self.write(
                subject_id=subject_id,
                layer=layer,
                key=key,
                content=content,
                confidence=confidence,
                ttl_days=ttl_days,
            )
        except StoreUnavailableError as e:
            logger.warning(
                "Dropped observation %s for subject %s: store unavailable (%s)",
                key,
                subject_id,
                e,
            )
        except MemoryValidationError as e:
            logger.error("Dropped invalid observation %s for subject %s: %s", key, subject_id, e)
        return None

    # =========================================================================
    # Consumers
    # =========================================================================

    async def read(
        self,
        subject_id: str,
        layer: MemoryLayer | str | None = None,
        status: MemoryStatus | str | None = None,
        key_pattern: str | None = None,
        min_confidence: ConfidenceLevel | str | None = None,
    ) -> list[MemoryRecord]:
        """Filtered query over a subject's records. See MemoryReader.read."""
        return await self.reader.read(
            subject_id=subject_id,
            layer=layer,
            status=status,
            key_pattern=key_pattern,
            min_confidence=min_confidence,
        )

    async def get(self, record_id: str) -> MemoryRecord:
        """Fetch a record by id, raising MemoryNotFoundError if absent."""
        return await self.reader.get(record_id)

    async def get_by_key(
        self,
        subject_id: str,
        key: str,
        layer: MemoryLayer | str | None = None,
    ) -> MemoryRecord | None:
        """Look up a fact by key in any status. See MemoryReader.get_by_key."""
        return await self.reader.get_by_key(subject_id, key, layer=layer)

    async def summarize(self, subject_id: str) -> MemorySummary:
        """Build the consumer-facing summary for a subject."""
        return await self.summaries.summarize(subject_id)

    async def get_planning_context(self, subject_id: str) -> MemorySummary:
        """Summary for content planning that tolerates store outages.

        When the store is unreachable the learner is treated as having no
        long-term profile yet.
        """
        try:
            return await self.summarize(subject_id)
        except StoreUnavailableError as e:
            logger.warning(
                "Memory store unavailable; using empty profile for subject %s: %s",
                subject_id,
                e,
            )
            return MemorySummary(subject_id=subject_id)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def promote(self, record_id: str) -> MemoryRecord:
        """Advance a record one tier. See PromotionEngine.promote."""
        return await self.promotion.promote(record_id)

    async def validate_hypothesis(
        self,
        record_id: str,
        outcome: ValidationOutcome | str,
    ) -> MemoryRecord:
        """Accept or reject a hypothesis. See ValidationGate.validate_hypothesis."""
        return await self.validation.validate_hypothesis(record_id, outcome)

    async def reactivate(self, record_id: str, ttl_days: int | None = None) -> MemoryRecord:
        """Revive a resolved or expired record. See ValidationGate.reactivate."""
        return await self.validation.reactivate(record_id, ttl_days=ttl_days)

    # =========================================================================
    # Sweeps
    # =========================================================================

    async def decay(self, subject_id: str) -> int:
        """Decay stale hypotheses of one subject. See DecayEngine.decay."""
        return await self.decay_engine.decay(subject_id)

    async def cleanup_expired(self) -> int:
        """Soft-expire ephemeral records past their TTL, for all subjects."""
        return await self.expiration.cleanup_expired()
