# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tiered memory system for learner modelling.

This package implements a 3-tier memory architecture:
- Ephemeral: Recent observations that expire after a TTL unless re-observed
- Hypothesis: Suspected patterns awaiting confirmation, decaying when stale
- Stable: Confirmed long-term traits

The memory system provides:
- Atomic create-or-merge writes keyed by (subject, layer, key)
- Tier promotion and explicit hypothesis validation
- Confidence decay and soft expiration sweeps
- Per-learner summaries for content planners

Example:
    from learner_memory.core.memory import TieredMemoryManager
    from learner_memory.core.memory.stores import InMemoryMemoryStore

    manager = TieredMemoryManager(store=InMemoryMemoryStore())

    record = await manager.write(
        subject_id="c1",
        layer="ephemeral",
        key="likes_dinosaurs",
        content={"source": "reading_session"},
    )
    await manager.promote(record.id)

    summary = await manager.summarize("c1")
"""

from learner_memory.core.memory.errors import (
    InvalidTransitionError,
    MemoryNotFoundError,
    MemoryValidationError,
    StoreUnavailableError,
    TieredMemoryError,
)
from learner_memory.core.memory.lifecycle import (
    DecayEngine,
    ExpirationSweep,
    PromotionEngine,
    ValidationGate,
)
from learner_memory.core.memory.manager import TieredMemoryManager
from learner_memory.core.memory.models import (
    ConfidenceLevel,
    MemoryLayer,
    MemoryRecord,
    MemoryStats,
    MemoryStatus,
    MemorySummary,
    ValidationOutcome,
)
from learner_memory.core.memory.reader import MemoryReader
from learner_memory.core.memory.summary import SummaryBuilder
from learner_memory.core.memory.writer import MemoryWriter

__all__ = [
    "ConfidenceLevel",
    "DecayEngine",
    "ExpirationSweep",
    "InvalidTransitionError",
    "MemoryLayer",
    "MemoryNotFoundError",
    "MemoryReader",
    "MemoryRecord",
    "MemoryStats",
    "MemoryStatus",
    "MemorySummary",
    "MemoryValidationError",
    "MemoryWriter",
    "PromotionEngine",
    "StoreUnavailableError",
    "SummaryBuilder",
    "TieredMemoryError",
    "TieredMemoryManager",
    "ValidationGate",
]
