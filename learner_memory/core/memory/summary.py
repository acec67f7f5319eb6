# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Summary builder: the per-learner view handed to content planners.

The summary is built from the subject's live records (active, suspected or
resolving). Hypotheses are stored as ``suspected`` while they await
confirmation, so they are part of the live set; resolved and expired records
are excluded from every list and every count.
"""

from learner_memory.core.memory.models import (
    LIVE_STATUSES,
    MemoryLayer,
    MemoryQuery,
    MemoryStats,
    MemorySummary,
    require_text,
)
from learner_memory.core.memory.stores.base import MemoryStore

DEFAULT_RECENT_OBSERVATIONS = 5


class SummaryBuilder:
    """Aggregates a subject's live records by tier.

    Attributes:
        recent_limit: Number of ephemeral records kept in recent_observations.
    """

    def __init__(
        self,
        store: MemoryStore,
        recent_limit: int = DEFAULT_RECENT_OBSERVATIONS,
    ) -> None:
        self._store = store
        self.recent_limit = recent_limit

    async def summarize(self, subject_id: str) -> MemorySummary:
        """Build the summary for one learner.

        Args:
            subject_id: Learner to summarise.

        Returns:
            Stable patterns, live hypotheses, the most recent ephemeral
            observations and counts over the whole live set.
        """
        subject_id = require_text(subject_id, "subject_id")
        records = await self._store.query(
            MemoryQuery(subject_id=subject_id, statuses=LIVE_STATUSES)
        )

        stable = [r for r in records if r.layer == MemoryLayer.STABLE]
        hypotheses = [r for r in records if r.layer == MemoryLayer.HYPOTHESIS]
        ephemeral = [r for r in records if r.layer == MemoryLayer.EPHEMERAL]

        return MemorySummary(
            subject_id=subject_id,
            stable_patterns=stable,
            active_hypotheses=hypotheses,
            recent_observations=ephemeral[: self.recent_limit],
            stats=MemoryStats(
                total_memories=len(records),
                stable_count=len(stable),
                hypothesis_count=len(hypotheses),
                ephemeral_count=len(ephemeral),
            ),
        )
