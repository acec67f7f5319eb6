# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for SummaryBuilder."""

import pytest

from learner_memory.core.memory.errors import MemoryValidationError
from learner_memory.core.memory.models import MemoryChanges, MemoryStatus
from learner_memory.core.memory.summary import SummaryBuilder
from learner_memory.core.memory.writer import MemoryWriter


@pytest.fixture
def writer(store, clock):
    """Create a MemoryWriter over the in-memory store."""
    return MemoryWriter(store=store, clock=clock)


@pytest.fixture
def builder(store):
    """Create a SummaryBuilder with the default recent limit."""
    return SummaryBuilder(store=store)


@pytest.mark.unit
class TestSummaryBuilder:
    """Test cases for per-learner summaries."""

    @pytest.mark.asyncio
    async def test_empty_subject(self, builder, sample_subject_id):
        """Test the summary of a learner with no records."""
        summary = await builder.summarize(sample_subject_id)

        assert summary.subject_id == sample_subject_id
        assert summary.stable_patterns == []
        assert summary.active_hypotheses == []
        assert summary.recent_observations == []
        assert summary.stats.total_memories == 0

    @pytest.mark.asyncio
    async def test_partitions_by_tier(self, writer, builder, sample_subject_id):
        """Test that each live record lands in its tier's list."""
        await writer.write(sample_subject_id, "ephemeral", "likes_dinosaurs", {})
        await writer.write(sample_subject_id, "hypothesis", "struggles_fractions", {})
        await writer.write(sample_subject_id, "stable", "visual_learner", {})

        summary = await builder.summarize(sample_subject_id)

        assert [r.key for r in summary.stable_patterns] == ["visual_learner"]
        assert [r.key for r in summary.active_hypotheses] == ["struggles_fractions"]
        assert [r.key for r in summary.recent_observations] == ["likes_dinosaurs"]
        assert summary.stats.total_memories == 3
        assert summary.stats.stable_count == 1
        assert summary.stats.hypothesis_count == 1
        assert summary.stats.ephemeral_count == 1

    @pytest.mark.asyncio
    async def test_recent_observations_truncated(
        self, writer, builder, clock, sample_subject_id
    ):
        """Test that only the five newest observations are listed but all are counted."""
        for i in range(8):
            await writer.write(sample_subject_id, "ephemeral", f"obs_{i}", {})
            clock.advance(minutes=1)

        summary = await builder.summarize(sample_subject_id)

        assert [r.key for r in summary.recent_observations] == [
            "obs_7",
            "obs_6",
            "obs_5",
            "obs_4",
            "obs_3",
        ]
        assert summary.stats.ephemeral_count == 8
        assert summary.stats.total_memories == 8

    @pytest.mark.asyncio
    async def test_terminal_records_excluded(
        self, writer, builder, store, sample_subject_id
    ):
        """Test that resolved and expired records are neither listed nor counted."""
        expired = await writer.write(sample_subject_id, "ephemeral", "old", {})
        resolved = await writer.write(sample_subject_id, "hypothesis", "rejected", {})
        await writer.write(sample_subject_id, "stable", "kept", {})
        await store.update_if(expired.id, MemoryChanges(status=MemoryStatus.EXPIRED))
        await store.update_if(resolved.id, MemoryChanges(status=MemoryStatus.RESOLVED))

        summary = await builder.summarize(sample_subject_id)

        assert summary.recent_observations == []
        assert summary.active_hypotheses == []
        assert [r.key for r in summary.stable_patterns] == ["kept"]
        assert summary.stats.total_memories == 1

    @pytest.mark.asyncio
    async def test_subject_isolation(
        self, writer, builder, sample_subject_id, other_subject_id
    ):
        """Test that summaries never include other learners."""
        await writer.write(other_subject_id, "stable", "visual_learner", {})

        summary = await builder.summarize(sample_subject_id)

        assert summary.stats.total_memories == 0

    @pytest.mark.asyncio
    async def test_custom_recent_limit(self, writer, store, sample_subject_id):
        """Test a builder with a smaller recent window."""
        builder = SummaryBuilder(store=store, recent_limit=1)
        await writer.write(sample_subject_id, "ephemeral", "a", {})
        await writer.write(sample_subject_id, "ephemeral", "b", {})

        summary = await builder.summarize(sample_subject_id)

        assert len(summary.recent_observations) == 1
        assert summary.stats.ephemeral_count == 2

    @pytest.mark.asyncio
    async def test_subject_required(self, builder):
        """Test that a blank subject is rejected."""
        with pytest.raises(MemoryValidationError):
            await builder.summarize(" ")
