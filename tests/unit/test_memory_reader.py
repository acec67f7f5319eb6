# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for MemoryReader filters and lookups."""

import pytest

from learner_memory.core.memory.errors import MemoryNotFoundError, MemoryValidationError
from learner_memory.core.memory.models import (
    ConfidenceLevel,
    MemoryChanges,
    MemoryLayer,
    MemoryStatus,
)
from learner_memory.core.memory.reader import MemoryReader
from learner_memory.core.memory.writer import MemoryWriter


@pytest.fixture
def writer(store, clock):
    """Create a MemoryWriter over the in-memory store."""
    return MemoryWriter(store=store, clock=clock)


@pytest.fixture
def reader(store):
    """Create a MemoryReader over the in-memory store."""
    return MemoryReader(store=store)


@pytest.mark.unit
class TestMemoryReaderRead:
    """Test cases for MemoryReader.read filters."""

    @pytest.mark.asyncio
    async def test_default_returns_only_active(self, writer, reader, sample_subject_id):
        """Test that suspected hypotheses are not returned without a status filter."""
        await writer.write(sample_subject_id, "ephemeral", "likes_dinosaurs", {})
        await writer.write(sample_subject_id, "hypothesis", "struggles_fractions", {})
        await writer.write(sample_subject_id, "stable", "visual_learner", {})

        records = await reader.read(sample_subject_id)

        assert {r.key for r in records} == {"likes_dinosaurs", "visual_learner"}
        assert all(r.status == MemoryStatus.ACTIVE for r in records)

    @pytest.mark.asyncio
    async def test_status_filter(self, writer, reader, sample_subject_id):
        """Test asking for suspected records explicitly."""
        await writer.write(sample_subject_id, "hypothesis", "struggles_fractions", {})

        records = await reader.read(sample_subject_id, status="suspected")

        assert [r.key for r in records] == ["struggles_fractions"]

    @pytest.mark.asyncio
    async def test_terminal_records_hidden_by_default(
        self, writer, reader, store, sample_subject_id
    ):
        """Test that expired records need an explicit status filter."""
        record = await writer.write(sample_subject_id, "ephemeral", "k", {})
        await store.update_if(record.id, MemoryChanges(status=MemoryStatus.EXPIRED))

        assert await reader.read(sample_subject_id) == []
        expired = await reader.read(sample_subject_id, status=MemoryStatus.EXPIRED)
        assert [r.id for r in expired] == [record.id]

    @pytest.mark.asyncio
    async def test_layer_filter(self, writer, reader, sample_subject_id):
        """Test restricting results to one tier."""
        await writer.write(sample_subject_id, "ephemeral", "a", {})
        await writer.write(sample_subject_id, "stable", "b", {})

        records = await reader.read(sample_subject_id, layer=MemoryLayer.STABLE)

        assert [r.key for r in records] == ["b"]

    @pytest.mark.asyncio
    async def test_key_pattern_is_case_sensitive_substring(
        self, writer, reader, sample_subject_id
    ):
        """Test key_pattern substring matching."""
        await writer.write(sample_subject_id, "stable", "struggles_fractions", {})
        await writer.write(sample_subject_id, "stable", "struggles_decimals", {})
        await writer.write(sample_subject_id, "stable", "likes_Fractions_games", {})

        records = await reader.read(sample_subject_id, key_pattern="fractions")

        assert [r.key for r in records] == ["struggles_fractions"]

    @pytest.mark.asyncio
    async def test_min_confidence(self, writer, reader, sample_subject_id):
        """Test that min_confidence includes the threshold and above."""
        await writer.write(sample_subject_id, "stable", "low", {}, confidence="low")
        await writer.write(sample_subject_id, "stable", "medium", {}, confidence="medium")
        await writer.write(sample_subject_id, "stable", "high", {}, confidence="high")

        records = await reader.read(sample_subject_id, min_confidence=ConfidenceLevel.MEDIUM)

        assert {r.key for r in records} == {"medium", "high"}

    @pytest.mark.asyncio
    async def test_filters_are_conjunctive(self, writer, reader, sample_subject_id):
        """Test combining layer, key_pattern and min_confidence."""
        await writer.write(sample_subject_id, "stable", "math_strength", {}, confidence="high")
        await writer.write(sample_subject_id, "stable", "math_anxiety", {}, confidence="low")
        await writer.write(
            sample_subject_id, "ephemeral", "math_quiz_score", {}, confidence="high"
        )

        records = await reader.read(
            sample_subject_id,
            layer="stable",
            key_pattern="math",
            min_confidence="medium",
        )

        assert [r.key for r in records] == ["math_strength"]

    @pytest.mark.asyncio
    async def test_newest_first(self, writer, reader, clock, sample_subject_id):
        """Test that results are ordered by last_updated, newest first."""
        await writer.write(sample_subject_id, "stable", "older", {})
        clock.advance(hours=1)
        await writer.write(sample_subject_id, "stable", "newer", {})

        records = await reader.read(sample_subject_id)

        assert [r.key for r in records] == ["newer", "older"]

    @pytest.mark.asyncio
    async def test_subject_isolation(
        self, writer, reader, sample_subject_id, other_subject_id
    ):
        """Test that reads never cross learners."""
        await writer.write(other_subject_id, "stable", "visual_learner", {})

        assert await reader.read(sample_subject_id) == []

    @pytest.mark.asyncio
    async def test_reads_have_no_side_effects(
        self, writer, reader, store, sample_subject_id
    ):
        """Test that reading does not change stored records."""
        record = await writer.write(sample_subject_id, "stable", "k", {})

        await reader.read(sample_subject_id)

        assert await store.get(record.id) == record

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "kwargs",
        [
            {"subject_id": ""},
            {"layer": "episodic"},
            {"status": "archived"},
            {"min_confidence": "certain"},
            {"key_pattern": 5},
        ],
    )
    async def test_invalid_filters_are_rejected(self, reader, kwargs):
        """Test that malformed filters raise MemoryValidationError."""
        params = {"subject_id": "c1"}
        params.update(kwargs)

        with pytest.raises(MemoryValidationError):
            await reader.read(**params)


@pytest.mark.unit
class TestMemoryReaderLookups:
    """Test cases for get and get_by_key."""

    @pytest.mark.asyncio
    async def test_get_returns_record(self, writer, reader, sample_subject_id):
        """Test fetching a record by id."""
        record = await writer.write(sample_subject_id, "stable", "k", {})

        assert await reader.get(record.id) == record

    @pytest.mark.asyncio
    async def test_get_unknown_id(self, reader):
        """Test that an unknown id raises MemoryNotFoundError."""
        with pytest.raises(MemoryNotFoundError) as exc_info:
            await reader.get("missing")

        assert exc_info.value.record_id == "missing"

    @pytest.mark.asyncio
    async def test_get_by_key_any_status(self, writer, reader, store, sample_subject_id):
        """Test that get_by_key also finds terminal records."""
        record = await writer.write(sample_subject_id, "hypothesis", "k", {})
        await store.update_if(record.id, MemoryChanges(status=MemoryStatus.RESOLVED))

        found = await reader.get_by_key(sample_subject_id, "k")

        assert found is not None
        assert found.status == MemoryStatus.RESOLVED

    @pytest.mark.asyncio
    async def test_get_by_key_with_layer(self, writer, reader, clock, sample_subject_id):
        """Test that layer narrows a key present in several tiers."""
        await writer.write(sample_subject_id, "ephemeral", "k", {"tier": "e"})
        clock.advance(hours=1)
        await writer.write(sample_subject_id, "stable", "k", {"tier": "s"})

        newest = await reader.get_by_key(sample_subject_id, "k")
        ephemeral = await reader.get_by_key(sample_subject_id, "k", layer="ephemeral")

        assert newest.content == {"tier": "s"}
        assert ephemeral.content == {"tier": "e"}

    @pytest.mark.asyncio
    async def test_get_by_key_missing(self, reader, sample_subject_id):
        """Test that an unknown key returns None."""
        assert await reader.get_by_key(sample_subject_id, "unknown") is None
