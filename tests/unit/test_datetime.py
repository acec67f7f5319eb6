# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for datetime utilities."""

from datetime import date, datetime, timedelta, timezone

import pytest

from learner_memory.utils.datetime import (
    days_ago,
    days_from_now,
    ensure_utc,
    format_iso,
    parse_iso,
    utc_now,
    utc_today,
)

REFERENCE = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)


@pytest.mark.unit
class TestUtcNow:
    """Tests for current-time helpers."""

    def test_utc_now_is_aware(self) -> None:
        """Test that utc_now returns an aware UTC datetime."""
        now = utc_now()

        assert now.tzinfo is not None
        assert now.utcoffset() == timedelta(0)

    def test_utc_today(self) -> None:
        """Test that utc_today returns a date."""
        assert isinstance(utc_today(), date)


@pytest.mark.unit
class TestEnsureUtc:
    """Tests for ensure_utc."""

    def test_none(self) -> None:
        """Test that None passes through."""
        assert ensure_utc(None) is None

    def test_naive_is_assumed_utc(self) -> None:
        """Test that naive values from SQLite are tagged as UTC."""
        result = ensure_utc(datetime(2025, 3, 1, 9, 0))

        assert result == REFERENCE

    def test_aware_is_converted(self) -> None:
        """Test that other offsets are converted to UTC."""
        plus_two = timezone(timedelta(hours=2))

        result = ensure_utc(datetime(2025, 3, 1, 11, 0, tzinfo=plus_two))

        assert result == REFERENCE
        assert result.tzinfo == timezone.utc


@pytest.mark.unit
class TestRelativeDays:
    """Tests for days_ago and days_from_now."""

    def test_days_ago(self) -> None:
        """Test going back from a reference point."""
        assert days_ago(30, now=REFERENCE) == REFERENCE - timedelta(days=30)

    def test_days_from_now(self) -> None:
        """Test going forward from a reference point."""
        assert days_from_now(10, now=REFERENCE) == datetime(
            2025, 3, 11, 9, 0, tzinfo=timezone.utc
        )

    def test_defaults_to_current_time(self) -> None:
        """Test that omitting now uses the wall clock."""
        before = utc_now()
        result = days_from_now(1)

        assert result - before >= timedelta(days=1)


@pytest.mark.unit
class TestIsoFormatting:
    """Tests for format_iso and parse_iso."""

    def test_format(self) -> None:
        """Test ISO formatting of an aware datetime."""
        assert format_iso(REFERENCE) == "2025-03-01T09:00:00+00:00"
        assert format_iso(None) is None

    def test_parse_zulu_suffix(self) -> None:
        """Test that a trailing Z is read as UTC."""
        assert parse_iso("2025-03-01T09:00:00Z") == REFERENCE
        assert parse_iso(None) is None

    def test_parse_offset(self) -> None:
        """Test that offsets are normalised to UTC."""
        assert parse_iso("2025-03-01T10:00:00+01:00") == REFERENCE
