# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- Unit tests
- Integration tests
"""

import os
from collections.abc import Generator
from datetime import datetime, timedelta, timezone

import pytest

# Actor modules configure the broker on import; keep it in-process.
os.environ.setdefault("DRAMATIQ_TEST_MODE", "true")

from learner_memory.core.config import clear_settings_cache  # noqa: E402
from learner_memory.core.memory import TieredMemoryManager  # noqa: E402
from learner_memory.core.memory.stores import InMemoryMemoryStore  # noqa: E402


# =============================================================================
# Clock
# =============================================================================


T0 = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    """Controllable UTC clock injected into the memory engine."""

    def __init__(self, start: datetime = T0) -> None:
        self.start = start
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, days: float = 0, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(days=days, **kwargs)
        return self.now

    def at_day(self, day: float) -> datetime:
        """Jump to ``start + day`` days."""
        self.now = self.start + timedelta(days=day)
        return self.now


# =============================================================================
# Settings
# =============================================================================


@pytest.fixture(autouse=True)
def _reset_settings_cache() -> Generator[None, None, None]:
    """Drop cached settings so environment patches take effect."""
    clear_settings_cache()
    yield
    clear_settings_cache()


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (real database)"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


# =============================================================================
# Helper Fixtures
# =============================================================================


@pytest.fixture
def clock() -> FakeClock:
    """Provide a clock starting at T0."""
    return FakeClock()


@pytest.fixture
def store() -> InMemoryMemoryStore:
    """Provide an empty in-memory record store."""
    return InMemoryMemoryStore()


@pytest.fixture
def manager(store: InMemoryMemoryStore, clock: FakeClock) -> TieredMemoryManager:
    """Provide a memory manager over the in-memory store and fake clock."""
    return TieredMemoryManager(store=store, clock=clock)


@pytest.fixture
def sample_subject_id() -> str:
    """Provide a sample learner ID for testing."""
    return "c1"


@pytest.fixture
def other_subject_id() -> str:
    """Provide a second learner ID for isolation tests."""
    return "c2"
