# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""DateTime utilities for learner memory.

All timestamps handled by the memory engine are timezone-aware UTC. Stores
that hand back naive values (SQLite) are normalised through ensure_utc().

Usage:
------
    from learner_memory.utils.datetime import utc_now

    now = utc_now()
    expires_at = now + timedelta(days=10)
"""

from datetime import date, datetime, timedelta, timezone
from typing import Callable

# Zero-argument callable returning the current aware UTC time.
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Timezone-aware datetime representing current UTC time.
    """
    return datetime.now(timezone.utc)


def utc_today() -> date:
    """Get the current UTC calendar date."""
    return utc_now().date()


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Ensure a datetime is timezone-aware UTC.

    Args:
        dt: A datetime object (naive or aware) or None.

    Returns:
        Timezone-aware UTC datetime or None.

    Note:
        - If dt is None, returns None
        - If dt is naive, assumes UTC and adds tzinfo
        - If dt is aware, converts to UTC
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def days_ago(days: int, now: datetime | None = None) -> datetime:
    """Get a datetime N days before now.

    Args:
        days: Number of days to go back.
        now: Reference point; defaults to the current UTC time.

    Returns:
        Timezone-aware UTC datetime.
    """
    return (now or utc_now()) - timedelta(days=days)


def days_from_now(days: int, now: datetime | None = None) -> datetime:
    """Get a datetime N days after now.

    Args:
        days: Number of days to add.
        now: Reference point; defaults to the current UTC time.

    Returns:
        Timezone-aware UTC datetime.
    """
    return (now or utc_now()) + timedelta(days=days)


def format_iso(dt: datetime | None) -> str | None:
    """Format a datetime as ISO 8601 string."""
    if dt is None:
        return None

    return ensure_utc(dt).isoformat()


def parse_iso(iso_string: str | None) -> datetime | None:
    """Parse an ISO 8601 datetime string.

    Args:
        iso_string: ISO 8601 formatted string.

    Returns:
        Timezone-aware UTC datetime or None.
    """
    if iso_string is None:
        return None

    dt = datetime.fromisoformat(iso_string.replace("Z", "+00:00"))
    return ensure_utc(dt)
