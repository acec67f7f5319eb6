# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Utility functions and helpers for learner memory.

This package contains cross-cutting utilities:
- logging: Structured logging with structlog
- datetime: Timezone-aware datetime operations
"""

from learner_memory.utils.datetime import (
    Clock,
    days_ago,
    days_from_now,
    ensure_utc,
    format_iso,
    parse_iso,
    utc_now,
    utc_today,
)
from learner_memory.utils.logging import (
    bind_context,
    clear_context,
    get_logger,
    setup_logging,
)

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    "bind_context",
    "clear_context",
    # Datetime
    "Clock",
    "utc_now",
    "utc_today",
    "ensure_utc",
    "days_ago",
    "days_from_now",
    "format_iso",
    "parse_iso",
]
