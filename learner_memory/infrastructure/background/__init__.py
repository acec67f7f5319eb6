# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Background task infrastructure for learner memory.

Provides background task processing with Dramatiq:
- Redis broker for message persistence and durability
- Actors for observation recording and the decay/expiration sweeps

Quick Start:
    from learner_memory.infrastructure.background import setup_dramatiq
    setup_dramatiq()

    from learner_memory.infrastructure.background.tasks import cleanup_expired_memories
    cleanup_expired_memories.send()

Running Workers:
    dramatiq learner_memory.infrastructure.background.tasks --processes 1 --threads 4
"""

from learner_memory.infrastructure.background.broker import (
    BrokerManager,
    Priority,
    Queues,
    get_broker,
    get_broker_manager,
    setup_dramatiq,
    shutdown_dramatiq,
)

# Task actors are imported lazily to avoid configuring the broker on import.
# Use: from learner_memory.infrastructure.background.tasks import record_observation

__all__ = [
    "BrokerManager",
    "Priority",
    "Queues",
    "get_broker",
    "get_broker_manager",
    "setup_dramatiq",
    "shutdown_dramatiq",
]
