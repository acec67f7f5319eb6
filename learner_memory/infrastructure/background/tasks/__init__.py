# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Background task actors for learner memory.

Usage:
    from learner_memory.infrastructure.background.tasks import record_observation

    record_observation.send("c1", "ephemeral", "likes_dinosaurs", {"source": "quiz"})

Running Workers:
    dramatiq learner_memory.infrastructure.background.tasks --processes 1 --threads 4
"""

from learner_memory.infrastructure.background.tasks.base import (
    get_worker_memory_manager,
    run_async,
)
from learner_memory.infrastructure.background.tasks.memory import (
    cleanup_expired_memories,
    decay_learner_memories,
    get_memory_actors,
    record_observation,
)

__all__ = [
    # Memory
    "record_observation",
    "decay_learner_memories",
    "cleanup_expired_memories",
    # Utilities
    "get_worker_memory_manager",
    "run_async",
    "get_all_actors",
]


def get_all_actors() -> list:
    """Get list of all defined actors."""
    return get_memory_actors()
