# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Memory background tasks.

Actors for best-effort observation recording and for the decay and
expiration sweeps. Sweeps are idempotent, so an external scheduler may
enqueue them as often as it likes.
"""

from typing import Any

import dramatiq

from learner_memory.core.config import get_settings
from learner_memory.core.memory.errors import TieredMemoryError
from learner_memory.infrastructure.background.broker import Priority, Queues, setup_dramatiq
from learner_memory.infrastructure.background.tasks.base import (
    get_worker_memory_manager,
    run_async,
)
from learner_memory.infrastructure.database.connection import DatabaseError
from learner_memory.utils.logging import bind_context, clear_context, get_logger

# Setup broker before defining actors
setup_dramatiq()

logger = get_logger(__name__)

SWEEP_TIME_LIMIT_MS = get_settings().worker.sweep_time_limit_ms


@dramatiq.actor(
    queue_name=Queues.MEMORY,
    max_retries=0,
    time_limit=60000,  # 1 minute
    priority=Priority.NORMAL,
)
def record_observation(
    subject_id: str,
    layer: str,
    key: str,
    content: dict[str, Any],
    confidence: str = "low",
    ttl_days: int | None = None,
) -> dict[str, Any]:
    """Record an observation about a learner.

    Observations are best effort: a lost write is logged and not retried.

    Args:
        subject_id: Learner identifier.
        layer: Target tier (ephemeral, hypothesis or stable).
        key: Semantic identifier of the fact.
        content: Observation payload.
        confidence: low, medium or high.
        ttl_days: Lifetime of an ephemeral record.

    Returns:
        Recorded memory info.
    """

    async def _record() -> dict[str, Any]:
        bind_context(task="record_observation", subject_id=subject_id)
        try:
            manager = get_worker_memory_manager()
            record = await manager.record_observation(
                subject_id=subject_id,
                layer=layer,
                key=key,
                content=content,
                confidence=confidence,
                ttl_days=ttl_days,
            )
            if record is None:
                return {"subject_id": subject_id, "key": key, "recorded": False}

            logger.debug(
                "observation_recorded",
                memory_id=record.id,
                key=key,
                evidence_count=record.evidence_count,
            )
            return {
                "memory_id": record.id,
                "subject_id": subject_id,
                "layer": record.layer.value,
                "key": key,
                "evidence_count": record.evidence_count,
                "recorded": True,
            }
        except (TieredMemoryError, DatabaseError) as e:
            logger.error("observation_record_failed", key=key, error=str(e))
            return {"subject_id": subject_id, "key": key, "recorded": False, "error": str(e)}
        finally:
            clear_context()

    return run_async(_record())


@dramatiq.actor(
    queue_name=Queues.MAINTENANCE,
    max_retries=1,
    time_limit=SWEEP_TIME_LIMIT_MS,
    priority=Priority.LOW,
)
def decay_learner_memories(subject_id: str) -> dict[str, Any]:
    """Apply one decay step to a learner's stale hypotheses.

    Args:
        subject_id: Learner identifier.

    Returns:
        Decay result with the number of records changed.
    """

    async def _decay() -> dict[str, Any]:
        bind_context(task="decay_learner_memories", subject_id=subject_id)
        try:
            manager = get_worker_memory_manager()
            decayed = await manager.decay(subject_id)
            logger.info("memory_decay_completed", decayed_count=decayed)
            return {"subject_id": subject_id, "decayed_count": decayed}
        except (TieredMemoryError, DatabaseError) as e:
            logger.error("memory_decay_failed", error=str(e))
            return {"subject_id": subject_id, "error": str(e)}
        finally:
            clear_context()

    return run_async(_decay())


@dramatiq.actor(
    queue_name=Queues.MAINTENANCE,
    max_retries=1,
    time_limit=SWEEP_TIME_LIMIT_MS,
    priority=Priority.LOW,
)
def cleanup_expired_memories() -> dict[str, Any]:
    """Soft-expire ephemeral memories past their TTL, for all learners.

    Returns:
        Cleanup result with the number of records expired.
    """

    async def _cleanup() -> dict[str, Any]:
        bind_context(task="cleanup_expired_memories")
        try:
            manager = get_worker_memory_manager()
            expired = await manager.cleanup_expired()
            logger.info("memory_cleanup_completed", expired_count=expired)
            return {"expired_count": expired}
        except (TieredMemoryError, DatabaseError) as e:
            logger.error("memory_cleanup_failed", error=str(e))
            return {"error": str(e)}
        finally:
            clear_context()

    return run_async(_cleanup())


def get_memory_actors() -> list:
    """Get list of memory actors.

    Returns:
        List of memory-related actors.
    """
    return [
        record_observation,
        decay_learner_memories,
        cleanup_expired_memories,
    ]
