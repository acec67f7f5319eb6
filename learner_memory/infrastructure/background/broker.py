# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Dramatiq broker for the learner memory workers.

Producers enqueue observations on the ``memory`` queue; an external
scheduler enqueues decay and expiration sweeps on ``maintenance``. Queue
keys and stored results live under the configured Redis namespace, so the
memory workers can share a Redis instance with other Dramatiq apps.

With DRAMATIQ_TEST_MODE=true an in-process StubBroker is used instead.

Example:
    from learner_memory.infrastructure.background.broker import setup_dramatiq

    broker = setup_dramatiq()
"""

import logging
import os
from typing import Any

import dramatiq
import redis
from dramatiq.brokers.redis import RedisBroker
from dramatiq.brokers.stub import StubBroker
from dramatiq.results import Results
from dramatiq.results.backends.redis import RedisBackend

from learner_memory.core.config import get_settings
from learner_memory.utils.logging import setup_logging

logger = logging.getLogger(__name__)


class Queues:
    """Queue name constants for task routing."""

    DEFAULT = "default"
    MEMORY = "memory"  # Observation writes
    MAINTENANCE = "maintenance"  # Decay and expiration sweeps

    ALL = (DEFAULT, MEMORY, MAINTENANCE)


class Priority:
    """Task priority levels (lower number = higher priority)."""

    HIGH = 1
    NORMAL = 3
    LOW = 5


def _test_mode() -> bool:
    return os.getenv("DRAMATIQ_TEST_MODE", "false").lower() == "true"


class BrokerManager:
    """Owns the process-wide broker and its result backend.

    setup() is idempotent; shutdown() allows a later setup() to start over.
    """

    def __init__(self) -> None:
        self._broker: dramatiq.Broker | None = None
        self._namespace: str | None = None

    @property
    def broker(self) -> dramatiq.Broker:
        """Get the configured broker.

        Raises:
            RuntimeError: If broker not initialized.
        """
        if self._broker is None:
            raise RuntimeError("Broker not initialized. Call setup() first.")
        return self._broker

    @property
    def is_initialized(self) -> bool:
        """Check if broker is initialized."""
        return self._broker is not None

    def setup(self) -> dramatiq.Broker:
        """Create the broker, declare the memory queues and install it globally.

        Also configures logging, since this runs first in every worker process.

        Returns:
            Configured broker instance.
        """
        if self._broker is not None:
            return self._broker

        settings = get_settings()
        setup_logging(settings)

        if _test_mode():
            broker: dramatiq.Broker = StubBroker()
            broker.emit_after("process_boot")
            logger.info("Using StubBroker for testing")
        else:
            redis_settings = settings.redis
            self._namespace = redis_settings.namespace
            broker = RedisBroker(url=redis_settings.url, namespace=self._namespace)
            broker.add_middleware(
                Results(
                    backend=RedisBackend(
                        url=redis_settings.url,
                        namespace=f"{self._namespace}-results",
                    )
                )
            )
            logger.info(
                "Redis broker initialized (host: %s, namespace: %s)",
                redis_settings.host,
                self._namespace,
            )

        for queue_name in Queues.ALL:
            broker.declare_queue(queue_name)

        dramatiq.set_broker(broker)
        self._broker = broker
        return broker

    def shutdown(self) -> None:
        """Close the broker connection."""
        if self._broker is not None:
            self._broker.close()
            self._broker = None
            self._namespace = None
            logger.info("Broker shutdown complete")

    def get_queue_stats(self) -> dict[str, Any]:
        """Report the number of waiting messages per memory queue.

        Returns:
            Dict with broker_type, status and, when reachable, queue depths.
        """
        if self._broker is None:
            return {"status": "not_initialized"}

        if isinstance(self._broker, StubBroker):
            return {
                "broker_type": "stub",
                "status": "healthy",
                "queues": {q: self._broker.queues[q].qsize() for q in Queues.ALL},
            }

        stats: dict[str, Any] = {"broker_type": "redis"}
        try:
            client = redis.from_url(get_settings().redis.url)
            stats["queues"] = {q: client.llen(f"{self._namespace}:{q}") for q in Queues.ALL}
            stats["status"] = "healthy"
        except redis.RedisError as e:
            stats["status"] = "error"
            stats["error"] = str(e)

        return stats


_broker_manager: BrokerManager | None = None


def get_broker_manager() -> BrokerManager:
    """Get the singleton broker manager."""
    global _broker_manager
    if _broker_manager is None:
        _broker_manager = BrokerManager()
    return _broker_manager


def setup_dramatiq() -> dramatiq.Broker:
    """Set up the process-wide broker. Called by the actor modules on import."""
    return get_broker_manager().setup()


def get_broker() -> dramatiq.Broker:
    """Get the current Dramatiq broker.

    Raises:
        RuntimeError: If broker not initialized.
    """
    return get_broker_manager().broker


def shutdown_dramatiq() -> None:
    """Shut down the broker and forget the manager."""
    global _broker_manager
    if _broker_manager is not None:
        _broker_manager.shutdown()
        _broker_manager = None
