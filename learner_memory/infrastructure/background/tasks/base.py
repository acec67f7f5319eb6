# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Base utilities for Dramatiq tasks.

Thread-Local Event Loop Management:
    Dramatiq workers use multiple threads (--threads N) to process tasks
    concurrently. SQLAlchemy async engines and asyncpg connections are
    bound to specific event loops and cannot be used across different loops.

    Each worker thread therefore keeps one persistent event loop and one
    memory manager whose engine is bound to that loop. When the loop is
    replaced, the cached manager is dropped with it.
"""

import asyncio
import logging
import threading
from typing import TYPE_CHECKING, Any, Coroutine, TypeVar

if TYPE_CHECKING:
    from learner_memory.core.memory import TieredMemoryManager

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Thread-local storage for event loops and memory managers
_thread_local = threading.local()


def _clear_thread_memory_manager() -> None:
    """Forget the memory manager cached for the current thread."""
    _thread_local.memory_manager = None


def _get_thread_event_loop() -> asyncio.AbstractEventLoop:
    """Get or create a persistent event loop for the current thread.

    When a new loop is created (first task in thread or after loop closure),
    the cached memory manager is cleared so no engine outlives its loop.

    Returns:
        Event loop for current thread.
    """
    loop = getattr(_thread_local, "event_loop", None)

    if loop is None or loop.is_closed():
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        _thread_local.event_loop = loop

        _clear_thread_memory_manager()

        logger.debug(
            "Created new event loop for thread %s",
            threading.current_thread().name,
        )

    return loop


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run async coroutine in sync Dramatiq worker context.

    Args:
        coro: Coroutine to run.

    Returns:
        Result of coroutine.

    Example:
        @dramatiq.actor
        def my_task(subject_id: str):
            async def _process():
                manager = get_worker_memory_manager()
                return await manager.decay(subject_id)
            return run_async(_process())
    """
    loop = _get_thread_event_loop()
    return loop.run_until_complete(coro)


def get_worker_memory_manager() -> "TieredMemoryManager":
    """Get the memory manager for the current worker thread.

    The manager is backed by the SQL store on an engine created for this
    thread's event loop. It is created on first use.

    Returns:
        TieredMemoryManager for this thread.

    Raises:
        DatabaseError: If the engine cannot be created.
    """
    manager = getattr(_thread_local, "memory_manager", None)
    if manager is not None:
        return manager

    from learner_memory.core.config import get_settings
    from learner_memory.core.memory import TieredMemoryManager
    from learner_memory.core.memory.stores import SQLAlchemyMemoryStore
    from learner_memory.infrastructure.database.connection import create_engine

    settings = get_settings()
    engine = create_engine(settings)
    manager = TieredMemoryManager(SQLAlchemyMemoryStore(engine), settings=settings.memory)
    _thread_local.memory_manager = manager

    logger.debug(
        "Created memory manager for thread %s",
        threading.current_thread().name,
    )
    return manager
