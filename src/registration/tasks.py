"""Detached background task spawning."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Coroutine, Optional, Protocol, Set

logger = logging.getLogger(__name__)


class TaskSpawner(Protocol):
    """Runs a coroutine detached from the caller, without returning a handle."""

    def spawn(self, coro: Coroutine[Any, Any, Any], *, name: Optional[str] = None) -> None:
        ...


class BackgroundTasks:
    """asyncio-backed TaskSpawner.

    Keeps references to running tasks so they are not garbage collected,
    logs their failures, and can wait for them at shutdown. Tasks are never
    cancelled.
    """

    def __init__(self) -> None:
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Coroutine[Any, Any, Any], *, name: Optional[str] = None) -> None:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning("Background task %s was cancelled", task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Background task %s failed: %s", task.get_name(), exc,
                exc_info=(type(exc), exc, exc.__traceback__),
            )

    async def drain(self, timeout: float) -> int:
        """Wait up to ``timeout`` seconds for running tasks.

        Returns:
            Number of tasks still running afterwards.
        """
        if not self._tasks:
            return 0
        _, still_running = await asyncio.wait(set(self._tasks), timeout=timeout)
        if still_running:
            logger.warning("%d background tasks still running at shutdown", len(still_running))
        return len(still_running)
