# tempo_ai_orchestrator/concurrency.py
"""
Single-flight execution.

Concurrent callers asking for the same key share one underlying task. Each
caller awaits the task through ``asyncio.shield``, so cancelling a caller
raises ``CancelledError`` in that caller only while the shared task runs on
to completion for everyone else. The flight is released by a done-callback,
whatever way the task finishes.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SingleFlight(Generic[T]):
    """Deduplicates concurrent work per key."""

    def __init__(self) -> None:
        self._flights: dict[str, asyncio.Task[T]] = {}

    async def do(self, key: str, fn: Callable[[], Awaitable[T]]) -> tuple[T, bool]:
        """
        Run ``fn`` once per key among concurrent callers.

        Returns the result and whether this caller joined a flight that was
        already in progress.
        """
        task = self._flights.get(key)
        shared = task is not None
        if task is None:
            task = asyncio.ensure_future(fn())
            self._flights[key] = task
            task.add_done_callback(lambda t, k=key: self._release(k, t))
        else:
            logger.debug(f"Joining in-flight work for {key}")
        return await asyncio.shield(task), shared

    def _release(self, key: str, task: asyncio.Task[T]) -> None:
        if self._flights.get(key) is task:
            del self._flights[key]
        # Mark the outcome retrieved even if every waiter was cancelled
        if not task.cancelled() and task.exception() is not None:
            logger.debug(f"In-flight work for {key} failed: {task.exception()!r}")

    def in_flight(self, key: str) -> bool:
        return key in self._flights

    def __len__(self) -> int:
        return len(self._flights)

    async def wait_idle(self) -> None:
        """Wait for every in-flight task to finish (useful at shutdown)."""
        while self._flights:
            await asyncio.gather(*list(self._flights.values()), return_exceptions=True)
