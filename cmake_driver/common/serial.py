"""
Non-reentrant async operation guard.

``SerialTask`` wraps an async operation so that at most one run is in flight.
A trigger arriving while a run is in flight queues exactly one follow-up run;
further triggers arriving before that follow-up starts share its outcome
instead of queueing more work. Every caller therefore observes a run that
started after its own trigger.

The follow-up run belongs to the slot, not to the caller that queued it:
cancelling any caller only stops that caller from waiting.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from loguru import logger

T = TypeVar("T")


class SerialTask(Generic[T]):
    """Single in-flight slot plus one pending re-trigger."""

    def __init__(self, operation: Callable[[], Awaitable[T]], name: str = "task"):
        self._operation = operation
        self._name = name
        self._lock = asyncio.Lock()
        self._queued: Optional[asyncio.Future] = None
        self._follow_up: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._lock.locked()

    @property
    def pending(self) -> bool:
        return self._queued is not None

    async def run(self) -> T:
        if self._queued is not None:
            logger.debug(f"{self._name}: coalescing into the queued run")
            return await asyncio.shield(self._queued)

        if not self._lock.locked():
            async with self._lock:
                return await self._operation()

        logger.debug(f"{self._name}: run in flight, queueing one more")
        queued: asyncio.Future = asyncio.get_running_loop().create_future()
        # Sharers may all be gone by the time the outcome is set
        queued.add_done_callback(_consume_outcome)
        self._queued = queued
        self._follow_up = asyncio.get_running_loop().create_task(self._run_queued(queued))
        return await asyncio.shield(queued)

    async def _run_queued(self, queued: asyncio.Future) -> None:
        try:
            async with self._lock:
                self._queued = None
                result = await self._operation()
        except asyncio.CancelledError:
            if self._queued is queued:
                self._queued = None
            queued.cancel()
            raise
        except Exception as exc:
            queued.set_exception(exc)
        else:
            queued.set_result(result)
        finally:
            if self._follow_up is asyncio.current_task():
                self._follow_up = None


def _consume_outcome(future: asyncio.Future) -> None:
    if not future.cancelled():
        future.exception()
