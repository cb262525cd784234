"""
File change watching.

``WatchService`` is the contract the driver consumes: subscribe a callback to
change events on one path and get back a ``Subscription``. No ordering or
coalescing guarantee is assumed from implementations.

``WatchfilesService`` implements it with ``watchfiles.awatch`` on the file's
parent directory, so the file may be created, replaced or deleted freely. The
parent directory itself may not exist yet (fresh build tree); the watch task
waits for it to appear.

``CacheWatcher`` turns change events on the cache file into fire-and-forget
reloads whose failures go to an ``ErrorReporter`` and never back into the
watch service.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, Protocol, Set, Union

from loguru import logger
from watchfiles import Change, awatch

from cmake_driver.common.events import Subscription
from cmake_driver.services.reporter import ErrorReporter


class WatchService(Protocol):
    def subscribe(self, path: Union[str, Path], callback: Callable[[], None]) -> Subscription: ...


class WatchfilesService:
    """watchfiles-backed WatchService."""

    def __init__(self, debounce_ms: int = 300, poll_interval: float = 1.0, force_polling: Optional[bool] = None):
        self.debounce_ms = debounce_ms
        self.poll_interval = poll_interval
        self.force_polling = force_polling

    def subscribe(self, path: Union[str, Path], callback: Callable[[], None]) -> Subscription:
        target = Path(path).absolute()
        stop_event = asyncio.Event()
        state = {"active": True}

        def _guarded_callback() -> None:
            if state["active"]:
                callback()

        task = asyncio.get_running_loop().create_task(self._watch(target, _guarded_callback, stop_event))

        def _release() -> None:
            state["active"] = False
            stop_event.set()
            task.cancel()

        logger.debug(f"Watching {target}")
        return Subscription(_release)

    async def _watch(self, target: Path, callback: Callable[[], None], stop_event: asyncio.Event) -> None:
        def _matches(change: Change, changed_path: str) -> bool:
            return Path(changed_path).name == target.name

        while not stop_event.is_set():
            if not target.parent.is_dir():
                await asyncio.sleep(self.poll_interval)
                continue
            try:
                async for changes in awatch(
                    target.parent,
                    watch_filter=_matches,
                    stop_event=stop_event,
                    debounce=self.debounce_ms,
                    recursive=False,
                    force_polling=self.force_polling,
                ):
                    logger.debug(f"{target} changed ({len(changes)} event(s))")
                    callback()
            except (FileNotFoundError, RuntimeError) as e:
                # Directory removed under the watcher (e.g. clean configure)
                logger.debug(f"Watch on {target.parent} interrupted: {e}")
                await asyncio.sleep(self.poll_interval)


class CacheWatcher:
    """Schedules a reload on every change event of the cache file."""

    def __init__(
        self,
        cache_path: Union[str, Path],
        watch_service: WatchService,
        reload: Callable[[], Awaitable[Any]],
        reporter: ErrorReporter,
    ):
        self.cache_path = Path(cache_path)
        self._reload = reload
        self._reporter = reporter
        self._tasks: Set[asyncio.Task] = set()
        self._disposed = False
        self._subscription = watch_service.subscribe(self.cache_path, self._on_change)

    @property
    def disposed(self) -> bool:
        return self._disposed

    def _on_change(self) -> None:
        if self._disposed:
            return
        logger.debug(f"Reload CMake cache: {self.cache_path} changed")
        task = asyncio.ensure_future(self._run_reload())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_reload(self) -> None:
        if self._disposed:
            return
        try:
            await self._reload()
        except Exception as e:
            self._reporter.report("Reloading CMake Cache", e)

    async def drain(self) -> None:
        """Wait for scheduled reloads to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self._subscription.dispose()
