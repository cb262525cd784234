"""
Event emitter and subscription handles.

A ``Subscription`` is an owned handle: whoever receives it is responsible for
calling ``dispose()`` (or using it as a context manager). Disposal is idempotent
and, once it returns, the listener behind it is never invoked again.
"""

from __future__ import annotations

from typing import Any, Callable, Generic, List, Optional, TypeVar

from loguru import logger

T = TypeVar("T")


class Subscription:
    """Handle releasing one listener registration."""

    def __init__(self, release: Optional[Callable[[], None]] = None):
        self._release = release
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        release, self._release = self._release, None
        if release is not None:
            release()

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.dispose()


class EventEmitter(Generic[T]):
    """Synchronous fan-out of a payload to registered listeners."""

    def __init__(self, name: str):
        self.name = name
        self._listeners: List[Callable[[T], Any]] = []

    def subscribe(self, listener: Callable[[T], Any]) -> Subscription:
        self._listeners.append(listener)

        def _release() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return Subscription(_release)

    def fire(self, payload: T) -> None:
        # Snapshot: listeners may unsubscribe while being notified
        for listener in list(self._listeners):
            try:
                listener(payload)
            except Exception as e:
                logger.opt(exception=True).error(f"Listener for '{self.name}' failed: {e}")

    def clear(self) -> None:
        self._listeners.clear()

    def __len__(self) -> int:
        return len(self._listeners)
