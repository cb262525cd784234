"""
Error reporting sink.

Failures that must not propagate (watcher-triggered reloads, post-build
refreshes) are handed to an ``ErrorReporter`` injected into the driver.
"""

from typing import List, Protocol, Tuple

from loguru import logger


class ErrorReporter(Protocol):
    def report(self, what: str, exc: BaseException) -> None: ...


class LoggingReporter:
    """Default reporter: logs the failure with its traceback."""

    def report(self, what: str, exc: BaseException) -> None:
        logger.opt(exception=exc).error(f"{what} failed: {exc}")


class CollectingReporter(LoggingReporter):
    """Keeps reported failures in memory in addition to logging them."""

    def __init__(self):
        self.reports: List[Tuple[str, BaseException]] = []

    def report(self, what: str, exc: BaseException) -> None:
        self.reports.append((what, exc))
        super().report(what, exc)
