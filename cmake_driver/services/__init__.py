from cmake_driver.services.cache_file import CMakeCache, parse_cache_text
from cmake_driver.services.process import ExecutionResult, OutputConsumer, ProcessService, SubprocessService
from cmake_driver.services.reporter import CollectingReporter, ErrorReporter, LoggingReporter
from cmake_driver.services.watcher import CacheWatcher, WatchfilesService, WatchService

__all__ = [
    "CMakeCache",
    "CacheWatcher",
    "CollectingReporter",
    "ErrorReporter",
    "ExecutionResult",
    "LoggingReporter",
    "OutputConsumer",
    "ProcessService",
    "SubprocessService",
    "WatchService",
    "WatchfilesService",
    "parse_cache_text",
]
