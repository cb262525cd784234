"""CMake File API: query writer and reply loaders."""

from cmake_driver.fileapi.cache import load_cache, parse_cache_entries
from cmake_driver.fileapi.query import api_root_for, ensure_query_file, query_document
from cmake_driver.fileapi.reply import (
    REPLY_UNAVAILABLE,
    ReplyBundle,
    ReplyStatus,
    find_index_file,
    load_code_model,
    load_index,
    load_reply,
)

__all__ = [
    "REPLY_UNAVAILABLE",
    "ReplyBundle",
    "ReplyStatus",
    "api_root_for",
    "ensure_query_file",
    "find_index_file",
    "load_cache",
    "load_code_model",
    "load_index",
    "load_reply",
    "parse_cache_entries",
    "query_document",
]
