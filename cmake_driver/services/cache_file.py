"""
Reader for ``CMakeCache.txt``.

The file is a flat list of ``KEY:TYPE=VALUE`` lines. ``//`` lines preceding
an entry hold its help text, ``#`` lines are comments. Keys containing ``:``
or ``=`` are written quoted. Advanced-ness is recorded by CMake as a separate
``<KEY>-ADVANCED:INTERNAL=1`` entry.
"""

from __future__ import annotations

import asyncio
import re
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Union

from loguru import logger

from cmake_driver.common.exceptions import FileSystemError
from cmake_driver.models.cache import CacheEntry, CacheEntryType, freeze_entries, is_truthy

_ENTRY_RE = re.compile(r'^(?:"(?P<quoted>[^"]*)"|(?P<key>[^:=]+)):(?P<type>[^=]+)=(?P<value>.*)$')
_ADVANCED_SUFFIX = "-ADVANCED"


def parse_cache_text(content: str) -> Mapping[str, CacheEntry]:
    entries: Dict[str, CacheEntry] = {}
    help_lines: List[str] = []
    for lineno, raw_line in enumerate(content.splitlines(), start=1):
        line = raw_line.strip()
        if not line:
            help_lines = []
            continue
        if line.startswith("//"):
            help_lines.append(line[2:].strip())
            continue
        if line.startswith("#"):
            continue

        match = _ENTRY_RE.match(line)
        if not match:
            logger.warning(f"Unparseable cache line {lineno}: {line}")
            help_lines = []
            continue

        key = match.group("quoted") if match.group("quoted") is not None else match.group("key")
        key = key.strip()
        if not key:
            help_lines = []
            continue
        entries[key] = CacheEntry(
            key=key,
            type=CacheEntryType.parse(match.group("type")),
            value=match.group("value"),
            help_string=" ".join(help_lines),
        )
        help_lines = []

    for key, entry in list(entries.items()):
        if key.endswith(_ADVANCED_SUFFIX) and is_truthy(entry.value):
            base = entries.get(key[: -len(_ADVANCED_SUFFIX)])
            if base is not None:
                entries[base.key] = base.model_copy(update={"advanced": True})

    return freeze_entries(entries.values())


class CMakeCache:
    """Parsed snapshot of a ``CMakeCache.txt`` file."""

    def __init__(self, path: Union[str, Path], entries: Mapping[str, CacheEntry]):
        self.path = Path(path)
        self._entries = entries

    @classmethod
    def from_content(cls, path: Union[str, Path], content: str) -> "CMakeCache":
        return cls(path, parse_cache_text(content))

    @classmethod
    async def from_path(cls, path: Union[str, Path]) -> "CMakeCache":
        """
        Read and parse a cache file.

        Raises:
            FileSystemError: The file is missing or unreadable
        """
        path = Path(path)
        logger.debug(f"Reading CMake cache file {path}")
        try:
            content = await asyncio.to_thread(path.read_text, encoding="utf-8", errors="replace")
        except OSError as e:
            raise FileSystemError(f"Cannot read CMake cache {path}: {e}", path=path) from e
        return cls.from_content(path, content)

    @property
    def all_entries(self) -> Mapping[str, CacheEntry]:
        return self._entries

    def get(self, key: str) -> Optional[CacheEntry]:
        return self._entries.get(key)

    def value_of(self, key: str) -> Optional[str]:
        """Entry value, ``None`` for missing or empty entries."""
        entry = self._entries.get(key)
        return entry.value if entry is not None and entry.value else None

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
