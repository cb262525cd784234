"""
CMake cache entry model.

Entries are immutable; a cache snapshot is a read-only mapping of entry key to
``CacheEntry`` that is replaced wholesale, never edited in place.
"""

from __future__ import annotations

import re
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Mapping

from pydantic import BaseModel, ConfigDict, Field


class CacheEntryType(str, Enum):
    """Cache variable types understood by CMake."""

    BOOL = "BOOL"
    STRING = "STRING"
    PATH = "PATH"
    FILEPATH = "FILEPATH"
    INTERNAL = "INTERNAL"
    STATIC = "STATIC"
    UNINITIALIZED = "UNINITIALIZED"

    @classmethod
    def parse(cls, raw: str) -> "CacheEntryType":
        """Map a type tag to the enum, unknown tags become UNINITIALIZED."""
        try:
            return cls(raw.strip().upper())
        except ValueError:
            return cls.UNINITIALIZED


_TRUE_CONSTANTS = {"1", "ON", "YES", "TRUE", "Y"}
_FALSE_CONSTANTS = {"0", "OFF", "NO", "FALSE", "N", "IGNORE", "NOTFOUND", ""}
_NUMBER_RE = re.compile(r"^[+-]?\d+(\.\d*)?$")


def is_truthy(value: str) -> bool:
    """Evaluate a string the way CMake's ``if(<constant>)`` does."""
    upper = value.strip().upper()
    if upper in _TRUE_CONSTANTS:
        return True
    if upper in _FALSE_CONSTANTS or upper.endswith("-NOTFOUND"):
        return False
    if _NUMBER_RE.match(upper):
        return float(upper) != 0
    return False


class CacheEntry(BaseModel):
    """A single persisted cache variable."""

    model_config = ConfigDict(frozen=True)

    key: str = Field(..., min_length=1, description="Variable name")
    type: CacheEntryType = Field(default=CacheEntryType.UNINITIALIZED, description="Type tag")
    value: str = Field(default="", description="Raw string value")
    advanced: bool = Field(default=False, description="Hidden from basic cache views")
    help_string: str = Field(default="", description="Help text written next to the entry")

    def as_bool(self) -> bool:
        return is_truthy(self.value)


def freeze_entries(entries: Iterable[CacheEntry]) -> Mapping[str, CacheEntry]:
    """Build a read-only snapshot, the last entry wins on duplicate keys."""
    return MappingProxyType({entry.key: entry for entry in entries})


EMPTY_CACHE: Mapping[str, CacheEntry] = MappingProxyType({})
