"""
Loader for the ``cache`` reply object (cache-v2).

The object is ``{"entries": [...]}``; a bare top-level array of entries is
accepted as well. Each entry carries ``name``, ``value`` and ``type`` plus an
optional ``properties`` list holding ``ADVANCED`` and ``HELPSTRING``.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, Union

from cmake_driver.common.exceptions import MalformedReplyError
from cmake_driver.models.cache import CacheEntry, CacheEntryType, freeze_entries, is_truthy

_REQUIRED_FIELDS = ("name", "value", "type")


def read_json(path: Union[str, Path]) -> Any:
    """Read a reply JSON file, mapping parse errors to MalformedReplyError."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except ValueError as e:
        # JSONDecodeError, or UnicodeDecodeError on a file cut mid-character
        raise MalformedReplyError(f"Invalid JSON: {e}", path=path) from e
    except OSError as e:
        raise MalformedReplyError(f"Cannot read reply object: {e.strerror or e}", path=path) from e


def _properties(raw: Dict[str, Any]) -> Dict[str, str]:
    props = raw.get("properties") or []
    if not isinstance(props, list):
        return {}
    return {
        str(prop["name"]): str(prop.get("value", ""))
        for prop in props
        if isinstance(prop, dict) and "name" in prop
    }


def parse_cache_entries(document: Any, path: Union[str, Path, None] = None) -> Mapping[str, CacheEntry]:
    if isinstance(document, dict):
        raw_entries = document.get("entries")
    else:
        raw_entries = document
    if not isinstance(raw_entries, list):
        raise MalformedReplyError("Cache object has no entry list", path=path)

    entries: List[CacheEntry] = []
    for position, raw in enumerate(raw_entries):
        if not isinstance(raw, dict):
            raise MalformedReplyError(f"Cache entry #{position} is not an object", path=path)
        missing = [name for name in _REQUIRED_FIELDS if name not in raw]
        if missing:
            raise MalformedReplyError(
                f"Cache entry #{position} is missing {', '.join(missing)}", path=path
            )
        if not str(raw["name"]):
            raise MalformedReplyError(f"Cache entry #{position} has an empty name", path=path)
        props = _properties(raw)
        entries.append(
            CacheEntry(
                key=str(raw["name"]),
                type=CacheEntryType.parse(str(raw["type"])),
                value=str(raw["value"]),
                advanced=is_truthy(props.get("ADVANCED", "")),
                help_string=props.get("HELPSTRING", ""),
            )
        )
    return freeze_entries(entries)


def load_cache(json_file: Union[str, Path]) -> Mapping[str, CacheEntry]:
    """Parse a cache reply object into a read-only key → entry mapping."""
    return parse_cache_entries(read_json(json_file), path=json_file)
