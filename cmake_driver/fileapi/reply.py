"""
File API reply loader.

Reads ``<binaryDir>/.cmake/api/v1/reply``: the index file names the generator
and points at the cache and codemodel objects; the codemodel points at one
JSON file per target and configuration.

Index selection: CMake names index files ``index-<timestamp>.json`` and the
lexicographically greatest name is taken as the current one. Stale index files
left behind by a crashed run therefore never shadow a newer reply.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from loguru import logger
from pydantic import ValidationError

from cmake_driver.common.exceptions import MalformedReplyError
from cmake_driver.core.constants import INDEX_FILE_GLOB
from cmake_driver.fileapi.cache import load_cache, read_json
from cmake_driver.models.cache import CacheEntry
from cmake_driver.models.codemodel import (
    CodeModel,
    Configuration,
    IndexDocument,
    ObjectRef,
    Project,
    RichTarget,
)


class ReplyStatus(Enum):
    UNAVAILABLE = "unavailable"


# No index file yet: nothing to load, not an error
REPLY_UNAVAILABLE = ReplyStatus.UNAVAILABLE


@dataclass(frozen=True)
class ReplyBundle:
    """Index plus the cache and code model it references."""

    index: IndexDocument
    cache: Mapping[str, CacheEntry]
    code_model: CodeModel


def find_index_file(reply_dir: Union[str, Path]) -> Optional[Path]:
    reply_dir = Path(reply_dir)
    if not reply_dir.is_dir():
        return None
    candidates = sorted(p for p in reply_dir.glob(INDEX_FILE_GLOB) if p.is_file())
    return candidates[-1] if candidates else None


def _index_payload(document: Any, path: Path) -> Dict[str, Any]:
    if not isinstance(document, dict):
        raise MalformedReplyError("Index document is not an object", path=path)
    cmake = document.get("cmake")
    if cmake is not None and not isinstance(cmake, dict):
        raise MalformedReplyError("Index member 'cmake' is not an object", path=path)
    # CMake nests the generator under "cmake"; accept a top-level one too
    generator = (cmake or {}).get("generator") or document.get("generator")
    if not generator:
        raise MalformedReplyError("Index document has no generator", path=path)
    return {"generator": generator, "objects": document.get("objects") or []}


def load_index(reply_dir: Union[str, Path]) -> Union[IndexDocument, ReplyStatus]:
    """
    Load the current index document.

    Returns:
        The parsed index, or ``REPLY_UNAVAILABLE`` when no index file exists

    Raises:
        MalformedReplyError: The index is not valid JSON or lacks required fields
    """
    index_file = find_index_file(reply_dir)
    if index_file is None:
        logger.debug(f"No File API reply index in {reply_dir}")
        return REPLY_UNAVAILABLE

    payload = _index_payload(read_json(index_file), index_file)
    try:
        index = IndexDocument.model_validate(payload)
    except ValidationError as e:
        raise MalformedReplyError(f"Invalid index document: {e.error_count()} error(s)", path=index_file) from e
    logger.debug(f"Loaded File API index {index_file.name} (generator={index.generator.name})")
    return index


def _load_target(reply_dir: Path, ref: Dict[str, Any], configuration: str) -> Optional[RichTarget]:
    json_file = ref.get("jsonFile")
    if not json_file or not isinstance(json_file, str):
        logger.warning(f"Target '{ref.get('name', '?')}' in {configuration} has no jsonFile, skipping")
        return None

    target_path = reply_dir / json_file
    try:
        raw = read_json(target_path)
        if not isinstance(raw, dict):
            raise MalformedReplyError("Target document is not an object", path=target_path)
        raw_artifacts = raw.get("artifacts") or []
        if not isinstance(raw_artifacts, list):
            raise MalformedReplyError("Target artifacts are not a list", path=target_path)
        artifacts = tuple(
            str(art["path"])
            for art in raw_artifacts
            if isinstance(art, dict) and art.get("path")
        )
        return RichTarget(
            name=raw.get("name") or ref.get("name"),
            type=raw.get("type"),
            filepath=artifacts[0] if artifacts else None,
            artifacts=artifacts,
            configuration=configuration,
        )
    except (MalformedReplyError, ValidationError, AttributeError, TypeError) as e:
        # Generators may still be writing the tree
        logger.warning(f"Failed to load target file {target_path}: {e}")
        return None


def _load_configuration(reply_dir: Path, raw: Dict[str, Any], path: Path) -> Configuration:
    name = raw.get("name", "")
    refs = raw.get("targets") or []
    if not isinstance(refs, list):
        raise MalformedReplyError(f"Configuration '{name}' has a malformed target list", path=path)

    ref_names: List[str] = [str(ref.get("name", "")) for ref in refs if isinstance(ref, dict)]
    targets: List[RichTarget] = []
    for ref in refs:
        if not isinstance(ref, dict):
            continue
        target = _load_target(reply_dir, ref, name)
        if target is not None:
            targets.append(target)

    raw_projects = raw.get("projects") or []
    if not isinstance(raw_projects, list):
        raise MalformedReplyError(f"Configuration '{name}' has a malformed project list", path=path)

    projects: List[Project] = []
    for project in raw_projects:
        if not isinstance(project, dict):
            continue
        indexes = project.get("targetIndexes") or []
        if not isinstance(indexes, list):
            raise MalformedReplyError(
                f"Project '{project.get('name', '?')}' in configuration '{name}' has malformed target indexes",
                path=path,
            )
        names: Tuple[str, ...] = tuple(
            ref_names[i] for i in indexes if isinstance(i, int) and 0 <= i < len(ref_names)
        )
        projects.append(Project(name=project.get("name", ""), target_names=names))

    return Configuration(name=name, projects=tuple(projects), targets=tuple(targets))


def load_code_model(reply_dir: Union[str, Path], codemodel_ref: ObjectRef) -> CodeModel:
    """
    Resolve a codemodel object and each of its target files.

    Missing or unreadable target files are skipped with a warning; a missing
    or malformed codemodel file raises ``MalformedReplyError``.
    """
    reply_dir = Path(reply_dir)
    path = reply_dir / codemodel_ref.json_file
    document = read_json(path)
    if not isinstance(document, dict) or not isinstance(document.get("configurations"), list):
        raise MalformedReplyError("Codemodel object has no configuration list", path=path)

    try:
        configurations = tuple(
            _load_configuration(reply_dir, raw, path)
            for raw in document["configurations"]
            if isinstance(raw, dict)
        )
    except ValidationError as e:
        raise MalformedReplyError(f"Invalid codemodel object: {e.error_count()} error(s)", path=path) from e
    model = CodeModel(configurations=configurations)
    logger.debug(
        f"Loaded code model: {len(configurations)} configuration(s), "
        f"{len(model.unique_targets())} target(s)"
    )
    return model


def load_reply(reply_dir: Union[str, Path]) -> Union[ReplyBundle, ReplyStatus]:
    """Load index, cache and code model in one pass."""
    reply_dir = Path(reply_dir)
    index = load_index(reply_dir)
    if index is REPLY_UNAVAILABLE:
        return REPLY_UNAVAILABLE

    cache_ref = index.cache_ref
    if cache_ref is None:
        raise MalformedReplyError("No cache object found in reply index", path=reply_dir)
    codemodel_ref = index.codemodel_ref
    if codemodel_ref is None:
        raise MalformedReplyError("No codemodel object found in reply index", path=reply_dir)

    cache = load_cache(reply_dir / cache_ref.json_file)
    code_model = load_code_model(reply_dir, codemodel_ref)
    return ReplyBundle(index=index, cache=cache, code_model=code_model)
