"""
Shared fixtures: on-disk reply trees, cache files and fake services.

Reply trees follow the layout CMake writes::

    <binaryDir>/.cmake/api/v1/reply/
        index-1.json      -> cache.json, codemodel.json
        codemodel.json    -> target-<name>.json (one per target)
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import pytest

from cmake_driver.common.events import Subscription
from cmake_driver.services.process import ExecutionResult
from cmake_driver.services.reporter import CollectingReporter

# (name, type, artifact path or None)
TargetSpec = Tuple[str, str, Optional[str]]

DEFAULT_TARGETS: Tuple[TargetSpec, ...] = (("app", "EXECUTABLE", "build/app"),)
DEFAULT_CACHE: Dict[str, Tuple[str, str]] = {"CMAKE_GENERATOR": ("Ninja", "STRING")}


def reply_dir_of(binary_dir: Path) -> Path:
    return binary_dir / ".cmake" / "api" / "v1" / "reply"


def write_reply(
    binary_dir: Path,
    *,
    generator: str = "Ninja",
    platform: Optional[str] = None,
    cache: Optional[Dict[str, Tuple[str, str]]] = None,
    targets: Sequence[TargetSpec] = DEFAULT_TARGETS,
    configurations: Sequence[str] = ("Debug",),
    index_name: str = "index-1.json",
    cache_file: str = "cache.json",
    codemodel_file: str = "codemodel.json",
    project: str = "demo",
) -> Path:
    """Write a complete reply bundle and return the reply directory."""
    reply_dir = reply_dir_of(binary_dir)
    reply_dir.mkdir(parents=True, exist_ok=True)
    cache = DEFAULT_CACHE if cache is None else cache

    entries = [
        {
            "name": key,
            "type": entry_type,
            "value": value,
            "properties": [{"name": "HELPSTRING", "value": f"help for {key}"}],
        }
        for key, (value, entry_type) in cache.items()
    ]
    (reply_dir / cache_file).write_text(
        json.dumps({"kind": "cache", "version": {"major": 2, "minor": 0}, "entries": entries}),
        encoding="utf-8",
    )

    config_docs = []
    for config in configurations:
        refs = []
        for name, target_type, artifact in targets:
            target_file = f"target-{name}-{config}.json"
            refs.append({"name": name, "id": f"{name}::@1", "jsonFile": target_file, "projectIndex": 0})
            target_doc = {"name": name, "type": target_type, "id": f"{name}::@1"}
            if artifact:
                target_doc["artifacts"] = [{"path": artifact}]
            (reply_dir / target_file).write_text(json.dumps(target_doc), encoding="utf-8")
        config_docs.append(
            {
                "name": config,
                "projects": [{"name": project, "targetIndexes": list(range(len(refs)))}],
                "targets": refs,
            }
        )
    (reply_dir / codemodel_file).write_text(
        json.dumps({"kind": "codemodel", "version": {"major": 2, "minor": 6}, "configurations": config_docs}),
        encoding="utf-8",
    )

    generator_doc = {"multiConfig": len(configurations) > 1, "name": generator}
    if platform:
        generator_doc["platform"] = platform
    index = {
        "cmake": {"generator": generator_doc, "version": {"string": "3.28.1"}},
        "objects": [
            {"kind": "cache", "version": {"major": 2, "minor": 0}, "jsonFile": cache_file},
            {"kind": "codemodel", "version": {"major": 2, "minor": 6}, "jsonFile": codemodel_file},
        ],
    }
    (reply_dir / index_name).write_text(json.dumps(index), encoding="utf-8")
    return reply_dir


def write_cache_file(binary_dir: Path, entries: Dict[str, Tuple[str, str]]) -> Path:
    """Write a CMakeCache.txt with KEY:TYPE=VALUE lines."""
    binary_dir.mkdir(parents=True, exist_ok=True)
    lines = ["# This is the CMakeCache file.", ""]
    for key, (value, entry_type) in entries.items():
        lines.append(f"//Help for {key}")
        lines.append(f"{key}:{entry_type}={value}")
        lines.append("")
    path = binary_dir / "CMakeCache.txt"
    path.write_text("\n".join(lines), encoding="utf-8")
    return path


@dataclass
class ExecutedCommand:
    program: str
    args: List[str]
    environment: Optional[Dict[str, str]]


@dataclass
class FakeProcessService:
    """ProcessService double; ``on_execute`` plays the part of CMake."""

    retc: Optional[int] = 0
    stdout: str = ""
    on_execute: Optional[Callable[[List[str]], None]] = None
    calls: List[ExecutedCommand] = field(default_factory=list)

    async def execute(self, program, args, output_consumer=None, environment=None, cwd=None):
        self.calls.append(ExecutedCommand(program, list(args), dict(environment) if environment else None))
        if self.on_execute is not None:
            self.on_execute(list(args))
        if output_consumer is not None:
            output_consumer.output("-- Configuring done")
        return ExecutionResult(retc=self.retc, stdout=self.stdout, stderr="")


class FakeWatchService:
    """WatchService double; ``trigger()`` delivers a change event."""

    def __init__(self):
        self.subscriptions: List[Tuple[Path, Callable[[], None], Subscription]] = []

    def subscribe(self, path, callback):
        entry: list = []

        def _release():
            self.subscriptions.remove(entry[0])

        subscription = Subscription(_release)
        entry.append((Path(path), callback, subscription))
        self.subscriptions.append(entry[0])
        return subscription

    @property
    def watched_paths(self) -> List[Path]:
        return [path for path, _, _ in self.subscriptions]

    def trigger(self) -> None:
        for _, callback, _ in list(self.subscriptions):
            callback()


def fake_cmake(binary_dir: Path, **reply_kwargs) -> Callable[[List[str]], None]:
    """on_execute hook writing a cache file and a reply bundle, like a configure run."""

    def _run(args: List[str]) -> None:
        generator = reply_kwargs.get("generator", "Ninja")
        write_cache_file(binary_dir, {"CMAKE_GENERATOR": (generator, "INTERNAL")})
        write_reply(binary_dir, **reply_kwargs)

    return _run


@pytest.fixture
def source_dir(tmp_path: Path) -> Path:
    src = tmp_path / "src"
    src.mkdir()
    (src / "CMakeLists.txt").write_text("project(demo)\nadd_executable(app main.c)\n", encoding="utf-8")
    return src


@pytest.fixture
def binary_dir(tmp_path: Path) -> Path:
    return tmp_path / "build"


@pytest.fixture
def watch_service() -> FakeWatchService:
    return FakeWatchService()


@pytest.fixture
def reporter() -> CollectingReporter:
    return CollectingReporter()


# Helpers exposed as fixtures so test modules need no import path tricks


@pytest.fixture
def reply_writer() -> Callable[..., Path]:
    return write_reply


@pytest.fixture
def cache_file_writer() -> Callable[..., Path]:
    return write_cache_file


@pytest.fixture
def cmake_simulator() -> Callable[..., Callable[[List[str]], None]]:
    return fake_cmake


@pytest.fixture
def process_factory() -> Callable[..., FakeProcessService]:
    return FakeProcessService
