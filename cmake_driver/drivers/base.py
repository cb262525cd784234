"""
Driver capability interface and the helpers every backend shares.

Backends (File API, legacy command line) are separate classes implementing
the ``CMakeDriver`` protocol; callers pick one at construction time through
``cmake_driver.drivers.factory.create_driver``. Shared behavior lives in plain
functions and in ``DriverState`` rather than in a common base class.
"""

from __future__ import annotations

import asyncio
import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, List, Mapping, Optional, Protocol, Sequence

from loguru import logger

from cmake_driver.common.events import Subscription
from cmake_driver.common.exceptions import FileSystemError, NoGeneratorError
from cmake_driver.core.constants import (
    CACHE_FILE_NAME,
    CMAKE_FILES_DIR_NAME,
    DEFAULT_ALL_TARGET_NAME,
    GENERATOR_CACHE_KEY,
    GENERATOR_PLATFORM_CACHE_KEY,
    GENERATOR_TOOLSET_CACHE_KEY,
    IDE_ALL_TARGET_NAME,
    REPLY_DIR_NAME,
)
from cmake_driver.fileapi.query import api_root_for
from cmake_driver.models.cache import EMPTY_CACHE, CacheEntry
from cmake_driver.models.codemodel import CodeModel, ExecutableTarget, GeneratorInfo, Target
from cmake_driver.models.kit import Kit
from cmake_driver.services.cache_file import CMakeCache
from cmake_driver.services.process import OutputConsumer, ProcessService


class DriverStatus(str, Enum):
    """Configure state machine."""

    CLEAN = "clean"
    DIRTY = "dirty"
    CONFIGURING = "configuring"
    CONFIGURE_FAILED = "configure_failed"


@dataclass
class DriverState:
    """Per-build-tree state, mutated only by the owning driver."""

    needs_reconfigure: bool = True
    status: DriverStatus = DriverStatus.DIRTY
    cache: Mapping[str, CacheEntry] = field(default_factory=lambda: EMPTY_CACHE)
    generator: Optional[GeneratorInfo] = None
    code_model: Optional[CodeModel] = None
    # Bumped on every dirty-triggering call; a configure only clears the
    # dirty flag if no such call happened while it was running
    dirty_epoch: int = 0

    def mark_dirty(self) -> None:
        self.needs_reconfigure = True
        self.dirty_epoch += 1
        if self.status != DriverStatus.CONFIGURING:
            self.status = DriverStatus.DIRTY

    def begin_configure(self) -> int:
        self.status = DriverStatus.CONFIGURING
        return self.dirty_epoch

    def finish_configure(self, epoch: int, succeeded: bool) -> None:
        if not succeeded:
            self.needs_reconfigure = True
            self.status = DriverStatus.CONFIGURE_FAILED
        elif epoch == self.dirty_epoch:
            self.needs_reconfigure = False
            self.status = DriverStatus.CLEAN
        else:
            self.status = DriverStatus.DIRTY


@dataclass(frozen=True)
class BuildTree:
    """Source/binary directory pair and the well-known paths inside it."""

    source_dir: Path
    binary_dir: Path

    @property
    def cache_path(self) -> Path:
        return self.binary_dir / CACHE_FILE_NAME

    @property
    def api_root(self) -> Path:
        return api_root_for(self.binary_dir)

    @property
    def reply_dir(self) -> Path:
        return self.api_root / REPLY_DIR_NAME


class CMakeDriver(Protocol):
    """Operations every backend offers to callers."""

    @property
    def needs_reconfigure(self) -> bool: ...

    @property
    def status(self) -> DriverStatus: ...

    @property
    def targets(self) -> List[Target]: ...

    @property
    def executable_targets(self) -> List[ExecutableTarget]: ...

    @property
    def cache_entries(self) -> Mapping[str, CacheEntry]: ...

    @property
    def generator_name(self) -> Optional[str]: ...

    @property
    def all_target_name(self) -> str: ...

    async def set_kit(self, kit: Kit, needs_clean: bool = False) -> None: ...

    async def configure(
        self, extra_args: Sequence[str] = (), output_consumer: Optional[OutputConsumer] = None
    ) -> int: ...

    async def clean_configure(
        self, extra_args: Sequence[str] = (), output_consumer: Optional[OutputConsumer] = None
    ) -> int: ...

    async def post_build(self) -> bool: ...

    def mark_settings_changed(self) -> None: ...

    def on_code_model_changed(self, listener: Callable[[Optional[CodeModel]], None]) -> Subscription: ...

    def dispose(self) -> None: ...


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def all_target_name_for(generator_name: Optional[str]) -> str:
    """Name of the generator's own "build everything" target."""
    if generator_name and ("Visual Studio" in generator_name or generator_name == "Xcode"):
        return IDE_ALL_TARGET_NAME
    return DEFAULT_ALL_TARGET_NAME


def build_configure_args(
    tree: BuildTree, generator: Optional[GeneratorInfo], extra_args: Sequence[str] = ()
) -> List[str]:
    """``-H<src> -B<bin> [-G<gen> [-T<toolset>] [-A<platform>]] *extra_args``"""
    args = [f"-H{tree.source_dir.as_posix()}", f"-B{tree.binary_dir.as_posix()}"]
    if generator is not None:
        args.append(f"-G{generator.name}")
        if generator.toolset:
            args.append(f"-T{generator.toolset}")
        if generator.platform:
            args.append(f"-A{generator.platform}")
    args.extend(extra_args)
    return args


def generator_from_cache(cache: CMakeCache) -> Optional[GeneratorInfo]:
    """Recover the generator a tree was configured with from its cache file."""
    name = cache.value_of(GENERATOR_CACHE_KEY)
    if not name:
        return None
    return GeneratorInfo(
        name=name,
        platform=cache.value_of(GENERATOR_PLATFORM_CACHE_KEY),
        toolset=cache.value_of(GENERATOR_TOOLSET_CACHE_KEY),
    )


def select_generator(kit: Optional[Kit], preferred_generators: Sequence[str] = ()) -> Optional[GeneratorInfo]:
    """Kit's preferred generator first, then the first caller preference."""
    if kit is not None and kit.preferred_generator is not None:
        return kit.preferred_generator
    for name in preferred_generators:
        if name:
            return GeneratorInfo(name=name)
    return None


def require_generator(generator: Optional[GeneratorInfo], tree: BuildTree) -> GeneratorInfo:
    if generator is None:
        raise NoGeneratorError(
            f"Unable to determine a CMake generator for {tree.binary_dir}: "
            "the build tree records none and no preferred generator was given"
        )
    return generator


def generator_after_kit_switch(
    current: Optional[GeneratorInfo],
    kit: Kit,
    preferred_generators: Sequence[str],
    tree: BuildTree,
    needs_clean: bool,
) -> Optional[GeneratorInfo]:
    """
    Generator for the next configure after switching kits.

    A cleaned tree no longer records a generator, so without one from the kit
    the caller preferences decide again.

    Raises:
        NoGeneratorError: The tree is being cleaned and nothing names a generator
    """
    if kit.preferred_generator is not None:
        return kit.preferred_generator
    if needs_clean:
        return require_generator(select_generator(kit, preferred_generators), tree)
    return current


def _purge(tree: BuildTree) -> None:
    if tree.cache_path.exists():
        logger.info(f"Removing {tree.cache_path}")
        tree.cache_path.unlink()
    for directory in (tree.binary_dir / CMAKE_FILES_DIR_NAME, tree.reply_dir):
        if directory.is_dir():
            logger.info(f"Removing {directory}")
            shutil.rmtree(directory)


async def clean_prior_configuration(tree: BuildTree) -> None:
    """
    Remove generator-specific state so the next configure starts fresh.

    Only CMake-owned files go: the cache file, ``CMakeFiles/`` and the File API
    reply directory. Query files and anything else in the binary dir stay.

    Raises:
        FileSystemError: A file could not be removed
    """
    try:
        await asyncio.to_thread(_purge, tree)
    except OSError as e:
        raise FileSystemError(f"Cannot clean prior configuration in {tree.binary_dir}: {e}", path=tree.binary_dir) from e


async def run_configure_process(
    process_service: ProcessService,
    cmake_path: str,
    args: Sequence[str],
    output_consumer: Optional[OutputConsumer],
    environment: Optional[Mapping[str, str]],
) -> int:
    """Invoke CMake and normalize an abnormal exit (``None``) to ``-1``."""
    logger.debug(f"Invoking CMake {cmake_path} with arguments {args}")
    result = await process_service.execute(
        cmake_path,
        list(args),
        output_consumer,
        environment=environment,
    )
    if result.stderr:
        logger.trace(result.stderr)
    if result.stdout:
        logger.trace(result.stdout)
    return -1 if result.retc is None else result.retc
