"""
File API driver - CMake >= 3.15

Drives configure runs through CMake's file-based query/reply protocol:

1. write ``query/client-<id>/query.json`` (cache, codemodel, cmakeFiles)
2. run ``cmake -H<src> -B<bin> [-G ...] <extra args>``
3. load ``reply/index-*.json`` and the objects it references
4. publish the new cache/code model snapshot and clear the dirty flag

Reloads are serialized through a ``SerialTask``; the cache-file watcher,
``configure()`` and ``post_build()`` all funnel into the same slot.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from loguru import logger

from cmake_driver.common.events import EventEmitter, Subscription
from cmake_driver.common.serial import SerialTask
from cmake_driver.core.constants import DEFAULT_CLIENT_ID, GENERATOR_TOOLSET_CACHE_KEY
from cmake_driver.drivers.base import (
    BuildTree,
    DriverState,
    DriverStatus,
    all_target_name_for,
    build_configure_args,
    clean_prior_configuration,
    generator_after_kit_switch,
    generator_from_cache,
    require_generator,
    run_configure_process,
    select_generator,
)
from cmake_driver.fileapi.query import ensure_query_file
from cmake_driver.fileapi.reply import REPLY_UNAVAILABLE, ReplyBundle, find_index_file, load_reply
from cmake_driver.models.cache import CacheEntry
from cmake_driver.models.codemodel import CodeModel, ExecutableTarget, GeneratorInfo, MetaTarget, Target
from cmake_driver.models.kit import Kit
from cmake_driver.services.cache_file import CMakeCache
from cmake_driver.services.process import OutputConsumer, ProcessService, SubprocessService
from cmake_driver.services.reporter import ErrorReporter, LoggingReporter
from cmake_driver.services.watcher import CacheWatcher, WatchfilesService, WatchService


class FileApiDriver:
    """CMake driver backed by the File API reply bundle."""

    def __init__(
        self,
        cmake_path: str,
        source_dir: Union[str, Path],
        binary_dir: Union[str, Path],
        *,
        kit: Optional[Kit] = None,
        preferred_generators: Sequence[str] = (),
        process_service: Optional[ProcessService] = None,
        watch_service: Optional[WatchService] = None,
        reporter: Optional[ErrorReporter] = None,
        client_id: str = DEFAULT_CLIENT_ID,
    ):
        self.cmake_path = cmake_path
        self.tree = BuildTree(Path(source_dir), Path(binary_dir))
        self.kit = kit
        self.preferred_generators: Tuple[str, ...] = tuple(preferred_generators)
        self.client_id = client_id
        self.state = DriverState()

        self._process = process_service or SubprocessService()
        self._watch_service = watch_service or WatchfilesService()
        self._reporter = reporter or LoggingReporter()
        self._generator: Optional[GeneratorInfo] = None
        self._reload_slot: SerialTask[bool] = SerialTask(self._reload, name="fileapi-reload")
        self._code_model_changed: EventEmitter[Optional[CodeModel]] = EventEmitter("code-model-changed")
        self._watcher: Optional[CacheWatcher] = None
        self._disposed = False

    @classmethod
    async def create(
        cls,
        cmake_path: str,
        source_dir: Union[str, Path],
        binary_dir: Union[str, Path],
        *,
        kit: Optional[Kit] = None,
        preferred_generators: Sequence[str] = (),
        process_service: Optional[ProcessService] = None,
        watch_service: Optional[WatchService] = None,
        reporter: Optional[ErrorReporter] = None,
        client_id: str = DEFAULT_CLIENT_ID,
    ) -> "FileApiDriver":
        """
        Build a driver and bring its state up to date with the build tree.

        Raises:
            NoGeneratorError: No generator could be determined
        """
        logger.debug("Creating instance of FileApiDriver")
        driver = cls(
            cmake_path,
            source_dir,
            binary_dir,
            kit=kit,
            preferred_generators=preferred_generators,
            process_service=process_service,
            watch_service=watch_service,
            reporter=reporter,
            client_id=client_id,
        )
        await driver._init()
        return driver

    async def _init(self) -> None:
        cache_exists = self.tree.cache_path.exists()
        has_reply = find_index_file(self.tree.reply_dir) is not None

        if cache_exists and has_reply:
            await self._reload_reported("Loading CMake File API reply")
            self._generator = self.state.generator
        if cache_exists and self._generator is None:
            # Configured by hand or by a tool that never wrote a query
            cache = await CMakeCache.from_path(self.tree.cache_path)
            self._generator = generator_from_cache(cache)
            if self._generator is not None:
                logger.info(f"Recovered generator '{self._generator.name}' from {self.tree.cache_path}")
        if self._generator is None:
            self._generator = select_generator(self.kit, self.preferred_generators)
        self._generator = require_generator(self._generator, self.tree)

        if cache_exists and not has_reply:
            logger.info(f"No File API reply in {self.tree.binary_dir}, bootstrapping with a configure")
            try:
                await self.configure()
            except Exception as e:
                self._reporter.report("Bootstrapping CMake File API reply", e)

        self._watcher = CacheWatcher(self.tree.cache_path, self._watch_service, self._reload_slot.run, self._reporter)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def needs_reconfigure(self) -> bool:
        return self.state.needs_reconfigure

    @property
    def status(self) -> DriverStatus:
        return self.state.status

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def generator(self) -> Optional[GeneratorInfo]:
        """Generator passed to the next configure run."""
        return self._generator

    @property
    def generator_name(self) -> Optional[str]:
        return self.state.generator.name if self.state.generator else None

    @property
    def all_target_name(self) -> str:
        generator = self.state.generator or self._generator
        return all_target_name_for(generator.name if generator else None)

    @property
    def cache_entries(self) -> Mapping[str, CacheEntry]:
        return self.state.cache

    @property
    def code_model(self) -> Optional[CodeModel]:
        return self.state.code_model

    @property
    def targets(self) -> List[Target]:
        """Meta target first, then real targets; empty until a reply was loaded."""
        model = self.state.code_model
        if model is None:
            return []
        meta = MetaTarget(name=self.all_target_name)
        return [meta] + [target for target in model.unique_targets() if target.name != meta.name]

    @property
    def executable_targets(self) -> List[ExecutableTarget]:
        model = self.state.code_model
        return model.executable_targets() if model is not None else []

    def on_code_model_changed(self, listener: Callable[[Optional[CodeModel]], None]) -> Subscription:
        return self._code_model_changed.subscribe(listener)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def mark_settings_changed(self) -> None:
        self.state.mark_dirty()

    async def set_kit(self, kit: Kit, needs_clean: bool = False) -> None:
        logger.info(f"Switching to kit '{kit.name}' (clean={needs_clean})")
        self._generator = generator_after_kit_switch(
            self._generator, kit, self.preferred_generators, self.tree, needs_clean
        )
        self.kit = kit
        self.state.mark_dirty()
        if needs_clean:
            await clean_prior_configuration(self.tree)

    async def configure(
        self, extra_args: Sequence[str] = (), output_consumer: Optional[OutputConsumer] = None
    ) -> int:
        """
        Run a configure and reload the reply it produced.

        Returns:
            CMake's exit code, ``-1`` for an abnormal termination

        Raises:
            FileSystemError: The query file could not be written
            MalformedReplyError: The reply written by CMake could not be parsed
        """
        await asyncio.to_thread(ensure_query_file, self.tree.api_root, self.client_id)
        args = build_configure_args(self.tree, self._generator, extra_args)

        epoch = self.state.begin_configure()
        reloaded = False
        retc = -1
        try:
            retc = await run_configure_process(
                self._process, self.cmake_path, args, output_consumer, self._configure_environment()
            )
            if retc != 0:
                logger.warning(f"CMake configure exited with code {retc}")
            # Reload even on failure so the published model matches the reply on disk
            await self._reload_slot.run()
            reloaded = True
        finally:
            self.state.finish_configure(epoch, succeeded=reloaded and retc == 0)
        return retc

    async def clean_configure(
        self, extra_args: Sequence[str] = (), output_consumer: Optional[OutputConsumer] = None
    ) -> int:
        await clean_prior_configuration(self.tree)
        self.state.mark_dirty()
        return await self.configure(extra_args, output_consumer)

    async def post_build(self) -> bool:
        """Reload after a build; returns whether a reply was loaded."""
        return await self._reload_reported("Reloading CMake File API reply after build")

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        if self._watcher is not None:
            self._watcher.dispose()
        self._code_model_changed.clear()
        logger.debug(f"Disposed FileApiDriver for {self.tree.binary_dir}")

    async def __aenter__(self) -> "FileApiDriver":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.dispose()

    # ------------------------------------------------------------------
    # Reload
    # ------------------------------------------------------------------

    def _configure_environment(self) -> Optional[Dict[str, str]]:
        if self.kit is None or not self.kit.environment:
            return None
        return dict(self.kit.environment)

    async def _reload_reported(self, what: str) -> bool:
        try:
            return await self._reload_slot.run()
        except Exception as e:
            self._reporter.report(what, e)
            return False

    async def _reload(self) -> bool:
        """Load the reply bundle and publish it; runs inside the reload slot."""
        if self._disposed:
            return False
        try:
            bundle = await asyncio.to_thread(load_reply, self.tree.reply_dir)
        except Exception:
            self._publish(None)
            raise

        if bundle is REPLY_UNAVAILABLE:
            logger.debug(f"No File API reply available in {self.tree.reply_dir}")
            self._publish(None)
            return False
        if self._disposed:
            return False

        self._apply(bundle)
        self._publish(bundle.code_model)
        return True

    def _apply(self, bundle: ReplyBundle) -> None:
        generator = bundle.index.generator
        toolset = bundle.cache.get(GENERATOR_TOOLSET_CACHE_KEY)
        if generator.toolset is None and toolset is not None and toolset.value:
            # The index does not record -T; the cache does
            generator = generator.model_copy(update={"toolset": toolset.value})

        self.state.cache = bundle.cache
        self.state.generator = generator
        self.state.code_model = bundle.code_model
        logger.info(
            f"Loaded CMake reply: generator={generator.name}, "
            f"{len(bundle.cache)} cache entries, {len(bundle.code_model.unique_targets())} targets"
        )

    def _publish(self, model: Optional[CodeModel]) -> None:
        if not self._disposed:
            self._code_model_changed.fire(model)
