"""
Legacy driver - CMake releases without the File API.

Talks to CMake through the command line only and reads ``CMakeCache.txt``
after each run. No code model is available, so the only target offered is the
generator's "build everything" target.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from loguru import logger

from cmake_driver.common.events import EventEmitter, Subscription
from cmake_driver.common.serial import SerialTask
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
from cmake_driver.models.cache import CacheEntry
from cmake_driver.models.codemodel import CodeModel, ExecutableTarget, GeneratorInfo, MetaTarget, Target
from cmake_driver.models.kit import Kit
from cmake_driver.services.cache_file import CMakeCache
from cmake_driver.services.process import OutputConsumer, ProcessService, SubprocessService
from cmake_driver.services.reporter import ErrorReporter, LoggingReporter
from cmake_driver.services.watcher import CacheWatcher, WatchfilesService, WatchService


class LegacyDriver:
    """CMake driver reading CMakeCache.txt directly."""

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
    ):
        self.cmake_path = cmake_path
        self.tree = BuildTree(Path(source_dir), Path(binary_dir))
        self.kit = kit
        self.preferred_generators: Tuple[str, ...] = tuple(preferred_generators)
        self.state = DriverState()

        self._process = process_service or SubprocessService()
        self._watch_service = watch_service or WatchfilesService()
        self._reporter = reporter or LoggingReporter()
        self._generator: Optional[GeneratorInfo] = None
        self._cmake_cache: Optional[CMakeCache] = None
        self._reload_slot: SerialTask[bool] = SerialTask(self._reload, name="legacy-reload")
        # Always fired with None: this backend never has a code model
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
    ) -> "LegacyDriver":
        logger.debug("Creating instance of LegacyDriver")
        driver = cls(
            cmake_path,
            source_dir,
            binary_dir,
            kit=kit,
            preferred_generators=preferred_generators,
            process_service=process_service,
            watch_service=watch_service,
            reporter=reporter,
        )
        if driver.tree.cache_path.exists():
            await driver._reload_slot.run()
            driver._generator = driver.state.generator
        if driver._generator is None:
            driver._generator = select_generator(kit, driver.preferred_generators)
        driver._generator = require_generator(driver._generator, driver.tree)
        driver._watcher = CacheWatcher(
            driver.tree.cache_path, driver._watch_service, driver._reload_slot.run, driver._reporter
        )
        return driver

    @property
    def needs_reconfigure(self) -> bool:
        return self.state.needs_reconfigure

    @property
    def status(self) -> DriverStatus:
        return self.state.status

    @property
    def cmake_cache(self) -> Optional[CMakeCache]:
        return self._cmake_cache

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
    def targets(self) -> List[Target]:
        if self._cmake_cache is None:
            return []
        return [MetaTarget(name=self.all_target_name)]

    @property
    def executable_targets(self) -> List[ExecutableTarget]:
        return []

    def on_code_model_changed(self, listener: Callable[[Optional[CodeModel]], None]) -> Subscription:
        return self._code_model_changed.subscribe(listener)

    def mark_settings_changed(self) -> None:
        self.state.mark_dirty()

    async def set_kit(self, kit: Kit, needs_clean: bool = False) -> None:
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
        args = build_configure_args(self.tree, self._generator, extra_args)
        environment: Optional[Dict[str, str]] = dict(self.kit.environment) if self.kit and self.kit.environment else None

        epoch = self.state.begin_configure()
        reloaded = False
        retc = -1
        try:
            retc = await run_configure_process(self._process, self.cmake_path, args, output_consumer, environment)
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
        try:
            return await self._reload_slot.run()
        except Exception as e:
            self._reporter.report("Reloading CMake Cache after build", e)
            return False

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        if self._watcher is not None:
            self._watcher.dispose()
        self._code_model_changed.clear()

    async def __aenter__(self) -> "LegacyDriver":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.dispose()

    async def _reload(self) -> bool:
        if self._disposed:
            return False
        if not self.tree.cache_path.exists():
            self._code_model_changed.fire(None)
            return False
        # Errors propagate so the caller (or the watcher's reporter) sees them
        cache = await CMakeCache.from_path(self.tree.cache_path)
        if self._disposed:
            return False
        self._cmake_cache = cache
        self.state.cache = cache.all_entries
        self.state.generator = generator_from_cache(cache)
        self._code_model_changed.fire(None)
        return True
