import pytest

from cmake_driver.common.exceptions import NoGeneratorError
from cmake_driver.drivers.base import DriverStatus
from cmake_driver.drivers.legacy import LegacyDriver
from cmake_driver.models.codemodel import GeneratorInfo, MetaTarget
from cmake_driver.models.kit import Kit


async def _create(source_dir, binary_dir, process, watch_service, reporter, **kwargs):
    return await LegacyDriver.create(
        "cmake",
        source_dir,
        binary_dir,
        process_service=process,
        watch_service=watch_service,
        reporter=reporter,
        **kwargs,
    )


class TestLegacyDriver:
    @pytest.mark.asyncio
    async def test_existing_cache_is_read(
        self, source_dir, binary_dir, process_factory, watch_service, reporter, cache_file_writer
    ):
        cache_file_writer(
            binary_dir,
            {"CMAKE_GENERATOR": ("Unix Makefiles", "INTERNAL"), "CMAKE_BUILD_TYPE": ("Debug", "STRING")},
        )
        process = process_factory()

        driver = await _create(source_dir, binary_dir, process, watch_service, reporter)

        assert process.calls == []
        assert driver.generator_name == "Unix Makefiles"
        assert driver.cache_entries["CMAKE_BUILD_TYPE"].value == "Debug"
        assert driver.cmake_cache is not None
        assert driver.targets == [MetaTarget(name="all")]
        assert driver.executable_targets == []

    @pytest.mark.asyncio
    async def test_fresh_tree(self, source_dir, binary_dir, process_factory, watch_service, reporter):
        driver = await _create(
            source_dir, binary_dir, process_factory(), watch_service, reporter, preferred_generators=["Ninja"]
        )
        assert driver.targets == []
        assert driver.needs_reconfigure
        assert driver.all_target_name == "all"

    @pytest.mark.asyncio
    async def test_no_generator(self, source_dir, binary_dir, process_factory, watch_service, reporter):
        with pytest.raises(NoGeneratorError):
            await _create(source_dir, binary_dir, process_factory(), watch_service, reporter)

    @pytest.mark.asyncio
    async def test_configure_reloads_cache(
        self, source_dir, binary_dir, process_factory, watch_service, reporter, cache_file_writer
    ):
        def cmake(args):
            cache_file_writer(binary_dir, {"CMAKE_GENERATOR": ("Ninja", "INTERNAL")})

        process = process_factory(on_execute=cmake)
        driver = await _create(
            source_dir, binary_dir, process, watch_service, reporter, preferred_generators=["Ninja"]
        )
        events = []
        driver.on_code_model_changed(events.append)

        assert await driver.configure(["-DX=1"]) == 0

        assert process.calls[0].args[-2:] == ["-GNinja", "-DX=1"]
        assert not (binary_dir / ".cmake").exists()
        assert not driver.needs_reconfigure
        assert driver.status is DriverStatus.CLEAN
        assert driver.generator_name == "Ninja"
        assert driver.targets == [MetaTarget(name="all")]
        assert events == [None]

    @pytest.mark.asyncio
    async def test_failed_configure(self, source_dir, binary_dir, process_factory, watch_service, reporter):
        driver = await _create(
            source_dir, binary_dir, process_factory(retc=2), watch_service, reporter, preferred_generators=["Ninja"]
        )
        assert await driver.configure() == 2
        assert driver.needs_reconfigure
        assert driver.status is DriverStatus.CONFIGURE_FAILED

    @pytest.mark.asyncio
    async def test_watcher_reload_and_dispose(
        self, source_dir, binary_dir, process_factory, watch_service, reporter, cache_file_writer
    ):
        driver = await _create(
            source_dir, binary_dir, process_factory(), watch_service, reporter, preferred_generators=["Ninja"]
        )
        cache_file_writer(binary_dir, {"CMAKE_GENERATOR": ("Ninja", "INTERNAL")})
        watch_service.trigger()
        await driver._watcher.drain()
        assert driver.generator_name == "Ninja"

        driver.dispose()
        assert watch_service.subscriptions == []

    @pytest.mark.asyncio
    async def test_clean_kit_switch_without_generator_falls_back_to_preferences(
        self, source_dir, binary_dir, process_factory, watch_service, reporter, cache_file_writer
    ):
        def cmake(args):
            cache_file_writer(binary_dir, {"CMAKE_GENERATOR": ("Visual Studio 17 2022", "INTERNAL")})

        msvc = Kit(name="msvc", preferred_generator=GeneratorInfo(name="Visual Studio 17 2022", platform="x64"))
        process = process_factory(on_execute=cmake)
        driver = await _create(
            source_dir, binary_dir, process, watch_service, reporter, kit=msvc, preferred_generators=["Ninja"]
        )
        await driver.configure()
        assert "-Ax64" in process.calls[-1].args

        await driver.set_kit(Kit(name="gcc"), needs_clean=True)
        await driver.configure()

        args = process.calls[-1].args
        assert "-GNinja" in args
        assert not any(arg.startswith("-A") for arg in args)
        driver.dispose()
