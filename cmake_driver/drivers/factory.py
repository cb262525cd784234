"""
Driver selection.

The File API driver needs CMake 3.15 or newer; older (or unidentifiable)
executables get the legacy driver.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Optional, Sequence, Tuple, Union

from loguru import logger

from cmake_driver.core.constants import DEFAULT_CLIENT_ID, FILE_API_MIN_VERSION
from cmake_driver.drivers.base import CMakeDriver
from cmake_driver.drivers.fileapi import FileApiDriver
from cmake_driver.drivers.legacy import LegacyDriver
from cmake_driver.models.kit import Kit
from cmake_driver.services.process import ProcessService, SubprocessService
from cmake_driver.services.reporter import ErrorReporter
from cmake_driver.services.watcher import WatchService

_VERSION_RE = re.compile(r"cmake\d*\s+version\s+(\d+)\.(\d+)(?:\.(\d+))?", re.IGNORECASE)


def parse_cmake_version(output: str) -> Optional[Tuple[int, int, int]]:
    """Extract ``(major, minor, patch)`` from ``cmake --version`` output."""
    match = _VERSION_RE.search(output)
    if not match:
        return None
    major, minor, patch = match.groups()
    return int(major), int(minor), int(patch or 0)


async def get_cmake_version(cmake_path: str, process_service: ProcessService) -> Optional[Tuple[int, int, int]]:
    result = await process_service.execute(cmake_path, ["--version"])
    if result.retc != 0:
        logger.warning(f"'{cmake_path} --version' failed (exit code {result.retc})")
        return None
    version = parse_cmake_version(result.stdout)
    if version is None:
        logger.warning(f"Unrecognized CMake version output: {result.stdout.strip()[:80]}")
    return version


def supports_file_api(version: Optional[Tuple[int, int, int]]) -> bool:
    return version is not None and version >= FILE_API_MIN_VERSION


async def create_driver(
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
    version: Optional[Tuple[int, int, int]] = None,
) -> CMakeDriver:
    """
    Detect the CMake version and build the matching driver.

    Args:
        version: Skip detection and use this version

    Raises:
        NoGeneratorError: No generator could be determined
    """
    process_service = process_service or SubprocessService()
    if version is None:
        version = await get_cmake_version(cmake_path, process_service)

    if supports_file_api(version):
        logger.info(f"Using File API driver (CMake {'.'.join(map(str, version))})")
        return await FileApiDriver.create(
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

    logger.info(f"Using legacy driver (CMake version {version or 'unknown'})")
    return await LegacyDriver.create(
        cmake_path,
        source_dir,
        binary_dir,
        kit=kit,
        preferred_generators=preferred_generators,
        process_service=process_service,
        watch_service=watch_service,
        reporter=reporter,
    )
