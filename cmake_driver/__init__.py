"""
cmake_driver - drive CMake configure runs through the File API.

Typical use::

    driver = await create_driver("cmake", "src", "build", preferred_generators=["Ninja"])
    async with driver:
        await driver.configure()
        print([t.name for t in driver.targets])
"""

from cmake_driver.common.exceptions import (
    ConfigureProcessError,
    DriverError,
    FileSystemError,
    MalformedReplyError,
    NoGeneratorError,
)
from cmake_driver.drivers import CMakeDriver, DriverStatus, FileApiDriver, LegacyDriver, create_driver
from cmake_driver.models import CacheEntry, CodeModel, ExecutableTarget, GeneratorInfo, Kit

__version__ = "0.1.0"

__all__ = [
    "CMakeDriver",
    "CacheEntry",
    "CodeModel",
    "ConfigureProcessError",
    "DriverError",
    "DriverStatus",
    "ExecutableTarget",
    "FileApiDriver",
    "FileSystemError",
    "GeneratorInfo",
    "Kit",
    "LegacyDriver",
    "MalformedReplyError",
    "NoGeneratorError",
    "create_driver",
]
