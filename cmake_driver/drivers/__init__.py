from cmake_driver.drivers.base import BuildTree, CMakeDriver, DriverState, DriverStatus
from cmake_driver.drivers.factory import create_driver, get_cmake_version, parse_cmake_version
from cmake_driver.drivers.fileapi import FileApiDriver
from cmake_driver.drivers.legacy import LegacyDriver

__all__ = [
    "BuildTree",
    "CMakeDriver",
    "DriverState",
    "DriverStatus",
    "FileApiDriver",
    "LegacyDriver",
    "create_driver",
    "get_cmake_version",
    "parse_cmake_version",
]
