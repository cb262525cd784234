from cmake_driver.common.events import EventEmitter, Subscription
from cmake_driver.common.exceptions import (
    ConfigureProcessError,
    DriverError,
    FileSystemError,
    MalformedReplyError,
    NoGeneratorError,
)
from cmake_driver.common.serial import SerialTask

__all__ = [
    "ConfigureProcessError",
    "DriverError",
    "EventEmitter",
    "FileSystemError",
    "MalformedReplyError",
    "NoGeneratorError",
    "SerialTask",
    "Subscription",
]
