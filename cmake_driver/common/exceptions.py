"""
Custom exception classes for the CMake configuration driver
"""
from pathlib import Path
from typing import Optional, Union


class DriverError(Exception):
    """Base exception for driver operations"""
    pass


class ConfigureProcessError(DriverError):
    """CMake exited with a nonzero code or terminated abnormally"""

    def __init__(self, retc: int, message: Optional[str] = None):
        self.retc = retc
        super().__init__(message or f"CMake configure failed with exit code {retc}")


class MalformedReplyError(DriverError):
    """A File API reply object is not valid JSON or misses required fields"""

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path is not None else None
        if self.path is not None:
            message = f"{message} ({self.path})"
        super().__init__(message)


class NoGeneratorError(DriverError):
    """No CMake generator could be determined for the build tree"""
    pass


class FileSystemError(DriverError):
    """Query directory not writable or build tree file unreadable"""

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path is not None else None
        super().__init__(message)
