"""
日志配置

Console and optional rotating-file sinks for the driver, built on loguru.
"""
# mypy: ignore-errors

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

_CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)
_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message}"


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """
    配置 loguru 日志

    Args:
        level: Minimum level for every sink
        log_file: Optional file path; rotated at 20 MB and kept for 14 days
    """
    # 移除默认的 handler
    logger.remove()

    # Console goes to stderr so stdout stays clean for machine-readable output
    logger.add(
        sys.stderr,
        format=_CONSOLE_FORMAT,
        level=level,
        colorize=True,
    )

    if log_file:
        try:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            logger.add(
                log_file,
                rotation="20 MB",
                retention="14 days",
                compression="zip",
                format=_FILE_FORMAT,
                level=level,
            )
        except (PermissionError, OSError) as e:
            # 无法创建日志文件时只使用控制台输出
            logger.warning(f"File logging disabled, cannot write {log_file}: {e}")

    logger.debug(f"Logging configured (level={level}, file={log_file or '-'})")
