"""
Logging configuration.

All diagnostics go to a single append-only text file. A console sink can be
added for interactive runs.
"""

import sys
from pathlib import Path

from loguru import logger

from app.utils.errors import StartupFatal

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function} - {message}"
CONSOLE_FORMAT = "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"


def setup_logging(log_file: Path, level: str = "INFO", console: bool = False) -> int:
    """
    Route loguru output to ``log_file``.

    Args:
        log_file: Append-only log file
        level: Minimum level for every sink
        console: Also log to stderr

    Returns:
        Handler id of the file sink

    Raises:
        StartupFatal: If the log file cannot be opened
    """
    logger.remove()

    try:
        handler_id = logger.add(
            str(log_file),
            mode="a",
            encoding="utf-8",
            format=LOG_FORMAT,
            level=level.upper(),
        )
    except (OSError, ValueError) as e:
        raise StartupFatal(f"Cannot open log file {log_file}: {e}") from e

    if console:
        logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level.upper())

    return handler_id
