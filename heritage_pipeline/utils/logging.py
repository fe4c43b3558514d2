"""
Logging setup for the heritage pipeline.

All pipeline modules log through loguru. The enrichment sweep runs on a
worker thread, so every record carries the thread name.
"""

import logging
import os
import sys
from pathlib import Path

from loguru import logger

from heritage_pipeline.config import settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<magenta>{thread.name}</magenta> | <cyan>{name}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {thread.name} | {name}:{function}:{line} - {message}"

# httpx logs every request at INFO through the standard library
NOISY_LOGGERS = ("httpx", "httpcore")


def setup_logging(
    level: str | None = None,
    log_file: Path | None = None,
    rotation: str = "10 MB",
    retention: str = "1 week",
) -> None:
    """
    Configure loguru sinks.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR); default LOG_LEVEL
        log_file: Also log to this file; default LOG_FILE, unset means console only
        rotation: Log rotation setting (e.g., "10 MB", "1 day")
        retention: Log retention setting (e.g., "1 week", "10 files")
    """
    level = (level or settings.pipeline.log_level).upper()
    log_file = log_file or settings.pipeline.log_file

    logger.remove()
    logger.add(sys.stderr, level=level, format=CONSOLE_FORMAT, colorize=True)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            level=level,
            format=FILE_FORMAT,
            rotation=rotation,
            retention=retention,
            compression="gz",
            enqueue=True,
        )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.debug(f"Logging configured: level={level}, file={log_file or '-'}")


if os.environ.get("DISABLE_LOGGING") != "1":
    setup_logging()
