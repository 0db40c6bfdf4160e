"""
Logging configuration for sysmon.

Console output goes to stderr so the stdio transport keeps stdout for
protocol messages.
"""

import logging
import sys
from pathlib import Path

ROOT_LOGGER = "sysmon"


def setup_logging(level: int | str = logging.INFO, log_file: Path | None = None) -> logging.Logger:
    """
    Configure and return the package logger.

    Args:
        level: Logging level for the console (default: INFO)
        log_file: Optional file path for detailed log output

    Returns:
        The configured ``sysmon`` logger
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(logging.DEBUG if log_file else level)

    # Remove existing handlers to avoid duplicates
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(fmt="[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s [%(levelname)s] %(name)s %(threadName)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(file_handler)

    # Prevent propagation to root logger
    logger.propagate = False

    return logger
