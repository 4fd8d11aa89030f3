"""Structured logging configuration for the prospect monitor."""

import logging
import sys
from pathlib import Path
from typing import Optional, TextIO


DEFAULT_LOG_DIR = Path("logs")
DEFAULT_LOG_FILE = "prospect_monitor.log"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
ROOT_LOGGER_NAME = "prospect_monitor"


def setup_logging(
    log_file: Optional[Path] = None,
    log_dir: Optional[Path] = None,
    level: int = logging.INFO,
    console: bool = True,
    format_string: Optional[str] = None,
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """Configure logging for the prospect monitor namespace.

    A file handler is only installed when ``log_file`` or ``log_dir`` is given;
    the HTTP service normally logs to the console alone.

    Args:
        log_file: Path to log file, relative paths are placed under ``log_dir``
        log_dir: Directory for log files (default: logs/)
        level: Logging level (default: INFO)
        console: Whether to also log to a stream (default: True)
        format_string: Custom log format string
        stream: Stream for console logging (default: stdout)

    Returns:
        The configured ``prospect_monitor`` logger
    """
    fmt = format_string or DEFAULT_FORMAT
    formatter = logging.Formatter(fmt, datefmt=DEFAULT_DATE_FORMAT)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    if log_file is not None or log_dir is not None:
        directory = log_dir or DEFAULT_LOG_DIR
        if log_file is None:
            log_file = directory / DEFAULT_LOG_FILE
        elif not log_file.is_absolute():
            log_file = directory / log_file

        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler(stream or sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    logger.propagate = False

    if log_file is not None:
        logger.info(f"Logging initialized: {log_file}")
    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for a specific module.

    Args:
        name: Logger name (typically module name)

    Returns:
        Logger instance under the prospect_monitor namespace
    """
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
