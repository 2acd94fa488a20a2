"""Logging configuration for the media catalog.

Console records go through rich on stderr, so that ``scan --json`` can write
the snapshot to stdout untouched. An optional rotating file keeps plain text
records with their source location.
"""

import logging
import logging.handlers
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

APP_LOGGER = "media_catalog"

# libraries that log per file or per statement at INFO/DEBUG
NOISY_LOGGERS = (
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "sqlalchemy.orm",
    "mutagen",
    "watchdog.observers",
)

FILE_FORMAT = "%(asctime)s - %(location)-30s - %(levelname)-8s - %(message)s"


class LocationFormatter(logging.Formatter):
    """Formatter that adds a ``location`` (file:line) field."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with combined location field."""
        record.location = f"{record.filename}:{record.lineno}"
        return super().format(record)


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[Path] = None,
    console_output: bool = True,
    max_file_size: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
) -> None:
    """Set up application logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to a rotating log file
        console_output: Whether to log to stderr
        max_file_size: Maximum size of log file before rotation
        backup_count: Number of rotated log files to keep
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()
    logging.getLogger(APP_LOGGER).setLevel(logging.NOTSET)

    if console_output:
        console_handler = RichHandler(
            console=Console(stderr=True),
            show_path=numeric_level <= logging.DEBUG,
            markup=False,
            rich_tracebacks=True,
        )
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(logging.Formatter("%(message)s", "[%X]"))
        root_logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=max_file_size, backupCount=backup_count
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(LocationFormatter(FILE_FORMAT, "%Y-%m-%d %H:%M:%S"))
        root_logger.addHandler(file_handler)

    logger = logging.getLogger(__name__)
    logger.debug("Logging initialized - Level: %s", log_level)
    if log_file:
        logger.info("Log file: %s", log_file)


def set_log_level(level: str) -> None:
    """Change the level of the media_catalog loggers and the root handlers."""
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    logging.getLogger(APP_LOGGER).setLevel(numeric_level)
    for handler in logging.getLogger().handlers:
        handler.setLevel(numeric_level)

    logging.getLogger(__name__).debug("Log level changed to: %s", level)


def configure_third_party_loggers(level: int = logging.WARNING) -> None:
    """Raise the threshold of chatty third-party loggers."""
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level)
