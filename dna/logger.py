"""Logging setup shared by the DNA loader and the ERP service.

Log records go to the console and, when a log directory is configured, to a
size-rotated file. Timestamps are ISO 8601.
"""

import logging
import logging.handlers
import os
from typing import Iterable, Optional

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Third-party loggers that are too chatty at INFO
NOISY_LOGGERS = ("sqlalchemy.engine", "multipart", "httpx")


def setup_logger(
    name: str,
    level: str = "INFO",
    *,
    log_dir: Optional[str] = None,
    console: bool = True,
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 3,
    quiet: Iterable[str] = NOISY_LOGGERS,
) -> logging.Logger:
    """Configure the logger for a top-level package.

    Module loggers obtained with ``get_logger(__name__)`` propagate here, so
    this is called once per process for ``erp`` and once for ``dna``.

    Args:
        name: Logger name, usually the package name
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        log_dir: Directory for ``<name>.log``; no file handler when None
        console: Attach a stderr handler
        max_bytes: Rotate the log file after this size
        backup_count: Rotated files to keep
        quiet: Logger names raised to WARNING

    Returns:
        The configured logger

    Raises:
        ValueError: If ``level`` is not a logging level name
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(
            f"Invalid log level: {level}. "
            f"Must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL"
        )

    logger = logging.getLogger(name)
    logger.setLevel(numeric_level)

    for noisy in quiet:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    if logger.handlers:
        return logger

    formatter = logging.Formatter(DEFAULT_FORMAT, datefmt=DEFAULT_DATE_FORMAT)

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            os.path.join(log_dir, f"{name}.log"),
            maxBytes=max_bytes,
            backupCount=backup_count,
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Return the logger for a module."""
    return logging.getLogger(name)
