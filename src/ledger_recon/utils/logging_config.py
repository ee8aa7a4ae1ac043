"""Logging setup for the ledger_recon package."""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Union

if TYPE_CHECKING:
    from ..config import LoggingConfig

ROOT_LOGGER_NAME = "ledger_recon"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"


def level_from_name(name: Union[str, int]) -> int:
    """Translate a configured level name ("DEBUG", "info") to a logging level."""
    if isinstance(name, int):
        return name
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[Path] = None,
    log_format: Optional[str] = None,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """
    Attach handlers to the package logger.

    Console output goes to stderr so that structured output on stdout stays
    parseable. The optional file handler rotates and records every level.

    Args:
        level: Console level, as a number or a name such as "WARNING"
        log_file: Optional path of a rotating log file
        log_format: Console format string
        max_bytes: Size at which the log file rotates
        backup_count: Rotated files to keep

    Returns:
        The package logger
    """
    level = level_from_name(level)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(logging.DEBUG if log_file else level)

    # Re-running setup (tests, repeated CLI calls) must not stack handlers
    for handler in logger.handlers:
        handler.close()
    logger.handlers = []

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(log_format or DEFAULT_FORMAT))
    logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(file_handler)
        logger.debug(f"Logging to file: {log_file}")

    return logger


def configure_from_settings(
    settings: "LoggingConfig", verbose: bool = False, log_file: Optional[Path] = None
) -> logging.Logger:
    """Apply the logging section of a loaded configuration; verbose forces DEBUG."""
    return setup_logging(
        logging.DEBUG if verbose else settings.level,
        log_file=log_file or (Path(settings.file) if settings.file else None),
        log_format=settings.format,
        max_bytes=settings.max_file_bytes,
        backup_count=settings.backup_count,
    )
