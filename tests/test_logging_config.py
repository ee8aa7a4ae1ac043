"""Tests for package logging setup."""

import logging

import pytest

from ledger_recon.config import LoggingConfig
from ledger_recon.utils.logging_config import (
    ROOT_LOGGER_NAME,
    configure_from_settings,
    level_from_name,
    setup_logging,
)


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in logger.handlers:
        handler.close()
    logger.handlers = []


@pytest.mark.parametrize(
    "name, expected",
    [("DEBUG", logging.DEBUG), ("warning", logging.WARNING), ("nonsense", logging.INFO), (10, 10)],
)
def test_level_from_name(name, expected):
    assert level_from_name(name) == expected


def test_repeated_setup_does_not_stack_handlers():
    setup_logging(logging.INFO)
    logger = setup_logging("WARNING")

    assert len(logger.handlers) == 1
    assert logger.handlers[0].level == logging.WARNING


def test_file_handler_records_debug(tmp_path):
    log_file = tmp_path / "logs" / "recon.log"
    logger = setup_logging(logging.WARNING, log_file=log_file)

    logging.getLogger(f"{ROOT_LOGGER_NAME}.matching").debug("scored 3 candidates")
    for handler in logger.handlers:
        handler.flush()

    assert len(logger.handlers) == 2
    assert "scored 3 candidates" in log_file.read_text()


def test_configure_from_settings(tmp_path):
    settings = LoggingConfig(level="ERROR", file=str(tmp_path / "recon.log"), backup_count=2)

    logger = configure_from_settings(settings)
    file_handler = logger.handlers[1]

    assert logger.handlers[0].level == logging.ERROR
    assert file_handler.backupCount == 2
    assert file_handler.maxBytes == settings.max_file_bytes


def test_verbose_forces_debug_console():
    logger = configure_from_settings(LoggingConfig(level="ERROR"), verbose=True)

    assert logger.handlers[0].level == logging.DEBUG
