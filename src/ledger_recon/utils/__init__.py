"""Utility modules."""

from .exceptions import (
    ReconciliationError,
    StatementParseError,
    ConfigurationError,
    MoneyError,
    ReportGenerationError,
    LedgerClientError,
    ReconciliationAlreadyRunningError,
)
from .logging_config import configure_from_settings, setup_logging

__all__ = [
    "ReconciliationError",
    "StatementParseError",
    "ConfigurationError",
    "MoneyError",
    "ReportGenerationError",
    "LedgerClientError",
    "ReconciliationAlreadyRunningError",
    "configure_from_settings",
    "setup_logging",
]
