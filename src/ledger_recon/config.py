"""Configuration loader and validation for reconciliation settings."""

from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional
import logging

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from .utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class StatementInputConfig(BaseModel):
    """Column layout of the bank statement CSV."""

    encoding: str = "utf-8"
    delimiter: str = ","
    date_format: str = "%m/%d/%Y"
    has_header: bool = True
    column_mappings: dict[str, Optional[str]] = Field(
        default_factory=lambda: {
            "date": "Date",
            "amount": "Amount",
            "debit": None,
            "credit": None,
            "payee": "Description",
            "memo": None,
        }
    )


class InputConfig(BaseModel):
    """Configuration for input file parsing."""

    statement: StatementInputConfig = Field(default_factory=StatementInputConfig)


class MatchingConfig(BaseModel):
    """
    Matching tolerances and confidence thresholds.

    Immutable: pass a new instance (``model_copy(update=...)``) to change it.
    """

    model_config = ConfigDict(frozen=True)

    date_tolerance_days: int = Field(default=2, ge=0, le=7)
    amount_tolerance_cents: int = Field(default=1, ge=0, le=100)
    auto_match_threshold: int = Field(default=90, ge=0, le=100)
    suggestion_threshold: int = Field(default=60, ge=0, le=100)

    @model_validator(mode="after")
    def _check_thresholds(self) -> "MatchingConfig":
        if self.suggestion_threshold > self.auto_match_threshold:
            raise ValueError("suggestion_threshold must not exceed auto_match_threshold")
        return self


class ExecutionOptions(BaseModel):
    """Flags controlling what the executor does and whether it touches the ledger."""

    model_config = ConfigDict(frozen=True)

    dry_run: bool = True
    auto_create_transactions: bool = False
    auto_update_cleared_status: bool = False
    auto_unclear_missing: bool = True
    auto_adjust_dates: bool = False

    # Optional balance verification against the statement closing balance
    statement_balance: Optional[Decimal] = None
    statement_date: Optional[date] = None

    @property
    def wants_changes(self) -> bool:
        return (
            self.auto_create_transactions
            or self.auto_update_cleared_status
            or self.auto_unclear_missing
            or self.auto_adjust_dates
        )

    @property
    def should_execute(self) -> bool:
        """False when execution could neither change the ledger nor verify a balance."""
        return self.wants_changes or self.statement_date is not None


class SheetConfig(BaseModel):
    """Configuration for a report sheet."""

    enabled: bool = True
    name: str


class SheetsConfig(BaseModel):
    """Configuration for all report sheets."""

    summary: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Summary"))
    auto_matches: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Auto Matches"))
    suggested_matches: SheetConfig = Field(
        default_factory=lambda: SheetConfig(name="Suggested Matches")
    )
    unmatched_external: SheetConfig = Field(
        default_factory=lambda: SheetConfig(name="Statement Only")
    )
    unmatched_internal: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Ledger Only"))
    insights: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Insights"))
    recommendations: SheetConfig = Field(
        default_factory=lambda: SheetConfig(name="Recommendations")
    )
    actions: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Actions"))


class OutputConfig(BaseModel):
    """Report sheets and text report truncation."""

    sheets: SheetsConfig = Field(default_factory=SheetsConfig)
    max_unmatched_to_show: int = Field(default=5, ge=1)
    max_insights_to_show: int = Field(default=3, ge=1)


class LoggingConfig(BaseModel):
    """Console level and format, plus an optional rotating log file."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[str] = None
    max_file_bytes: int = Field(default=10 * 1024 * 1024, gt=0)
    backup_count: int = Field(default=5, ge=0)

    @field_validator("level")
    @classmethod
    def _check_level(cls, value: str) -> str:
        if not isinstance(logging.getLevelName(value.upper()), int):
            raise ValueError(f"unknown logging level: {value}")
        return value.upper()


class ReconConfig(BaseModel):
    """Main configuration model for reconciliation."""

    currency: str = "USD"
    input: InputConfig = Field(default_factory=InputConfig)
    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    execution: ExecutionOptions = Field(default_factory=ExecutionOptions)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    config_file_path: Optional[str] = None


def get_default_config() -> dict[str, Any]:
    """Return the default configuration as a plain (YAML-serializable) dictionary."""
    return ReconConfig().model_dump(
        mode="json",
        exclude={
            "config_file_path": True,
            "execution": {"statement_balance", "statement_date"},
        },
    )


def load_config(config_path: Optional[Path] = None) -> ReconConfig:
    """
    Load configuration from a YAML file or use defaults.

    Args:
        config_path: Path to YAML configuration file (optional)

    Returns:
        ReconConfig object with loaded or default settings

    Raises:
        ConfigurationError: If the file cannot be read or fails validation
    """
    config_dict = get_default_config()

    if config_path and config_path.exists():
        logger.info(f"Loading configuration from: {config_path}")
        try:
            with open(config_path, "r") as f:
                user_config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to read configuration {config_path}: {e}") from e

        if not isinstance(user_config, dict):
            raise ConfigurationError(f"Configuration {config_path} must be a mapping")

        config_dict = _deep_merge(config_dict, user_config)
        config_dict["config_file_path"] = str(config_path)
    else:
        logger.info("Using default configuration")

    try:
        return ReconConfig(**config_dict)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Deep merge two dictionaries.

    Args:
        base: Base dictionary
        override: Dictionary to merge on top

    Returns:
        Merged dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def generate_default_config(output_path: Path) -> None:
    """
    Generate a default configuration file.

    Args:
        output_path: Path to write the configuration file
    """
    config_dict = get_default_config()

    yaml_content = """# Statement to ledger reconciliation configuration
# Generated configuration file - customize as needed

"""
    yaml_content += yaml.dump(config_dict, default_flow_style=False, sort_keys=False)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        f.write(yaml_content)

    logger.info(f"Generated configuration file: {output_path}")
