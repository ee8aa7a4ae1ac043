"""Tests for configuration loading and validation."""

from datetime import date

import pytest
from pydantic import ValidationError

from ledger_recon.config import (
    ExecutionOptions,
    MatchingConfig,
    generate_default_config,
    load_config,
)
from ledger_recon.utils.exceptions import ConfigurationError


class TestMatchingConfig:
    def test_defaults(self):
        config = MatchingConfig()

        assert config.date_tolerance_days == 2
        assert config.amount_tolerance_cents == 1
        assert config.auto_match_threshold == 90
        assert config.suggestion_threshold == 60

    def test_is_immutable(self):
        config = MatchingConfig()

        with pytest.raises(ValidationError):
            config.date_tolerance_days = 5

        updated = config.model_copy(update={"date_tolerance_days": 5})
        assert updated.date_tolerance_days == 5
        assert config.date_tolerance_days == 2

    @pytest.mark.parametrize(
        "overrides",
        [
            {"date_tolerance_days": 8},
            {"amount_tolerance_cents": -1},
            {"auto_match_threshold": 101},
            {"auto_match_threshold": 50, "suggestion_threshold": 60},
        ],
    )
    def test_out_of_range_values_rejected(self, overrides):
        with pytest.raises(ValidationError):
            MatchingConfig(**overrides)


def test_execution_options_default_to_dry_run():
    options = ExecutionOptions()

    assert options.dry_run
    assert options.wants_changes
    assert not ExecutionOptions(auto_unclear_missing=False).wants_changes


def test_execution_runs_for_changes_or_balance_verification():
    quiet = ExecutionOptions(auto_unclear_missing=False)

    assert ExecutionOptions().should_execute
    assert not quiet.should_execute
    assert quiet.model_copy(update={"statement_date": date(2024, 1, 31)}).should_execute


class TestLoadConfig:
    def test_defaults_without_file(self):
        config = load_config(None)

        assert config.currency == "USD"
        assert config.input.statement.column_mappings["date"] == "Date"
        assert config.config_file_path is None

    def test_file_is_merged_over_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "currency: CAD\n"
            "matching:\n"
            "  date_tolerance_days: 4\n"
            "input:\n"
            "  statement:\n"
            "    delimiter: ';'\n"
        )

        config = load_config(path)

        assert config.currency == "CAD"
        assert config.matching.date_tolerance_days == 4
        assert config.matching.auto_match_threshold == 90
        assert config.input.statement.delimiter == ";"
        assert config.input.statement.date_format == "%m/%d/%Y"
        assert config.config_file_path == str(path)

    def test_invalid_values_raise_configuration_error(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("matching:\n  date_tolerance_days: 30\n")

        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_non_mapping_raises_configuration_error(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n")

        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_generated_config_round_trips(self, tmp_path):
        path = tmp_path / "nested" / "config.yaml"

        generate_default_config(path)
        config = load_config(path)

        assert config.matching == MatchingConfig()
        assert config.output.sheets.summary.name == "Summary"

    def test_default_config_omits_run_specific_values(self):
        from ledger_recon.config import get_default_config

        defaults = get_default_config()

        assert "statement_balance" not in defaults["execution"]
        assert "config_file_path" not in defaults
        assert defaults["logging"]["file"] is None

    def test_unknown_logging_level_raises_configuration_error(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("logging:\n  level: CHATTY\n")

        with pytest.raises(ConfigurationError, match="unknown logging level"):
            load_config(path)

    def test_logging_level_is_normalized(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("logging:\n  level: debug\n")

        assert load_config(path).logging.level == "DEBUG"
