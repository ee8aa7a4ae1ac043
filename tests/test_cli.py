"""Tests for the command-line interface."""

import json
import logging

import pytest
from click.testing import CliRunner

from ledger_recon.cli import main
from ledger_recon.utils.logging_config import ROOT_LOGGER_NAME

LEDGER = {
    "budget_id": "household",
    "accounts": [{"id": "checking", "opening_cleared_balance": 0}],
    "transactions": [
        {
            "id": "t1",
            "account_id": "checking",
            "date": "2024-01-05",
            "amount": -22220,
            "payee_name": "Netflix",
            "cleared": "uncleared",
        }
    ],
}


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in logger.handlers:
        handler.close()
    logger.handlers = []


@pytest.fixture
def files(tmp_path, statement_csv):
    statement = tmp_path / "statement.csv"
    statement.write_text(statement_csv)
    ledger = tmp_path / "ledger.json"
    ledger.write_text(json.dumps(LEDGER))
    config = tmp_path / "config.yaml"
    config.write_text("logging:\n  level: WARNING\n")
    return statement, ledger, config


def _reconcile_args(files, *extra):
    statement, ledger, config = files
    return [
        "reconcile",
        str(statement),
        str(ledger),
        "--account-id",
        "checking",
        "--statement-balance",
        "1432.68",
        "-c",
        str(config),
        *extra,
    ]


def test_reconcile_json_dry_run(files):
    result = CliRunner().invoke(main, _reconcile_args(files, "--json"))

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["analysis"]["summary"]["auto_matched"] == 1
    assert payload["analysis"]["summary"]["unmatched_external"] == 2
    assert payload["execution"]["summary"]["dry_run"] is True
    assert json.loads(files[1].read_text()) == LEDGER


def test_reconcile_without_changes_or_statement_date_skips_execution(files):
    result = CliRunner().invoke(main, _reconcile_args(files, "--json", "--no-unclear-missing"))

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["execution"] is None
    assert payload["analysis"]["summary"]["auto_matched"] == 1
    assert json.loads(files[1].read_text()) == LEDGER


def test_reconcile_apply_writes_ledger(files):
    result = CliRunner().invoke(
        main, _reconcile_args(files, "--json", "--apply", "--auto-create", "--update-cleared")
    )

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["execution"]["summary"]["transactions_created"] == 2
    assert payload["execution"]["summary"]["transactions_updated"] == 1

    saved = json.loads(files[1].read_text())
    assert len(saved["transactions"]) == 3
    assert saved["transactions"][0]["cleared"] == "cleared"


def test_reconcile_text_report_and_excel(files, tmp_path):
    output = tmp_path / "report.xlsx"
    log_file = tmp_path / "logs" / "recon.log"

    result = CliRunner().invoke(
        main, _reconcile_args(files, "-o", str(output), "--log-file", str(log_file))
    )

    assert result.exit_code == 0, result.output
    assert "BALANCE CHECK" in result.output
    assert output.exists()
    assert log_file.exists()


def test_reconcile_rejects_bad_balance(files):
    args = _reconcile_args(files)
    args[args.index("1432.68")] = "lots"

    result = CliRunner().invoke(main, args)

    assert result.exit_code == 1
    assert "Error" in result.output


def test_parse_statement(files):
    result = CliRunner().invoke(main, ["parse-statement", str(files[0]), "-c", str(files[2])])

    assert result.exit_code == 0, result.output
    assert "Valid rows: 3 of 3" in result.output


def test_init_config(tmp_path):
    output = tmp_path / "config.yaml"

    result = CliRunner().invoke(main, ["init-config", "-o", str(output)])

    assert result.exit_code == 0, result.output
    assert "matching:" in output.read_text()
