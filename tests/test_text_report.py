"""Tests for the plain-text report."""

from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from conftest import make_external, make_internal

from ledger_recon.analysis.analyzer import ReconciliationAnalyzer
from ledger_recon.config import ExecutionOptions, MatchingConfig, OutputConfig
from ledger_recon.execution.executor import ReconciliationExecutor
from ledger_recon.execution.locks import ExecutionLockRegistry
from ledger_recon.models.execution import AccountSnapshot
from ledger_recon.reports.text_report import ReportOptions, format_report

SNAPSHOT = AccountSnapshot(balance=100000, cleared_balance=100000, uncleared_balance=0)


def _analysis(statement_balance: str, external=(), internal=()):
    return ReconciliationAnalyzer(MatchingConfig()).analyze(
        list(external), list(internal), Decimal(statement_balance), account_snapshot=SNAPSHOT
    )


def test_balanced_report():
    report = format_report(_analysis("100.00"), options=ReportOptions(account_name="Checking"))

    assert report.startswith("Checking Reconciliation Report")
    assert "BALANCES MATCH" in report
    assert "KEY INSIGHTS" not in report
    assert "All transactions matched!" in report


def test_discrepancy_report():
    analysis = _analysis(
        "122.22", external=[make_external("e1", date(2024, 1, 5), "22.22", payee="Refund")]
    )

    report = format_report(analysis)

    assert "DISCREPANCY: $22.22" in report
    assert "Statement shows MORE than ledger" in report
    assert "UNMATCHED STATEMENT TRANSACTIONS:" in report
    assert "2024-01-05 - Refund" in report
    assert "+$22.22" in report
    assert "KEY INSIGHTS" in report


def test_ledger_higher_direction():
    report = format_report(_analysis("90.00"))

    assert "Ledger shows MORE than statement" in report


def test_unmatched_list_is_truncated():
    external = [
        make_external(f"e{n}", date(2024, 1, n), f"-{n}.00", payee=f"Store {n}")
        for n in range(1, 9)
    ]
    options = ReportOptions.from_config(OutputConfig(max_unmatched_to_show=3), "Checking")

    report = format_report(_analysis("100.00", external=external), options=options)

    assert "Store 3" in report
    assert "Store 4" not in report
    assert "... and 5 more" in report


def test_suggested_matches_section():
    analysis = _analysis(
        "100.00",
        external=[make_external("e1", date(2024, 1, 5), "-22.22", payee="Netflix")],
        internal=[make_internal("i1", date(2024, 1, 5), -22220, payee_name="Grocer")],
    )

    report = format_report(analysis)

    assert "SUGGESTED MATCHES:" in report
    assert "(80% confidence)" in report


@pytest.mark.asyncio
async def test_execution_section_for_dry_run():
    analysis = _analysis(
        "122.22", external=[make_external("e1", date(2024, 1, 5), "22.22", payee="Refund")]
    )
    execution = await ReconciliationExecutor(AsyncMock(), ExecutionLockRegistry()).execute(
        analysis,
        ExecutionOptions(auto_create_transactions=True),
        budget_id="b",
        account_id="a",
        initial_account=SNAPSHOT,
    )

    report = format_report(analysis, execution)

    assert "EXECUTION SUMMARY" in report
    assert "- Transactions created:  1" in report
    assert "Dry run only: no ledger changes were applied." in report
    assert "RECOMMENDED ACTIONS" in report
