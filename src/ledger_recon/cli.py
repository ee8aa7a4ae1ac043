"""
Command-line interface for the statement to ledger reconciliation tool.
"""

from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional
import asyncio
import json
import logging
import sys

import click
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from . import __version__
from .config import (
    ExecutionOptions,
    MatchingConfig,
    ReconConfig,
    generate_default_config,
    load_config,
)
from .execution.locks import ExecutionLockRegistry
from .ledger.client import JsonFileLedgerClient
from .models.analysis import ReconciliationAnalysis
from .models.execution import ExecutionResult
from .parsers.statement_parser import ParsedStatement, StatementParser
from .reports.excel_generator import ExcelReportGenerator
from .reports.text_report import ReportOptions, format_report
from .service import analyze_reconciliation, execute_reconciliation
from .utils.logging_config import configure_from_settings
from .utils.money import to_decimal

console = Console()
logger = logging.getLogger(__name__)

DATE_FORMATS = ["%Y-%m-%d"]


@click.group()
@click.version_option(version=__version__)
def main():
    """Bank Statement to Ledger Reconciliation Tool."""
    pass


@main.command()
@click.argument("statement_file", type=click.Path(exists=True, path_type=Path))
@click.argument("ledger_file", type=click.Path(exists=True, path_type=Path))
@click.option("--account-id", required=True, help="Ledger account to reconcile")
@click.option(
    "--budget-id", default=None, help="Budget owning the account (default: from ledger file)"
)
@click.option(
    "--statement-balance", required=True, help="Closing balance printed on the statement"
)
@click.option("--statement-start", type=click.DateTime(DATE_FORMATS), default=None)
@click.option("--statement-end", type=click.DateTime(DATE_FORMATS), default=None)
@click.option(
    "--statement-date",
    type=click.DateTime(DATE_FORMATS),
    default=None,
    help="Verify the cleared balance as of this date (default: statement end)",
)
@click.option(
    "-c",
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file (YAML)",
)
@click.option("-o", "--output", type=click.Path(path_type=Path), help="Output Excel file path")
@click.option("--currency", default=None, help="ISO currency code (default: from config)")
@click.option("--apply", "apply_changes", is_flag=True, help="Write changes to the ledger file")
@click.option("--auto-create/--no-auto-create", default=None, help="Create missing transactions")
@click.option(
    "--update-cleared/--no-update-cleared",
    default=None,
    help="Mark matched transactions as cleared",
)
@click.option(
    "--unclear-missing/--no-unclear-missing",
    default=None,
    help="Mark cleared transactions missing from the statement as uncleared",
)
@click.option(
    "--adjust-dates/--no-adjust-dates", default=None, help="Align dates with the statement"
)
@click.option("--date-tolerance", type=int, default=None, help="Override date tolerance in days")
@click.option(
    "--amount-tolerance", type=int, default=None, help="Override amount tolerance in cents"
)
@click.option("--json", "as_json", is_flag=True, help="Print structured JSON instead of a report")
@click.option("--log-file", type=click.Path(path_type=Path), help="Also write logs to this file")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
def reconcile(
    statement_file: Path,
    ledger_file: Path,
    account_id: str,
    budget_id: Optional[str],
    statement_balance: str,
    statement_start: Optional[datetime],
    statement_end: Optional[datetime],
    statement_date: Optional[datetime],
    config: Optional[Path],
    output: Optional[Path],
    currency: Optional[str],
    apply_changes: bool,
    auto_create: Optional[bool],
    update_cleared: Optional[bool],
    unclear_missing: Optional[bool],
    adjust_dates: Optional[bool],
    date_tolerance: Optional[int],
    amount_tolerance: Optional[int],
    as_json: bool,
    log_file: Optional[Path],
    verbose: bool,
):
    """
    Reconcile a bank statement with a ledger account.

    STATEMENT_FILE: Path to the bank statement CSV export
    LEDGER_FILE: Path to the JSON ledger export
    """
    try:
        recon_config = load_config(config)

        configure_from_settings(recon_config.logging, verbose=verbose, log_file=log_file)

        recon_config = _apply_matching_overrides(recon_config, date_tolerance, amount_tolerance)

        start = statement_start.date() if statement_start else None
        end = statement_end.date() if statement_end else None
        verify_date = statement_date.date() if statement_date else end

        flag_overrides = {
            "auto_create_transactions": auto_create,
            "auto_update_cleared_status": update_cleared,
            "auto_unclear_missing": unclear_missing,
            "auto_adjust_dates": adjust_dates,
        }
        options = recon_config.execution.model_copy(
            update={
                **{k: v for k, v in flag_overrides.items() if v is not None},
                "dry_run": not apply_changes,
                "statement_balance": to_decimal(statement_balance),
                "statement_date": verify_date,
            }
        )

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            disable=as_json,
        ) as progress:
            task = progress.add_task("Parsing statement...", total=None)
            parsed = StatementParser(recon_config.input.statement).parse_file(statement_file)
            progress.update(task, completed=True)

            task = progress.add_task("Loading ledger...", total=None)
            ledger = JsonFileLedgerClient(ledger_file)
            budget = budget_id or ledger.budget_id or "default"
            progress.update(task, completed=True)

            task = progress.add_task("Reconciling...", total=None)
            analysis, execution = asyncio.run(
                _run_reconciliation(
                    ledger,
                    parsed,
                    options=options,
                    recon_config=recon_config,
                    budget_id=budget,
                    account_id=account_id,
                    statement_balance=to_decimal(statement_balance),
                    statement_start=start,
                    statement_end=end,
                    currency=currency or recon_config.currency,
                )
            )
            progress.update(task, completed=True)

        if apply_changes and ledger.dirty:
            ledger.save()

        if as_json:
            payload = {
                "analysis": analysis.to_dict(),
                "execution": execution.to_dict() if execution is not None else None,
            }
            click.echo(json.dumps(payload, indent=2, default=str))
        else:
            _display_summary(analysis, execution)
            report_options = ReportOptions.from_config(recon_config.output, account_name=account_id)
            console.print(format_report(analysis, execution, report_options), markup=False)

        if output is not None:
            report_path = ExcelReportGenerator(recon_config).generate_report(
                analysis, output, execution=execution, account_name=account_id
            )
            if not as_json:
                console.print(f"\n[green]Report generated: {report_path}[/green]")

    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        if verbose:
            console.print_exception()
        sys.exit(1)


async def _run_reconciliation(
    ledger: JsonFileLedgerClient,
    parsed: ParsedStatement,
    *,
    options: ExecutionOptions,
    recon_config: ReconConfig,
    budget_id: str,
    account_id: str,
    statement_balance: Decimal,
    statement_start: Optional[date],
    statement_end: Optional[date],
    currency: str,
) -> tuple[ReconciliationAnalysis, Optional[ExecutionResult]]:
    """Analyze, then execute (dry run unless --apply) when the options call for it."""
    snapshot = await ledger.get_account(budget_id, account_id)
    internal = await ledger.list_transactions_for_account(budget_id, account_id)

    analysis = analyze_reconciliation(
        parsed,
        internal,
        statement_balance,
        budget_id=budget_id,
        account_id=account_id,
        config=recon_config.matching,
        currency=currency,
        account_snapshot=snapshot,
        statement_start=statement_start,
        statement_end=statement_end,
    )

    if not options.should_execute:
        logger.info("No changes requested and no statement date to verify; skipping execution")
        return analysis, None

    execution = await execute_reconciliation(
        analysis,
        options,
        ledger_client=ledger,
        lock_registry=ExecutionLockRegistry(),
        budget_id=budget_id,
        account_id=account_id,
        initial_account=snapshot,
        currency=currency,
    )
    return analysis, execution


@main.command("parse-statement")
@click.argument("statement_file", type=click.Path(exists=True, path_type=Path))
@click.option("-c", "--config", type=click.Path(exists=True, path_type=Path))
def parse_statement(statement_file: Path, config: Optional[Path]):
    """
    Parse a bank statement CSV and display its transactions.

    STATEMENT_FILE: Path to the bank statement CSV export
    """
    try:
        recon_config = load_config(config)
        parsed = StatementParser(recon_config.input.statement).parse_file(statement_file)

        table = Table(title=f"Statement Transactions: {statement_file.name}")
        table.add_column("Row", justify="right")
        table.add_column("Date")
        table.add_column("Amount", justify="right")
        table.add_column("Payee")
        table.add_column("Memo")

        for txn in parsed.transactions[:20]:  # Show first 20
            table.add_row(
                str(txn.source_row),
                str(txn.date),
                f"{txn.amount:,.2f}",
                txn.payee[:40] + "..." if len(txn.payee) > 40 else txn.payee,
                txn.memo or "-",
            )

        console.print(table)

        if len(parsed.transactions) > 20:
            console.print(f"\n... and {len(parsed.transactions) - 20} more transactions")

        console.print(f"\nValid rows: {parsed.valid_rows} of {parsed.total_rows}")
        for error in parsed.errors:
            console.print(f"[yellow]{error}[/yellow]")

    except Exception as e:
        console.print(f"[red]Error parsing file: {e}[/red]")
        sys.exit(1)


@main.command("init-config")
@click.option(
    "-o", "--output", type=click.Path(path_type=Path), default=Path("config.yaml")
)
def init_config(output: Path):
    """Generate a sample configuration file."""
    generate_default_config(output)
    console.print(f"[green]Configuration file generated: {output}[/green]")


def _display_summary(
    analysis: ReconciliationAnalysis, execution: Optional[ExecutionResult]
) -> None:
    """Display reconciliation summary in console."""
    summary = analysis.summary
    table = Table(title="Reconciliation Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    rows: list[tuple[str, Any]] = [
        ("Statement Transactions", summary.external_transactions_count),
        ("Ledger Transactions", summary.internal_transactions_count),
        ("Auto Matched", summary.auto_matched),
        ("Suggested Matches", summary.suggested_matches),
        ("Statement Only", summary.unmatched_external),
        ("Ledger Only", summary.unmatched_internal),
        ("Match Rate", f"{summary.match_rate:.1f}%"),
        ("Discrepancy", summary.discrepancy.value_display),
    ]
    if execution is None:
        rows.append(("Mode", "analysis only"))
    else:
        rows += [
            ("Mode", "dry run" if execution.summary.dry_run else "applied"),
            ("Created", execution.summary.transactions_created),
            ("Updated", execution.summary.transactions_updated),
            ("Failed", execution.summary.failed_actions),
        ]
    for label, value in rows:
        table.add_row(label, str(value))

    console.print(table)

    for error in analysis.parse_errors:
        console.print(f"[yellow]{error}[/yellow]")


def _apply_matching_overrides(
    config: ReconConfig, date_tolerance: Optional[int], amount_tolerance: Optional[int]
) -> ReconConfig:
    """Return a config with command-line tolerance overrides applied (and validated)."""
    overrides = {}
    if date_tolerance is not None:
        overrides["date_tolerance_days"] = date_tolerance
    if amount_tolerance is not None:
        overrides["amount_tolerance_cents"] = amount_tolerance
    if not overrides:
        return config

    matching = MatchingConfig(**{**config.matching.model_dump(), **overrides})
    return config.model_copy(update={"matching": matching})


if __name__ == "__main__":
    main()
