"""
Plain-text reconciliation report.
"""

from dataclasses import dataclass
from typing import Any, Optional

from ..analysis.analyzer import DIRECTION_LEDGER_HIGHER
from ..config import OutputConfig
from ..models.analysis import ReconciliationAnalysis, ReconciliationInsight
from ..models.execution import ExecutionResult
from ..models.transaction import ExternalTransaction, TransactionMatch
from ..utils.money import format_decimal

RULE = "=" * 60
MAX_EXECUTION_ADVICE = 3

SEVERITY_MARKERS = {"critical": "[!!]", "warning": "[!]", "info": "[i]"}


@dataclass(frozen=True)
class ReportOptions:
    """Display options for the text report."""

    account_name: str = "Account"
    max_unmatched_to_show: int = 5
    max_insights_to_show: int = 3

    @classmethod
    def from_config(cls, output: OutputConfig, account_name: str = "Account") -> "ReportOptions":
        return cls(
            account_name=account_name,
            max_unmatched_to_show=output.max_unmatched_to_show,
            max_insights_to_show=output.max_insights_to_show,
        )


def _amount(txn: ExternalTransaction, currency: str) -> str:
    sign = "+" if txn.amount >= 0 else ""
    return f"{sign}{format_decimal(txn.amount, currency)}".rjust(12)


def _external_line(txn: ExternalTransaction, currency: str) -> str:
    payee = (txn.payee or "Unknown")[:40].ljust(40)
    return f"   {txn.date.isoformat()} - {payee} {_amount(txn, currency)}"


def _suggested_line(match: TransactionMatch, currency: str) -> str:
    txn = match.external_transaction
    payee = (txn.payee or "Unknown")[:35].ljust(35)
    return (
        f"   {txn.date.isoformat()} - {payee} {_amount(txn, currency)} "
        f"({match.confidence_score}% confidence)"
    )


def _header(analysis: ReconciliationAnalysis, options: ReportOptions) -> str:
    return "\n".join(
        [
            f"{options.account_name} Reconciliation Report",
            RULE,
            f"Statement Period: {analysis.summary.statement_date_range}",
        ]
    )


def _balance_section(analysis: ReconciliationAnalysis) -> str:
    summary = analysis.summary
    lines = [
        "BALANCE CHECK",
        RULE,
        f"Ledger Cleared Balance:  {summary.current_cleared_balance.value_display}",
        f"Statement Balance:       {summary.target_statement_balance.value_display}",
        "",
    ]

    if analysis.balance_info.on_track:
        lines.append("BALANCES MATCH")
    else:
        label = (
            "Ledger shows MORE than statement"
            if summary.discrepancy_direction == DIRECTION_LEDGER_HIGHER
            else "Statement shows MORE than ledger"
        )
        lines.append(f"DISCREPANCY: {analysis.balance_info.discrepancy.value_display}")
        lines.append(f"   Direction: {label}")

    return "\n".join(lines)


def _transaction_section(analysis: ReconciliationAnalysis, options: ReportOptions) -> str:
    summary = analysis.summary
    currency = analysis.currency
    limit = options.max_unmatched_to_show

    lines = [
        "TRANSACTION ANALYSIS",
        RULE,
        f"Automatically matched:  {summary.auto_matched} of "
        f"{summary.external_transactions_count} transactions",
        f"Suggested matches:      {summary.suggested_matches}",
        f"Statement only:         {summary.unmatched_external}",
        f"Ledger only:            {summary.unmatched_internal}",
    ]

    if analysis.unmatched_external:
        lines += ["", "UNMATCHED STATEMENT TRANSACTIONS:"]
        for txn in analysis.unmatched_external[:limit]:
            lines.append(_external_line(txn, currency))
        if len(analysis.unmatched_external) > limit:
            lines.append(f"   ... and {len(analysis.unmatched_external) - limit} more")

    if analysis.suggested_matches:
        lines += ["", "SUGGESTED MATCHES:"]
        for match in analysis.suggested_matches[:limit]:
            lines.append(_suggested_line(match, currency))
        if len(analysis.suggested_matches) > limit:
            lines.append(f"   ... and {len(analysis.suggested_matches) - limit} more suggestions")

    return "\n".join(lines)


def _evidence_summary(evidence: dict[str, Any]) -> Optional[str]:
    if "occurrences" in evidence:
        return f"{evidence['occurrences']} transactions"
    if "candidate" in evidence:
        return f"candidate {evidence['candidate'].get('id')}"
    if "unmatched_external" in evidence:
        return f"{evidence['unmatched_external']} unmatched statement transactions"
    return None


def _insights_section(insights: tuple[ReconciliationInsight, ...], limit: int) -> str:
    lines = ["KEY INSIGHTS", RULE]

    for insight in insights[:limit]:
        marker = SEVERITY_MARKERS.get(insight.severity.value, "-")
        lines.append(f"{marker} {insight.title}")
        lines.append(f"   {insight.description}")
        evidence = _evidence_summary(insight.evidence)
        if evidence:
            lines.append(f"   Evidence: {evidence}")
        lines.append("")

    if len(insights) > limit:
        lines.append(f"... and {len(insights) - limit} more insights (see structured output)")

    return "\n".join(lines).rstrip()


def _execution_section(execution: ExecutionResult) -> str:
    summary = execution.summary
    lines = [
        "EXECUTION SUMMARY",
        RULE,
        f"- Transactions created:  {summary.transactions_created}",
        f"- Transactions updated:  {summary.transactions_updated}",
        f"- Date adjustments:      {summary.dates_adjusted}",
    ]
    if summary.failed_actions:
        lines.append(f"- Failed actions:        {summary.failed_actions}")

    if execution.recommendations:
        lines += ["", "Recommendations:"]
        for advice in execution.recommendations[:MAX_EXECUTION_ADVICE]:
            lines.append(f"  - {advice}")
        if len(execution.recommendations) > MAX_EXECUTION_ADVICE:
            lines.append(f"  ... and {len(execution.recommendations) - MAX_EXECUTION_ADVICE} more")

    for warning in execution.warnings:
        lines.append(f"Warning: {warning}")

    lines.append("")
    if summary.dry_run:
        lines.append("Dry run only: no ledger changes were applied.")
    elif summary.failed_actions:
        lines.append("Some changes could not be applied. Review the actions for details.")
    else:
        lines.append("Changes applied to the ledger. Review structured output for action details.")

    return "\n".join(lines)


def _next_steps_section(
    analysis: ReconciliationAnalysis, execution: Optional[ExecutionResult]
) -> str:
    lines = ["RECOMMENDED ACTIONS", RULE]

    if execution is not None and not execution.summary.dry_run and not execution.failed_actions:
        lines.append("All recommended actions have been applied.")
        return "\n".join(lines)

    if analysis.next_steps:
        lines += [f"- {step}" for step in analysis.next_steps]
    else:
        lines.append("- No specific actions recommended.")
    return "\n".join(lines)


def format_report(
    analysis: ReconciliationAnalysis,
    execution: Optional[ExecutionResult] = None,
    options: Optional[ReportOptions] = None,
) -> str:
    """
    Render an analysis (and optionally its execution) as a text report.

    Args:
        analysis: Result of the analysis phase
        execution: Result of the execution phase, if one ran
        options: Display options

    Returns:
        Report text with sections separated by blank lines
    """
    options = options or ReportOptions()

    sections = [
        _header(analysis, options),
        _balance_section(analysis),
        _transaction_section(analysis, options),
    ]
    if analysis.insights:
        sections.append(_insights_section(analysis.insights, options.max_insights_to_show))
    if execution is not None:
        sections.append(_execution_section(execution))
    sections.append(_next_steps_section(analysis, execution))

    return "\n\n".join(sections)
