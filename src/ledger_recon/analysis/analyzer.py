"""
Reconciliation analysis.

Runs the matching pass over a statement window, compares balances and looks
for patterns that explain why the ledger and the statement disagree.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Sequence
import logging

from ..config import MatchingConfig
from ..matching.matcher import MatchingEngine
from ..models.analysis import (
    BalanceInfo,
    InsightKind,
    InsightSeverity,
    ReconciliationAnalysis,
    ReconciliationInsight,
    ReconciliationSummary,
)
from ..models.execution import AccountSnapshot
from ..models.transaction import (
    ExternalTransaction,
    InternalTransaction,
    MatchConfidence,
    TransactionMatch,
)
from ..utils.money import (
    add_milli,
    classify_direction,
    format_money,
    sum_milli,
    to_milli,
    to_money_value,
)

logger = logging.getLogger(__name__)

MAX_INSIGHTS = 5
MAX_NEAR_MATCH_INSIGHTS = 3

# A medium/low match this close to the next threshold is reported as a near miss
NEAR_MATCH_MARGIN = 5

REPEAT_CRITICAL_OCCURRENCES = 4

# Milliunits
BALANCE_GAP_MIN = 1_000
BALANCE_GAP_CRITICAL = 100_000

# Gap as a fraction of statement volume before it is worth flagging
BALANCE_GAP_VOLUME_RATIO = Decimal("0.10")

BULK_MISSING_WARNING = 5
BULK_MISSING_CRITICAL = 10

DIRECTION_BALANCED = "balanced"
DIRECTION_STATEMENT_HIGHER = "statement_higher"
DIRECTION_LEDGER_HIGHER = "ledger_higher"

_CENT = Decimal("0.01")


def calculate_balances(
    internal_transactions: Iterable[InternalTransaction],
    statement_balance_milli: int,
    currency: str,
    account_snapshot: Optional[AccountSnapshot] = None,
) -> BalanceInfo:
    """
    Work out current balances and the discrepancy against the statement.

    The account snapshot, when given, is authoritative; the windowed
    transaction pool does not include activity from before the statement.
    """
    if account_snapshot is not None:
        cleared = account_snapshot.cleared_balance
        uncleared = account_snapshot.uncleared_balance
    else:
        internal_transactions = list(internal_transactions)
        cleared = sum_milli(t.amount for t in internal_transactions if t.cleared.counts_as_cleared)
        uncleared = sum_milli(
            t.amount for t in internal_transactions if not t.cleared.counts_as_cleared
        )

    discrepancy = add_milli(statement_balance_milli, -cleared)

    return BalanceInfo(
        current_cleared=to_money_value(cleared, currency),
        current_uncleared=to_money_value(uncleared, currency),
        current_total=to_money_value(add_milli(cleared, uncleared), currency),
        target_statement=to_money_value(statement_balance_milli, currency),
        discrepancy=to_money_value(discrepancy, currency),
        on_track=discrepancy == 0,
    )


def discrepancy_direction(discrepancy_milli: int) -> str:
    if discrepancy_milli > 0:
        return DIRECTION_STATEMENT_HIGHER
    if discrepancy_milli < 0:
        return DIRECTION_LEDGER_HIGHER
    return DIRECTION_BALANCED


def partition_matches(
    matches: Sequence[TransactionMatch],
    internal_transactions: Sequence[InternalTransaction],
) -> tuple[
    list[TransactionMatch],
    list[TransactionMatch],
    list[ExternalTransaction],
    list[InternalTransaction],
]:
    """
    Split matches into auto, suggested and unmatched groups.

    Returns:
        Tuple of (auto_matches, suggested_matches, unmatched_external,
        unmatched_internal). A ledger transaction counts as matched only when
        a ``high`` match claimed it.
    """
    auto_matches: list[TransactionMatch] = []
    suggested: list[TransactionMatch] = []
    unmatched_external: list[ExternalTransaction] = []
    claimed_ids: set[str] = set()

    for match in matches:
        if match.confidence is MatchConfidence.HIGH:
            auto_matches.append(match)
            if match.internal_transaction is not None:
                claimed_ids.add(match.internal_transaction.id)
        elif match.confidence in (MatchConfidence.MEDIUM, MatchConfidence.LOW):
            suggested.append(match)
        else:
            unmatched_external.append(match.external_transaction)

    unmatched_internal = [t for t in internal_transactions if t.id not in claimed_ids]
    return auto_matches, suggested, unmatched_external, unmatched_internal


def _date_range(external_transactions: Sequence[ExternalTransaction]) -> str:
    if not external_transactions:
        return "Unknown"
    dates = sorted(t.date for t in external_transactions)
    return f"{dates[0].isoformat()} to {dates[-1].isoformat()}"


def _explain_discrepancy(
    balances: BalanceInfo,
    auto_matched: int,
    unmatched_external: int,
    unmatched_internal: int,
) -> str:
    if balances.on_track:
        return "Cleared balance matches statement"

    actions_needed = []
    if auto_matched > 0:
        actions_needed.append(f"clear {auto_matched} transactions")
    if unmatched_external > 0:
        actions_needed.append(f"add {unmatched_external} missing")
    if unmatched_internal > 0:
        actions_needed.append(f"review {unmatched_internal} unmatched ledger")

    if not actions_needed:
        return "Manual review required"
    return f"Need to {', '.join(actions_needed)}"


def build_next_steps(summary: ReconciliationSummary) -> list[str]:
    steps = []

    if summary.auto_matched > 0:
        steps.append(f"Review {summary.auto_matched} auto-matched transactions for approval")
    if summary.suggested_matches > 0:
        steps.append(
            f"Review {summary.suggested_matches} suggested matches and choose best match"
        )
    if summary.unmatched_external > 0:
        steps.append(
            f"Decide whether to add {summary.unmatched_external} missing bank transactions "
            "to the ledger"
        )
    if summary.unmatched_internal > 0:
        steps.append(
            f"Decide what to do with {summary.unmatched_internal} unmatched ledger "
            "transactions (unclear/delete/ignore)"
        )

    if not steps:
        steps.append("All transactions matched! Review and approve to complete reconciliation")
    return steps


def repeat_amount_insights(
    unmatched_external: Sequence[ExternalTransaction], currency: str
) -> list[ReconciliationInsight]:
    """One insight per amount shared by two or more unmatched statement lines."""
    groups: dict[Decimal, list[ExternalTransaction]] = {}
    for txn in unmatched_external:
        key = txn.amount.quantize(_CENT, rounding=ROUND_HALF_UP)
        groups.setdefault(key, []).append(txn)

    repeated = sorted(
        ((amount, txns) for amount, txns in groups.items() if len(txns) >= 2),
        key=lambda item: -len(item[1]),
    )

    insights = []
    for amount, txns in repeated:
        milli = to_milli(amount)
        display = format_money(milli, currency)
        count = len(txns)
        insights.append(
            ReconciliationInsight(
                id=f"repeat-{abs(amount):.2f}-{classify_direction(milli)}",
                kind=InsightKind.REPEAT_AMOUNT,
                severity=(
                    InsightSeverity.CRITICAL
                    if count >= REPEAT_CRITICAL_OCCURRENCES
                    else InsightSeverity.WARNING
                ),
                title=f"{count} unmatched transactions at {display}",
                description=(
                    f"The bank statement shows {count} unmatched transaction(s) at {display}. "
                    "Repeated amounts are usually the quickest wins, reconcile these first."
                ),
                evidence={
                    "amount": float(amount),
                    "occurrences": count,
                    "dates": [t.date.isoformat() for t in txns],
                    "source_rows": [t.source_row for t in txns],
                },
            )
        )
    return insights


def near_match_insights(
    matches: Sequence[TransactionMatch], config: MatchingConfig, currency: str
) -> list[ReconciliationInsight]:
    """Medium/low matches that fell just short of the next tier."""
    insights = []

    for match in matches:
        if not match.candidates:
            continue

        top = match.candidates[0]
        score = top.confidence
        if match.confidence is MatchConfidence.MEDIUM:
            near = score >= config.auto_match_threshold - NEAR_MATCH_MARGIN
            severity = InsightSeverity.WARNING
        elif match.confidence is MatchConfidence.LOW:
            near = score >= config.suggestion_threshold - NEAR_MATCH_MARGIN
            severity = InsightSeverity.INFO
        else:
            continue
        if not near:
            continue

        external = match.external_transaction
        internal = top.internal_transaction
        external_display = format_money(to_milli(external.amount), currency)
        internal_display = format_money(internal.amount, currency)

        insights.append(
            ReconciliationInsight(
                id=f"near-{external.id}",
                kind=InsightKind.NEAR_MATCH,
                severity=severity,
                title=f"{external_display} nearly matches {internal_display}",
                description=(
                    f"Bank transaction on {external.date.isoformat()} ({external_display}) "
                    f"nearly matches {internal.payee_name or 'unknown payee'} on "
                    f"{internal.date.isoformat()}. Confidence {score}%, review and confirm."
                ),
                evidence={
                    "external_transaction": external.to_dict(),
                    "candidate": {
                        "id": internal.id,
                        "date": internal.date.isoformat(),
                        "amount_milliunits": internal.amount,
                        "payee_name": internal.payee_name,
                        "confidence": score,
                        "reasons": top.match_reason,
                    },
                },
            )
        )

    return insights[:MAX_NEAR_MATCH_INSIGHTS]


def anomaly_insights(
    balances: BalanceInfo,
    external_transactions: Sequence[ExternalTransaction],
    unmatched_external: int,
    unmatched_internal: int,
) -> list[ReconciliationInsight]:
    """Balance gaps out of proportion to statement activity, and similar red flags."""
    insights = []
    currency = balances.currency
    discrepancy = balances.discrepancy.value_milliunits
    gap = abs(discrepancy)
    volume = sum_milli(abs(to_milli(t.amount)) for t in external_transactions)

    if gap >= BALANCE_GAP_MIN and (volume == 0 or gap >= volume * BALANCE_GAP_VOLUME_RATIO):
        critical = gap >= BALANCE_GAP_CRITICAL or (volume > 0 and gap > volume)
        insights.append(
            ReconciliationInsight(
                id="balance-gap",
                kind=InsightKind.ANOMALY,
                severity=InsightSeverity.CRITICAL if critical else InsightSeverity.WARNING,
                title=f"Cleared balance off by {balances.discrepancy.value_display}",
                description=(
                    f"Ledger cleared balance is {balances.current_cleared.value_display} but the "
                    f"statement expects {balances.target_statement.value_display}. "
                    "Focus on closing this gap."
                ),
                evidence={
                    "cleared_balance_milliunits": balances.current_cleared.value_milliunits,
                    "statement_balance_milliunits": balances.target_statement.value_milliunits,
                    "discrepancy_milliunits": discrepancy,
                    "statement_volume_milliunits": volume,
                },
            )
        )

    if unmatched_external >= BULK_MISSING_WARNING:
        insights.append(
            ReconciliationInsight(
                id="bulk-missing-external",
                kind=InsightKind.ANOMALY,
                severity=(
                    InsightSeverity.CRITICAL
                    if unmatched_external >= BULK_MISSING_CRITICAL
                    else InsightSeverity.WARNING
                ),
                title=f"{unmatched_external} bank transactions still unmatched",
                description=(
                    f"There are {unmatched_external} bank transactions without a match. "
                    "Consider bulk importing or reviewing by date sequence."
                ),
                evidence={"unmatched_external": unmatched_external},
            )
        )

    statement_milli = balances.target_statement.value_milliunits
    if statement_milli <= 0 and (unmatched_external or unmatched_internal):
        insights.append(
            ReconciliationInsight(
                id="non-positive-statement",
                kind=InsightKind.ANOMALY,
                severity=InsightSeverity.WARNING,
                title=(
                    f"Statement balance is {format_money(statement_milli, currency)} "
                    "with unmatched activity"
                ),
                description=(
                    "The statement closes at zero or below while transactions remain unmatched. "
                    "Check the sign convention of the statement balance (credit card and loan "
                    "accounts are usually negative) before acting on other suggestions."
                ),
                evidence={
                    "statement_balance_milliunits": statement_milli,
                    "unmatched_external": unmatched_external,
                    "unmatched_internal": unmatched_internal,
                },
            )
        )

    return insights


def detect_insights(
    matches: Sequence[TransactionMatch],
    external_transactions: Sequence[ExternalTransaction],
    unmatched_external: Sequence[ExternalTransaction],
    unmatched_internal_count: int,
    balances: BalanceInfo,
    config: MatchingConfig,
) -> list[ReconciliationInsight]:
    """Collect insights in priority order, dropping duplicate ids."""
    insights: list[ReconciliationInsight] = []
    seen: set[str] = set()

    candidates = (
        repeat_amount_insights(unmatched_external, balances.currency)
        + near_match_insights(matches, config, balances.currency)
        + anomaly_insights(
            balances,
            external_transactions,
            len(unmatched_external),
            unmatched_internal_count,
        )
    )
    for insight in candidates:
        if insight.id in seen:
            continue
        seen.add(insight.id)
        insights.append(insight)

    return insights[:MAX_INSIGHTS]


class ReconciliationAnalyzer:
    """
    Orchestrates one analysis pass.

    Pure computation: no I/O and no suspension points. Inputs should already
    be restricted to the statement window.
    """

    def __init__(self, config: MatchingConfig, currency: str = "USD"):
        """
        Initialize the analyzer.

        Args:
            config: Matching tolerances and thresholds
            currency: ISO currency code used for display values
        """
        self.config = config
        self.currency = currency
        self.engine = MatchingEngine(config)

    def analyze(
        self,
        external_transactions: Sequence[ExternalTransaction],
        internal_transactions: Sequence[InternalTransaction],
        statement_balance: Decimal,
        account_snapshot: Optional[AccountSnapshot] = None,
        parse_errors: Sequence[str] = (),
    ) -> ReconciliationAnalysis:
        """
        Analyze a statement window against the ledger.

        Args:
            external_transactions: Parsed statement transactions
            internal_transactions: Ledger transactions in the same window
            statement_balance: Closing balance printed on the statement
            account_snapshot: Current ledger balances, if known
            parse_errors: Non-fatal statement row errors to carry through

        Returns:
            A new ReconciliationAnalysis
        """
        external_transactions = list(external_transactions)
        internal_transactions = list(internal_transactions)

        matches = self.engine.match(external_transactions, internal_transactions)
        auto_matches, suggested, unmatched_external, unmatched_internal = partition_matches(
            matches, internal_transactions
        )

        balances = calculate_balances(
            internal_transactions,
            to_milli(statement_balance),
            self.currency,
            account_snapshot,
        )

        summary = ReconciliationSummary(
            statement_date_range=_date_range(external_transactions),
            external_transactions_count=len(external_transactions),
            internal_transactions_count=len(internal_transactions),
            auto_matched=len(auto_matches),
            suggested_matches=len(suggested),
            unmatched_external=len(unmatched_external),
            unmatched_internal=len(unmatched_internal),
            current_cleared_balance=balances.current_cleared,
            target_statement_balance=balances.target_statement,
            discrepancy=balances.discrepancy,
            discrepancy_explanation=_explain_discrepancy(
                balances, len(auto_matches), len(unmatched_external), len(unmatched_internal)
            ),
            discrepancy_direction=discrepancy_direction(balances.discrepancy.value_milliunits),
        )

        insights = detect_insights(
            matches,
            external_transactions,
            unmatched_external,
            len(unmatched_internal),
            balances,
            self.config,
        )

        logger.info(
            f"Analysis complete: {summary.auto_matched} auto, {summary.suggested_matches} "
            f"suggested, {summary.unmatched_external} statement-only, "
            f"{summary.unmatched_internal} ledger-only, discrepancy "
            f"{balances.discrepancy.value_display}, {len(insights)} insights"
        )

        return ReconciliationAnalysis(
            summary=summary,
            auto_matches=tuple(auto_matches),
            suggested_matches=tuple(suggested),
            unmatched_external=tuple(unmatched_external),
            unmatched_internal=tuple(unmatched_internal),
            balance_info=balances,
            next_steps=tuple(build_next_steps(summary)),
            insights=tuple(insights),
            parse_errors=tuple(parse_errors),
        )
