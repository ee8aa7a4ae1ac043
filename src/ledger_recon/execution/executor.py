"""
Applies (or simulates) the corrections an analysis calls for.

Actions are planned up front from the analysis and the execution flags, so a
dry run and an apply run over the same input walk the same list. In apply
mode each ledger call is awaited in turn; a failed call is recorded on its
action and the run carries on with the next one.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional, Union
import logging

from ..config import ExecutionOptions
from ..ledger.client import LedgerClient, NewTransaction, TransactionUpdate
from ..models.analysis import ReconciliationAnalysis
from ..models.execution import (
    ACTION_CREATE,
    ACTION_UPDATE,
    STATUS_APPLIED,
    STATUS_FAILED,
    STATUS_PLANNED,
    AccountSnapshot,
    BalanceVerification,
    ExecutionActionRecord,
    ExecutionResult,
    ExecutionSummary,
    LikelyCause,
)
from ..models.transaction import ClearedState, MatchConfidence
from ..utils.exceptions import LedgerClientError
from ..utils.money import add_milli, format_decimal, format_money, sum_milli, to_milli
from .locks import ExecutionLockRegistry

logger = logging.getLogger(__name__)

DEFAULT_CREATE_MEMO = "Auto-reconciled from bank statement"

# Balance movements smaller than this are not worth mentioning
BALANCE_CHANGE_EPSILON_MILLI = 100

DRY_RUN_NOTICE = "Dry run only: re-run with dry_run=false to apply these changes"

STATUS_RECONCILED = "PERFECTLY_RECONCILED"
STATUS_DISCREPANCY = "DISCREPANCY_FOUND"


@dataclass(frozen=True)
class PlannedAction:
    """A ledger change derived from the analysis, not yet carried out."""

    type: str
    description: str
    payload: Union[NewTransaction, TransactionUpdate]
    preview: dict[str, Any]
    transaction_id: Optional[str] = None
    adjusts_date: bool = False


def plan_actions(
    analysis: ReconciliationAnalysis,
    options: ExecutionOptions,
    account_id: str,
    currency: str,
) -> list[PlannedAction]:
    """
    Derive the ordered list of ledger changes for a run.

    Order: creates for statement-only transactions, updates for high and
    medium matches, then unclearing of ledger-only transactions. A ledger
    transaction is touched at most once.
    """
    planned: list[PlannedAction] = []

    if options.auto_create_transactions:
        for txn in analysis.unmatched_external:
            payee = txn.payee or None
            new_txn = NewTransaction(
                account_id=account_id,
                date=txn.date,
                amount=to_milli(txn.amount),
                payee_name=payee,
                memo=txn.memo or DEFAULT_CREATE_MEMO,
                cleared=ClearedState.CLEARED,
                approved=True,
            )
            planned.append(
                PlannedAction(
                    type=ACTION_CREATE,
                    description=(
                        f"missing transaction: {payee or 'Unknown'} "
                        f"({format_decimal(txn.amount, currency)})"
                    ),
                    payload=new_txn,
                    preview={
                        "date": txn.date.isoformat(),
                        "amount_milliunits": new_txn.amount,
                        "payee_name": payee,
                    },
                )
            )

    matched_ids: set[str] = set()
    for match in analysis.auto_matches + analysis.suggested_matches:
        internal = match.internal_transaction
        if internal is None:
            continue
        if match.confidence not in (MatchConfidence.HIGH, MatchConfidence.MEDIUM):
            continue
        if internal.id in matched_ids:
            continue
        matched_ids.add(internal.id)

        external = match.external_transaction
        needs_cleared = (
            options.auto_update_cleared_status and internal.cleared is ClearedState.UNCLEARED
        )
        needs_date = options.auto_adjust_dates and internal.date != external.date
        if not needs_cleared and not needs_date:
            continue

        parts = []
        if needs_cleared:
            parts.append("marked as cleared")
        if needs_date:
            parts.append(f"date adjusted to {external.date.isoformat()}")

        planned.append(
            PlannedAction(
                type=ACTION_UPDATE,
                description=", ".join(parts),
                payload=TransactionUpdate(
                    cleared=ClearedState.CLEARED if needs_cleared else None,
                    date=external.date if needs_date else None,
                ),
                preview={
                    "transaction_id": internal.id,
                    "new_date": external.date.isoformat() if needs_date else None,
                    "cleared": ClearedState.CLEARED.value if needs_cleared else None,
                },
                transaction_id=internal.id,
                adjusts_date=needs_date,
            )
        )

    if options.auto_unclear_missing:
        for internal in analysis.unmatched_internal:
            # A suggested match does not claim its ledger transaction, but it is on the statement
            if internal.cleared is not ClearedState.CLEARED or internal.id in matched_ids:
                continue
            planned.append(
                PlannedAction(
                    type=ACTION_UPDATE,
                    description=(
                        f"transaction {internal.id} as uncleared - not present on statement"
                    ),
                    payload=TransactionUpdate(cleared=ClearedState.UNCLEARED),
                    preview={
                        "transaction_id": internal.id,
                        "cleared": ClearedState.UNCLEARED.value,
                    },
                    transaction_id=internal.id,
                )
            )

    return planned


_VERBS = {
    # status: (create, unclear, update)
    STATUS_PLANNED: ("Would create", "Would mark", "Would update"),
    STATUS_APPLIED: ("Created", "Marked", "Updated"),
    STATUS_FAILED: ("Failed to create", "Failed to mark", "Failed to update"),
}


def _describe(action: PlannedAction, status: str) -> str:
    create, unclear, update = _VERBS[status]
    if action.type == ACTION_CREATE:
        return f"{create} {action.description}"
    if action.payload.cleared is ClearedState.UNCLEARED:
        return f"{unclear} {action.description}"
    return f"{update} transaction: {action.description}"


def likely_causes(discrepancy_milli: int) -> tuple[LikelyCause, ...]:
    """Guess at explanations for a balance discrepancy."""
    gap = abs(discrepancy_milli)
    if gap == 0:
        return ()

    causes = []
    if gap % 1000 == 0 or gap % 500 == 0:
        causes.append(
            LikelyCause(
                cause_type="bank_fee",
                description="Round amount suggests a bank fee or interest adjustment.",
                confidence=0.8,
                amount_milliunits=discrepancy_milli,
                suggested_resolution=(
                    "Create bank fee transaction and mark cleared"
                    if discrepancy_milli < 0
                    else "Record interest income"
                ),
            )
        )
    return tuple(causes)


def build_advice(
    summary: ExecutionSummary,
    analysis: ReconciliationAnalysis,
    options: ExecutionOptions,
    balance_change_milli: int,
    currency: str,
) -> list[str]:
    advice = []

    if summary.dates_adjusted > 0:
        advice.append(
            f"Adjusted {summary.dates_adjusted} transaction date(s) to match bank statement dates"
        )

    if analysis.summary.unmatched_external > 0 and not options.auto_create_transactions:
        advice.append(
            "Consider enabling auto_create_transactions to automatically create "
            f"{analysis.summary.unmatched_external} missing transaction(s)"
        )

    if not options.auto_adjust_dates and analysis.auto_matches:
        advice.append(
            "Consider enabling auto_adjust_dates to align ledger dates with bank statement dates"
        )

    if analysis.summary.unmatched_internal > 0:
        advice.append(
            f"{analysis.summary.unmatched_internal} transaction(s) exist in the ledger but not on "
            "the bank statement: review for duplicates or pending items"
        )

    if summary.failed_actions > 0:
        advice.append(
            f"{summary.failed_actions} action(s) failed: check actions_taken for details and re-run"
        )

    if options.dry_run:
        advice.append(DRY_RUN_NOTICE)

    if abs(balance_change_milli) > BALANCE_CHANGE_EPSILON_MILLI:
        advice.append(
            f"Account balance changed by {format_money(balance_change_milli, currency)} "
            "during reconciliation"
        )

    return advice


class ReconciliationExecutor:
    """
    Carries out reconciliation actions against a ledger.

    Runs for the same (budget, account) are serialized through the injected
    lock registry: a second concurrent run fails with
    ReconciliationAlreadyRunningError instead of waiting.
    """

    def __init__(self, ledger_client: LedgerClient, lock_registry: ExecutionLockRegistry):
        """
        Initialize the executor.

        Args:
            ledger_client: Client used in apply mode
            lock_registry: Registry shared by every executor in the process
        """
        self.ledger_client = ledger_client
        self.lock_registry = lock_registry

    async def execute(
        self,
        analysis: ReconciliationAnalysis,
        options: ExecutionOptions,
        *,
        budget_id: str,
        account_id: str,
        initial_account: AccountSnapshot,
        currency: str = "USD",
    ) -> ExecutionResult:
        """
        Execute (or simulate) the reconciliation.

        Args:
            analysis: Result of the analysis phase
            options: Execution flags, including dry_run
            budget_id: Budget owning the account
            account_id: Account being reconciled
            initial_account: Balances before any change
            currency: ISO currency code for display strings

        Returns:
            ExecutionResult with per-action outcomes

        Raises:
            ReconciliationAlreadyRunningError: If a run for the same account
                is already in flight
        """
        with self.lock_registry.hold(budget_id, account_id):
            return await self._run(
                analysis,
                options,
                budget_id=budget_id,
                account_id=account_id,
                initial_account=initial_account,
                currency=currency,
            )

    async def _run(
        self,
        analysis: ReconciliationAnalysis,
        options: ExecutionOptions,
        *,
        budget_id: str,
        account_id: str,
        initial_account: AccountSnapshot,
        currency: str,
    ) -> ExecutionResult:
        start_time = datetime.now()
        mode = "dry run" if options.dry_run else "apply"

        summary = ExecutionSummary(
            external_transactions_count=analysis.summary.external_transactions_count,
            internal_transactions_count=analysis.summary.internal_transactions_count,
            matches_found=len(analysis.auto_matches),
            missing_in_ledger=analysis.summary.unmatched_external,
            missing_on_statement=analysis.summary.unmatched_internal,
            dry_run=options.dry_run,
        )
        warnings: list[str] = []

        planned = plan_actions(analysis, options, account_id, currency)
        logger.info(
            f"Executing reconciliation ({mode}) for account {account_id}: {len(planned)} actions"
        )

        actions: list[ExecutionActionRecord] = []
        any_applied = False

        for action in planned:
            if options.dry_run:
                record = ExecutionActionRecord(
                    type=action.type,
                    reason=_describe(action, STATUS_PLANNED),
                    status=STATUS_PLANNED,
                    transaction_id=action.transaction_id,
                    transaction=action.preview,
                )
            else:
                record = await self._apply(action, budget_id, account_id)
                any_applied = any_applied or record.succeeded

            actions.append(record)
            if not record.succeeded:
                summary.failed_actions += 1
                continue

            if action.type == ACTION_CREATE:
                summary.transactions_created += 1
            else:
                summary.transactions_updated += 1
                if action.adjusts_date:
                    summary.dates_adjusted += 1

        balance_verification = await self._verify_balance(
            analysis, options, budget_id, account_id, warnings
        )

        account_after = initial_account
        if any_applied:
            try:
                account_after = await self.ledger_client.get_account(budget_id, account_id)
            except Exception as e:
                logger.warning(f"Could not refresh account {account_id} after reconciliation: {e}")
                warnings.append(f"Could not refresh account balances after reconciliation: {e}")

        balance_change = (
            add_milli(account_after.balance, -initial_account.balance) if any_applied else 0
        )

        advice = build_advice(summary, analysis, options, balance_change, currency)

        elapsed = (datetime.now() - start_time).total_seconds()
        logger.info(
            f"Reconciliation {mode} complete in {elapsed:.2f}s: "
            f"{summary.transactions_created} created, {summary.transactions_updated} updated, "
            f"{summary.dates_adjusted} dates adjusted, {summary.failed_actions} failed"
        )

        return ExecutionResult(
            summary=summary,
            account_before=initial_account,
            account_after=account_after,
            actions_taken=tuple(actions),
            recommendations=tuple(advice),
            balance_verification=balance_verification,
            warnings=tuple(warnings),
        )

    async def _apply(
        self, action: PlannedAction, budget_id: str, account_id: str
    ) -> ExecutionActionRecord:
        """Carry out one planned action, capturing any failure on the record."""
        try:
            if isinstance(action.payload, NewTransaction):
                stored = await self.ledger_client.create_transaction(budget_id, action.payload)
            else:
                stored = await self.ledger_client.update_transaction(
                    budget_id, action.transaction_id, action.payload
                )
        except Exception as e:
            error = e
            if not isinstance(error, LedgerClientError):
                error = LedgerClientError(
                    str(e) or type(e).__name__,
                    budget_id=budget_id,
                    account_id=account_id,
                    transaction_id=action.transaction_id,
                )
            logger.warning(f"Ledger action failed ({action.type}): {error}")
            return ExecutionActionRecord(
                type=action.type,
                reason=_describe(action, STATUS_FAILED),
                status=STATUS_FAILED,
                transaction_id=action.transaction_id,
                transaction=action.preview,
                error=str(error),
            )

        transaction_id = action.transaction_id or (stored or {}).get("id")
        logger.debug(f"Applied {action.type} for transaction {transaction_id}")
        return ExecutionActionRecord(
            type=action.type,
            reason=_describe(action, STATUS_APPLIED),
            status=STATUS_APPLIED,
            transaction_id=transaction_id,
            transaction=stored,
        )

    async def _verify_balance(
        self,
        analysis: ReconciliationAnalysis,
        options: ExecutionOptions,
        budget_id: str,
        account_id: str,
        warnings: list[str],
    ) -> Optional[BalanceVerification]:
        """
        Compare the cleared balance as of the statement date with the statement.

        Dry runs use the analysis balance; apply mode re-reads the ledger so
        the changes just made are included.
        """
        if options.statement_date is None:
            return None

        statement_balance = options.statement_balance
        if statement_balance is None:
            statement_balance = analysis.balance_info.target_statement.value
        statement_milli = to_milli(Decimal(statement_balance))

        if options.dry_run:
            ledger_milli = analysis.balance_info.current_cleared.value_milliunits
        else:
            try:
                transactions = await self.ledger_client.list_transactions_for_account(
                    budget_id, account_id
                )
            except Exception as e:
                logger.warning(f"Balance verification skipped for account {account_id}: {e}")
                warnings.append(f"Balance verification skipped: {e}")
                return None
            ledger_milli = sum_milli(
                t.amount
                for t in transactions
                if t.cleared.counts_as_cleared and t.date <= options.statement_date
            )

        discrepancy = add_milli(statement_milli, -ledger_milli)
        return BalanceVerification(
            status=STATUS_RECONCILED if discrepancy == 0 else STATUS_DISCREPANCY,
            statement_date=options.statement_date.isoformat(),
            statement_balance_milliunits=statement_milli,
            ledger_cleared_balance_milliunits=ledger_milli,
            discrepancy_milliunits=discrepancy,
            likely_causes=likely_causes(discrepancy),
        )
