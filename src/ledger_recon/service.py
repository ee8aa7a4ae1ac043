"""
Entry points for callers: one for analysis, one for execution.

Analysis is synchronous and does no I/O. Execution is a coroutine because it
talks to the ledger in apply mode.
"""

from datetime import date
from decimal import Decimal
from typing import Optional, Sequence, Union
import logging

from .analysis.analyzer import ReconciliationAnalyzer
from .analysis.recommendations import attach_recommendations
from .config import ExecutionOptions, MatchingConfig, StatementInputConfig
from .execution.executor import ReconciliationExecutor
from .execution.locks import ExecutionLockRegistry
from .ledger.client import LedgerClient
from .models.analysis import ReconciliationAnalysis
from .models.execution import AccountSnapshot, ExecutionResult
from .models.transaction import ExternalTransaction, InternalTransaction
from .parsers.statement_parser import ParsedStatement, StatementParser
from .utils.dates import filter_to_window
from .utils.money import to_decimal

logger = logging.getLogger(__name__)

StatementInput = Union[str, ParsedStatement, Sequence[ExternalTransaction]]


def _coerce_statement(
    statement: StatementInput, statement_config: Optional[StatementInputConfig]
) -> tuple[list[ExternalTransaction], tuple[str, ...]]:
    if isinstance(statement, str):
        statement = StatementParser(statement_config).parse_text(statement)
    if isinstance(statement, ParsedStatement):
        return list(statement.transactions), statement.errors
    return list(statement), ()


def analyze_reconciliation(
    statement: StatementInput,
    internal_transactions: Sequence[InternalTransaction],
    statement_balance: Union[Decimal, int, float, str],
    *,
    budget_id: str,
    account_id: str,
    config: Optional[MatchingConfig] = None,
    currency: str = "USD",
    account_snapshot: Optional[AccountSnapshot] = None,
    statement_start: Optional[date] = None,
    statement_end: Optional[date] = None,
    include_recommendations: bool = True,
    statement_config: Optional[StatementInputConfig] = None,
) -> ReconciliationAnalysis:
    """
    Analyze a bank statement against ledger transactions.

    Args:
        statement: Statement CSV text, a ParsedStatement, or transactions
        internal_transactions: Ledger transactions for the account
        statement_balance: Closing balance on the statement, in major units
        budget_id: Budget owning the account (for logging)
        account_id: Account being reconciled
        config: Matching tolerances and thresholds (defaults if omitted)
        currency: ISO currency code for display values
        account_snapshot: Current ledger balances; summed from
            ``internal_transactions`` when omitted
        statement_start: First day of the statement window (inclusive)
        statement_end: Last day of the statement window (inclusive)
        include_recommendations: Attach recommendations to the result
        statement_config: CSV layout, used when ``statement`` is text

    Returns:
        ReconciliationAnalysis

    Raises:
        StatementParseError: If statement text cannot be parsed at all
        MoneyError: If the statement balance is not a valid amount
    """
    external, parse_errors = _coerce_statement(statement, statement_config)

    external = filter_to_window(external, statement_start, statement_end)
    internal = filter_to_window(internal_transactions, statement_start, statement_end)

    logger.info(
        f"Analyzing reconciliation for budget={budget_id}, account={account_id}: "
        f"{len(external)} statement txns, {len(internal)} ledger txns in window"
    )

    analyzer = ReconciliationAnalyzer(config or MatchingConfig(), currency=currency)
    analysis = analyzer.analyze(
        external,
        internal,
        to_decimal(statement_balance),
        account_snapshot=account_snapshot,
        parse_errors=parse_errors,
    )

    if include_recommendations:
        analysis = attach_recommendations(analysis, account_id=account_id)
    return analysis


async def execute_reconciliation(
    analysis: ReconciliationAnalysis,
    options: ExecutionOptions,
    *,
    ledger_client: LedgerClient,
    lock_registry: ExecutionLockRegistry,
    budget_id: str,
    account_id: str,
    initial_account: AccountSnapshot,
    currency: Optional[str] = None,
) -> ExecutionResult:
    """
    Apply (or dry-run) a reconciliation analysis.

    Raises:
        ReconciliationAlreadyRunningError: If the account is already being
            reconciled
    """
    executor = ReconciliationExecutor(ledger_client, lock_registry)
    return await executor.execute(
        analysis,
        options,
        budget_id=budget_id,
        account_id=account_id,
        initial_account=initial_account,
        currency=currency or analysis.currency,
    )
