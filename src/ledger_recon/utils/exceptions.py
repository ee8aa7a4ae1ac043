"""Custom exceptions for the reconciliation application."""

from typing import Optional


class ReconciliationError(Exception):
    """Base exception for reconciliation errors."""

    pass


class StatementParseError(ReconciliationError):
    """Error reading a bank statement file."""

    pass


class ConfigurationError(ReconciliationError):
    """Error in configuration."""

    pass


class MoneyError(ReconciliationError, ValueError):
    """Invalid, fractional or unsafe milliunit arithmetic."""

    pass


class ReportGenerationError(ReconciliationError):
    """Error generating a report."""

    pass


class LedgerClientError(ReconciliationError):
    """
    A ledger API call failed.

    Carries the identifiers needed to act on the failure. Never put tokens
    or credentials into the message.
    """

    def __init__(
        self,
        message: str,
        *,
        budget_id: Optional[str] = None,
        account_id: Optional[str] = None,
        transaction_id: Optional[str] = None,
    ):
        self.budget_id = budget_id
        self.account_id = account_id
        self.transaction_id = transaction_id

        context = []
        if budget_id:
            context.append(f"budget={budget_id}")
        if account_id:
            context.append(f"account={account_id}")
        if transaction_id:
            context.append(f"transaction={transaction_id}")

        if context:
            message = f"{message} ({', '.join(context)})"
        super().__init__(message)


class ReconciliationAlreadyRunningError(ReconciliationError):
    """A reconciliation run for the same account is already in flight."""

    def __init__(self, budget_id: str, account_id: str):
        self.budget_id = budget_id
        self.account_id = account_id
        super().__init__(
            f"Reconciliation already running for budget={budget_id}, account={account_id}"
        )
