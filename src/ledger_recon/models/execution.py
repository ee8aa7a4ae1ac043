"""Data models for the execution phase."""

from dataclasses import dataclass, field
from typing import Any, Optional

ACTION_CREATE = "create_transaction"
ACTION_UPDATE = "update_transaction"

STATUS_PLANNED = "planned"
STATUS_APPLIED = "applied"
STATUS_FAILED = "failed"


@dataclass(frozen=True)
class AccountSnapshot:
    """Account balances in milliunits."""

    balance: int
    cleared_balance: int
    uncleared_balance: int

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "AccountSnapshot":
        return cls(
            balance=int(payload.get("balance", 0)),
            cleared_balance=int(payload.get("cleared_balance", 0)),
            uncleared_balance=int(payload.get("uncleared_balance", 0)),
        )

    def to_dict(self) -> dict[str, int]:
        return {
            "balance": self.balance,
            "cleared_balance": self.cleared_balance,
            "uncleared_balance": self.uncleared_balance,
        }


@dataclass(frozen=True)
class ExecutionActionRecord:
    """One action the executor took (or would take, in a dry run)."""

    type: str
    reason: str
    status: str
    transaction_id: Optional[str] = None
    transaction: Optional[dict[str, Any]] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status != STATUS_FAILED

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "status": self.status,
            "transaction_id": self.transaction_id,
            "transaction": self.transaction,
            "reason": self.reason,
            "error": self.error,
        }


@dataclass
class ExecutionSummary:
    """Counts for an execution run. Same shape for dry run and apply mode."""

    external_transactions_count: int
    internal_transactions_count: int
    matches_found: int
    missing_in_ledger: int
    missing_on_statement: int
    transactions_created: int = 0
    transactions_updated: int = 0
    dates_adjusted: int = 0
    failed_actions: int = 0
    dry_run: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "external_transactions_count": self.external_transactions_count,
            "internal_transactions_count": self.internal_transactions_count,
            "matches_found": self.matches_found,
            "missing_in_ledger": self.missing_in_ledger,
            "missing_on_statement": self.missing_on_statement,
            "transactions_created": self.transactions_created,
            "transactions_updated": self.transactions_updated,
            "dates_adjusted": self.dates_adjusted,
            "failed_actions": self.failed_actions,
            "dry_run": self.dry_run,
        }


@dataclass(frozen=True)
class LikelyCause:
    cause_type: str
    description: str
    confidence: float
    amount_milliunits: int
    suggested_resolution: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "cause_type": self.cause_type,
            "description": self.description,
            "confidence": self.confidence,
            "amount_milliunits": self.amount_milliunits,
            "suggested_resolution": self.suggested_resolution,
        }


@dataclass(frozen=True)
class BalanceVerification:
    """Cleared ledger balance as of the statement date versus the statement."""

    status: str
    statement_date: str
    statement_balance_milliunits: int
    ledger_cleared_balance_milliunits: int
    discrepancy_milliunits: int
    likely_causes: tuple[LikelyCause, ...] = ()

    @property
    def balance_matches_exactly(self) -> bool:
        return self.discrepancy_milliunits == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "statement_date": self.statement_date,
            "statement_balance_milliunits": self.statement_balance_milliunits,
            "ledger_cleared_balance_milliunits": self.ledger_cleared_balance_milliunits,
            "discrepancy_milliunits": self.discrepancy_milliunits,
            "balance_matches_exactly": self.balance_matches_exactly,
            "likely_causes": [c.to_dict() for c in self.likely_causes],
        }


@dataclass(frozen=True)
class ExecutionResult:
    summary: ExecutionSummary
    account_before: AccountSnapshot
    account_after: AccountSnapshot
    actions_taken: tuple[ExecutionActionRecord, ...]
    recommendations: tuple[str, ...]
    balance_verification: Optional[BalanceVerification] = None
    warnings: tuple[str, ...] = field(default_factory=tuple)

    @property
    def failed_actions(self) -> list[ExecutionActionRecord]:
        return [a for a in self.actions_taken if not a.succeeded]

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "summary": self.summary.to_dict(),
            "account_balance": {
                "before": self.account_before.to_dict(),
                "after": self.account_after.to_dict(),
            },
            "actions_taken": [a.to_dict() for a in self.actions_taken],
            "recommendations": list(self.recommendations),
            "warnings": list(self.warnings),
        }
        if self.balance_verification is not None:
            data["balance_verification"] = self.balance_verification.to_dict()
        return data
