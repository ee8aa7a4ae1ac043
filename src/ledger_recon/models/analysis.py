"""Data models for reconciliation analysis results."""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

from ..utils.money import MoneyValue
from .transaction import ExternalTransaction, InternalTransaction, TransactionMatch

if TYPE_CHECKING:
    from .recommendation import ActionableRecommendation


class InsightKind(Enum):
    REPEAT_AMOUNT = "repeat_amount"
    NEAR_MATCH = "near_match"
    ANOMALY = "anomaly"


class InsightSeverity(Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass(frozen=True)
class BalanceInfo:
    """
    Ledger balances compared with the statement.

    ``discrepancy`` is ``target_statement - current_cleared``: positive means
    the statement shows more than the ledger has cleared.
    """

    current_cleared: MoneyValue
    current_uncleared: MoneyValue
    current_total: MoneyValue
    target_statement: MoneyValue
    discrepancy: MoneyValue
    on_track: bool

    @property
    def currency(self) -> str:
        return self.current_cleared.currency

    def to_dict(self) -> dict[str, Any]:
        return {
            "current_cleared": self.current_cleared.to_dict(),
            "current_uncleared": self.current_uncleared.to_dict(),
            "current_total": self.current_total.to_dict(),
            "target_statement": self.target_statement.to_dict(),
            "discrepancy": self.discrepancy.to_dict(),
            "on_track": self.on_track,
        }


@dataclass(frozen=True)
class ReconciliationInsight:
    """A detected pattern that helps explain the discrepancy."""

    # Derived from the insight content, stable across runs on the same input
    id: str

    kind: InsightKind
    severity: InsightSeverity
    title: str
    description: str
    evidence: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.kind.value,
            "severity": self.severity.value,
            "title": self.title,
            "description": self.description,
            "evidence": self.evidence,
        }


@dataclass(frozen=True)
class ReconciliationSummary:
    """Counts and balances for one analysis run."""

    statement_date_range: str
    external_transactions_count: int
    internal_transactions_count: int
    auto_matched: int
    suggested_matches: int
    unmatched_external: int
    unmatched_internal: int
    current_cleared_balance: MoneyValue
    target_statement_balance: MoneyValue
    discrepancy: MoneyValue
    discrepancy_explanation: str
    discrepancy_direction: str

    @property
    def match_rate(self) -> float:
        """Percentage of statement transactions auto-matched."""
        if self.external_transactions_count == 0:
            return 0.0
        return (self.auto_matched / self.external_transactions_count) * 100

    def to_dict(self) -> dict[str, Any]:
        return {
            "statement_date_range": self.statement_date_range,
            "external_transactions_count": self.external_transactions_count,
            "internal_transactions_count": self.internal_transactions_count,
            "auto_matched": self.auto_matched,
            "suggested_matches": self.suggested_matches,
            "unmatched_external": self.unmatched_external,
            "unmatched_internal": self.unmatched_internal,
            "current_cleared_balance": self.current_cleared_balance.to_dict(),
            "target_statement_balance": self.target_statement_balance.to_dict(),
            "discrepancy": self.discrepancy.to_dict(),
            "discrepancy_explanation": self.discrepancy_explanation,
            "discrepancy_direction": self.discrepancy_direction,
        }


@dataclass(frozen=True)
class ReconciliationAnalysis:
    """Aggregate output of the analysis phase. Never mutated after return."""

    summary: ReconciliationSummary
    auto_matches: tuple[TransactionMatch, ...]
    suggested_matches: tuple[TransactionMatch, ...]
    unmatched_external: tuple[ExternalTransaction, ...]
    unmatched_internal: tuple[InternalTransaction, ...]
    balance_info: BalanceInfo
    next_steps: tuple[str, ...]
    insights: tuple[ReconciliationInsight, ...]
    recommendations: Optional[tuple["ActionableRecommendation", ...]] = None

    # Non-fatal statement row errors carried through from the parser
    parse_errors: tuple[str, ...] = ()

    @property
    def currency(self) -> str:
        return self.balance_info.currency

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "phase": "analysis",
            "summary": self.summary.to_dict(),
            "auto_matches": [m.to_dict() for m in self.auto_matches],
            "suggested_matches": [m.to_dict() for m in self.suggested_matches],
            "unmatched_external": [t.to_dict() for t in self.unmatched_external],
            "unmatched_internal": [t.to_dict() for t in self.unmatched_internal],
            "balance_info": self.balance_info.to_dict(),
            "next_steps": list(self.next_steps),
            "insights": [i.to_dict() for i in self.insights],
            "parse_errors": list(self.parse_errors),
        }
        if self.recommendations is not None:
            data["recommendations"] = [r.to_dict() for r in self.recommendations]
        return data
