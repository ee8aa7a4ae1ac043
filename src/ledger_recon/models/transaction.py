"""Data models for statement and ledger transactions and their matches."""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from ..utils.dates import parse_iso_date
from ..utils.money import assert_milli, from_milli


class ClearedState(Enum):
    """Cleared state of a ledger transaction."""

    UNCLEARED = "uncleared"
    CLEARED = "cleared"
    RECONCILED = "reconciled"

    @property
    def counts_as_cleared(self) -> bool:
        return self in (ClearedState.CLEARED, ClearedState.RECONCILED)


class MatchConfidence(Enum):
    """Confidence tier of a match."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NONE = "none"


@dataclass(frozen=True)
class ExternalTransaction:
    """
    A transaction reported by the bank statement.

    Amounts are signed Decimals in major currency units (negative = outflow).
    """

    id: str
    date: date
    amount: Decimal
    payee: str
    memo: Optional[str] = None

    # 1-based row in the source statement, header included
    source_row: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "amount": float(self.amount),
            "payee": self.payee,
            "memo": self.memo,
            "source_row": self.source_row,
        }


@dataclass(frozen=True)
class InternalTransaction:
    """
    A transaction already recorded in the ledger.

    Amounts are signed integer milliunits.
    """

    id: str
    date: date
    amount: int
    payee_name: Optional[str] = None
    category_name: Optional[str] = None
    cleared: ClearedState = ClearedState.UNCLEARED
    approved: bool = False
    memo: Optional[str] = None

    def __post_init__(self) -> None:
        assert_milli(self.amount, f"Ledger transaction {self.id} amount must be integer milliunits")

    @property
    def amount_decimal(self) -> Decimal:
        return from_milli(self.amount)

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "InternalTransaction":
        """Build from a ledger API transaction payload."""
        return cls(
            id=str(payload["id"]),
            date=parse_iso_date(payload["date"]),
            amount=payload["amount"],
            payee_name=payload.get("payee_name") or None,
            category_name=payload.get("category_name") or None,
            cleared=ClearedState(payload.get("cleared", "uncleared")),
            approved=bool(payload.get("approved", False)),
            memo=payload.get("memo") or None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "amount": self.amount,
            "payee_name": self.payee_name,
            "category_name": self.category_name,
            "cleared": self.cleared.value,
            "approved": self.approved,
            "memo": self.memo,
        }


@dataclass(frozen=True)
class MatchCandidate:
    """A ledger transaction scored against one statement transaction."""

    internal_transaction: InternalTransaction

    # 0-100
    confidence: int

    match_reason: str
    explanation: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "internal_transaction": self.internal_transaction.to_dict(),
            "confidence": self.confidence,
            "match_reason": self.match_reason,
            "explanation": self.explanation,
        }


@dataclass(frozen=True)
class TransactionMatch:
    """Outcome of matching one statement transaction against the ledger."""

    external_transaction: ExternalTransaction
    confidence: MatchConfidence
    confidence_score: int
    match_reason: str

    # Best ledger transaction (high and medium tiers only)
    internal_transaction: Optional[InternalTransaction] = None

    # Top candidates (medium and low tiers)
    candidates: tuple[MatchCandidate, ...] = field(default_factory=tuple)

    top_confidence: Optional[int] = None
    action_hint: Optional[str] = None
    recommendation: Optional[str] = None

    @property
    def date_variance_days(self) -> Optional[int]:
        if self.internal_transaction is None:
            return None
        return abs((self.external_transaction.date - self.internal_transaction.date).days)

    def to_dict(self) -> dict[str, Any]:
        return {
            "external_transaction": self.external_transaction.to_dict(),
            "internal_transaction": (
                self.internal_transaction.to_dict() if self.internal_transaction else None
            ),
            "candidates": [c.to_dict() for c in self.candidates],
            "confidence": self.confidence.value,
            "confidence_score": self.confidence_score,
            "match_reason": self.match_reason,
            "top_confidence": self.top_confidence,
            "action_hint": self.action_hint,
            "recommendation": self.recommendation,
        }
