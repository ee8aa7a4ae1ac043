"""
Actionable recommendations.

The four recommendation kinds form a closed set. Each is its own frozen
dataclass with a typed ``parameters`` payload; code that handles them
dispatches with ``isinstance`` and ends in ``assert_never``.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar, Optional, Union

from ..utils.money import MoneyValue
from .transaction import ClearedState, ExternalTransaction

RECOMMENDATION_VERSION = "1.0"


class RecommendationPriority(Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return {"high": 3, "medium": 2, "low": 1}[self.value]


class ManualReviewIssue(Enum):
    COMPLEX_MATCH = "complex_match"
    LARGE_DISCREPANCY = "large_discrepancy"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class RecommendationMetadata:
    version: str
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {"version": self.version, "created_at": self.created_at.isoformat()}


@dataclass(frozen=True)
class CreateTransactionParams:
    account_id: str
    date: date
    amount: Decimal
    payee_name: str
    cleared: ClearedState = ClearedState.CLEARED
    approved: bool = True
    memo: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "account_id": self.account_id,
            "date": self.date.isoformat(),
            "amount": float(self.amount),
            "payee_name": self.payee_name,
            "cleared": self.cleared.value,
            "approved": self.approved,
            "memo": self.memo,
        }


@dataclass(frozen=True)
class UpdateClearedParams:
    transaction_id: str
    cleared: ClearedState

    def to_dict(self) -> dict[str, Any]:
        return {"transaction_id": self.transaction_id, "cleared": self.cleared.value}


@dataclass(frozen=True)
class ReviewDuplicateParams:
    candidate_ids: tuple[str, ...]
    external_transaction: ExternalTransaction
    suggested_match_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "candidate_ids": list(self.candidate_ids),
            "external_transaction": self.external_transaction.to_dict(),
            "suggested_match_id": self.suggested_match_id,
        }


@dataclass(frozen=True)
class ManualReviewParams:
    issue_type: ManualReviewIssue

    def to_dict(self) -> dict[str, Any]:
        return {"issue_type": self.issue_type.value}


@dataclass(frozen=True, kw_only=True)
class _Recommendation:
    """Fields shared by every recommendation kind."""

    kind: ClassVar[str]

    id: str
    priority: RecommendationPriority

    # 0.0 to 1.0
    confidence: float

    message: str
    reason: str
    estimated_impact: MoneyValue
    account_id: str
    metadata: RecommendationMetadata
    source_insight_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "action_type": self.kind,
            "priority": self.priority.value,
            "confidence": self.confidence,
            "message": self.message,
            "reason": self.reason,
            "estimated_impact": self.estimated_impact.to_dict(),
            "account_id": self.account_id,
            "metadata": self.metadata.to_dict(),
            "parameters": self.parameters.to_dict(),  # type: ignore[attr-defined]
        }
        if self.source_insight_id is not None:
            data["source_insight_id"] = self.source_insight_id
        return data


@dataclass(frozen=True, kw_only=True)
class CreateTransactionRecommendation(_Recommendation):
    kind: ClassVar[str] = "create_transaction"
    parameters: CreateTransactionParams


@dataclass(frozen=True, kw_only=True)
class UpdateClearedRecommendation(_Recommendation):
    kind: ClassVar[str] = "update_cleared"
    parameters: UpdateClearedParams


@dataclass(frozen=True, kw_only=True)
class ReviewDuplicateRecommendation(_Recommendation):
    kind: ClassVar[str] = "review_duplicate"
    parameters: ReviewDuplicateParams


@dataclass(frozen=True, kw_only=True)
class ManualReviewRecommendation(_Recommendation):
    kind: ClassVar[str] = "manual_review"
    parameters: ManualReviewParams


ActionableRecommendation = Union[
    CreateTransactionRecommendation,
    UpdateClearedRecommendation,
    ReviewDuplicateRecommendation,
    ManualReviewRecommendation,
]
