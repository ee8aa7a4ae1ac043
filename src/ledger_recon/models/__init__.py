"""Data models for reconciliation."""

from .transaction import (
    ClearedState,
    MatchConfidence,
    ExternalTransaction,
    InternalTransaction,
    MatchCandidate,
    TransactionMatch,
)
from .analysis import (
    InsightKind,
    InsightSeverity,
    BalanceInfo,
    ReconciliationInsight,
    ReconciliationSummary,
    ReconciliationAnalysis,
)
from .recommendation import (
    ActionableRecommendation,
    CreateTransactionRecommendation,
    UpdateClearedRecommendation,
    ReviewDuplicateRecommendation,
    ManualReviewRecommendation,
    CreateTransactionParams,
    UpdateClearedParams,
    ReviewDuplicateParams,
    ManualReviewParams,
    ManualReviewIssue,
    RecommendationMetadata,
    RecommendationPriority,
)
from .execution import (
    AccountSnapshot,
    BalanceVerification,
    ExecutionActionRecord,
    ExecutionResult,
    ExecutionSummary,
    LikelyCause,
)

__all__ = [
    "ClearedState",
    "MatchConfidence",
    "ExternalTransaction",
    "InternalTransaction",
    "MatchCandidate",
    "TransactionMatch",
    "InsightKind",
    "InsightSeverity",
    "BalanceInfo",
    "ReconciliationInsight",
    "ReconciliationSummary",
    "ReconciliationAnalysis",
    "ActionableRecommendation",
    "CreateTransactionRecommendation",
    "UpdateClearedRecommendation",
    "ReviewDuplicateRecommendation",
    "ManualReviewRecommendation",
    "CreateTransactionParams",
    "UpdateClearedParams",
    "ReviewDuplicateParams",
    "ManualReviewParams",
    "ManualReviewIssue",
    "RecommendationMetadata",
    "RecommendationPriority",
    "AccountSnapshot",
    "BalanceVerification",
    "ExecutionActionRecord",
    "ExecutionResult",
    "ExecutionSummary",
    "LikelyCause",
]
