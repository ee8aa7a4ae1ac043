"""
Turns an analysis into a prioritized list of actionable recommendations.

Confidence values are fixed per recommendation source, except for duplicate
reviews, which carry the match score.
"""

from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional, Sequence, Union
import logging
import uuid

from ..models.analysis import (
    InsightKind,
    InsightSeverity,
    ReconciliationAnalysis,
    ReconciliationInsight,
)
from ..models.recommendation import (
    RECOMMENDATION_VERSION,
    ActionableRecommendation,
    CreateTransactionParams,
    CreateTransactionRecommendation,
    ManualReviewIssue,
    ManualReviewParams,
    ManualReviewRecommendation,
    RecommendationMetadata,
    RecommendationPriority,
    ReviewDuplicateParams,
    ReviewDuplicateRecommendation,
    UpdateClearedParams,
    UpdateClearedRecommendation,
)
from ..models.transaction import (
    ClearedState,
    ExternalTransaction,
    InternalTransaction,
    TransactionMatch,
)
from ..utils.money import MoneyValue, to_money_value, to_money_value_from_decimal

logger = logging.getLogger(__name__)

CONFIDENCE_CREATE_EXACT_MATCH = 0.95
CONFIDENCE_NEAR_MATCH_REVIEW = 0.7
CONFIDENCE_REPEAT_AMOUNT = 0.75
CONFIDENCE_ANOMALY_REVIEW = 0.5
CONFIDENCE_UNMATCHED_EXTERNAL = 0.8
CONFIDENCE_UPDATE_CLEARED = 0.6

SEVERITY_PRIORITY = {
    InsightSeverity.CRITICAL: RecommendationPriority.HIGH,
    InsightSeverity.WARNING: RecommendationPriority.MEDIUM,
    InsightSeverity.INFO: RecommendationPriority.LOW,
}


class _Builder:
    """Shared context for building recommendations from one analysis."""

    def __init__(self, analysis: ReconciliationAnalysis, account_id: str):
        self.analysis = analysis
        self.account_id = account_id
        self.currency = analysis.currency
        self.created_at = datetime.now(timezone.utc)

    def metadata(self) -> RecommendationMetadata:
        return RecommendationMetadata(version=RECOMMENDATION_VERSION, created_at=self.created_at)

    def zero_impact(self) -> MoneyValue:
        return to_money_value(0, self.currency)

    def from_insight(self, insight: ReconciliationInsight) -> ManualReviewRecommendation:
        if insight.kind is InsightKind.REPEAT_AMOUNT:
            confidence = CONFIDENCE_REPEAT_AMOUNT
            message = f"Review recurring pattern: {insight.title}"
            issue = ManualReviewIssue.COMPLEX_MATCH
        elif insight.kind is InsightKind.NEAR_MATCH:
            confidence = CONFIDENCE_NEAR_MATCH_REVIEW
            message = f"Review: {insight.title}"
            issue = ManualReviewIssue.COMPLEX_MATCH
        else:
            confidence = CONFIDENCE_ANOMALY_REVIEW
            message = f"Review: {insight.title}"
            issue = (
                ManualReviewIssue.LARGE_DISCREPANCY
                if insight.severity is InsightSeverity.CRITICAL
                else ManualReviewIssue.UNKNOWN
            )

        return ManualReviewRecommendation(
            id=str(uuid.uuid4()),
            priority=SEVERITY_PRIORITY[insight.severity],
            confidence=confidence,
            message=message,
            reason=insight.description,
            estimated_impact=self.zero_impact(),
            account_id=self.account_id,
            metadata=self.metadata(),
            source_insight_id=insight.id,
            parameters=ManualReviewParams(issue_type=issue),
        )

    def create_params(self, txn: ExternalTransaction) -> CreateTransactionParams:
        return CreateTransactionParams(
            account_id=self.account_id,
            date=txn.date,
            amount=txn.amount,
            payee_name=txn.payee,
            cleared=ClearedState.CLEARED,
            approved=True,
            memo=txn.memo or None,
        )

    def missing_transaction(self, txn: ExternalTransaction) -> CreateTransactionRecommendation:
        return CreateTransactionRecommendation(
            id=str(uuid.uuid4()),
            priority=RecommendationPriority.MEDIUM,
            confidence=CONFIDENCE_UNMATCHED_EXTERNAL,
            message=f"Create missing transaction: {txn.payee}",
            reason="Transaction appears on bank statement but not in the ledger",
            estimated_impact=to_money_value_from_decimal(txn.amount, self.currency),
            account_id=self.account_id,
            metadata=self.metadata(),
            parameters=self.create_params(txn),
        )

    def suggested_match(
        self, match: TransactionMatch
    ) -> Union[CreateTransactionRecommendation, ReviewDuplicateRecommendation]:
        txn = match.external_transaction
        candidate_ids = tuple(c.internal_transaction.id for c in match.candidates)
        if match.internal_transaction is not None and not candidate_ids:
            candidate_ids = (match.internal_transaction.id,)

        # Any same-amount ledger candidate means creating would risk a duplicate
        if candidate_ids:
            return ReviewDuplicateRecommendation(
                id=str(uuid.uuid4()),
                priority=RecommendationPriority.HIGH,
                confidence=max(0.0, min(1.0, match.confidence_score / 100)),
                message=f"Review possible match: {txn.payee}",
                reason=match.match_reason,
                estimated_impact=self.zero_impact(),
                account_id=self.account_id,
                metadata=self.metadata(),
                parameters=ReviewDuplicateParams(
                    candidate_ids=candidate_ids,
                    external_transaction=txn,
                    suggested_match_id=(
                        match.internal_transaction.id
                        if match.internal_transaction is not None
                        else None
                    ),
                ),
            )

        return CreateTransactionRecommendation(
            id=str(uuid.uuid4()),
            priority=RecommendationPriority.HIGH,
            confidence=CONFIDENCE_CREATE_EXACT_MATCH,
            message=f"Create transaction for {txn.payee}",
            reason="This transaction exactly matches your discrepancy",
            estimated_impact=to_money_value_from_decimal(txn.amount, self.currency),
            account_id=self.account_id,
            metadata=self.metadata(),
            parameters=self.create_params(txn),
        )

    def mark_cleared(self, txn: InternalTransaction) -> UpdateClearedRecommendation:
        return UpdateClearedRecommendation(
            id=str(uuid.uuid4()),
            priority=RecommendationPriority.LOW,
            confidence=CONFIDENCE_UPDATE_CLEARED,
            message=f"Mark transaction as cleared: {txn.payee_name or 'Unknown'}",
            reason="Transaction exists in the ledger but not yet cleared",
            estimated_impact=self.zero_impact(),
            account_id=self.account_id,
            metadata=self.metadata(),
            parameters=UpdateClearedParams(transaction_id=txn.id, cleared=ClearedState.CLEARED),
        )


def sort_recommendations(
    recommendations: Sequence[ActionableRecommendation],
) -> list[ActionableRecommendation]:
    """Priority first, then confidence, both descending. Ties keep their order."""
    return sorted(recommendations, key=lambda r: (-r.priority.rank, -r.confidence))


def generate_recommendations(
    analysis: ReconciliationAnalysis, account_id: str
) -> list[ActionableRecommendation]:
    """
    Build recommendations for an analysis.

    Args:
        analysis: Result of the analysis phase
        account_id: Ledger account the recommendations target

    Returns:
        Recommendations sorted by priority and confidence
    """
    builder = _Builder(analysis, account_id)
    recommendations: list[ActionableRecommendation] = []

    for insight in analysis.insights:
        recommendations.append(builder.from_insight(insight))

    for txn in analysis.unmatched_external:
        recommendations.append(builder.missing_transaction(txn))

    for match in analysis.suggested_matches:
        recommendations.append(builder.suggested_match(match))

    for internal in analysis.unmatched_internal:
        if internal.cleared is ClearedState.UNCLEARED:
            recommendations.append(builder.mark_cleared(internal))

    logger.debug(f"Generated {len(recommendations)} recommendations for account {account_id}")
    return sort_recommendations(recommendations)


def attach_recommendations(
    analysis: ReconciliationAnalysis,
    recommendations: Optional[Sequence[ActionableRecommendation]] = None,
    account_id: str = "",
) -> ReconciliationAnalysis:
    """Return a copy of ``analysis`` carrying recommendations, generating them if not given."""
    if recommendations is None:
        recommendations = generate_recommendations(analysis, account_id)
    return replace(analysis, recommendations=tuple(recommendations))
