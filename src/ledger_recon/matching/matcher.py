"""
Confidence-tiered matching of statement transactions to ledger transactions.

Each ledger candidate is scored out of 100:

- Amount within tolerance: 40 points, and required. A candidate whose
  amount does not match is dropped no matter how well the rest lines up.
- Date within tolerance: 40 points (no partial credit).
- Payee: 20 for an exact normalized match, 15/10/6 for similarity of at
  least 95/80/60.

The best score decides the tier: ``high`` at or above the auto-match
threshold, ``medium`` at or above the suggestion threshold, ``low`` down to
MIN_CANDIDATE_SCORE, otherwise ``none``.
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import AbstractSet, Iterable, Sequence
import logging

from ..config import MatchingConfig
from ..models.transaction import (
    ClearedState,
    ExternalTransaction,
    InternalTransaction,
    MatchCandidate,
    MatchConfidence,
    TransactionMatch,
)
from ..utils.dates import days_between
from ..utils.money import from_milli
from .payee import normalized_match, payee_similarity

logger = logging.getLogger(__name__)

MIN_CANDIDATE_SCORE = 30
MAX_CANDIDATES = 3

AMOUNT_POINTS = 40
DATE_POINTS = 40

# (minimum similarity, points), checked in order after an exact normalized match
PAYEE_POINT_TIERS = ((95, 15, "highly similar"), (80, 10, "similar"), (60, 6, "somewhat similar"))
PAYEE_EXACT_POINTS = 20

HINT_ADD = "add_to_ledger"
HINT_REVIEW_AND_CHOOSE = "review_and_choose"
HINT_REVIEW_OR_ADD = "review_or_add_new"

_CENT = Decimal("0.01")


def amounts_match(
    external_amount: Decimal, internal_milliunits: int, tolerance_cents: int
) -> bool:
    """
    Compare a statement amount with a ledger amount.

    The absolute difference is rounded to cents first; a difference equal to
    the tolerance passes.
    """
    difference = abs(Decimal(external_amount) - from_milli(internal_milliunits))
    difference = difference.quantize(_CENT, rounding=ROUND_HALF_UP)
    return difference <= Decimal(tolerance_cents) / 100


def dates_match(date1, date2, tolerance_days: int) -> bool:
    return days_between(date1, date2) <= tolerance_days


def score_candidate(
    external: ExternalTransaction,
    internal: InternalTransaction,
    config: MatchingConfig,
) -> tuple[int, list[str]]:
    """
    Score one ledger transaction against a statement transaction.

    Returns:
        Tuple of (score 0 or 40-100, list of human-readable reasons)
    """
    if not amounts_match(external.amount, internal.amount, config.amount_tolerance_cents):
        return 0, ["Amount does not match"]

    score = AMOUNT_POINTS
    reasons = ["Amount matches"]

    if dates_match(external.date, internal.date, config.date_tolerance_days):
        score += DATE_POINTS
        days = days_between(external.date, internal.date)
        reasons.append("Exact date match" if days == 0 else f"Date within {days} days")

    if normalized_match(external.payee, internal.payee_name):
        score += PAYEE_EXACT_POINTS
        reasons.append("Payee exact match")
    else:
        similarity = payee_similarity(external.payee, internal.payee_name)
        for minimum, points, label in PAYEE_POINT_TIERS:
            if similarity >= minimum:
                score += points
                reasons.append(f"Payee {label} ({round(similarity)}%)")
                break

    return score, reasons


def transaction_priority(internal: InternalTransaction) -> int:
    """Uncleared entries are waiting for the bank and make the best targets."""
    if internal.cleared is ClearedState.UNCLEARED:
        return 10
    if internal.cleared is ClearedState.CLEARED:
        return 5
    if internal.cleared is ClearedState.RECONCILED:
        return 1
    return 0


def _opposite_sign(external: ExternalTransaction, internal: InternalTransaction) -> bool:
    return (external.amount > 0) != (internal.amount > 0)


def _build_explanation(internal: InternalTransaction, score: int, reasons: list[str]) -> str:
    parts = [f"Match confidence: {score}%", ", ".join(reasons)]
    if internal.cleared is ClearedState.UNCLEARED:
        parts.append("(Uncleared - awaiting confirmation)")
    return " | ".join(parts)


def find_candidates(
    external: ExternalTransaction,
    pool: Iterable[InternalTransaction],
    used_ids: AbstractSet[str],
    config: MatchingConfig,
) -> list[MatchCandidate]:
    """
    Score every eligible ledger transaction and order the survivors.

    Already-consumed and opposite-sign transactions are skipped. Ordering is
    score descending, then cleared-state priority descending, then date
    proximity ascending; remaining ties keep pool order.
    """
    scored: list[tuple[MatchCandidate, int, int]] = []

    for internal in pool:
        if internal.id in used_ids:
            continue
        if _opposite_sign(external, internal):
            continue

        score, reasons = score_candidate(external, internal, config)
        if score < MIN_CANDIDATE_SCORE:
            continue

        candidate = MatchCandidate(
            internal_transaction=internal,
            confidence=score,
            match_reason=", ".join(reasons),
            explanation=_build_explanation(internal, score, reasons),
        )
        scored.append(
            (candidate, transaction_priority(internal), days_between(external.date, internal.date))
        )

    scored.sort(key=lambda item: (-item[0].confidence, -item[1], item[2]))
    return [candidate for candidate, _, _ in scored]


def classify(
    external: ExternalTransaction,
    pool: Sequence[InternalTransaction],
    used_ids: AbstractSet[str],
    config: MatchingConfig,
) -> TransactionMatch:
    """
    Find the best ledger match for one statement transaction.

    Only a ``high`` result should consume its ledger transaction; the caller
    does that (see :func:`consume`).
    """
    candidates = find_candidates(external, pool, used_ids, config)

    if not candidates:
        return TransactionMatch(
            external_transaction=external,
            confidence=MatchConfidence.NONE,
            confidence_score=0,
            match_reason="No matching transaction found in ledger",
            action_hint=HINT_ADD,
            recommendation="This transaction appears on the bank statement but not in the ledger",
        )

    best = candidates[0]
    best_score = best.confidence

    if best_score >= config.auto_match_threshold:
        return TransactionMatch(
            external_transaction=external,
            internal_transaction=best.internal_transaction,
            confidence=MatchConfidence.HIGH,
            confidence_score=best_score,
            match_reason=best.match_reason,
        )

    if best_score >= config.suggestion_threshold:
        return TransactionMatch(
            external_transaction=external,
            internal_transaction=best.internal_transaction,
            candidates=tuple(candidates[:MAX_CANDIDATES]),
            confidence=MatchConfidence.MEDIUM,
            confidence_score=best_score,
            match_reason=best.match_reason,
            top_confidence=best_score,
            action_hint=HINT_REVIEW_AND_CHOOSE,
        )

    return TransactionMatch(
        external_transaction=external,
        candidates=tuple(candidates[:MAX_CANDIDATES]),
        confidence=MatchConfidence.LOW,
        confidence_score=best_score,
        match_reason="Low confidence match",
        top_confidence=best_score,
        action_hint=HINT_REVIEW_OR_ADD,
        recommendation="Consider reviewing candidates or adding as new transaction",
    )


def consume(used_ids: frozenset[str], match: TransactionMatch) -> frozenset[str]:
    """
    Return the used-id set after ``match``.

    Medium and low matches leave their candidates available, so the same
    ledger transaction may be suggested for more than one statement line.
    """
    if match.confidence is MatchConfidence.HIGH and match.internal_transaction is not None:
        return used_ids | {match.internal_transaction.id}
    return used_ids


def match_all(
    externals: Iterable[ExternalTransaction],
    internals: Sequence[InternalTransaction],
    config: MatchingConfig,
) -> list[TransactionMatch]:
    """Match statement transactions in input order, one result per transaction."""
    matches: list[TransactionMatch] = []
    used_ids: frozenset[str] = frozenset()

    for external in externals:
        match = classify(external, internals, used_ids, config)
        matches.append(match)
        used_ids = consume(used_ids, match)

    return matches


class MatchingEngine:
    """Runs the matching pass for one reconciliation and logs its outcome."""

    def __init__(self, config: MatchingConfig):
        """
        Initialize the matching engine.

        Args:
            config: Matching tolerances and thresholds
        """
        self.config = config

    def match(
        self,
        external_transactions: Sequence[ExternalTransaction],
        internal_transactions: Sequence[InternalTransaction],
    ) -> list[TransactionMatch]:
        """
        Match every statement transaction against the ledger pool.

        Args:
            external_transactions: Statement transactions, in statement order
            internal_transactions: Ledger transactions for the same window

        Returns:
            One TransactionMatch per statement transaction, in input order
        """
        start_time = datetime.now()
        logger.info(
            f"Starting matching: {len(external_transactions)} statement txns, "
            f"{len(internal_transactions)} ledger txns"
        )

        matches = match_all(external_transactions, internal_transactions, self.config)

        tier_counts: dict[str, int] = {}
        for match in matches:
            tier_counts[match.confidence.value] = tier_counts.get(match.confidence.value, 0) + 1

        elapsed = (datetime.now() - start_time).total_seconds()
        logger.info(f"Matching complete in {elapsed:.2f}s: {tier_counts}")

        return matches
