"""Payee similarity and transaction matching."""

from .matcher import (
    MatchingEngine,
    amounts_match,
    dates_match,
    score_candidate,
    transaction_priority,
    find_candidates,
    classify,
    consume,
    match_all,
)
from .payee import (
    normalize_payee,
    normalized_match,
    fuzzy_similarity,
    token_similarity,
    payee_similarity,
)

__all__ = [
    "MatchingEngine",
    "amounts_match",
    "dates_match",
    "score_candidate",
    "transaction_priority",
    "find_candidates",
    "classify",
    "consume",
    "match_all",
    "normalize_payee",
    "normalized_match",
    "fuzzy_similarity",
    "token_similarity",
    "payee_similarity",
]
