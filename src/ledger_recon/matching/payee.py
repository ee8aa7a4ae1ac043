"""
Payee normalization and similarity scoring.

Two tiers: a cheap comparison of normalized strings catches most matches;
fuzzy (edit distance) and token (word overlap) scores handle the rest.
All scores are on a 0-100 scale.
"""

from typing import Optional
import re

_NON_ALNUM = re.compile(r"[^a-z0-9]")
_TOKEN = re.compile(r"[a-z]+|[0-9]+")


def normalize_payee(payee: Optional[str]) -> str:
    """
    Lowercase and drop everything except ASCII letters and digits.

    >>> normalize_payee("SHELL #1234 OAKVILLE ON")
    'shell1234oakvilleon'
    """
    if not payee:
        return ""
    return _NON_ALNUM.sub("", payee.lower())


def normalized_match(payee1: Optional[str], payee2: Optional[str]) -> bool:
    """True if both payees normalize to the same non-empty string."""
    norm1 = normalize_payee(payee1)
    norm2 = normalize_payee(payee2)
    if not norm1 or not norm2:
        return False
    return norm1 == norm2


def _levenshtein(s1: str, s2: str) -> int:
    """Edit distance using a rolling row."""
    if len(s1) < len(s2):
        s1, s2 = s2, s1

    previous = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1, start=1):
        current = [i]
        for j, c2 in enumerate(s2, start=1):
            cost = 0 if c1 == c2 else 1
            current.append(
                min(
                    previous[j] + 1,  # deletion
                    current[j - 1] + 1,  # insertion
                    previous[j - 1] + cost,  # substitution
                )
            )
        previous = current
    return previous[-1]


def fuzzy_similarity(payee1: Optional[str], payee2: Optional[str]) -> float:
    """Edit-distance similarity of the normalized payees, 0-100."""
    norm1 = normalize_payee(payee1)
    norm2 = normalize_payee(payee2)

    if not norm1 or not norm2:
        return 0.0
    if norm1 == norm2:
        return 100.0

    distance = _levenshtein(norm1, norm2)
    max_len = max(len(norm1), len(norm2))

    similarity = (1 - distance / max_len) * 100
    return max(0.0, min(100.0, similarity))


def token_similarity(payee1: Optional[str], payee2: Optional[str]) -> float:
    """
    Jaccard overlap of letter runs and digit runs, 0-100.

    Tokens split where letters meet digits, so "SHELL #1234" and
    "1234 Shell" both tokenize to {"shell", "1234"} and score 100.
    """
    norm1 = normalize_payee(payee1)
    norm2 = normalize_payee(payee2)

    if not norm1 or not norm2:
        return 0.0

    tokens1 = set(_TOKEN.findall(norm1))
    tokens2 = set(_TOKEN.findall(norm2))
    if not tokens1 or not tokens2:
        return 0.0

    return len(tokens1 & tokens2) / len(tokens1 | tokens2) * 100


def payee_similarity(payee1: Optional[str], payee2: Optional[str]) -> float:
    """Best of exact, fuzzy and token similarity. Entry point for the matcher."""
    if normalized_match(payee1, payee2):
        return 100.0
    return max(fuzzy_similarity(payee1, payee2), token_similarity(payee1, payee2))
