"""Discrepancy analysis and recommendation generation."""

from .analyzer import (
    ReconciliationAnalyzer,
    calculate_balances,
    detect_insights,
    partition_matches,
)
from .recommendations import (
    attach_recommendations,
    generate_recommendations,
    sort_recommendations,
)

__all__ = [
    "ReconciliationAnalyzer",
    "calculate_balances",
    "detect_insights",
    "partition_matches",
    "attach_recommendations",
    "generate_recommendations",
    "sort_recommendations",
]
