"""Tests for confidence-tiered transaction matching."""

from datetime import date
from decimal import Decimal

from conftest import make_external, make_internal

from ledger_recon.config import MatchingConfig
from ledger_recon.matching.matcher import (
    HINT_ADD,
    HINT_REVIEW_AND_CHOOSE,
    HINT_REVIEW_OR_ADD,
    MatchingEngine,
    amounts_match,
    classify,
    consume,
    find_candidates,
    match_all,
    score_candidate,
)
from ledger_recon.models.transaction import ClearedState, MatchConfidence

JAN_5 = date(2024, 1, 5)


class TestAmountsMatch:
    def test_difference_equal_to_tolerance_passes(self):
        assert amounts_match(Decimal("-22.22"), -22230, tolerance_cents=1)

    def test_difference_above_tolerance_fails(self):
        assert not amounts_match(Decimal("-22.22"), -22240, tolerance_cents=1)

    def test_ledger_side_closer_to_zero(self):
        assert amounts_match(Decimal("-22.22"), -22210, tolerance_cents=1)
        assert not amounts_match(Decimal("-22.22"), -22200, tolerance_cents=1)

    def test_zero_tolerance_requires_exact_cents(self):
        assert amounts_match(Decimal("10.00"), 10000, tolerance_cents=0)
        assert not amounts_match(Decimal("10.00"), 10010, tolerance_cents=0)


class TestScoreCandidate:
    def test_perfect_match_scores_100(self, matching_config):
        external = make_external("e1", JAN_5, "-22.22", payee="Netflix")
        internal = make_internal("i1", JAN_5, -22220, payee_name="NETFLIX")

        score, reasons = score_candidate(external, internal, matching_config)

        assert score == 100
        assert "Payee exact match" in reasons

    def test_amount_mismatch_scores_zero(self, matching_config):
        external = make_external("e1", JAN_5, "-22.22", payee="Netflix")
        internal = make_internal("i1", JAN_5, -30000, payee_name="Netflix")

        score, _ = score_candidate(external, internal, matching_config)

        assert score == 0

    def test_date_at_tolerance_boundary_earns_date_points(self, matching_config):
        external = make_external("e1", JAN_5, "-22.22", payee="Netflix")
        internal = make_internal("i1", date(2024, 1, 7), -22220, payee_name="Unrelated")

        score, reasons = score_candidate(external, internal, matching_config)

        assert score == 80
        assert "Date within 2 days" in reasons

    def test_date_outside_tolerance_gets_no_date_points(self, matching_config):
        external = make_external("e1", JAN_5, "-22.22", payee="Netflix")
        internal = make_internal("i1", date(2024, 1, 8), -22220, payee_name="Netflix")

        score, _ = score_candidate(external, internal, matching_config)

        assert score == 60


class TestClassify:
    def test_high_confidence(self, matching_config):
        external = make_external("e1", JAN_5, "-22.22", payee="Netflix")
        internal = make_internal("i1", JAN_5, -22220, payee_name="Netflix")

        match = classify(external, [internal], frozenset(), matching_config)

        assert match.confidence is MatchConfidence.HIGH
        assert match.internal_transaction == internal
        assert match.confidence_score == 100

    def test_medium_confidence_carries_candidates(self, matching_config):
        external = make_external("e1", JAN_5, "-22.22", payee="Netflix")
        internal = make_internal("i1", JAN_5, -22220, payee_name="Grocer")

        match = classify(external, [internal], frozenset(), matching_config)

        assert match.confidence is MatchConfidence.MEDIUM
        assert match.confidence_score == 80
        assert match.action_hint == HINT_REVIEW_AND_CHOOSE
        assert [c.internal_transaction.id for c in match.candidates] == ["i1"]

    def test_low_confidence_has_no_best_match(self, matching_config):
        external = make_external("e1", JAN_5, "-22.22", payee="Netflix")
        internal = make_internal("i1", date(2024, 2, 1), -22220, payee_name="Grocer")

        match = classify(external, [internal], frozenset(), matching_config)

        assert match.confidence is MatchConfidence.LOW
        assert match.internal_transaction is None
        assert match.action_hint == HINT_REVIEW_OR_ADD
        assert len(match.candidates) == 1

    def test_opposite_sign_is_never_a_candidate(self, matching_config):
        external = make_external("e1", JAN_5, "-22.22", payee="Netflix")
        internal = make_internal("i1", JAN_5, 22220, payee_name="Netflix")

        match = classify(external, [internal], frozenset(), matching_config)

        assert match.confidence is MatchConfidence.NONE
        assert match.action_hint == HINT_ADD

    def test_used_ids_are_skipped(self, matching_config):
        external = make_external("e1", JAN_5, "-22.22", payee="Netflix")
        internal = make_internal("i1", JAN_5, -22220, payee_name="Netflix")

        match = classify(external, [internal], frozenset({"i1"}), matching_config)

        assert match.confidence is MatchConfidence.NONE

    def test_thresholds_come_from_config(self):
        config = MatchingConfig(auto_match_threshold=80, suggestion_threshold=60)
        external = make_external("e1", JAN_5, "-22.22", payee="Netflix")
        internal = make_internal("i1", JAN_5, -22220, payee_name="Grocer")

        match = classify(external, [internal], frozenset(), config)

        assert match.confidence is MatchConfidence.HIGH


class TestCandidateOrdering:
    def test_uncleared_preferred_on_equal_score(self, matching_config):
        external = make_external("e1", JAN_5, "-22.22", payee="Netflix")
        cleared = make_internal(
            "cleared", JAN_5, -22220, payee_name="Netflix", cleared=ClearedState.CLEARED
        )
        uncleared = make_internal("uncleared", JAN_5, -22220, payee_name="Netflix")

        candidates = find_candidates(external, [cleared, uncleared], frozenset(), matching_config)

        assert [c.internal_transaction.id for c in candidates] == ["uncleared", "cleared"]

    def test_closer_date_preferred_on_equal_score_and_state(self, matching_config):
        external = make_external("e1", JAN_5, "-22.22", payee="Netflix")
        far = make_internal("far", date(2024, 1, 7), -22220, payee_name="Netflix")
        near = make_internal("near", date(2024, 1, 6), -22220, payee_name="Netflix")

        candidates = find_candidates(external, [far, near], frozenset(), matching_config)

        assert [c.internal_transaction.id for c in candidates] == ["near", "far"]


class TestConsumption:
    def test_high_match_consumes_ledger_transaction(self, matching_config):
        externals = [
            make_external("e1", JAN_5, "-22.22", payee="Netflix"),
            make_external("e2", JAN_5, "-22.22", payee="Netflix"),
        ]
        internal = make_internal("i1", JAN_5, -22220, payee_name="Netflix")

        matches = match_all(externals, [internal], matching_config)

        assert [m.confidence for m in matches] == [MatchConfidence.HIGH, MatchConfidence.NONE]

    def test_medium_match_does_not_consume(self, matching_config):
        externals = [
            make_external("e1", JAN_5, "-22.22", payee="Netflix"),
            make_external("e2", JAN_5, "-22.22", payee="Netflix"),
        ]
        internal = make_internal("i1", JAN_5, -22220, payee_name="Grocer")

        matches = match_all(externals, [internal], matching_config)

        assert [m.confidence for m in matches] == [MatchConfidence.MEDIUM, MatchConfidence.MEDIUM]
        assert matches[0].internal_transaction.id == matches[1].internal_transaction.id == "i1"

    def test_consume_returns_new_set(self, matching_config):
        external = make_external("e1", JAN_5, "-22.22", payee="Netflix")
        internal = make_internal("i1", JAN_5, -22220, payee_name="Netflix")
        match = classify(external, [internal], frozenset(), matching_config)
        used = frozenset()

        after = consume(used, match)

        assert after == frozenset({"i1"})
        assert used == frozenset()


def test_engine_returns_one_match_per_statement_transaction(matching_config):
    externals = [
        make_external("e1", JAN_5, "-22.22", payee="Netflix"),
        make_external("e2", JAN_5, "-45.10", payee="Grocer"),
    ]
    internals = [make_internal("i1", JAN_5, -22220, payee_name="Netflix")]

    matches = MatchingEngine(matching_config).match(externals, internals)

    assert [m.external_transaction.id for m in matches] == ["e1", "e2"]
