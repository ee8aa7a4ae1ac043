"""Tests for the reconciliation analyzer."""

from datetime import date
from decimal import Decimal

from conftest import make_external, make_internal

from ledger_recon.analysis.analyzer import (
    DIRECTION_LEDGER_HIGHER,
    DIRECTION_STATEMENT_HIGHER,
    MAX_INSIGHTS,
    ReconciliationAnalyzer,
    calculate_balances,
    detect_insights,
    partition_matches,
)
from ledger_recon.matching.matcher import match_all
from ledger_recon.models.analysis import InsightKind, InsightSeverity
from ledger_recon.models.execution import AccountSnapshot
from ledger_recon.models.transaction import ClearedState

JAN_5 = date(2024, 1, 5)


def _snapshot(cleared: int, uncleared: int = 0) -> AccountSnapshot:
    return AccountSnapshot(
        balance=cleared + uncleared, cleared_balance=cleared, uncleared_balance=uncleared
    )


class TestCalculateBalances:
    def test_snapshot_is_authoritative(self):
        internal = [make_internal("i1", JAN_5, -5000, cleared=ClearedState.CLEARED)]

        balances = calculate_balances(internal, 122220, "USD", _snapshot(100000, 2500))

        assert balances.current_cleared.value_milliunits == 100000
        assert balances.current_uncleared.value_milliunits == 2500
        assert balances.current_total.value_milliunits == 102500
        assert balances.discrepancy.value_milliunits == 22220
        assert not balances.on_track

    def test_summed_from_transactions_without_snapshot(self):
        internal = [
            make_internal("i1", JAN_5, 10000, cleared=ClearedState.CLEARED),
            make_internal("i2", JAN_5, 5000, cleared=ClearedState.RECONCILED),
            make_internal("i3", JAN_5, -2000, cleared=ClearedState.UNCLEARED),
        ]

        balances = calculate_balances(internal, 15000, "USD")

        assert balances.current_cleared.value_milliunits == 15000
        assert balances.current_uncleared.value_milliunits == -2000
        assert balances.on_track
        assert balances.discrepancy.direction == "balanced"


class TestAnalyze:
    def test_single_missing_transaction_explains_discrepancy(self, matching_config):
        external = [make_external("e1", JAN_5, "22.22", payee="Refund")]

        analysis = ReconciliationAnalyzer(matching_config).analyze(
            external, [], Decimal("122.22"), account_snapshot=_snapshot(100000)
        )

        assert analysis.balance_info.discrepancy.value_milliunits == 22220
        assert analysis.balance_info.discrepancy.value == Decimal("22.22")
        assert analysis.summary.discrepancy_direction == DIRECTION_STATEMENT_HIGHER
        assert analysis.summary.unmatched_external == 1
        assert [t.id for t in analysis.unmatched_external] == ["e1"]
        assert analysis.recommendations is None

    def test_repeat_amount_insight(self, matching_config):
        external = [
            make_external("e1", JAN_5, "-22.22", payee="EvoCarShare", source_row=2),
            make_external("e2", date(2024, 1, 9), "-22.22", payee="EvoCarShare", source_row=5),
        ]

        analysis = ReconciliationAnalyzer(matching_config).analyze(
            external, [], Decimal("100.00"), account_snapshot=_snapshot(100000)
        )

        repeat = [i for i in analysis.insights if i.kind is InsightKind.REPEAT_AMOUNT]
        assert len(repeat) == 1
        assert repeat[0].id == "repeat-22.22-debit"
        assert repeat[0].severity is InsightSeverity.WARNING
        assert repeat[0].evidence["occurrences"] == 2
        assert repeat[0].evidence["source_rows"] == [2, 5]

    def test_partition_counts(self, matching_config):
        external = [
            make_external("e1", JAN_5, "-22.22", payee="Netflix"),
            make_external("e2", JAN_5, "-45.10", payee="Grocer"),
            make_external("e3", JAN_5, "-9.99", payee="Spotify"),
        ]
        internal = [
            make_internal("i1", JAN_5, -22220, payee_name="Netflix"),
            make_internal("i2", JAN_5, -45100, payee_name="Corner Store"),
            make_internal("i3", JAN_5, -70000, payee_name="Rent"),
        ]

        analysis = ReconciliationAnalyzer(matching_config).analyze(
            external, internal, Decimal("0")
        )

        assert analysis.summary.auto_matched == 1
        assert analysis.summary.suggested_matches == 1
        assert analysis.summary.unmatched_external == 1
        # Only the high match claims its ledger transaction
        assert {t.id for t in analysis.unmatched_internal} == {"i2", "i3"}
        assert round(analysis.summary.match_rate, 2) == 33.33

    def test_zero_and_negative_targets_stay_finite(self, matching_config):
        external = [
            make_external("e1", JAN_5, "-22.22", payee="Netflix"),
            make_external("e2", JAN_5, "-45.10", payee="Grocer"),
        ]
        internal = [
            make_internal("i1", JAN_5, -22220, payee_name="Netflix", cleared=ClearedState.CLEARED),
            make_internal("i2", JAN_5, -1000, payee_name="Fee", cleared=ClearedState.CLEARED),
        ]

        for target, expected_discrepancy in ((Decimal("0"), 23220), (Decimal("-50.00"), -26780)):
            analysis = ReconciliationAnalyzer(matching_config).analyze(external, internal, target)
            info = analysis.balance_info

            for value in (
                info.current_cleared,
                info.current_uncleared,
                info.current_total,
                info.target_statement,
                info.discrepancy,
            ):
                assert value.value.is_finite()
                assert "nan" not in value.value_display.lower()

            assert info.discrepancy.value_milliunits == expected_discrepancy
            assert any(i.id == "non-positive-statement" for i in analysis.insights)

    def test_ledger_higher_direction(self, matching_config):
        analysis = ReconciliationAnalyzer(matching_config).analyze(
            [], [], Decimal("90.00"), account_snapshot=_snapshot(100000)
        )

        assert analysis.summary.discrepancy_direction == DIRECTION_LEDGER_HIGHER
        assert analysis.summary.statement_date_range == "Unknown"

    def test_balanced_analysis_next_steps(self, matching_config):
        external = [make_external("e1", JAN_5, "-22.22", payee="Netflix")]
        internal = [make_internal("i1", JAN_5, -22220, payee_name="Netflix")]

        analysis = ReconciliationAnalyzer(matching_config).analyze(
            external, internal, Decimal("100.00"), account_snapshot=_snapshot(100000)
        )

        assert analysis.balance_info.on_track
        assert analysis.summary.discrepancy_explanation == "Cleared balance matches statement"
        assert analysis.next_steps == (
            "Review 1 auto-matched transactions for approval",
        )


class TestInsights:
    def test_near_match_for_medium_close_to_threshold(self, matching_config):
        external = [make_external("e1", JAN_5, "-22.22", payee="Netflix")]
        # Payee similarity ~78% adds 6 points: 86, just under the auto-match threshold
        internal = [make_internal("i1", JAN_5, -22220, payee_name="Netflix CA")]
        matches = match_all(external, internal, matching_config)
        _, suggested, unmatched_ext, unmatched_int = partition_matches(matches, internal)
        balances = calculate_balances(internal, 0, "USD")

        insights = detect_insights(
            matches, external, unmatched_ext, len(unmatched_int), balances, matching_config
        )

        assert suggested[0].confidence_score == 86
        near = [i for i in insights if i.kind is InsightKind.NEAR_MATCH]
        assert [i.id for i in near] == ["near-e1"]
        assert near[0].severity is InsightSeverity.WARNING
        assert near[0].evidence["candidate"]["id"] == "i1"

    def test_insights_are_capped_and_unique(self, matching_config):
        external = [
            make_external(f"e{n}", JAN_5, f"-{n}.00", payee="Store") for n in range(1, 7)
        ] + [
            make_external(f"r{n}", JAN_5, f"-{n}.50", payee="Store") for n in (1, 1, 2, 2, 3, 3)
        ]
        balances = calculate_balances([], -500000, "USD")

        insights = detect_insights([], external, external, 0, balances, matching_config)

        assert len(insights) <= MAX_INSIGHTS
        assert len({i.id for i in insights}) == len(insights)
        assert insights[0].kind is InsightKind.REPEAT_AMOUNT

    def test_bulk_missing_is_critical_at_ten(self, matching_config):
        external = [
            make_external(f"e{n}", JAN_5, f"-{n}.00", payee="Store") for n in range(1, 11)
        ]
        balances = calculate_balances([], 100000, "USD")

        insights = detect_insights([], external, external, 0, balances, matching_config)

        bulk = [i for i in insights if i.id == "bulk-missing-external"]
        assert bulk and bulk[0].severity is InsightSeverity.CRITICAL
