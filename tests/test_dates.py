"""Tests for date helpers."""

from datetime import date, datetime

from conftest import make_external

from ledger_recon.utils.dates import days_between, filter_to_window, in_window, parse_iso_date


def test_parse_iso_date():
    assert parse_iso_date("2024-01-05") == date(2024, 1, 5)
    assert parse_iso_date("2024-01-05T10:30:00Z") == date(2024, 1, 5)
    assert parse_iso_date(datetime(2024, 1, 5, 10, 30)) == date(2024, 1, 5)
    assert parse_iso_date(date(2024, 1, 5)) == date(2024, 1, 5)


def test_in_window_open_bounds():
    assert in_window(date(2024, 1, 5))
    assert in_window(date(2024, 1, 5), start=date(2024, 1, 5))
    assert not in_window(date(2024, 1, 4), start=date(2024, 1, 5))
    assert not in_window(date(2024, 2, 1), end=date(2024, 1, 31))


def test_filter_to_window_keeps_boundaries_and_order():
    items = [
        make_external("late", date(2024, 2, 1), "1.00"),
        make_external("end", date(2024, 1, 31), "1.00"),
        make_external("start", date(2024, 1, 1), "1.00"),
        make_external("early", date(2023, 12, 31), "1.00"),
    ]

    kept = filter_to_window(items, date(2024, 1, 1), date(2024, 1, 31))

    assert [t.id for t in kept] == ["end", "start"]


def test_days_between_is_absolute():
    assert days_between(date(2024, 1, 5), date(2024, 1, 3)) == 2
    assert days_between(date(2024, 1, 3), date(2024, 1, 5)) == 2
