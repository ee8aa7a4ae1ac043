"""Tests for the bank statement CSV parser."""

from datetime import date
from decimal import Decimal

import pytest

from ledger_recon.config import StatementInputConfig
from ledger_recon.parsers.statement_parser import (
    StatementParser,
    parse_amount,
    parse_statement_text,
)
from ledger_recon.utils.exceptions import MoneyError, StatementParseError


class TestParseAmount:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("22.22", Decimal("22.22")),
            ("-22.22", Decimal("-22.22")),
            ("(1,234.56)", Decimal("-1234.56")),
            ("$12.00-", Decimal("-12.00")),
            ("-$5.00", Decimal("-5.00")),
            ("USD 12.00", Decimal("12.00")),
            ("12.00 EUR", Decimal("12.00")),
            ("CA$7.50", Decimal("7.50")),
            ("+3", Decimal("3")),
        ],
    )
    def test_formats(self, raw, expected):
        assert parse_amount(raw) == expected

    def test_blank_is_none(self):
        assert parse_amount("") is None
        assert parse_amount("   ") is None
        assert parse_amount(None) is None

    def test_garbage_raises(self):
        with pytest.raises(MoneyError):
            parse_amount("twelve")


class TestStatementParser:
    def test_parses_default_layout(self, statement_csv):
        parsed = parse_statement_text(statement_csv)

        assert parsed.total_rows == 3
        assert parsed.valid_rows == 3
        assert parsed.errors == ()
        first = parsed.transactions[0]
        assert first.date == date(2024, 1, 5)
        assert first.amount == Decimal("-22.22")
        assert first.payee == "Netflix"
        assert [t.source_row for t in parsed.transactions] == [2, 3, 4]

    def test_ids_are_deterministic(self, statement_csv):
        first = parse_statement_text(statement_csv)
        second = parse_statement_text(statement_csv)

        assert [t.id for t in first.transactions] == [t.id for t in second.transactions]
        assert len({t.id for t in first.transactions}) == 3

    def test_bad_rows_are_reported_and_skipped(self):
        text = (
            "Date,Amount,Description\n"
            "01/05/2024,-22.22,Netflix\n"
            "not-a-date,-1.00,Broken\n"
            "01/07/2024,,No Amount\n"
            "01/08/2024,abc,Garbage\n"
        )

        parsed = parse_statement_text(text)

        assert parsed.valid_rows == 1
        assert parsed.total_rows == 4
        assert parsed.errors[0] == "Row 3: invalid date 'not-a-date'"
        assert parsed.errors[1] == "Row 4: missing amount"
        assert parsed.errors[2].startswith("Row 5:")

    def test_iso_dates_are_accepted(self):
        parsed = parse_statement_text("Date,Amount,Description\n2024-01-05,10.00,Deposit\n")

        assert parsed.transactions[0].date == date(2024, 1, 5)

    def test_debit_credit_columns(self):
        config = StatementInputConfig(
            column_mappings={
                "date": "Date",
                "amount": None,
                "debit": "Debit",
                "credit": "Credit",
                "payee": "Description",
                "memo": "Memo",
            }
        )
        text = (
            "Date,Description,Debit,Credit,Memo\n"
            "01/05/2024,Netflix,22.22,,Monthly\n"
            "01/06/2024,Payroll,,1500.00,\n"
        )

        parsed = StatementParser(config).parse_text(text)

        assert [t.amount for t in parsed.transactions] == [Decimal("-22.22"), Decimal("1500.00")]
        assert parsed.transactions[0].memo == "Monthly"
        assert parsed.transactions[1].memo is None

    def test_headerless_positions(self):
        config = StatementInputConfig(
            has_header=False,
            column_mappings={"date": "0", "amount": "1", "payee": "2"},
        )

        parsed = StatementParser(config).parse_text("01/05/2024,-22.22,Netflix\n")

        assert parsed.transactions[0].amount == Decimal("-22.22")
        assert parsed.transactions[0].source_row == 1

    def test_semicolon_delimiter(self):
        config = StatementInputConfig(delimiter=";", date_format="%d.%m.%Y")

        parsed = StatementParser(config).parse_text(
            "Date;Amount;Description\n05.01.2024;-22.22;Netflix\n"
        )

        assert parsed.delimiter == ";"
        assert parsed.transactions[0].date == date(2024, 1, 5)

    def test_missing_column_raises(self):
        with pytest.raises(StatementParseError, match="Amount"):
            parse_statement_text("Date,Value,Description\n01/05/2024,1.00,Deposit\n")

    def test_empty_text(self):
        parsed = parse_statement_text("   \n")

        assert parsed.transactions == ()
        assert parsed.total_rows == 0

    def test_parse_file(self, tmp_path, statement_csv):
        path = tmp_path / "statement.csv"
        path.write_text(statement_csv, encoding="utf-8")

        parsed = StatementParser().parse_file(path)

        assert parsed.valid_rows == 3

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(StatementParseError):
            StatementParser().parse_file(tmp_path / "missing.csv")
