"""
Bank statement CSV parser.

Reads a statement export with a configured column layout and converts each
row to an ExternalTransaction. Bad rows are reported in ``errors`` and
skipped; the rest of the file still parses.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from io import StringIO
from pathlib import Path
from typing import Any, Optional, Union
import logging
import re
import uuid

import pandas as pd

from ..config import StatementInputConfig
from ..models.transaction import ExternalTransaction
from ..utils.exceptions import MoneyError, StatementParseError
from ..utils.money import to_decimal

logger = logging.getLogger(__name__)

FORMAT_CSV = "csv"

# Fixed namespace so the same row always gets the same id
STATEMENT_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_URL, "ledger-recon/statement")

# "USD 12.00", "12.00 EUR", "CA$12.00"
_CURRENCY_CODE = re.compile(r"^[A-Z]{3}\s*|\s*[A-Z]{3}$|^[A-Z]{1,3}(?=[$€£¥₹])")
_CURRENCY_NOISE = re.compile(r"[$€£¥₹,\s]")


def _blank(value: Any) -> bool:
    if value is None:
        return True
    if not isinstance(value, str) and pd.isna(value):
        return True
    return not str(value).strip()


@dataclass(frozen=True)
class ParsedStatement:
    """Result of parsing one statement."""

    transactions: tuple[ExternalTransaction, ...]
    format_detected: str
    delimiter: str
    total_rows: int
    valid_rows: int
    errors: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "transactions": [t.to_dict() for t in self.transactions],
            "format_detected": self.format_detected,
            "delimiter": self.delimiter,
            "total_rows": self.total_rows,
            "valid_rows": self.valid_rows,
            "errors": list(self.errors),
        }


def parse_amount(value: Any) -> Optional[Decimal]:
    """
    Parse a statement amount.

    Accepts currency symbols, thousands separators, a leading or trailing
    minus sign and accounting-style parentheses for negatives. Blank values
    return None.

    Raises:
        MoneyError: If the value is not blank and not a number
    """
    if _blank(value):
        return None
    text = _CURRENCY_CODE.sub("", str(value).strip())
    text = _CURRENCY_NOISE.sub("", text)

    negative = False
    if text.startswith("(") and text.endswith(")"):
        negative = True
        text = text[1:-1]
    if text.endswith("-"):
        negative = not negative
        text = text[:-1]
    if text.startswith("-"):
        negative = not negative
        text = text[1:]
    text = text.lstrip("+")
    if text.startswith("-"):
        raise MoneyError(f"Invalid amount: {value!r}")

    amount = to_decimal(text)
    return -amount if negative else amount


def statement_transaction_id(row_number: int, txn_date: date, amount: Decimal, payee: str) -> str:
    """Deterministic id for a statement row."""
    key = f"{row_number}|{txn_date.isoformat()}|{amount}|{payee}"
    return str(uuid.uuid5(STATEMENT_NAMESPACE, key))


class StatementParser:
    """
    Parser for bank statement CSV exports.

    The layout comes from configuration; nothing is auto-detected. With
    ``has_header`` false, column mappings are 0-based column positions
    (``"0"``, ``"1"``, ...).
    """

    def __init__(self, config: Optional[StatementInputConfig] = None):
        """
        Initialize the parser with configuration.

        Args:
            config: Statement layout settings (defaults if omitted)
        """
        self.config = config or StatementInputConfig()
        self.column_mappings = self.config.column_mappings

    def parse_file(self, file_path: Path) -> ParsedStatement:
        """
        Parse a statement file.

        Args:
            file_path: Path to the CSV file

        Returns:
            Parsed statement

        Raises:
            StatementParseError: If the file cannot be read or its columns
                do not match the configured layout
        """
        logger.info(f"Parsing statement file: {file_path}")
        try:
            with open(file_path, "r", encoding=self.config.encoding) as f:
                text = f.read()
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Failed to read statement file: {e}")
            raise StatementParseError(f"Failed to read statement file {file_path}: {e}") from e

        return self.parse_text(text)

    def parse_text(self, text: str) -> ParsedStatement:
        """
        Parse statement CSV content.

        Args:
            text: CSV content

        Returns:
            Parsed statement; row-level problems are listed in ``errors``

        Raises:
            StatementParseError: If the CSV is malformed or a configured
                column is missing
        """
        delimiter = self.config.delimiter

        if not text.strip():
            return ParsedStatement(
                transactions=(),
                format_detected=FORMAT_CSV,
                delimiter=delimiter,
                total_rows=0,
                valid_rows=0,
            )

        try:
            df = pd.read_csv(
                StringIO(text),
                sep=delimiter,
                header=0 if self.config.has_header else None,
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=False,
                skipinitialspace=True,
            )
        except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            logger.error(f"Failed to parse statement CSV: {e}")
            raise StatementParseError(f"Failed to parse statement CSV: {e}") from e

        columns = self._resolve_columns(df)
        transactions, total_rows, errors = self._process_dataframe(df, columns)

        logger.info(
            f"Extracted {len(transactions)} of {total_rows} statement rows "
            f"({len(errors)} errors)"
        )
        return ParsedStatement(
            transactions=tuple(transactions),
            format_detected=FORMAT_CSV,
            delimiter=delimiter,
            total_rows=total_rows,
            valid_rows=len(transactions),
            errors=tuple(errors),
        )

    def _resolve_columns(self, df: pd.DataFrame) -> dict[str, Union[str, int, None]]:
        """Map logical fields to DataFrame columns, failing on missing ones."""
        resolved: dict[str, Union[str, int, None]] = {}

        for field_name in ("date", "amount", "debit", "credit", "payee", "memo"):
            mapped = self.column_mappings.get(field_name)
            if mapped is None:
                resolved[field_name] = None
                continue

            key: Union[str, int] = mapped
            if not self.config.has_header:
                try:
                    key = int(mapped)
                except ValueError as e:
                    raise StatementParseError(
                        f"Column mapping for '{field_name}' must be a column position "
                        f"when the statement has no header: {mapped!r}"
                    ) from e
            else:
                key = mapped.strip()

            if key not in df.columns:
                raise StatementParseError(
                    f"Statement has no column {mapped!r} for '{field_name}' "
                    f"(columns: {list(df.columns)})"
                )
            resolved[field_name] = key

        if resolved["date"] is None:
            raise StatementParseError("Column mapping for 'date' is required")
        if resolved["amount"] is None and resolved["debit"] is None and resolved["credit"] is None:
            raise StatementParseError(
                "Column mapping for 'amount' or for 'debit'/'credit' is required"
            )

        return resolved

    def _process_dataframe(
        self, df: pd.DataFrame, columns: dict[str, Union[str, int, None]]
    ) -> tuple[list[ExternalTransaction], int, list[str]]:
        """
        Convert rows to transactions.

        Returns:
            Tuple of (transactions, non-blank row count, error messages)
        """
        transactions: list[ExternalTransaction] = []
        errors: list[str] = []
        total_rows = 0
        header_offset = 2 if self.config.has_header else 1

        for idx, row in df.iterrows():
            if all(_blank(value) for value in row.values):
                continue

            total_rows += 1
            row_number = int(idx) + header_offset
            try:
                transactions.append(self._normalize_row(row, row_number, columns))
            except (StatementParseError, MoneyError) as e:
                logger.warning(f"Row {row_number}: {e}")
                errors.append(f"Row {row_number}: {e}")

        return transactions, total_rows, errors

    def _normalize_row(
        self,
        row: pd.Series,
        row_number: int,
        columns: dict[str, Union[str, int, None]],
    ) -> ExternalTransaction:
        """
        Convert a DataFrame row to an ExternalTransaction.

        Raises:
            StatementParseError: If the date or amount is missing or invalid
        """

        def cell(name: str) -> str:
            column = columns[name]
            value = row.get(column) if column is not None else None
            return "" if _blank(value) else str(value).strip()

        raw_date = cell("date")
        txn_date = self._parse_date(raw_date)
        if txn_date is None:
            raise StatementParseError(f"invalid date {raw_date!r}")

        amount = self._row_amount(cell("amount"), cell("debit"), cell("credit"))
        if amount is None:
            raise StatementParseError("missing amount")

        payee = cell("payee")
        memo = cell("memo") or None

        return ExternalTransaction(
            id=statement_transaction_id(row_number, txn_date, amount, payee),
            date=txn_date,
            amount=amount,
            payee=payee,
            memo=memo,
            source_row=row_number,
        )

    def _row_amount(self, raw_amount: str, raw_debit: str, raw_credit: str) -> Optional[Decimal]:
        """Signed amount from a single column or a debit/credit pair (debits are outflows)."""
        amount = parse_amount(raw_amount)
        if amount is not None:
            return amount

        debit = parse_amount(raw_debit)
        credit = parse_amount(raw_credit)
        if debit is None and credit is None:
            return None
        return (credit or Decimal("0")) - abs(debit or Decimal("0"))

    def _parse_date(self, value: str) -> Optional[date]:
        """
        Parse a date using the configured format, falling back to ISO 8601.

        Args:
            value: Date text

        Returns:
            Python date object or None
        """
        if not value:
            return None

        try:
            return datetime.strptime(value, self.config.date_format).date()
        except ValueError:
            try:
                return date.fromisoformat(value)
            except ValueError:
                return None


def parse_statement_text(
    text: str, config: Optional[StatementInputConfig] = None
) -> ParsedStatement:
    """Parse statement CSV content with the given (or default) layout."""
    return StatementParser(config).parse_text(text)
