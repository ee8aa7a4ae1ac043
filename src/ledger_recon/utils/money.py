"""
Monetary helpers.

Ledger amounts are integer milliunits (1/1000 of a currency unit). Statement
amounts are Decimals in major units. Everything that crosses between the two
goes through this module so rounding and overflow are handled in one place.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, Union

from .exceptions import MoneyError

MILLI_PER_UNIT = 1000

# Largest integer that survives a round trip through a JSON/JS number
MAX_SAFE_MILLI = 2**53 - 1

DIRECTION_CREDIT = "credit"
DIRECTION_DEBIT = "debit"
DIRECTION_BALANCED = "balanced"

CURRENCY_SYMBOLS = {
    "USD": "$",
    "CAD": "CA$",
    "AUD": "A$",
    "NZD": "NZ$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "INR": "₹",
    "CHF": "CHF ",
}

Number = Union[Decimal, int, float, str]


@dataclass(frozen=True)
class MoneyValue:
    """A monetary amount with its currency and a precomputed display string."""

    value_milliunits: int
    value: Decimal
    value_display: str
    currency: str
    direction: str

    def to_dict(self) -> dict:
        return {
            "value_milliunits": self.value_milliunits,
            "value": float(self.value),
            "value_display": self.value_display,
            "currency": self.currency,
            "direction": self.direction,
        }


def _is_safe(milli: int) -> bool:
    return -MAX_SAFE_MILLI <= milli <= MAX_SAFE_MILLI


def assert_milli(value: object, message: str = "Expected safe integer milliunits") -> int:
    """Return ``value`` if it is a safe integer milliunit amount, else raise MoneyError."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise MoneyError(f"{message}: {value!r}")
    if not _is_safe(value):
        raise MoneyError(f"{message}: {value!r}")
    return value


def to_decimal(amount: Number) -> Decimal:
    """Parse an amount in major units into a finite Decimal."""
    if isinstance(amount, bool):
        raise MoneyError(f"Invalid amount: {amount!r}")
    try:
        value = Decimal(str(amount).strip()) if not isinstance(amount, Decimal) else amount
    except (InvalidOperation, ValueError) as e:
        raise MoneyError(f"Invalid amount: {amount!r}") from e
    if not value.is_finite():
        raise MoneyError(f"Invalid amount: {amount!r}")
    return value


def to_milli(amount: Number) -> int:
    """
    Convert an amount in major units to integer milliunits.

    Rounds half away from zero at the third decimal place.

    Raises:
        MoneyError: if the amount is not a finite number or the result
            falls outside the safe integer range
    """
    value = to_decimal(amount)
    milli = int((value * MILLI_PER_UNIT).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    if not _is_safe(milli):
        raise MoneyError(f"Invalid/unsafe amount: {amount!r}")
    return milli


def from_milli(milli: int) -> Decimal:
    """Convert milliunits to a Decimal in major units."""
    assert_milli(milli)
    return Decimal(milli) / MILLI_PER_UNIT


def add_milli(a: int, b: int) -> int:
    """Add two milliunit amounts, refusing fractional inputs and overflow."""
    assert_milli(a)
    assert_milli(b)
    total = a + b
    if not _is_safe(total):
        raise MoneyError(f"Milliunit sum overflow: {a} + {b}")
    return total


def sum_milli(amounts: Iterable[int]) -> int:
    """Sum milliunit amounts with the same checks as :func:`add_milli`."""
    total = 0
    for amount in amounts:
        total = add_milli(total, amount)
    return total


def classify_direction(milli: int) -> str:
    """Classify a signed amount as credit, debit or balanced."""
    if milli > 0:
        return DIRECTION_CREDIT
    if milli < 0:
        return DIRECTION_DEBIT
    return DIRECTION_BALANCED


def format_money(milli: int, currency: str = "USD") -> str:
    """Format milliunits as a display string such as ``-$1,234.56``."""
    amount = from_milli(milli).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    code = (currency or "USD").upper()
    symbol = CURRENCY_SYMBOLS.get(code, f"{code} ")
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"


def format_decimal(amount: Number, currency: str = "USD") -> str:
    """Format an amount given in major units."""
    return format_money(to_milli(amount), currency)


def to_money_value(milli: int, currency: str = "USD") -> MoneyValue:
    """Build a MoneyValue from integer milliunits."""
    assert_milli(milli)
    return MoneyValue(
        value_milliunits=milli,
        value=from_milli(milli),
        value_display=format_money(milli, currency),
        currency=currency,
        direction=classify_direction(milli),
    )


def to_money_value_from_decimal(amount: Number, currency: str = "USD") -> MoneyValue:
    """Build a MoneyValue from an amount in major units."""
    return to_money_value(to_milli(amount), currency)
