"""Date helpers: ISO parsing and the statement window filter."""

from datetime import date, datetime
from typing import Callable, Iterable, Optional, TypeVar, Union

T = TypeVar("T")


def parse_iso_date(value: Union[str, date, datetime]) -> date:
    """Parse ``YYYY-MM-DD`` (or pass through date/datetime values)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip()[:10])


def in_window(day: date, start: Optional[date] = None, end: Optional[date] = None) -> bool:
    """True if ``day`` falls inside the inclusive window; a missing bound is open."""
    if start is not None and day < start:
        return False
    if end is not None and day > end:
        return False
    return True


def filter_to_window(
    items: Iterable[T],
    start: Optional[date] = None,
    end: Optional[date] = None,
    key: Callable[[T], date] = lambda item: item.date,  # type: ignore[attr-defined]
) -> list[T]:
    """
    Restrict items to the statement window.

    Items dated exactly on either boundary are kept. Input order is preserved.
    """
    return [item for item in items if in_window(key(item), start, end)]


def days_between(d1: date, d2: date) -> int:
    """Absolute number of calendar days between two dates."""
    return abs((d1 - d2).days)
