"""Shared fixtures and builders for reconciliation tests."""

from datetime import date
from decimal import Decimal
from typing import Optional

import pytest

from ledger_recon.config import MatchingConfig
from ledger_recon.models.transaction import ClearedState, ExternalTransaction, InternalTransaction


def make_external(
    id: str,
    day: date,
    amount: str,
    payee: str = "Coffee Shop",
    memo: Optional[str] = None,
    source_row: int = 0,
) -> ExternalTransaction:
    """Statement transaction with a Decimal amount given as text."""
    return ExternalTransaction(
        id=id,
        date=day,
        amount=Decimal(amount),
        payee=payee,
        memo=memo,
        source_row=source_row,
    )


def make_internal(
    id: str,
    day: date,
    amount: int,
    payee_name: Optional[str] = "Coffee Shop",
    cleared: ClearedState = ClearedState.UNCLEARED,
) -> InternalTransaction:
    """Ledger transaction with an amount in milliunits."""
    return InternalTransaction(
        id=id,
        date=day,
        amount=amount,
        payee_name=payee_name,
        cleared=cleared,
    )


@pytest.fixture
def matching_config() -> MatchingConfig:
    return MatchingConfig()


@pytest.fixture
def statement_csv() -> str:
    return (
        "Date,Amount,Description\n"
        "01/05/2024,-22.22,Netflix\n"
        "01/07/2024,-45.10,Grocer\n"
        "01/09/2024,1500.00,Payroll\n"
    )
