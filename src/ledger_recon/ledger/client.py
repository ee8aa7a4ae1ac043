"""
Ledger client contract and a file-backed implementation.

The executor talks to the ledger only through :class:`LedgerClient`. Any
object with these four coroutine methods will do: an HTTP API wrapper in
production, :class:`JsonFileLedgerClient` for the CLI, an ``AsyncMock`` in
tests.
"""

from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Optional, Protocol, runtime_checkable
import json
import logging
import uuid

from ..models.execution import AccountSnapshot
from ..models.transaction import ClearedState, InternalTransaction
from ..utils.exceptions import LedgerClientError
from ..utils.money import assert_milli, sum_milli

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NewTransaction:
    """Payload for creating a ledger transaction. Amount in milliunits."""

    account_id: str
    date: date
    amount: int
    payee_name: Optional[str] = None
    memo: Optional[str] = None
    cleared: ClearedState = ClearedState.CLEARED
    approved: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "account_id": self.account_id,
            "date": self.date.isoformat(),
            "amount": self.amount,
            "payee_name": self.payee_name,
            "memo": self.memo,
            "cleared": self.cleared.value,
            "approved": self.approved,
        }


@dataclass(frozen=True)
class TransactionUpdate:
    """Partial update of a ledger transaction. ``None`` fields are left alone."""

    cleared: Optional[ClearedState] = None
    date: Optional[date] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.cleared is not None:
            data["cleared"] = self.cleared.value
        if self.date is not None:
            data["date"] = self.date.isoformat()
        return data


@runtime_checkable
class LedgerClient(Protocol):
    """Asynchronous access to one ledger. Every method may raise LedgerClientError."""

    async def create_transaction(
        self, budget_id: str, transaction: NewTransaction
    ) -> dict[str, Any]:
        """Create a transaction and return the stored record."""
        ...

    async def update_transaction(
        self, budget_id: str, transaction_id: str, update: TransactionUpdate
    ) -> dict[str, Any]:
        """Apply a partial update and return the stored record."""
        ...

    async def get_account(self, budget_id: str, account_id: str) -> AccountSnapshot:
        """Fetch current account balances."""
        ...

    async def list_transactions_for_account(
        self, budget_id: str, account_id: str
    ) -> list[InternalTransaction]:
        """List every non-deleted transaction in the account."""
        ...


class JsonFileLedgerClient:
    """
    Ledger backed by a JSON export file.

    Expected layout::

        {
          "budget_id": "household",
          "accounts": [{"id": "checking", "name": "Checking",
                        "opening_cleared_balance": 0}],
          "transactions": [{"id": "t1", "account_id": "checking",
                            "date": "2024-01-05", "amount": -12340,
                            "payee_name": "Grocer", "cleared": "uncleared",
                            "approved": true}]
        }

    Balances are derived from the transactions, so changes show up in
    :meth:`get_account` immediately. Nothing is written until :meth:`save`.
    """

    def __init__(self, path: Path):
        """
        Load the ledger file.

        Args:
            path: Path to the JSON ledger export

        Raises:
            LedgerClientError: If the file cannot be read or parsed
        """
        self.path = Path(path)
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise LedgerClientError(f"Failed to load ledger file {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise LedgerClientError(f"Ledger file {self.path} must contain a JSON object")

        self.budget_id: Optional[str] = data.get("budget_id")
        self._accounts: list[dict[str, Any]] = list(data.get("accounts", []))
        self._transactions: list[dict[str, Any]] = list(data.get("transactions", []))
        self.dirty = False

        logger.info(
            f"Loaded ledger {self.path}: {len(self._accounts)} accounts, "
            f"{len(self._transactions)} transactions"
        )

    def _check_budget(self, budget_id: str) -> None:
        if self.budget_id and budget_id != self.budget_id:
            raise LedgerClientError("Unknown budget", budget_id=budget_id)

    def _find_account(self, budget_id: str, account_id: str) -> dict[str, Any]:
        self._check_budget(budget_id)
        for account in self._accounts:
            if account.get("id") == account_id:
                return account
        raise LedgerClientError("Unknown account", budget_id=budget_id, account_id=account_id)

    def _active(self, account_id: str) -> list[dict[str, Any]]:
        return [
            t
            for t in self._transactions
            if t.get("account_id") == account_id and not t.get("deleted", False)
        ]

    async def create_transaction(
        self, budget_id: str, transaction: NewTransaction
    ) -> dict[str, Any]:
        self._find_account(budget_id, transaction.account_id)
        assert_milli(transaction.amount)

        record = transaction.to_dict()
        record["id"] = str(uuid.uuid4())
        self._transactions.append(record)
        self.dirty = True

        logger.debug(f"Created ledger transaction {record['id']} in {transaction.account_id}")
        return dict(record)

    async def update_transaction(
        self, budget_id: str, transaction_id: str, update: TransactionUpdate
    ) -> dict[str, Any]:
        self._check_budget(budget_id)
        for record in self._transactions:
            if record.get("id") == transaction_id and not record.get("deleted", False):
                record.update(update.to_dict())
                self.dirty = True
                logger.debug(f"Updated ledger transaction {transaction_id}: {update.to_dict()}")
                return dict(record)

        raise LedgerClientError(
            "Unknown transaction", budget_id=budget_id, transaction_id=transaction_id
        )

    async def get_account(self, budget_id: str, account_id: str) -> AccountSnapshot:
        account = self._find_account(budget_id, account_id)
        transactions = self._active(account_id)

        cleared = sum_milli(
            [int(account.get("opening_cleared_balance", 0))]
            + [
                int(t["amount"])
                for t in transactions
                if ClearedState(t.get("cleared", "uncleared")).counts_as_cleared
            ]
        )
        uncleared = sum_milli(
            int(t["amount"])
            for t in transactions
            if not ClearedState(t.get("cleared", "uncleared")).counts_as_cleared
        )
        return AccountSnapshot(
            balance=cleared + uncleared,
            cleared_balance=cleared,
            uncleared_balance=uncleared,
        )

    async def list_transactions_for_account(
        self, budget_id: str, account_id: str
    ) -> list[InternalTransaction]:
        self._find_account(budget_id, account_id)
        try:
            return [InternalTransaction.from_api(t) for t in self._active(account_id)]
        except (KeyError, ValueError) as e:
            raise LedgerClientError(
                f"Malformed transaction in ledger file: {e}",
                budget_id=budget_id,
                account_id=account_id,
            ) from e

    def save(self, path: Optional[Path] = None) -> Path:
        """
        Write the ledger back to disk.

        Args:
            path: Destination (defaults to the file it was loaded from)

        Returns:
            Path written
        """
        target = Path(path) if path else self.path
        data = {
            "budget_id": self.budget_id,
            "accounts": self._accounts,
            "transactions": self._transactions,
        }
        try:
            with open(target, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
        except OSError as e:
            raise LedgerClientError(f"Failed to write ledger file {target}: {e}") from e

        self.dirty = False
        logger.info(f"Saved ledger to {target}")
        return target
