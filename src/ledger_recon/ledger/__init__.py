"""Ledger access."""

from .client import JsonFileLedgerClient, LedgerClient, NewTransaction, TransactionUpdate

__all__ = ["JsonFileLedgerClient", "LedgerClient", "NewTransaction", "TransactionUpdate"]
