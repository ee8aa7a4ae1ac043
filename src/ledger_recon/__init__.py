"""
Bank statement to ledger account reconciliation.

Matches statement transactions against ledger transactions, explains any
balance discrepancy, and (optionally) applies the corrections to the ledger.
"""

__version__ = "0.1.0"
