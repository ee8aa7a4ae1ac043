"""Execution of reconciliation actions against the ledger."""

from .executor import DRY_RUN_NOTICE, PlannedAction, ReconciliationExecutor, plan_actions
from .locks import ExecutionLockRegistry

__all__ = [
    "DRY_RUN_NOTICE",
    "PlannedAction",
    "ReconciliationExecutor",
    "plan_actions",
    "ExecutionLockRegistry",
]
