"""Per-account execution locks."""

from contextlib import contextmanager
from typing import Iterator
import logging
import threading

from ..utils.exceptions import ReconciliationAlreadyRunningError

logger = logging.getLogger(__name__)


class ExecutionLockRegistry:
    """
    Tracks which (budget, account) pairs have a reconciliation in flight.

    A second run for a held key fails immediately rather than waiting.
    Create one registry per process and pass it to every executor that
    should be serialized against the others.
    """

    def __init__(self) -> None:
        self._held: set[tuple[str, str]] = set()
        self._guard = threading.Lock()

    def acquire(self, budget_id: str, account_id: str) -> None:
        """
        Mark a key as held.

        Raises:
            ReconciliationAlreadyRunningError: If the key is already held
        """
        key = (budget_id, account_id)
        with self._guard:
            if key in self._held:
                raise ReconciliationAlreadyRunningError(budget_id, account_id)
            self._held.add(key)
        logger.debug(f"Acquired execution lock for budget={budget_id}, account={account_id}")

    def release(self, budget_id: str, account_id: str) -> None:
        with self._guard:
            self._held.discard((budget_id, account_id))
        logger.debug(f"Released execution lock for budget={budget_id}, account={account_id}")

    def is_held(self, budget_id: str, account_id: str) -> bool:
        with self._guard:
            return (budget_id, account_id) in self._held

    @contextmanager
    def hold(self, budget_id: str, account_id: str) -> Iterator[None]:
        """Hold the lock for the duration of the ``with`` block."""
        self.acquire(budget_id, account_id)
        try:
            yield
        finally:
            self.release(budget_id, account_id)
