"""Exception types raised by ``expense_tracker``.

Store faults are not wrapped: SQLAlchemy errors reach the caller unchanged.
"""

from __future__ import annotations


class ExpenseTrackerError(Exception):
    """Base class for errors originating in this package."""


class TransactionNotFoundError(ExpenseTrackerError, LookupError):
    """Raised when an update targets a transaction id the store does not hold."""

    def __init__(self, transaction_id: int) -> None:
        super().__init__(f"transaction not found: id={transaction_id}")
        self.transaction_id = transaction_id


__all__ = ["ExpenseTrackerError", "TransactionNotFoundError"]
