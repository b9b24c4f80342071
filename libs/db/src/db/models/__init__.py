"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the transaction table used by ``expense_tracker``.
"""

from .finance import TRANSACTION_TYPES, Base, EtTransaction

__all__ = [
    "Base",
    "EtTransaction",
    "TRANSACTION_TYPES",
]
