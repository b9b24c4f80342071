"""Public interface for the ``expense_tracker`` package.

Symbol re-exports only; the CLI lives in ``expense_tracker.cli`` and is not
imported here.
"""

from .catalog import CatalogCategory, all_categories, expense_categories, income_categories
from .errors import ExpenseTrackerError, TransactionNotFoundError
from .filters import DateFilterMode, FilterState
from .live import LiveGraph, LiveNode, SourceNode, Subscription
from .models import (
    CategorySpending,
    DateBucket,
    Transaction,
    TransactionDraft,
    TransactionPatch,
    TransactionType,
)
from .queries import QueryEngine, TransactionQueries
from .store import StoreChange, TransactionStore
from .tracker import ExpenseTracker
from .views import BudgetView, HomeView, StatisticsView, TransactionsView

__all__ = [
    # Facade
    "ExpenseTracker",
    # Store / queries
    "TransactionStore",
    "StoreChange",
    "TransactionQueries",
    "QueryEngine",
    # Live graph / views
    "LiveGraph",
    "LiveNode",
    "SourceNode",
    "Subscription",
    "HomeView",
    "TransactionsView",
    "StatisticsView",
    "BudgetView",
    # Models / types
    "Transaction",
    "TransactionType",
    "TransactionDraft",
    "TransactionPatch",
    "CategorySpending",
    "DateBucket",
    "DateFilterMode",
    "FilterState",
    "CatalogCategory",
    "all_categories",
    "expense_categories",
    "income_categories",
    # Errors
    "ExpenseTrackerError",
    "TransactionNotFoundError",
]
