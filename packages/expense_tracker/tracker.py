"""Facade wiring the store, query engine, live graph and views together.

Usage
-----
>>> store = TransactionStore.from_url("sqlite:///expenses.db", create_schema=True)
>>> tracker = ExpenseTracker(store)
>>> home = tracker.open_home_view()
>>> sub = home.balance.subscribe(print)
>>> tracker.add_transaction(amount="1200", category="Salary", type="INCOME", date=now)

Mutations go through pydantic validation first; nothing invalid reaches the
store. Every committed write bumps the graph's store version, so open views
update before the mutating call returns.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import Any

from .dates import Clock, system_clock
from .errors import TransactionNotFoundError
from .filters import DateFilterMode
from .live import LiveGraph
from .logging_setup import get_logger
from .models import Transaction, TransactionDraft, TransactionPatch, TransactionType
from .queries import QueryEngine, TransactionQueries
from .store import TransactionStore
from .views import BudgetView, HomeView, StatisticsView, TransactionsView

logger = get_logger(__name__)


class ExpenseTracker:
    """Single entry point for presentation code.

    Parameters
    ----------
    store:
        An explicitly constructed :class:`TransactionStore`. The tracker never
        creates one on its own.
    clock:
        Zero-argument callable returning the current local time. Defaults to
        :func:`expense_tracker.dates.system_clock`; tests pass a fixed clock.
    budget_limit:
        Initial session budget limit. Defaults to
        :func:`expense_tracker.constants.default_budget_limit`.
    """

    def __init__(
        self,
        store: TransactionStore,
        *,
        clock: Clock | None = None,
        budget_limit: Decimal | None = None,
    ) -> None:
        self.store = store
        self.clock: Clock = clock or system_clock
        self.graph = LiveGraph(lock=store.lock)
        self.graph.bind_store(store)
        self.queries = QueryEngine(TransactionQueries(store), self.graph)
        self._views: list[HomeView | TransactionsView | StatisticsView | BudgetView] = []
        self._budget = BudgetView(self.queries, self.graph, self.clock, limit=budget_limit)
        self._closed = False

    # ---- views ---------------------------------------------------------------

    def _track(self, view):
        self._views.append(view)
        return view

    def open_home_view(self) -> HomeView:
        return self._track(HomeView(self.queries, self.graph, self.clock))

    def open_transactions_view(self) -> TransactionsView:
        return self._track(TransactionsView(self.queries, self.graph, self.clock))

    def open_statistics_view(
        self, date_filter: DateFilterMode = DateFilterMode.THIS_MONTH
    ) -> StatisticsView:
        return self._track(
            StatisticsView(self.queries, self.graph, self.clock, date_filter=date_filter)
        )

    @property
    def budget(self) -> BudgetView:
        """Budget view shared by the whole session."""
        return self._budget

    # ---- mutations -----------------------------------------------------------

    def add_transaction(
        self,
        *,
        amount: Any,
        category: str,
        type: TransactionType | str,
        date: datetime,
        description: str = "",
    ) -> Transaction:
        """Validate and insert a new transaction; returns the stored record.

        Raises ``pydantic.ValidationError`` for a non-positive amount, a blank
        category or an unknown type.
        """

        draft = TransactionDraft(
            amount=amount,
            category=category,
            type=type,
            date=date,
            description=description,
        )
        new_id = self.store.insert(draft.to_transaction(created_at=self.clock()))
        logger.info("added %s transaction id=%s category=%s", draft.type, new_id, draft.category)
        stored = self.store.get(new_id)
        if stored is None:
            raise TransactionNotFoundError(new_id)
        return stored

    def update_transaction(self, transaction_id: int, **changes: Any) -> Transaction:
        """Apply ``changes`` to a stored transaction and return the result.

        Only ``amount``, ``category``, ``date`` and ``description`` may be
        changed; anything else (``type`` included) is rejected by validation.
        """

        patch = TransactionPatch(**changes)
        current = self.store.get(transaction_id)
        if current is None:
            raise TransactionNotFoundError(transaction_id)
        updated = replace(current, **patch.changes())
        self.store.update(updated)
        return self.store.get(transaction_id) or updated

    def delete_transaction(self, transaction_id: int) -> bool:
        """Delete by id; returns False when nothing was stored under it."""
        return self.store.delete(transaction_id)

    def set_budget_limit(self, limit: Decimal | int | str) -> None:
        self._budget.set_budget_limit(limit)

    # ---- lifecycle -----------------------------------------------------------

    def close(self) -> None:
        """Close every open view and stop listening to the store."""

        if self._closed:
            return
        self._closed = True
        for view in reversed(self._views):
            view.close()
        self._views.clear()
        self._budget.close()
        self.graph.unbind_store()

    def __enter__(self) -> ExpenseTracker:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


__all__ = ["ExpenseTracker"]
