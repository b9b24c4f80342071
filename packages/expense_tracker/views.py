"""Screen-level view models built on the live graph.

Each view owns the nodes it creates and exposes them as attributes that can
be read (``view.balance.value``) or subscribed to. Query results come from
the shared :class:`~expense_tracker.queries.QueryEngine`; session state
(filters, the budget limit) lives in source nodes owned by the view and is
dropped by :meth:`close`.

Month and week windows are fixed when a view is opened, except where the
window is itself a filter choice. ``TransactionsView`` and ``StatisticsView``
resolve it from the injected clock whenever the filter or the store changes,
so a view left open past midnight moves on with the next write.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import datetime
from decimal import Decimal
from typing import Any, TypeVar

from .aggregation import (
    balance,
    budget_progress,
    category_breakdown,
    group_by_date,
    is_approaching_budget,
    is_over_budget,
    recent,
    remaining_budget,
)
from .constants import default_budget_limit
from .dates import Clock, DateRange, month_range, relative_date_label, week_range
from .filters import DateFilterMode, FilterState, filter_transactions
from .live import LiveGraph, LiveNode, SourceNode
from .logging_setup import get_logger
from .models import CategorySpending, DateBucket, Transaction, TransactionType
from .queries import ZERO, QueryEngine
from .store import to_decimal_2

logger = get_logger(__name__)

T = TypeVar("T")


class _View:
    """Shared plumbing: node ownership and teardown."""

    _prefix = "view"

    def __init__(self, engine: QueryEngine, graph: LiveGraph, clock: Clock) -> None:
        self._engine = engine
        self._graph = graph
        self._clock = clock
        self._owned: list[LiveNode[Any]] = []
        self._closed = False

    def _derive(
        self,
        name: str,
        deps: Sequence[LiveNode[Any]],
        compute: Callable[..., T],
        *,
        initial: T,
    ) -> LiveNode[T]:
        node = self._graph.derive(f"{self._prefix}.{name}", deps, compute, initial=initial)
        self._owned.append(node)
        return node

    def _source(self, name: str, initial: T) -> SourceNode[T]:
        node = self._graph.source(f"{self._prefix}.{name}", initial)
        self._owned.append(node)
        return node

    def _mirror(self, name: str, node: LiveNode[T]) -> LiveNode[T]:
        """Expose a shared query node through a node this view owns."""
        return self._derive(name, [node], lambda v: v, initial=node.initial)

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Dispose every owned node; subscriptions to them go inactive."""

        if self._closed:
            return
        self._closed = True
        with self._graph.lock:
            for node in reversed(self._owned):
                self._graph.dispose(node)
        logger.debug("closed %s (%d nodes)", self._prefix, len(self._owned))
        self._owned.clear()

    def __enter__(self):
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


class HomeView(_View):
    """Dashboard: recent activity and this month's totals."""

    _prefix = "home"

    def __init__(self, engine: QueryEngine, graph: LiveGraph, clock: Clock) -> None:
        super().__init__(engine, graph, clock)
        start, end = month_range(clock())
        self.month: DateRange = (start, end)

        with graph.lock:
            self.recent_transactions: LiveNode[list[Transaction]] = self._derive(
                "recent_transactions", [engine.all()], recent, initial=[]
            )
            self.monthly_income: LiveNode[Decimal] = self._mirror(
                "monthly_income",
                engine.total_by_type_and_date_range(TransactionType.INCOME, start, end),
            )
            self.monthly_expense: LiveNode[Decimal] = self._mirror(
                "monthly_expense",
                engine.total_by_type_and_date_range(TransactionType.EXPENSE, start, end),
            )
            self.balance: LiveNode[Decimal] = self._derive(
                "balance", [self.monthly_income, self.monthly_expense], balance, initial=ZERO
            )
            self.highest_expense: LiveNode[Transaction | None] = self._mirror(
                "highest_expense", engine.highest_expense()
            )
            self.most_used_category: LiveNode[str | None] = self._mirror(
                "most_used_category", engine.most_used_category(TransactionType.EXPENSE)
            )


class TransactionsView(_View):
    """Full list with search, type, category and date filters."""

    _prefix = "transactions"

    def __init__(self, engine: QueryEngine, graph: LiveGraph, clock: Clock) -> None:
        super().__init__(engine, graph, clock)
        with graph.lock:
            self.filter_state: SourceNode[FilterState] = self._source(
                "filter_state", FilterState()
            )
            self.transactions: LiveNode[list[Transaction]] = self._derive(
                "transactions",
                [engine.all(), self.filter_state],
                lambda rows, state: filter_transactions(rows, state, now=self._clock()),
                initial=[],
            )
            self.grouped: LiveNode[list[DateBucket]] = self._derive(
                "grouped", [self.transactions], self._group, initial=[]
            )

    def _group(self, rows: list[Transaction]) -> list[DateBucket]:
        today = self._clock()
        return group_by_date(rows, lambda ts: relative_date_label(ts, today))

    def set_search_query(self, text: str) -> None:
        self.filter_state.update(lambda s: s.replace(search_query=text))

    def set_type_filter(self, type_: TransactionType | None) -> None:
        value = TransactionType(type_) if type_ is not None else None
        self.filter_state.update(lambda s: s.replace(type_filter=value))

    def set_category_filter(self, category: str | None) -> None:
        self.filter_state.update(lambda s: s.replace(category_filter=category))

    def set_date_filter(
        self,
        mode: DateFilterMode,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> None:
        """Select a date window; ``start``/``end`` only matter for CUSTOM.

        Custom bounds are replaced on every call, so switching modes clears
        them.
        """

        mode = DateFilterMode(mode)
        if start is not None and end is not None and start > end:
            raise ValueError(f"custom range start {start} is after end {end}")
        self.filter_state.update(
            lambda s: s.replace(date_filter=mode, custom_start=start, custom_end=end)
        )

    def clear_filters(self) -> None:
        self.filter_state.set(FilterState())


class StatisticsView(_View):
    """Income/expense totals and category breakdowns for a week or month."""

    _prefix = "statistics"

    def __init__(
        self,
        engine: QueryEngine,
        graph: LiveGraph,
        clock: Clock,
        *,
        date_filter: DateFilterMode = DateFilterMode.THIS_MONTH,
    ) -> None:
        super().__init__(engine, graph, clock)
        queries = engine.queries
        version = graph.store_version

        with graph.lock:
            self.date_filter: SourceNode[DateFilterMode] = self._source(
                "date_filter", DateFilterMode(date_filter)
            )
            self.date_range: LiveNode[DateRange] = self._derive(
                "date_range",
                [self.date_filter, version],
                self._window,
                initial=month_range(clock()),
            )

            def total(type_: TransactionType) -> Callable[[DateRange, int], Decimal]:
                return lambda rng, _v: queries.total_by_type_and_date_range(type_, *rng)

            def rows(type_: TransactionType) -> Callable[[DateRange, int], list[Transaction]]:
                return lambda rng, _v: queries.by_type_and_date_range(type_, *rng)

            window = [self.date_range, version]
            self.total_income: LiveNode[Decimal] = self._derive(
                "total_income", window, total(TransactionType.INCOME), initial=ZERO
            )
            self.total_expense: LiveNode[Decimal] = self._derive(
                "total_expense", window, total(TransactionType.EXPENSE), initial=ZERO
            )
            income_rows = self._derive(
                "income_rows", window, rows(TransactionType.INCOME), initial=[]
            )
            expense_rows = self._derive(
                "expense_rows", window, rows(TransactionType.EXPENSE), initial=[]
            )
            self.expense_breakdown: LiveNode[list[CategorySpending]] = self._derive(
                "expense_breakdown",
                [expense_rows, self.total_expense],
                category_breakdown,
                initial=[],
            )
            self.income_breakdown: LiveNode[list[CategorySpending]] = self._derive(
                "income_breakdown",
                [income_rows, self.total_income],
                category_breakdown,
                initial=[],
            )

    def _window(self, mode: DateFilterMode, _version: int = 0) -> DateRange:
        # Only a week or a month is offered here; anything else shows the month.
        now = self._clock()
        if mode == DateFilterMode.THIS_WEEK:
            return week_range(now)
        return month_range(now)

    def set_date_filter(self, mode: DateFilterMode) -> None:
        self.date_filter.set(DateFilterMode(mode))


class BudgetView(_View):
    """This month's spending against a session-only budget limit."""

    _prefix = "budget"

    def __init__(
        self,
        engine: QueryEngine,
        graph: LiveGraph,
        clock: Clock,
        *,
        limit: Decimal | None = None,
    ) -> None:
        super().__init__(engine, graph, clock)
        start, end = month_range(clock())
        self.month: DateRange = (start, end)
        initial_limit = default_budget_limit() if limit is None else to_decimal_2(limit)

        with graph.lock:
            self.budget_limit: SourceNode[Decimal] = self._source("budget_limit", initial_limit)
            self.monthly_spending: LiveNode[Decimal] = self._mirror(
                "monthly_spending",
                engine.total_by_type_and_date_range(TransactionType.EXPENSE, start, end),
            )
            both = [self.budget_limit, self.monthly_spending]
            self.remaining_budget: LiveNode[Decimal] = self._derive(
                "remaining_budget", both, remaining_budget, initial=initial_limit
            )
            self.budget_progress: LiveNode[Decimal] = self._derive(
                "budget_progress",
                both,
                lambda limit, spent: budget_progress(spent, limit),
                initial=ZERO,
            )
            self.is_over_budget: LiveNode[bool] = self._derive(
                "is_over_budget",
                both,
                lambda limit, spent: is_over_budget(spent, limit),
                initial=False,
            )
            self.is_approaching_budget: LiveNode[bool] = self._derive(
                "is_approaching_budget",
                both,
                lambda limit, spent: is_approaching_budget(spent, limit),
                initial=False,
            )

    def set_budget_limit(self, limit: Decimal | int | str) -> None:
        """Replace the limit for this session. Non-positive limits are kept
        as given; progress treats them as zero."""

        self.budget_limit.set(to_decimal_2(limit))


__all__ = ["HomeView", "TransactionsView", "StatisticsView", "BudgetView"]
