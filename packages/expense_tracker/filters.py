"""Session-scoped filter state for the transaction list and its application.

:class:`FilterState` is created with defaults when a list view opens, replaced
(never mutated) on each user interaction, and dropped when the view closes.
It is never persisted.
"""

from __future__ import annotations

import dataclasses
import enum
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from .dates import DateRange, month_range, week_range
from .models import Transaction, TransactionType


class DateFilterMode(enum.StrEnum):
    ALL = "ALL"
    THIS_WEEK = "THIS_WEEK"
    THIS_MONTH = "THIS_MONTH"
    CUSTOM = "CUSTOM"


@dataclass(frozen=True, slots=True)
class FilterState:
    """Current filter selections of a transaction list view.

    ``None`` for ``type_filter``/``category_filter`` means "any". Custom bounds
    are only consulted when ``date_filter`` is :attr:`DateFilterMode.CUSTOM`.
    """

    search_query: str = ""
    type_filter: TransactionType | None = None
    category_filter: str | None = None
    date_filter: DateFilterMode = DateFilterMode.ALL
    custom_start: datetime | None = None
    custom_end: datetime | None = None

    def replace(self, **changes) -> FilterState:
        return dataclasses.replace(self, **changes)

    @property
    def is_default(self) -> bool:
        return self == FilterState()


def resolve_date_range(
    mode: DateFilterMode,
    *,
    now: datetime,
    custom_start: datetime | None = None,
    custom_end: datetime | None = None,
) -> DateRange | None:
    """Return the inclusive ``(start, end)`` for ``mode``, or ``None`` for no bound.

    CUSTOM needs both bounds; with either one missing the date dimension is
    left unfiltered.
    """

    mode = DateFilterMode(mode)
    if mode == DateFilterMode.THIS_WEEK:
        return week_range(now)
    if mode == DateFilterMode.THIS_MONTH:
        return month_range(now)
    if mode == DateFilterMode.CUSTOM and custom_start is not None and custom_end is not None:
        return custom_start, custom_end
    return None


def matches_search(tx: Transaction, query: str) -> bool:
    """Case-insensitive substring match on description or category."""
    needle = query.casefold()
    return needle in tx.description.casefold() or needle in tx.category.casefold()


def filter_transactions(
    transactions: Iterable[Transaction],
    state: FilterState,
    *,
    now: datetime,
) -> list[Transaction]:
    """Apply ``state`` to ``transactions``, preserving input order.

    Predicates are applied as type, category, date range, then search text.
    Blank search text matches everything.
    """

    rows = list(transactions)

    if state.type_filter is not None:
        rows = [t for t in rows if t.type == state.type_filter]

    if state.category_filter is not None:
        rows = [t for t in rows if t.category == state.category_filter]

    bounds = resolve_date_range(
        state.date_filter,
        now=now,
        custom_start=state.custom_start,
        custom_end=state.custom_end,
    )
    if bounds is not None:
        start, end = bounds
        rows = [t for t in rows if start <= t.date <= end]

    if state.search_query.strip():
        rows = [t for t in rows if matches_search(t, state.search_query)]

    return rows


__all__ = [
    "DateFilterMode",
    "FilterState",
    "resolve_date_range",
    "matches_search",
    "filter_transactions",
]
