from __future__ import annotations

from datetime import datetime

from expense_tracker.filters import (
    DateFilterMode,
    FilterState,
    filter_transactions,
    matches_search,
    resolve_date_range,
)
from expense_tracker.models import TransactionType

from tests.helpers.clock import FIXED_NOW, days_ago
from tests.helpers.db import make_tx


def _rows():
    return [
        make_tx("10", "Food & Dining", days_ago(0), description="Lunch at Java"),
        make_tx("20", "Transportation", days_ago(3), description="uber home"),
        make_tx("5000", "Salary", days_ago(11), type_=TransactionType.INCOME),
        make_tx("30", "Food & Dining", datetime(2024, 5, 30, 9), description="groceries"),
    ]


def test_default_state_filters_nothing():
    state = FilterState()
    assert state.is_default
    rows = _rows()
    assert filter_transactions(rows, state, now=FIXED_NOW) == rows


def test_replace_returns_new_state():
    state = FilterState()
    changed = state.replace(search_query="x")
    assert state.search_query == ""
    assert changed.search_query == "x"
    assert not changed.is_default


def test_type_and_category_filters():
    rows = _rows()
    income = filter_transactions(
        rows, FilterState(type_filter=TransactionType.INCOME), now=FIXED_NOW
    )
    assert [t.category for t in income] == ["Salary"]
    food = filter_transactions(rows, FilterState(category_filter="Food & Dining"), now=FIXED_NOW)
    assert [t.amount for t in food] == [10, 30]


def test_week_and_month_windows():
    rows = _rows()
    week = filter_transactions(
        rows, FilterState(date_filter=DateFilterMode.THIS_WEEK), now=FIXED_NOW
    )
    # days_ago(3) is Sunday the 9th: last week.
    assert [t.category for t in week] == ["Food & Dining"]
    month = filter_transactions(
        rows, FilterState(date_filter=DateFilterMode.THIS_MONTH), now=FIXED_NOW
    )
    assert len(month) == 3


def test_custom_range_needs_both_bounds():
    rows = _rows()
    partial = FilterState(date_filter=DateFilterMode.CUSTOM, custom_start=datetime(2024, 6, 1))
    assert filter_transactions(rows, partial, now=FIXED_NOW) == rows

    full = partial.replace(custom_end=datetime(2024, 6, 9, 12))
    out = filter_transactions(rows, full, now=FIXED_NOW)
    assert [t.category for t in out] == ["Transportation", "Salary"]


def test_custom_bounds_are_inclusive():
    when = datetime(2024, 6, 5, 12)
    assert resolve_date_range(
        DateFilterMode.CUSTOM, now=FIXED_NOW, custom_start=when, custom_end=when
    ) == (when, when)
    rows = [make_tx("1", "A", when)]
    state = FilterState(date_filter=DateFilterMode.CUSTOM, custom_start=when, custom_end=when)
    assert filter_transactions(rows, state, now=FIXED_NOW) == rows


def test_resolve_date_range_all_is_unbounded():
    assert resolve_date_range(DateFilterMode.ALL, now=FIXED_NOW) is None
    assert resolve_date_range("THIS_MONTH", now=FIXED_NOW)[0] == datetime(2024, 6, 1)


def test_search_is_case_insensitive_over_description_and_category():
    rows = _rows()
    assert matches_search(rows[0], "JAVA")
    assert matches_search(rows[1], "transport")
    assert not matches_search(rows[2], "food")
    hits = filter_transactions(rows, FilterState(search_query="FOOD"), now=FIXED_NOW)
    assert len(hits) == 2
    assert filter_transactions(rows, FilterState(search_query="nothing"), now=FIXED_NOW) == []


def test_blank_search_is_ignored():
    rows = _rows()
    assert filter_transactions(rows, FilterState(search_query="   "), now=FIXED_NOW) == rows


def test_filters_combine():
    rows = _rows()
    state = FilterState(
        type_filter=TransactionType.EXPENSE,
        date_filter=DateFilterMode.THIS_MONTH,
        search_query="UBER",
    )
    out = filter_transactions(rows, state, now=FIXED_NOW)
    assert [t.description for t in out] == ["uber home"]
