from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import pytest

from expense_tracker.filters import DateFilterMode, FilterState
from expense_tracker.models import TransactionType
from expense_tracker.tracker import ExpenseTracker

from tests.helpers.clock import FIXED_NOW, days_ago
from tests.helpers.db import make_tx, seed

EXPENSE = TransactionType.EXPENSE
INCOME = TransactionType.INCOME
LAST_MONTH = datetime(2024, 5, 20, 10)


def test_home_view_monthly_totals_and_balance(tracker, store):
    seed(
        store,
        [
            make_tx("3000", "Salary", days_ago(5), type_=INCOME),
            make_tx("1200", "Food & Dining", days_ago(1)),
            make_tx("800", "Transportation", days_ago(2)),
            make_tx("9999", "Shopping", LAST_MONTH),
        ],
    )
    home = tracker.open_home_view()
    assert home.monthly_income.value == Decimal("3000")
    assert home.monthly_expense.value == Decimal("2000")
    assert home.balance.value == Decimal("1000")
    # Highest expense and most-used category are not limited to the month.
    assert home.highest_expense.value.category == "Shopping"
    assert home.most_used_category.value == "Food & Dining"


def test_home_view_balance_goes_negative_live(tracker):
    home = tracker.open_home_view()
    balances = []
    home.balance.subscribe(balances.append)
    tracker.add_transaction(amount="500", category="Salary", type="INCOME", date=days_ago(1))
    tracker.add_transaction(amount="700", category="Shopping", type="EXPENSE", date=days_ago(1))
    assert balances == [Decimal("0"), Decimal("500"), Decimal("-200")]


def test_home_view_recent_transactions_is_capped_at_ten(tracker, store):
    seed(store, [make_tx(str(i + 1), "Food & Dining", days_ago(i)) for i in range(12)])
    home = tracker.open_home_view()
    rows = home.recent_transactions.value
    assert len(rows) == 10
    assert rows[0].date == days_ago(0)
    assert all(a.date >= b.date for a, b in zip(rows, rows[1:], strict=False))


def test_empty_home_view_has_defined_values(tracker):
    home = tracker.open_home_view()
    assert home.recent_transactions.value == []
    assert home.monthly_income.value == 0
    assert home.highest_expense.value is None
    assert home.most_used_category.value is None


def test_transactions_view_filters_and_groups(tracker, store):
    seed(
        store,
        [
            make_tx("10", "Food & Dining", FIXED_NOW.replace(hour=9), description="breakfast"),
            make_tx("20", "Transportation", days_ago(1), description="Bus"),
            make_tx("5000", "Salary", days_ago(4), type_=INCOME),
            make_tx("30", "Food & Dining", LAST_MONTH, description="dinner"),
        ],
    )
    view = tracker.open_transactions_view()
    assert len(view.transactions.value) == 4
    assert [b.label for b in view.grouped.value] == [
        "Today",
        "Yesterday",
        "Jun 08, 2024",
        "May 20, 2024",
    ]

    view.set_type_filter(EXPENSE)
    assert len(view.transactions.value) == 3
    view.set_category_filter("Food & Dining")
    assert [t.description for t in view.transactions.value] == ["breakfast", "dinner"]
    view.set_date_filter(DateFilterMode.THIS_MONTH)
    assert [t.description for t in view.transactions.value] == ["breakfast"]

    view.clear_filters()
    assert view.filter_state.value == FilterState()
    view.set_search_query("BUS")
    assert [t.category for t in view.transactions.value] == ["Transportation"]


def test_transactions_view_custom_range(tracker, store):
    seed(store, [make_tx("1", "A", days_ago(1)), make_tx("2", "B", LAST_MONTH)])
    view = tracker.open_transactions_view()
    view.set_date_filter(DateFilterMode.CUSTOM, datetime(2024, 5, 1), datetime(2024, 5, 31))
    assert [t.category for t in view.transactions.value] == ["B"]
    # Switching mode drops the custom bounds.
    view.set_date_filter(DateFilterMode.ALL)
    state = view.filter_state.value
    assert state.custom_start is None and state.custom_end is None
    with pytest.raises(ValueError):
        view.set_date_filter(DateFilterMode.CUSTOM, datetime(2024, 6, 2), datetime(2024, 6, 1))


def test_transactions_view_sees_deletes(tracker):
    view = tracker.open_transactions_view()
    snapshots = []
    view.transactions.subscribe(snapshots.append)
    tx = tracker.add_transaction(
        amount=5, category="Food & Dining", type="EXPENSE", date=days_ago(1)
    )
    assert [t.id for t in snapshots[-1]] == [tx.id]
    assert tracker.delete_transaction(tx.id) is True
    assert snapshots[-1] == []
    assert tracker.delete_transaction(tx.id) is False


def test_statistics_view_breakdown(tracker, store):
    seed(
        store,
        [
            make_tx("100", "Food", days_ago(1)),
            make_tx("150", "Food", days_ago(2)),
            make_tx("150", "Transport", days_ago(3)),
            make_tx("1000", "Salary", days_ago(1), type_=INCOME),
            make_tx("500", "Food", LAST_MONTH),
        ],
    )
    stats = tracker.open_statistics_view()
    assert stats.total_expense.value == Decimal("400")
    assert stats.total_income.value == Decimal("1000")
    breakdown = stats.expense_breakdown.value
    assert [(r.category, r.amount) for r in breakdown] == [
        ("Food", Decimal("250")),
        ("Transport", Decimal("150")),
    ]
    assert breakdown[0].percentage == Decimal("62.5")
    assert [r.category for r in stats.income_breakdown.value] == ["Salary"]


def test_statistics_view_week_and_fallback(tracker, store):
    # days_ago(3) is Sunday, June 9th: outside this week.
    seed(store, [make_tx("10", "Food", days_ago(1)), make_tx("20", "Food", days_ago(3))])
    stats = tracker.open_statistics_view()
    totals = []
    stats.total_expense.subscribe(totals.append)

    stats.set_date_filter(DateFilterMode.THIS_WEEK)
    week_end = datetime(2024, 6, 16, 23, 59, 59, 999999)
    assert stats.date_range.value == (datetime(2024, 6, 10), week_end)
    stats.set_date_filter(DateFilterMode.ALL)
    assert stats.date_range.value[0] == datetime(2024, 6, 1)
    assert totals == [Decimal("30"), Decimal("10"), Decimal("30")]


def test_statistics_view_updates_on_store_change(tracker):
    stats = tracker.open_statistics_view()
    rows = []
    stats.expense_breakdown.subscribe(rows.append)
    tracker.add_transaction(amount="40", category="Food", type="EXPENSE", date=days_ago(1))
    assert rows[0] == []
    assert rows[-1][0].percentage == Decimal("100")


@pytest.mark.parametrize(
    ("spent", "approaching", "over"),
    [("850", True, False), ("1050", True, True), ("100", False, False)],
)
def test_budget_flags(tracker, spent, approaching, over):
    tracker.set_budget_limit(1000)
    tracker.add_transaction(amount=spent, category="Shopping", type="EXPENSE", date=days_ago(1))
    budget = tracker.budget
    assert budget.monthly_spending.value == Decimal(spent)
    assert budget.is_approaching_budget.value is approaching
    assert budget.is_over_budget.value is over
    assert budget.remaining_budget.value == Decimal("1000") - Decimal(spent)
    assert 0 <= budget.budget_progress.value <= 1


def test_budget_limit_changes_propagate(tracker):
    budget = tracker.budget
    progress = []
    budget.budget_progress.subscribe(progress.append)
    tracker.add_transaction(amount="250", category="Shopping", type="EXPENSE", date=days_ago(1))
    tracker.set_budget_limit("500")
    tracker.set_budget_limit("0")
    assert progress[-2] == Decimal("0.5")
    assert progress[-1] == 0


def test_budget_limit_defaults_from_environment(store, clock, monkeypatch):
    monkeypatch.setenv("EXPENSE_TRACKER_BUDGET_LIMIT", "1234.5")
    with ExpenseTracker(store, clock=clock) as t:
        assert t.budget.budget_limit.value == Decimal("1234.50")
    monkeypatch.setenv("EXPENSE_TRACKER_BUDGET_LIMIT", "-3")
    with ExpenseTracker(store, clock=clock) as t:
        assert t.budget.budget_limit.value == Decimal("500000")


def test_closing_a_view_releases_its_nodes(tracker):
    baseline = tracker.graph.node_count
    home = tracker.open_home_view()
    seen = []
    sub = home.balance.subscribe(seen.append)
    assert tracker.graph.node_count > baseline
    home.close()
    home.close()
    assert not sub.active
    assert tracker.graph.node_count == baseline
    tracker.add_transaction(amount="5", category="Salary", type="INCOME", date=days_ago(1))
    assert seen == [Decimal("0")]
    with pytest.raises(RuntimeError):
        home.balance.subscribe(seen.append)


def test_statistics_window_follows_the_clock_on_store_change(store):
    now = {"t": FIXED_NOW}
    with ExpenseTracker(store, clock=lambda: now["t"]) as t:
        stats = t.open_statistics_view(DateFilterMode.THIS_WEEK)
        ranges = []
        stats.date_range.subscribe(ranges.append)
        assert ranges == [(datetime(2024, 6, 10), datetime(2024, 6, 16, 23, 59, 59, 999999))]

        now["t"] = datetime(2024, 6, 18, 9)
        t.add_transaction(amount="5", category="Food", type="EXPENSE", date=now["t"])

        assert ranges[-1] == (datetime(2024, 6, 17), datetime(2024, 6, 23, 23, 59, 59, 999999))
        assert stats.total_expense.value == Decimal("5")
