from __future__ import annotations

from expense_tracker.catalog import (
    DEFAULT_CATEGORY,
    all_categories,
    categories_for,
    expense_categories,
    find_category,
    income_categories,
    resolve_category,
)
from expense_tracker.models import TransactionType


def test_catalog_has_eight_expense_and_five_income_entries():
    assert len(expense_categories()) == 8
    assert len(income_categories()) == 5
    assert all(c.type == TransactionType.EXPENSE for c in expense_categories())
    assert all(c.type == TransactionType.INCOME for c in income_categories())
    names = [c.name for c in all_categories()]
    assert len(names) == len(set(names)) == 13


def test_categories_for_type():
    assert categories_for(TransactionType.INCOME) == income_categories()
    assert categories_for(TransactionType.EXPENSE) == expense_categories()
    assert categories_for("INCOME") == income_categories()


def test_lookup_by_name():
    assert find_category("Salary").type == TransactionType.INCOME
    assert find_category("salary") is None
    assert resolve_category("Food & Dining").name == "Food & Dining"


def test_unknown_names_resolve_to_other_expenses():
    assert resolve_category("Crypto Winnings") is DEFAULT_CATEGORY
    assert DEFAULT_CATEGORY.name == "Other Expenses"
