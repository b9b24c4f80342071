"""Static category catalog.

The catalog is a closed, process-wide, read-only table of ``(name, type)``
entries. Transactions store a free-form category string; resolving it against
the catalog is a pure lookup that never mutates the table. Presentation data
(icons, colors) belongs to the UI and is not kept here.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType

from .models import TransactionType


@dataclass(frozen=True, slots=True)
class CatalogCategory:
    name: str
    type: TransactionType


# ---------------------------
# Catalog entries
# ---------------------------

FOOD = CatalogCategory("Food & Dining", TransactionType.EXPENSE)
TRANSPORT = CatalogCategory("Transportation", TransactionType.EXPENSE)
SHOPPING = CatalogCategory("Shopping", TransactionType.EXPENSE)
BILLS = CatalogCategory("Bills & Utilities", TransactionType.EXPENSE)
ENTERTAINMENT = CatalogCategory("Entertainment", TransactionType.EXPENSE)
HEALTHCARE = CatalogCategory("Healthcare", TransactionType.EXPENSE)
EDUCATION = CatalogCategory("Education", TransactionType.EXPENSE)
OTHER_EXPENSE = CatalogCategory("Other Expenses", TransactionType.EXPENSE)

SALARY = CatalogCategory("Salary", TransactionType.INCOME)
FREELANCE = CatalogCategory("Freelance", TransactionType.INCOME)
BUSINESS = CatalogCategory("Business", TransactionType.INCOME)
INVESTMENTS = CatalogCategory("Investments", TransactionType.INCOME)
OTHER_INCOME = CatalogCategory("Other Income", TransactionType.INCOME)

_EXPENSE: tuple[CatalogCategory, ...] = (
    FOOD,
    TRANSPORT,
    SHOPPING,
    BILLS,
    ENTERTAINMENT,
    HEALTHCARE,
    EDUCATION,
    OTHER_EXPENSE,
)
_INCOME: tuple[CatalogCategory, ...] = (
    SALARY,
    FREELANCE,
    BUSINESS,
    INVESTMENTS,
    OTHER_INCOME,
)

_BY_NAME = MappingProxyType({c.name: c for c in _EXPENSE + _INCOME})

# Unmatched names resolve here.
DEFAULT_CATEGORY = OTHER_EXPENSE


def expense_categories() -> tuple[CatalogCategory, ...]:
    return _EXPENSE


def income_categories() -> tuple[CatalogCategory, ...]:
    return _INCOME


def all_categories() -> tuple[CatalogCategory, ...]:
    """Expense entries first, then income entries, in catalog order."""
    return _EXPENSE + _INCOME


def categories_for(type_: TransactionType) -> tuple[CatalogCategory, ...]:
    return _INCOME if type_ == TransactionType.INCOME else _EXPENSE


def find_category(name: str) -> CatalogCategory | None:
    """Exact (case-sensitive) lookup; ``None`` when the name is not cataloged."""
    return _BY_NAME.get(name)


def resolve_category(name: str) -> CatalogCategory:
    """Return the catalog entry for ``name``, or :data:`DEFAULT_CATEGORY`."""
    return _BY_NAME.get(name, DEFAULT_CATEGORY)


__all__ = [
    "CatalogCategory",
    "DEFAULT_CATEGORY",
    "expense_categories",
    "income_categories",
    "all_categories",
    "categories_for",
    "find_category",
    "resolve_category",
]
