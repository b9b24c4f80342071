"""Aggregation engine: pure functions over transaction result sets.

Nothing in this module touches the store or raises on well-formed input.
Empty inputs produce zero or ``None`` results, and out-of-range budget
limits are guarded rather than rejected. All money arithmetic uses
``Decimal``.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable, Iterable, Sequence
from datetime import datetime
from decimal import Decimal

from .constants import BUDGET_WARNING_THRESHOLD, RECENT_TRANSACTIONS_LIMIT
from .models import CategorySpending, DateBucket, Transaction, TransactionType

ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")

# ---------------------------------------------------------------------------
# Totals and budget metrics
# ---------------------------------------------------------------------------


def sum_amounts(transactions: Iterable[Transaction]) -> Decimal:
    return sum((t.amount for t in transactions), ZERO)


def total_by_type(transactions: Iterable[Transaction], type_: TransactionType) -> Decimal:
    return sum_amounts(t for t in transactions if t.type == type_)


def balance(income: Decimal, expense: Decimal) -> Decimal:
    """Income minus expense; negative when spending exceeds income."""
    return income - expense


def remaining_budget(limit: Decimal, spent: Decimal) -> Decimal:
    """Budget left for the month; negative once the limit is exceeded."""
    return limit - spent


def budget_progress(spent: Decimal, limit: Decimal) -> Decimal:
    """Fraction of ``limit`` consumed by ``spent``, clamped to ``[0, 1]``.

    A zero or negative limit yields ``0``.
    """

    if limit <= 0:
        return ZERO
    return min(max(spent / limit, ZERO), ONE)


def is_over_budget(spent: Decimal, limit: Decimal) -> bool:
    return spent > limit


def is_approaching_budget(
    spent: Decimal,
    limit: Decimal,
    threshold: Decimal = BUDGET_WARNING_THRESHOLD,
) -> bool:
    """True once ``spent`` reaches ``limit * threshold``.

    Computed independently of :func:`is_over_budget`; both are true when
    spending is past the limit.
    """

    return spent >= limit * threshold


# ---------------------------------------------------------------------------
# Groupings and lookups
# ---------------------------------------------------------------------------


def percentage(part: Decimal, total: Decimal) -> Decimal:
    if total == 0:
        return ZERO
    return part / total * HUNDRED


def category_breakdown(
    transactions: Iterable[Transaction],
    total: Decimal | None = None,
) -> list[CategorySpending]:
    """Group by category string and compute each group's share of ``total``.

    ``total`` defaults to the sum of ``transactions``. Every distinct category
    string yields exactly one entry, catalog member or not. Entries are sorted
    by amount descending, then by category name.
    """

    sums: dict[str, Decimal] = {}
    for t in transactions:
        sums[t.category] = sums.get(t.category, ZERO) + t.amount

    denominator = sum(sums.values(), ZERO) if total is None else total
    rows = [
        CategorySpending(category=name, amount=amount, percentage=percentage(amount, denominator))
        for name, amount in sums.items()
    ]
    rows.sort(key=lambda r: (-r.amount, r.category))
    return rows


def highest_expense(transactions: Iterable[Transaction]) -> Transaction | None:
    """Largest EXPENSE by amount; the lowest id wins a tie."""

    best: Transaction | None = None
    for t in transactions:
        if t.type != TransactionType.EXPENSE:
            continue
        if best is None or t.amount > best.amount or (t.amount == best.amount and t.id < best.id):
            best = t
    return best


def most_used_category(
    transactions: Iterable[Transaction],
    type_: TransactionType,
) -> str | None:
    """Category with the most transactions (by count) of ``type_``.

    Ties go to the alphabetically first name.
    """

    counts = Counter(t.category for t in transactions if t.type == type_)
    if not counts:
        return None
    return min(counts.items(), key=lambda kv: (-kv[1], kv[0]))[0]


def recent(
    transactions: Sequence[Transaction],
    limit: int = RECENT_TRANSACTIONS_LIMIT,
) -> list[Transaction]:
    """First ``limit`` rows of an already date-ordered list."""
    return list(transactions[: max(limit, 0)])


def group_by_date(
    transactions: Iterable[Transaction],
    label: Callable[[datetime], str],
) -> list[DateBucket]:
    """Partition ``transactions`` into buckets keyed by ``label(t.date)``.

    Buckets appear in order of their first member; members keep their input
    order within a bucket.
    """

    buckets: dict[str, list[Transaction]] = {}
    for t in transactions:
        buckets.setdefault(label(t.date), []).append(t)
    return [DateBucket(label=key, transactions=tuple(rows)) for key, rows in buckets.items()]


__all__ = [
    "sum_amounts",
    "total_by_type",
    "balance",
    "remaining_budget",
    "budget_progress",
    "is_over_budget",
    "is_approaching_budget",
    "percentage",
    "category_breakdown",
    "highest_expense",
    "most_used_category",
    "recent",
    "group_by_date",
]
