"""App-wide constants and environment-derived defaults."""

from __future__ import annotations

import os
from decimal import Decimal, InvalidOperation

APP_NAME = "Expense Tracker"
CURRENCY_CODE = "KES"
CURRENCY_SYMBOL = "KSh"

# Monthly expense ceiling used until the user sets one for the session.
DEFAULT_BUDGET_LIMIT = Decimal("500000")

# Spending at or above this fraction of the limit raises the warning flag.
BUDGET_WARNING_THRESHOLD = Decimal("0.8")

# Number of rows shown in the home screen's "recent transactions" list.
RECENT_TRANSACTIONS_LIMIT = 10

_BUDGET_ENV = "EXPENSE_TRACKER_BUDGET_LIMIT"


def default_budget_limit() -> Decimal:
    """Return the session's starting budget limit.

    Honors ``EXPENSE_TRACKER_BUDGET_LIMIT`` when it parses to a positive
    decimal; anything else falls back to :data:`DEFAULT_BUDGET_LIMIT`.
    """

    raw = os.getenv(_BUDGET_ENV)
    if not raw:
        return DEFAULT_BUDGET_LIMIT
    try:
        value = Decimal(raw.strip())
    except InvalidOperation:
        return DEFAULT_BUDGET_LIMIT
    if not value.is_finite() or value <= 0:
        return DEFAULT_BUDGET_LIMIT
    return value


__all__ = [
    "APP_NAME",
    "CURRENCY_CODE",
    "CURRENCY_SYMBOL",
    "DEFAULT_BUDGET_LIMIT",
    "BUDGET_WARNING_THRESHOLD",
    "RECENT_TRANSACTIONS_LIMIT",
    "default_budget_limit",
]
