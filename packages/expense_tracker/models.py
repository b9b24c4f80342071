"""Domain models for ``expense_tracker``.

Two families live here:

- Plain frozen dataclasses for values that flow through the core
  (:class:`Transaction`, :class:`CategorySpending`, :class:`DateBucket`).
- Pydantic models that guard the edit boundary (:class:`TransactionDraft`,
  :class:`TransactionPatch`). Input that fails validation never reaches the
  store.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

# ---------------------------------------------------------------------------
# Core record
# ---------------------------------------------------------------------------


class TransactionType(enum.StrEnum):
    """Direction of a money movement. Amounts are always positive."""

    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


@dataclass(frozen=True, slots=True)
class Transaction:
    """A single recorded income or expense.

    Attributes
    ----------
    id:
        Store-assigned identifier; ``0`` until the record is persisted.
    amount:
        Positive amount. The sign never carries direction; ``type`` does.
    category:
        Free-form category name. It may not match any catalog entry.
    type:
        :class:`TransactionType`, fixed at creation.
    description:
        Free text, possibly empty.
    date:
        Economic date of the transaction (user-settable). Used for ordering
        and range filtering.
    created_at:
        Record-creation time assigned by the system. Not used for any
        aggregation.
    """

    amount: Decimal
    category: str
    type: TransactionType
    date: datetime
    description: str = ""
    id: int = 0
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def is_persisted(self) -> bool:
        return self.id > 0

    @property
    def is_income(self) -> bool:
        return self.type == TransactionType.INCOME


# ---------------------------------------------------------------------------
# Derived values
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CategorySpending:
    """Sum and share of one category within a filtered transaction set."""

    category: str
    amount: Decimal
    percentage: Decimal


@dataclass(frozen=True, slots=True)
class DateBucket:
    """Transactions sharing one display label ("Today", "Yesterday", a date)."""

    label: str
    transactions: tuple[Transaction, ...]


# ---------------------------------------------------------------------------
# Edit-boundary DTOs
# ---------------------------------------------------------------------------

# Amounts are stored in cents; finer input is rejected, never rounded.
CENT = Decimal("0.01")
# SQLite keeps NUMERIC as a double: 15 significant digits survive a round trip.
MAX_AMOUNT = Decimal("10000000000000")


def _positive_amount(v: Any) -> Decimal:
    if isinstance(v, bool):
        raise ValueError("amount must be a number")
    try:
        amount = v if isinstance(v, Decimal) else Decimal(str(v).strip())
    except InvalidOperation:
        raise ValueError(f"amount is not a number: {v!r}") from None
    if not amount.is_finite() or amount <= 0:
        raise ValueError("amount must be greater than zero")
    if amount >= MAX_AMOUNT:
        raise ValueError(f"amount must be less than {MAX_AMOUNT:,}")
    if amount != amount.quantize(CENT):
        raise ValueError("amount must not have more than 2 decimal places")
    return amount


def _non_blank(v: str) -> str:
    if not v.strip():
        raise ValueError("category must be non-empty")
    return v.strip()


class TransactionDraft(BaseModel):
    """Validated input for a new transaction.

    ``amount`` accepts ints, floats, strings or ``Decimal`` and must be
    strictly positive. ``category`` is trimmed and must be non-empty; it is not
    checked against the catalog.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    amount: Decimal
    category: str
    type: TransactionType
    date: datetime
    description: str = ""

    @field_validator("amount", mode="before")
    @classmethod
    def _amount_positive(cls, v: Any) -> Decimal:
        return _positive_amount(v)

    @field_validator("category")
    @classmethod
    def _category_non_blank(cls, v: str) -> str:
        return _non_blank(v)

    def to_transaction(self, *, created_at: datetime | None = None) -> Transaction:
        return Transaction(
            amount=self.amount,
            category=self.category,
            type=self.type,
            date=self.date,
            description=self.description,
            created_at=created_at or datetime.now(),
        )


class TransactionPatch(BaseModel):
    """Validated partial update. Omitted fields keep their stored values.

    ``type`` is absent: a transaction's direction is fixed at
    creation, and unknown keys are rejected.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    amount: Decimal | None = None
    category: str | None = None
    date: datetime | None = None
    description: str | None = None

    @field_validator("amount", mode="before")
    @classmethod
    def _amount_positive(cls, v: Any) -> Decimal | None:
        if v is None:
            return None
        return _positive_amount(v)

    @field_validator("category")
    @classmethod
    def _category_non_blank(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return _non_blank(v)

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


__all__ = [
    "TransactionType",
    "Transaction",
    "CategorySpending",
    "DateBucket",
    "TransactionDraft",
    "TransactionPatch",
]
