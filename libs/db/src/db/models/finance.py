from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Stored verbatim in ``et_transactions.type``.
TRANSACTION_TYPES: tuple[str, ...] = ("INCOME", "EXPENSE")


class Base(DeclarativeBase):
    pass


# ---------------------------
# Core: et_transactions
# ---------------------------


class EtTransaction(Base):
    __tablename__ = "et_transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Always positive; direction is carried by ``type``. Positivity is enforced
    # at the edit boundary (``expense_tracker.models.TransactionDraft``), not here.
    # SQLite stores NUMERIC as a double, so the edit boundary also caps amounts
    # below 10**13 (15 significant digits with cents).
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    # Free-form; not a foreign key into the category catalog.
    category: Mapped[str] = mapped_column(String, nullable=False)
    type: Mapped[str] = mapped_column(String(7), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, server_default=text("''"))
    # Economic date of the transaction (user-settable); drives ordering and ranges.
    date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    # Record-creation time; never rewritten after insert.
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (
        CheckConstraint("type in ('INCOME','EXPENSE')", name="ck_et_tx_type"),
        Index("ix_et_tx_date", "date"),
        Index("ix_et_tx_type_date", "type", "date"),
    )


__all__ = [
    "Base",
    "EtTransaction",
    "TRANSACTION_TYPES",
]
