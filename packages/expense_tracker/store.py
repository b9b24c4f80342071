"""Transaction store backed by the shared ``db`` library.

The store is the only component that writes to ``et_transactions``. Writes
are serialized by an in-process lock, each runs in its own short transaction,
and registered listeners are told about every committed change in commit
order. A write that fails raises the underlying SQLAlchemy error unchanged and
notifies nobody.

Scope:
- CRUD over :class:`~expense_tracker.models.Transaction` values.
- Change notification for the live view binder.
- Read sessions for :mod:`expense_tracker.queries`.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Literal, NamedTuple, TypeAlias

from db.client import create_db_engine, init_schema, make_session_factory, session_scope
from db.models.finance import EtTransaction
from sqlalchemy import delete as sa_delete
from sqlalchemy import func, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from .errors import TransactionNotFoundError
from .logging_setup import get_logger
from .models import Transaction, TransactionType

logger = get_logger(__name__)

ChangeKind: TypeAlias = Literal["insert", "update", "delete", "clear"]


class StoreChange(NamedTuple):
    """A committed mutation: what happened and to which ids."""

    kind: ChangeKind
    ids: tuple[int, ...]


ChangeListener: TypeAlias = Callable[[StoreChange], None]


def to_decimal_2(raw: Any) -> Decimal:
    """Quantize ``raw`` to cents (half-up). Raises ``ValueError`` on junk."""

    try:
        d = raw if isinstance(raw, Decimal) else Decimal(str(raw))
    except (InvalidOperation, ValueError):
        raise ValueError(f"not a decimal amount: {raw!r}") from None
    return d.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def to_domain(row: EtTransaction) -> Transaction:
    return Transaction(
        id=row.id,
        amount=to_decimal_2(row.amount),
        category=row.category,
        type=TransactionType(row.type),
        description=row.description or "",
        date=row.date,
        created_at=row.created_at,
    )


def _row_values(tx: Transaction) -> dict[str, Any]:
    return {
        "amount": to_decimal_2(tx.amount),
        "category": tx.category,
        "type": TransactionType(tx.type).value,
        "description": tx.description or "",
        "date": tx.date,
        "created_at": tx.created_at or datetime.now(),
    }


class TransactionStore:
    """Durable keyed collection of transactions with change notification."""

    def __init__(self, engine: Engine, *, lock: threading.RLock | None = None) -> None:
        self._engine = engine
        self._factory = make_session_factory(engine)
        self._listeners: list[ChangeListener] = []
        self._lock = lock if lock is not None else threading.RLock()

    @classmethod
    def from_url(
        cls, database_url: str | None = None, *, create_schema: bool = False
    ) -> TransactionStore:
        """Build a store for ``database_url`` (``DATABASE_URL`` when omitted)."""

        engine = create_db_engine(database_url=database_url)
        if create_schema:
            init_schema(engine)
        return cls(engine)

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def lock(self) -> threading.RLock:
        """Re-entrant lock held for every write and while listeners run."""
        return self._lock

    # ---- listeners -----------------------------------------------------------

    def add_listener(self, listener: ChangeListener) -> None:
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def remove_listener(self, listener: ChangeListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _notify(self, change: StoreChange) -> None:
        # The write is committed by now; listener failures are logged, not raised.
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                logger.exception("store listener %r failed on %s", listener, change.kind)

    # ---- reads ---------------------------------------------------------------

    @contextmanager
    def read_session(self) -> Iterator[Session]:
        with session_scope(self._factory) as session:
            yield session

    def get(self, transaction_id: int) -> Transaction | None:
        with self.read_session() as session:
            row = session.get(EtTransaction, transaction_id)
            return to_domain(row) if row is not None else None

    def count(self) -> int:
        with self.read_session() as session:
            return int(session.execute(select(func.count(EtTransaction.id))).scalar_one())

    # ---- writes --------------------------------------------------------------

    def _put(self, session: Session, tx: Transaction) -> EtTransaction:
        values = _row_values(tx)
        if tx.id:
            # Same-id records replace the stored row.
            row = session.merge(EtTransaction(id=tx.id, **values))
        else:
            row = EtTransaction(**values)
            session.add(row)
        return row

    def insert(self, tx: Transaction) -> int:
        """Persist ``tx`` and return its id."""

        with self._lock:
            with session_scope(self._factory) as session:
                row = self._put(session, tx)
                session.flush()
                new_id = row.id
            logger.debug("inserted transaction id=%s type=%s", new_id, tx.type)
            self._notify(StoreChange("insert", (new_id,)))
            return new_id

    def insert_all(self, transactions: Iterable[Transaction]) -> list[int]:
        """Persist every transaction in one database transaction."""

        items = list(transactions)
        if not items:
            return []
        with self._lock:
            with session_scope(self._factory) as session:
                rows = [self._put(session, tx) for tx in items]
                session.flush()
                ids = [r.id for r in rows]
            logger.info("inserted %d transactions", len(ids))
            self._notify(StoreChange("insert", tuple(ids)))
            return ids

    def update(self, tx: Transaction) -> None:
        """Overwrite amount, category, description and date of a stored row.

        ``type`` and ``created_at`` are immutable: a differing ``type`` raises
        ``ValueError`` and ``created_at`` is left as stored.
        """

        with self._lock:
            with session_scope(self._factory) as session:
                row = session.get(EtTransaction, tx.id)
                if row is None:
                    raise TransactionNotFoundError(tx.id)
                if row.type != TransactionType(tx.type).value:
                    raise ValueError(
                        f"transaction type is immutable (id={tx.id}: {row.type} -> {tx.type})"
                    )
                row.amount = to_decimal_2(tx.amount)
                row.category = tx.category
                row.description = tx.description or ""
                row.date = tx.date
            logger.debug("updated transaction id=%s", tx.id)
            self._notify(StoreChange("update", (tx.id,)))

    def delete(self, tx: Transaction | int) -> bool:
        """Remove a transaction; returns False when the id was not stored."""

        transaction_id = tx.id if isinstance(tx, Transaction) else int(tx)
        with self._lock:
            with session_scope(self._factory) as session:
                row = session.get(EtTransaction, transaction_id)
                if row is None:
                    return False
                session.delete(row)
            logger.debug("deleted transaction id=%s", transaction_id)
            self._notify(StoreChange("delete", (transaction_id,)))
            return True

    def delete_all(self) -> int:
        """Remove every transaction and return how many rows were deleted."""

        with self._lock:
            with session_scope(self._factory) as session:
                result = session.execute(sa_delete(EtTransaction))
                removed = result.rowcount or 0
            logger.info("deleted all transactions (%d rows)", removed)
            if removed:
                self._notify(StoreChange("clear", ()))
            return removed


__all__ = [
    "ChangeListener",
    "StoreChange",
    "TransactionStore",
    "to_decimal_2",
    "to_domain",
]
