"""Query engine over the transaction store.

Two layers:

- :class:`TransactionQueries` runs one-shot SQL against a store read session
  and returns domain values. Orderings are deterministic: lists are sorted
  by ``date DESC, id ASC``; the highest-expense lookup prefers the lowest id
  on equal amounts; the most-used-category lookup prefers the alphabetically
  first name on equal counts.
- :class:`QueryEngine` wraps each one-shot query in a live node that is
  recomputed after every committed store change. Identical requests share one
  node; a node nobody subscribes to or depends on is released and rebuilt on
  the next request.
"""

from __future__ import annotations

from collections.abc import Callable, Hashable
from datetime import datetime
from decimal import Decimal
from typing import Any, TypeVar

from db.models.finance import EtTransaction
from sqlalchemy import Select, func, or_, select

from .live import LiveGraph, LiveNode
from .logging_setup import get_logger
from .models import Transaction, TransactionType
from .store import TransactionStore, to_decimal_2, to_domain

logger = get_logger(__name__)

T = TypeVar("T")

ZERO = Decimal("0.00")


def _newest_first(stmt: Select[Any]) -> Select[Any]:
    return stmt.order_by(EtTransaction.date.desc(), EtTransaction.id.asc())


def _in_range(start: datetime, end: datetime):
    return EtTransaction.date.between(start, end)


def _type_value(type_: TransactionType | str) -> str:
    return TransactionType(type_).value


class TransactionQueries:
    """One-shot reads. Every call opens (and closes) its own read session."""

    def __init__(self, store: TransactionStore) -> None:
        self._store = store

    def _fetch(self, stmt: Select[Any]) -> list[Transaction]:
        with self._store.read_session() as session:
            return [to_domain(row) for row in session.execute(stmt).scalars()]

    def get(self, transaction_id: int) -> Transaction | None:
        return self._store.get(transaction_id)

    def all(self) -> list[Transaction]:
        return self._fetch(_newest_first(select(EtTransaction)))

    def by_type(self, type_: TransactionType) -> list[Transaction]:
        stmt = select(EtTransaction).where(EtTransaction.type == _type_value(type_))
        return self._fetch(_newest_first(stmt))

    def by_category(self, category: str) -> list[Transaction]:
        stmt = select(EtTransaction).where(EtTransaction.category == category)
        return self._fetch(_newest_first(stmt))

    def by_date_range(self, start: datetime, end: datetime) -> list[Transaction]:
        """Transactions with ``start <= date <= end``."""
        stmt = select(EtTransaction).where(_in_range(start, end))
        return self._fetch(_newest_first(stmt))

    def by_type_and_date_range(
        self,
        type_: TransactionType,
        start: datetime,
        end: datetime,
    ) -> list[Transaction]:
        stmt = select(EtTransaction).where(
            EtTransaction.type == _type_value(type_),
            _in_range(start, end),
        )
        return self._fetch(_newest_first(stmt))

    def search(self, text: str) -> list[Transaction]:
        """Case-insensitive substring match on description or category.

        ``%`` and ``_`` in ``text`` are matched literally.
        """

        stmt = select(EtTransaction).where(
            or_(
                EtTransaction.description.icontains(text, autoescape=True),
                EtTransaction.category.icontains(text, autoescape=True),
            )
        )
        return self._fetch(_newest_first(stmt))

    def total_by_type_and_date_range(
        self,
        type_: TransactionType,
        start: datetime,
        end: datetime,
    ) -> Decimal:
        """Sum of ``amount``; ``0.00`` when nothing matches."""

        stmt = select(func.coalesce(func.sum(EtTransaction.amount), 0)).where(
            EtTransaction.type == _type_value(type_),
            _in_range(start, end),
        )
        with self._store.read_session() as session:
            raw = session.execute(stmt).scalar_one()
        return to_decimal_2(raw if raw is not None else ZERO)

    def highest_expense(self) -> Transaction | None:
        stmt = (
            select(EtTransaction)
            .where(EtTransaction.type == TransactionType.EXPENSE.value)
            .order_by(EtTransaction.amount.desc(), EtTransaction.id.asc())
            .limit(1)
        )
        rows = self._fetch(stmt)
        return rows[0] if rows else None

    def most_used_category(self, type_: TransactionType) -> str | None:
        """Category with the most transactions of ``type_`` (count, not amount)."""

        uses = func.count(EtTransaction.id)
        stmt = (
            select(EtTransaction.category)
            .where(EtTransaction.type == _type_value(type_))
            .group_by(EtTransaction.category)
            .order_by(uses.desc(), EtTransaction.category.asc())
            .limit(1)
        )
        with self._store.read_session() as session:
            return session.execute(stmt).scalars().first()

    def count(self) -> int:
        return self._store.count()


class QueryEngine:
    """Live counterparts of :class:`TransactionQueries`.

    Each method returns a :class:`~expense_tracker.live.LiveNode` whose value
    tracks the store. Subscribe to it for updates or read ``.value`` for the
    current result.
    """

    def __init__(self, queries: TransactionQueries, graph: LiveGraph) -> None:
        self.queries = queries
        self._graph = graph
        self._memo: dict[Hashable, LiveNode[Any]] = {}
        self._lock = graph.lock

    def _node(self, key: Hashable, compute: Callable[[], T], *, initial: T) -> LiveNode[T]:
        with self._lock:
            node = self._memo.get(key)
            if node is not None and not node.disposed:
                return node
            name = ":".join(str(k) for k in key) if isinstance(key, tuple) else str(key)
            node = self._graph.derive(
                f"query:{name}",
                [self._graph.store_version],
                lambda _version: compute(),
                initial=initial,
                revivable=True,
            )
            node.on_idle(self._release)
            self._memo[key] = node
            return node

    def _release(self, node: LiveNode[Any]) -> None:
        with self._lock:
            for key, held in list(self._memo.items()):
                if held is node:
                    del self._memo[key]
            self._graph.dispose(node)
            logger.debug("released live query %s", node.name)

    @property
    def active_queries(self) -> int:
        return len(self._memo)

    def all(self) -> LiveNode[list[Transaction]]:
        return self._node(("all",), self.queries.all, initial=[])

    def by_type(self, type_: TransactionType) -> LiveNode[list[Transaction]]:
        t = TransactionType(type_)
        return self._node(("by_type", t), lambda: self.queries.by_type(t), initial=[])

    def by_category(self, category: str) -> LiveNode[list[Transaction]]:
        return self._node(
            ("by_category", category), lambda: self.queries.by_category(category), initial=[]
        )

    def by_date_range(self, start: datetime, end: datetime) -> LiveNode[list[Transaction]]:
        return self._node(
            ("by_date_range", start, end),
            lambda: self.queries.by_date_range(start, end),
            initial=[],
        )

    def by_type_and_date_range(
        self,
        type_: TransactionType,
        start: datetime,
        end: datetime,
    ) -> LiveNode[list[Transaction]]:
        t = TransactionType(type_)
        return self._node(
            ("by_type_and_date_range", t, start, end),
            lambda: self.queries.by_type_and_date_range(t, start, end),
            initial=[],
        )

    def search(self, text: str) -> LiveNode[list[Transaction]]:
        return self._node(("search", text), lambda: self.queries.search(text), initial=[])

    def total_by_type_and_date_range(
        self,
        type_: TransactionType,
        start: datetime,
        end: datetime,
    ) -> LiveNode[Decimal]:
        t = TransactionType(type_)
        return self._node(
            ("total", t, start, end),
            lambda: self.queries.total_by_type_and_date_range(t, start, end),
            initial=ZERO,
        )

    def highest_expense(self) -> LiveNode[Transaction | None]:
        return self._node(("highest_expense",), self.queries.highest_expense, initial=None)

    def most_used_category(self, type_: TransactionType) -> LiveNode[str | None]:
        t = TransactionType(type_)
        return self._node(
            ("most_used_category", t), lambda: self.queries.most_used_category(t), initial=None
        )

    def count(self) -> LiveNode[int]:
        return self._node(("count",), self.queries.count, initial=0)


__all__ = ["TransactionQueries", "QueryEngine"]
