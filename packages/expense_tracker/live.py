"""Live view binder: a small dependency graph of subscribable values.

Model
-----
- A :class:`SourceNode` is a leaf holding a value that callers replace
  (filter state, budget limit, the store version counter).
- A :class:`LiveNode` derives its value from its dependencies with a pure
  ``compute(*dep_values)`` function.
- Nodes are created after their dependencies, so creation order is a valid
  topological order.

Propagation
-----------
When leaves change, their downstream closure is marked stale and every *hot*
node (one with subscribers, directly or through hot dependents) is recomputed
once, in topological order. Cold nodes stay stale and recompute lazily the
next time they are read or subscribed. Changes made while a pass is running
(e.g. from a subscriber callback) are queued and handled by a follow-up pass,
so each subscriber sees values in the order they were produced.
``LiveGraph.batch()`` coalesces any number of leaf changes into one pass.

Delivery
--------
Subscribers get the current value on :meth:`LiveNode.subscribe` and then each
new value that differs from the previous one. A cancelled
:class:`Subscription` never receives another value.

Faults
------
A ``SQLAlchemyError`` raised by ``compute`` is logged; the node keeps its
last value and stays stale so a later pass retries. Exceptions raised by
subscriber callbacks do not interrupt delivery to others; they are collected
and re-raised as an ``ExceptionGroup`` once the pass completes. For passes
triggered by a store write, the store logs that group instead of raising it,
since the write has already been committed.
"""

from __future__ import annotations

import itertools
import threading
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from .logging_setup import get_logger

if TYPE_CHECKING:
    from .store import StoreChange, TransactionStore

logger = get_logger(__name__)

T = TypeVar("T")


class _Unset:
    __slots__ = ()

    def __repr__(self) -> str:  # pragma: no cover - trivial
        return "<unset>"


_UNSET: Any = _Unset()


class Subscription(Generic[T]):
    """Handle returned by :meth:`LiveNode.subscribe`."""

    __slots__ = ("_node", "_callback", "_active")

    def __init__(self, node: LiveNode[T], callback: Callable[[T], None]) -> None:
        self._node = node
        self._callback = callback
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    @property
    def node(self) -> LiveNode[T]:
        return self._node

    def cancel(self) -> None:
        """Detach; idempotent."""
        if not self._active:
            return
        self._active = False
        self._node._graph._unsubscribe(self)

    def __enter__(self) -> Subscription[T]:
        return self

    def __exit__(self, *exc: object) -> None:
        self.cancel()


class LiveNode(Generic[T]):
    """A derived value kept in sync with its dependencies."""

    def __init__(
        self,
        graph: LiveGraph,
        name: str,
        deps: Sequence[LiveNode[Any]],
        compute: Callable[..., T] | None,
        initial: T,
        order: int,
        revivable: bool = False,
    ) -> None:
        self.name = name
        self._graph = graph
        self._deps = tuple(deps)
        self._compute = compute
        self._initial = initial
        self._value: T = initial
        self._stale = compute is not None
        self._order = order
        self._subs: list[Subscription[T]] = []
        self._dependents: list[LiveNode[Any]] = []
        self._idle_hooks: list[Callable[[LiveNode[T]], None]] = []
        self._last_delivered: Any = _UNSET
        self._disposed = False
        self._revivable = revivable

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r} stale={self._stale}>"

    # ---- public surface ------------------------------------------------------

    @property
    def value(self) -> T:
        """Current value, recomputed first when stale."""
        with self._graph._lock:
            if self._stale or self._disposed:
                self._refresh()
            return self._value

    @property
    def initial(self) -> T:
        return self._initial

    @property
    def deps(self) -> tuple[LiveNode[Any], ...]:
        return self._deps

    @property
    def subscriber_count(self) -> int:
        return len(self._subs)

    @property
    def disposed(self) -> bool:
        return self._disposed

    def subscribe(self, callback: Callable[[T], None]) -> Subscription[T]:
        """Attach ``callback``; it is called with the current value right away."""
        return self._graph._subscribe(self, callback)

    def on_idle(self, hook: Callable[[LiveNode[T]], None]) -> None:
        """Run ``hook`` when the node loses its last subscriber and dependent."""
        self._idle_hooks.append(hook)

    # ---- graph internals -----------------------------------------------------

    def _is_hot(self) -> bool:
        return bool(self._subs) or any(d._is_hot() for d in self._dependents)

    def _is_idle(self) -> bool:
        return not self._subs and not self._dependents

    def _refresh(self) -> None:
        if self._compute is None:
            self._stale = False
            return
        try:
            args = [d.value for d in self._deps]
            new_value = self._compute(*args)
        except SQLAlchemyError:
            logger.warning("recompute of %r failed; keeping last value", self.name, exc_info=True)
            return
        self._value = new_value
        self._stale = False

    def _deliver(self, errors: list[Exception]) -> None:
        if self._stale or self._value == self._last_delivered:
            return
        self._last_delivered = self._value
        for sub in list(self._subs):
            if not sub._active:
                continue
            try:
                sub._callback(self._value)
            except Exception as e:  # noqa: BLE001
                errors.append(e)


class SourceNode(LiveNode[T]):
    """A leaf whose value is set from outside the graph."""

    def __init__(self, graph: LiveGraph, name: str, initial: T, order: int) -> None:
        super().__init__(graph, name, (), None, initial, order)

    def set(self, value: T) -> None:
        with self._graph._lock:
            if value == self._value:
                return
            self._value = value
            self._graph._changed(self)

    def update(self, fn: Callable[[T], T]) -> None:
        with self._graph._lock:
            self.set(fn(self._value))

    def touch(self) -> None:
        """Treat the leaf as changed without replacing its value."""
        with self._graph._lock:
            self._graph._changed(self)


class LiveGraph:
    """Owner of live nodes and the single propagation stream.

    A graph bound to a store must share the store's lock
    (``LiveGraph(lock=store.lock)``): writers notify the graph while holding
    it, and subscribers may write back to the store during propagation.
    """

    def __init__(self, *, lock: threading.RLock | None = None) -> None:
        self._lock = lock if lock is not None else threading.RLock()
        self._counter = itertools.count()
        self._nodes: dict[int, LiveNode[Any]] = {}
        self._dirty: dict[SourceNode[Any], None] = {}
        self._batch_depth = 0
        self._propagating = False
        self._store: TransactionStore | None = None
        self.store_version: SourceNode[int] = self.source("store_version", 0)

    # ---- construction --------------------------------------------------------

    def source(self, name: str, initial: T) -> SourceNode[T]:
        with self._lock:
            node = SourceNode(self, name, initial, next(self._counter))
            self._nodes[node._order] = node
            return node

    def derive(
        self,
        name: str,
        deps: Sequence[LiveNode[Any]],
        compute: Callable[..., T],
        *,
        initial: T,
        revivable: bool = False,
    ) -> LiveNode[T]:
        """Create a node whose value is ``compute(*[d.value for d in deps])``.

        ``initial`` is what subscribers see if the first computation fails.
        A ``revivable`` node that was disposed re-attaches itself when it is
        subscribed to again (or used as a dependency) instead of raising.
        """

        with self._lock:
            for d in deps:
                if d._graph is not self:
                    raise ValueError(f"dependency {d.name!r} belongs to another graph")
                if d._disposed:
                    self._reattach(d)
            node = LiveNode(
                self, name, deps, compute, initial, next(self._counter), revivable=revivable
            )
            for d in node._deps:
                d._dependents.append(node)
            self._nodes[node._order] = node
            return node

    def _reattach(self, node: LiveNode[Any]) -> None:
        if not node._revivable:
            raise RuntimeError(f"node {node.name!r} has been disposed")
        for d in node._deps:
            if d._disposed:
                self._reattach(d)
        # A fresh order number keeps creation order topological.
        node._order = next(self._counter)
        node._disposed = False
        node._stale = node._compute is not None
        node._last_delivered = _UNSET
        for d in node._deps:
            d._dependents.append(node)
        self._nodes[node._order] = node
        logger.debug("re-attached live node %s", node.name)

    def dispose(self, node: LiveNode[Any]) -> None:
        """Detach ``node`` from the graph and drop its subscribers.

        Dependents must be disposed first.
        """

        with self._lock:
            if node._disposed:
                return
            if node._dependents:
                names = ", ".join(d.name for d in node._dependents)
                raise RuntimeError(f"cannot dispose {node.name!r}: still used by {names}")
            node._disposed = True
            for sub in node._subs:
                sub._active = False
            node._subs.clear()
            self._nodes.pop(node._order, None)
            self._dirty.pop(node, None)  # type: ignore[arg-type]
            for d in node._deps:
                if node in d._dependents:
                    d._dependents.remove(node)
                self._maybe_idle(d)

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    @property
    def lock(self) -> threading.RLock:
        """Re-entrant lock serializing every graph operation."""
        return self._lock

    # ---- store binding -------------------------------------------------------

    def bind_store(self, store: TransactionStore) -> None:
        """Bump :attr:`store_version` after every committed store change."""

        if store.lock is not self._lock:
            raise ValueError("store and graph must share one lock: LiveGraph(lock=store.lock)")
        with self._lock:
            if self._store is store:
                return
            self.unbind_store()
            store.add_listener(self._on_store_change)
            self._store = store

    def unbind_store(self) -> None:
        with self._lock:
            if self._store is not None:
                self._store.remove_listener(self._on_store_change)
                self._store = None

    def _on_store_change(self, change: StoreChange) -> None:
        logger.debug("store change %s ids=%s", change.kind, change.ids)
        self.store_version.update(lambda v: v + 1)

    # ---- batching / propagation ----------------------------------------------

    @contextmanager
    def batch(self) -> Iterator[None]:
        """Coalesce leaf changes made inside the block into one pass."""

        with self._lock:
            self._batch_depth += 1
            try:
                yield
            finally:
                self._batch_depth -= 1
                if self._batch_depth == 0 and not self._propagating:
                    self._drain()

    def _changed(self, source: SourceNode[Any]) -> None:
        self._dirty[source] = None
        if self._batch_depth or self._propagating:
            return
        self._drain()

    def _drain(self) -> None:
        errors: list[Exception] = []
        self._propagating = True
        try:
            while self._dirty:
                roots = list(self._dirty)
                self._dirty.clear()
                self._propagate(roots, errors)
        finally:
            self._propagating = False
        if errors:
            raise ExceptionGroup("live: one or more subscriber callbacks failed", errors)

    def _propagate(self, roots: list[SourceNode[Any]], errors: list[Exception]) -> None:
        affected: dict[int, LiveNode[Any]] = {}
        stack: list[LiveNode[Any]] = list(roots)
        while stack:
            n = stack.pop()
            for d in n._dependents:
                if d._order not in affected:
                    affected[d._order] = d
                    stack.append(d)

        ordered = [affected[k] for k in sorted(affected)]
        for n in ordered:
            n._stale = True

        for root in sorted(roots, key=lambda r: r._order):
            if not root._disposed:
                root._deliver(errors)
        for n in ordered:
            if n._disposed or not n._is_hot():
                continue
            if n._stale:
                n._refresh()
            n._deliver(errors)

    # ---- subscriptions -------------------------------------------------------

    def _subscribe(self, node: LiveNode[T], callback: Callable[[T], None]) -> Subscription[T]:
        with self._lock:
            if node._disposed:
                self._reattach(node)
            if node._stale:
                node._refresh()
            sub = Subscription(node, callback)
            node._subs.append(sub)
            node._last_delivered = node._value
            try:
                callback(node._value)
            except Exception:
                # The caller never gets the handle, so detach before re-raising.
                sub._active = False
                if sub in node._subs:
                    node._subs.remove(sub)
                self._maybe_idle(node)
                raise
            return sub

    def _unsubscribe(self, sub: Subscription[Any]) -> None:
        with self._lock:
            node = sub._node
            if sub in node._subs:
                node._subs.remove(sub)
            self._maybe_idle(node)

    def _maybe_idle(self, node: LiveNode[Any]) -> None:
        if node._disposed or not node._is_idle():
            return
        # A node with no audience forgets what it delivered; the next
        # subscriber gets a fresh initial value.
        node._last_delivered = _UNSET
        for hook in list(node._idle_hooks):
            hook(node)


__all__ = ["LiveGraph", "LiveNode", "SourceNode", "Subscription"]
