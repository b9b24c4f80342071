"""Pytest configuration for test isolation.

Every test gets its own SQLite file under ``tmp_path`` and a fixed clock, so
"this week"/"this month" windows never depend on when the suite runs. Ambient
configuration (``DATABASE_URL``, budget and log-level overrides) is cleared so
a developer's ``.env`` or shell cannot leak into assertions.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from expense_tracker.store import TransactionStore
from expense_tracker.tracker import ExpenseTracker
from tests.helpers.clock import FIXED_NOW
from tests.helpers.db import bootstrap_sqlite_db


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("DATABASE_URL", "EXPENSE_TRACKER_BUDGET_LIMIT", "EXPENSE_TRACKER_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def clock():
    """Zero-argument clock frozen at :data:`FIXED_NOW`."""
    return lambda: FIXED_NOW


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    return bootstrap_sqlite_db(tmp_path / "tracker.db")


@pytest.fixture
def store(database_url: str) -> Iterator[TransactionStore]:
    s = TransactionStore.from_url(database_url)
    yield s
    s.engine.dispose()


@pytest.fixture
def tracker(store: TransactionStore, clock) -> Iterator[ExpenseTracker]:
    t = ExpenseTracker(store, clock=clock)
    yield t
    t.close()
