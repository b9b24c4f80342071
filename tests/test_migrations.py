from __future__ import annotations

from decimal import Decimal
from pathlib import Path

import pytest
from db.client import create_db_engine
from sqlalchemy import inspect, text
from sqlalchemy.exc import IntegrityError

from expense_tracker.store import TransactionStore
from tests.helpers.clock import days_ago
from tests.helpers.db import bootstrap_sqlite_db, make_tx, migrate_sqlite_db, table_columns


@pytest.fixture
def migrated_url(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> str:
    db_file = tmp_path / "migrated.db"
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DATABASE_URL", f"sqlite+pysqlite:///{db_file}")
    return migrate_sqlite_db(db_file)


def test_migrations_match_orm_schema(migrated_url, tmp_path):
    created_url = bootstrap_sqlite_db(tmp_path / "created.db")
    assert table_columns(migrated_url) == table_columns(created_url)


def test_migrations_create_lookup_indexes(migrated_url):
    engine = create_db_engine(database_url=migrated_url)
    try:
        names = {ix["name"] for ix in inspect(engine).get_indexes("et_transactions")}
    finally:
        engine.dispose()
    assert {"ix_et_tx_date", "ix_et_tx_type_date"} <= names


def test_migrated_table_rejects_unknown_types(migrated_url):
    engine = create_db_engine(database_url=migrated_url)
    try:
        with pytest.raises(IntegrityError):
            with engine.begin() as conn:
                conn.execute(
                    text(
                        "INSERT INTO et_transactions (amount, category, type, date, created_at) "
                        "VALUES (1, 'Food', 'TRANSFER', '2024-06-01', '2024-06-01')"
                    )
                )
    finally:
        engine.dispose()


def test_store_works_on_migrated_database(migrated_url):
    store = TransactionStore.from_url(migrated_url)
    try:
        new_id = store.insert(make_tx("19.99", "Food", days_ago(1)))
        stored = store.get(new_id)
        assert stored is not None
        assert stored.amount == Decimal("19.99")
        assert stored.description == ""
    finally:
        store.engine.dispose()
