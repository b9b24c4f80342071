"""SQLAlchemy engine/session helpers for the workspace.

Engines are created explicitly and handed to whoever needs them; there is no
process-wide engine.

Usage
-----
from db.client import create_db_engine, make_session_factory, session_scope

engine = create_db_engine(database_url="sqlite+pysqlite:///tracker.db")
factory = make_session_factory(engine)
with session_scope(factory) as s:
    s.execute(...)
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .models.finance import Base


def resolve_database_url(override: str | None = None) -> str:
    url = override or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is not set; cannot initialize database client")
    return url


def create_db_engine(*, database_url: str | None = None) -> Engine:
    """Return a new SQLAlchemy engine for ``database_url`` (or ``DATABASE_URL``)."""

    url = resolve_database_url(database_url)
    # SQLite connections are shared between the writer and live recomputation.
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, pool_pre_ping=True, connect_args=connect_args)


def make_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Return a session factory bound to ``engine``."""

    return sessionmaker(bind=engine, expire_on_commit=False, class_=Session)


def init_schema(engine: Engine) -> None:
    """Create all ORM tables that do not exist yet.

    Production databases are expected to be migrated with Alembic; this is
    meant for local SQLite files and tests.
    """

    Base.metadata.create_all(bind=engine)


@contextmanager
def session_scope(factory: sessionmaker[Session]) -> Iterator[Session]:
    """Provide a transactional scope around a series of operations."""

    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


__all__ = [
    "resolve_database_url",
    "create_db_engine",
    "make_session_factory",
    "init_schema",
    "session_scope",
]
