"""SQLAlchemy engine factory and session helpers.

This module provides:

* ``create_dindex_engine`` -- Create a SA engine from a URL.
* ``DIndexSession``        -- A pre-configured ``Session`` subclass.
* ``session_factory``      -- ``sessionmaker`` producing ``DIndexSession``.
* ``session_scope``        -- commit/rollback context manager.
* ``init_schema``          -- ``create_all`` for dev and tests.

SQLite has no row locks, so ``FOR UPDATE SKIP LOCKED`` compiles away.
Every SQLite transaction is therefore opened with ``BEGIN IMMEDIATE``,
which takes the database write lock up front: concurrent claimers queue
on the busy timeout instead of reading the same rows. PostgreSQL keeps
real row-level ``SKIP LOCKED`` semantics.

Tags:
    dindex, orm, sqlalchemy, session, engine, sqlite, postgresql

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine as _sa_create_engine
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from dindex.core.orm.base import DIndexBase


def _is_memory_sqlite(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in url


def create_dindex_engine(
    url: str = "sqlite:///dindex.db",
    *,
    echo: bool = False,
    pool_size: int | None = None,
    max_overflow: int | None = None,
    pool_timeout: int | None = None,
    busy_timeout: float = 30.0,
    **kwargs: Any,
) -> Engine:
    """Create a SQLAlchemy engine with sane defaults.

    Parameters
    ----------
    url:
        Database URL (``sqlite:///…``, ``postgresql+psycopg://…``, etc.)
    echo:
        If ``True``, log all SQL to stdout.
    pool_size, max_overflow, pool_timeout:
        Connection pool parameters (ignored for SQLite).
    busy_timeout:
        Seconds a SQLite connection waits for the write lock.
    **kwargs:
        Extra arguments forwarded to ``sqlalchemy.create_engine``.
    """
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False, "timeout": busy_timeout})
        if _is_memory_sqlite(url):
            kwargs.setdefault("poolclass", StaticPool)

        engine = _sa_create_engine(url, echo=echo, **kwargs)

        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_connection: Any, _rec: Any) -> None:
            # Hand transaction control to SQLAlchemy so "begin" below is honoured
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine, "begin")
        def _begin_immediate(conn: Any) -> None:
            conn.exec_driver_sql("BEGIN IMMEDIATE")

        return engine

    pool_kwargs: dict[str, Any] = {"pool_pre_ping": True}
    if pool_size is not None:
        pool_kwargs["pool_size"] = pool_size
    if max_overflow is not None:
        pool_kwargs["max_overflow"] = max_overflow
    if pool_timeout is not None:
        pool_kwargs["pool_timeout"] = pool_timeout

    return _sa_create_engine(url, echo=echo, **pool_kwargs, **kwargs)


class DIndexSession(Session):
    """Session that keeps loaded attributes readable after commit.

    ``sessionmaker`` always passes ``expire_on_commit`` through, so
    :func:`session_factory` sets it too.
    """

    def __init__(self, bind: Engine | None = None, **kwargs: Any) -> None:
        kwargs.setdefault("expire_on_commit", False)
        super().__init__(bind=bind, **kwargs)


def session_factory(engine: Engine) -> sessionmaker[DIndexSession]:
    """Return a ``sessionmaker`` bound to *engine* that produces ``DIndexSession`` instances."""
    return sessionmaker(bind=engine, class_=DIndexSession, expire_on_commit=False)


@contextmanager
def session_scope(factory: sessionmaker[DIndexSession]) -> Iterator[DIndexSession]:
    """Yield a session; commit on success, roll back on error, always close."""
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_schema(engine: Engine) -> None:
    """Create every dindex table that does not exist yet."""
    # Import for side effect: registers the mapped tables on the metadata
    from dindex.core.orm import tables  # noqa: F401

    DIndexBase.metadata.create_all(engine)


def drop_schema(engine: Engine) -> None:
    from dindex.core.orm import tables  # noqa: F401

    DIndexBase.metadata.drop_all(engine)
