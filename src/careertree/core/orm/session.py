"""SQLAlchemy engine factory, session factory, and Connection bridge.

Manifesto:
    ORM and raw-SQL code must share a single abstraction so the node store
    works identically whether the caller uses a raw ``sqlite3.Connection``
    or a ``Session``.  ``SAConnectionBridge`` wraps a SA Session to satisfy
    the ``careertree.core.protocols.Connection`` protocol.

This module provides:

* ``create_careertree_engine`` -- Create a SA engine from a URL.
* ``CareerTreeSession``        -- Session with ``expire_on_commit=False``.
* ``careertree_session_factory``
* ``SAConnectionBridge``       -- Wraps a SA ``Session`` as a ``Connection``.
* ``init_schema``              -- Create every table on an engine.

Tags:
    careertree, orm, sqlalchemy, session, engine, bridge, connection
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Any

from sqlalchemy import create_engine as _sa_create_engine
from sqlalchemy import event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from careertree.core.orm.base import CareerTreeBase

_POSITIONAL = re.compile(r"\?|%s")


def create_careertree_engine(url: str = "sqlite:///careertree.db", *, echo: bool = False, **kwargs: Any) -> Engine:
    """Create a SQLAlchemy engine with sane defaults.

    SQLite connections get ``PRAGMA foreign_keys=ON`` so the parent foreign
    key and its ``ON DELETE SET NULL`` action are enforced.  In-memory SQLite
    URLs share one connection so every session sees the same database.
    """
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs.setdefault("poolclass", StaticPool)

        engine = _sa_create_engine(url, echo=echo, **kwargs)

        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_connection: Any, _rec: Any) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    return _sa_create_engine(url, echo=echo, **kwargs)


def init_schema(engine: Engine) -> list[str]:
    """Create all careertree tables (idempotent). Returns the table names."""
    from careertree.core.orm import tables  # noqa: F401  registers the tables

    CareerTreeBase.metadata.create_all(engine)
    return sorted(CareerTreeBase.metadata.tables)


class CareerTreeSession(Session):
    """Pre-configured session with ``expire_on_commit=False``."""

    def __init__(self, bind: Engine | None = None, **kwargs: Any) -> None:
        kwargs.setdefault("expire_on_commit", False)
        super().__init__(bind=bind, **kwargs)


def careertree_session_factory(engine: Engine) -> sessionmaker[CareerTreeSession]:
    """Return a ``sessionmaker`` bound to *engine* producing ``CareerTreeSession`` instances."""
    return sessionmaker(bind=engine, class_=CareerTreeSession)


class SAConnectionBridge:
    """Adapter that makes a SQLAlchemy ``Session`` look like a ``Connection``.

    Positional placeholders (``?`` or ``%s``) are rewritten to the named
    ``:p0, :p1`` form that ``text()`` expects.

    Implements: ``execute``, ``executemany``, ``fetchone``, ``fetchall``,
    ``commit``, ``rollback``, ``description``, ``rowcount``.
    """

    def __init__(self, session: Session) -> None:
        self._session = session
        self._last_result: Any = None

    # --- execute / executemany ---

    def execute(self, sql: str, parameters: Sequence[Any] | None = None) -> SAConnectionBridge:
        if parameters:
            counter = iter(range(len(parameters)))
            rewritten = _POSITIONAL.sub(lambda _m: f":p{next(counter)}", sql)
            mapping = {f"p{i}": v for i, v in enumerate(parameters)}
            self._last_result = self._session.execute(text(rewritten), mapping)
        else:
            self._last_result = self._session.execute(text(sql))
        return self

    def executemany(self, sql: str, seq_of_parameters: Sequence[Sequence[Any]]) -> None:
        for params in seq_of_parameters:
            self.execute(sql, params)

    # --- fetch ---

    def fetchone(self) -> tuple[Any, ...] | None:
        if self._last_result is None:
            return None
        row = self._last_result.fetchone()
        return tuple(row) if row is not None else None

    def fetchall(self) -> list[tuple[Any, ...]]:
        if self._last_result is None:
            return []
        return [tuple(r) for r in self._last_result.fetchall()]

    # --- transaction ---

    def commit(self) -> None:
        self._session.commit()

    def rollback(self) -> None:
        self._session.rollback()

    # --- properties ---

    @property
    def description(self) -> list[tuple[str, ...]] | None:
        """DB-API 2.0 compatible description from the last result."""
        if self._last_result is None or not self._last_result.returns_rows:
            return None
        keys = list(self._last_result.keys())
        return [(k, None, None, None, None, None, None) for k in keys]

    @property
    def rowcount(self) -> int:
        """Rows matched by the last UPDATE/DELETE (-1 when unknown)."""
        if self._last_result is None:
            return -1
        return self._last_result.rowcount

    @property
    def session(self) -> Session:
        """Access the underlying SA session."""
        return self._session
