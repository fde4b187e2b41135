"""Base repository with dialect-aware database access.

Provides :class:`BaseRepository`, which pairs a
:class:`~careertree.core.protocols.Connection` with a
:class:`~careertree.core.dialect.Dialect` so that the node store can write
portable SQL without referencing any specific database driver.

Architecture::

    ┌────────────────────────────────────────────────────────────────────┐
    │                       BaseRepository                               │
    │                                                                    │
    │   conn: Connection        ← protocol from careertree.core.protocols│
    │   dialect: Dialect        ← from careertree.core.dialect           │
    │                                                                    │
    │   execute(sql, params)     → cursor                                │
    │   query(sql, params)       → list[dict]                            │
    │   query_one(sql, params)   → dict | None                           │
    │   insert(table, data)      → cursor                                │
    │   commit() / rollback()                                            │
    └────────────────────────────────────────────────────────────────────┘

Tags:
    repository, database, abstraction, portability
"""

from __future__ import annotations

from typing import Any

from careertree.core.dialect import Dialect, SQLiteDialect
from careertree.core.protocols import Connection


class BaseRepository:
    """Dialect-aware base class for data-access repositories.

    Parameters:
        conn: Any object satisfying the :class:`Connection` protocol.
        dialect: SQL dialect to use.  Defaults to :class:`SQLiteDialect`.
    """

    def __init__(self, conn: Connection, dialect: Dialect | None = None) -> None:
        self.conn = conn
        self.dialect: Dialect = dialect or SQLiteDialect()

    @classmethod
    def from_session(cls, session: Any, dialect: Dialect | None = None, **kwargs: Any) -> Any:
        """Create a repository backed by a SQLAlchemy ORM session.

        Wraps *session* in :class:`~careertree.core.orm.session.SAConnectionBridge`.
        When *dialect* is omitted it is chosen from the session's bind.

        Example::

            with careertree_session_factory(engine)() as session:
                store = NodeStore.from_session(session)
        """
        from careertree.core.dialect import dialect_for_url
        from careertree.core.orm.session import SAConnectionBridge

        if dialect is None:
            dialect = dialect_for_url(session.get_bind().url.drivername)
        bridge = SAConnectionBridge(session)
        return cls(conn=bridge, dialect=dialect, **kwargs)

    # -- Convenience shortcuts ---------------------------------------------

    def ph(self, count: int) -> str:
        """Shortcut for ``self.dialect.placeholders(count)``.

        Embed directly in f-strings:

            f"SELECT * FROM t WHERE id = {self.ph(1)}"
        """
        return self.dialect.placeholders(count)

    # -- Query helpers -----------------------------------------------------

    def execute(self, sql: str, params: tuple = ()) -> Any:
        """Execute a statement and return the raw cursor/result."""
        return self.conn.execute(sql, params)

    def query(self, sql: str, params: tuple = ()) -> list[dict[str, Any]]:
        """Execute a SELECT and return rows as dicts.

        Column names come from ``cursor.description`` (DB-API 2.0) when the
        cursor exposes it; ``dict(row)`` is the fallback for row types such as
        ``sqlite3.Row`` on cursors without a description.
        """
        cursor = self.conn.execute(sql, params)
        rows = cursor.fetchall()
        if not rows:
            return []

        description = getattr(cursor, "description", None)
        if description:
            columns = [desc[0] for desc in description]
            return [dict(zip(columns, row, strict=False)) for row in rows]

        return [dict(row) for row in rows]

    def query_one(self, sql: str, params: tuple = ()) -> dict[str, Any] | None:
        """Execute a SELECT and return the first row as a dict (or None)."""
        results = self.query(sql, params)
        return results[0] if results else None

    def insert(self, table: str, data: dict[str, Any]) -> Any:
        """Insert a single row from a dict."""
        columns = list(data.keys())
        values = list(data.values())
        sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({self.ph(len(values))})"
        return self.conn.execute(sql, tuple(values))

    # -- Transactions ------------------------------------------------------

    def commit(self) -> None:
        """Commit the current transaction."""
        self.conn.commit()

    def rollback(self) -> None:
        """Roll back the current transaction."""
        self.conn.rollback()


__all__ = [
    "BaseRepository",
]
