"""
Database connection protocol.

Domain code (the node store) talks to any object with this shape: a raw
``sqlite3.Connection``, a DB-API cursor wrapper, or the SQLAlchemy
:class:`~careertree.core.orm.session.SAConnectionBridge`.

Guardrails:
    ❌ DON'T: Import sqlite3 or psycopg in hierarchy code
    ✅ DO: Depend on ``Connection`` and let the caller pick the driver

Tags:
    protocol, connection, database, careertree
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Connection(Protocol):
    """
    Minimal synchronous connection interface for database operations.

    ::

        execute(sql, params)   → Execute single statement
        executemany(sql, list) → Execute for multiple params
        fetchone()             → Get one result row
        fetchall()             → Get all result rows
        commit()               → Commit transaction
        rollback()             → Rollback transaction
    """

    def execute(self, sql: str, params: tuple = ()) -> Any:
        """Execute SQL statement with optional parameters."""
        ...

    def executemany(self, sql: str, params: list[tuple]) -> Any:
        """Execute SQL statement for multiple parameter sets."""
        ...

    def fetchone(self) -> Any:
        """Fetch one row from last query."""
        ...

    def fetchall(self) -> list:
        """Fetch all rows from last query."""
        ...

    def commit(self) -> None:
        """Commit current transaction."""
        ...

    def rollback(self) -> None:
        """Rollback current transaction."""
        ...


__all__ = ["Connection"]
