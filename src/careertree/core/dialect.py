"""SQL dialect abstraction for the node store.

The store writes its SQL once and asks a ``Dialect`` for the fragments that
differ between backends: positional placeholders and the insert-if-absent
statement used to seed an owner's hierarchy revision row.  Recursive CTEs,
``ORDER BY`` and the rest of the store's SQL are portable as written.

Architecture::

    ┌────────────────────────────────────────────────────────────────┐
    │  sql = f"SELECT ... WHERE id = {d.placeholder(0)}"             │
    │  sql = d.insert_or_ignore("timeline_hierarchy_revisions", ...) │
    └────────────────────────────────────────────────────────────────┘
                    │                          │
                    ▼                          ▼
             ┌──────────────┐          ┌────────────────────────┐
             │ SQLite       │          │ PostgreSQL             │
             │ ?, ?, ?      │          │ %s, %s, %s             │
             │ INSERT OR    │          │ ON CONFLICT DO NOTHING │
             │ IGNORE       │          │                        │
             └──────────────┘          └────────────────────────┘

Examples:
    >>> d = SQLiteDialect()
    >>> d.placeholders(3)
    '?, ?, ?'
    >>> dialect_for_url("postgresql+psycopg://localhost/db").name
    'postgresql'

Tags:
    dialect, sql, abstraction, portability, database, careertree
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class Dialect(Protocol):
    """SQL dialect contract.

    Every method returns a SQL fragment (string) valid for the target
    database.
    """

    @property
    def name(self) -> str:
        """Human-readable dialect name (e.g. ``'sqlite'``)."""
        ...

    def placeholder(self, index: int) -> str:
        """Single positional placeholder (0-based index)."""
        ...

    def placeholders(self, count: int) -> str:
        """Comma-separated placeholder list."""
        ...

    def insert_or_ignore(self, table: str, columns: list[str]) -> str:
        """``INSERT … ON CONFLICT DO NOTHING`` (or equivalent)."""
        ...


class SQLiteDialect:
    """SQLite dialect (``?`` placeholders)."""

    @property
    def name(self) -> str:
        return "sqlite"

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "?"

    def placeholders(self, count: int) -> str:
        return ", ".join("?" for _ in range(count))

    def insert_or_ignore(self, table: str, columns: list[str]) -> str:
        cols = ", ".join(columns)
        ph = self.placeholders(len(columns))
        return f"INSERT OR IGNORE INTO {table} ({cols}) VALUES ({ph})"


class PostgreSQLDialect:
    """PostgreSQL dialect (``%s`` placeholders, psycopg style)."""

    @property
    def name(self) -> str:
        return "postgresql"

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "%s"

    def placeholders(self, count: int) -> str:
        return ", ".join("%s" for _ in range(count))

    def insert_or_ignore(self, table: str, columns: list[str]) -> str:
        cols = ", ".join(columns)
        ph = self.placeholders(len(columns))
        return f"INSERT INTO {table} ({cols}) VALUES ({ph}) ON CONFLICT DO NOTHING"


def dialect_for_url(url: str) -> Dialect:
    """Pick the dialect matching a SQLAlchemy database URL."""
    if url.startswith(("postgresql", "postgres")):
        return PostgreSQLDialect()
    return SQLiteDialect()


__all__ = ["Dialect", "SQLiteDialect", "PostgreSQLDialect", "dialect_for_url"]
