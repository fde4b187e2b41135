"""
Node id generation and UTC timestamp utilities (stdlib-only).

Timestamps are produced in Python rather than by the database so that SQLite
and PostgreSQL store the same ISO 8601 text and ``ORDER BY created_at`` sorts
identically on both.

STDLIB ONLY - NO PYDANTIC.
"""

import uuid
from datetime import UTC, datetime


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(UTC)


def new_node_id() -> str:
    """Generate a globally unique node id (UUID4, canonical text form)."""
    return str(uuid.uuid4())


def to_iso8601(dt: datetime | None) -> str | None:
    """Convert datetime to ISO 8601 string."""
    if dt is None:
        return None
    return dt.isoformat()


def from_iso8601(s: str | datetime | None) -> datetime | None:
    """Parse ISO 8601 string to datetime.

    Drivers that already return ``datetime`` objects pass through unchanged.
    """
    if s is None or isinstance(s, datetime):
        return s
    return datetime.fromisoformat(s)
