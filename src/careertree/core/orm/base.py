"""Declarative base and type-map for careertree ORM tables.

Uses SQLAlchemy 2.0 ``DeclarativeBase`` with a ``type_annotation_map``
that maps Python built-in types to portable SA column types.
"""

from __future__ import annotations

from sqlalchemy import JSON, Integer, Text
from sqlalchemy.orm import DeclarativeBase


class CareerTreeBase(DeclarativeBase):
    """Shared declarative base for every careertree table.

    * ``str``   → ``Text``
    * ``int``   → ``Integer``
    * ``dict``  → ``JSON``    (stored as TEXT in SQLite, native JSON elsewhere)

    Timestamps are ``str`` columns holding ISO 8601 UTC text written by the
    application, so ordering is identical on every backend.
    """

    type_annotation_map = {
        str: Text,
        int: Integer,
        dict: JSON,
    }
