"""SQLAlchemy schema and session plumbing for careertree."""

from careertree.core.orm.base import CareerTreeBase
from careertree.core.orm.session import (
    CareerTreeSession,
    SAConnectionBridge,
    careertree_session_factory,
    create_careertree_engine,
    init_schema,
)
from careertree.core.orm.tables import HierarchyRevisionTable, TimelineNodeTable

__all__ = [
    "CareerTreeBase",
    "CareerTreeSession",
    "SAConnectionBridge",
    "careertree_session_factory",
    "create_careertree_engine",
    "init_schema",
    "HierarchyRevisionTable",
    "TimelineNodeTable",
]
