"""Hierarchy tables.

``timeline_nodes`` holds every node of every owner as an adjacency list:
one row per node, ``parent_id`` pointing at the parent row.  The database
enforces id uniqueness, parent existence and "not its own parent"; edge-type
rules and acyclicity are enforced by the service layer.

``timeline_hierarchy_revisions`` holds one counter per owner.  Every
structural write (create with parent, move, delete) bumps it with a
compare-and-swap so that two concurrent moves validated against the same
snapshot cannot both commit.
"""

from __future__ import annotations

from sqlalchemy import CheckConstraint, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from careertree.core.orm.base import CareerTreeBase


class TimelineNodeTable(CareerTreeBase):
    __tablename__ = "timeline_nodes"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    parent_id: Mapped[str | None] = mapped_column(
        String(64),
        ForeignKey("timeline_nodes.id", ondelete="SET NULL"),
        nullable=True,
    )
    meta: Mapped[dict] = mapped_column(nullable=False, default=dict)
    owner_id: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[str] = mapped_column(nullable=False)
    updated_at: Mapped[str] = mapped_column(nullable=False)

    __table_args__ = (
        CheckConstraint("id != parent_id", name="ck_timeline_nodes_not_self_parent"),
        Index("idx_timeline_nodes_owner", "owner_id"),
        Index("idx_timeline_nodes_parent", "parent_id"),
        Index("idx_timeline_nodes_type", "type"),
        Index("idx_timeline_nodes_owner_parent", "owner_id", "parent_id"),
        Index("idx_timeline_nodes_owner_type", "owner_id", "type"),
        Index("idx_timeline_nodes_created", "created_at"),
    )


class HierarchyRevisionTable(CareerTreeBase):
    __tablename__ = "timeline_hierarchy_revisions"

    owner_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    revision: Mapped[int] = mapped_column(nullable=False, default=0)
    updated_at: Mapped[str] = mapped_column(nullable=False)
