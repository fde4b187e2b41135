"""
Owner-scoped node persistence with recursive traversal.

The hierarchy lives in one flat table, ``timeline_nodes``, keyed by id with
``parent_id`` as a plain foreign-key value.  Every query filters on
``owner_id``; nothing here ever reads or writes another owner's rows, and a
``parent_id`` that points at another owner's node is treated as missing.

Manifesto:
    - **Flat storage:** Relationships are id lookups, never object pointers
    - **Bounded recursion:** Every recursive walk stops at ``max_traversal_depth``
      so reads terminate even over corrupted data
    - **Atomic structural writes:** create-with-parent, move and delete bump the
      owner's hierarchy revision with a compare-and-swap and either commit
      entirely or roll back

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────────┐
        │                         NodeStore                                │
        │  (BaseRepository: conn + dialect)                                │
        ├──────────────────────────────────────────────────────────────────┤
        │ Point CRUD     create · get_by_id · update · delete              │
        │ Listings       get_children · get_root_nodes · get_all_nodes     │
        │                get_nodes_by_type                                 │
        │ Recursive      get_ancestors · get_subtree  (WITH RECURSIVE)     │
        │ Assembled      get_full_tree  (orphan + cycle tolerant forest)   │
        │ Structural     move  (CycleGuard + edge rules, then CAS write)   │
        │ Diagnostics    get_hierarchy_stats                               │
        │ Repair         clear_parent · clear_references_to                │
        └──────────────────────────────────────────────────────────────────┘

        Structural write:
          read revision r ─▶ validate ─▶ UPDATE revisions SET r+1 WHERE r
                                            │ 0 rows
                                            ▼
                                  rollback + ConcurrentModificationError

Examples:
    >>> store = NodeStore.from_session(session)
    >>> root = store.create(NodeType.JOB, None, {"title": "Engineer", ...}, "u1")
    >>> store.get_by_id(root.id, "someone-else") is None
    True

Tags:
    repository, hierarchy, recursive-cte, adjacency-list, optimistic-locking,
    careertree
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import timedelta
from typing import Any

from careertree.core.dialect import Dialect
from careertree.core.errors import (
    CareerTreeError,
    ConcurrentModificationError,
    CycleViolation,
    ParentNotFoundError,
    StorageError,
)
from careertree.core.logging import get_logger
from careertree.core.protocols import Connection
from careertree.core.repository import BaseRepository
from careertree.core.settings import CareerTreeSettings, get_settings
from careertree.core.timestamps import from_iso8601, new_node_id, to_iso8601, utc_now
from careertree.hierarchy.cycles import CycleGuard
from careertree.hierarchy.models import HierarchyStats, Node, NodeType, TreeNode
from careertree.hierarchy.rules import TypeRuleValidator

logger = get_logger(__name__)

NODES = "timeline_nodes"
REVISIONS = "timeline_hierarchy_revisions"
_COLUMNS = ("id", "type", "parent_id", "meta", "owner_id", "created_at", "updated_at")
_SELECT = ", ".join(_COLUMNS)
_SELECT_N = ", ".join(f"n.{c}" for c in _COLUMNS)


def _row_to_node(row: dict[str, Any]) -> Node:
    meta = row["meta"]
    if isinstance(meta, (str, bytes)):
        meta = json.loads(meta)
    return Node(
        id=row["id"],
        type=NodeType(row["type"]),
        parent_id=row["parent_id"],
        meta=meta if meta is not None else {},
        owner_id=row["owner_id"],
        created_at=from_iso8601(row["created_at"]),
        updated_at=from_iso8601(row["updated_at"]),
    )


def _unique(nodes: list[Node]) -> list[Node]:
    """Drop repeated ids, keeping the first occurrence."""
    seen: set[str] = set()
    result = []
    for node in nodes:
        if node.id not in seen:
            seen.add(node.id)
            result.append(node)
    return result


class NodeStore(BaseRepository):
    """Durable CRUD plus recursive tree queries over ``timeline_nodes``."""

    def __init__(
        self,
        conn: Connection,
        dialect: Dialect | None = None,
        settings: CareerTreeSettings | None = None,
    ) -> None:
        super().__init__(conn, dialect)
        self.settings = settings or get_settings()

    # -- Transactions ------------------------------------------------------

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[None]:
        """Commit on success; roll back and re-raise on any failure.

        Driver exceptions are wrapped in :class:`StorageError`.
        """
        try:
            yield
            self.commit()
        except CareerTreeError:
            self.rollback()
            raise
        except Exception as exc:
            self.rollback()
            logger.error("storage_operation_failed", operation=operation, error=str(exc))
            raise StorageError(f"Storage failure during {operation}", cause=exc) from exc

    def _read_revision(self, owner_id: str) -> int:
        row = self.query_one(
            f"SELECT revision FROM {REVISIONS} WHERE owner_id = {self.ph(1)}",
            (owner_id,),
        )
        return int(row["revision"]) if row else 0

    def _claim_revision(self, owner_id: str, expected: int) -> None:
        """Advance the owner's revision from ``expected``; fail if it moved."""
        now = to_iso8601(utc_now())
        self.execute(
            self.dialect.insert_or_ignore(REVISIONS, ["owner_id", "revision", "updated_at"]),
            (owner_id, 0, now),
        )
        cursor = self.execute(
            f"UPDATE {REVISIONS} SET revision = revision + 1, updated_at = {self.ph(1)} "
            f"WHERE owner_id = {self.ph(1)} AND revision = {self.ph(1)}",
            (now, owner_id, expected),
        )
        if cursor.rowcount == 0:
            logger.warning("hierarchy_revision_conflict", owner_id=owner_id, expected_revision=expected)
            raise ConcurrentModificationError(
                "Hierarchy was modified concurrently; re-read and retry"
            ).with_context(owner_id=owner_id, expected_revision=expected)

    # -- Point CRUD --------------------------------------------------------

    def create(
        self,
        node_type: NodeType | str,
        parent_id: str | None,
        meta: dict[str, Any],
        owner_id: str,
    ) -> Node:
        """Insert a node.  Edge-type rules are the caller's responsibility.

        Raises:
            ParentNotFoundError: ``parent_id`` does not resolve for ``owner_id``.
        """
        node_type = NodeType(node_type)
        now = utc_now()
        node = Node(
            id=new_node_id(),
            type=node_type,
            parent_id=parent_id,
            meta=meta,
            owner_id=owner_id,
            created_at=now,
            updated_at=now,
        )
        with self._transaction("create"):
            if parent_id is not None:
                expected = self._read_revision(owner_id)
                if self.get_by_id(parent_id, owner_id) is None:
                    raise ParentNotFoundError(f"Parent node {parent_id} not found").with_context(
                        owner_id=owner_id, parent_id=parent_id
                    )
                self._claim_revision(owner_id, expected)
            self.insert(
                NODES,
                {
                    "id": node.id,
                    "type": node_type.value,
                    "parent_id": parent_id,
                    "meta": json.dumps(meta),
                    "owner_id": owner_id,
                    "created_at": to_iso8601(now),
                    "updated_at": to_iso8601(now),
                },
            )
        logger.info("node_created", node_id=node.id, node_type=node_type.value, parent_id=parent_id)
        return node

    def get_by_id(self, node_id: str, owner_id: str) -> Node | None:
        row = self.query_one(
            f"SELECT {_SELECT} FROM {NODES} WHERE id = {self.ph(1)} AND owner_id = {self.ph(1)}",
            (node_id, owner_id),
        )
        return _row_to_node(row) if row else None

    def update(self, node_id: str, meta_patch: dict[str, Any], owner_id: str) -> Node | None:
        """Shallow-merge ``meta_patch`` into the stored meta.  Returns ``None`` if absent.

        The merged meta is validated against the node's type inside the write
        transaction, and the write only lands if the row still carries the
        ``updated_at`` that was read, so a concurrent patch cannot slip in
        between the check and the write.

        Raises:
            ValidationError: the merged meta is invalid for the node's type.
            ConcurrentModificationError: the node changed after it was read.
        """
        with self._transaction("update"):
            row = self.query_one(
                f"SELECT {_SELECT} FROM {NODES} WHERE id = {self.ph(1)} AND owner_id = {self.ph(1)}",
                (node_id, owner_id),
            )
            if row is None:
                return None
            node = _row_to_node(row)
            merged = {**node.meta, **meta_patch}
            TypeRuleValidator.validate_meta(node.type, merged).unwrap()
            # updated_at is the version token, so it must always move forward.
            now = max(utc_now(), node.updated_at + timedelta(microseconds=1))
            cursor = self.execute(
                f"UPDATE {NODES} SET meta = {self.ph(1)}, updated_at = {self.ph(1)} "
                f"WHERE id = {self.ph(1)} AND owner_id = {self.ph(1)} AND updated_at = {self.ph(1)}",
                (json.dumps(merged), to_iso8601(now), node_id, owner_id, row["updated_at"]),
            )
            if cursor.rowcount == 0:
                logger.warning("node_update_conflict", owner_id=owner_id, node_id=node_id)
                raise ConcurrentModificationError(
                    "Node was modified concurrently; re-read and retry"
                ).with_context(owner_id=owner_id, node_id=node_id)
        logger.info("node_updated", node_id=node_id, keys=sorted(meta_patch))
        return replace(node, meta=merged, updated_at=now)

    def delete(self, node_id: str, owner_id: str) -> bool:
        """Detach the node's direct children, then remove it.  Returns whether a row went."""
        with self._transaction("delete"):
            expected = self._read_revision(owner_id)
            if self.get_by_id(node_id, owner_id) is None:
                return False
            self._claim_revision(owner_id, expected)
            detached = self.execute(
                f"UPDATE {NODES} SET parent_id = NULL, updated_at = {self.ph(1)} "
                f"WHERE parent_id = {self.ph(1)} AND owner_id = {self.ph(1)}",
                (to_iso8601(utc_now()), node_id, owner_id),
            ).rowcount
            deleted = self.execute(
                f"DELETE FROM {NODES} WHERE id = {self.ph(1)} AND owner_id = {self.ph(1)}",
                (node_id, owner_id),
            ).rowcount
        logger.info("node_deleted", node_id=node_id, children_detached=detached)
        return deleted > 0

    # -- Listings ----------------------------------------------------------

    def get_children(self, node_id: str, owner_id: str) -> list[Node]:
        """Direct children, oldest first."""
        rows = self.query(
            f"SELECT {_SELECT} FROM {NODES} WHERE parent_id = {self.ph(1)} AND owner_id = {self.ph(1)} "
            "ORDER BY created_at, id",
            (node_id, owner_id),
        )
        return [_row_to_node(r) for r in rows]

    def get_root_nodes(self, owner_id: str) -> list[Node]:
        rows = self.query(
            f"SELECT {_SELECT} FROM {NODES} WHERE owner_id = {self.ph(1)} AND parent_id IS NULL "
            "ORDER BY created_at, id",
            (owner_id,),
        )
        return [_row_to_node(r) for r in rows]

    def get_all_nodes(self, owner_id: str) -> list[Node]:
        """Every node of the owner, flat, in creation order."""
        rows = self.query(
            f"SELECT {_SELECT} FROM {NODES} WHERE owner_id = {self.ph(1)} ORDER BY created_at, id",
            (owner_id,),
        )
        return [_row_to_node(r) for r in rows]

    def get_nodes_by_type(
        self,
        node_type: NodeType | str,
        owner_id: str,
        parent_id: str | None = None,
    ) -> list[Node]:
        sql = f"SELECT {_SELECT} FROM {NODES} WHERE owner_id = {self.ph(1)} AND type = {self.ph(1)}"
        params: tuple = (owner_id, NodeType(node_type).value)
        if parent_id is not None:
            sql += f" AND parent_id = {self.ph(1)}"
            params += (parent_id,)
        rows = self.query(sql + " ORDER BY created_at, id", params)
        return [_row_to_node(r) for r in rows]

    # -- Recursive traversal -----------------------------------------------

    def get_ancestors(self, node_id: str, owner_id: str) -> list[Node]:
        """The node itself followed by each ancestor up to the root.

        Stops at ``max_traversal_depth`` hops, at a parent that does not
        resolve for the owner, or at the first repeated id.
        """
        sql = f"""
            WITH RECURSIVE ancestors ({_SELECT}, depth) AS (
                SELECT {_SELECT}, 0 FROM {NODES}
                WHERE id = {self.ph(1)} AND owner_id = {self.ph(1)}
                UNION ALL
                SELECT {_SELECT_N}, a.depth + 1
                FROM {NODES} n
                JOIN ancestors a ON n.id = a.parent_id
                WHERE n.owner_id = {self.ph(1)} AND a.depth < {self.ph(1)}
            )
            SELECT {_SELECT}, depth FROM ancestors ORDER BY depth
        """
        rows = self.query(sql, (node_id, owner_id, owner_id, self.settings.max_traversal_depth))
        chain: list[Node] = []
        seen: set[str] = set()
        for row in rows:
            if row["id"] in seen:
                logger.warning("ancestor_cycle_detected", node_id=node_id, repeated_id=row["id"])
                break
            seen.add(row["id"])
            chain.append(_row_to_node(row))
        return chain

    def get_subtree(self, node_id: str, owner_id: str, max_depth: int | None = None) -> list[Node]:
        """The node plus all descendants down to ``max_depth`` levels, level by level."""
        if max_depth is None:
            max_depth = self.settings.default_subtree_depth
        max_depth = max(0, min(max_depth, self.settings.max_traversal_depth))
        sql = f"""
            WITH RECURSIVE subtree ({_SELECT}, depth) AS (
                SELECT {_SELECT}, 0 FROM {NODES}
                WHERE id = {self.ph(1)} AND owner_id = {self.ph(1)}
                UNION ALL
                SELECT {_SELECT_N}, s.depth + 1
                FROM {NODES} n
                JOIN subtree s ON n.parent_id = s.id
                WHERE n.owner_id = {self.ph(1)} AND s.depth < {self.ph(1)}
            )
            SELECT {_SELECT}, depth FROM subtree ORDER BY depth, created_at, id
        """
        rows = self.query(sql, (node_id, owner_id, owner_id, max_depth))
        return _unique([_row_to_node(r) for r in rows])

    def get_full_tree(self, owner_id: str) -> list[TreeNode]:
        """Assemble the owner's forest.

        A node whose parent is not among the owner's nodes becomes a root.
        Nodes that no root reaches sit on a stored cycle; the oldest of them
        is promoted to a root and the edge into it is left out of the view,
        so the forest always holds every node exactly once.
        """
        nodes = self.get_all_nodes(owner_id)
        by_id = {node.id: TreeNode(node) for node in nodes}
        roots: list[TreeNode] = []
        for node in nodes:
            tree_node = by_id[node.id]
            if node.parent_id is None or node.parent_id not in by_id:
                roots.append(tree_node)
            else:
                by_id[node.parent_id].children.append(tree_node)

        reached = {n.id for root in roots for n in root.walk()}
        for node in nodes:
            if node.id in reached:
                continue
            tree_node = by_id[node.id]
            by_id[node.parent_id].children.remove(tree_node)
            roots.append(tree_node)
            reached.update(n.id for n in tree_node.walk())
            logger.warning("cycle_member_promoted_to_root", node_id=node.id, parent_id=node.parent_id)
        return roots

    # -- Structural change -------------------------------------------------

    def move(self, node_id: str, new_parent_id: str | None, owner_id: str) -> Node | None:
        """Reassign the parent pointer after re-validating the new edge.

        Returns ``None`` when the node does not exist for the owner.

        Raises:
            ParentNotFoundError: ``new_parent_id`` does not resolve.
            CycleViolation: the node would become its own ancestor.
            HierarchyRuleViolation: the parent type does not allow the node's type.
            ConcurrentModificationError: another structural change committed first.
        """
        with self._transaction("move"):
            expected = self._read_revision(owner_id)
            node = self.get_by_id(node_id, owner_id)
            if node is None:
                return None
            if new_parent_id is not None:
                parent = self.get_by_id(new_parent_id, owner_id)
                if parent is None:
                    raise ParentNotFoundError(f"Parent node {new_parent_id} not found").with_context(
                        owner_id=owner_id, node_id=node_id, parent_id=new_parent_id
                    )
                check = CycleGuard(self, self.settings).detect_cycle_for_move(node_id, new_parent_id, owner_id)
                if check.would_create_cycle:
                    raise CycleViolation(check.reason or "Move would create a cycle", cycle_path=check.cycle_path)
                TypeRuleValidator.validate_edge(parent.type, node.type).unwrap()
            self._claim_revision(owner_id, expected)
            now = utc_now()
            self.execute(
                f"UPDATE {NODES} SET parent_id = {self.ph(1)}, updated_at = {self.ph(1)} "
                f"WHERE id = {self.ph(1)} AND owner_id = {self.ph(1)}",
                (new_parent_id, to_iso8601(now), node_id, owner_id),
            )
        logger.info("node_moved", node_id=node_id, old_parent_id=node.parent_id, new_parent_id=new_parent_id)
        return replace(node, parent_id=new_parent_id, updated_at=now)

    # -- Diagnostics -------------------------------------------------------

    def get_hierarchy_stats(self, owner_id: str) -> HierarchyStats:
        counts = self.query(
            f"SELECT type, COUNT(*) AS count FROM {NODES} WHERE owner_id = {self.ph(1)} GROUP BY type",
            (owner_id,),
        )
        nodes_by_type = {t.value: 0 for t in NodeType}
        for row in counts:
            nodes_by_type[row["type"]] = int(row["count"])

        roots = self.query_one(
            f"SELECT COUNT(*) AS count FROM {NODES} WHERE owner_id = {self.ph(1)} AND parent_id IS NULL",
            (owner_id,),
        )
        depth = self.query_one(
            f"""
            WITH RECURSIVE tree (id, depth) AS (
                SELECT id, 0 FROM {NODES}
                WHERE owner_id = {self.ph(1)} AND parent_id IS NULL
                UNION ALL
                SELECT n.id, t.depth + 1
                FROM {NODES} n
                JOIN tree t ON n.parent_id = t.id
                WHERE n.owner_id = {self.ph(1)} AND t.depth < {self.ph(1)}
            )
            SELECT MAX(depth) AS max_depth FROM tree
            """,
            (owner_id, owner_id, self.settings.max_traversal_depth),
        )
        return HierarchyStats(
            total_nodes=sum(nodes_by_type.values()),
            nodes_by_type=nodes_by_type,
            max_depth=int(depth["max_depth"] or 0) if depth else 0,
            root_nodes=int(roots["count"]) if roots else 0,
        )

    # -- Repair ------------------------------------------------------------

    def clear_parent(self, node_id: str, owner_id: str) -> bool:
        """Make the node a root.  Returns whether a parent link was removed."""
        with self._transaction("clear_parent"):
            expected = self._read_revision(owner_id)
            self._claim_revision(owner_id, expected)
            changed = self.execute(
                f"UPDATE {NODES} SET parent_id = NULL, updated_at = {self.ph(1)} "
                f"WHERE id = {self.ph(1)} AND owner_id = {self.ph(1)} AND parent_id IS NOT NULL",
                (to_iso8601(utc_now()), node_id, owner_id),
            ).rowcount
        logger.info("parent_cleared", node_id=node_id, changed=changed > 0)
        return changed > 0

    def clear_references_to(self, parent_id: str, owner_id: str) -> int:
        """Detach every node of the owner pointing at ``parent_id``.  Returns the count."""
        with self._transaction("clear_references_to"):
            expected = self._read_revision(owner_id)
            self._claim_revision(owner_id, expected)
            changed = self.execute(
                f"UPDATE {NODES} SET parent_id = NULL, updated_at = {self.ph(1)} "
                f"WHERE parent_id = {self.ph(1)} AND owner_id = {self.ph(1)}",
                (to_iso8601(utc_now()), parent_id, owner_id),
            ).rowcount
        logger.info("parent_references_cleared", parent_id=parent_id, nodes=changed)
        return changed


__all__ = ["NodeStore", "NODES", "REVISIONS"]
