"""
Hierarchy orchestrator: the one entry point external callers use.

Each public method is one request-response unit scoped to ``owner_id``.
Mutations validate fully before any write, in a fixed order:

    create  : metadata ─▶ parent exists ─▶ edge type ─▶ store.create
    update  : node exists ─▶ merged metadata ─▶ store.update
    move    : node + parent exist ─▶ cycle-free ─▶ edge type ─▶ store.move
    delete  : store.delete (children detach)

Every failure surfaces as a :class:`~careertree.core.errors.CareerTreeError`
subclass carrying the owner and node ids in its context.  There is no
cross-call cache; every call re-reads the store.

Examples:
    >>> svc = HierarchyOrchestrator.from_session(session)
    >>> job = svc.create_node("job", None, {"title": "Engineer", "company": "Acme", "position": "SWE"}, "u1")
    >>> svc.create_node("project", job.id, {"title": "Billing rewrite"}, "u1").parent_id == job.id
    True

Tags:
    service, orchestration, hierarchy, careertree
"""

from __future__ import annotations

from typing import Any

from careertree.core.errors import CycleViolation, NotFoundError, ParentNotFoundError
from careertree.core.logging import LogContext, get_logger
from careertree.core.settings import CareerTreeSettings, get_settings
from careertree.hierarchy.cycles import CycleGuard
from careertree.hierarchy.models import (
    AutomaticFix,
    ChangeValidation,
    HierarchyChange,
    HierarchyReport,
    HierarchyStats,
    Node,
    NodeType,
    NodeWithParent,
    ParentSummary,
    TreeNode,
)
from careertree.hierarchy.rules import TypeRuleValidator, parse_node_type
from careertree.hierarchy.store import NodeStore

logger = get_logger(__name__)


class HierarchyOrchestrator:
    """Composes the rule validator, cycle guard and store into atomic-intent operations."""

    def __init__(
        self,
        store: NodeStore,
        cycle_guard: CycleGuard | None = None,
        settings: CareerTreeSettings | None = None,
    ) -> None:
        self.settings = settings or store.settings or get_settings()
        self.store = store
        self.rules = TypeRuleValidator
        self.cycle_guard = cycle_guard or CycleGuard(store, self.settings)

    @classmethod
    def from_session(cls, session: Any, settings: CareerTreeSettings | None = None) -> HierarchyOrchestrator:
        store = NodeStore.from_session(session, settings=settings or get_settings())
        return cls(store, settings=store.settings)

    # -- Lookups -----------------------------------------------------------

    def _require_node(self, node_id: str, owner_id: str) -> Node:
        node = self.store.get_by_id(node_id, owner_id)
        if node is None:
            raise NotFoundError(f"Node {node_id} not found").with_context(owner_id=owner_id, node_id=node_id)
        return node

    def get_node(self, node_id: str, owner_id: str) -> Node:
        with LogContext(owner_id=owner_id):
            return self._require_node(node_id, owner_id)

    def get_node_details(self, node_id: str, owner_id: str) -> NodeWithParent:
        """The node plus ``{id, type, label}`` of its parent, when the parent resolves."""
        with LogContext(owner_id=owner_id):
            node = self._require_node(node_id, owner_id)
            parent = self.store.get_by_id(node.parent_id, owner_id) if node.parent_id else None
            summary = ParentSummary(parent.id, parent.type, parent.label) if parent else None
            return NodeWithParent(node, summary)

    # -- Mutations ---------------------------------------------------------

    def create_node(
        self,
        node_type: NodeType | str,
        parent_id: str | None,
        meta: dict[str, Any],
        owner_id: str,
    ) -> Node:
        with LogContext(owner_id=owner_id, operation="create_node"):
            node_type = parse_node_type(node_type).unwrap()
            self.rules.validate_meta(node_type, meta).unwrap()
            if parent_id is not None:
                parent = self.store.get_by_id(parent_id, owner_id)
                if parent is None:
                    raise ParentNotFoundError(f"Parent node {parent_id} not found").with_context(
                        owner_id=owner_id, parent_id=parent_id, operation="create_node"
                    )
                self.rules.validate_edge(parent.type, node_type).unwrap()
            return self.store.create(node_type, parent_id, meta, owner_id)

    def update_node(self, node_id: str, meta_patch: dict[str, Any], owner_id: str) -> Node:
        """Merge ``meta_patch`` into the node's meta.

        The store re-validates the merged meta against the node's own type in
        the same transaction as the write.
        """
        with LogContext(owner_id=owner_id, operation="update_node"):
            updated = self.store.update(node_id, meta_patch, owner_id)
            if updated is None:
                raise NotFoundError(f"Node {node_id} not found").with_context(owner_id=owner_id, node_id=node_id)
            return updated

    def move_node(self, node_id: str, new_parent_id: str | None, owner_id: str) -> Node:
        """Reassign the parent.  ``new_parent_id=None`` makes the node a root."""
        with LogContext(owner_id=owner_id, operation="move_node"):
            if new_parent_id is not None:
                node = self._require_node(node_id, owner_id)
                parent = self.store.get_by_id(new_parent_id, owner_id)
                if parent is None:
                    raise NotFoundError(f"Parent node {new_parent_id} not found").with_context(
                        owner_id=owner_id, node_id=node_id, parent_id=new_parent_id
                    )
                check = self.cycle_guard.detect_cycle_for_move(node_id, new_parent_id, owner_id)
                if check.would_create_cycle:
                    raise CycleViolation(
                        check.reason or "Move would create a cycle",
                        cycle_path=check.cycle_path,
                    ).with_context(owner_id=owner_id, node_id=node_id, parent_id=new_parent_id)
                self.rules.validate_edge(parent.type, node.type).unwrap()

            moved = self.store.move(node_id, new_parent_id, owner_id)
            if moved is None:
                raise NotFoundError(f"Node {node_id} not found").with_context(owner_id=owner_id, node_id=node_id)
            return moved

    def delete_node(self, node_id: str, owner_id: str) -> bool:
        with LogContext(owner_id=owner_id, operation="delete_node"):
            if not self.store.delete(node_id, owner_id):
                raise NotFoundError(f"Node {node_id} not found").with_context(owner_id=owner_id, node_id=node_id)
            return True

    # -- Pass-through reads ------------------------------------------------

    def list_nodes(
        self,
        owner_id: str,
        node_type: NodeType | str | None = None,
        parent_id: str | None = None,
    ) -> list[Node]:
        """All nodes of the owner, optionally filtered by type (and parent)."""
        with LogContext(owner_id=owner_id):
            if node_type is not None:
                node_type = parse_node_type(node_type).unwrap()
                return self.store.get_nodes_by_type(node_type, owner_id, parent_id=parent_id)
            if parent_id is not None:
                return self.store.get_children(parent_id, owner_id)
            return self.store.get_all_nodes(owner_id)

    def get_children(self, node_id: str, owner_id: str) -> list[Node]:
        return self.store.get_children(node_id, owner_id)

    def get_root_nodes(self, owner_id: str) -> list[Node]:
        return self.store.get_root_nodes(owner_id)

    def get_subtree(self, node_id: str, owner_id: str, max_depth: int | None = None) -> list[Node]:
        with LogContext(owner_id=owner_id):
            self._require_node(node_id, owner_id)
            return self.store.get_subtree(node_id, owner_id, max_depth)

    def get_ancestors(self, node_id: str, owner_id: str) -> list[Node]:
        with LogContext(owner_id=owner_id):
            self._require_node(node_id, owner_id)
            return self.store.get_ancestors(node_id, owner_id)

    def get_full_tree(self, owner_id: str) -> list[TreeNode]:
        with LogContext(owner_id=owner_id):
            return self.store.get_full_tree(owner_id)

    def get_hierarchy_stats(self, owner_id: str) -> HierarchyStats:
        return self.store.get_hierarchy_stats(owner_id)

    def get_node_type_schema(self, node_type: NodeType | str) -> dict[str, Any]:
        """Allowed children and metadata JSON Schema for a node type."""
        return self.rules.describe_type(node_type)

    # -- Diagnostics -------------------------------------------------------

    def validate_hierarchy_change(self, changes: list[HierarchyChange], owner_id: str) -> ChangeValidation:
        with LogContext(owner_id=owner_id):
            return self.cycle_guard.validate_hierarchy_change(changes, owner_id)

    def validate_hierarchy(self, owner_id: str) -> HierarchyReport:
        with LogContext(owner_id=owner_id, operation="validate_hierarchy"):
            analysis = self.cycle_guard.analyze_hierarchy_for_cycles(owner_id)
            suggestions = self.cycle_guard.get_recovery_suggestions(owner_id, analysis)
            return HierarchyReport(analysis, suggestions)

    def repair_hierarchy(self, owner_id: str, dry_run: bool = False) -> list[AutomaticFix]:
        """Apply every automatic fix the diagnostics suggest; advisory ones are skipped.

        Returns the fixes applied, or the ones that would be for a dry run.
        """
        with LogContext(owner_id=owner_id, operation="repair_hierarchy"):
            report = self.validate_hierarchy(owner_id)
            fixes = [s.automatic_fix for s in report.suggestions if s.automatic_fix is not None]
            if dry_run:
                logger.info("hierarchy_repair_planned", fixes=len(fixes))
                return fixes

            for fix in fixes:
                if fix.action == "remove_parent":
                    self.store.clear_parent(fix.node_id, owner_id)
                elif fix.action == "clear_parent_reference":
                    self.store.clear_references_to(fix.node_id, owner_id)
            logger.info("hierarchy_repaired", fixes=len(fixes))
            return fixes


__all__ = ["HierarchyOrchestrator"]
