"""
Data model for the career hierarchy.

A hierarchy is a per-owner forest of typed :class:`Node` records connected by
``parent_id`` references.  Nodes are plain values read from the store; there
are no live object pointers between them.  :class:`TreeNode` is the only
nested shape and exists only in the assembled read model returned by
``get_full_tree``.

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │ Node (frozen)                                                 │
        │   id, type, parent_id, meta, owner_id, created_at, updated_at │
        └──────────────────────────────────────────────────────────────┘
              │ assembled by NodeStore.get_full_tree
              ▼
        ┌──────────────────────────────────────────────────────────────┐
        │ TreeNode(node, children=[TreeNode, ...])                      │
        └──────────────────────────────────────────────────────────────┘

        Diagnostic records (CycleGuard):
          CycleCheck → one proposed edge
          HierarchyAnalysis(cycles=[CycleFinding], orphaned_nodes, max_depth)
          ChangeValidation(is_valid, errors, warnings)
          RecoverySuggestion(issue, severity, suggestion, automatic_fix)

Tags:
    data-model, hierarchy, tree, dataclass, careertree
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from careertree.core.timestamps import to_iso8601


class NodeType(str, Enum):
    """
    Closed set of node types.  Values are the wire strings.

    Examples:
        >>> NodeType("careerTransition") is NodeType.CAREER_TRANSITION
        True
    """

    CAREER_TRANSITION = "careerTransition"
    JOB = "job"
    EDUCATION = "education"
    ACTION = "action"
    EVENT = "event"
    PROJECT = "project"


class Severity(str, Enum):
    """Severity of a diagnostic finding or recovery suggestion."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class Node:
    """One typed unit of career-history data belonging to exactly one owner."""

    id: str
    type: NodeType
    parent_id: str | None
    meta: dict[str, Any]
    owner_id: str
    created_at: datetime
    updated_at: datetime

    @property
    def label(self) -> str | None:
        """Display label (``meta["title"]``)."""
        title = self.meta.get("title")
        return title if isinstance(title, str) else None

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "parent_id": self.parent_id,
            "meta": self.meta,
            "owner_id": self.owner_id,
            "created_at": to_iso8601(self.created_at),
            "updated_at": to_iso8601(self.updated_at),
        }


@dataclass(eq=False)
class TreeNode:
    """A node with its ordered children, as assembled for the full-tree view."""

    node: Node
    children: list[TreeNode] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.node.id

    def walk(self) -> Iterator[Node]:
        """Yield this node and every descendant, depth-first, pre-order."""
        stack: list[TreeNode] = [self]
        while stack:
            current = stack.pop()
            yield current.node
            stack.extend(reversed(current.children))

    def size(self) -> int:
        return sum(1 for _ in self.walk())

    def to_dict(self) -> dict[str, Any]:
        result = self.node.to_dict()
        result["children"] = [child.to_dict() for child in self.children]
        return result


@dataclass(frozen=True)
class ParentSummary:
    id: str
    type: NodeType
    label: str | None

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "type": self.type.value, "label": self.label}


@dataclass(frozen=True)
class NodeWithParent:
    """A node enriched with a short summary of its parent (if any)."""

    node: Node
    parent: ParentSummary | None = None

    def to_dict(self) -> dict[str, Any]:
        result = self.node.to_dict()
        result["parent"] = self.parent.to_dict() if self.parent else None
        return result


@dataclass(frozen=True)
class HierarchyStats:
    total_nodes: int
    nodes_by_type: dict[str, int]
    max_depth: int
    root_nodes: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_nodes": self.total_nodes,
            "nodes_by_type": dict(self.nodes_by_type),
            "max_depth": self.max_depth,
            "root_nodes": self.root_nodes,
        }


# =============================================================================
# CYCLE GUARD RESULTS
# =============================================================================


@dataclass(frozen=True)
class CycleCheck:
    """Outcome of checking a single proposed ``node -> parent`` edge."""

    would_create_cycle: bool
    cycle_path: list[str] | None = None
    reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "would_create_cycle": self.would_create_cycle,
            "cycle_path": self.cycle_path,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class CycleFinding:
    cycle_id: str
    nodes: list[str]
    severity: str  # "minor" | "major"

    def to_dict(self) -> dict[str, Any]:
        return {"cycle_id": self.cycle_id, "nodes": list(self.nodes), "severity": self.severity}


@dataclass(frozen=True)
class HierarchyAnalysis:
    """Whole-forest diagnostic for one owner."""

    has_cycles: bool
    cycles: list[CycleFinding]
    orphaned_nodes: list[str]
    max_depth: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "has_cycles": self.has_cycles,
            "cycles": [c.to_dict() for c in self.cycles],
            "orphaned_nodes": list(self.orphaned_nodes),
            "max_depth": self.max_depth,
        }


@dataclass(frozen=True)
class HierarchyChange:
    """One proposed parent reassignment in a batch."""

    node_id: str
    new_parent_id: str | None


@dataclass(frozen=True)
class ChangeValidation:
    is_valid: bool
    errors: list[str]
    warnings: list[str]

    def to_dict(self) -> dict[str, Any]:
        return {"is_valid": self.is_valid, "errors": list(self.errors), "warnings": list(self.warnings)}


@dataclass(frozen=True)
class AutomaticFix:
    """A repair the engine can apply on its own.

    ``action`` is ``"remove_parent"`` (detach ``node_id`` from its parent) or
    ``"clear_parent_reference"`` (``node_id`` is a missing parent id; every
    node pointing at it is detached).
    """

    action: str
    node_id: str
    details: str

    def to_dict(self) -> dict[str, Any]:
        return {"action": self.action, "node_id": self.node_id, "details": self.details}


@dataclass(frozen=True)
class RecoverySuggestion:
    issue: str
    severity: Severity
    suggestion: str
    automatic_fix: AutomaticFix | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "issue": self.issue,
            "severity": self.severity.value,
            "suggestion": self.suggestion,
            "automatic_fix": self.automatic_fix.to_dict() if self.automatic_fix else None,
        }


@dataclass(frozen=True)
class HierarchyReport:
    """Diagnostic payload returned by ``validate_hierarchy``."""

    analysis: HierarchyAnalysis
    suggestions: list[RecoverySuggestion]

    @property
    def is_healthy(self) -> bool:
        return not self.analysis.has_cycles and not self.analysis.orphaned_nodes

    def to_dict(self) -> dict[str, Any]:
        result = self.analysis.to_dict()
        result["suggestions"] = [s.to_dict() for s in self.suggestions]
        return result


__all__ = [
    "NodeType",
    "Severity",
    "Node",
    "TreeNode",
    "ParentSummary",
    "NodeWithParent",
    "HierarchyStats",
    "CycleCheck",
    "CycleFinding",
    "HierarchyAnalysis",
    "HierarchyChange",
    "ChangeValidation",
    "AutomaticFix",
    "RecoverySuggestion",
    "HierarchyReport",
]
