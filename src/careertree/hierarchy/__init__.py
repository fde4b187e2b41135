"""Career hierarchy: data model, metadata schemas, rules, store, cycle guard, orchestrator."""

from careertree.hierarchy.cycles import CycleGuard
from careertree.hierarchy.meta import META_MODELS
from careertree.hierarchy.models import (
    AutomaticFix,
    ChangeValidation,
    CycleCheck,
    CycleFinding,
    HierarchyAnalysis,
    HierarchyChange,
    HierarchyReport,
    HierarchyStats,
    Node,
    NodeType,
    NodeWithParent,
    ParentSummary,
    RecoverySuggestion,
    Severity,
    TreeNode,
)
from careertree.hierarchy.rules import HIERARCHY_RULES, TypeRuleValidator
from careertree.hierarchy.service import HierarchyOrchestrator
from careertree.hierarchy.store import NodeStore

__all__ = [
    "AutomaticFix",
    "ChangeValidation",
    "CycleCheck",
    "CycleFinding",
    "CycleGuard",
    "HIERARCHY_RULES",
    "HierarchyAnalysis",
    "HierarchyChange",
    "HierarchyOrchestrator",
    "HierarchyReport",
    "HierarchyStats",
    "META_MODELS",
    "Node",
    "NodeStore",
    "NodeType",
    "NodeWithParent",
    "ParentSummary",
    "RecoverySuggestion",
    "Severity",
    "TreeNode",
    "TypeRuleValidator",
]
