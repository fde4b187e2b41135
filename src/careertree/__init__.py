"""
careertree: integrity engine for per-user career hierarchies.

A forest of typed career nodes (career transitions, jobs, education,
projects, events, actions) per owner, kept acyclic and type-compatible under
mutation, with recursive tree queries and corruption diagnostics.

    >>> from careertree import HierarchyOrchestrator
"""

from careertree.hierarchy.models import Node, NodeType, TreeNode
from careertree.hierarchy.service import HierarchyOrchestrator

__version__ = "0.1.0"

__all__ = ["HierarchyOrchestrator", "Node", "NodeType", "TreeNode", "__version__"]
