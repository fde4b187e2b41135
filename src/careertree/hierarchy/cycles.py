"""
Cycle guard: single-edge cycle checks, whole-forest diagnostics, repair plans.

Manifesto:
    A career hierarchy must stay a forest.  The guard answers two questions:

    - **Before a write:** would this one new parent link make a node its own
      ancestor?  Answered from the proposed parent's ancestor chain.  Any
      failure while answering blocks the write (fail-closed).
    - **After the fact:** is the stored forest still sound?  Hierarchies can
      be damaged outside this engine (direct SQL, imports, old bugs), so the
      analysis walks every parent pointer without trusting write-time rules
      and reports cycles, orphaned references and depth as findings.  It
      never raises on a data anomaly; anomalies are its output.

Architecture:
    ::

        detect_cycle_for_move(n, p)
            n == p ──────────────────────────────▶ blocked [n]
            ancestors(p) = [p, a1, a2, ..., root]
            n in chain ──────────────────────────▶ blocked [n, p, ..., n]
            chain truncated at traversal cap ────▶ blocked (fail-closed)
            exception ───────────────────────────▶ blocked (fail-closed)

        analyze_hierarchy_for_cycles(owner)
            get_all_nodes (flat, not the assembled tree)
              ├─▶ parent-pointer DFS with an on-stack set ─▶ cycles
              ├─▶ parent ids missing for the owner ────────▶ orphans
              └─▶ walk from roots to deepest leaf ─────────▶ max depth

        get_recovery_suggestions(owner)
            cycle  ─▶ remove_parent(last node of cycle)   high | medium
            orphan ─▶ clear_parent_reference(missing id)  medium
            depth  ─▶ flatten (advisory, no fix)          low

Tags:
    cycle-detection, dfs, diagnostics, fail-closed, recovery, careertree
"""

from __future__ import annotations

from collections import Counter, deque
from typing import TYPE_CHECKING

from careertree.core.logging import get_logger
from careertree.core.settings import CareerTreeSettings, get_settings
from careertree.hierarchy.models import (
    AutomaticFix,
    ChangeValidation,
    CycleCheck,
    CycleFinding,
    HierarchyAnalysis,
    HierarchyChange,
    Node,
    RecoverySuggestion,
    Severity,
)

if TYPE_CHECKING:
    from careertree.hierarchy.store import NodeStore

logger = get_logger(__name__)

BLOCKED_FOR_SAFETY = "Error during cycle detection - operation blocked for safety"


class CycleGuard:
    """Stateless cycle algorithms over data read from a :class:`NodeStore`."""

    def __init__(self, store: NodeStore, settings: CareerTreeSettings | None = None) -> None:
        self.store = store
        self.settings = settings or get_settings()

    # -- Single edge -------------------------------------------------------

    def would_create_cycle(self, node_id: str, proposed_parent_id: str, owner_id: str) -> bool:
        """``True`` if ``node_id == proposed_parent_id`` or ``node_id`` is an ancestor of the parent."""
        return self.detect_cycle_for_move(node_id, proposed_parent_id, owner_id).would_create_cycle

    def _chain_truncated(self, chain: list[Node]) -> bool:
        """True when the ancestor walk hit its depth cap before reaching a root.

        ``get_ancestors`` yields depths ``0..max_traversal_depth``, so a full
        walk returns at most ``max_traversal_depth + 1`` nodes.  Only a chain of
        that length whose last node still names a parent was cut short; this
        must track the bound in the recursive query.
        """
        return len(chain) > self.settings.max_traversal_depth and chain[-1].parent_id is not None

    def detect_cycle_for_move(self, node_id: str, proposed_parent_id: str, owner_id: str) -> CycleCheck:
        if node_id == proposed_parent_id:
            return CycleCheck(True, [node_id], "Node cannot be parent of itself")

        try:
            chain = self.store.get_ancestors(proposed_parent_id, owner_id)
            ids = [node.id for node in chain]
            if node_id in ids:
                path = [node_id] + ids[: ids.index(node_id) + 1]
                logger.warning(
                    "cycle_detected",
                    node_id=node_id,
                    proposed_parent_id=proposed_parent_id,
                    cycle_path=path,
                )
                return CycleCheck(
                    True,
                    path,
                    f"Moving node {node_id} under {proposed_parent_id} would create a cycle",
                )
            if self._chain_truncated(chain):
                logger.warning(
                    "ancestor_chain_truncated",
                    node_id=node_id,
                    proposed_parent_id=proposed_parent_id,
                    max_depth=self.settings.max_traversal_depth,
                )
                return CycleCheck(
                    True,
                    None,
                    "Ancestor chain exceeds maximum traversal depth - operation blocked for safety",
                )
            return CycleCheck(False)
        except Exception as exc:
            logger.error(
                "cycle_check_failed",
                node_id=node_id,
                proposed_parent_id=proposed_parent_id,
                error=str(exc),
            )
            return CycleCheck(True, None, BLOCKED_FOR_SAFETY)

    # -- Whole forest ------------------------------------------------------

    def analyze_hierarchy_for_cycles(self, owner_id: str) -> HierarchyAnalysis:
        nodes = self.store.get_all_nodes(owner_id)
        parent_of = {node.id: node.parent_id for node in nodes}

        cycles: list[CycleFinding] = []
        done: set[str] = set()
        for start in parent_of:
            if start in done:
                continue
            path: list[str] = []
            on_stack: set[str] = set()
            current: str | None = start
            while current is not None and current in parent_of and current not in done:
                if current in on_stack:
                    members = path[path.index(current):]
                    severity = "major" if len(members) > self.settings.major_cycle_size else "minor"
                    cycles.append(CycleFinding(f"cycle-{len(cycles) + 1}", members, severity))
                    break
                on_stack.add(current)
                path.append(current)
                current = parent_of[current]
            done.update(path)

        orphans: list[str] = []
        for parent_id in parent_of.values():
            if parent_id is not None and parent_id not in parent_of and parent_id not in orphans:
                orphans.append(parent_id)

        analysis = HierarchyAnalysis(
            has_cycles=bool(cycles),
            cycles=cycles,
            orphaned_nodes=orphans,
            max_depth=self._max_depth(parent_of),
        )
        logger.info(
            "hierarchy_analysis_complete",
            owner_id=owner_id,
            total_nodes=len(nodes),
            cycles=len(cycles),
            orphans=len(orphans),
            max_depth=analysis.max_depth,
        )
        return analysis

    @staticmethod
    def _max_depth(parent_of: dict[str, str | None]) -> int:
        """Longest root-to-leaf distance; roots include nodes whose parent is missing."""
        children: dict[str, list[str]] = {}
        roots = []
        for node_id, parent_id in parent_of.items():
            if parent_id is None or parent_id not in parent_of:
                roots.append(node_id)
            else:
                children.setdefault(parent_id, []).append(node_id)

        deepest = 0
        visited: set[str] = set()
        queue = deque((root, 0) for root in roots)
        while queue:
            node_id, depth = queue.popleft()
            if node_id in visited:
                continue
            visited.add(node_id)
            deepest = max(deepest, depth)
            queue.extend((child, depth + 1) for child in children.get(node_id, ()))
        return deepest

    # -- Batch pre-check ---------------------------------------------------

    def validate_hierarchy_change(self, changes: list[HierarchyChange], owner_id: str) -> ChangeValidation:
        errors: list[str] = []
        warnings: list[str] = []

        for change in changes:
            if change.new_parent_id is None:
                continue
            check = self.detect_cycle_for_move(change.node_id, change.new_parent_id, owner_id)
            if check.would_create_cycle:
                errors.append(f"Change {change.node_id} -> {change.new_parent_id}: {check.reason}")

        counts = Counter(change.node_id for change in changes)
        if any(count > 1 for count in counts.values()):
            errors.append("Duplicate node IDs found in change set")

        if len(changes) > self.settings.bulk_change_warning_threshold:
            warnings.append(f"Bulk hierarchy changes ({len(changes)} changes) should be applied with caution")

        return ChangeValidation(is_valid=not errors, errors=errors, warnings=warnings)

    # -- Recovery ----------------------------------------------------------

    def get_recovery_suggestions(
        self,
        owner_id: str,
        analysis: HierarchyAnalysis | None = None,
    ) -> list[RecoverySuggestion]:
        if analysis is None:
            analysis = self.analyze_hierarchy_for_cycles(owner_id)

        suggestions: list[RecoverySuggestion] = []
        for cycle in analysis.cycles:
            target = cycle.nodes[-1]
            suggestions.append(
                RecoverySuggestion(
                    issue=f"Cycle detected: {' -> '.join(cycle.nodes)}",
                    severity=Severity.HIGH if cycle.severity == "major" else Severity.MEDIUM,
                    suggestion=f"Remove parent relationship from node {target} to break the cycle",
                    automatic_fix=AutomaticFix("remove_parent", target, f"Detach {target} to break {cycle.cycle_id}"),
                )
            )

        for missing in analysis.orphaned_nodes:
            suggestions.append(
                RecoverySuggestion(
                    issue=f"Orphaned reference to missing parent {missing}",
                    severity=Severity.MEDIUM,
                    suggestion=f"Clear the parent reference on nodes pointing at {missing}",
                    automatic_fix=AutomaticFix(
                        "clear_parent_reference", missing, f"Set parent to null where parent is {missing}"
                    ),
                )
            )

        if analysis.max_depth > self.settings.depth_warning_threshold:
            suggestions.append(
                RecoverySuggestion(
                    issue=f"Hierarchy depth is {analysis.max_depth} levels",
                    severity=Severity.LOW,
                    suggestion="Consider flattening the hierarchy for better usability",
                )
            )
        return suggestions


__all__ = ["CycleGuard", "BLOCKED_FOR_SAFETY"]
