"""
Structured error types for the careertree hierarchy engine.

Every failure the engine reports to a caller is a :class:`CareerTreeError`
subclass.  Instead of bare exceptions that lose context, each error carries:

- **Category:** What kind of failure (validation, hierarchy, not-found, ...)
- **Retryable:** Whether repeating the same call can succeed
- **Context:** Owner, node and parent ids plus free-form metadata
- **Cause:** Chained underlying exception for root cause analysis

Manifesto:
    - **One taxonomy:** Callers branch on the error class, never on message text
    - **Explicit retry semantics:** Only concurrency and storage failures retry
    - **Rich context:** Errors carry ids for logging and API responses
    - **Error chaining:** Original driver exceptions survive as ``cause``

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                      CareerTreeError                             │
        │  (category, retryable, context, cause)                           │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  ValidationError        NotFoundError        HierarchyError     │
        │  (VALIDATION)           (NOT_FOUND)          (HIERARCHY)        │
        │                              │                    │              │
        │                      ParentNotFoundError   HierarchyRuleViolation│
        │                                            CycleViolation        │
        │                                                                  │
        │  TransientError         ConfigError                              │
        │  (retryable=True)       (CONFIG)                                 │
        │       │                                                          │
        │  ConcurrentModificationError (CONFLICT)                          │
        │  StorageError                (DATABASE)                          │
        └─────────────────────────────────────────────────────────────────┘

Examples:
    >>> err = CycleViolation("would create cycle", cycle_path=["a", "b", "a"])
    >>> err.retryable
    False
    >>> err.to_dict()["cycle_path"]
    ['a', 'b', 'a']

    >>> err = NotFoundError("Node not found").with_context(node_id="n1")
    >>> err.context.node_id
    'n1'

Guardrails:
    ❌ DON'T: Raise plain ``Exception`` / ``ValueError`` from engine code
    ✅ DO: Raise the matching CareerTreeError subclass

    ❌ DON'T: Swallow driver errors
    ✅ DO: Pass them as ``cause=`` so the chain survives

Tags:
    error-handling, exception-hierarchy, retry-logic, error-context,
    careertree, hierarchy
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Error categories used for routing, HTTP mapping and retry decisions.

    Attributes:
        VALIDATION: Malformed input (metadata, label, dates, unknown type)
        NOT_FOUND: Node or parent missing for the calling owner
        HIERARCHY: Structural rule broken (edge type, cycle)
        CONFLICT: Concurrent structural change detected
        DATABASE: Storage engine failure
        CONFIG: Missing or invalid settings
        INTERNAL: Bugs, unexpected state
    """

    VALIDATION = "VALIDATION"
    NOT_FOUND = "NOT_FOUND"
    HIERARCHY = "HIERARCHY"
    CONFLICT = "CONFLICT"
    DATABASE = "DATABASE"
    CONFIG = "CONFIG"
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Only fields that are set show up in :meth:`to_dict`, so the same context
    object serves both log lines and API error payloads.

    Attributes:
        owner_id: Owner the failing call was scoped to
        node_id: Node the call targeted
        parent_id: Proposed or existing parent, if relevant
        operation: Orchestrator operation name (``create_node``, ``move_node``...)
        metadata: Additional key-value pairs
    """

    owner_id: str | None = None
    node_id: str | None = None
    parent_id: str | None = None
    operation: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["owner_id", "node_id", "parent_id", "operation"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


@dataclass(frozen=True)
class FieldIssue:
    """One violated field: where, what, and a stable machine code."""

    path: tuple[str | int, ...]
    message: str
    code: str

    def to_dict(self) -> dict[str, Any]:
        return {"path": list(self.path), "message": self.message, "code": self.code}


class CareerTreeError(Exception):
    """
    Base exception for every error the hierarchy engine raises.

    Subclasses set ``default_category`` and ``default_retryable``; callers may
    override either per instance.

    Examples:
        >>> err = CareerTreeError("Something went wrong")
        >>> err.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> err.retryable
        False
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> CareerTreeError:
        """
        Add context to this error (fluent API).

        Usage:
            raise NotFoundError("Node not found").with_context(
                node_id=node_id, owner_id=owner_id
            )
        """
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# INPUT ERRORS (Never Retryable)
# =============================================================================


class ValidationError(CareerTreeError):
    """
    Malformed input: bad metadata, label, date, or unknown node type.

    Carries every violated field in ``issues`` rather than stopping at the
    first one, so a form can highlight all problems in one round trip.

    Examples:
        >>> err = ValidationError(
        ...     "Validation failed",
        ...     issues=[FieldIssue(("company",), "Field required", "missing")],
        ... )
        >>> err.codes
        ['missing']
    """

    default_category = ErrorCategory.VALIDATION

    def __init__(self, message: str, *, issues: list[FieldIssue] | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.issues: list[FieldIssue] = list(issues or [])

    @property
    def codes(self) -> list[str]:
        return [issue.code for issue in self.issues]

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.issues:
            result["issues"] = [issue.to_dict() for issue in self.issues]
        return result


class NotFoundError(CareerTreeError):
    """Target node is missing or belongs to another owner."""

    default_category = ErrorCategory.NOT_FOUND


class ParentNotFoundError(NotFoundError):
    """Referenced parent id does not resolve for the calling owner."""


class ConfigError(CareerTreeError):
    """Missing or invalid configuration."""

    default_category = ErrorCategory.CONFIG


# =============================================================================
# STRUCTURAL ERRORS
# =============================================================================


class HierarchyError(CareerTreeError):
    """Base for structural rule violations."""

    default_category = ErrorCategory.HIERARCHY


class HierarchyRuleViolation(HierarchyError):
    """
    Child type is not permitted under the parent type.

    The message names both types and lists the allowed alternatives.
    """

    code = "INVALID_HIERARCHY_RELATIONSHIP"

    def __init__(
        self,
        message: str,
        *,
        parent_type: str | None = None,
        child_type: str | None = None,
        allowed_children: list[str] | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.parent_type = parent_type
        self.child_type = child_type
        self.allowed_children = list(allowed_children or [])

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["code"] = self.code
        result["parent_type"] = self.parent_type
        result["child_type"] = self.child_type
        result["allowed_children"] = self.allowed_children
        return result


class CycleViolation(HierarchyError):
    """
    Proposed edge would make a node its own ancestor.

    ``cycle_path`` lists node ids from the moved node, through the proposed
    parent's ancestor chain, back to the moved node.  Empty when the path
    could not be reconstructed (e.g. the check failed closed).
    """

    def __init__(self, message: str, *, cycle_path: list[str] | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.cycle_path: list[str] = list(cycle_path or [])

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.cycle_path:
            result["cycle_path"] = self.cycle_path
        return result


# =============================================================================
# TRANSIENT ERRORS (Retryable)
# =============================================================================


class TransientError(CareerTreeError):
    """Temporary failure; the same call may succeed when repeated."""

    default_category = ErrorCategory.DATABASE
    default_retryable = True


class ConcurrentModificationError(TransientError):
    """
    Another structural change for the same owner committed first.

    Raised when the owner's hierarchy revision moved between validation and
    write.  Nothing was written; re-running the call re-validates against the
    new state.
    """

    default_category = ErrorCategory.CONFLICT


class StorageError(TransientError):
    """Storage engine failure (connection, lock timeout, driver error)."""

    default_category = ErrorCategory.DATABASE


# =============================================================================
# HELPERS
# =============================================================================


def is_retryable(error: BaseException) -> bool:
    """Return ``True`` when *error* is a CareerTreeError flagged retryable."""
    return isinstance(error, CareerTreeError) and error.retryable


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "FieldIssue",
    "CareerTreeError",
    "ValidationError",
    "NotFoundError",
    "ParentNotFoundError",
    "ConfigError",
    "HierarchyError",
    "HierarchyRuleViolation",
    "CycleViolation",
    "TransientError",
    "ConcurrentModificationError",
    "StorageError",
    "is_retryable",
]
