"""Shared platform primitives: errors, results, logging, settings, storage."""

from careertree.core.errors import (
    CareerTreeError,
    ConcurrentModificationError,
    ConfigError,
    CycleViolation,
    ErrorCategory,
    ErrorContext,
    FieldIssue,
    HierarchyError,
    HierarchyRuleViolation,
    NotFoundError,
    ParentNotFoundError,
    StorageError,
    TransientError,
    ValidationError,
    is_retryable,
)
from careertree.core.result import Err, Ok, Result

__all__ = [
    "CareerTreeError",
    "ConcurrentModificationError",
    "ConfigError",
    "CycleViolation",
    "ErrorCategory",
    "ErrorContext",
    "FieldIssue",
    "HierarchyError",
    "HierarchyRuleViolation",
    "NotFoundError",
    "ParentNotFoundError",
    "StorageError",
    "TransientError",
    "ValidationError",
    "is_retryable",
    "Err",
    "Ok",
    "Result",
]
