"""Tests for the careertree error hierarchy."""

from __future__ import annotations

import pytest

from careertree.core.errors import (
    CareerTreeError,
    ConcurrentModificationError,
    ConfigError,
    CycleViolation,
    ErrorCategory,
    ErrorContext,
    FieldIssue,
    HierarchyRuleViolation,
    NotFoundError,
    ParentNotFoundError,
    StorageError,
    TransientError,
    ValidationError,
    is_retryable,
)


class TestErrorContext:
    def test_to_dict_skips_unset(self):
        ctx = ErrorContext(owner_id="u1")
        assert ctx.to_dict() == {"owner_id": "u1"}

    def test_metadata_merged(self):
        ctx = ErrorContext(node_id="n1", metadata={"attempt": 2})
        assert ctx.to_dict() == {"node_id": "n1", "attempt": 2}


class TestCareerTreeError:
    def test_defaults(self):
        err = CareerTreeError("boom")
        assert err.category == ErrorCategory.INTERNAL
        assert err.retryable is False
        assert str(err) == "boom"

    def test_cause_chained(self):
        cause = RuntimeError("driver")
        err = StorageError("failed", cause=cause)
        assert err.__cause__ is cause
        assert err.to_dict()["cause"] == "driver"

    def test_with_context_known_and_extra_keys(self):
        err = NotFoundError("missing").with_context(node_id="n1", attempt=3)
        assert err.context.node_id == "n1"
        assert err.context.metadata == {"attempt": 3}

    def test_overrides(self):
        err = CareerTreeError("x", category=ErrorCategory.CONFIG, retryable=True)
        assert err.category == ErrorCategory.CONFIG
        assert err.retryable is True

    def test_repr(self):
        assert repr(NotFoundError("gone")) == "NotFoundError('gone', category=NOT_FOUND)"


class TestSubclasses:
    @pytest.mark.parametrize(
        ("cls", "category", "retryable"),
        [
            (ValidationError, ErrorCategory.VALIDATION, False),
            (NotFoundError, ErrorCategory.NOT_FOUND, False),
            (ParentNotFoundError, ErrorCategory.NOT_FOUND, False),
            (HierarchyRuleViolation, ErrorCategory.HIERARCHY, False),
            (CycleViolation, ErrorCategory.HIERARCHY, False),
            (ConcurrentModificationError, ErrorCategory.CONFLICT, True),
            (StorageError, ErrorCategory.DATABASE, True),
            (ConfigError, ErrorCategory.CONFIG, False),
        ],
    )
    def test_category_and_retry(self, cls, category, retryable):
        err = cls("msg")
        assert err.category == category
        assert err.retryable is retryable
        assert is_retryable(err) is retryable

    def test_parent_not_found_is_not_found(self):
        assert issubclass(ParentNotFoundError, NotFoundError)

    def test_concurrent_modification_is_transient(self):
        assert issubclass(ConcurrentModificationError, TransientError)

    def test_validation_issues(self):
        err = ValidationError(
            "bad",
            issues=[FieldIssue(("company",), "Field required", "missing")],
        )
        assert err.codes == ["missing"]
        assert err.to_dict()["issues"] == [{"path": ["company"], "message": "Field required", "code": "missing"}]

    def test_cycle_path_serialized(self):
        err = CycleViolation("cycle", cycle_path=["a", "b", "a"])
        assert err.to_dict()["cycle_path"] == ["a", "b", "a"]

    def test_rule_violation_fields(self):
        err = HierarchyRuleViolation(
            "nope", parent_type="project", child_type="action", allowed_children=[]
        )
        d = err.to_dict()
        assert d["parent_type"] == "project"
        assert d["child_type"] == "action"
        assert d["allowed_children"] == []


class TestIsRetryable:
    def test_plain_exception(self):
        assert is_retryable(ValueError("x")) is False
