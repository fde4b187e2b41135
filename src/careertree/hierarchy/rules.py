"""
Type rule validator.

Pure functions, no I/O.  Every check returns the :mod:`careertree.core.result`
envelope: ``Ok(value)`` when the input is acceptable, ``Err(error)`` carrying a
:class:`~careertree.core.errors.ValidationError` or
:class:`~careertree.core.errors.HierarchyRuleViolation` otherwise.  Callers
that want an exception call ``.unwrap()``.

Edge compatibility (parent type → allowed child types)::

    careerTransition → action, event, project
    job              → project, event, action
    education        → project, event, action
    action           → project
    event            → project, action
    project          → (none, leaf)

Examples:
    >>> TypeRuleValidator.validate_edge("job", "project").is_ok()
    True
    >>> err = TypeRuleValidator.validate_edge("project", "action").error
    >>> str(err)
    "Node type 'action' cannot be a child of 'project'. Allowed children: none"

Tags:
    validation, hierarchy-rules, pure, result-type, careertree
"""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError as PydanticValidationError

from careertree.core.errors import FieldIssue, HierarchyRuleViolation, ValidationError
from careertree.core.logging import get_logger
from careertree.core.result import Err, Ok, Result
from careertree.hierarchy.meta import META_MODELS, date_issue, date_range_issue, json_issue, label_issue
from careertree.hierarchy.models import NodeType

logger = get_logger(__name__)

HIERARCHY_RULES: dict[NodeType, tuple[NodeType, ...]] = {
    NodeType.CAREER_TRANSITION: (NodeType.ACTION, NodeType.EVENT, NodeType.PROJECT),
    NodeType.JOB: (NodeType.PROJECT, NodeType.EVENT, NodeType.ACTION),
    NodeType.EDUCATION: (NodeType.PROJECT, NodeType.EVENT, NodeType.ACTION),
    NodeType.ACTION: (NodeType.PROJECT,),
    NodeType.EVENT: (NodeType.PROJECT, NodeType.ACTION),
    NodeType.PROJECT: (),
}


def _issue_error(issue: FieldIssue) -> ValidationError:
    return ValidationError(issue.message, issues=[issue])


def parse_node_type(value: Any, field: str = "type") -> Result[NodeType]:
    """Resolve a wire string (or ``NodeType``) to a ``NodeType``."""
    try:
        return Ok(NodeType(value))
    except ValueError:
        return Err(_issue_error(FieldIssue((field,), f"Unsupported node type: {value}", "INVALID_TYPE")))


class TypeRuleValidator:
    """Stateless validator for metadata shape, labels, dates and edge types."""

    @staticmethod
    def validate_meta(node_type: Any, meta: Any) -> Result[dict[str, Any]]:
        """
        Validate ``meta`` against the schema for ``node_type``.

        Reports every violated field, not just the first.  On success the
        caller's dict is returned unchanged.
        """
        parsed = parse_node_type(node_type)
        if parsed.is_err():
            return Err(parsed.error)
        node_type = parsed.unwrap()

        if not isinstance(meta, dict):
            issue = FieldIssue((), "Metadata must be an object", "INVALID_FORMAT")
            return Err(_issue_error(issue))

        issues: list[FieldIssue] = []
        shape = json_issue(meta)
        if shape is not None:
            issues.append(shape)

        model = META_MODELS[node_type]
        try:
            model.model_validate(meta)
        except PydanticValidationError as exc:
            issues.extend(
                FieldIssue(tuple(err["loc"]) or ("dateRange",), err["msg"], err["type"])
                for err in exc.errors()
            )
            # The model-level range check is skipped once any field fails.
            if not any(issue.path == ("dateRange",) for issue in issues):
                ordering = date_range_issue(meta.get("startDate"), meta.get("endDate"))
                if ordering is not None and ordering.path == ("dateRange",):
                    issues.append(ordering)

        if issues:
            logger.warning(
                "node_meta_validation_failed",
                node_type=node_type.value,
                codes=[issue.code for issue in issues],
            )
            return Err(
                ValidationError(
                    f"Invalid metadata for node type '{node_type.value}': {len(issues)} issue(s)",
                    issues=issues,
                )
            )
        return Ok(meta)

    @staticmethod
    def validate_edge(parent_type: Any, child_type: Any) -> Result[bool]:
        """Check that ``child_type`` may sit directly under ``parent_type``."""
        try:
            parent = NodeType(parent_type)
        except ValueError:
            issue = FieldIssue(("parentType",), f"Unknown parent node type: {parent_type}", "INVALID_PARENT_TYPE")
            return Err(_issue_error(issue))
        child = parse_node_type(child_type, field="childType")
        if child.is_err():
            return Err(child.error)

        allowed = HIERARCHY_RULES[parent]
        if child.unwrap() in allowed:
            return Ok(True)

        allowed_names = [t.value for t in allowed]
        message = (
            f"Node type '{child.unwrap().value}' cannot be a child of '{parent.value}'. "
            f"Allowed children: {', '.join(allowed_names) or 'none'}"
        )
        return Err(
            HierarchyRuleViolation(
                message,
                parent_type=parent.value,
                child_type=child.unwrap().value,
                allowed_children=allowed_names,
            )
        )

    @staticmethod
    def validate_label(text: Any) -> Result[str]:
        """2..255 characters, non-empty after trimming, no surrounding whitespace."""
        issue = label_issue(text)
        if issue is not None:
            return Err(_issue_error(issue))
        return Ok(text)

    @staticmethod
    def validate_date_format(value: Any, field: str = "date") -> Result[Any]:
        """``YYYY-MM`` with year 1900..2100 and month 01..12; absent is fine."""
        issue = date_issue(value, field)
        if issue is not None:
            return Err(_issue_error(issue))
        return Ok(value)

    @staticmethod
    def validate_date_range(start: Any, end: Any) -> Result[bool]:
        """``start <= end`` when both present; ``end`` may be ``"Present"``."""
        issue = date_range_issue(start, end)
        if issue is not None:
            return Err(_issue_error(issue))
        return Ok(True)

    # -- Table lookups -----------------------------------------------------

    @staticmethod
    def allowed_children(node_type: Any) -> list[NodeType]:
        return list(HIERARCHY_RULES[parse_node_type(node_type).unwrap()])

    @staticmethod
    def can_be_parent(node_type: Any) -> bool:
        return bool(HIERARCHY_RULES[parse_node_type(node_type).unwrap()])

    @staticmethod
    def schema_for_type(node_type: Any) -> dict[str, Any]:
        """JSON Schema of the metadata model for ``node_type``."""
        return META_MODELS[parse_node_type(node_type).unwrap()].model_json_schema()

    @classmethod
    def describe_type(cls, node_type: Any) -> dict[str, Any]:
        """``{node_type, allowed_children, meta_schema}`` for one node type."""
        resolved = parse_node_type(node_type).unwrap()
        return {
            "node_type": resolved.value,
            "allowed_children": [t.value for t in cls.allowed_children(resolved)],
            "meta_schema": cls.schema_for_type(resolved),
        }


__all__ = ["HIERARCHY_RULES", "TypeRuleValidator", "parse_node_type"]
