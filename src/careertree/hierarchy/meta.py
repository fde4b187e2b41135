"""
Per-type metadata schemas.

``meta`` is an open attribute map whose required and optional keys depend on
the node's ``type``.  It is modelled as a tagged union: one strict pydantic
model per :class:`~careertree.hierarchy.models.NodeType`, looked up in
:data:`META_MODELS`.  Unknown keys are allowed and kept; known keys are
type-checked without coercion.

Every model shares the base fields:

- ``title``: the node label, 2..255 characters, no surrounding whitespace
- ``description``
- ``startDate`` / ``endDate``: ``YYYY-MM``, year 1900..2100; ``endDate`` may
  be ``"Present"``; start must not be after end

The label and date checks live here as plain functions returning a
:class:`~careertree.core.errors.FieldIssue` (or ``None``) so the rule
validator can expose them on their own as well.

Tags:
    metadata, pydantic, validation, tagged-union, careertree
"""

from __future__ import annotations

import json
import re
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_core import PydanticCustomError

from careertree.core.errors import FieldIssue
from careertree.hierarchy.models import NodeType

LABEL_MIN_LENGTH = 2
LABEL_MAX_LENGTH = 255
MIN_YEAR = 1900
MAX_YEAR = 2100
PRESENT = "Present"

_YEAR_MONTH = re.compile(r"^(\d{4})-(\d{2})$")


# =============================================================================
# FIELD CHECKS
# =============================================================================


def label_issue(value: object, path: tuple[str | int, ...] = ("label",)) -> FieldIssue | None:
    """Return the first problem with a label, or ``None`` when it is valid."""
    if value is None:
        return FieldIssue(path, "Label is required", "REQUIRED_FIELD")
    if not isinstance(value, str):
        return FieldIssue(path, "Label must be a string", "REQUIRED_FIELD")
    if not value.strip():
        return FieldIssue(path, "Label cannot be empty", "EMPTY_FIELD")
    if value != value.strip():
        return FieldIssue(path, "Label cannot start or end with whitespace", "INVALID_FORMAT")
    if len(value) < LABEL_MIN_LENGTH:
        return FieldIssue(path, f"Label must be at least {LABEL_MIN_LENGTH} characters long", "FIELD_TOO_SHORT")
    if len(value) > LABEL_MAX_LENGTH:
        return FieldIssue(path, f"Label cannot exceed {LABEL_MAX_LENGTH} characters", "FIELD_TOO_LONG")
    return None


def date_issue(value: object, field: str, *, allow_present: bool = False) -> FieldIssue | None:
    """Check a ``YYYY-MM`` date. ``None`` means the date is absent, which is fine."""
    if value is None:
        return None
    if allow_present and value == PRESENT:
        return None
    match = _YEAR_MONTH.match(value) if isinstance(value, str) else None
    if match is None:
        return FieldIssue((field,), "Date must be in YYYY-MM format", "INVALID_DATE_FORMAT")
    year, month = int(match.group(1)), int(match.group(2))
    if not MIN_YEAR <= year <= MAX_YEAR:
        return FieldIssue((field,), f"Year must be between {MIN_YEAR} and {MAX_YEAR}", "INVALID_DATE_RANGE")
    if not 1 <= month <= 12:
        return FieldIssue((field,), "Month must be between 01 and 12", "INVALID_DATE_RANGE")
    return None


def date_range_issue(start: object, end: object) -> FieldIssue | None:
    """Check ``start <= end``.  Either side absent, or ``end == "Present"``, passes."""
    if start is None or end is None or end == PRESENT:
        return None
    for value, field in ((start, "startDate"), (end, "endDate")):
        issue = date_issue(value, field)
        if issue is not None:
            return issue
    # Zero-padded YYYY-MM compares correctly as text.
    if start > end:
        return FieldIssue(("dateRange",), "Start date cannot be after end date", "INVALID_DATE_RANGE")
    return None


def json_issue(meta: dict) -> FieldIssue | None:
    """Metadata must come back from a JSON round-trip unchanged, since that is how it is stored."""
    try:
        restored = json.loads(json.dumps(meta, allow_nan=False))
    except (TypeError, ValueError):
        restored = None
    if restored != meta:
        return FieldIssue(
            (),
            "Metadata must be plain JSON: string keys, and only objects, arrays, strings, numbers, booleans or null",
            "INVALID_FORMAT",
        )
    return None


def _raise_issue(issue: FieldIssue | None) -> None:
    if issue is not None:
        raise PydanticCustomError(issue.code, issue.message)


# =============================================================================
# MODELS
# =============================================================================


class BaseMeta(BaseModel):
    model_config = ConfigDict(strict=True, extra="allow")

    title: str
    description: str | None = None
    startDate: str | None = None
    endDate: str | None = None

    @field_validator("title", mode="after")
    @classmethod
    def _check_title(cls, value: str) -> str:
        _raise_issue(label_issue(value, ("title",)))
        return value

    @field_validator("startDate", mode="after")
    @classmethod
    def _check_start(cls, value: str | None) -> str | None:
        _raise_issue(date_issue(value, "startDate"))
        return value

    @field_validator("endDate", mode="after")
    @classmethod
    def _check_end(cls, value: str | None) -> str | None:
        _raise_issue(date_issue(value, "endDate", allow_present=True))
        return value

    @model_validator(mode="after")
    def _check_range(self) -> BaseMeta:
        _raise_issue(date_range_issue(self.startDate, self.endDate))
        return self


class JobMeta(BaseMeta):
    company: str = Field(min_length=1)
    position: str = Field(min_length=1)
    location: str | None = None
    employmentType: (
        Literal["full-time", "part-time", "contract", "freelance", "internship", "self-employed"] | None
    ) = None
    salary: float | None = Field(default=None, gt=0)
    remote: bool | None = None
    technologies: list[str] | None = None


class EducationMeta(BaseMeta):
    institution: str = Field(min_length=1)
    degree: str | None = None
    field: str | None = None
    location: str | None = None
    gpa: float | None = Field(default=None, ge=0.0, le=4.0)
    level: (
        Literal["high-school", "associates", "bachelors", "masters", "doctorate", "certificate", "bootcamp"]
        | None
    ) = None
    honors: list[str] | None = None


class ProjectMeta(BaseMeta):
    technologies: list[str] | None = None
    projectType: Literal["personal", "professional", "academic", "freelance", "open-source"] | None = None
    status: Literal["planning", "active", "completed", "on-hold", "cancelled"] | None = None
    githubUrl: str | None = None
    liveUrl: str | None = None


class EventMeta(BaseMeta):
    eventType: str | None = None
    location: str | None = None
    organizer: str | None = None
    participants: list[str] | None = None


class ActionMeta(BaseMeta):
    category: str | None = None
    status: Literal["planned", "in-progress", "completed", "cancelled"] | None = None
    impact: str | None = None
    verification: str | None = None


class CareerTransitionMeta(BaseMeta):
    fromRole: str | None = None
    toRole: str | None = None
    reason: str | None = None
    challenges: list[str] | None = None


META_MODELS: dict[NodeType, type[BaseMeta]] = {
    NodeType.CAREER_TRANSITION: CareerTransitionMeta,
    NodeType.JOB: JobMeta,
    NodeType.EDUCATION: EducationMeta,
    NodeType.ACTION: ActionMeta,
    NodeType.EVENT: EventMeta,
    NodeType.PROJECT: ProjectMeta,
}


__all__ = [
    "LABEL_MIN_LENGTH",
    "LABEL_MAX_LENGTH",
    "PRESENT",
    "label_issue",
    "date_issue",
    "date_range_issue",
    "json_issue",
    "BaseMeta",
    "JobMeta",
    "EducationMeta",
    "ProjectMeta",
    "EventMeta",
    "ActionMeta",
    "CareerTransitionMeta",
    "META_MODELS",
]
