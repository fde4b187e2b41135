"""Tests for per-type metadata validation."""

from __future__ import annotations

from datetime import date

import pytest

from careertree.core.errors import ValidationError
from careertree.hierarchy.meta import META_MODELS
from careertree.hierarchy.models import NodeType
from careertree.hierarchy.rules import TypeRuleValidator


def codes(node_type: str, meta: object) -> list[str]:
    return TypeRuleValidator.validate_meta(node_type, meta).error.codes


class TestDispatch:
    def test_one_model_per_type(self):
        assert set(META_MODELS) == set(NodeType)

    def test_unknown_type(self):
        err = TypeRuleValidator.validate_meta("invalidType", {}).error
        assert isinstance(err, ValidationError)
        assert err.issues[0].path == ("type",)
        assert err.codes == ["INVALID_TYPE"]

    def test_meta_must_be_a_mapping(self):
        assert codes("job", None) == ["INVALID_FORMAT"]


class TestRoundTrip:
    def test_returns_input_unchanged(self):
        meta = {
            "title": "Tech Lead",
            "fromRole": "Senior Engineer",
            "toRole": "Tech Lead",
            "reason": "Career advancement",
            "startDate": "2023-01",
            "endDate": "2023-06",
            "challenges": ["Team management"],
            "customField": {"nested": True},
        }
        assert TypeRuleValidator.validate_meta("careerTransition", meta).unwrap() is meta


class TestJob:
    def test_minimal(self):
        meta = {"title": "Engineer", "company": "Startup Inc", "position": "Full Stack Developer"}
        assert TypeRuleValidator.validate_meta("job", meta).is_ok()

    def test_reports_every_missing_field(self):
        assert sorted(codes("job", {"title": "Engineer"})) == ["missing", "missing"]

    def test_empty_company(self):
        assert codes("job", {"title": "Engineer", "company": "", "position": "Dev"}) == ["string_too_short"]

    def test_salary_must_be_positive(self):
        meta = {"title": "Engineer", "company": "Acme", "position": "Dev", "salary": -1000}
        assert codes("job", meta) == ["greater_than"]

    def test_employment_type_enum(self):
        meta = {"title": "Engineer", "company": "Acme", "position": "Dev", "employmentType": "sometimes"}
        assert codes("job", meta) == ["literal_error"]

    def test_no_coercion(self):
        meta = {"title": "Engineer", "company": "Acme", "position": "Dev", "remote": "yes"}
        assert codes("job", meta) == ["bool_type"]


class TestEducation:
    def test_requires_institution(self):
        err = TypeRuleValidator.validate_meta("education", {"title": "BSc"}).error
        assert err.issues[0].path == ("institution",)

    @pytest.mark.parametrize("gpa", [-0.1, 5.0])
    def test_gpa_range(self, gpa):
        assert len(codes("education", {"title": "BSc", "institution": "Uni", "gpa": gpa})) == 1

    def test_level_enum(self):
        assert codes("education", {"title": "BSc", "institution": "Uni", "level": "kindergarten"}) == ["literal_error"]


class TestSharedFields:
    def test_title_required(self):
        assert codes("project", {}) == ["missing"]

    def test_title_uses_label_rules(self):
        err = TypeRuleValidator.validate_meta("project", {"title": "A"}).error
        assert err.issues[0].path == ("title",)
        assert err.issues[0].code == "FIELD_TOO_SHORT"
        assert err.issues[0].message == "Label must be at least 2 characters long"

    def test_bad_start_date(self):
        assert codes("project", {"title": "Site", "startDate": "2023-1-1"}) == ["INVALID_DATE_FORMAT"]

    def test_end_date_present(self):
        meta = {"title": "Site", "startDate": "2022-03", "endDate": "Present"}
        assert TypeRuleValidator.validate_meta("project", meta).is_ok()

    def test_start_date_cannot_be_present(self):
        assert codes("project", {"title": "Site", "startDate": "Present"}) == ["INVALID_DATE_FORMAT"]

    def test_date_range(self):
        err = TypeRuleValidator.validate_meta(
            "event", {"title": "Summit", "startDate": "2023-12", "endDate": "2023-01"}
        ).error
        assert err.issues[0].path == ("dateRange",)
        assert err.codes == ["INVALID_DATE_RANGE"]

    def test_multiple_issues_reported(self):
        meta = {"title": " x", "status": "paused", "startDate": "1800-01"}
        assert len(codes("action", meta)) == 3

    def test_project_status_enum(self):
        assert TypeRuleValidator.validate_meta("project", {"title": "Site", "status": "on-hold"}).is_ok()

    def test_range_reported_alongside_field_errors(self):
        meta = {"title": "Engineer", "startDate": "2024-05", "endDate": "2020-01"}
        err = TypeRuleValidator.validate_meta("job", meta).error
        assert sorted(err.codes) == ["INVALID_DATE_RANGE", "missing", "missing"]
        assert ("dateRange",) in [issue.path for issue in err.issues]

    def test_range_not_duplicated_by_format_errors(self):
        meta = {"title": "Engineer", "startDate": "2024/05", "endDate": "2020-01"}
        assert sorted(codes("job", meta)) == ["INVALID_DATE_FORMAT", "missing", "missing"]


class TestJsonShape:
    def test_date_object_rejected(self):
        err = TypeRuleValidator.validate_meta("event", {"title": "Summit", "when": date(2024, 1, 1)}).error
        assert isinstance(err, ValidationError)
        assert err.retryable is False
        assert err.codes == ["INVALID_FORMAT"]
        assert err.issues[0].path == ()

    def test_tuple_rejected(self):
        assert codes("event", {"title": "Summit", "tags": ("a", "b")}) == ["INVALID_FORMAT"]

    def test_non_string_keys_rejected(self):
        assert "INVALID_FORMAT" in codes("event", {"title": "Summit", 1: "one"})

    def test_nan_rejected(self):
        assert codes("event", {"title": "Summit", "score": float("nan")}) == ["INVALID_FORMAT"]

    def test_reported_with_schema_issues(self):
        assert sorted(codes("job", {"title": "Engineer", "when": date(2024, 1, 1)})) == [
            "INVALID_FORMAT",
            "missing",
            "missing",
        ]

    def test_nested_plain_json_accepted(self):
        meta = {"title": "Summit", "extra": {"rooms": [1, 2.5, None, True], "host": "Ada"}}
        assert TypeRuleValidator.validate_meta("event", meta).unwrap() is meta
