"""Tests for HierarchyOrchestrator flows."""

from __future__ import annotations

from datetime import date

import pytest

from careertree.core.errors import (
    CycleViolation,
    HierarchyRuleViolation,
    NotFoundError,
    ParentNotFoundError,
    ValidationError,
)
from careertree.hierarchy.models import HierarchyChange, NodeType
from careertree.hierarchy.service import HierarchyOrchestrator

from tests._support import OTHER_OWNER, OWNER, meta_for


class TestConstruction:
    def test_from_session(self, session, settings):
        svc = HierarchyOrchestrator.from_session(session, settings=settings)
        assert svc.settings is settings
        assert svc.cycle_guard.store is svc.store


class TestCreate:
    def test_root(self, svc):
        node = svc.create_node("careerTransition", None, {"title": "Into management"}, OWNER)
        assert node.type is NodeType.CAREER_TRANSITION
        assert node.parent_id is None
        assert svc.get_node(node.id, OWNER) == node

    def test_child(self, svc, make_node):
        job = make_node("job", "Engineer")
        project = svc.create_node("project", job.id, {"title": "Billing rewrite"}, OWNER)
        assert project.parent_id == job.id
        assert [n.id for n in svc.get_children(job.id, OWNER)] == [project.id]

    def test_unknown_type(self, svc):
        with pytest.raises(ValidationError) as exc_info:
            svc.create_node("hobby", None, {"title": "Chess"}, OWNER)
        assert exc_info.value.codes == ["INVALID_TYPE"]

    def test_invalid_meta_writes_nothing(self, svc):
        with pytest.raises(ValidationError) as exc_info:
            svc.create_node("job", None, {"title": "Engineer"}, OWNER)
        assert {issue.path for issue in exc_info.value.issues} == {("company",), ("position",)}
        assert svc.list_nodes(OWNER) == []

    def test_non_json_meta_is_a_validation_error(self, svc):
        with pytest.raises(ValidationError) as exc_info:
            svc.create_node("event", None, {"title": "Summit", "when": date(2024, 1, 1)}, OWNER)
        assert exc_info.value.retryable is False
        assert exc_info.value.codes == ["INVALID_FORMAT"]
        assert svc.list_nodes(OWNER) == []

    def test_missing_parent(self, svc):
        with pytest.raises(ParentNotFoundError) as exc_info:
            svc.create_node("project", "nope", {"title": "Billing"}, OWNER)
        assert exc_info.value.context.parent_id == "nope"
        assert exc_info.value.context.owner_id == OWNER

    def test_meta_checked_before_parent(self, svc):
        with pytest.raises(ValidationError):
            svc.create_node("project", "nope", {"title": "B"}, OWNER)

    def test_disallowed_edge(self, svc, make_node):
        project = make_node("project", "Website")
        with pytest.raises(HierarchyRuleViolation) as exc_info:
            svc.create_node("job", project.id, meta_for("job", "Engineer"), OWNER)
        assert exc_info.value.allowed_children == []
        assert len(svc.list_nodes(OWNER)) == 1

    def test_parent_from_other_owner(self, svc, make_node):
        job = make_node("job", "Engineer", owner_id=OTHER_OWNER)
        with pytest.raises(ParentNotFoundError):
            svc.create_node("project", job.id, {"title": "Billing"}, OWNER)


class TestReads:
    def test_get_missing(self, svc):
        with pytest.raises(NotFoundError) as exc_info:
            svc.get_node("nope", OWNER)
        assert exc_info.value.context.node_id == "nope"

    def test_details_with_parent(self, svc, make_node):
        job = make_node("job", "Engineer")
        project = make_node("project", "Billing", parent_id=job.id)
        details = svc.get_node_details(project.id, OWNER)
        assert details.node.id == project.id
        assert details.parent.id == job.id
        assert details.parent.type is NodeType.JOB
        assert details.parent.label == "Engineer"
        assert details.to_dict()["parent"]["label"] == "Engineer"

    def test_details_root(self, svc, make_node):
        job = make_node("job", "Engineer")
        assert svc.get_node_details(job.id, OWNER).parent is None

    def test_list_filters(self, svc, make_node):
        job = make_node("job", "Engineer")
        p1 = make_node("project", "Billing", parent_id=job.id)
        p2 = make_node("project", "Website")
        assert len(svc.list_nodes(OWNER)) == 3
        assert {n.id for n in svc.list_nodes(OWNER, node_type="project")} == {p1.id, p2.id}
        assert [n.id for n in svc.list_nodes(OWNER, node_type="project", parent_id=job.id)] == [p1.id]
        assert [n.id for n in svc.list_nodes(OWNER, parent_id=job.id)] == [p1.id]

    def test_list_bad_type(self, svc):
        with pytest.raises(ValidationError):
            svc.list_nodes(OWNER, node_type="hobby")

    def test_subtree_and_ancestors_require_node(self, svc):
        with pytest.raises(NotFoundError):
            svc.get_subtree("nope", OWNER)
        with pytest.raises(NotFoundError):
            svc.get_ancestors("nope", OWNER)

    def test_subtree_and_ancestors(self, svc, make_node):
        job = make_node("job", "Engineer")
        event = make_node("event", "Conference", parent_id=job.id)
        project = make_node("project", "Slides", parent_id=event.id)
        assert [n.id for n in svc.get_subtree(job.id, OWNER)] == [job.id, event.id, project.id]
        assert [n.id for n in svc.get_subtree(job.id, OWNER, max_depth=1)] == [job.id, event.id]
        assert [n.id for n in svc.get_ancestors(project.id, OWNER)] == [project.id, event.id, job.id]

    def test_full_tree_and_stats(self, svc, make_node):
        job = make_node("job", "Engineer")
        make_node("project", "Slides", parent_id=job.id)
        make_node("education", "Degree")
        forest = svc.get_full_tree(OWNER)
        assert [t.node.type for t in forest] == [NodeType.JOB, NodeType.EDUCATION]
        stats = svc.get_hierarchy_stats(OWNER)
        assert stats.total_nodes == 3
        assert stats.root_nodes == len(svc.get_root_nodes(OWNER)) == 2
        assert stats.max_depth == 1

    def test_schema(self, svc):
        info = svc.get_node_type_schema(NodeType.EDUCATION)
        assert info["allowed_children"] == ["project", "event", "action"]
        assert "institution" in info["meta_schema"]["properties"]


class TestUpdate:
    def test_merge(self, svc, make_node):
        job = make_node("job", "Engineer")
        updated = svc.update_node(job.id, {"remote": True}, OWNER)
        assert updated.meta["remote"] is True
        assert updated.meta["company"] == "Acme Corp"

    def test_rejects_invalid_merge(self, svc, make_node):
        job = make_node("job", "Engineer")
        with pytest.raises(ValidationError):
            svc.update_node(job.id, {"company": ""}, OWNER)
        assert svc.get_node(job.id, OWNER).meta["company"] == "Acme Corp"

    def test_missing(self, svc):
        with pytest.raises(NotFoundError):
            svc.update_node("nope", {"title": "x"}, OWNER)

    def test_non_json_patch_rejected(self, svc, make_node):
        job = make_node("job", "Engineer")
        with pytest.raises(ValidationError) as exc_info:
            svc.update_node(job.id, {"reviewed": date(2024, 1, 1)}, OWNER)
        assert exc_info.value.codes == ["INVALID_FORMAT"]
        assert "reviewed" not in svc.get_node(job.id, OWNER).meta

    def test_does_not_touch_structure(self, svc, make_node):
        job = make_node("job", "Engineer")
        before = svc.store._read_revision(OWNER)
        svc.update_node(job.id, {"title": "Lead"}, OWNER)
        assert svc.store._read_revision(OWNER) == before


class TestMove:
    def test_valid(self, svc, make_node):
        job = make_node("job", "Engineer")
        action = make_node("action", "Mentoring")
        moved = svc.move_node(action.id, job.id, OWNER)
        assert moved.parent_id == job.id

    def test_to_root(self, svc, make_node):
        job = make_node("job", "Engineer")
        action = make_node("action", "Mentoring", parent_id=job.id)
        assert svc.move_node(action.id, None, OWNER).parent_id is None

    def test_to_root_missing(self, svc):
        with pytest.raises(NotFoundError):
            svc.move_node("nope", None, OWNER)

    def test_missing_node(self, svc, make_node):
        job = make_node("job", "Engineer")
        with pytest.raises(NotFoundError):
            svc.move_node("nope", job.id, OWNER)

    def test_missing_parent(self, svc, make_node):
        action = make_node("action", "Mentoring")
        with pytest.raises(NotFoundError) as exc_info:
            svc.move_node(action.id, "nope", OWNER)
        assert exc_info.value.context.parent_id == "nope"

    def test_self_parent(self, svc, make_node):
        event = make_node("event", "Conference")
        with pytest.raises(CycleViolation) as exc_info:
            svc.move_node(event.id, event.id, OWNER)
        assert exc_info.value.cycle_path == [event.id]

    def test_cycle_checked_before_edge_type(self, svc, make_node):
        event = make_node("event", "Conference")
        action = make_node("action", "Talk", parent_id=event.id)
        # action -> event is also an invalid edge; the cycle wins.
        with pytest.raises(CycleViolation) as exc_info:
            svc.move_node(event.id, action.id, OWNER)
        assert exc_info.value.context.node_id == event.id
        assert exc_info.value.retryable is False

    def test_disallowed_edge(self, svc, make_node):
        job = make_node("job", "Engineer")
        edu = make_node("education", "Degree")
        with pytest.raises(HierarchyRuleViolation):
            svc.move_node(job.id, edu.id, OWNER)
        assert svc.get_node(job.id, OWNER).parent_id is None


class TestDelete:
    def test_detaches_children(self, svc, make_node):
        job = make_node("job", "Engineer")
        p = make_node("project", "Billing", parent_id=job.id)
        assert svc.delete_node(job.id, OWNER) is True
        assert svc.get_node(p.id, OWNER).parent_id is None

    def test_missing(self, svc):
        with pytest.raises(NotFoundError):
            svc.delete_node("nope", OWNER)


class TestDiagnostics:
    def test_validate_change(self, svc, make_node):
        job = make_node("job", "Engineer")
        event = make_node("event", "Conference", parent_id=job.id)
        result = svc.validate_hierarchy_change([HierarchyChange(job.id, event.id)], OWNER)
        assert not result.is_valid

    def test_healthy_report(self, svc, make_node):
        make_node("job", "Engineer")
        report = svc.validate_hierarchy(OWNER)
        assert report.is_healthy
        assert report.to_dict()["suggestions"] == []

    def test_repair_dry_run(self, svc, corrupted_cycle):
        fixes = svc.repair_hierarchy(OWNER, dry_run=True)
        assert [f.action for f in fixes] == ["remove_parent"]
        assert svc.validate_hierarchy(OWNER).analysis.has_cycles

    def test_repair_cycle(self, svc, corrupted_cycle):
        fixes = svc.repair_hierarchy(OWNER)
        assert len(fixes) == 1
        assert svc.get_node(fixes[0].node_id, OWNER).parent_id is None
        report = svc.validate_hierarchy(OWNER)
        assert report.is_healthy
        assert svc.get_hierarchy_stats(OWNER).root_nodes == 1

    def test_repair_orphan(self, svc, make_node, run_sql):
        foreign = make_node("job", "Elsewhere", owner_id=OTHER_OWNER)
        p = make_node("project", "Billing")
        run_sql("UPDATE timeline_nodes SET parent_id = :f WHERE id = :id", f=foreign.id, id=p.id)
        fixes = svc.repair_hierarchy(OWNER)
        assert [f.action for f in fixes] == ["clear_parent_reference"]
        assert svc.get_node(p.id, OWNER).parent_id is None
        assert svc.get_node(foreign.id, OTHER_OWNER) is not None

    def test_repair_healthy_is_noop(self, svc, make_node):
        make_node("job", "Engineer")
        assert svc.repair_hierarchy(OWNER) == []
