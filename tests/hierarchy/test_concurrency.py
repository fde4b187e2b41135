"""Writes racing each other on a shared database file."""

from __future__ import annotations

import pytest

from careertree.core.errors import ConcurrentModificationError, ValidationError, is_retryable
from careertree.core.orm.session import careertree_session_factory, create_careertree_engine, init_schema
from careertree.hierarchy.cycles import CycleGuard
from careertree.hierarchy.rules import TypeRuleValidator
from careertree.hierarchy.store import NodeStore

from tests._support import OWNER, meta_for

pytestmark = pytest.mark.integration


@pytest.fixture
def shared_engine(tmp_path):
    eng = create_careertree_engine(f"sqlite:///{tmp_path / 'careertree.db'}")
    init_schema(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def two_stores(shared_engine, settings):
    factory = careertree_session_factory(shared_engine)
    first, second = factory(), factory()
    yield NodeStore.from_session(first, settings=settings), NodeStore.from_session(second, settings=settings)
    first.close()
    second.close()


class TestConcurrentMove:
    def test_interleaved_move_is_rejected(self, two_stores, monkeypatch):
        mine, theirs = two_stores
        job = mine.create("job", None, meta_for("job", "Engineer"), OWNER)
        edu = mine.create("education", None, meta_for("education", "Degree"), OWNER)
        project = mine.create("project", job.id, {"title": "Billing"}, OWNER)
        action = mine.create("action", job.id, {"title": "Mentoring"}, OWNER)

        original = CycleGuard.detect_cycle_for_move
        interfered = []

        def racing_check(self, node_id, proposed_parent_id, owner_id):
            if not interfered:
                interfered.append(node_id)
                theirs.move(action.id, edu.id, OWNER)
            return original(self, node_id, proposed_parent_id, owner_id)

        monkeypatch.setattr(CycleGuard, "detect_cycle_for_move", racing_check)

        with pytest.raises(ConcurrentModificationError) as exc_info:
            mine.move(project.id, edu.id, OWNER)

        assert is_retryable(exc_info.value)
        assert exc_info.value.context.owner_id == OWNER
        assert mine.get_by_id(project.id, OWNER).parent_id == job.id
        assert mine.get_by_id(action.id, OWNER).parent_id == edu.id

        monkeypatch.setattr(CycleGuard, "detect_cycle_for_move", original)
        assert mine.move(project.id, edu.id, OWNER).parent_id == edu.id
        assert {n.id for n in theirs.get_children(edu.id, OWNER)} == {project.id, action.id}

    def test_sequential_writes_do_not_conflict(self, two_stores):
        mine, theirs = two_stores
        job = mine.create("job", None, meta_for("job", "Engineer"), OWNER)
        p1 = theirs.create("project", job.id, {"title": "One"}, OWNER)
        p2 = mine.create("project", job.id, {"title": "Two"}, OWNER)
        theirs.delete(p1.id, OWNER)
        assert [n.id for n in mine.get_children(job.id, OWNER)] == [p2.id]
        assert mine._read_revision(OWNER) == 3


class TestConcurrentUpdate:
    def test_interleaved_patch_is_rejected(self, two_stores, monkeypatch):
        mine, theirs = two_stores
        job = mine.create("job", None, meta_for("job", "Engineer"), OWNER)

        original = TypeRuleValidator.validate_meta
        interfered = []

        def racing_validate(node_type, meta):
            if not interfered:
                interfered.append(node_type)
                theirs.update(job.id, {"endDate": "2020-01"}, OWNER)
            return original(node_type, meta)

        monkeypatch.setattr(TypeRuleValidator, "validate_meta", staticmethod(racing_validate))

        with pytest.raises(ConcurrentModificationError) as exc_info:
            mine.update(job.id, {"startDate": "2024-01"}, OWNER)

        assert is_retryable(exc_info.value)
        assert exc_info.value.context.node_id == job.id
        stored = theirs.get_by_id(job.id, OWNER).meta
        assert stored["endDate"] == "2020-01"
        assert "startDate" not in stored

        monkeypatch.setattr(TypeRuleValidator, "validate_meta", staticmethod(original))
        with pytest.raises(ValidationError) as retry:
            mine.update(job.id, {"startDate": "2024-01"}, OWNER)
        assert retry.value.codes == ["INVALID_DATE_RANGE"]
        assert "startDate" not in mine.get_by_id(job.id, OWNER).meta

    def test_sequential_patches_merge(self, two_stores):
        mine, theirs = two_stores
        job = mine.create("job", None, meta_for("job", "Engineer"), OWNER)
        theirs.update(job.id, {"startDate": "2020-01"}, OWNER)
        mine.update(job.id, {"endDate": "2024-01"}, OWNER)
        stored = theirs.get_by_id(job.id, OWNER).meta
        assert (stored["startDate"], stored["endDate"]) == ("2020-01", "2024-01")
