"""
Shared pytest fixtures for careertree tests.

Every test gets a fresh in-memory SQLite database with the hierarchy tables
created from the ORM metadata, a session on it, and a store / orchestrator
bound to that session.

    def test_something(svc, make_node):
        job = make_node("job", "Engineer")
"""

from __future__ import annotations

from collections.abc import Callable, Generator
from typing import Any

import pytest
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from careertree.core.logging import configure_logging
from careertree.core.orm.session import careertree_session_factory, create_careertree_engine, init_schema
from careertree.core.settings import CareerTreeSettings, get_settings
from careertree.hierarchy.models import Node
from careertree.hierarchy.service import HierarchyOrchestrator
from careertree.hierarchy.store import NodeStore
from tests._support import OWNER, meta_for


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark tests that do not declare a marker as unit tests."""
    for item in items:
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration"}):
            item.add_marker(pytest.mark.unit)


@pytest.fixture(autouse=True, scope="session")
def quiet_logging() -> None:
    configure_logging(level="WARNING", json_format=False)


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> CareerTreeSettings:
    return CareerTreeSettings(_env_file=None)


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    eng = create_careertree_engine("sqlite://")
    init_schema(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine: Engine) -> Generator[Session, None, None]:
    s = careertree_session_factory(engine)()
    yield s
    s.close()


@pytest.fixture
def store(session: Session, settings: CareerTreeSettings) -> NodeStore:
    return NodeStore.from_session(session, settings=settings)


@pytest.fixture
def svc(store: NodeStore) -> HierarchyOrchestrator:
    return HierarchyOrchestrator(store)


@pytest.fixture
def make_node(svc: HierarchyOrchestrator) -> Callable[..., Node]:
    """Create a valid node through the orchestrator."""

    def _make(
        node_type: str,
        title: str,
        parent_id: str | None = None,
        owner_id: str = OWNER,
        **extra: Any,
    ) -> Node:
        return svc.create_node(node_type, parent_id, meta_for(node_type, title, **extra), owner_id)

    return _make


@pytest.fixture
def run_sql(session: Session) -> Callable[..., None]:
    """Execute SQL behind the engine's back, the way corrupted data gets in."""

    def _run(sql: str, **params: Any) -> None:
        session.execute(text(sql), params)
        session.commit()

    return _run


@pytest.fixture
def corrupted_cycle(make_node: Callable[..., Node], run_sql: Callable[..., None]) -> list[Node]:
    """Three nodes A -> B -> C with A's parent then pointed at C."""
    a = make_node("event", "Conference A")
    b = make_node("action", "Action B", parent_id=a.id)
    c = make_node("project", "Project C", parent_id=b.id)
    run_sql("UPDATE timeline_nodes SET parent_id = :c WHERE id = :a", c=c.id, a=a.id)
    return [a, b, c]
