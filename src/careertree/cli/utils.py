"""
CLI utility helpers: output formatting and orchestrator wiring.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import typer
from rich.console import Console
from rich.table import Table
from rich.tree import Tree

from careertree.core.errors import CareerTreeError
from careertree.core.orm.session import careertree_session_factory, create_careertree_engine
from careertree.core.settings import get_settings
from careertree.hierarchy.models import TreeNode
from careertree.hierarchy.service import HierarchyOrchestrator

console = Console()
err_console = Console(stderr=True)


# ── Orchestrator helper ──────────────────────────────────────────────────


def database_url(database: str | None = None) -> str:
    """``--database`` wins over ``CAREERTREE_DATABASE_URL``."""
    return database or get_settings().database_url


@contextmanager
def open_orchestrator(database: str | None = None) -> Iterator[HierarchyOrchestrator]:
    """Yield an orchestrator on a fresh session; CareerTreeErrors exit with code 1."""
    settings = get_settings()
    engine = create_careertree_engine(database_url(database), echo=settings.database_echo)
    session = careertree_session_factory(engine)()
    try:
        yield HierarchyOrchestrator.from_session(session, settings=settings)
    except CareerTreeError as exc:
        fail(exc)
    finally:
        session.close()
        engine.dispose()


def fail(exc: CareerTreeError) -> None:
    err_console.print(f"[bold red]Error[/bold red] ({exc.category.value}): {exc.message}")
    raise typer.Exit(code=1)


# ── Output helpers ───────────────────────────────────────────────────────


def _to_dict(obj: Any) -> Any:
    """Convert a model record / dict to plain JSON-able data."""
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    if hasattr(obj, "model_dump"):
        return obj.model_dump()
    return obj


def output_data(data: Any, *, as_json: bool = False, title: str = "") -> None:
    """Render a record, a dict or a list of them to the terminal."""
    if as_json:
        payload = [_to_dict(d) for d in data] if isinstance(data, list | tuple) else _to_dict(data)
        console.print_json(json.dumps(payload, default=str))
        return

    if isinstance(data, list):
        if not data:
            console.print("[dim]No items.[/dim]")
            return
        _print_table([_to_dict(d) for d in data], title=title)
    else:
        _print_dict(_to_dict(data), title=title)


def output_tree(roots: list[TreeNode], *, title: str) -> None:
    """Render a forest as a Rich tree."""
    if not roots:
        console.print("[dim]No items.[/dim]")
        return
    top = Tree(f"[bold]{title}[/bold]")
    stack = [(top, root) for root in reversed(roots)]
    while stack:
        branch, tree_node = stack.pop()
        node = tree_node.node
        child = branch.add(f"[cyan]{node.type.value}[/cyan] {node.label or ''} [dim]{node.id}[/dim]")
        stack.extend((child, c) for c in reversed(tree_node.children))
    console.print(top)


# ── Private helpers ──────────────────────────────────────────────────────


def _print_table(items: list[dict[str, Any]], *, title: str = "") -> None:
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in items[0]:
        table.add_column(col, overflow="fold")
    for item in items:
        table.add_row(*(str(v) for v in item.values()))
    console.print(table)


def _print_dict(data: dict[str, Any], *, title: str = "") -> None:
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        console.print(f"  [cyan]{k}[/cyan]: {v}")
