"""
CLI: ``careertree nodes``: read-only views of an owner's hierarchy.
"""

from __future__ import annotations

import typer

from careertree.cli.utils import open_orchestrator, output_data, output_tree

app = typer.Typer(no_args_is_help=True)


@app.command("tree")
def tree_cmd(
    owner_id: str = typer.Argument(..., help="Owner whose forest to show"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Show the full forest."""
    with open_orchestrator(database) as svc:
        roots = svc.get_full_tree(owner_id)
        if json_out:
            output_data(roots, as_json=True)
        else:
            output_tree(roots, title=f"Hierarchy of {owner_id}")


@app.command("list")
def list_cmd(
    owner_id: str = typer.Argument(...),
    node_type: str | None = typer.Option(None, "--type", "-t", help="Only this node type"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List nodes in creation order."""
    with open_orchestrator(database) as svc:
        nodes = svc.list_nodes(owner_id, node_type=node_type)
        if json_out:
            output_data(nodes, as_json=True)
        else:
            rows = [
                {"id": n.id, "type": n.type.value, "label": n.label, "parent_id": n.parent_id}
                for n in nodes
            ]
            output_data(rows, title="Nodes")


@app.command()
def stats(
    owner_id: str = typer.Argument(...),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Node counts, root count and max depth."""
    with open_orchestrator(database) as svc:
        output_data(svc.get_hierarchy_stats(owner_id), as_json=json_out, title="Hierarchy Stats")
