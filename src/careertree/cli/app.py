"""
Root Typer application for the careertree CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

from careertree.cli.db import app as db_app
from careertree.cli.hierarchy import app as hierarchy_app
from careertree.cli.nodes import app as nodes_app
from careertree.cli.utils import fail, output_data
from careertree.core.errors import CareerTreeError
from careertree.core.logging import configure_logging
from careertree.core.settings import get_settings

app = Typer(
    name="careertree",
    help="careertree: integrity engine for per-user career hierarchies.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import PackageNotFoundError
        from importlib.metadata import version as pkg_version

        try:
            v = pkg_version("careertree")
        except PackageNotFoundError:
            v = "0.1.0"
        typer.echo(f"careertree {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """careertree CLI: inspect, validate and repair career hierarchies."""
    try:
        settings = get_settings()
    except CareerTreeError as exc:
        fail(exc)
        return
    configure_logging(level=settings.log_level, json_format=settings.log_format == "json")


@app.command()
def schema(
    node_type: str = typer.Argument(..., help="Node type, e.g. job or careerTransition"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Show allowed child types and the metadata schema for a node type."""
    from careertree.hierarchy.rules import TypeRuleValidator

    try:
        payload = TypeRuleValidator.describe_type(node_type)
    except CareerTreeError as exc:
        fail(exc)
        return
    if json_out:
        output_data(payload, as_json=True)
    else:
        output_data(
            {
                "node_type": payload["node_type"],
                "allowed_children": ", ".join(payload["allowed_children"]) or "none",
                "required": ", ".join(payload["meta_schema"].get("required", [])),
            },
            title="Node Type Schema",
        )


app.add_typer(db_app, name="db", help="Database operations.")
app.add_typer(nodes_app, name="nodes", help="Browse an owner's nodes.")
app.add_typer(hierarchy_app, name="hierarchy", help="Validate and repair hierarchies.")
