"""
CLI: ``careertree db``: database management commands.
"""

from __future__ import annotations

import typer

from careertree.cli.utils import database_url, output_data
from careertree.core.orm.session import create_careertree_engine, init_schema

app = typer.Typer(no_args_is_help=True)


@app.command()
def init(
    database: str | None = typer.Option(None, "--database", "-d", help="Database URL"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Create the hierarchy tables (idempotent)."""
    url = database_url(database)
    engine = create_careertree_engine(url)
    try:
        tables = init_schema(engine)
    finally:
        engine.dispose()
    output_data({"database_url": url, "tables": tables}, as_json=json_out, title="Database Init")
