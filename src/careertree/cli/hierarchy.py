"""
CLI: ``careertree hierarchy``: integrity diagnostics and repair.
"""

from __future__ import annotations

import typer

from careertree.cli.utils import console, open_orchestrator, output_data

app = typer.Typer(no_args_is_help=True)


@app.command()
def validate(
    owner_id: str = typer.Argument(...),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Report cycles, orphaned references, depth and recovery suggestions."""
    with open_orchestrator(database) as svc:
        report = svc.validate_hierarchy(owner_id)
        if json_out:
            output_data(report, as_json=True)
            return
        status = "[green]healthy[/green]" if report.is_healthy else "[red]needs repair[/red]"
        console.print(f"[bold]Hierarchy of {owner_id}[/bold]: {status}")
        output_data(report.analysis, title="Analysis")
        if report.suggestions:
            rows = [
                {"severity": s.severity.value, "issue": s.issue, "suggestion": s.suggestion}
                for s in report.suggestions
            ]
            output_data(rows, title="Suggestions")


@app.command()
def repair(
    owner_id: str = typer.Argument(...),
    dry_run: bool = typer.Option(False, "--dry-run", help="Preview without changes"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Apply the automatic fixes suggested by ``validate``."""
    with open_orchestrator(database) as svc:
        fixes = svc.repair_hierarchy(owner_id, dry_run=dry_run)
        output_data(fixes, as_json=json_out, title="Planned Fixes" if dry_run else "Applied Fixes")
