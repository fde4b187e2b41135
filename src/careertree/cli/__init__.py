"""careertree command-line interface (Typer + Rich)."""
