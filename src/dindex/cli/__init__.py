"""``dindex`` command-line interface (Typer)."""
