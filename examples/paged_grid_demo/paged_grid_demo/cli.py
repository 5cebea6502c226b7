"""CLI for the paged grid demo app.

Commands::

    uv run demo          # Run the Reflex demo app
    uv run demo run      # Same as above
"""

import os
from pathlib import Path

import typer

app = typer.Typer(
    name="demo",
    help="Paged grid demo app.",
    invoke_without_command=True,
)


def _run_app() -> None:
    """Start the Reflex demo app."""
    app_dir = Path(__file__).resolve().parent.parent
    os.chdir(app_dir)

    from reflex.reflex import cli

    cli(["run"])


@app.callback(invoke_without_command=True)
def default(ctx: typer.Context) -> None:
    """Run the demo app (default when no subcommand is given)."""
    if ctx.invoked_subcommand is None:
        _run_app()


@app.command()
def run() -> None:
    """Run the Reflex demo app."""
    _run_app()


def main() -> None:
    app()


if __name__ == "__main__":
    main()
