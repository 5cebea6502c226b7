"""CLI for reflex-paged-grid -- page through tabular files in the terminal or the browser.

Usage::

    # Print page 2 of a CSV, sorted by salary (descending)
    reflex-paged-grid show people.csv --page 2 --sort salary --desc

    # Only the Sales department, 10 rows per page
    reflex-paged-grid show people.parquet -s 10 -f department=Sales -f salary__gt=70000

    # Browse a file in an interactive browser grid
    reflex-paged-grid view people.parquet --page-size 50

Both commands page through the file lazily with ``LazyFrameDataSource``;
only the requested page is ever collected.
"""

import asyncio
import os
import subprocess
import sys
import tempfile
from pathlib import Path
from typing import Annotated, Optional

import typer

from reflex_paged_grid.config import GridConfig
from reflex_paged_grid.filters import FilterModelFilter, parse_filter_query_string
from reflex_paged_grid.grid import GridController, GridSettings
from reflex_paged_grid.lazyframe_source import LazyFrameDataSource, scan_file
from reflex_paged_grid.models import PageLink, SortOrder

app = typer.Typer(
    name="reflex-paged-grid",
    help="Page through tabular data files with sorting and filtering.",
    no_args_is_help=True,
)


def _resolve_existing(file: Path) -> Path:
    file = file.resolve()
    if not file.exists():
        typer.echo(f"Error: file not found: {file}", err=True)
        raise typer.Exit(code=1)
    return file


# ---------------------------------------------------------------------------
# show
# ---------------------------------------------------------------------------

def _format_table(headers: list[str], rows: list[list[str]]) -> str:
    """Render rows as a plain, left-aligned text table."""
    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))

    def line(cells: list[str]) -> str:
        return "  ".join(cell.ljust(widths[i]) for i, cell in enumerate(cells)).rstrip()

    out = [line(headers), "  ".join("-" * w for w in widths)]
    out.extend(line(row) for row in rows)
    return "\n".join(out)


def _format_pagination(links: list[PageLink]) -> str:
    return " ".join(f"[{link.label}]" if link.is_current else link.label for link in links)


async def _show_page(
    controller: GridController,
    settings: GridSettings,
    page: int,
) -> None:
    task = controller.settings_changed(settings)
    if task is not None:
        await task
    if page != 1:
        await controller.goto(page)


@app.command()
def show(
    file: Annotated[Path, typer.Argument(help="Path to the data file (CSV, TSV, Parquet, JSON, etc.)")],
    page: Annotated[int, typer.Option("--page", "-p", min=1, help="1-based page to print")] = 1,
    page_size: Annotated[int, typer.Option("--page-size", "-s", min=1, help="Records per page")] = 20,
    sort: Annotated[Optional[str], typer.Option("--sort", help="Column to sort by")] = None,
    desc: Annotated[bool, typer.Option("--desc", help="Sort descending")] = False,
    filters: Annotated[
        Optional[list[str]],
        typer.Option("--filter", "-f", help="Filter expression, e.g. salary__gt=70000 (repeatable)"),
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Print fetch timings")] = False,
) -> None:
    """Print one page of a data file as a text table."""
    file = _resolve_existing(file)
    try:
        lf = scan_file(file)
    except ValueError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)

    source = LazyFrameDataSource(lf, debug_log=verbose)
    columns = source.column_defs()

    if sort is not None:
        column = next((c for c in columns if c.property_name == sort), None)
        if column is None:
            typer.echo(f"Error: unknown sort column: {sort}", err=True)
            raise typer.Exit(code=1)
        column.sort_order = SortOrder.DESCENDING if desc else SortOrder.ASCENDING

    model = parse_filter_query_string("&".join(filters or []))
    try:
        grid_filter = FilterModelFilter(columns, model=model)
    except ValueError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)
    settings = GridSettings(columns, source, filter=grid_filter)
    controller = GridController(config=GridConfig(debug_log=verbose), page_size=page_size)

    asyncio.run(_show_page(controller, settings, page))

    headers = [c.header_name for c in controller.columns]
    rows = [controller.render_row(r) for r in controller.records]
    typer.echo(_format_table(headers, rows))
    typer.echo("")
    for token in controller.applied_filters:
        typer.echo(f"Filter: {token.description}")
    if controller.records:
        typer.echo(
            f"{controller.records_from}-{controller.records_to} of {controller.record_count}"
        )
    else:
        typer.echo(f"No records on page {controller.page} (of {controller.record_count} records)")
    typer.echo(_format_pagination(controller.pages))


# ---------------------------------------------------------------------------
# view
# ---------------------------------------------------------------------------

def _build_app_code(file_path: Path, page_size: int, title: str) -> str:
    """Generate the Reflex app module source code for *file_path*."""
    abs_path = str(file_path.resolve())
    # Escape backslashes and quotes for embedding in a Python string literal
    safe_path = abs_path.replace("\\", "\\\\").replace('"', '\\"')
    safe_title = title.replace("\\", "\\\\").replace('"', '\\"')

    template = _APP_TEMPLATE
    template = template.replace("__FILENAME__", file_path.name)
    template = template.replace("__SAFE_PATH__", safe_path)
    template = template.replace("__PAGE_SIZE__", str(page_size))
    template = template.replace("__TITLE__", safe_title)
    return template


# ---------------------------------------------------------------------------
# App template -- uses __PLACEHOLDER__ tokens for dynamic parts.
# ---------------------------------------------------------------------------

_APP_TEMPLATE = '''"""Auto-generated viewer app for: __FILENAME__"""

from pathlib import Path

import reflex as rx

from reflex_paged_grid import PagedGridMixin, paged_grid, scan_file


class ViewerState(PagedGridMixin, rx.State):
    """Viewer state using PagedGridMixin for server-side paging."""

    async def load_data(self):
        lf = scan_file(Path("__SAFE_PATH__"))
        await self.set_lazyframe(lf, page_size=__PAGE_SIZE__)


def index() -> rx.Component:
    return rx.box(
        rx.heading("__TITLE__", size="6", margin_bottom="0.5em"),
        rx.cond(
            ViewerState.pg_grid_loaded,
            paged_grid(ViewerState, show_stats=True),
            rx.text("Loading...", color="var(--gray-9)"),
        ),
        padding="2em",
        max_width="1400px",
        margin="0 auto",
    )


app = rx.App()
app.add_page(index, on_load=ViewerState.load_data)
'''


@app.command()
def view(
    file: Annotated[Path, typer.Argument(help="Path to the data file (CSV, TSV, Parquet, JSON, etc.)")],
    page_size: Annotated[int, typer.Option("--page-size", "-s", min=1, help="Records per page")] = 20,
    port: Annotated[int, typer.Option("--port", "-p", help="Port for the Reflex frontend")] = 3000,
    title: Annotated[Optional[str], typer.Option("--title", "-t", help="Page title")] = None,
) -> None:
    """View a data file in an interactive, paged browser grid.

    Supports: CSV, TSV, Parquet, JSON, NDJSON, IPC/Arrow/Feather.
    """
    file = _resolve_existing(file)

    if title is None:
        title = f"{file.name} -- Paged Grid Viewer"

    app_code = _build_app_code(file, page_size, title)

    # Create a temporary Reflex app directory.
    tmp_dir = Path(tempfile.mkdtemp(prefix="paged_grid_viewer_"))
    app_name = "viewer_app"
    app_pkg = tmp_dir / app_name
    app_pkg.mkdir()
    (app_pkg / "__init__.py").write_text("")
    (app_pkg / f"{app_name}.py").write_text(app_code)

    rxconfig_code = f"""import reflex as rx
config = rx.Config(app_name="{app_name}", frontend_port={port})
"""
    (tmp_dir / "rxconfig.py").write_text(rxconfig_code)

    typer.echo(f"Launching viewer for: {file}")
    typer.echo(f"Page size: {page_size} | Port: {port}")

    os.chdir(tmp_dir)

    # Step 1: initialise the Reflex project (creates .web/ with node_modules).
    # We use subprocess because reflex's CLI calls sys.exit() on completion.
    typer.echo("Initializing Reflex project...")
    subprocess.run(
        [sys.executable, "-m", "reflex", "init"],
        cwd=str(tmp_dir),
        check=True,
    )

    # Step 2: run the app via exec (replaces this process).
    typer.echo("Starting viewer...")
    os.execvp(sys.executable, [sys.executable, "-m", "reflex", "run"])


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
