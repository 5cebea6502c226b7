"""Example Reflex app demonstrating the paged grid.

Two tabs:
  1. Employee data -- explicit column definitions (currency, date and
     integer columns, a custom cell view, row buttons) over an inline
     polars LazyFrame.
  2. Longevity Map (Parquet) -- a parquet file from HuggingFace via polars'
     native ``hf://`` protocol, browsed with ``set_lazyframe`` and columns
     inferred from the schema.
"""

from datetime import date
from typing import Any

import polars as pl
import reflex as rx

from reflex_paged_grid import (
    ColumnDef,
    ColumnType,
    FilterModelFilter,
    GridConfig,
    GridSettings,
    LazyFrameDataSource,
    PagedGridMixin,
    SortOrder,
    TableButton,
    paged_grid,
)

PARQUET_HF_URL: str = "hf://datasets/just-dna-seq/annotators/data/longevitymap/weights.parquet"

DEMO_CONFIG = GridConfig(
    default_page_size=8,
    debug_log=True,
    cell_views={"department": "[$data]"},
)


# ---------------------------------------------------------------------------
# Sample data builders
# ---------------------------------------------------------------------------

def _build_employee_lazyframe() -> pl.LazyFrame:
    """Create a sample LazyFrame with employee data."""
    return pl.LazyFrame(
        {
            "id": list(range(1, 21)),
            "first_name": [
                "Alice", "Bob", "Charlie", "Diana", "Eve",
                "Frank", "Grace", "Hank", "Ivy", "Jack",
                "Karen", "Leo", "Mona", "Nick", "Olivia",
                "Paul", "Quinn", "Rita", "Sam", "Tina",
            ],
            "last_name": [
                "Smith", "Johnson", "Williams", "Brown", "Jones",
                "Garcia", "Miller", "Davis", "Rodriguez", "Martinez",
                "Hernandez", "Lopez", "Gonzalez", "Wilson", "Anderson",
                "Thomas", "Taylor", "Moore", "Jackson", "Martin",
            ],
            "department": [
                "Engineering", "Marketing", "Engineering", "Sales", "Engineering",
                "Marketing", "Sales", "Engineering", "Marketing", "Sales",
                "Engineering", "Marketing", "Sales", "Engineering", "Marketing",
                "Sales", "Engineering", "Marketing", "Sales", "Engineering",
            ],
            "salary": [
                95000, 72000, 110000, 68000, 125000,
                71000, 82000, 98000, 67000, 78000,
                105000, 69000, 74000, 115000, 73000,
                80000, 99000, 70000, 76000, 108000,
            ],
            "hired": [date(2015 + i % 9, 1 + i % 12, 1 + i) for i in range(20)],
        }
    )


def _employee_columns() -> list[ColumnDef]:
    return [
        ColumnDef("id", header_name="#", type=ColumnType.INTEGER),
        ColumnDef("last_name", sort_order=SortOrder.ASCENDING),
        ColumnDef("first_name"),
        ColumnDef("department", template_name="department"),
        ColumnDef("salary", type=ColumnType.CURRENCY, description="Yearly gross salary"),
        ColumnDef("hired", type=ColumnType.DATE, header_name="Hire Date"),
    ]


def _employee_buttons(record: dict[str, Any]) -> list[TableButton]:
    name = f"{record.get('first_name', '')} {record.get('last_name', '')}"
    return [
        TableButton("Details", lambda r: print(f"[Demo] details for {name}: {r}"), icon="info"),
        TableButton("Promote", lambda r: print(f"[Demo] promote {name}"), icon="arrow_up"),
    ]


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------

class EmployeeState(PagedGridMixin, rx.State):
    """Employee grid with explicit columns and row buttons."""

    async def load_employees(self) -> None:
        columns = _employee_columns()
        source = LazyFrameDataSource(_build_employee_lazyframe())
        settings = GridSettings(
            columns,
            source,
            filter=FilterModelFilter(columns),
            get_buttons=_employee_buttons,
        )
        await self.set_grid(settings, config=DEMO_CONFIG)


class ParquetState(PagedGridMixin, rx.State):
    """Grid over a remote parquet file, columns inferred from its schema."""

    async def load_parquet(self):
        """Scan the longevity-map parquet from HuggingFace via polars ``hf://``."""
        self.pg_grid_loading = True  # type: ignore[assignment]
        yield  # send loading state to frontend

        await self.set_lazyframe(pl.scan_parquet(PARQUET_HF_URL), page_size=25)


# ---------------------------------------------------------------------------
# UI components
# ---------------------------------------------------------------------------

def employee_tab() -> rx.Component:
    """Employee data tab content."""
    return rx.box(
        rx.text(
            "A 20-row employee dataset paged eight rows at a time. "
            "Click a header to cycle its sort, open the filter panel to add "
            "filters, and use the row menu for per-row actions.",
            margin_bottom="1em",
            color="var(--gray-11)",
        ),
        rx.cond(
            EmployeeState.pg_grid_loaded,
            paged_grid(EmployeeState, show_stats=True, show_buttons=True),
            rx.text("Loading...", color="var(--gray-9)"),
        ),
        padding_top="1em",
    )


def parquet_tab() -> rx.Component:
    """Longevity Map parquet tab content."""
    return rx.box(
        rx.text(
            "Longevity-map weights loaded from a HuggingFace parquet file via polars' native ",
            rx.code("hf://"),
            " protocol. Only the displayed page is ever collected.",
            margin_bottom="1em",
            color="var(--gray-11)",
        ),
        rx.cond(
            ParquetState.pg_grid_loaded,
            paged_grid(ParquetState, show_stats=True),
            rx.button(
                "Load Parquet from HuggingFace",
                on_click=ParquetState.load_parquet,
                loading=ParquetState.pg_grid_loading,
                size="3",
            ),
        ),
        padding_top="1em",
    )


def index() -> rx.Component:
    """Render the main page with tabs."""
    return rx.box(
        rx.heading("Paged Grid -- Reflex Demo", size="6", margin_bottom="1em"),
        rx.tabs.root(
            rx.tabs.list(
                rx.tabs.trigger("Employee Data", value="employees"),
                rx.tabs.trigger("Longevity Map (Parquet)", value="parquet"),
            ),
            rx.tabs.content(employee_tab(), value="employees"),
            rx.tabs.content(parquet_tab(), value="parquet"),
            default_value="employees",
        ),
        padding="2em",
        max_width="1400px",
        margin="0 auto",
    )


app = rx.App()
app.add_page(index, on_load=EmployeeState.load_employees)
