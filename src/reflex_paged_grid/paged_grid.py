"""Reflex state mixin and UI helpers for a paged grid.

Users inherit from :class:`PagedGridMixin` **and** ``rx.State``, hand it
:class:`~reflex_paged_grid.grid.GridSettings` (or just a LazyFrame), and
render with :func:`paged_grid`.

``PagedGridMixin`` is a Reflex **state mixin** (``mixin=True``).  Each
subclass gets its own independent set of ``pg_grid_*`` reactive
variables, so multiple grids on the same page do not interfere with
each other.

Typical usage::

    from reflex_paged_grid import PagedGridMixin, paged_grid, scan_file

    class PeopleState(PagedGridMixin, rx.State):
        async def load_data(self):
            await self.set_lazyframe(scan_file(Path("people.parquet")))

    def index():
        return rx.cond(PeopleState.pg_grid_loaded, paged_grid(PeopleState))
"""

import time
from typing import Any

import polars as pl
import reflex as rx

from reflex_paged_grid.buttons import ButtonMenuRegistry
from reflex_paged_grid.config import GridConfig
from reflex_paged_grid.data_source import FetchError
from reflex_paged_grid.filters import FilterModelFilter, empty_filter_model, operators_for
from reflex_paged_grid.grid import GridController, GridSettings
from reflex_paged_grid.lazyframe_source import LazyFrameDataSource
from reflex_paged_grid.models import ColumnType
from reflex_paged_grid.views import column_header, page_link_dict


# ---------------------------------------------------------------------------
# Module-level controller registry
# ---------------------------------------------------------------------------

# Controllers hold data sources, callbacks and compiled views, none of
# which can be serialised into Reflex state.  They live here, keyed by the
# state class name and the browser session's client token.
_controller_registry: dict[str, GridController] = {}

# One row-menu registry per client token, so at most one row menu is open
# per browser session.
_menu_registries: dict[str, ButtonMenuRegistry] = {}


def _grid_key(state_name: str, client_token: str) -> str:
    return f"{state_name}:{client_token}"


def _menu_registry_for(client_token: str) -> ButtonMenuRegistry:
    registry = _menu_registries.get(client_token)
    if registry is None:
        registry = _menu_registries[client_token] = ButtonMenuRegistry()
    return registry


def _get_controller(grid_id: str) -> GridController | None:
    return _controller_registry.get(grid_id)


# ---------------------------------------------------------------------------
# PagedGridMixin
# ---------------------------------------------------------------------------

class PagedGridMixin(rx.State, mixin=True):
    """Reflex State mixin exposing a :class:`GridController` to the frontend.

    The controller itself lives in a module-level registry keyed by state
    class and browser session (``router.session.client_token``); the state
    holds a JSON-safe projection of it (column headers, rendered rows,
    page links, record range, applied filter descriptions) that is
    refreshed after every operation.

    Subclasses **must** also inherit from ``rx.State``::

        class MyGrid(PagedGridMixin, rx.State):
            ...

    All state variable names are prefixed with ``pg_grid_`` to avoid
    collisions when composed with other state.
    """

    # -- Frontend state vars --
    pg_grid_columns: list[dict[str, Any]] = []
    pg_grid_rows: list[list[str]] = []
    pg_grid_row_buttons: list[list[str]] = []
    pg_grid_pages: list[dict[str, Any]] = []
    pg_grid_loading: bool = False
    pg_grid_loaded: bool = False
    pg_grid_record_count: int = 0
    pg_grid_records_from: int = 0
    pg_grid_records_to: int = 0
    pg_grid_page: int = 1
    pg_grid_applied_filters: list[str] = []
    pg_grid_filter_showing: bool = False
    pg_grid_filter_fields: list[str] = []
    pg_grid_filter_field: str = ""
    pg_grid_filter_operators: list[str] = list(operators_for(ColumnType.TEXT))
    pg_grid_filter_model: dict[str, Any] = empty_filter_model()
    pg_grid_open_menu_row: int = -1
    pg_grid_error: str = ""
    pg_grid_stats: str = ""

    # -- Backend-only vars (not sent to frontend) --
    _pg_grid_id: str = ""

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def set_grid(
        self,
        settings: GridSettings,
        *,
        config: GridConfig | None = None,
        page_size: int | None = None,
        default_filter: Any = None,
    ) -> None:
        """Create the controller for this state and load the first page.

        Raises:
            TemplateNotFound: If a column names an unregistered cell view.
        """
        client_token = self.router.session.client_token
        grid_id = _grid_key(type(self).__name__, client_token)
        self._pg_grid_id = grid_id  # type: ignore[assignment]
        controller = GridController(
            config=config,
            page_size=page_size,
            default_filter=default_filter,
            menu_registry=_menu_registry_for(client_token),
        )
        _controller_registry[grid_id] = controller

        self.pg_grid_loading = True  # type: ignore[assignment]
        task = controller.settings_changed(settings)
        await self._run_grid_operation(controller, task)
        self.pg_grid_loaded = True  # type: ignore[assignment]

    async def set_lazyframe(
        self,
        lf: pl.LazyFrame,
        descriptions: dict[str, str] | None = None,
        *,
        page_size: int | None = None,
        config: GridConfig | None = None,
    ) -> None:
        """Browse a polars LazyFrame with a filter panel over all its columns."""
        source = LazyFrameDataSource(lf, descriptions)
        columns = source.column_defs()
        settings = GridSettings(columns, source, filter=FilterModelFilter(columns))
        await self.set_grid(settings, config=config, page_size=page_size)

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    async def handle_pg_grid_goto(self, page: int):
        """Go to *page* (a pagination link was clicked)."""
        controller = self._pg_grid_controller()
        if controller is None:
            return
        self.pg_grid_loading = True  # type: ignore[assignment]
        yield
        await self._run_grid_operation(controller, controller.goto(int(page)))

    async def handle_pg_grid_sort(self, field: str):
        """Cycle the sort of the column whose header was clicked."""
        controller = self._pg_grid_controller()
        if controller is None:
            return
        column = next((c for c in controller.columns if c.property_name == field), None)
        if column is None or column.disable_sort:
            return
        self.pg_grid_loading = True  # type: ignore[assignment]
        yield
        await self._run_grid_operation(controller, controller.sort_by(column))

    async def reload_pg_grid(self):
        controller = self._pg_grid_controller()
        if controller is None:
            return
        self.pg_grid_loading = True  # type: ignore[assignment]
        yield
        await self._run_grid_operation(controller, controller.reload())

    def toggle_pg_grid_filter(self) -> None:
        """Open or close the filter panel."""
        controller = self._pg_grid_controller()
        if controller is None:
            return
        if controller.filter_showing:
            controller.close_filter()
        else:
            controller.open_filter()
        self._sync_pg_grid(controller)

    def select_pg_grid_filter_field(self, field: str) -> None:
        """Offer only the operators the chosen column supports."""
        grid_filter = self._pg_grid_filter_panel()
        if grid_filter is None:
            return
        self.pg_grid_filter_field = field  # type: ignore[assignment]
        self.pg_grid_filter_operators = list(grid_filter.operators_for_field(field))  # type: ignore[assignment]

    def handle_pg_grid_filter_item(self, form_data: dict[str, Any]) -> None:
        """Add or update one filter item in the (not yet applied) panel model."""
        grid_filter = self._pg_grid_filter_panel()
        if grid_filter is None:
            return
        field = form_data.get("field")
        if not field:
            return
        operator = form_data.get("operator") or grid_filter.operators_for_field(field)[0]
        value = form_data.get("value")
        self.pg_grid_error = ""  # type: ignore[assignment]
        try:
            grid_filter.set_item({"field": field, "operator": operator, "value": value or None})
        except ValueError as exc:
            self.pg_grid_error = str(exc)  # type: ignore[assignment]
            return
        self.pg_grid_filter_model = grid_filter.model  # type: ignore[assignment]

    async def apply_pg_grid_filter(self):
        """Apply the panel's filter model (Apply button)."""
        controller = self._pg_grid_controller()
        grid_filter = self._pg_grid_filter_panel()
        if controller is None or grid_filter is None:
            return
        self.pg_grid_loading = True  # type: ignore[assignment]
        yield
        await self._run_grid_operation(controller, grid_filter.apply_filter())

    def cancel_pg_grid_filter(self) -> None:
        """Discard unapplied panel edits and close the panel (Cancel button)."""
        controller = self._pg_grid_controller()
        grid_filter = self._pg_grid_filter_panel()
        if controller is None or grid_filter is None:
            return
        grid_filter.cancel()
        self._sync_pg_grid(controller)

    async def clear_pg_grid_filters(self):
        """Reset the filter to its default and reload (Clear All button)."""
        controller = self._pg_grid_controller()
        if controller is None:
            return
        self.pg_grid_loading = True  # type: ignore[assignment]
        yield
        await self._run_grid_operation(controller, controller.clear_filter())

    async def remove_pg_grid_filter(self, index: int):
        """Remove one applied filter facet and re-apply the rest."""
        controller = self._pg_grid_controller()
        if controller is None:
            return
        index = int(index)
        if not 0 <= index < len(controller.applied_filters):
            return
        self.pg_grid_loading = True  # type: ignore[assignment]
        yield
        await self._run_grid_operation(controller, controller.applied_filters[index].remove())

    def open_pg_grid_menu(self, row: int) -> None:
        """Open the button menu of *row*, closing any other open menu."""
        controller = self._pg_grid_controller()
        if controller is None:
            return
        row = int(row)
        if 0 <= row < len(controller.button_cells):
            controller.button_cells[row].open_menu()
        self._sync_pg_grid(controller)

    def close_pg_grid_menus(self) -> None:
        controller = self._pg_grid_controller()
        if controller is None:
            return
        for cell in controller.button_cells:
            if cell.opened:
                cell.close_menu()
        self._sync_pg_grid(controller)

    def handle_pg_grid_button(self, row: int, button: int) -> None:
        """Run button *button* of *row*'s menu against the row's record."""
        controller = self._pg_grid_controller()
        if controller is None:
            return
        row, button = int(row), int(button)
        if not 0 <= row < len(controller.button_cells):
            return
        cell = controller.button_cells[row]
        if 0 <= button < len(cell.buttons):
            cell.button_clicked(cell.buttons[button])
        self._sync_pg_grid(controller)

    def handle_pg_grid_cell_click(self, row: int, col: int) -> None:
        controller = self._pg_grid_controller()
        if controller is None:
            return
        row, col = int(row), int(col)
        if 0 <= row < len(controller.records) and 0 <= col < len(controller.columns):
            controller.cell_clicked(controller.columns[col], controller.records[row])

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _pg_grid_controller(self) -> GridController | None:
        grid_id = self._pg_grid_id
        if not grid_id:
            return None
        return _get_controller(grid_id)

    def _pg_grid_filter_panel(self) -> FilterModelFilter | None:
        controller = self._pg_grid_controller()
        if controller is None or controller.settings is None:
            return None
        grid_filter = controller.settings.filter
        return grid_filter if isinstance(grid_filter, FilterModelFilter) else None

    async def _run_grid_operation(self, controller: GridController, operation: Any) -> None:
        """Await a controller operation, then push the controller state to the frontend.

        Fetch failures are shown in ``pg_grid_error`` instead of breaking the
        event handler; any other exception propagates.
        """
        t0 = time.perf_counter()
        self.pg_grid_error = ""  # type: ignore[assignment]
        try:
            if operation is not None:
                await operation
        except FetchError as exc:
            self.pg_grid_error = str(exc)  # type: ignore[assignment]
            print(f"[PagedGrid] fetch failed: {exc}")
        finally:
            self._sync_pg_grid(controller)
        elapsed_ms = (time.perf_counter() - t0) * 1000
        if controller.config.debug_log:
            print(
                f"[PagedGrid] {self._pg_grid_id} refresh: page={controller.page}, "
                f"rows={len(controller.records)}, elapsed={elapsed_ms:.1f}ms"
            )
        self.pg_grid_stats = (  # type: ignore[assignment]
            f"page {controller.page}  "
            f"rows {controller.records_from:,}-{controller.records_to:,} "
            f"of {controller.record_count:,}  {elapsed_ms:.0f}ms"
        )

    def _sync_pg_grid(self, controller: GridController) -> None:
        """Copy the controller state into the reactive vars."""
        self.pg_grid_columns = [column_header(c) for c in controller.columns]  # type: ignore[assignment]
        self.pg_grid_rows = [controller.render_row(r) for r in controller.records]  # type: ignore[assignment]
        self.pg_grid_row_buttons = [  # type: ignore[assignment]
            [b.title for b in cell.buttons] for cell in controller.button_cells
        ]
        self.pg_grid_open_menu_row = next(  # type: ignore[assignment]
            (i for i, cell in enumerate(controller.button_cells) if cell.opened), -1
        )
        self.pg_grid_pages = [page_link_dict(link) for link in controller.pages]  # type: ignore[assignment]
        self.pg_grid_page = controller.page  # type: ignore[assignment]
        self.pg_grid_record_count = controller.record_count  # type: ignore[assignment]
        self.pg_grid_records_from = controller.records_from  # type: ignore[assignment]
        self.pg_grid_records_to = controller.records_to  # type: ignore[assignment]
        self.pg_grid_applied_filters = [  # type: ignore[assignment]
            token.description for token in controller.applied_filters
        ]
        self.pg_grid_filter_showing = controller.filter_showing  # type: ignore[assignment]
        self.pg_grid_loading = controller.loading  # type: ignore[assignment]

        grid_filter = self._pg_grid_filter_panel()
        if grid_filter is not None:
            self.pg_grid_filter_model = grid_filter.model  # type: ignore[assignment]
            self.pg_grid_filter_fields = [c.property_name for c in controller.columns]  # type: ignore[assignment]


# ---------------------------------------------------------------------------
# UI helpers
# ---------------------------------------------------------------------------

def _sort_indicator(column: rx.Var) -> rx.Component:
    return rx.cond(
        column["sort"] == "asc",
        rx.icon("chevron_up", size=14),
        rx.cond(
            column["sort"] == "desc",
            rx.icon("chevron_down", size=14),
            rx.fragment(),
        ),
    )


def paged_grid_table(state_cls: type, *, show_buttons: bool = False) -> rx.Component:
    """Return the table (headers and rendered rows) of a :class:`PagedGridMixin` state.

    Args:
        state_cls: The ``rx.State`` subclass that inherits from
            :class:`PagedGridMixin`.
        show_buttons: Add a trailing column with each row's button menu.
    """

    def header_cell(column: rx.Var) -> rx.Component:
        return rx.table.column_header_cell(
            rx.hstack(
                rx.text(column["header_name"], weight="bold"),
                _sort_indicator(column),
                spacing="1",
                align="center",
            ),
            title=column["description"],
            cursor=rx.cond(column["sortable"], "pointer", "default"),
            on_click=state_cls.handle_pg_grid_sort(column["field"]),
        )

    def buttons_cell(row_index: rx.Var) -> rx.Component:
        return rx.table.cell(
            rx.cond(
                state_cls.pg_grid_open_menu_row == row_index,
                rx.hstack(
                    rx.foreach(
                        state_cls.pg_grid_row_buttons[row_index],
                        lambda title, button_index: rx.button(
                            title,
                            size="1",
                            variant="soft",
                            on_click=state_cls.handle_pg_grid_button(row_index, button_index),
                        ),
                    ),
                    rx.icon_button(
                        rx.icon("x", size=12),
                        size="1",
                        variant="ghost",
                        on_click=state_cls.close_pg_grid_menus,
                    ),
                    spacing="1",
                ),
                rx.icon_button(
                    rx.icon("ellipsis", size=14),
                    size="1",
                    variant="ghost",
                    on_click=state_cls.open_pg_grid_menu(row_index),
                ),
            ),
            text_align="right",
        )

    def body_row(row: rx.Var, row_index: rx.Var) -> rx.Component:
        cells = rx.foreach(
            row,
            lambda cell, col_index: rx.table.cell(
                cell,
                class_name=state_cls.pg_grid_columns[col_index]["class_name"],
                on_click=state_cls.handle_pg_grid_cell_click(row_index, col_index),
            ),
        )
        if show_buttons:
            return rx.table.row(cells, buttons_cell(row_index))
        return rx.table.row(cells)

    header_cells = rx.foreach(state_cls.pg_grid_columns, header_cell)
    header_row = (
        rx.table.row(header_cells, rx.table.column_header_cell(""))
        if show_buttons
        else rx.table.row(header_cells)
    )

    return rx.table.root(
        rx.table.header(header_row),
        rx.table.body(rx.foreach(state_cls.pg_grid_rows, body_row)),
        variant="surface",
        size="1",
        width="100%",
        opacity=rx.cond(state_cls.pg_grid_loading, "0.6", "1"),
    )


def paged_grid_pagination(state_cls: type) -> rx.Component:
    """Return the pagination bar and the ``from-to of count`` record range."""
    return rx.hstack(
        rx.text(
            state_cls.pg_grid_records_from.to(str),  # type: ignore[union-attr]
            "–",
            state_cls.pg_grid_records_to.to(str),  # type: ignore[union-attr]
            " of ",
            state_cls.pg_grid_record_count.to(str),  # type: ignore[union-attr]
            size="2",
            color="var(--gray-11)",
        ),
        rx.spacer(),
        rx.hstack(
            rx.foreach(
                state_cls.pg_grid_pages,
                lambda link: rx.button(
                    link["label"],
                    size="1",
                    variant=rx.cond(link["is_current"], "solid", "soft"),
                    on_click=state_cls.handle_pg_grid_goto(link["target_page"]),
                ),
            ),
            spacing="1",
        ),
        align="center",
        width="100%",
        margin_top="0.5em",
    )


def paged_grid_filter_bar(state_cls: type) -> rx.Component:
    """Return the bar listing applied filters (each removable) plus filter buttons."""
    return rx.hstack(
        rx.icon_button(
            rx.icon("filter", size=14),
            size="1",
            variant=rx.cond(state_cls.pg_grid_filter_showing, "solid", "outline"),
            on_click=state_cls.toggle_pg_grid_filter,
        ),
        rx.foreach(
            state_cls.pg_grid_applied_filters,
            lambda description, index: rx.badge(
                description,
                rx.icon(
                    "x",
                    size=12,
                    cursor="pointer",
                    on_click=state_cls.remove_pg_grid_filter(index),
                ),
                variant="soft",
                color_scheme="blue",
            ),
        ),
        rx.spacer(),
        rx.cond(
            state_cls.pg_grid_applied_filters.length() > 0,  # type: ignore[union-attr]
            rx.button(
                rx.icon("x", size=14),
                "Clear All",
                size="1",
                variant="outline",
                color_scheme="orange",
                on_click=state_cls.clear_pg_grid_filters,
            ),
        ),
        rx.icon_button(
            rx.icon("refresh_cw", size=14),
            size="1",
            variant="ghost",
            on_click=state_cls.reload_pg_grid,
        ),
        align="center",
        spacing="2",
        width="100%",
        margin_bottom="0.5em",
    )


def paged_grid_filter_panel(state_cls: type) -> rx.Component:
    """Return the filter panel: edit items, then Apply / Cancel / Reset."""
    return rx.cond(
        state_cls.pg_grid_filter_showing,
        rx.box(
            rx.form(
                rx.hstack(
                    rx.select(
                        state_cls.pg_grid_filter_fields,
                        name="field",
                        placeholder="Column",
                        on_change=state_cls.select_pg_grid_filter_field,
                        size="1",
                    ),
                    rx.select(state_cls.pg_grid_filter_operators, name="operator", placeholder="Operator", size="1"),
                    rx.input(name="value", placeholder="Value", size="1"),
                    rx.button("Add", type="submit", size="1", variant="soft"),
                    spacing="2",
                    align="center",
                ),
                on_submit=state_cls.handle_pg_grid_filter_item,
                reset_on_submit=True,
            ),
            rx.foreach(
                state_cls.pg_grid_filter_model["items"].to(list[dict[str, Any]]),  # type: ignore[union-attr]
                lambda item: rx.text(
                    item["field"].to(str), " ", item["operator"].to(str), " ", item["value"].to(str),
                    size="1",
                    font_family="monospace",
                ),
            ),
            rx.hstack(
                rx.button("Apply", size="1", on_click=state_cls.apply_pg_grid_filter),
                rx.button("Cancel", size="1", variant="soft", on_click=state_cls.cancel_pg_grid_filter),
                rx.button(
                    "Reset",
                    size="1",
                    variant="outline",
                    color_scheme="orange",
                    on_click=state_cls.clear_pg_grid_filters,
                ),
                spacing="2",
                margin_top="0.5em",
            ),
            padding="0.5em 0.8em",
            border_radius="8px",
            background="var(--gray-a2)",
            border="1px solid var(--gray-a5)",
            margin_bottom="0.5em",
        ),
    )


def paged_grid_stats_bar(state_cls: type) -> rx.Component:
    """Return a one-line bar with the last operation's timing, or the error."""
    return rx.cond(
        state_cls.pg_grid_error != "",
        rx.callout(
            state_cls.pg_grid_error,
            icon="triangle_alert",
            color_scheme="red",
            size="1",
            margin_bottom="0.5em",
        ),
        rx.text(
            state_cls.pg_grid_stats,
            size="1",
            color="var(--gray-9)",
            font_family="monospace",
            margin_bottom="0.5em",
        ),
    )


def paged_grid(
    state_cls: type,
    *,
    show_filter_bar: bool = True,
    show_stats: bool = False,
    show_buttons: bool = False,
    **box_props: Any,
) -> rx.Component:
    """Return a complete paged grid bound to a :class:`PagedGridMixin` state.

    Args:
        state_cls: The ``rx.State`` subclass that also inherits from
            :class:`PagedGridMixin`.
        show_filter_bar: Show applied filters, the filter panel toggle and
            the reload button above the table.
        show_stats: Show operation timings (and fetch errors) above the table.
        show_buttons: Add a per-row button menu column (requires
            ``GridSettings.get_buttons``).
        **box_props: Props forwarded to the wrapping ``rx.box``.

    Returns:
        A Reflex component.
    """
    parts: list[rx.Component] = []
    if show_stats:
        parts.append(paged_grid_stats_bar(state_cls))
    if show_filter_bar:
        parts.append(paged_grid_filter_bar(state_cls))
        parts.append(paged_grid_filter_panel(state_cls))
    parts.append(paged_grid_table(state_cls, show_buttons=show_buttons))
    parts.append(paged_grid_pagination(state_cls))
    box_props.setdefault("width", "100%")
    return rx.box(*parts, **box_props)
