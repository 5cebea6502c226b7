"""The paged grid controller.

:class:`GridController` owns everything a server-backed table needs to know
between user interactions: the current page and page size, the sort
column, the active filter, the fetched records and the pagination links.
Every interaction (page click, header click, filter apply or reset,
reload) updates that state and funnels into a single :meth:`fetch`.

Typical usage::

    columns = [
        ColumnDef("last_name", sort_order=SortOrder.ASCENDING),
        ColumnDef("salary", type=ColumnType.CURRENCY),
    ]
    grid = GridController(GridSettings(columns, HttpDataSource("/api/people")))

    async def main():
        await grid.settings_changed()   # resolve views, then load page 1
        await grid.sort_by(columns[1])  # salary ascending, back to page 1
        await grid.goto(3)
"""

import asyncio
import time
from collections.abc import Callable
from typing import Any

from reflex_paged_grid.buttons import ButtonMenuRegistry, ButtonsCell, TableButton
from reflex_paged_grid.config import GridConfig, default_config
from reflex_paged_grid.data_source import DataSource
from reflex_paged_grid.filters import GridFilter
from reflex_paged_grid.models import ColumnDef, FilterToken, Page, PageLink, SortOrder
from reflex_paged_grid.pagination import compute_page_window, records_range
from reflex_paged_grid.sorting import get_sort_property_name, toggle_sort
from reflex_paged_grid.views import default_formatter, default_template_name, render_cell


class GridSettings:
    """What a grid shows and where it gets it from.

    Args:
        columns: Column definitions, in display order.
        data_source: Source of pages (see :class:`~reflex_paged_grid.data_source.DataSource`).
        filter: Optional filter panel.
        post_fetch: Optional transform applied to each page's raw records.
        get_buttons: Optional ``record -> [TableButton]`` for row menus.
    """

    def __init__(
        self,
        columns: list[ColumnDef],
        data_source: DataSource,
        *,
        filter: GridFilter | None = None,
        post_fetch: Callable[[list[Any]], list[Any]] | None = None,
        get_buttons: Callable[[Any], list[TableButton]] | None = None,
    ) -> None:
        self.columns = columns
        self.data_source = data_source
        self.filter = filter
        self.post_fetch = post_fetch
        self.get_buttons = get_buttons


class GridController:
    """State and behaviour of one paged, sortable, filterable grid.

    The controller is driven from a single event loop.  Operations may
    overlap (a page click while a sort is still loading); only the response
    to the most recently issued fetch is applied, older responses are
    dropped when they arrive.

    Args:
        settings: Grid settings.  Can also be passed to
            :meth:`settings_changed` later.
        config: Shared configuration; defaults to
            :data:`~reflex_paged_grid.config.default_config`.
        page_size: Records per page.  Defaults to
            ``config.default_page_size``.
        default_filter: Filter fragment used when no filter panel is
            configured and the filter is cleared.
        menu_registry: Coordinates open row menus; pass one registry to
            every grid on a page so only one menu is ever open.
    """

    def __init__(
        self,
        settings: GridSettings | None = None,
        *,
        config: GridConfig | None = None,
        page_size: int | None = None,
        default_filter: Any = None,
        menu_registry: ButtonMenuRegistry | None = None,
    ) -> None:
        if page_size is not None and page_size < 1:
            raise ValueError(f"page_size must be >= 1, got {page_size}")
        self.settings = settings
        self.config = config or default_config
        self.page: int = 1
        self.page_size: int | None = page_size
        self.default_filter = default_filter
        self.filter: Any = default_filter
        self.applied_filters: list[FilterToken] = []
        self.sort_column: ColumnDef | None = None
        self.loading: bool = False
        self.records: list[Any] = []
        self.record_count: int = 0
        self.records_from: int = 0
        self.records_to: int = 0
        self.pages: list[PageLink] = []
        self.filter_showing: bool = False
        self.menu_registry = menu_registry or ButtonMenuRegistry()
        self.button_cells: list[ButtonsCell] = []
        self._fetch_generation = 0

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def columns(self) -> list[ColumnDef]:
        return self.settings.columns if self.settings else []

    @property
    def sort_property_name(self) -> str:
        return get_sort_property_name(self.sort_column)

    @property
    def sort_order(self) -> SortOrder:
        return self.sort_column.sort_order if self.sort_column else SortOrder.NOT_SPECIFIED

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def settings_changed(self, settings: GridSettings | None = None) -> "asyncio.Task[Any] | None":
        """(Re)initialise from settings and schedule the first load.

        Picks the sort column (the first column with a sort order, else the
        first column), connects the filter panel, fills in the page size,
        and resolves every column's cell view and formatter.  The load
        itself runs as a task on the running event loop so further settings
        changes made in the same tick are picked up before the first
        request goes out.

        Must be called while an event loop is running.

        Returns:
            The scheduled load task, or ``None`` when there are no settings.

        Raises:
            TemplateNotFound: If a column names a cell template that is not
                registered with the config.
        """
        if settings is not None:
            self.settings = settings
        if self.settings is None:
            return None

        columns = self.settings.columns
        self.sort_column = None
        for column in columns:
            if column.sort_order is SortOrder.NOT_SPECIFIED:
                continue
            if self.sort_column is None:
                self.sort_column = column
            else:
                column.sort_order = SortOrder.NOT_SPECIFIED
        if self.sort_column is None and columns:
            self.sort_column = columns[0]

        if self.settings.filter is not None:
            self.settings.filter.attach(self)

        if not self.page_size:
            self.page_size = self.config.default_page_size

        for column in columns:
            if not column.template_name:
                column.template_name = default_template_name(column.type)
            column.view = self.config.resolve_view(column.template_name)
            if column.data_formatter is None:
                column.data_formatter = default_formatter(column.type)

        loop = asyncio.get_running_loop()
        return loop.create_task(self._load())

    async def goto(self, page: int) -> Page | None:
        """Fetch and show *page* (1-based)."""
        if page < 1:
            raise ValueError(f"page must be >= 1, got {page}")
        self.page = page
        return await self.fetch()

    async def sort_by(self, column: ColumnDef) -> Page | None:
        """Handle a click on *column*'s header.

        Cycles the column through ascending, descending and unsorted (or
        makes it the ascending sort column), then reloads from page 1.
        Columns without a sort key are ignored.
        """
        if not get_sort_property_name(column):
            return None
        self.sort_column = toggle_sort(self.sort_column, column)
        self.page = 1
        return await self.fetch()

    async def apply_filter(
        self,
        filter: Any,
        applied_filters: list[FilterToken] | None,
    ) -> Page | None:
        """Fetch records matching *filter*, starting over at page 1."""
        self.filter = filter
        self.applied_filters = applied_filters or []
        self.page = 1
        return await self.fetch()

    async def clear_filter(self) -> Page | None:
        """Go back to the default filter.

        Delegates to the filter panel's ``reset()`` when there is one.
        """
        if self.settings is None or self.settings.filter is None:
            self.filter = self.default_filter
            self.applied_filters = []
            return await self.fetch()
        return await self.settings.filter.reset()

    async def reload(self) -> Page | None:
        """Fetch the current page again."""
        return await self.fetch()

    def open_filter(self) -> None:
        if self.settings is None or self.settings.filter is None:
            return
        self.filter_showing = True

    def close_filter(self) -> None:
        if self.settings is None or self.settings.filter is None:
            return
        self.filter_showing = False

    def get_buttons(self, record: Any) -> list[TableButton]:
        if self.settings is None or self.settings.get_buttons is None:
            return []
        return self.settings.get_buttons(record)

    def button_clicked(self, button: TableButton, record: Any) -> Any:
        return button.on_click(record)

    def cell_clicked(self, column: ColumnDef, record: Any) -> None:
        if column.on_click is not None:
            column.on_click(record)

    def render_row(self, record: Any) -> list[str]:
        """Cell text of *record* for every column, in column order."""
        return [render_cell(column, record) for column in self.columns]

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    async def fetch(self) -> Page | None:
        """Request the current page from the data source and apply it.

        Returns:
            The page, or ``None`` when a newer fetch superseded this one
            while it was in flight (whether it succeeded or failed).

        Raises:
            Whatever the data source raises for the latest fetch (typically
            :class:`~reflex_paged_grid.data_source.FetchError`).
        """
        settings = self._require_settings()
        if not self.page_size:
            self.page_size = self.config.default_page_size

        self._fetch_generation += 1
        generation = self._fetch_generation
        self.loading = True
        t0 = time.perf_counter()
        try:
            page = await settings.data_source.get_page(
                self.page,
                self.page_size,
                self.sort_property_name,
                self.sort_order,
                self.filter,
            )
        except Exception as exc:
            if generation != self._fetch_generation:
                if self.config.debug_log:
                    print(f"[PagedGrid] dropped stale fetch #{generation} failure: {exc!r}")
                return None
            raise
        else:
            if generation != self._fetch_generation:
                if self.config.debug_log:
                    print(f"[PagedGrid] dropped stale fetch #{generation} (latest #{self._fetch_generation})")
                return None
            self._apply_page(settings, page)
        finally:
            if generation == self._fetch_generation:
                self.loading = False

        if self.config.debug_log:
            elapsed_ms = (time.perf_counter() - t0) * 1000
            print(
                f"[PagedGrid] fetch #{generation}: page={self.page}, "
                f"size={self.page_size}, sort={self.sort_property_name or '-'} "
                f"{self.sort_order.value or '-'}, "
                f"records={self.records_from}-{self.records_to}/{self.record_count}, "
                f"elapsed={elapsed_ms:.1f}ms"
            )
        return page

    async def _load(self) -> Page | None:
        if self.settings is not None and self.settings.filter is not None:
            return await self.settings.filter.apply_filter()
        return await self.fetch()

    def _apply_page(self, settings: GridSettings, page: Page) -> None:
        self.record_count = page.total_records
        records = list(page.records)
        self.records = settings.post_fetch(records) if settings.post_fetch else records
        self.records_from, self.records_to = records_range(
            self.page, self.page_size or 1, self.record_count
        )
        self.pages = compute_page_window(self.page, page.page_count)

        for cell in self.button_cells:
            if cell.opened:
                cell.close_menu()
        if settings.get_buttons is not None:
            self.button_cells = [
                ButtonsCell(record, settings.get_buttons(record), self.menu_registry)
                for record in self.records
            ]
        else:
            self.button_cells = []

        if self.filter_showing:
            self.close_filter()

    def _require_settings(self) -> GridSettings:
        if self.settings is None:
            raise RuntimeError("GridController has no settings; call settings_changed() first")
        return self.settings
