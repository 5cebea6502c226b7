"""Global configuration shared by every paged grid in a process."""

import math
from typing import Any

from reflex_paged_grid.models import Page, SortOrder
from reflex_paged_grid.views import CellView, TemplateNotFound, ViewCache, compile_cell_view

_DEFAULT_PAGE_SIZE: int = 20

DEFAULT_CELL_VIEWS: dict[str, str] = {
    "default": "$data",
    "date": "$data",
    "date-time": "$data",
    "time": "$data",
}


class GridConfig:
    """Configuration options for paged grids, with sensible defaults.

    One config is normally shared by all grids of an application (see
    :data:`default_config`).  It owns the compiled cell view cache, so a
    template name is compiled once no matter how many grids use it.

    Attributes:
        default_page_size: Page size for grids that do not set one.
        page_parameter_name: Query parameter carrying the 1-based page.
        page_size_parameter_name: Query parameter carrying the page size.
        sort_on_parameter_name: Query parameter naming the sort key.
        sort_order_parameter_name: Query parameter carrying the direction.
        asc_const: Wire token for ascending order.
        desc_const: Wire token for descending order.
        debug_log: Print controller fetch timings.
        cell_views: ``{name: template string}`` of registered cell templates.
    """

    def __init__(
        self,
        *,
        default_page_size: int = _DEFAULT_PAGE_SIZE,
        page_parameter_name: str = "Page",
        page_size_parameter_name: str = "PageSize",
        sort_on_parameter_name: str = "SortOn",
        sort_order_parameter_name: str = "SortOrder",
        asc_const: str = "asc",
        desc_const: str = "desc",
        debug_log: bool = False,
        cell_views: dict[str, str] | None = None,
    ) -> None:
        if default_page_size < 1:
            raise ValueError(f"default_page_size must be >= 1, got {default_page_size}")
        self.default_page_size = default_page_size
        self.page_parameter_name = page_parameter_name
        self.page_size_parameter_name = page_size_parameter_name
        self.sort_on_parameter_name = sort_on_parameter_name
        self.sort_order_parameter_name = sort_order_parameter_name
        self.asc_const = asc_const
        self.desc_const = desc_const
        self.debug_log = debug_log
        self.cell_views: dict[str, str] = {**DEFAULT_CELL_VIEWS, **(cell_views or {})}
        self.view_cache = ViewCache()

    # ------------------------------------------------------------------
    # Cell views
    # ------------------------------------------------------------------

    def register_cell_view(self, name: str, template: str) -> None:
        """Register a cell template string under *name*.

        A name that has already been compiled keeps its compiled view.
        """
        self.cell_views[name] = template

    def get_view(self, name: str) -> CellView | None:
        """Return the compiled view for *name* if it has been compiled."""
        return self.view_cache.get(name)

    def resolve_view(self, name: str) -> CellView:
        """Return the compiled view for *name*, compiling it on first use.

        Raises:
            TemplateNotFound: If no template was registered under *name*.
        """
        view = self.view_cache.get(name)
        if view is not None:
            return view
        source = self.cell_views.get(name)
        if source is None:
            raise TemplateNotFound(name)
        return self.view_cache.get_or_compile(name, lambda: compile_cell_view(name, source))

    # ------------------------------------------------------------------
    # Wire format
    # ------------------------------------------------------------------

    def sort_order_token(self, order: SortOrder) -> str | None:
        """Return the wire token for *order*, or ``None`` when unsorted."""
        if order is SortOrder.ASCENDING:
            return self.asc_const
        if order is SortOrder.DESCENDING:
            return self.desc_const
        return None

    def get_page(self, payload: dict[str, Any], page_size: int, page: int | None = None) -> Page:
        """Parse a decoded response body into a :class:`Page`.

        The default expects::

            {
                "TotalRecords": 45,   # records matching the current filter
                "Results": [...]      # the records of this page
            }

        Override in a subclass for other response shapes.
        """
        total_records = int(payload.get("TotalRecords", 0))
        return Page(
            total_records=total_records,
            records=list(payload.get("Results") or []),
            page_count=math.ceil(total_records / page_size),
            current_page=page,
        )


default_config = GridConfig()
