"""reflex-paged-grid – paged, sortable, filterable grids for Reflex.

The grid logic (pagination window, tri-state sort, filter apply/cancel/reset,
cell views) lives in a framework-free :class:`GridController`; pages come
from any :class:`DataSource` -- a JSON API over ``httpx`` or a polars
LazyFrame in-process.  :class:`PagedGridMixin` and :func:`paged_grid` put it
on a Reflex page::

    pip install reflex-paged-grid
"""

from reflex_paged_grid.buttons import ButtonMenuRegistry, ButtonsCell, TableButton
from reflex_paged_grid.config import GridConfig, default_config
from reflex_paged_grid.data_source import DataSource, FetchError, HttpDataSource
from reflex_paged_grid.filters import (
    FilterHost,
    FilterModelFilter,
    GridFilter,
    accepts_operator,
    filter_model_to_query_string,
    merge_filter_model,
    operators_for,
    parse_filter_query_string,
)
from reflex_paged_grid.formatters import (
    CurrencyFormatter,
    DataFormatter,
    DateFormatter,
    IntegerFormatter,
    NumberFormatter,
    TextFormatter,
)
from reflex_paged_grid.grid import GridController, GridSettings
from reflex_paged_grid.lazyframe_source import LazyFrameDataSource, scan_file
from reflex_paged_grid.models import ColumnDef, ColumnType, FilterToken, Page, PageLink, SortOrder
from reflex_paged_grid.paged_grid import (
    PagedGridMixin,
    paged_grid,
    paged_grid_filter_bar,
    paged_grid_filter_panel,
    paged_grid_pagination,
    paged_grid_stats_bar,
    paged_grid_table,
)
from reflex_paged_grid.pagination import compute_page_window, records_range
from reflex_paged_grid.polars_utils import (
    apply_filter_model,
    apply_sort,
    build_column_defs_from_schema,
    polars_dtype_to_column_type,
)
from reflex_paged_grid.sorting import get_sort_property_name, next_sort_order, toggle_sort
from reflex_paged_grid.views import (
    CellView,
    TemplateCompileError,
    TemplateNotFound,
    ViewCache,
    render_cell,
)
