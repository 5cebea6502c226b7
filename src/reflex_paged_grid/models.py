"""Column definitions, page envelopes, and the small value types the grid passes around."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from reflex_paged_grid.formatters import DataFormatter
    from reflex_paged_grid.views import CellView


class ColumnType(str, Enum):
    """How a column's values are formatted and which cell view renders them."""

    TEXT = "text"
    NUMBER = "number"
    INTEGER = "integer"
    CURRENCY = "currency"
    DATE = "date"
    DATE_TIME = "dateTime"
    TIME = "time"


class SortOrder(str, Enum):
    """Sort direction of a column.  ``NOT_SPECIFIED`` means unsorted."""

    NOT_SPECIFIED = ""
    ASCENDING = "asc"
    DESCENDING = "desc"


def _humanize_field_name(field_name: str) -> str:
    """Convert a snake_case or dotted property name to a header.

    Examples:
        ``"first_name"`` -> ``"First Name"``
        ``"address.city"`` -> ``"Address City"``
    """
    return field_name.strip("_").replace(".", " ").replace("_", " ").title()


class ColumnDef:
    """One column of a paged grid.

    Static metadata (property path, type, header) is set by the caller;
    ``sort_order``, ``template_name``, ``data_formatter`` and ``view`` are
    mutated by the :class:`~reflex_paged_grid.grid.GridController` that owns
    the column.

    Attributes:
        property_name: Dot path into a record, e.g. ``"address.city"``.
        header_name: Header text.  Defaults to the humanized property name.
        sort_property_name: Sort key sent to the data source instead of
            *property_name*.
        disable_sort: Column headers with this flag never change the sort.
        type: Column type (drives the default template and formatter).
        sort_order: Current sort direction.
        template_name: Name of the cell view registered with the config.
        data_formatter: Turns a raw value into display text.
        on_click: Called with the record when a cell of this column is
            clicked.
        description: Optional header subtitle / tooltip text.
    """

    def __init__(
        self,
        property_name: str,
        *,
        header_name: str | None = None,
        sort_property_name: str | None = None,
        disable_sort: bool = False,
        type: ColumnType = ColumnType.TEXT,
        sort_order: SortOrder = SortOrder.NOT_SPECIFIED,
        template_name: str | None = None,
        data_formatter: "DataFormatter | None" = None,
        on_click: Callable[[Any], None] | None = None,
        description: str | None = None,
    ) -> None:
        self.property_name = property_name
        self.header_name = header_name or _humanize_field_name(property_name)
        self.sort_property_name = sort_property_name
        self.disable_sort = disable_sort
        self.type = type
        self.sort_order = sort_order
        self.template_name = template_name
        self.data_formatter = data_formatter
        self.on_click = on_click
        self.description = description
        self.view: "CellView | None" = None

    def __repr__(self) -> str:
        return (
            f"ColumnDef({self.property_name!r}, type={self.type.name}, "
            f"sort_order={self.sort_order.name})"
        )


@dataclass
class Page:
    """One page of results returned by a data source."""

    total_records: int
    records: list[Any]
    page_count: int
    current_page: int | None = None


@dataclass(frozen=True)
class PageLink:
    """A single pagination control: a numbered page or a first/prev/next/last jump."""

    is_current: bool
    label: str
    target_page: int


@dataclass
class FilterToken:
    """A removable, user-visible description of one active filter facet.

    Tokens handed to the grid by a
    :class:`~reflex_paged_grid.filters.GridFilter` have their ``remove``
    wrapped so that calling it returns an awaitable which re-applies the
    remaining filter.
    """

    description: str
    remove: Callable[[], Awaitable[Any] | None] = field(repr=False)
