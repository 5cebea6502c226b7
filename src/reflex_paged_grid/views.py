"""Cell views: compiled per-column templates, their shared cache, and cell rendering.

A cell template is a short string with ``$data`` (the formatted value) and
``$property`` (the column's property name) placeholders, registered by
name on a :class:`~reflex_paged_grid.config.GridConfig`.  Each name is
compiled into a :class:`CellView` once and cached for the lifetime of the
config, so every grid sharing a config reuses the same compiled views.
"""

import threading
from collections.abc import Callable, Mapping
from string import Template
from typing import Any

from reflex_paged_grid.formatters import (
    DATE_FORMAT,
    DATE_TIME_FORMAT,
    TIME_FORMAT,
    CurrencyFormatter,
    DataFormatter,
    DateFormatter,
    IntegerFormatter,
    NumberFormatter,
    TextFormatter,
)
from reflex_paged_grid.models import ColumnDef, ColumnType, PageLink

_TEMPLATE_PLACEHOLDERS: frozenset[str] = frozenset({"data", "property"})


class TemplateNotFound(LookupError):
    """A column references a cell template name that was never registered."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f"Unable to find a cell template named {name!r}; "
            "register it with GridConfig.register_cell_view()."
        )
        self.name = name


class TemplateCompileError(ValueError):
    """A cell template string uses placeholders the grid cannot fill."""


class CellView:
    """A compiled cell template, ready to render one cell."""

    def __init__(self, name: str, template: Template) -> None:
        self.name = name
        self._template = template

    def render(self, data: str, column: ColumnDef) -> str:
        return self._template.substitute(data=data, property=column.property_name)

    def __repr__(self) -> str:
        return f"CellView({self.name!r})"


def compile_cell_view(name: str, source: str) -> CellView:
    """Compile a template string into a :class:`CellView`.

    Raises:
        TemplateCompileError: If *source* is malformed or uses a placeholder
            other than ``$data`` / ``$property``.
    """
    template = Template(source)
    if not template.is_valid():
        raise TemplateCompileError(f"Cell template {name!r} is malformed: {source!r}")
    unknown = set(template.get_identifiers()) - _TEMPLATE_PLACEHOLDERS
    if unknown:
        raise TemplateCompileError(
            f"Cell template {name!r} uses unknown placeholder(s): "
            f"{', '.join(sorted(unknown))}"
        )
    return CellView(name, template)


class ViewCache:
    """Append-only ``{template name: CellView}`` map shared across grids.

    Compilation happens at most once per name, even when several grids
    resolve the same name concurrently.
    """

    def __init__(self) -> None:
        self._views: dict[str, CellView] = {}
        self._lock = threading.Lock()

    def get(self, name: str) -> CellView | None:
        return self._views.get(name)

    def get_or_compile(self, name: str, compile: Callable[[], CellView]) -> CellView:
        """Return the cached view for *name*, compiling it on first use."""
        view = self._views.get(name)
        if view is not None:
            return view
        with self._lock:
            view = self._views.get(name)
            if view is None:
                view = compile()
                self._views[name] = view
        return view

    def __contains__(self, name: object) -> bool:
        return name in self._views

    def __len__(self) -> int:
        return len(self._views)


# ---------------------------------------------------------------------------
# Per-column defaults
# ---------------------------------------------------------------------------

def default_template_name(column_type: ColumnType) -> str:
    """Return the cell template used when a column does not name one."""
    if column_type is ColumnType.DATE:
        return "date"
    if column_type is ColumnType.DATE_TIME:
        return "date-time"
    if column_type is ColumnType.TIME:
        return "time"
    return "default"


def default_formatter(column_type: ColumnType) -> DataFormatter:
    """Return the formatter used when a column does not provide one."""
    if column_type is ColumnType.DATE:
        return DateFormatter(DATE_FORMAT)
    if column_type is ColumnType.DATE_TIME:
        return DateFormatter(DATE_TIME_FORMAT)
    if column_type is ColumnType.TIME:
        return DateFormatter(TIME_FORMAT)
    if column_type is ColumnType.CURRENCY:
        return CurrencyFormatter()
    if column_type is ColumnType.NUMBER:
        return NumberFormatter()
    if column_type is ColumnType.INTEGER:
        return IntegerFormatter()
    return TextFormatter()


_CELL_CLASS_NAMES: dict[ColumnType, str] = {
    ColumnType.CURRENCY: "currency-cell",
    ColumnType.DATE: "date-cell",
    ColumnType.DATE_TIME: "date-time-cell",
    ColumnType.NUMBER: "number-cell",
    ColumnType.TIME: "time-cell",
    ColumnType.INTEGER: "integer-cell",
}


def cell_class_name(column_type: ColumnType) -> str:
    """CSS class for cells of *column_type*."""
    return _CELL_CLASS_NAMES.get(column_type, "default-cell")


# ---------------------------------------------------------------------------
# Cell rendering
# ---------------------------------------------------------------------------

def resolve_property(record: Any, path: str) -> Any:
    """Walk a dot path (``"address.city"``) through mappings and attributes.

    Returns ``None`` as soon as a segment is missing.
    """
    value = record
    for part in path.split("."):
        if value is None:
            return None
        if isinstance(value, Mapping):
            value = value.get(part)
        else:
            value = getattr(value, part, None)
    return value


def render_cell(column: ColumnDef, record: Any) -> str:
    """Render the text of *column*'s cell for *record*.

    Falls back to :class:`TextFormatter` and the raw formatted text when the
    column has not been resolved by ``settings_changed`` yet.
    """
    value = resolve_property(record, column.property_name)
    formatter = column.data_formatter or TextFormatter()
    data = formatter.format(value, record)
    if column.view is None:
        return data
    return column.view.render(data, column)


# ---------------------------------------------------------------------------
# Plain-data projections for rendering surfaces
# ---------------------------------------------------------------------------

def column_header(column: ColumnDef) -> dict[str, Any]:
    """JSON-safe header description of *column*."""
    sortable = not column.disable_sort and bool(column.sort_property_name or column.property_name)
    return {
        "field": column.property_name,
        "header_name": column.header_name,
        "description": column.description or "",
        "type": column.type.value,
        "sortable": sortable,
        "sort": column.sort_order.value,
        "class_name": cell_class_name(column.type),
    }


def page_link_dict(link: PageLink) -> dict[str, Any]:
    return {
        "is_current": link.is_current,
        "label": link.label,
        "target_page": link.target_page,
    }
