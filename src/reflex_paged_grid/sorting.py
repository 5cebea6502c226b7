"""Single-column tri-state sorting.

Clicking a column header cycles that column through ascending, descending
and unsorted.  Clicking a different column unsorts the previous one, so at
most one column of a grid is ever sorted.
"""

from reflex_paged_grid.models import ColumnDef, SortOrder

_NEXT_SORT_ORDER: dict[SortOrder, SortOrder] = {
    SortOrder.ASCENDING: SortOrder.DESCENDING,
    SortOrder.DESCENDING: SortOrder.NOT_SPECIFIED,
    SortOrder.NOT_SPECIFIED: SortOrder.ASCENDING,
}


def get_sort_property_name(column: ColumnDef | None) -> str:
    """Return the key the data source should sort *column* by.

    Returns an empty string when there is no column or sorting is disabled
    for it; callers treat that as "not sortable".
    """
    if column is None or column.disable_sort:
        return ""
    return column.sort_property_name or column.property_name


def next_sort_order(order: SortOrder) -> SortOrder:
    """Advance *order* one step through ascending -> descending -> unsorted."""
    return _NEXT_SORT_ORDER[order]


def toggle_sort(sort_column: ColumnDef | None, column: ColumnDef) -> ColumnDef:
    """Apply a header click on *column* and return the new sort column.

    Args:
        sort_column: The column currently holding the sort, if any.
        column: The clicked column.

    Returns:
        *column*, which is now the grid's sort column.
    """
    if sort_column is column:
        column.sort_order = next_sort_order(column.sort_order)
        return column

    if sort_column is not None:
        sort_column.sort_order = SortOrder.NOT_SPECIFIED

    column.sort_order = SortOrder.ASCENDING
    return column
