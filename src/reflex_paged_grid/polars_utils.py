"""Utilities for serving paged grid queries from polars LazyFrames."""

from datetime import date, datetime, time
from typing import Any

import polars as pl

from reflex_paged_grid.models import ColumnDef, ColumnType, SortOrder


def polars_dtype_to_column_type(dtype: pl.DataType | None) -> ColumnType:
    """Map a polars DataType to the closest grid column type.

    Args:
        dtype: A polars data type.

    Returns:
        ``INTEGER`` for integer types, ``NUMBER`` for other numeric types,
        ``DATE`` / ``DATE_TIME`` / ``TIME`` for temporal types, ``TEXT`` for
        everything else (String, Boolean, Categorical, List, Struct, ...).
    """
    if dtype is None or isinstance(dtype, pl.Boolean):
        return ColumnType.TEXT
    if dtype.is_integer():
        return ColumnType.INTEGER
    if dtype.is_numeric():
        return ColumnType.NUMBER
    if isinstance(dtype, pl.Datetime):
        return ColumnType.DATE_TIME
    if isinstance(dtype, pl.Date):
        return ColumnType.DATE
    if isinstance(dtype, pl.Time):
        return ColumnType.TIME
    return ColumnType.TEXT


def _is_categorical_dtype(dtype: pl.DataType) -> bool:
    """Return True if the dtype is explicitly categorical (Categorical or Enum)."""
    return isinstance(dtype, (pl.Categorical, pl.Enum))


def column_expr(path: str) -> pl.Expr:
    """Return a column expression for a dot path, walking into struct fields.

    ``"address.city"`` -> ``pl.col("address").struct.field("city")``
    """
    parts = path.split(".")
    expr = pl.col(parts[0])
    for part in parts[1:]:
        expr = expr.struct.field(part)
    return expr


def resolve_dtype(schema: pl.Schema, path: str) -> pl.DataType | None:
    """Return the dtype at a dot path, or ``None`` if the path does not exist."""
    parts = path.split(".")
    dtype = schema.get(parts[0])
    for part in parts[1:]:
        if not isinstance(dtype, pl.Struct):
            return None
        dtype = next((f.dtype for f in dtype.fields if f.name == part), None)
    return dtype


def _col_to_str_expr(col: pl.Expr, dtype: pl.DataType) -> pl.Expr:
    """Convert a column expression to a String, handling List/Array types.

    * ``List(T)`` / ``Array(T, n)`` -> cast inner to String, then ``list.join(",")``
    * Everything else -> ``cast(pl.String)``
    """
    if isinstance(dtype, (pl.List, pl.Array)):
        return col.cast(pl.List(pl.String)).list.join(",")
    return col.cast(pl.String)


def build_column_defs_from_schema(
    schema: pl.Schema,
    *,
    column_descriptions: dict[str, str] | None = None,
    exclude: set[str] | None = None,
) -> list[ColumnDef]:
    """Build one :class:`ColumnDef` per schema column, without collecting data.

    Args:
        schema: A polars ``Schema`` (e.g. ``lf.collect_schema()``).
        column_descriptions: Optional ``{column: description}`` mapping for
            header subtitles.
        exclude: Column names to leave out.

    Returns:
        Column definitions in schema order.  ``List``/``Struct`` columns get
        ``disable_sort`` since polars cannot order them meaningfully.
    """
    descriptions = column_descriptions or {}
    exclude = exclude or set()

    column_defs: list[ColumnDef] = []
    for col_name, dtype in schema.items():
        if col_name in exclude:
            continue
        column_defs.append(
            ColumnDef(
                col_name,
                type=polars_dtype_to_column_type(dtype),
                disable_sort=isinstance(dtype, (pl.List, pl.Array, pl.Struct)),
                description=descriptions.get(col_name),
            )
        )
    return column_defs


# ---------------------------------------------------------------------------
# Server-side filtering
# ---------------------------------------------------------------------------

def _build_filter_expr(
    item: dict[str, Any],
    schema: pl.Schema,
) -> pl.Expr | None:
    """Translate a single filter item to a Polars expression.

    Args:
        item: A filter item dict, e.g.
            ``{"field": "age", "operator": ">", "value": 30}``.
        schema: The LazyFrame schema, used to determine column types.

    Returns:
        A polars expression, or ``None`` if the item cannot be translated
        (e.g. unknown operator or missing field).
    """
    field: str | None = item.get("field")
    operator: str | None = item.get("operator")
    value: Any = item.get("value")

    if field is None or operator is None:
        return None
    dtype = resolve_dtype(schema, field)
    if dtype is None:
        return None

    col = column_expr(field)
    str_col = _col_to_str_expr(col, dtype)

    # -- operators that don't need a value --
    if operator == "isEmpty":
        return col.is_null() | (str_col == "")
    if operator == "isNotEmpty":
        return col.is_not_null() & (str_col != "")

    # Remaining operators require a value.
    if value is None:
        return None

    # -- value-list operators (any type, compared as text) --
    if operator == "is":
        return str_col == str(value)
    if operator == "not":
        return str_col != str(value)
    if operator == "isAnyOf":
        if not isinstance(value, list):
            return None
        return str_col.is_in([str(v) for v in value])

    # -- text operators (strings, categoricals, booleans, lists) --
    if (
        isinstance(dtype, (pl.String, pl.Boolean, pl.List, pl.Array))
        or _is_categorical_dtype(dtype)
    ):
        str_value = str(value)
        if isinstance(dtype, pl.Boolean):
            str_value = str_value.strip().lower()
        if operator == "contains":
            return str_col.str.contains(str_value, literal=True)
        if operator in ("=", "equals"):
            return str_col == str_value
        if operator == "!=":
            return str_col != str_value
        if operator == "startsWith":
            return str_col.str.starts_with(str_value)
        if operator == "endsWith":
            return str_col.str.ends_with(str_value)
        return None

    # -- numeric and temporal comparisons --
    if dtype.is_numeric():
        cmp_value = _coerce_numeric(value)
    elif dtype.is_temporal():
        cmp_value = _coerce_temporal(value, dtype)
    else:
        return None
    if cmp_value is None:
        return None
    if operator in ("=", "equals"):
        return col == cmp_value
    if operator == "!=":
        return col != cmp_value
    if operator == ">":
        return col > cmp_value
    if operator == ">=":
        return col >= cmp_value
    if operator == "<":
        return col < cmp_value
    if operator == "<=":
        return col <= cmp_value
    return None


def _coerce_temporal(value: Any, dtype: pl.DataType) -> date | datetime | time | None:
    """Parse an ISO-formatted *value* for comparison with a temporal column."""
    if isinstance(value, (date, time)):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    value = value.strip()
    try:
        if isinstance(dtype, pl.Date):
            return date.fromisoformat(value[:10])
        if isinstance(dtype, pl.Datetime):
            return datetime.fromisoformat(value)
        if isinstance(dtype, pl.Time):
            return time.fromisoformat(value)
    except ValueError:
        return None
    return None


def _coerce_numeric(value: Any) -> int | float | None:
    """Try to coerce *value* to a number."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        # Try int first, then float
        for conv in (int, float):
            try:
                return conv(value)
            except ValueError:
                continue
    return None


def apply_filter_model(
    lf: pl.LazyFrame,
    filter_model: dict[str, Any],
    schema: pl.Schema | None = None,
) -> pl.LazyFrame:
    """Apply an items-based filter model to a Polars LazyFrame -- **no collect**.

    Supported operators:

    * **String**: ``contains``, ``equals``, ``startsWith``, ``endsWith``
    * **Number**: ``=``, ``equals``, ``!=``, ``>``, ``>=``, ``<``, ``<=``
    * **Boolean**: ``equals``
    * **Any type**: ``is``, ``not``, ``isAnyOf``, ``isEmpty``, ``isNotEmpty``

    Items that cannot be translated are ignored.

    Args:
        lf: The polars LazyFrame to filter.
        filter_model: ``{"items": [...], "logicOperator": "and" | "or"}``.
        schema: Optional schema override.  If ``None``, the schema is
            obtained from ``lf.collect_schema()``.

    Returns:
        The filtered ``pl.LazyFrame``.
    """
    items: list[dict[str, Any]] = filter_model.get("items", [])
    if not items:
        return lf

    if schema is None:
        schema = lf.collect_schema()

    logic: str = filter_model.get("logicOperator", "and").lower()

    exprs: list[pl.Expr] = []
    for item in items:
        expr = _build_filter_expr(item, schema)
        if expr is not None:
            exprs.append(expr)

    if not exprs:
        return lf

    combined = exprs[0]
    for e in exprs[1:]:
        combined = combined | e if logic == "or" else combined & e

    return lf.filter(combined)


# ---------------------------------------------------------------------------
# Server-side sorting
# ---------------------------------------------------------------------------

def apply_sort(
    lf: pl.LazyFrame,
    sort_property_name: str,
    sort_order: SortOrder,
    schema: pl.Schema | None = None,
) -> pl.LazyFrame:
    """Sort a LazyFrame by one (possibly dotted) property -- **no collect**.

    Unsorted orders, empty keys and keys missing from the schema leave the
    frame untouched.  Nulls sort last in both directions.
    """
    if not sort_property_name or sort_order is SortOrder.NOT_SPECIFIED:
        return lf

    if schema is None:
        schema = lf.collect_schema()
    if resolve_dtype(schema, sort_property_name) is None:
        return lf

    return lf.sort(
        column_expr(sort_property_name),
        descending=sort_order is SortOrder.DESCENDING,
        nulls_last=True,
    )
