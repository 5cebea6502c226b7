"""Filter panel lifecycle: apply, cancel, and reset over a cloneable filter model.

A grid's filter panel is a :class:`GridFilter` subclass.  It owns a
``model`` (whatever the panel edits), knows how to turn it into a query
string fragment for the data source, and describes the active facets as
removable :class:`~reflex_paged_grid.models.FilterToken` objects.

The base class keeps a deep copy of the model as it was when the filter was
last applied, so cancelling the panel throws away unapplied edits.

:class:`FilterModelFilter` is a ready-made panel over an items-based filter
model::

    {
        "items": [
            {"field": "department", "operator": "equals", "value": "Sales"},
            {"field": "salary",     "operator": ">",      "value": 70000},
        ],
        "logicOperator": "and"   # or "or"
    }
"""

import copy
import inspect
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Iterable
from typing import Any, Protocol
from urllib.parse import parse_qsl, urlencode

from reflex_paged_grid.models import ColumnDef, ColumnType, FilterToken


class FilterHost(Protocol):
    """The narrow view of a grid that a filter panel is allowed to use."""

    async def apply_filter(self, filter: Any, applied_filters: list[FilterToken] | None) -> Any:
        ...

    def close_filter(self) -> None:
        ...


class GridFilter(ABC):
    """Base class for a grid's filter panel.

    Subclasses must set ``self.model`` and implement
    :attr:`filter_as_query_string`, :attr:`applied_filters` and
    :meth:`clear_filter`.  Bind the panel's Apply, Cancel and Reset actions
    to :meth:`apply_filter`, :meth:`cancel` and :meth:`reset`.

    Attributes:
        container: Opaque UI handle for the panel, for the rendering surface.
        model: The data the panel edits.  Must be deep-copyable.
        last_applied_state: Deep copy of ``model`` taken by the most recent
            :meth:`apply_filter`.
    """

    container: Any = None
    model: Any

    def __init__(self) -> None:
        self._host: FilterHost | None = None
        self.last_applied_state: Any = None
        self._has_applied_state = False

    def attach(self, host: FilterHost) -> None:
        """Connect this panel to the grid it filters."""
        self._host = host

    @property
    def host(self) -> FilterHost:
        if self._host is None:
            raise RuntimeError(f"{type(self).__name__} is not attached to a grid")
        return self._host

    @property
    @abstractmethod
    def filter_as_query_string(self) -> str:
        """The filter as a fragment appended to the paging/sorting query."""

    @property
    @abstractmethod
    def applied_filters(self) -> list[FilterToken]:
        """Fresh tokens describing the facets of the current model."""

    @abstractmethod
    async def clear_filter(self) -> None:
        """Reset ``model`` to its default (unfiltered) state."""

    async def apply_filter(self) -> Any:
        """Apply the current model to the grid.

        Wraps each token's ``remove`` so removing a facet re-applies what is
        left, and hands the query fragment and tokens to the grid (which goes
        back to page 1 and fetches).  The model is snapshotted only once the
        grid has accepted it; if the fetch raises, :meth:`cancel` still
        restores the filter the grid is actually showing.
        """
        host = self.host
        snapshot = copy.deepcopy(self.model)

        applied_filters = self.applied_filters
        for token in applied_filters:
            token.remove = self._reapplying(token.remove)

        result = await host.apply_filter(self.filter_as_query_string, applied_filters)
        self.last_applied_state = snapshot
        self._has_applied_state = True
        return result

    def cancel(self) -> None:
        """Discard unapplied edits and close the panel without fetching."""
        if self._has_applied_state:
            self.model = copy.deepcopy(self.last_applied_state)
        self.host.close_filter()

    async def reset(self) -> Any:
        """Clear the filter to its default state and apply it."""
        await self.clear_filter()
        return await self.apply_filter()

    def _reapplying(
        self,
        remove: Callable[[], Awaitable[Any] | None],
    ) -> Callable[[], Awaitable[Any]]:
        async def remove_and_apply() -> Any:
            result = remove()
            if inspect.isawaitable(result):
                await result
            return await self.apply_filter()

        return remove_and_apply


# ---------------------------------------------------------------------------
# Items-based filter model
# ---------------------------------------------------------------------------

_VALUELESS_OPERATORS: frozenset[str] = frozenset({"isEmpty", "isNotEmpty"})

# operator -> query key suffix ("" means plain ``field=value``), one suffix per
# operator so a parsed fragment yields the operator it was built from.
_OPERATOR_SUFFIXES: dict[str, str] = {
    "equals": "",
    "=": "eq",
    "is": "is",
    "not": "not",
    "!=": "ne",
    "contains": "contains",
    "startsWith": "startswith",
    "endsWith": "endswith",
    "isEmpty": "isempty",
    "isNotEmpty": "isnotempty",
    "isAnyOf": "in",
    ">": "gt",
    ">=": "gte",
    "<": "lt",
    "<=": "lte",
}

_SUFFIX_OPERATORS: dict[str, str] = {
    "eq": "=",
    "is": "is",
    "not": "not",
    "ne": "!=",
    "contains": "contains",
    "startswith": "startsWith",
    "endswith": "endsWith",
    "isempty": "isEmpty",
    "isnotempty": "isNotEmpty",
    "in": "isAnyOf",
    "gt": ">",
    "gte": ">=",
    "lt": "<",
    "lte": "<=",
}

_OPERATOR_LABELS: dict[str, str] = {
    "equals": "=",
    "is": "=",
    "not": "≠",
    "!=": "≠",
    "startsWith": "starts with",
    "endsWith": "ends with",
    "isEmpty": "is empty",
    "isNotEmpty": "is not empty",
    "isAnyOf": "is any of",
}

_LOGIC_PARAMETER_NAME: str = "logicOperator"

# Operators offered in a filter panel, by column type.
_TEXT_OPERATORS: tuple[str, ...] = (
    "contains", "equals", "!=", "startsWith", "endsWith", "isEmpty", "isNotEmpty",
)
_COMPARISON_OPERATORS: tuple[str, ...] = (
    "=", "!=", ">", ">=", "<", "<=", "isEmpty", "isNotEmpty",
)

# Equality and value-list operators work on every column type.
_ANY_TYPE_OPERATORS: frozenset[str] = frozenset(
    {"equals", "=", "!=", "is", "not", "isAnyOf", "isEmpty", "isNotEmpty"}
)

ALL_OPERATORS: tuple[str, ...] = tuple(_OPERATOR_SUFFIXES)


def operators_for(column_type: ColumnType) -> tuple[str, ...]:
    """Operators a filter panel should offer for a column of *column_type*."""
    if column_type is ColumnType.TEXT:
        return _TEXT_OPERATORS
    return _COMPARISON_OPERATORS


def accepts_operator(column_type: ColumnType, operator: str) -> bool:
    """Whether *operator* can be applied to a column of *column_type*."""
    return operator in _ANY_TYPE_OPERATORS or operator in operators_for(column_type)


def empty_filter_model() -> dict[str, Any]:
    return {"items": [], "logicOperator": "and"}


def merge_filter_model(
    existing: dict[str, Any],
    incoming: dict[str, Any],
) -> dict[str, Any]:
    """Merge an incoming filter model into an accumulated one, keyed by ``field``.

    * Incoming item **has a value** (or a valueless operator such as
      ``isEmpty``) -> upsert for that field.
    * Incoming item **has no value** and the field already has a filter ->
      keep the existing filter, adopting a changed operator.
    * Incoming item **has no value** and the field is new -> ignore.
    * Incoming items list is **empty** -> clear everything.

    Returns:
        The merged filter model, or ``{}`` if no filters remain.
    """
    incoming_items: list[dict[str, Any]] = incoming.get("items", [])
    logic: str = incoming.get("logicOperator", "and")

    if not incoming_items:
        return {}

    existing_items: list[dict[str, Any]] = existing.get("items", []) if existing else []
    by_field: dict[str, dict[str, Any]] = {}
    for item in existing_items:
        field = item.get("field")
        if field:
            by_field[field] = item

    for item in incoming_items:
        field = item.get("field")
        if not field:
            continue

        operator = item.get("operator", "")
        has_value = item.get("value") is not None or operator in _VALUELESS_OPERATORS

        if has_value:
            by_field[field] = item
        elif field in by_field:
            existing_op = by_field[field].get("operator", "")
            if operator and operator != existing_op:
                by_field[field] = {**by_field[field], "operator": operator}

    merged_items = list(by_field.values())
    if not merged_items:
        return {}

    return {
        "items": merged_items,
        "logicOperator": logic,
    }


def _is_serialisable(item: dict[str, Any]) -> bool:
    """Whether *item* contributes a pair to the query fragment."""
    operator = item.get("operator") or "equals"
    if not item.get("field") or operator not in _OPERATOR_SUFFIXES:
        return False
    return operator in _VALUELESS_OPERATORS or item.get("value") is not None


def filter_model_to_query_string(filter_model: dict[str, Any]) -> str:
    """Serialise a filter model as ``field__op=value`` query pairs.

    ``equals`` uses a plain ``field=value`` pair, ``isAnyOf`` values are
    comma-joined, and an ``or`` logic operator adds ``logicOperator=or``.
    Items without a field, with an unknown operator, or without a value for
    an operator that needs one, are skipped.
    """
    pairs: list[tuple[str, str]] = []
    for item in filter_model.get("items", []) if filter_model else []:
        if not _is_serialisable(item):
            continue
        operator = item.get("operator") or "equals"
        suffix = _OPERATOR_SUFFIXES[operator]
        value = item.get("value")
        if operator in _VALUELESS_OPERATORS:
            value = ""
        elif isinstance(value, (list, tuple)):
            value = ",".join(str(v) for v in value)
        key = f"{item['field']}__{suffix}" if suffix else item["field"]
        pairs.append((key, str(value)))

    if pairs and filter_model.get("logicOperator", "and").lower() == "or":
        pairs.append((_LOGIC_PARAMETER_NAME, "or"))
    return urlencode(pairs)


def parse_filter_query_string(query: str) -> dict[str, Any]:
    """Parse a fragment produced by :func:`filter_model_to_query_string`.

    Returns:
        A filter model dict (``{"items": [], ...}`` for an empty fragment).
    """
    items: list[dict[str, Any]] = []
    logic = "and"
    for key, value in parse_qsl(query.lstrip("?&"), keep_blank_values=True):
        if key == _LOGIC_PARAMETER_NAME:
            logic = value.lower() or "and"
            continue
        field, _, suffix = key.rpartition("__")
        operator = _SUFFIX_OPERATORS.get(suffix) if field else None
        if operator is None:
            field, operator = key, "equals"

        item: dict[str, Any] = {"field": field, "operator": operator}
        if operator == "isAnyOf":
            item["value"] = [v for v in value.split(",") if v]
        elif operator not in _VALUELESS_OPERATORS:
            item["value"] = value
        items.append(item)
    return {"items": items, "logicOperator": logic}


def describe_filter_item(item: dict[str, Any], header_name: str | None = None) -> str:
    """Human-readable text for one filter item, e.g. ``"Salary > 70000"``."""
    field = item.get("field", "?")
    operator = item.get("operator") or "equals"
    label = _OPERATOR_LABELS.get(operator, operator)
    subject = header_name or field
    if operator in _VALUELESS_OPERATORS:
        return f"{subject} {label}"
    value = item.get("value")
    if isinstance(value, (list, tuple)):
        value = ", ".join(str(v) for v in value)
    return f"{subject} {label} {value}"


class FilterModelFilter(GridFilter):
    """Filter panel backed by an items-based filter model.

    Args:
        columns: Grid columns, used to label tokens with header names and to
            restrict each field to the operators its column type supports.
        model: Initial filter model.  Defaults to no filter.
        container: Opaque UI handle for the rendering surface.

    Raises:
        ValueError: If *model* uses an operator its column cannot take.
    """

    def __init__(
        self,
        columns: Iterable[ColumnDef] | None = None,
        model: dict[str, Any] | None = None,
        container: Any = None,
    ) -> None:
        super().__init__()
        self.container = container
        columns = list(columns or [])
        self._header_names: dict[str, str] = {c.property_name: c.header_name for c in columns}
        self._column_types: dict[str, ColumnType] = {c.property_name: c.type for c in columns}
        self.model: dict[str, Any] = model if model is not None else empty_filter_model()
        for item in self.model.get("items", []):
            self._check_operator(item)

    @property
    def filter_as_query_string(self) -> str:
        return filter_model_to_query_string(self.model)

    @property
    def applied_filters(self) -> list[FilterToken]:
        tokens: list[FilterToken] = []
        for item in self.model.get("items", []):
            if not _is_serialisable(item):
                continue
            field = item["field"]
            tokens.append(
                FilterToken(
                    description=describe_filter_item(item, self._header_names.get(field)),
                    remove=self._remover(field),
                )
            )
        return tokens

    async def clear_filter(self) -> None:
        self.model = empty_filter_model()

    def operators_for_field(self, field: str) -> tuple[str, ...]:
        """Operators to offer for *field*; every operator for an unknown field."""
        column_type = self._column_types.get(field)
        if column_type is None:
            return ALL_OPERATORS
        return operators_for(column_type)

    def set_item(self, item: dict[str, Any]) -> None:
        """Add or update the filter item for ``item["field"]`` (not applied yet).

        Raises:
            ValueError: If the item's operator does not apply to its column.
        """
        self._check_operator(item)
        logic = self.model.get("logicOperator", "and")
        merged = merge_filter_model(self.model, {"items": [item], "logicOperator": logic})
        self.model = merged or {"items": [], "logicOperator": logic}

    def set_logic_operator(self, logic: str) -> None:
        self.model = {**self.model, "logicOperator": logic}

    def remove_item(self, field: str) -> None:
        """Drop the filter item for *field* from the model (not applied yet)."""
        self.model = {
            **self.model,
            "items": [i for i in self.model.get("items", []) if i.get("field") != field],
        }

    def _remover(self, field: str) -> Callable[[], None]:
        return lambda: self.remove_item(field)

    def _check_operator(self, item: dict[str, Any]) -> None:
        field = item.get("field")
        operator = item.get("operator") or "equals"
        column_type = self._column_types.get(field) if field else None
        if column_type is not None and not accepts_operator(column_type, operator):
            header = self._header_names.get(field, field)
            raise ValueError(f"Operator {operator!r} cannot filter {column_type.value} column {header!r}")
