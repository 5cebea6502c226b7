"""Tests for the polars LazyFrame data source and the file scanner."""

from datetime import date

import polars as pl
import pytest

from reflex_paged_grid.config import GridConfig
from reflex_paged_grid.filters import FilterModelFilter, parse_filter_query_string
from reflex_paged_grid.grid import GridController, GridSettings
from reflex_paged_grid.lazyframe_source import LazyFrameDataSource, scan_file
from reflex_paged_grid.models import ColumnDef, ColumnType, SortOrder
from reflex_paged_grid.polars_utils import (
    apply_filter_model,
    apply_sort,
    build_column_defs_from_schema,
    polars_dtype_to_column_type,
)


@pytest.fixture
def lf_source(employee_lf) -> LazyFrameDataSource:
    return LazyFrameDataSource(employee_lf, debug_log=False)


@pytest.mark.asyncio
async def test_get_page_sorts_then_slices(lf_source) -> None:
    page = await lf_source.get_page(1, 3, "salary", SortOrder.DESCENDING, None)

    assert page.total_records == 20
    assert page.page_count == 7
    assert page.current_page == 1
    assert [r["first_name"] for r in page.records] == ["Eve", "Nick", "Charlie"]


@pytest.mark.asyncio
async def test_get_page_second_page_unsorted(lf_source) -> None:
    page = await lf_source.get_page(2, 5, "", SortOrder.NOT_SPECIFIED, None)
    assert [r["id"] for r in page.records] == [6, 7, 8, 9, 10]


@pytest.mark.asyncio
async def test_filter_fragment_is_understood(lf_source) -> None:
    page = await lf_source.get_page(1, 10, "salary", SortOrder.DESCENDING, "department=Sales")

    assert page.total_records == 6
    assert page.page_count == 1
    assert [r["first_name"] for r in page.records][:2] == ["Grace", "Paul"]


@pytest.mark.asyncio
async def test_filter_model_dict_is_understood(lf_source) -> None:
    model = {
        "items": [
            {"field": "salary", "operator": ">", "value": "100000"},
            {"field": "department", "operator": "equals", "value": "Sales"},
        ],
        "logicOperator": "or",
    }
    page = await lf_source.get_page(1, 20, "", SortOrder.NOT_SPECIFIED, model)
    assert page.total_records == 11


@pytest.mark.asyncio
async def test_page_past_the_end_is_empty(lf_source) -> None:
    page = await lf_source.get_page(9, 5, "", SortOrder.NOT_SPECIFIED, None)
    assert page.records == []
    assert page.total_records == 20


@pytest.mark.asyncio
async def test_invalid_arguments(lf_source) -> None:
    with pytest.raises(ValueError):
        await lf_source.get_page(0, 5, "", SortOrder.NOT_SPECIFIED, None)
    with pytest.raises(ValueError):
        await lf_source.get_page(1, 0, "", SortOrder.NOT_SPECIFIED, None)


def test_collect_page_logs_refresh(employee_lf, capsys) -> None:
    LazyFrameDataSource(employee_lf).collect_page(1, 5, "", SortOrder.NOT_SPECIFIED, None)
    out = capsys.readouterr().out
    assert "[LazyFrameSource] page refresh: offset=0, slice=5, total=20" in out


@pytest.mark.asyncio
async def test_dot_paths_address_struct_fields() -> None:
    lf = pl.LazyFrame(
        {
            "name": ["a", "b", "c"],
            "address": [{"city": "Oslo"}, {"city": "Bergen"}, {"city": "Alta"}],
        }
    )
    source = LazyFrameDataSource(lf, debug_log=False)

    page = await source.get_page(1, 10, "address.city", SortOrder.ASCENDING, "address.city__startswith=B")
    assert [r["name"] for r in page.records] == ["b"]

    page = await source.get_page(1, 10, "address.city", SortOrder.ASCENDING, None)
    assert [r["name"] for r in page.records] == ["c", "b", "a"]


def test_column_defs_from_schema(employee_lf) -> None:
    source = LazyFrameDataSource(employee_lf, {"salary": "Yearly gross"}, debug_log=False)
    columns = {c.property_name: c for c in source.column_defs()}

    assert columns["id"].type is ColumnType.INTEGER
    assert columns["hired"].type is ColumnType.DATE
    assert columns["first_name"].type is ColumnType.TEXT
    assert columns["first_name"].header_name == "First Name"
    assert columns["salary"].description == "Yearly gross"


def test_nested_columns_are_not_sortable() -> None:
    schema = pl.Schema({"tags": pl.List(pl.String), "n": pl.Float64, "ok": pl.Boolean})
    columns = build_column_defs_from_schema(schema, exclude={"ok"})

    assert [c.property_name for c in columns] == ["tags", "n"]
    assert columns[0].disable_sort is True
    assert columns[1].type is ColumnType.NUMBER


def test_dtype_mapping() -> None:
    assert polars_dtype_to_column_type(pl.Int32()) is ColumnType.INTEGER
    assert polars_dtype_to_column_type(pl.Float32()) is ColumnType.NUMBER
    assert polars_dtype_to_column_type(pl.Datetime()) is ColumnType.DATE_TIME
    assert polars_dtype_to_column_type(pl.Time()) is ColumnType.TIME
    assert polars_dtype_to_column_type(pl.Boolean()) is ColumnType.TEXT
    assert polars_dtype_to_column_type(None) is ColumnType.TEXT


def test_apply_filter_model_operators(employee_lf) -> None:
    def count(*items: dict) -> int:
        return apply_filter_model(employee_lf, {"items": list(items)}).select(pl.len()).collect().item()

    assert count({"field": "first_name", "operator": "contains", "value": "an"}) == 3
    assert count({"field": "department", "operator": "isAnyOf", "value": ["Sales", "Marketing"]}) == 12
    assert count({"field": "salary", "operator": "<=", "value": 70000}) == 4
    assert count({"field": "salary", "operator": ">", "value": "not a number"}) == 20
    assert count({"field": "unknown", "operator": "equals", "value": "x"}) == 20


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("operator", "expected"),
    [("!=", [1.5, 3.0]), ("=", [2.0]), (">=", [2.0, 3.0])],
)
async def test_panel_comparisons_on_float_column(operator, expected) -> None:
    source = LazyFrameDataSource(pl.LazyFrame({"price": [1.5, 2.0, 3.0]}), debug_log=False)
    columns = [ColumnDef("price", type=ColumnType.NUMBER)]
    panel = FilterModelFilter(columns)
    controller = GridController(config=GridConfig(default_page_size=10))
    await controller.settings_changed(GridSettings(columns, source, filter=panel))

    panel.set_item({"field": "price", "operator": operator, "value": "2"})
    await panel.apply_filter()

    assert [r["price"] for r in controller.records] == expected
    assert controller.record_count == len(expected)


def test_comparison_operators_survive_the_fragment() -> None:
    panel = FilterModelFilter(
        [ColumnDef("price", type=ColumnType.NUMBER)],
        model={
            "items": [
                {"field": "price", "operator": "!=", "value": "2"},
                {"field": "qty", "operator": "=", "value": "4"},
            ],
            "logicOperator": "and",
        },
    )

    assert panel.filter_as_query_string == "price__ne=2&qty__eq=4"
    parsed = parse_filter_query_string(panel.filter_as_query_string)
    assert [(i["field"], i["operator"]) for i in parsed["items"]] == [("price", "!="), ("qty", "=")]


@pytest.mark.asyncio
async def test_date_and_text_comparisons(employee_lf) -> None:
    source = LazyFrameDataSource(employee_lf, debug_log=False)

    page = await source.get_page(1, 20, "", SortOrder.NOT_SPECIFIED, "hired__lt=2016-01-01")
    assert [r["first_name"] for r in page.records] == ["Alice", "Jack", "Sam"]

    page = await source.get_page(1, 20, "", SortOrder.NOT_SPECIFIED, "hired__eq=2015-01-01")
    assert [r["first_name"] for r in page.records] == ["Alice"]

    page = await source.get_page(1, 20, "", SortOrder.NOT_SPECIFIED, "department__ne=Engineering")
    assert page.total_records == 12


def test_apply_sort_ignores_missing_keys(employee_lf) -> None:
    assert apply_sort(employee_lf, "nope", SortOrder.ASCENDING) is employee_lf
    assert apply_sort(employee_lf, "salary", SortOrder.NOT_SPECIFIED) is employee_lf


def test_scan_file_csv(tmp_path, employee_lf) -> None:
    path = tmp_path / "people.csv"
    employee_lf.collect().write_csv(path)

    lf = scan_file(path)

    schema = lf.collect_schema()
    assert schema["hired"] == pl.Date
    assert lf.select(pl.len()).collect().item() == 20
    assert lf.collect()["hired"][0] == date(2015, 1, 1)


def test_scan_file_errors(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        scan_file(tmp_path / "missing.csv")

    path = tmp_path / "data.xlsx"
    path.write_text("")
    with pytest.raises(ValueError, match="Unsupported file extension"):
        scan_file(path)
