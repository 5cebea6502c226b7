"""Tests for the grid controller: load, paging, sorting, filtering and fetch ordering."""

import asyncio

import pytest

from conftest import FakeDataSource
from reflex_paged_grid.buttons import ButtonMenuRegistry, TableButton
from reflex_paged_grid.data_source import FetchError
from reflex_paged_grid.filters import FilterModelFilter
from reflex_paged_grid.grid import GridController, GridSettings
from reflex_paged_grid.models import ColumnDef, SortOrder


async def _loaded(controller: GridController, settings: GridSettings) -> GridController:
    await controller.settings_changed(settings)
    return controller


# ---------------------------------------------------------------------------
# settings_changed
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_settings_changed_defers_the_first_load(columns, source, config) -> None:
    controller = GridController(config=config)

    task = controller.settings_changed(GridSettings(columns, source))

    assert source.calls == []
    page = await task
    assert len(source.calls) == 1
    assert page.total_records == 20
    assert controller.page_size == 5
    assert (controller.records_from, controller.records_to) == (1, 5)
    assert controller.record_count == 20
    assert controller.loading is False


def test_settings_changed_without_settings_does_nothing() -> None:
    assert GridController().settings_changed() is None


@pytest.mark.asyncio
async def test_first_sorted_column_wins(source, config) -> None:
    first = ColumnDef("last_name", sort_order=SortOrder.DESCENDING)
    second = ColumnDef("salary", sort_order=SortOrder.ASCENDING)
    controller = await _loaded(GridController(config=config), GridSettings([first, second], source))

    assert controller.sort_column is first
    assert second.sort_order is SortOrder.NOT_SPECIFIED
    assert source.calls[0]["sort_property_name"] == "last_name"
    assert source.calls[0]["sort_order"] is SortOrder.DESCENDING
    assert controller.records[0]["last_name"] == "Wilson"


@pytest.mark.asyncio
async def test_first_column_is_sort_column_when_none_sorted(columns, source, config) -> None:
    controller = await _loaded(GridController(config=config), GridSettings(columns, source))

    assert controller.sort_column is columns[0]
    assert controller.sort_order is SortOrder.NOT_SPECIFIED
    assert source.calls[0]["sort_order"] is SortOrder.NOT_SPECIFIED


@pytest.mark.asyncio
async def test_explicit_page_size_is_kept(columns, source, config) -> None:
    controller = await _loaded(GridController(config=config, page_size=7), GridSettings(columns, source))
    assert source.calls[0]["page_size"] == 7


def test_invalid_page_size_is_rejected() -> None:
    with pytest.raises(ValueError):
        GridController(page_size=0)


@pytest.mark.asyncio
async def test_render_row_uses_column_formatters(columns, source, config) -> None:
    controller = await _loaded(GridController(config=config), GridSettings(columns, source))

    assert controller.render_row(controller.records[0]) == [
        "1", "Smith", "Alice", "Engineering", "$95,000.00", "2015-01-01",
    ]


# ---------------------------------------------------------------------------
# Paging and sorting
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_goto_updates_range_and_links(columns, source, config) -> None:
    controller = await _loaded(GridController(config=config), GridSettings(columns, source))

    await controller.goto(4)

    assert source.calls[-1]["page"] == 4
    assert (controller.records_from, controller.records_to) == (16, 20)
    assert [link.label for link in controller.pages if link.is_current] == ["4"]


@pytest.mark.asyncio
async def test_goto_rejects_pages_below_one(columns, source, config) -> None:
    controller = await _loaded(GridController(config=config), GridSettings(columns, source))
    with pytest.raises(ValueError):
        await controller.goto(0)


@pytest.mark.asyncio
async def test_sort_by_cycles_and_resets_page(columns, source, config) -> None:
    controller = await _loaded(GridController(config=config), GridSettings(columns, source))
    salary = columns[4]
    await controller.goto(3)

    await controller.sort_by(salary)
    assert controller.page == 1
    assert source.calls[-1]["sort_order"] is SortOrder.ASCENDING
    assert controller.records[0]["salary"] == 67000

    await controller.sort_by(salary)
    assert source.calls[-1]["sort_order"] is SortOrder.DESCENDING
    assert controller.records[0]["salary"] == 125000

    await controller.sort_by(salary)
    assert source.calls[-1]["sort_order"] is SortOrder.NOT_SPECIFIED
    assert source.calls[-1]["sort_property_name"] == "salary"


@pytest.mark.asyncio
async def test_three_clicks_return_sorted_column_to_ascending(source, config) -> None:
    name = ColumnDef("last_name", sort_order=SortOrder.ASCENDING)
    controller = await _loaded(GridController(config=config), GridSettings([name], source))

    for _ in range(3):
        await controller.sort_by(name)

    assert name.sort_order is SortOrder.ASCENDING


@pytest.mark.asyncio
async def test_at_most_one_column_is_sorted(columns, source, config) -> None:
    controller = await _loaded(GridController(config=config), GridSettings(columns, source))

    for column in (columns[1], columns[4], columns[2], columns[4]):
        await controller.sort_by(column)
        sorted_columns = [c for c in columns if c.sort_order is not SortOrder.NOT_SPECIFIED]
        assert len(sorted_columns) <= 1


@pytest.mark.asyncio
async def test_sort_by_unsortable_column_is_ignored(source, config) -> None:
    tags = ColumnDef("tags", disable_sort=True)
    controller = await _loaded(GridController(config=config), GridSettings([ColumnDef("id"), tags], source))
    calls = len(source.calls)

    assert await controller.sort_by(tags) is None
    assert len(source.calls) == calls
    assert tags.sort_order is SortOrder.NOT_SPECIFIED


# ---------------------------------------------------------------------------
# Filtering
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_filter_panel_drives_the_first_load(columns, source, config) -> None:
    panel = FilterModelFilter(columns)
    controller = await _loaded(GridController(config=config), GridSettings(columns, source, filter=panel))

    assert panel.host is controller
    assert source.calls[0]["filter"] == ""
    assert panel.last_applied_state == {"items": [], "logicOperator": "and"}


@pytest.mark.asyncio
async def test_apply_filter_goes_back_to_page_one(columns, source, config) -> None:
    panel = FilterModelFilter(columns)
    controller = await _loaded(GridController(config=config), GridSettings(columns, source, filter=panel))
    await controller.goto(3)
    controller.open_filter()

    panel.set_item({"field": "department", "operator": "equals", "value": "Sales"})
    await panel.apply_filter()

    assert controller.page == 1
    assert source.calls[-1]["filter"] == "department=Sales"
    assert [t.description for t in controller.applied_filters] == ["Department = Sales"]
    assert controller.filter_showing is False


@pytest.mark.asyncio
async def test_removing_applied_filter_refetches_once(columns, source, config) -> None:
    panel = FilterModelFilter(columns)
    controller = await _loaded(GridController(config=config), GridSettings(columns, source, filter=panel))
    panel.set_item({"field": "department", "operator": "equals", "value": "Sales"})
    await panel.apply_filter()
    calls = len(source.calls)

    await controller.applied_filters[0].remove()

    assert len(source.calls) == calls + 1
    assert source.calls[-1]["filter"] == ""
    assert controller.applied_filters == []


@pytest.mark.asyncio
async def test_clear_filter_resets_the_panel(columns, source, config) -> None:
    panel = FilterModelFilter(columns, model={"items": [{"field": "id", "operator": ">", "value": 3}]})
    controller = await _loaded(GridController(config=config), GridSettings(columns, source, filter=panel))
    assert source.calls[0]["filter"] == "id__gt=3"

    await controller.clear_filter()

    assert panel.model["items"] == []
    assert source.calls[-1]["filter"] == ""


@pytest.mark.asyncio
async def test_clear_filter_without_panel_restores_default(columns, source, config) -> None:
    controller = await _loaded(
        GridController(config=config, default_filter="active=true"),
        GridSettings(columns, source),
    )
    await controller.apply_filter("department=Sales", None)
    assert source.calls[-1]["filter"] == "department=Sales"

    await controller.clear_filter()

    assert controller.filter == "active=true"
    assert source.calls[-1]["filter"] == "active=true"


@pytest.mark.asyncio
async def test_cancel_closes_the_panel_without_fetching(columns, source, config) -> None:
    panel = FilterModelFilter(columns)
    controller = await _loaded(GridController(config=config), GridSettings(columns, source, filter=panel))
    controller.open_filter()
    calls = len(source.calls)

    panel.set_item({"field": "department", "operator": "equals", "value": "Sales"})
    panel.cancel()

    assert controller.filter_showing is False
    assert panel.model["items"] == []
    assert len(source.calls) == calls


@pytest.mark.asyncio
async def test_cancel_after_failed_apply_restores_shown_filter(columns, source, config) -> None:
    panel = FilterModelFilter(columns)
    controller = await _loaded(GridController(config=config), GridSettings(columns, source, filter=panel))
    controller.open_filter()

    source.fail_with = FetchError("boom", status_code=500)
    panel.set_item({"field": "department", "operator": "equals", "value": "Sales"})
    with pytest.raises(FetchError):
        await panel.apply_filter()

    assert panel.last_applied_state["items"] == []
    panel.cancel()
    assert panel.model["items"] == []
    assert controller.filter_showing is False


def test_open_filter_needs_a_panel(columns, source) -> None:
    controller = GridController(GridSettings(columns, source))
    controller.open_filter()
    assert controller.filter_showing is False


# ---------------------------------------------------------------------------
# Fetch ordering and failures
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_stale_response_is_discarded(columns, records, config) -> None:
    source = FakeDataSource(records, hold=True)
    controller = GridController(GridSettings(columns, source), config=config)

    older = asyncio.create_task(controller.goto(2))
    await asyncio.sleep(0)
    newer = asyncio.create_task(controller.goto(3))
    await asyncio.sleep(0)
    assert [c["page"] for c in source.calls] == [2, 3]

    source.pending[1].set()
    assert (await newer).current_page == 3
    assert controller.loading is False

    source.pending[0].set()
    assert await older is None
    assert controller.records[0]["id"] == 11
    assert (controller.records_from, controller.records_to) == (11, 15)


@pytest.mark.asyncio
async def test_loading_stays_on_while_newest_fetch_is_pending(columns, records, config) -> None:
    source = FakeDataSource(records, hold=True)
    controller = GridController(GridSettings(columns, source), config=config)

    older = asyncio.create_task(controller.goto(2))
    await asyncio.sleep(0)
    newer = asyncio.create_task(controller.goto(3))
    await asyncio.sleep(0)

    source.pending[0].set()
    assert await older is None
    assert controller.loading is True
    assert controller.records == []

    source.pending[1].set()
    await newer
    assert controller.loading is False


@pytest.mark.asyncio
async def test_loading_is_reset_when_fetch_fails(columns, records, config) -> None:
    source = FakeDataSource(records, fail_with=FetchError("boom", status_code=500))
    controller = GridController(GridSettings(columns, source), config=config)

    with pytest.raises(FetchError):
        await controller.goto(1)

    assert controller.loading is False


@pytest.mark.asyncio
async def test_stale_failure_is_discarded(columns, records, config) -> None:
    source = FakeDataSource(records, hold=True)
    controller = GridController(GridSettings(columns, source), config=config)

    older = asyncio.create_task(controller.goto(2))
    await asyncio.sleep(0)
    newer = asyncio.create_task(controller.goto(3))
    await asyncio.sleep(0)

    source.pending[1].set()
    assert (await newer).current_page == 3

    source.fail_with = FetchError("boom", status_code=500)
    source.pending[0].set()
    assert await older is None
    assert controller.page == 3
    assert controller.records[0]["id"] == 11
    assert controller.loading is False


@pytest.mark.asyncio
async def test_fetch_without_settings_raises() -> None:
    with pytest.raises(RuntimeError):
        await GridController().reload()


@pytest.mark.asyncio
async def test_post_fetch_transforms_records(columns, source, config) -> None:
    settings = GridSettings(
        columns,
        source,
        post_fetch=lambda rows: [{**r, "last_name": r["last_name"].upper()} for r in rows],
    )
    controller = await _loaded(GridController(config=config), settings)

    assert controller.records[0]["last_name"] == "SMITH"


@pytest.mark.asyncio
async def test_debug_log_prints_fetch_line(columns, source, capsys) -> None:
    from reflex_paged_grid.config import GridConfig

    controller = GridController(config=GridConfig(debug_log=True))
    await controller.settings_changed(GridSettings(columns, source))

    assert "[PagedGrid] fetch #1: page=1, size=20" in capsys.readouterr().out


# ---------------------------------------------------------------------------
# Row buttons and cells
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_button_cells_follow_fetched_records(columns, source, config) -> None:
    clicked = []
    registry = ButtonMenuRegistry()
    settings = GridSettings(
        columns,
        source,
        get_buttons=lambda record: [TableButton("Edit", clicked.append)],
    )
    controller = await _loaded(GridController(config=config, menu_registry=registry), settings)

    assert len(controller.button_cells) == 5
    cell = controller.button_cells[0]
    cell.open_menu()
    assert registry.current is cell

    await controller.goto(2)

    assert cell.opened is False
    assert registry.current is None
    assert controller.button_cells[0].record["id"] == 6

    controller.button_cells[0].button_clicked(controller.button_cells[0].buttons[0])
    assert clicked == [controller.records[0]]


@pytest.mark.asyncio
async def test_get_buttons_and_cell_clicked(records, source, config) -> None:
    clicked = []
    name = ColumnDef("last_name", on_click=clicked.append)
    controller = GridController(GridSettings([name], source), config=config)

    assert controller.get_buttons(records[0]) == []
    controller.cell_clicked(name, records[0])
    controller.cell_clicked(ColumnDef("id"), records[1])

    assert clicked == [records[0]]
