"""Shared fixtures: an in-memory data source, column sets and an employee LazyFrame."""

import asyncio
import math
from datetime import date
from typing import Any

import polars as pl
import pytest

from reflex_paged_grid.config import GridConfig
from reflex_paged_grid.models import ColumnDef, ColumnType, Page, SortOrder

EMPLOYEES: dict[str, list[Any]] = {
    "id": list(range(1, 21)),
    "first_name": [
        "Alice", "Bob", "Charlie", "Diana", "Eve",
        "Frank", "Grace", "Hank", "Ivy", "Jack",
        "Karen", "Leo", "Mona", "Nick", "Olivia",
        "Paul", "Quinn", "Rita", "Sam", "Tina",
    ],
    "last_name": [
        "Smith", "Johnson", "Williams", "Brown", "Jones",
        "Garcia", "Miller", "Davis", "Rodriguez", "Martinez",
        "Hernandez", "Lopez", "Gonzalez", "Wilson", "Anderson",
        "Thomas", "Taylor", "Moore", "Jackson", "Martin",
    ],
    "department": [
        "Engineering", "Marketing", "Engineering", "Sales", "Engineering",
        "Marketing", "Sales", "Engineering", "Marketing", "Sales",
        "Engineering", "Marketing", "Sales", "Engineering", "Marketing",
        "Sales", "Engineering", "Marketing", "Sales", "Engineering",
    ],
    "salary": [
        95000, 72000, 110000, 68000, 125000,
        71000, 82000, 98000, 67000, 78000,
        105000, 69000, 74000, 115000, 73000,
        80000, 99000, 70000, 76000, 108000,
    ],
    "hired": [date(2015 + i % 9, 1 + i % 12, 1 + i) for i in range(20)],
}


class FakeDataSource:
    """In-memory data source that records every request.

    With ``hold=True`` each request waits until its gate in ``pending`` is
    set, so tests can control the order in which responses arrive.
    """

    def __init__(
        self,
        records: list[dict[str, Any]] | None = None,
        *,
        hold: bool = False,
        fail_with: Exception | None = None,
    ) -> None:
        self.records = records if records is not None else []
        self.hold = hold
        self.fail_with = fail_with
        self.calls: list[dict[str, Any]] = []
        self.pending: list[asyncio.Event] = []

    async def get_page(
        self,
        page: int,
        page_size: int,
        sort_property_name: str,
        sort_order: SortOrder,
        filter: Any,
    ) -> Page:
        self.calls.append(
            {
                "page": page,
                "page_size": page_size,
                "sort_property_name": sort_property_name,
                "sort_order": sort_order,
                "filter": filter,
            }
        )
        if self.hold:
            gate = asyncio.Event()
            self.pending.append(gate)
            await gate.wait()
        if self.fail_with is not None:
            raise self.fail_with

        records = list(self.records)
        if sort_property_name and sort_order is not SortOrder.NOT_SPECIFIED:
            records.sort(
                key=lambda r: r[sort_property_name],
                reverse=sort_order is SortOrder.DESCENDING,
            )
        offset = (page - 1) * page_size
        return Page(
            total_records=len(records),
            records=records[offset:offset + page_size],
            page_count=math.ceil(len(records) / page_size),
            current_page=page,
        )


def employee_records() -> list[dict[str, Any]]:
    return [dict(zip(EMPLOYEES, values)) for values in zip(*EMPLOYEES.values())]


def employee_columns() -> list[ColumnDef]:
    return [
        ColumnDef("id", type=ColumnType.INTEGER),
        ColumnDef("last_name"),
        ColumnDef("first_name"),
        ColumnDef("department"),
        ColumnDef("salary", type=ColumnType.CURRENCY),
        ColumnDef("hired", type=ColumnType.DATE),
    ]


@pytest.fixture
def records() -> list[dict[str, Any]]:
    return employee_records()


@pytest.fixture
def columns() -> list[ColumnDef]:
    return employee_columns()


@pytest.fixture
def source(records) -> FakeDataSource:
    return FakeDataSource(records)


@pytest.fixture
def config() -> GridConfig:
    """A fresh config so compiled views do not leak between tests."""
    return GridConfig(default_page_size=5)


@pytest.fixture
def employee_lf() -> pl.LazyFrame:
    return pl.LazyFrame(EMPLOYEES)
