"""Tests for the grid compiler and cell formatting."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from metacrud.core.catalog import MetadataCatalog
from metacrud.core.ir import FieldDescriptor, FieldKind
from metacrud_ui.converters import compile_grid, format_cell, truncate


class TestCompileGrid:
    def test_columns_follow_order_without_hidden(self, catalog: MetadataCatalog) -> None:
        grid = compile_grid(catalog.describe("Activity"))

        assert grid.keys()[:4] == ["name", "description", "project", "assigned_to"]
        assert "internal_code" not in grid.keys()
        assert grid.headers()[0] == "Activity Name"

    def test_row_formats_every_column(self, catalog: MetadataCatalog) -> None:
        from metacrud.domain import Activity, Project

        activity = Activity(
            id=1,
            name="Plan",
            project=Project(id=2, name="Apollo"),
            due_date=date(2024, 3, 1),
            progress=40,
        )
        row = compile_grid(catalog.describe("Activity")).row(activity)

        assert row["name"] == "Plan"
        assert row["project"] == "Apollo"
        assert row["assigned_to"] == "No Assigned To"
        assert row["due_date"] == "Mar 01, 2024"
        assert row["progress"] == "40"
        assert row["created_date"] == ""

    def test_rows(self, catalog: MetadataCatalog) -> None:
        from metacrud.domain import Company

        grid = compile_grid(catalog.describe("Company"))
        rows = grid.rows([Company(id=1, name="A"), Company(id=2, name="B", enabled=False)])
        assert [r["name"] for r in rows] == ["A", "B"]
        assert [r["enabled"] for r in rows] == ["Yes", "No"]

    def test_sort_value_puts_missing_first(self, catalog: MetadataCatalog) -> None:
        from metacrud.domain import Activity

        column = compile_grid(catalog.describe("Activity")).column("due_date")
        items = [Activity(due_date=date(2024, 1, 2)), Activity(), Activity(due_date=date(2023, 1, 1))]
        ordered = sorted(items, key=column.sort_value)
        assert [a.due_date for a in ordered] == [None, date(2023, 1, 1), date(2024, 1, 2)]


class TestFormatCell:
    def test_long_text_truncated(self) -> None:
        descriptor = FieldDescriptor(field_name="description", kind=FieldKind.LONG_TEXT)
        text = "x" * 60
        cell = format_cell(descriptor, text)
        assert len(cell) == 50
        assert cell.endswith("...")

    def test_truncate_keeps_short_text(self) -> None:
        assert truncate("x" * 50) == "x" * 50

    def test_datetime(self) -> None:
        descriptor = FieldDescriptor(field_name="at", kind=FieldKind.DATETIME)
        assert format_cell(descriptor, datetime(2024, 7, 4, 14, 5)) == "Jul 04, 2024 14:05"

    def test_numbers(self) -> None:
        descriptor = FieldDescriptor(field_name="n", kind=FieldKind.NUMBER)
        assert format_cell(descriptor, Decimal("12.50")) == "12.50"
        assert format_cell(descriptor, Decimal("12.00")) == "12"
        assert format_cell(descriptor, 3.0) == "3"

    def test_multi_reference(self) -> None:
        from metacrud.domain import User

        descriptor = FieldDescriptor(
            field_name="participants",
            display_name="Participants",
            kind=FieldKind.MULTI_REFERENCE,
            ref_entity="User",
        )
        users = [User(id=1, name="Ada"), User(id=2, login="alan")]
        assert format_cell(descriptor, users) == "Ada, alan"
        assert format_cell(descriptor, []) == "No Participants"
        assert format_cell(descriptor, None) == "No Participants"

    def test_reference_without_name(self) -> None:
        from metacrud.domain import Project

        descriptor = FieldDescriptor(
            field_name="project", kind=FieldKind.REFERENCE, ref_entity="Project"
        )
        assert format_cell(descriptor, Project(id=7)) == "Project #7"
