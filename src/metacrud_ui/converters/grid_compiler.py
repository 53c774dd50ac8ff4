"""
Grid compiler - descriptors to read-only table columns.

Cell text comes from a fixed rule per field kind, so every grid formats
dates, references and long text the same way. Cells never raise on
missing values.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from metacrud.core.ir import FieldDescriptor, FieldKind, ResolvedField, display_text
from metacrud.core.validation import is_empty

from .lines import read_path, to_lines

DATE_FORMAT = "%b %d, %Y"
DATETIME_FORMAT = "%b %d, %Y %H:%M"

TRUNCATE_AT = 50
ELLIPSIS = "..."


def truncate(text: str, limit: int = TRUNCATE_AT) -> str:
    """Cut text longer than ``limit`` to ``limit`` characters ending in an ellipsis."""
    if len(text) <= limit:
        return text
    return text[: limit - len(ELLIPSIS)] + ELLIPSIS


def _placeholder(descriptor: FieldDescriptor) -> str:
    return f"No {descriptor.display_name}"


def _format_date(value: Any) -> str:
    if isinstance(value, datetime):
        return value.strftime(DATE_FORMAT)
    if isinstance(value, date):
        return value.strftime(DATE_FORMAT)
    return str(value)


def _format_datetime(value: Any) -> str:
    if isinstance(value, datetime):
        return value.strftime(DATETIME_FORMAT)
    if isinstance(value, date):
        return value.strftime(DATE_FORMAT)
    return str(value)


def _format_number(value: Any) -> str:
    if isinstance(value, Decimal):
        return format(value.normalize(), "f") if value == value.to_integral() else str(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_cell(descriptor: FieldDescriptor, value: Any) -> str:
    """Render one value by the descriptor's kind."""
    kind = descriptor.kind
    if is_empty(value):
        if kind in (FieldKind.REFERENCE, FieldKind.MULTI_REFERENCE):
            return _placeholder(descriptor)
        return ""
    if kind == FieldKind.BOOLEAN:
        return "Yes" if value else "No"
    if kind == FieldKind.DATE:
        return _format_date(value)
    if kind == FieldKind.DATETIME:
        return _format_datetime(value)
    if kind == FieldKind.NUMBER:
        return _format_number(value)
    if kind == FieldKind.REFERENCE:
        return display_text(value) or _placeholder(descriptor)
    if kind == FieldKind.MULTI_REFERENCE:
        names = [display_text(item) for item in value if item is not None]
        return ", ".join(names) if names else _placeholder(descriptor)
    return truncate(str(value))


@dataclass(frozen=True)
class GridColumn:
    """One read-only column."""

    key: str
    header: str
    descriptor: FieldDescriptor
    formatter: Callable[[FieldDescriptor, Any], str] = format_cell

    def cell(self, item: Any) -> str:
        return self.formatter(self.descriptor, read_path(item, self.key))

    def sort_value(self, item: Any) -> Any:
        """Raw value for sorting; None sorts first."""
        value = read_path(item, self.key)
        if self.descriptor.kind == FieldKind.REFERENCE:
            value = display_text(value)
        return (value is not None, value)


class ColumnSet:
    """Ordered grid columns for one entity type."""

    def __init__(self, columns: list[GridColumn]) -> None:
        self._columns = columns

    @property
    def columns(self) -> tuple[GridColumn, ...]:
        return tuple(self._columns)

    def __iter__(self) -> Iterator[GridColumn]:
        return iter(self._columns)

    def __len__(self) -> int:
        return len(self._columns)

    def keys(self) -> list[str]:
        return [column.key for column in self._columns]

    def headers(self) -> list[str]:
        return [column.header for column in self._columns]

    def column(self, key: str) -> GridColumn:
        for column in self._columns:
            if column.key == key:
                return column
        raise KeyError(key)

    def row(self, item: Any) -> dict[str, str]:
        return {column.key: column.cell(item) for column in self._columns}

    def rows(self, items: Iterable[Any]) -> list[dict[str, str]]:
        return [self.row(item) for item in items]


def compile_grid(fields: Iterable[FieldDescriptor | ResolvedField]) -> ColumnSet:
    """
    Compile descriptors (or resolved screen lines) into grid columns.

    Hidden descriptors are excluded; plain descriptors are ordered by
    ``order``.
    """
    return ColumnSet(
        [
            GridColumn(key=line.key, header=line.label, descriptor=line.descriptor)
            for line in to_lines(fields)
        ]
    )
