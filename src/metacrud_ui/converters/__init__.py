"""
Converters: descriptors to bound forms and read-only grids.
"""

from .binding import Binding, binding_for
from .form_compiler import FieldControl, FieldSet, compile_form, control_type_for
from .grid_compiler import ColumnSet, GridColumn, compile_grid, format_cell, truncate
from .lines import FieldLine, read_path, to_lines

__all__ = [
    "Binding",
    "ColumnSet",
    "FieldControl",
    "FieldLine",
    "FieldSet",
    "GridColumn",
    "binding_for",
    "compile_form",
    "compile_grid",
    "control_type_for",
    "format_cell",
    "read_path",
    "to_lines",
    "truncate",
]
