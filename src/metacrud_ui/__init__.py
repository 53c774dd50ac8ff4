"""
metacrud UI layer: form and grid compilation plus the interaction runtime.

Rendering is left to the host toolkit; everything here is plain data and
synchronous controllers.
"""

from .converters import ColumnSet, FieldSet, compile_form, compile_grid
from .runtime import CrudController, RelationPanel, ScreenRouter, SessionContext

__all__ = [
    "ColumnSet",
    "CrudController",
    "FieldSet",
    "RelationPanel",
    "ScreenRouter",
    "SessionContext",
    "compile_form",
    "compile_grid",
]
