"""
Screens: persisted screen definitions and their runtime interpretation.
"""

from .interpreter import base_entity, resolve, resolve_line_type, resolve_reference, try_resolve
from .loader import load_screens_toml, parse_screens
from .menu import MenuItem, build_menu
from .security import AccessKind, SecurityPredicate
from .store import LoadedScreen, ScreenDefinitionStore, ScreenRepository

__all__ = [
    "AccessKind",
    "base_entity",
    "LoadedScreen",
    "MenuItem",
    "ScreenDefinitionStore",
    "ScreenRepository",
    "SecurityPredicate",
    "build_menu",
    "load_screens_toml",
    "parse_screens",
    "resolve",
    "resolve_line_type",
    "resolve_reference",
    "try_resolve",
]
