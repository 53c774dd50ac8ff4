"""
Interaction runtime: lifecycle controllers, relation panels, screen pages.
"""

from .crud_controller import CrudController, CrudState, ToolbarState
from .interaction import Confirmer, FixedConfirmer, LoggingNotifier, Notifier
from .relation_panel import (
    RelationDialog,
    RelationPanel,
    RelationStrategy,
    SettingsStrategy,
    company_members_panel,
    project_members_panel,
    user_companies_panel,
    user_projects_panel,
)
from .screen_page import ScreenPage, ScreenRouter
from .session import ProjectChangeListener, SessionContext

__all__ = [
    "Confirmer",
    "CrudController",
    "CrudState",
    "FixedConfirmer",
    "LoggingNotifier",
    "Notifier",
    "ProjectChangeListener",
    "RelationDialog",
    "RelationPanel",
    "RelationStrategy",
    "ScreenPage",
    "ScreenRouter",
    "SessionContext",
    "SettingsStrategy",
    "ToolbarState",
    "company_members_panel",
    "project_members_panel",
    "user_companies_panel",
    "user_projects_panel",
]
