"""
metacrud back-end runtime: persistence, listeners, services, wiring.
"""

from .listeners import EntityListener, ListenerSet
from .repository import EntityRepository, InMemoryRepository, field_matches
from .services import (
    EntityService,
    RelationSettingsService,
    ScreenDefinitionService,
    ServiceRegistry,
    UserCompanySettingsService,
    UserProjectSettingsService,
    service_name,
    stamp_audit_dates,
)
from .sqlite_repository import DatabaseManager, SQLiteRepository

__all__ = [
    "DatabaseManager",
    "EntityListener",
    "EntityRepository",
    "EntityService",
    "InMemoryRepository",
    "ListenerSet",
    "RelationSettingsService",
    "SQLiteRepository",
    "ScreenDefinitionService",
    "ServiceRegistry",
    "UserCompanySettingsService",
    "UserProjectSettingsService",
    "field_matches",
    "service_name",
    "stamp_audit_dates",
]
