"""
Application factory.

Builds the complete back end from an AppConfig: the frozen metadata
catalog, one repository and service per entity type, the relation
settings services, and the screen definition store seeded from TOML.

Example::

    from pathlib import Path
    from metacrud_back.config import load_config
    from metacrud_back.runtime.app_factory import build_application

    app = build_application(load_config(Path(".")))
    activities = app.service("Activity").list_all()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from metacrud.core.catalog import MetadataCatalog
from metacrud.core.ir import Entity, ScreenDefinition
from metacrud.domain import DOMAIN_MODELS, UserCompanySettings, UserProjectSettings, register_domain
from metacrud.screens import ScreenDefinitionStore, load_screens_toml

from ..config import AppConfig, DatabaseBackend
from .logging import setup_logging
from .repository import EntityRepository, InMemoryRepository
from .services import (
    EntityService,
    ScreenDefinitionService,
    ServiceRegistry,
    UserCompanySettingsService,
    UserProjectSettingsService,
    service_name,
)
from .sqlite_repository import DatabaseManager, SQLiteRepository

logger = logging.getLogger(__name__)

SCREEN_ENTITY_TITLE = "Screen"

_RELATION_SERVICES: dict[type[Entity], type[EntityService[Any]]] = {
    UserProjectSettings: UserProjectSettingsService,
    UserCompanySettings: UserCompanySettingsService,
}


@dataclass
class Application:
    """Everything a front end needs to open screens."""

    config: AppConfig
    catalog: MetadataCatalog
    services: ServiceRegistry
    screens: ScreenDefinitionStore
    database: DatabaseManager | None = None

    def service(self, entity_type: str) -> EntityService[Any]:
        return self.services.for_entity(entity_type)

    @property
    def project_settings(self) -> UserProjectSettingsService:
        service = self.services.for_entity("UserProjectSettings")
        assert isinstance(service, UserProjectSettingsService)
        return service

    @property
    def company_settings(self) -> UserCompanySettingsService:
        service = self.services.for_entity("UserCompanySettings")
        assert isinstance(service, UserCompanySettingsService)
        return service


def build_catalog() -> MetadataCatalog:
    """Catalog with the domain and screen definition types, frozen."""
    catalog = MetadataCatalog()
    register_domain(catalog)
    catalog.register_model(ScreenDefinition, title=SCREEN_ENTITY_TITLE)
    catalog.freeze()
    return catalog


class _RepositoryFactory:
    def __init__(self, config: AppConfig) -> None:
        self.backend = config.database.backend
        self.database: DatabaseManager | None = None
        if self.backend == DatabaseBackend.SQLITE:
            self.database = DatabaseManager(config.resolve_path(config.database.path))

    def create(self, model_cls: type[Entity]) -> EntityRepository[Any]:
        if self.database is not None:
            return SQLiteRepository(self.database, model_cls)
        return InMemoryRepository(model_cls)


def build_application(config: AppConfig | None = None) -> Application:
    """
    Wire the back end described by a configuration.

    Raises:
        ConfigurationError: Invalid catalog, or an unreadable or
            unresolvable screen seed file
    """
    config = config or AppConfig()
    if config.logging.enabled:
        setup_logging(
            log_dir=config.resolve_path(config.logging.dir),
            level=config.logging.level,
            console=config.logging.console,
        )

    catalog = build_catalog()
    repositories = _RepositoryFactory(config)

    services = ServiceRegistry()
    for model_cls, _title in DOMAIN_MODELS:
        entity_type = model_cls.__name__
        service_cls = _RELATION_SERVICES.get(model_cls, EntityService)
        services.register(
            service_name(entity_type),
            service_cls(entity_type, repositories.create(model_cls), catalog),
        )

    screen_repository = repositories.create(ScreenDefinition)
    store = ScreenDefinitionStore(screen_repository, catalog)
    services.register(
        service_name("ScreenDefinition"),
        ScreenDefinitionService(store, screen_repository, catalog),
    )
    if config.screens.seed is not None:
        added = store.seed(load_screens_toml(config.resolve_path(config.screens.seed)))
        logger.info("Seeded %d screen definitions", added)

    logger.info(
        "Application ready: %d entity types, %s backend",
        len(catalog.entity_types()),
        config.database.backend,
    )
    return Application(
        config=config,
        catalog=catalog,
        services=services,
        screens=store,
        database=repositories.database,
    )
