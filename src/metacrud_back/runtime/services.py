"""
Entity services - generic persistence facade plus relation settings.

An EntityService adds descriptor validation in front of a repository and
is itself a persistence collaborator (save/delete/find_by_id/
find_by_field/list_all), so screens and lifecycle controllers can use
either. Relation services add the attach/detach operations that enforce
join-entity invariants.
"""

from __future__ import annotations

import builtins
import logging
from datetime import UTC, datetime
from typing import Any, Generic, TypeVar

from metacrud.core.catalog import MetadataCatalog
from metacrud.core.errors import ConfigurationError, ValidationError
from metacrud.core.ir import Entity, ScreenDefinition
from metacrud.core.validation import default_for, validate_instance
from metacrud.domain import UserCompanySettings, UserProjectSettings
from metacrud.screens import ScreenDefinitionStore

from .repository import EntityRepository

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Entity)

CREATED_FIELD = "created_date"
MODIFIED_FIELD = "last_modified_date"


def stamp_audit_dates(instance: T, now: datetime | None = None) -> T:
    """
    Copy of an instance with its audit timestamps set.

    ``created_date`` is filled on first save only; ``last_modified_date`` on
    every save. Models without those fields are returned unchanged.
    """
    fields = type(instance).model_fields
    update: dict[str, Any] = {}
    now = now or datetime.now(UTC)
    if (
        CREATED_FIELD in fields
        and instance.id is None
        and getattr(instance, CREATED_FIELD) is None
    ):
        update[CREATED_FIELD] = now
    if MODIFIED_FIELD in fields:
        update[MODIFIED_FIELD] = now
    if not update:
        return instance
    return instance.model_copy(update=update)


# =============================================================================
# Generic Entity Service
# =============================================================================


class EntityService(Generic[T]):
    """
    Validating service over one entity repository.

    Args:
        entity_type: Catalog name of the entity type
        repository: Persistence collaborator for the type
        catalog: Frozen metadata catalog
    """

    def __init__(
        self,
        entity_type: str,
        repository: EntityRepository[T],
        catalog: MetadataCatalog,
    ) -> None:
        self.entity_type = entity_type
        self.repository = repository
        self.catalog = catalog

    def new_instance(self) -> T:
        """Fresh, unpersisted instance with descriptor defaults applied."""
        model_cls = self.catalog.model(self.entity_type)
        defaults: dict[str, Any] = {}
        for descriptor in self.catalog.describe(self.entity_type):
            value = default_for(descriptor)
            if value is not None:
                defaults[descriptor.field_name] = value
        return model_cls(**defaults)  # type: ignore[return-value]

    def validate(self, instance: T) -> dict[str, list[str]]:
        return validate_instance(self.catalog.describe(self.entity_type), instance)

    def save(self, instance: T) -> T:
        """
        Validate and persist an instance.

        Raises:
            ValidationError: Descriptor constraints fail (nothing is written)
            OptimisticLockConflict: The stored version moved on
        """
        errors = self.validate(instance)
        if errors:
            raise ValidationError(errors)
        saved = self.repository.save(stamp_audit_dates(instance))
        logger.info("Saved %s #%s (version %s)", self.entity_type, saved.id, saved.version)
        return saved

    def delete(self, instance: T) -> None:
        self.repository.delete(instance)
        logger.info("Deleted %s #%s", self.entity_type, instance.id)

    def find_by_id(self, entity_id: int) -> T | None:
        return self.repository.find_by_id(entity_id)

    def find_by_field(self, field_name: str, value: Any) -> builtins.list[T]:
        return self.repository.find_by_field(field_name, value)

    def list_all(self) -> builtins.list[T]:
        return self.repository.list_all()

    def options(self) -> builtins.list[T]:
        """Selectable values when this service is a lookup provider."""
        return self.list_all()


class ServiceRegistry:
    """Services by lookup-provider name ("projectService")."""

    def __init__(self) -> None:
        self._services: dict[str, EntityService[Any]] = {}

    def register(self, name: str, service: EntityService[Any]) -> None:
        if name in self._services:
            raise ConfigurationError(f"Service '{name}' registered twice")
        self._services[name] = service

    def get(self, name: str) -> EntityService[Any]:
        service = self._services.get(name)
        if service is None:
            raise ConfigurationError(f"Unknown lookup provider '{name}'")
        return service

    def for_entity(self, entity_type: str) -> EntityService[Any]:
        for service in self._services.values():
            if service.entity_type == entity_type:
                return service
        raise ConfigurationError(f"No service for entity type '{entity_type}'")

    def options(self, name: str) -> list[Any]:
        return self.get(name).options()

    def names(self) -> list[str]:
        return list(self._services)


def service_name(entity_type: str) -> str:
    """Conventional lookup-provider name: Project -> projectService."""
    return entity_type[:1].lower() + entity_type[1:] + "Service"


class ScreenDefinitionService(EntityService[ScreenDefinition]):
    """Screen definitions edited on a screen of their own; writes go through the store."""

    def __init__(
        self,
        store: ScreenDefinitionStore,
        repository: EntityRepository[ScreenDefinition],
        catalog: MetadataCatalog,
    ) -> None:
        super().__init__("ScreenDefinition", repository, catalog)
        self.store = store

    def save(self, instance: ScreenDefinition) -> ScreenDefinition:
        return self.store.save(instance)

    def delete(self, instance: ScreenDefinition) -> None:
        self.store.delete(instance)


# =============================================================================
# Relation Settings
# =============================================================================


class RelationSettingsService(EntityService[T]):
    """
    Join-entity service keyed by two endpoints.

    Subclasses name the endpoint attributes. ``attach`` rejects a second
    setting for the same pair; ``detach`` removes by endpoint identities.
    """

    first_field = "user"
    second_field = ""
    duplicate_message = "is already assigned. Use update instead."

    def find_by_first_id(self, first_id: int) -> builtins.list[T]:
        return self.find_by_field(self.first_field, first_id)

    def find_by_second_id(self, second_id: int) -> builtins.list[T]:
        return self.find_by_field(self.second_field, second_id)

    def find_by_pair(self, first_id: int, second_id: int) -> T | None:
        for setting in self.find_by_first_id(first_id):
            other = getattr(setting, self.second_field)
            if other is not None and other.id == second_id:
                return setting
        return None

    def attach(self, setting: T) -> T:
        """
        Create a new setting for an endpoint pair.

        Raises:
            ValidationError: An endpoint is missing or the pair is already linked
        """
        first = getattr(setting, self.first_field)
        second = getattr(setting, self.second_field)
        errors: dict[str, list[str]] = {}
        if first is None or first.id is None:
            errors[self.first_field] = ["must be a saved record"]
        if second is None or second.id is None:
            errors[self.second_field] = ["must be a saved record"]
        if errors:
            raise ValidationError(errors)
        if setting.id is None and self.find_by_pair(first.id, second.id) is not None:
            raise ValidationError({self.first_field: [self.duplicate_message]})
        logger.debug(
            "Attaching %s #%s to %s #%s",
            self.first_field,
            first.id,
            self.second_field,
            second.id,
        )
        return self.save(setting)

    def detach(self, first_id: int, second_id: int) -> bool:
        """Remove the setting linking two endpoints; False if none exists."""
        setting = self.find_by_pair(first_id, second_id)
        if setting is None:
            logger.debug(
                "No %s setting for %s #%s and %s #%s",
                self.entity_type,
                self.first_field,
                first_id,
                self.second_field,
                second_id,
            )
            return False
        self.delete(setting)
        return True


class UserProjectSettingsService(RelationSettingsService[UserProjectSettings]):
    second_field = "project"
    duplicate_message = "User is already assigned to this project. Use update instead."

    def find_by_role(self, role: str) -> builtins.list[UserProjectSettings]:
        return self.find_by_field("role", role)

    def add_user_to_project(self, setting: UserProjectSettings) -> UserProjectSettings:
        return self.attach(setting)

    def remove_user_from_project(self, user_id: int, project_id: int) -> bool:
        return self.detach(user_id, project_id)


class UserCompanySettingsService(RelationSettingsService[UserCompanySettings]):
    second_field = "company"
    duplicate_message = "User is already a member of this company. Use update instead."

    def add_user_to_company(self, setting: UserCompanySettings) -> UserCompanySettings:
        return self.attach(setting)

    def remove_user_from_company(self, user_id: int, company_id: int) -> bool:
        return self.detach(user_id, company_id)
