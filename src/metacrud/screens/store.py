"""
Screen definition store.

Screen definitions are ordinary persisted entities. The store adds the
rules a definition must meet before it is written (required attributes,
unique route and title, parseable priority and security expression, every
line resolvable) and resolves definitions when a screen is loaded.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Protocol

from metacrud.core.catalog import MetadataCatalog, entity_spec_from_model
from metacrud.core.errors import ValidationError, make_configuration_error
from metacrud.core.ir import ResolvedField, ScreenDefinition
from metacrud.core.validation import validate_instance

from .interpreter import resolve
from .menu import MenuItem, build_menu, parse_priority
from .security import SecurityPredicate

logger = logging.getLogger(__name__)

_SCREEN_SPEC = entity_spec_from_model(ScreenDefinition, title="Screen")

# Alias to keep `list` usable inside ScreenDefinitionStore
_list = list


class ScreenRepository(Protocol):
    def save(self, instance: Any) -> Any: ...

    def delete(self, instance: Any) -> None: ...

    def find_by_field(self, field_name: str, value: Any) -> list[Any]: ...

    def list_all(self) -> list[Any]: ...


@dataclass(frozen=True)
class LoadedScreen:
    """A definition together with its resolved lines."""

    definition: ScreenDefinition
    fields: tuple[ResolvedField, ...]


class ScreenDefinitionStore:
    """Validating facade over the screen definition repository."""

    def __init__(self, repository: ScreenRepository, catalog: MetadataCatalog) -> None:
        self.repository = repository
        self.catalog = catalog

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get(self, route: str) -> ScreenDefinition | None:
        found = self.repository.find_by_field("route", route)
        return found[0] if found else None

    def list(self, enabled_only: bool = False) -> _list[ScreenDefinition]:
        screens = [s for s in self.repository.list_all() if s.enabled or not enabled_only]
        screens.sort(key=lambda s: (parse_priority(s.order_priority), s.title or ""))
        return screens

    def load(self, route: str) -> LoadedScreen:
        """
        Load and resolve a screen by route.

        Raises:
            ConfigurationError: Unknown route or unresolvable line
        """
        definition = self.get(route)
        if definition is None:
            raise make_configuration_error("Unknown screen route", screen=route)
        return LoadedScreen(definition=definition, fields=resolve(definition, self.catalog))

    def menu(self, roles: Iterable[str] = (), authenticated: bool = True) -> _list[MenuItem]:
        return build_menu(self.list(enabled_only=True), roles, authenticated=authenticated)

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def validate(self, definition: ScreenDefinition) -> dict[str, _list[str]]:
        """Per-field problems of a definition; resolution is checked separately."""
        errors = validate_instance(_SCREEN_SPEC.fields, definition)

        try:
            priority = Decimal(definition.order_priority.strip())
        except InvalidOperation:
            errors.setdefault("order_priority", []).append("must be a decimal number")
        else:
            if not priority.is_finite():
                errors.setdefault("order_priority", []).append("must be a finite decimal number")

        try:
            SecurityPredicate.parse(definition.security_permissions)
        except ValueError as exc:
            errors.setdefault("security_permissions", []).append(str(exc))

        for attr in ("route", "title"):
            value = getattr(definition, attr)
            if not value:
                continue
            clashes = [
                other
                for other in self.repository.find_by_field(attr, value)
                if other.id != definition.id
            ]
            if clashes:
                errors.setdefault(attr, []).append(f"'{value}' is already used by another screen")
        return errors

    def save(self, definition: ScreenDefinition) -> ScreenDefinition:
        """
        Validate and persist a definition.

        Raises:
            ValidationError: Missing or duplicate attributes
            ConfigurationError: A line does not resolve against the catalog
            OptimisticLockConflict: The stored definition changed meanwhile
        """
        errors = self.validate(definition)
        if errors:
            raise ValidationError(errors)
        resolve(definition, self.catalog)
        saved = self.repository.save(definition)
        logger.info("Saved screen definition %s (version %s)", saved.route, saved.version)
        return saved

    def delete(self, definition: ScreenDefinition) -> None:
        self.repository.delete(definition)
        logger.info("Deleted screen definition %s", definition.route)

    def seed(self, definitions: _list[ScreenDefinition]) -> int:
        """Save definitions whose route is not stored yet; returns how many were added."""
        added = 0
        for definition in definitions:
            if definition.route and self.get(definition.route) is None:
                self.save(definition)
                added += 1
        return added
