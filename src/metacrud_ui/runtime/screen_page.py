"""
Screen pages - an opened screen definition.

The router loads a definition, checks that it is enabled and that the
session may see it, resolves its lines once, and builds a page: a grid
over the instances, a form for the selected one, and a lifecycle
controller wiring both to the entity's service. The resolved lines stay
cached on the page for its whole lifetime.

Entity types with a ``project`` reference are project scoped: while the
session has an active project the grid lists only that project's
instances, new instances start with it set, and the page reloads when
the active project changes.
"""

from __future__ import annotations

import logging
from typing import Any

from metacrud.core.catalog import MetadataCatalog
from metacrud.core.errors import ConfigurationError, PreconditionError
from metacrud.core.ir import Entity, ResolvedField, ScreenDefinition
from metacrud.screens import LoadedScreen, ScreenDefinitionStore, SecurityPredicate, base_entity
from metacrud_back.runtime.services import EntityService, ServiceRegistry

from ..converters.form_compiler import FieldSet, compile_form
from ..converters.grid_compiler import ColumnSet, compile_grid
from .crud_controller import CrudController
from .interaction import Confirmer, Notifier
from .session import SessionContext

logger = logging.getLogger(__name__)

PROJECT_FIELD = "project"


class ScreenPage:
    """Grid, form and controller for one opened screen."""

    def __init__(
        self,
        loaded: LoadedScreen,
        catalog: MetadataCatalog,
        service: EntityService[Any],
        confirmer: Confirmer,
        notifier: Notifier | None = None,
        session: SessionContext | None = None,
    ) -> None:
        self.definition: ScreenDefinition = loaded.definition
        self.fields: tuple[ResolvedField, ...] = loaded.fields
        self.service = service
        self.session = session
        spec = base_entity(loaded.definition, catalog)
        self.entity_type = spec.name
        self.project_scoped = spec.get_relationship(PROJECT_FIELD) is not None

        self.grid: ColumnSet = compile_grid(self.fields)
        self.form: FieldSet = compile_form(self.fields, entity_type=spec.name)
        self.controller = CrudController(
            spec.name,
            service,
            self.form,
            confirmer,
            notifier=notifier,
            session=session,
            entity_title=spec.title,
        )
        self.controller.set_instance_factory(self._new_instance)
        self.controller.set_refresh_callback(self._refresh)
        self.controller.add_listener(self)
        self.items: list[Entity] = []
        if session is not None and self.project_scoped:
            session.add_project_listener(self)
        self.reload()

    @property
    def route(self) -> str:
        return self.definition.route or ""

    @property
    def title(self) -> str:
        return self.definition.title or ""

    @property
    def active_project(self) -> Entity | None:
        if self.session is None or not self.project_scoped:
            return None
        return self.session.active_project

    def reload(self) -> None:
        project = self.active_project
        if project is None:
            self.items = self.service.list_all()
        else:
            self.items = self.service.find_by_field(PROJECT_FIELD, project)

    def close(self) -> None:
        """Stop following the session's active project."""
        if self.session is not None:
            self.session.remove_project_listener(self)

    def grid_rows(self) -> list[dict[str, str]]:
        return self.grid.rows(self.items)

    def select(self, item: Entity | None) -> None:
        self.controller.set_current_entity(item)

    def _new_instance(self) -> Entity:
        instance = self.service.new_instance()
        project = self.active_project
        if project is not None:
            setattr(instance, PROJECT_FIELD, project)
        return instance

    def _refresh(self, current: Entity | None) -> Entity | None:
        self.reload()
        if current is None or current.id is None:
            return current
        fresh = self.service.find_by_id(current.id)
        if fresh is None:
            raise PreconditionError(f"{self.entity_type} #{current.id} no longer exists")
        return fresh

    # Listener callbacks keep the grid in step with the form

    def on_entity_saved(self, instance: Entity) -> None:
        self.reload()

    def on_entity_deleted(self, instance: Entity) -> None:
        self.reload()

    def on_active_project_changed(self, project: Entity | None) -> None:
        logger.debug("Screen %s follows project change", self.route)
        self.reload()


class ScreenRouter:
    """Opens screens by route for a session."""

    def __init__(
        self,
        store: ScreenDefinitionStore,
        catalog: MetadataCatalog,
        services: ServiceRegistry,
        confirmer: Confirmer,
        notifier: Notifier | None = None,
    ) -> None:
        self.store = store
        self.catalog = catalog
        self.services = services
        self.confirmer = confirmer
        self.notifier = notifier

    def open(self, route: str, session: SessionContext) -> ScreenPage:
        """
        Open a screen.

        Raises:
            ConfigurationError: Unknown route, unresolvable line, or bad
                security expression
            PreconditionError: The screen is disabled or not permitted
        """
        loaded = self.store.load(route)
        definition = loaded.definition
        if not definition.enabled:
            raise PreconditionError(f"Screen '{definition.title}' is disabled.")

        try:
            predicate = SecurityPredicate.parse(definition.security_permissions)
        except ValueError as exc:
            raise ConfigurationError(f"Screen '{route}': {exc}") from exc
        if not predicate.permits(session.roles, authenticated=session.authenticated):
            logger.warning("Access to screen %s denied (roles: %s)", route, sorted(session.roles))
            raise PreconditionError("You do not have permission to open this screen.")

        spec = base_entity(definition, self.catalog)
        page = ScreenPage(
            loaded,
            self.catalog,
            self.services.for_entity(spec.name),
            self.confirmer,
            notifier=self.notifier,
            session=session,
        )
        logger.info("Opened screen %s (%d fields)", route, len(page.fields))
        return page

    def menu(self, session: SessionContext) -> list[Any]:
        return self.store.menu(session.roles, authenticated=session.authenticated)
