"""
CRUD lifecycle controller - the create/save/delete/refresh toolbar.

Wraps at most one bound entity instance and its compiled form::

    EMPTY  --create/set_current_entity-->  VIEWING / EDITING
    EDITING --save-->   VIEWING
    VIEWING --delete--> EMPTY

Failures are classified before they leave the controller: validation
problems, stale versions and precondition violations keep their own
types, anything else from the persistence collaborator becomes a
CollaboratorFailure. A failed save or delete never changes the bound
instance, so the user's edits stay in the form.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import StrEnum
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict

from metacrud.core.errors import (
    CollaboratorFailure,
    ConfigurationError,
    ErrorContext,
    MetacrudError,
    OptimisticLockConflict,
    PreconditionError,
)
from metacrud.core.ir import Entity
from metacrud_back.runtime.listeners import EntityListener, ListenerSet

from ..converters.form_compiler import FieldControl, FieldSet
from .interaction import Confirmer, LoggingNotifier, Notifier
from .session import SessionContext

logger = logging.getLogger(__name__)

InstanceFactory = Callable[[], Entity]
RefreshCallback = Callable[[Entity | None], Any]
ToolbarCallback = Callable[["ToolbarState"], None]


class Persistence(Protocol):
    def save(self, instance: Any) -> Any: ...

    def delete(self, instance: Any) -> None: ...


class CrudState(StrEnum):
    EMPTY = "empty"
    VIEWING = "viewing"
    EDITING = "editing"


class ToolbarState(BaseModel):
    """Which toolbar actions are enabled."""

    can_create: bool = False
    can_save: bool = False
    can_delete: bool = False
    can_refresh: bool = False

    model_config = ConfigDict(frozen=True)


class CrudController:
    """
    Lifecycle controller for one entity type on one screen.

    Args:
        entity_type: Entity type name, used in messages and error context
        persistence: Collaborator with ``save`` and ``delete``
        form: Compiled field set the controller binds instances to
        confirmer: Asked before every delete
        notifier: Receives success and error messages
        session: Optional session enforcing a single dirty holder per instance
    """

    def __init__(
        self,
        entity_type: str,
        persistence: Persistence,
        form: FieldSet,
        confirmer: Confirmer,
        notifier: Notifier | None = None,
        session: SessionContext | None = None,
        entity_title: str | None = None,
    ) -> None:
        self.entity_type = entity_type
        self.entity_title = entity_title or entity_type
        self.persistence = persistence
        self.form = form
        self.confirmer = confirmer
        self.notifier: Notifier = notifier or LoggingNotifier()
        self.session = session
        self.listeners = ListenerSet(owner=entity_type)

        self._instance: Entity | None = None
        self._factory: InstanceFactory | None = None
        self._refresh_callback: RefreshCallback | None = None
        self._toolbar_callback: ToolbarCallback | None = None
        self._toolbar = ToolbarState()

        self.form.add_change_listener(self._on_form_change)
        self.form.rebind(None)
        self._update_toolbar()

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    def set_instance_factory(self, factory: InstanceFactory | None) -> None:
        self._factory = factory
        self._update_toolbar()

    def set_refresh_callback(self, callback: RefreshCallback | None) -> None:
        self._refresh_callback = callback
        self._update_toolbar()

    def set_toolbar_callback(self, callback: ToolbarCallback | None) -> None:
        """Receives the new toolbar state every time it is recomputed."""
        self._toolbar_callback = callback

    def add_listener(self, listener: EntityListener) -> None:
        self.listeners.add(listener)

    def remove_listener(self, listener: EntityListener) -> None:
        self.listeners.discard(listener)

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def current_entity(self) -> Entity | None:
        return self._instance

    @property
    def state(self) -> CrudState:
        if self._instance is None:
            return CrudState.EMPTY
        if self.form.dirty or not self._instance.is_persisted:
            return CrudState.EDITING
        return CrudState.VIEWING

    @property
    def toolbar(self) -> ToolbarState:
        return self._toolbar

    def compute_toolbar(self) -> ToolbarState:
        instance = self._instance
        return ToolbarState(
            can_create=self._factory is not None,
            can_save=instance is not None,
            can_delete=instance is not None and instance.is_persisted,
            can_refresh=self._refresh_callback is not None,
        )

    def _update_toolbar(self) -> None:
        self._toolbar = self.compute_toolbar()
        if self._toolbar_callback is not None:
            self._toolbar_callback(self._toolbar)

    def _bind(self, instance: Entity | None) -> None:
        if self.session is not None:
            self.session.release(self)
        self._instance = instance
        self.form.rebind(instance)
        self._update_toolbar()

    def _on_form_change(self, control: FieldControl) -> None:
        if self.session is not None and self._instance is not None:
            self.session.claim(self, self._instance)

    def set_current_entity(self, instance: Entity | None) -> None:
        """Bind an instance (or clear with None), discarding unsaved edits."""
        self._bind(instance)
        logger.debug(
            "%s controller bound to %s",
            self.entity_type,
            f"#{instance.id}" if instance is not None else "nothing",
        )

    def edit(self, key: str, value: Any) -> None:
        """Set one form value."""
        self.form.set_value(key, value)

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def create(self) -> Entity:
        """
        Bind a fresh, unpersisted instance from the factory.

        Raises:
            ConfigurationError: No instance factory is registered
        """
        if self._factory is None:
            raise ConfigurationError(
                "No instance factory registered",
                ErrorContext(entity_type=self.entity_type, operation="create"),
            )
        instance = self._factory()
        self._bind(instance)
        if self.session is not None:
            self.session.claim(self, instance)
        logger.debug("Created new %s", self.entity_type)
        return instance

    def save(self) -> Entity:
        """
        Write the form into a copy of the bound instance and persist it.

        Raises:
            PreconditionError: No instance is bound
            ValidationError: Form values are invalid; nothing is persisted
            OptimisticLockConflict: The stored version moved on
            CollaboratorFailure: Any other persistence failure
        """
        try:
            return self._save()
        finally:
            self._update_toolbar()

    def _save(self) -> Entity:
        if self._instance is None:
            raise PreconditionError("Cannot save: No entity selected.")

        candidate = self._instance.model_copy(deep=True)
        try:
            self.form.write_to(candidate)
        except MetacrudError as exc:
            self.notifier.error(exc.user_message)
            raise

        saved = self._call_persistence("save", self.persistence.save, candidate)

        self._bind(saved)
        self.notifier.success(f"{self.entity_title} saved successfully")
        logger.info("%s #%s saved (version %s)", self.entity_type, saved.id, saved.version)
        self.listeners.notify_saved(saved)
        return saved

    def delete(self) -> bool:
        """
        Delete the bound instance after confirmation.

        Returns:
            True if deleted, False if the user declined

        Raises:
            PreconditionError: Nothing is bound or it was never persisted
            OptimisticLockConflict: The stored version moved on
            CollaboratorFailure: Any other persistence failure
        """
        try:
            return self._delete()
        finally:
            self._update_toolbar()

    def _delete(self) -> bool:
        instance = self._instance
        if instance is None or not instance.is_persisted:
            raise PreconditionError("Cannot delete: entity has not been saved.")

        message = (
            f"Are you sure you want to delete this {self.entity_title.lower()}? "
            "This action cannot be undone."
        )
        if not self.confirmer.confirm(message):
            logger.debug("Delete of %s #%s declined", self.entity_type, instance.id)
            return False

        self._call_persistence("delete", self.persistence.delete, instance)

        self._bind(None)
        self.notifier.success(f"{self.entity_title} deleted successfully")
        logger.info("%s #%s deleted", self.entity_type, instance.id)
        self.listeners.notify_deleted(instance)
        return True

    def refresh(self) -> bool:
        """
        Run the refresh callback with the bound instance.

        A returned entity becomes the bound instance. Callback failures are
        logged and reported through the notifier.

        Returns:
            True if the callback completed

        Raises:
            PreconditionError: No refresh callback is registered
        """
        if self._refresh_callback is None:
            raise PreconditionError("Cannot refresh: no refresh action is available.")
        try:
            result = self._refresh_callback(self._instance)
        except Exception as exc:
            logger.error("Refresh of %s failed", self.entity_type, exc_info=True)
            self.notifier.error(f"Error refreshing data: {exc}")
            self._update_toolbar()
            return False

        if isinstance(result, Entity):
            self._bind(result)
        else:
            self._update_toolbar()
        return True

    def _call_persistence(self, operation: str, call: Callable[[Any], Any], instance: Entity) -> Any:
        try:
            return call(instance)
        except OptimisticLockConflict as exc:
            logger.warning("%s of %s #%s rejected: %s", operation, self.entity_type, instance.id, exc)
            self.notifier.error(exc.user_message)
            raise
        except MetacrudError as exc:
            self.notifier.error(exc.user_message)
            raise
        except Exception as exc:
            logger.error(
                "%s of %s #%s failed", operation, self.entity_type, instance.id, exc_info=True
            )
            failure = CollaboratorFailure(
                f"{operation} failed: {exc}",
                ErrorContext(entity_type=self.entity_type, operation=operation),
            )
            self.notifier.error(failure.user_message)
            raise failure from exc
