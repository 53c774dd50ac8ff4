"""
Relation panels - join-entity collections under one master instance.

A panel shows the settings linking its master (a project, a user, a
company) to the other endpoint, with add/edit/delete sub-workflows:

- ``add()`` / ``edit()`` open a RelationDialog holding a compiled form;
  ``confirm()`` routes a never-saved setting to the strategy's ``attach``
  and an existing one to the generic ``save``
- ``delete()`` needs a selected row and a confirmed prompt, then calls
  ``detach`` with the two endpoint identities

After every mutation the rows are pulled again from the strategy's data
source for the master, never patched locally.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Generic, Protocol, TypeVar

from metacrud.core.catalog import MetadataCatalog
from metacrud.core.errors import (
    CollaboratorFailure,
    ErrorContext,
    MetacrudError,
    PreconditionError,
)
from metacrud.core.ir import Entity, display_text
from metacrud_back.runtime.services import RelationSettingsService

from ..converters.form_compiler import FieldSet, compile_form
from ..converters.grid_compiler import ColumnSet, compile_grid
from .interaction import Confirmer, LoggingNotifier, Notifier

logger = logging.getLogger(__name__)

S = TypeVar("S", bound=Entity)


# =============================================================================
# Strategy
# =============================================================================


class RelationStrategy(Protocol[S]):
    """Operations a relation panel delegates to."""

    entity_type: str
    master_field: str
    label: str

    def list_for(self, master: Entity) -> list[S]: ...

    def new_setting(self, master: Entity) -> S: ...

    def attach(self, setting: S) -> S: ...

    def save(self, setting: S) -> S: ...

    def endpoint_ids(self, setting: S) -> tuple[int, int]: ...

    def detach(self, first_id: int, second_id: int) -> bool: ...

    def describe(self, setting: S) -> str: ...


class SettingsStrategy(Generic[S]):
    """
    Strategy over a relation settings service.

    Args:
        service: Service owning attach/detach for the join type
        master_field: Endpoint attribute the panel is scoped to
        label: Human name of one setting ("project setting")
    """

    def __init__(
        self,
        service: RelationSettingsService[S],
        master_field: str,
        label: str,
    ) -> None:
        if master_field not in (service.first_field, service.second_field):
            raise ValueError(f"{master_field!r} is not an endpoint of {service.entity_type}")
        self.service = service
        self.entity_type = service.entity_type
        self.master_field = master_field
        self.label = label

    @property
    def other_field(self) -> str:
        if self.master_field == self.service.first_field:
            return self.service.second_field
        return self.service.first_field

    def list_for(self, master: Entity) -> list[S]:
        rows = self.service.find_by_field(self.master_field, master)
        return sorted(rows, key=lambda row: row.id or 0)

    def new_setting(self, master: Entity) -> S:
        setting = self.service.new_instance()
        setattr(setting, self.master_field, master)
        return setting

    def attach(self, setting: S) -> S:
        return self.service.attach(setting)

    def save(self, setting: S) -> S:
        return self.service.save(setting)

    def endpoint_ids(self, setting: S) -> tuple[int, int]:
        first = getattr(setting, self.service.first_field)
        second = getattr(setting, self.service.second_field)
        if first is None or second is None or first.id is None or second.id is None:
            raise PreconditionError(f"The selected {self.label} has no endpoints")
        return first.id, second.id

    def detach(self, first_id: int, second_id: int) -> bool:
        return self.service.detach(first_id, second_id)

    def describe(self, setting: S) -> str:
        """Name of the endpoint that is not the master."""
        return display_text(getattr(setting, self.other_field)) or f"#{setting.id}"


# =============================================================================
# Dialog
# =============================================================================


class RelationDialog(Generic[S]):
    """Add/edit sub-form for one setting; closes on confirm or cancel."""

    def __init__(self, panel: RelationPanel[S], setting: S, form: FieldSet) -> None:
        self.panel = panel
        self.setting = setting
        self.form = form
        self.is_open = True

    @property
    def is_new(self) -> bool:
        return self.setting.id is None

    def set_value(self, key: str, value: Any) -> None:
        self.form.set_value(key, value)

    def confirm(self) -> S:
        """
        Save the setting through the panel.

        Raises:
            PreconditionError: The dialog is already closed
            ValidationError: Form or endpoint rules fail; the dialog stays open
        """
        if not self.is_open:
            raise PreconditionError("This dialog is closed")
        saved = self.panel._commit(self)
        self.is_open = False
        return saved

    def cancel(self) -> None:
        self.is_open = False


# =============================================================================
# Panel
# =============================================================================


class RelationPanel(Generic[S]):
    """
    Grid plus add/edit/delete actions for one master's settings.

    Args:
        strategy: Data source and mutation operations
        catalog: Catalog describing the join entity type
        confirmer: Asked before every delete
        notifier: Receives success and error messages
    """

    def __init__(
        self,
        strategy: RelationStrategy[S],
        catalog: MetadataCatalog,
        confirmer: Confirmer,
        notifier: Notifier | None = None,
    ) -> None:
        self.strategy = strategy
        self.catalog = catalog
        self.confirmer = confirmer
        self.notifier: Notifier = notifier or LoggingNotifier()
        self._descriptors = catalog.describe(strategy.entity_type)
        self.columns: ColumnSet = compile_grid(self._descriptors)
        self._master: Entity | None = None
        self._rows: list[S] = []
        self._selected: S | None = None
        self.on_change: Callable[[], None] | None = None

    # -------------------------------------------------------------------------
    # Master and rows
    # -------------------------------------------------------------------------

    @property
    def master(self) -> Entity | None:
        return self._master

    def set_master(self, master: Entity | None) -> None:
        self._master = master
        self._selected = None
        self.reload()

    @property
    def rows(self) -> list[S]:
        return list(self._rows)

    def grid_rows(self) -> list[dict[str, str]]:
        return self.columns.rows(self._rows)

    def reload(self) -> None:
        """Pull rows from the data source for the current master."""
        if self._master is None or not self._master.is_persisted:
            self._rows = []
        else:
            self._rows = list(self.strategy.list_for(self._master))
        if self._selected is not None:
            selected_id = self._selected.id
            self._selected = next((r for r in self._rows if r.id == selected_id), None)
        if self.on_change is not None:
            self.on_change()

    # -------------------------------------------------------------------------
    # Selection
    # -------------------------------------------------------------------------

    @property
    def selected(self) -> S | None:
        return self._selected

    def select(self, setting: S | None) -> None:
        if setting is not None and setting.id not in {r.id for r in self._rows}:
            raise PreconditionError(f"The {self.strategy.label} is not in this list")
        self._selected = setting

    def select_index(self, index: int) -> None:
        self._selected = self._rows[index]

    @property
    def can_add(self) -> bool:
        return self._master is not None and self._master.is_persisted

    @property
    def can_edit(self) -> bool:
        return self._selected is not None

    @property
    def can_delete(self) -> bool:
        return self._selected is not None

    # -------------------------------------------------------------------------
    # Actions
    # -------------------------------------------------------------------------

    def _open(self, setting: S) -> RelationDialog[S]:
        form = compile_form(
            self._descriptors,
            setting,
            entity_type=self.strategy.entity_type,
            read_only=(self.strategy.master_field,),
        )
        return RelationDialog(self, setting, form)

    def add(self, setting: S | None = None) -> RelationDialog[S]:
        """
        Open the dialog for a new setting of the current master.

        Raises:
            PreconditionError: No saved master is set
        """
        if not self.can_add:
            raise PreconditionError(f"Save the record before adding a {self.strategy.label}.")
        assert self._master is not None
        if setting is None:
            setting = self.strategy.new_setting(self._master)
        return self._open(setting)

    def edit(self) -> RelationDialog[S]:
        """
        Open the dialog for the selected setting.

        Raises:
            PreconditionError: Nothing is selected
        """
        if self._selected is None:
            raise PreconditionError(f"Please select a {self.strategy.label} to edit.")
        return self._open(self._selected.model_copy(deep=True))

    def delete(self) -> bool:
        """
        Detach the selected setting after confirmation.

        Returns:
            True if deleted, False if the user declined

        Raises:
            PreconditionError: Nothing is selected
            CollaboratorFailure: The detach call failed unclassified
        """
        setting = self._selected
        if setting is None:
            raise PreconditionError(f"Please select a {self.strategy.label} to delete.")

        name = self.strategy.describe(setting)
        message = (
            f"Are you sure you want to delete the {self.strategy.label} for '{name}'? "
            "This action cannot be undone."
        )
        if not self.confirmer.confirm(message):
            return False

        first_id, second_id = self.strategy.endpoint_ids(setting)
        self._guard("delete", lambda: self.strategy.detach(first_id, second_id))
        self._selected = None
        self.reload()
        self.notifier.success(f"The {self.strategy.label} for '{name}' was deleted")
        return True

    def _commit(self, dialog: RelationDialog[S]) -> S:
        setting = dialog.form.write_to(dialog.setting)
        if setting.id is None:
            saved = self._guard("attach", lambda: self.strategy.attach(setting))
        else:
            saved = self._guard("save", lambda: self.strategy.save(setting))
        self._selected = saved
        self.reload()
        self.notifier.success(f"The {self.strategy.label} was saved")
        return saved

    def _guard(self, operation: str, call: Callable[[], Any]) -> Any:
        try:
            return call()
        except MetacrudError as exc:
            self.notifier.error(exc.user_message)
            raise
        except Exception as exc:
            logger.error(
                "%s of %s failed", operation, self.strategy.entity_type, exc_info=True
            )
            failure = CollaboratorFailure(
                f"{operation} failed: {exc}",
                ErrorContext(entity_type=self.strategy.entity_type, operation=operation),
            )
            self.notifier.error(failure.user_message)
            raise failure from exc


# =============================================================================
# Panel builders
# =============================================================================


def project_members_panel(
    service: RelationSettingsService[Any],
    catalog: MetadataCatalog,
    confirmer: Confirmer,
    notifier: Notifier | None = None,
) -> RelationPanel[Any]:
    """Users assigned to one project."""
    strategy = SettingsStrategy(service, "project", "project setting")
    return RelationPanel(strategy, catalog, confirmer, notifier)


def user_projects_panel(
    service: RelationSettingsService[Any],
    catalog: MetadataCatalog,
    confirmer: Confirmer,
    notifier: Notifier | None = None,
) -> RelationPanel[Any]:
    """Projects one user is assigned to."""
    strategy = SettingsStrategy(service, "user", "project setting")
    return RelationPanel(strategy, catalog, confirmer, notifier)


def company_members_panel(
    service: RelationSettingsService[Any],
    catalog: MetadataCatalog,
    confirmer: Confirmer,
    notifier: Notifier | None = None,
) -> RelationPanel[Any]:
    """Users belonging to one company."""
    strategy = SettingsStrategy(service, "company", "company setting")
    return RelationPanel(strategy, catalog, confirmer, notifier)


def user_companies_panel(
    service: RelationSettingsService[Any],
    catalog: MetadataCatalog,
    confirmer: Confirmer,
    notifier: Notifier | None = None,
) -> RelationPanel[Any]:
    """Companies one user belongs to."""
    strategy = SettingsStrategy(service, "user", "company setting")
    return RelationPanel(strategy, catalog, confirmer, notifier)
