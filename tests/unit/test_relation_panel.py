"""Tests for relation panels.

Covers:
- Routing of dialog confirmation to attach (new) or save (existing)
- Selection preconditions and confirmation-gated delete
- Reloading rows from the data source after every mutation
- The built-in project/company membership panels
"""

from __future__ import annotations

from typing import Any

import pytest

from metacrud.core.catalog import MetadataCatalog
from metacrud.core.errors import CollaboratorFailure, PreconditionError, ValidationError
from metacrud.domain import Project, User, UserProjectSettings
from metacrud_back.runtime.app_factory import Application
from metacrud_ui.runtime import (
    RelationPanel,
    project_members_panel,
    user_companies_panel,
    user_projects_panel,
)


class FakeStrategy:
    """In-memory strategy recording which operation received each call."""

    entity_type = "UserProjectSettings"
    master_field = "project"
    label = "project setting"

    def __init__(self, rows: list[UserProjectSettings] | None = None) -> None:
        self.rows = rows or []
        self.calls: list[tuple[str, Any]] = []
        self.fail_detach = False

    def list_for(self, master: Any) -> list[UserProjectSettings]:
        self.calls.append(("list_for", master.id))
        return [r for r in self.rows if r.project is not None and r.project.id == master.id]

    def new_setting(self, master: Any) -> UserProjectSettings:
        return UserProjectSettings(project=master)

    def attach(self, setting: UserProjectSettings) -> UserProjectSettings:
        self.calls.append(("attach", setting))
        saved = setting.model_copy(update={"id": len(self.rows) + 1, "version": 1})
        self.rows.append(saved)
        return saved

    def save(self, setting: UserProjectSettings) -> UserProjectSettings:
        self.calls.append(("save", setting))
        saved = setting.model_copy(update={"version": setting.version + 1})
        self.rows = [saved if r.id == saved.id else r for r in self.rows]
        return saved

    def endpoint_ids(self, setting: UserProjectSettings) -> tuple[int, int]:
        assert setting.user is not None and setting.project is not None
        return setting.user.id or 0, setting.project.id or 0

    def detach(self, first_id: int, second_id: int) -> bool:
        self.calls.append(("detach", (first_id, second_id)))
        if self.fail_detach:
            raise RuntimeError("backend unavailable")
        self.rows = [
            r
            for r in self.rows
            if not (r.user and r.user.id == first_id and r.project and r.project.id == second_id)
        ]
        return True

    def describe(self, setting: UserProjectSettings) -> str:
        return setting.user.name if setting.user and setting.user.name else "?"

    def operations(self) -> list[str]:
        return [name for name, _ in self.calls if name != "list_for"]


ADA = User(id=1, version=1, name="Ada", login="ada", email="ada@example.com")
APOLLO = Project(id=10, version=1, name="Apollo")


def _panel(
    catalog: MetadataCatalog, strategy: FakeStrategy, confirmer: Any, notifier: Any
) -> RelationPanel[Any]:
    panel: RelationPanel[Any] = RelationPanel(strategy, catalog, confirmer, notifier)
    panel.set_master(APOLLO)
    return panel


class TestRouting:
    def test_new_setting_goes_to_attach(
        self, catalog: MetadataCatalog, confirmer: Any, notifier: Any
    ) -> None:
        strategy = FakeStrategy()
        panel = _panel(catalog, strategy, confirmer, notifier)

        dialog = panel.add()
        assert dialog.is_new
        dialog.set_value("user", ADA)
        saved = dialog.confirm()

        assert strategy.operations() == ["attach"]
        assert saved.id == 1
        assert not dialog.is_open
        assert panel.selected is not None and panel.selected.id == 1

    def test_existing_setting_goes_to_save(
        self, catalog: MetadataCatalog, confirmer: Any, notifier: Any
    ) -> None:
        existing = UserProjectSettings(id=5, version=1, user=ADA, project=APOLLO)
        strategy = FakeStrategy([existing])
        panel = _panel(catalog, strategy, confirmer, notifier)

        dialog = panel.add(existing.model_copy(deep=True))
        assert not dialog.is_new
        dialog.set_value("role", "Manager")
        dialog.confirm()

        assert strategy.operations() == ["save"]
        assert panel.rows[0].role == "Manager"

    def test_edit_routes_to_save(
        self, catalog: MetadataCatalog, confirmer: Any, notifier: Any
    ) -> None:
        existing = UserProjectSettings(id=5, version=1, user=ADA, project=APOLLO)
        strategy = FakeStrategy([existing])
        panel = _panel(catalog, strategy, confirmer, notifier)
        panel.select_index(0)

        dialog = panel.edit()
        dialog.set_value("permission", "Write")
        dialog.confirm()

        assert strategy.operations() == ["save"]
        assert existing.permission == "Read"

    def test_master_field_is_read_only_in_dialog(
        self, catalog: MetadataCatalog, confirmer: Any, notifier: Any
    ) -> None:
        panel = _panel(catalog, FakeStrategy(), confirmer, notifier)
        dialog = panel.add()
        with pytest.raises(PreconditionError, match="read-only"):
            dialog.set_value("project", Project(id=11, name="Other"))

    def test_invalid_dialog_stays_open(
        self, catalog: MetadataCatalog, confirmer: Any, notifier: Any
    ) -> None:
        strategy = FakeStrategy()
        panel = _panel(catalog, strategy, confirmer, notifier)
        dialog = panel.add()

        with pytest.raises(ValidationError) as exc_info:
            dialog.confirm()
        assert exc_info.value.fields == ["user"]
        assert dialog.is_open
        assert strategy.operations() == []


class TestSelectionAndDelete:
    def test_add_requires_saved_master(
        self, catalog: MetadataCatalog, confirmer: Any, notifier: Any
    ) -> None:
        panel: RelationPanel[Any] = RelationPanel(FakeStrategy(), catalog, confirmer, notifier)
        panel.set_master(Project(name="Draft"))
        assert not panel.can_add
        with pytest.raises(PreconditionError, match="Save the record"):
            panel.add()

    def test_edit_and_delete_need_selection(
        self, catalog: MetadataCatalog, confirmer: Any, notifier: Any
    ) -> None:
        panel = _panel(catalog, FakeStrategy(), confirmer, notifier)
        assert not panel.can_edit
        with pytest.raises(PreconditionError, match="select a project setting to edit"):
            panel.edit()
        with pytest.raises(PreconditionError, match="select a project setting to delete"):
            panel.delete()
        assert confirmer.prompts == []

    def test_delete_detaches_by_endpoint_ids(
        self, catalog: MetadataCatalog, confirmer: Any, notifier: Any
    ) -> None:
        existing = UserProjectSettings(id=5, version=1, user=ADA, project=APOLLO)
        strategy = FakeStrategy([existing])
        panel = _panel(catalog, strategy, confirmer, notifier)
        panel.select_index(0)

        assert panel.delete() is True
        assert ("detach", (1, 10)) in strategy.calls
        assert panel.rows == []
        assert panel.selected is None
        assert confirmer.prompts == [
            "Are you sure you want to delete the project setting for 'Ada'? "
            "This action cannot be undone."
        ]

    def test_declined_delete_does_nothing(
        self, catalog: MetadataCatalog, declining_confirmer: Any, notifier: Any
    ) -> None:
        existing = UserProjectSettings(id=5, version=1, user=ADA, project=APOLLO)
        strategy = FakeStrategy([existing])
        panel = _panel(catalog, strategy, declining_confirmer, notifier)
        panel.select_index(0)

        assert panel.delete() is False
        assert strategy.operations() == []
        assert len(panel.rows) == 1

    def test_detach_failure_is_classified(
        self, catalog: MetadataCatalog, confirmer: Any, notifier: Any
    ) -> None:
        existing = UserProjectSettings(id=5, version=1, user=ADA, project=APOLLO)
        strategy = FakeStrategy([existing])
        strategy.fail_detach = True
        panel = _panel(catalog, strategy, confirmer, notifier)
        panel.select_index(0)

        with pytest.raises(CollaboratorFailure):
            panel.delete()
        assert notifier.errors == [CollaboratorFailure.user_message]

    def test_select_foreign_row_rejected(
        self, catalog: MetadataCatalog, confirmer: Any, notifier: Any
    ) -> None:
        panel = _panel(catalog, FakeStrategy(), confirmer, notifier)
        with pytest.raises(PreconditionError):
            panel.select(UserProjectSettings(id=99))

    def test_rows_are_reloaded_after_mutation(
        self, catalog: MetadataCatalog, confirmer: Any, notifier: Any
    ) -> None:
        strategy = FakeStrategy()
        panel = _panel(catalog, strategy, confirmer, notifier)
        reloads: list[int] = []
        panel.on_change = lambda: reloads.append(len(panel.rows))

        dialog = panel.add()
        dialog.set_value("user", ADA)
        dialog.confirm()

        assert reloads == [1]
        assert [name for name, _ in strategy.calls].count("list_for") == 2


class TestMembershipPanels:
    def test_project_members_round_trip(
        self,
        app: Application,
        saved_project: Any,
        saved_users: list[Any],
        confirmer: Any,
        notifier: Any,
    ) -> None:
        panel = project_members_panel(app.project_settings, app.catalog, confirmer, notifier)
        panel.set_master(saved_project)

        for user in saved_users:
            dialog = panel.add()
            dialog.set_value("user", user)
            dialog.confirm()

        assert [row.user.login for row in panel.rows] == ["ada", "alan"]
        assert [row["user"] for row in panel.grid_rows()] == ["Ada", "Alan"]

        mirror = user_projects_panel(app.project_settings, app.catalog, confirmer, notifier)
        mirror.set_master(saved_users[0])
        assert [row.project.name for row in mirror.rows] == ["Apollo"]

        panel.select_index(0)
        panel.delete()
        assert [row.user.login for row in panel.rows] == ["alan"]
        assert app.project_settings.find_by_pair(saved_users[0].id, saved_project.id) is None

    def test_duplicate_assignment_rejected(
        self,
        app: Application,
        saved_project: Any,
        saved_users: list[Any],
        confirmer: Any,
        notifier: Any,
    ) -> None:
        panel = project_members_panel(app.project_settings, app.catalog, confirmer, notifier)
        panel.set_master(saved_project)
        first = panel.add()
        first.set_value("user", saved_users[0])
        first.confirm()

        second = panel.add()
        second.set_value("user", saved_users[0])
        with pytest.raises(ValidationError) as exc_info:
            second.confirm()
        assert exc_info.value.field_errors["user"] == [
            "User is already assigned to this project. Use update instead."
        ]
        assert second.is_open
        assert len(panel.rows) == 1

    def test_company_membership(
        self,
        app: Application,
        saved_project: Any,
        saved_users: list[Any],
        confirmer: Any,
        notifier: Any,
    ) -> None:
        company = saved_project.company
        panel = user_companies_panel(app.company_settings, app.catalog, confirmer, notifier)
        panel.set_master(saved_users[1])

        dialog = panel.add()
        dialog.set_value("company", company)
        dialog.set_value("ownership_level", "25")
        saved = dialog.confirm()

        assert saved.ownership_level == 25
        assert saved.role == "Employee"
        assert [row.company.name for row in panel.rows] == ["Acme"]
