"""Tests for entity services, the service registry and relation settings."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

import pytest

from metacrud.core.errors import ConfigurationError, ValidationError
from metacrud.domain import Activity, Company, UserProjectSettings
from metacrud_back.runtime import ServiceRegistry, service_name, stamp_audit_dates
from metacrud_back.runtime.app_factory import Application


class TestEntityService:
    def test_new_instance_applies_defaults(self, app: Application) -> None:
        activity = app.service("Activity").new_instance()
        assert isinstance(activity, Activity)
        assert activity.id is None
        assert activity.name == "-"
        assert activity.progress == 0

    def test_save_validates_whole_instance(self, app: Application) -> None:
        service = app.service("Activity")
        with pytest.raises(ValidationError) as exc_info:
            service.save(Activity(name="Plan", progress=500))
        assert set(exc_info.value.fields) == {"project", "progress"}
        assert service.list_all() == []

    def test_save_and_find(self, app: Application, saved_project: Any) -> None:
        service = app.service("Activity")
        saved = service.save(Activity(name="Plan", project=saved_project))

        assert service.find_by_id(saved.id) == saved
        assert [a.id for a in service.find_by_field("project", saved_project)] == [saved.id]

    def test_delete(self, app: Application, saved_project: Any) -> None:
        service = app.service("Activity")
        saved = service.save(Activity(name="Plan", project=saved_project))
        service.delete(saved)
        assert service.list_all() == []

    def test_save_stamps_audit_dates(self, app: Application) -> None:
        service = app.service("Company")
        unsaved = Company(name="Acme")
        created = service.save(unsaved)

        assert created.created_date is not None
        assert created.last_modified_date == created.created_date
        assert unsaved.created_date is None

        updated = service.save(created.model_copy(update={"phone": "555"}))
        assert updated.created_date == created.created_date
        assert updated.last_modified_date is not None
        assert updated.last_modified_date >= created.last_modified_date

    def test_stamp_keeps_existing_created_date(self) -> None:
        earlier = datetime(2020, 1, 1, tzinfo=UTC)
        now = datetime(2024, 6, 1, tzinfo=UTC)
        stamped = stamp_audit_dates(Company(name="Acme", created_date=earlier), now=now)

        assert stamped.created_date == earlier
        assert stamped.last_modified_date == now

    def test_stamp_ignores_models_without_audit_fields(self) -> None:
        setting = UserProjectSettings()
        assert stamp_audit_dates(setting) is setting

    def test_options_list_lookup_values(self, app: Application, saved_project: Any) -> None:
        options = app.services.options("projectService")
        assert [p.name for p in options] == ["Apollo"]


class TestServiceRegistry:
    def test_service_name(self) -> None:
        assert service_name("Project") == "projectService"
        assert service_name("UserProjectSettings") == "userProjectSettingsService"

    def test_every_domain_type_has_a_service(self, app: Application) -> None:
        for entity_type in ("Company", "User", "Project", "Activity", "Meeting", "Risk"):
            assert app.service(entity_type).entity_type == entity_type
        assert "companyService" in app.services.names()

    def test_unknown_provider(self) -> None:
        with pytest.raises(ConfigurationError, match="Unknown lookup provider"):
            ServiceRegistry().get("nothingService")

    def test_duplicate_registration(self, app: Application) -> None:
        with pytest.raises(ConfigurationError, match="registered twice"):
            app.services.register("projectService", app.service("Project"))

    def test_every_lookup_provider_is_registered(self, app: Application) -> None:
        for entity_type in app.catalog.entity_types():
            for descriptor in app.catalog.describe(entity_type):
                if descriptor.lookup_provider_ref:
                    app.services.get(descriptor.lookup_provider_ref)


class TestRelationSettings:
    def test_attach_and_find(
        self, app: Application, saved_project: Any, saved_users: list[Any]
    ) -> None:
        service = app.project_settings
        ada, alan = saved_users
        service.add_user_to_project(UserProjectSettings(user=ada, project=saved_project))
        service.add_user_to_project(
            UserProjectSettings(user=alan, project=saved_project, role="Manager")
        )

        assert len(service.find_by_second_id(saved_project.id)) == 2
        assert len(service.find_by_first_id(ada.id)) == 1
        assert [s.user.login for s in service.find_by_role("Manager")] == ["alan"]
        assert service.find_by_pair(ada.id, saved_project.id) is not None

    def test_attach_needs_saved_endpoints(self, app: Application, saved_project: Any) -> None:
        from metacrud.domain import User

        with pytest.raises(ValidationError) as exc_info:
            app.project_settings.attach(
                UserProjectSettings(user=User(name="Ghost"), project=saved_project)
            )
        assert exc_info.value.field_errors == {"user": ["must be a saved record"]}

    def test_duplicate_pair_rejected(
        self, app: Application, saved_project: Any, saved_users: list[Any]
    ) -> None:
        service = app.project_settings
        service.attach(UserProjectSettings(user=saved_users[0], project=saved_project))
        with pytest.raises(ValidationError, match="user"):
            service.attach(UserProjectSettings(user=saved_users[0], project=saved_project))

    def test_detach(self, app: Application, saved_project: Any, saved_users: list[Any]) -> None:
        service = app.project_settings
        service.attach(UserProjectSettings(user=saved_users[0], project=saved_project))

        assert service.remove_user_from_project(saved_users[0].id, saved_project.id) is True
        assert service.remove_user_from_project(saved_users[0].id, saved_project.id) is False
        assert service.list_all() == []

    def test_company_settings(
        self, app: Application, saved_project: Any, saved_users: list[Any]
    ) -> None:
        from metacrud.domain import UserCompanySettings

        service = app.company_settings
        company = saved_project.company
        service.add_user_to_company(UserCompanySettings(user=saved_users[0], company=company))
        assert service.find_by_second_id(company.id)[0].role == "Employee"
        assert service.remove_user_from_company(saved_users[0].id, company.id)
