"""Tests for screen definitions: store, TOML seeds, security and menus."""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path

import pytest

from metacrud.core.catalog import MetadataCatalog
from metacrud.core.errors import ConfigurationError, ValidationError
from metacrud.core.ir import FieldReference, ScreenDefinition
from metacrud.screens import (
    AccessKind,
    ScreenDefinitionStore,
    SecurityPredicate,
    build_menu,
    load_screens_toml,
    parse_screens,
)
from metacrud.screens.menu import parse_priority
from metacrud_back.runtime import InMemoryRepository


def _store(catalog: MetadataCatalog) -> ScreenDefinitionStore:
    return ScreenDefinitionStore(InMemoryRepository(ScreenDefinition), catalog)


def _definition(route: str, title: str, **kwargs: object) -> ScreenDefinition:
    fields = kwargs.pop("fields", [FieldReference(entity_line_type="Activity", field_name="name")])
    return ScreenDefinition(
        route=route,
        title=title,
        entity_type=kwargs.pop("entity_type", "Activity"),
        fields=fields,
        **kwargs,
    )


class TestScreenDefinitionStore:
    def test_save_and_load(self, catalog: MetadataCatalog) -> None:
        store = _store(catalog)
        saved = store.save(
            _definition(
                "activities",
                "Project.Activities",
                fields=[
                    FieldReference(entity_line_type="Activity", field_name="name"),
                    FieldReference(entity_line_type="Project of Activity", field_name="name"),
                ],
            )
        )
        assert saved.id is not None

        loaded = store.load("activities")
        assert loaded.definition.route == "activities"
        assert [f.key for f in loaded.fields] == ["name", "project.name"]

    def test_unknown_route(self, catalog: MetadataCatalog) -> None:
        with pytest.raises(ConfigurationError, match="Unknown screen route"):
            _store(catalog).load("nowhere")

    def test_unresolvable_line_rejected_on_save(self, catalog: MetadataCatalog) -> None:
        store = _store(catalog)
        bad = _definition(
            "broken",
            "Broken",
            fields=[FieldReference(entity_line_type="Budget of Activity", field_name="name")],
        )
        with pytest.raises(ConfigurationError):
            store.save(bad)
        assert store.get("broken") is None

    def test_required_attributes(self, catalog: MetadataCatalog) -> None:
        with pytest.raises(ValidationError) as exc_info:
            _store(catalog).save(ScreenDefinition())
        assert set(exc_info.value.fields) == {"route", "title", "entity_type"}

    def test_route_and_title_unique(self, catalog: MetadataCatalog) -> None:
        store = _store(catalog)
        store.save(_definition("activities", "Activities"))

        with pytest.raises(ValidationError) as exc_info:
            store.save(_definition("activities", "Activities"))
        assert set(exc_info.value.fields) == {"route", "title"}
        assert exc_info.value.field_errors["route"] == [
            "'activities' is already used by another screen"
        ]

    def test_resave_same_definition_is_not_a_clash(self, catalog: MetadataCatalog) -> None:
        store = _store(catalog)
        saved = store.save(_definition("activities", "Activities"))
        saved.description = "All activities"
        again = store.save(saved)
        assert again.version == saved.version + 1

    def test_priority_and_security_checked(self, catalog: MetadataCatalog) -> None:
        store = _store(catalog)
        bad = _definition(
            "activities",
            "Activities",
            order_priority="first",
            security_permissions="Everyone",
        )
        errors = store.validate(bad)
        assert errors["order_priority"] == ["must be a decimal number"]
        assert "security_permissions" in errors

    @pytest.mark.parametrize("priority", ["NaN", "sNaN", "Infinity", "-Infinity"])
    def test_non_finite_priority_rejected(self, catalog: MetadataCatalog, priority: str) -> None:
        store = _store(catalog)
        with pytest.raises(ValidationError) as exc_info:
            store.save(_definition("b", "B", order_priority=priority))
        assert exc_info.value.field_errors == {
            "order_priority": ["must be a finite decimal number"]
        }
        assert store.list() == []

    def test_list_survives_stored_nan_priority(self, catalog: MetadataCatalog) -> None:
        repository = InMemoryRepository(ScreenDefinition)
        store = ScreenDefinitionStore(repository, catalog)
        store.save(_definition("a", "A", order_priority="2.0"))
        repository.save(_definition("b", "B", order_priority="NaN"))

        assert [s.route for s in store.list()] == ["b", "a"]
        assert [i.route for i in store.menu()] == ["b", "a"]

    def test_list_orders_by_priority(self, catalog: MetadataCatalog) -> None:
        store = _store(catalog)
        store.save(_definition("b", "B", order_priority="2.0"))
        store.save(_definition("a", "A", order_priority="10"))
        store.save(_definition("c", "C", order_priority="1.5", enabled=False))

        assert [s.route for s in store.list()] == ["c", "b", "a"]
        assert [s.route for s in store.list(enabled_only=True)] == ["b", "a"]

    def test_seed_skips_existing_routes(self, catalog: MetadataCatalog) -> None:
        store = _store(catalog)
        store.save(_definition("activities", "Activities"))
        added = store.seed(
            [_definition("activities", "Other"), _definition("risks", "Risks")]
        )
        assert added == 1
        assert store.get("activities").title == "Activities"  # type: ignore[union-attr]

    def test_delete(self, catalog: MetadataCatalog) -> None:
        store = _store(catalog)
        saved = store.save(_definition("activities", "Activities"))
        store.delete(saved)
        assert store.get("activities") is None


class TestScreensToml:
    def test_load_with_shorthand_fields(self, tmp_path: Path) -> None:
        seed = tmp_path / "screens.toml"
        seed.write_text(
            "[[screen]]\n"
            'route = "activities"\n'
            'title = "Project.Activities"\n'
            'entity_type = "Activity"\n'
            "order_priority = 1.5\n"
            "fields = [\n"
            '    "name",\n'
            '    { entity_line_type = "Project of Activity", field_name = "name" },\n'
            "]\n"
        )
        definitions = load_screens_toml(seed)

        assert len(definitions) == 1
        screen = definitions[0]
        assert screen.order_priority == "1.5"
        assert screen.security_permissions == "PermitAll"
        assert screen.fields[0] == FieldReference(entity_line_type="Activity", field_name="name")
        assert screen.fields[1].entity_line_type == "Project of Activity"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="not found"):
            load_screens_toml(tmp_path / "nope.toml")

    def test_invalid_toml(self, tmp_path: Path) -> None:
        seed = tmp_path / "screens.toml"
        seed.write_text("[[screen]\nroute = ")
        with pytest.raises(ConfigurationError, match="Invalid TOML"):
            load_screens_toml(seed)

    def test_missing_required_key(self) -> None:
        with pytest.raises(ConfigurationError, match="Invalid screen definitions"):
            parse_screens({"screen": [{"route": "x"}]})


class TestSecurityPredicate:
    def test_parse_kinds(self) -> None:
        assert SecurityPredicate.parse("").kind == AccessKind.ANONYMOUS
        assert SecurityPredicate.parse("PermitAll").kind == AccessKind.PERMIT_ALL
        assert SecurityPredicate.parse("DenyAll").kind == AccessKind.DENY_ALL
        roles = SecurityPredicate.parse("RolesAllowed(ADMIN, 'USER')")
        assert roles.kind == AccessKind.ROLES
        assert roles.roles == frozenset({"ADMIN", "USER"})

    def test_unrecognized_expression(self) -> None:
        with pytest.raises(ValueError):
            SecurityPredicate.parse("AllowSome")
        with pytest.raises(ValueError):
            SecurityPredicate.parse("RolesAllowed()")

    def test_permits(self) -> None:
        assert SecurityPredicate.parse("").permits((), authenticated=False)
        assert not SecurityPredicate.parse("PermitAll").permits((), authenticated=False)
        assert SecurityPredicate.parse("PermitAll").permits(())
        assert not SecurityPredicate.parse("DenyAll").permits({"ADMIN"})
        admin_only = SecurityPredicate.parse("RolesAllowed(ADMIN)")
        assert admin_only.permits({"ADMIN", "USER"})
        assert not admin_only.permits({"USER"})

    def test_str_round_trip(self) -> None:
        assert str(SecurityPredicate.parse("RolesAllowed(USER, ADMIN)")) == "RolesAllowed(ADMIN, USER)"


class TestBuildMenu:
    def test_groups_from_dotted_titles(self) -> None:
        screens = [
            _definition("risks", "Project.Risks", order_priority="2"),
            _definition("activities", "Project.Activities", order_priority="1"),
            _definition("companies", "Companies", order_priority="5"),
        ]
        menu = build_menu(screens)

        assert [item.label for item in menu] == ["Project", "Companies"]
        project = menu[0]
        assert project.is_group
        assert project.priority == Decimal("1")
        assert [child.label for child in project.children] == ["Activities", "Risks"]

    def test_parent_menu_overrides_title(self) -> None:
        menu = build_menu([_definition("users", "Users", parent_menu="Admin.People")])
        admin = menu[0]
        assert admin.label == "Admin"
        people = admin.child("People")
        assert people is not None
        assert people.children[0].route == "users"
        assert admin.find("users") is people.children[0]

    def test_filters_disabled_and_forbidden(self) -> None:
        screens = [
            _definition("open", "Open", security_permissions=""),
            _definition("admin", "Admin", security_permissions="RolesAllowed(ADMIN)"),
            _definition("off", "Off", enabled=False),
            _definition("broken", "Broken", security_permissions="Whatever"),
        ]
        assert [i.route for i in build_menu(screens, roles={"USER"})] == ["open"]
        assert [i.route for i in build_menu(screens, roles={"ADMIN"})] == ["admin", "open"]

    def test_non_finite_priority_uses_default(self) -> None:
        screens = [
            _definition("later", "Later", order_priority="3"),
            _definition("odd", "Odd", order_priority="NaN"),
            _definition("huge", "Huge", order_priority="Infinity"),
        ]
        menu = build_menu(screens)

        assert [i.route for i in menu] == ["huge", "odd", "later"]
        assert parse_priority("sNaN") == Decimal("1.0")
        assert parse_priority(" 2.5 ") == Decimal("2.5")
        assert parse_priority("") == Decimal("1.0")
