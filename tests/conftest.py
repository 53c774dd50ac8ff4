"""Shared pytest fixtures for metacrud tests."""

from __future__ import annotations

from typing import Any

import pytest

from metacrud.core.catalog import MetadataCatalog
from metacrud_back.config import AppConfig, LoggingConfig
from metacrud_back.runtime.app_factory import Application, build_application, build_catalog


class RecordingNotifier:
    """Notifier that keeps every message for assertions."""

    def __init__(self) -> None:
        self.successes: list[str] = []
        self.errors: list[str] = []

    def success(self, message: str) -> None:
        self.successes.append(message)

    def error(self, message: str) -> None:
        self.errors.append(message)


class RecordingConfirmer:
    """Confirmer answering from a fixed policy and recording prompts."""

    def __init__(self, answer: bool = True) -> None:
        self.answer = answer
        self.prompts: list[str] = []

    def confirm(self, message: str) -> bool:
        self.prompts.append(message)
        return self.answer


@pytest.fixture
def catalog() -> MetadataCatalog:
    """Frozen catalog with the project-management domain registered."""
    return build_catalog()


@pytest.fixture
def app() -> Application:
    """In-memory application without log handlers."""
    return build_application(AppConfig(logging=LoggingConfig(enabled=False)))


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def confirmer() -> RecordingConfirmer:
    return RecordingConfirmer(answer=True)


@pytest.fixture
def declining_confirmer() -> RecordingConfirmer:
    return RecordingConfirmer(answer=False)


@pytest.fixture
def saved_project(app: Application) -> Any:
    """A persisted project owned by a persisted company."""
    from metacrud.domain import Company, Project

    company = app.service("Company").save(Company(name="Acme"))
    return app.service("Project").save(Project(name="Apollo", company=company))


@pytest.fixture
def saved_users(app: Application) -> list[Any]:
    from metacrud.domain import User

    users = app.service("User")
    return [
        users.save(User(name="Ada", lastname="Lovelace", login="ada", email="ada@example.com")),
        users.save(User(name="Alan", lastname="Turing", login="alan", email="alan@example.com")),
    ]
