"""
Project-management domain: the entity models managed by generic screens.

``register_domain`` records every model in a catalog. Titles are the
human-readable names used in screen line types ("Project of Activity").
"""

from __future__ import annotations

from metacrud.core.catalog import MetadataCatalog
from metacrud.core.ir import Entity

from .memberships import Permission, ProjectRole, UserCompanySettings, UserProjectSettings
from .organization import Company, User
from .projects import Activity, Decision, Meeting, Order, Project, Risk

DOMAIN_MODELS: list[tuple[type[Entity], str]] = [
    (Company, "Company"),
    (User, "User"),
    (Project, "Project"),
    (Activity, "Activity"),
    (Meeting, "Meeting"),
    (Decision, "Decision"),
    (Risk, "Risk"),
    (Order, "Order"),
    (UserProjectSettings, "Project Setting"),
    (UserCompanySettings, "Company Setting"),
]


def register_domain(catalog: MetadataCatalog) -> None:
    """Register every domain model. The caller freezes the catalog."""
    for model_cls, title in DOMAIN_MODELS:
        catalog.register_model(model_cls, title=title)


__all__ = [
    "Activity",
    "Company",
    "DOMAIN_MODELS",
    "Decision",
    "Meeting",
    "Order",
    "Permission",
    "Project",
    "ProjectRole",
    "Risk",
    "User",
    "UserCompanySettings",
    "UserProjectSettings",
    "register_domain",
]
