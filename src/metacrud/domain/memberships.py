"""
Join entities between users and projects or companies.

These are created, edited and deleted only through relation panels.
Deleting either endpoint does not cascade to its settings.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated

from metacrud.core.ir import Entity, FieldMeta

from .organization import Company, User
from .projects import Project


class ProjectRole(StrEnum):
    MANAGER = "Manager"
    MEMBER = "Member"
    OBSERVER = "Observer"


class Permission(StrEnum):
    READ = "Read"
    WRITE = "Write"
    ADMIN = "Admin"


class UserProjectSettings(Entity):
    user: Annotated[
        User | None,
        FieldMeta(display_name="User", required=True, order=0, lookup_provider_ref="userService"),
    ] = None
    project: Annotated[
        Project | None,
        FieldMeta(
            display_name="Project", required=True, order=1, lookup_provider_ref="projectService"
        ),
    ] = None
    role: Annotated[
        str,
        FieldMeta(
            display_name="Role", order=10, max_length=50, default_value=ProjectRole.MEMBER.value
        ),
    ] = ProjectRole.MEMBER.value
    permission: Annotated[
        str,
        FieldMeta(
            display_name="Permission", order=11, max_length=50, default_value=Permission.READ.value
        ),
    ] = Permission.READ.value

    @property
    def name(self) -> str:
        user = self.user.name if self.user else "?"
        project = self.project.name if self.project else "?"
        return f"{user} / {project}"


class UserCompanySettings(Entity):
    user: Annotated[
        User | None,
        FieldMeta(display_name="User", required=True, order=0, lookup_provider_ref="userService"),
    ] = None
    company: Annotated[
        Company | None,
        FieldMeta(
            display_name="Company", required=True, order=1, lookup_provider_ref="companyService"
        ),
    ] = None
    role: Annotated[
        str, FieldMeta(display_name="Role", order=10, max_length=50, default_value="Employee")
    ] = "Employee"
    ownership_level: Annotated[
        int | None,
        FieldMeta(
            display_name="Ownership %", order=11, min_value=0, max_value=100, default_value="0"
        ),
    ] = None

    @property
    def name(self) -> str:
        user = self.user.name if self.user else "?"
        company = self.company.name if self.company else "?"
        return f"{user} / {company}"
