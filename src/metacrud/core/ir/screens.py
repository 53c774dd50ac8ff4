"""
Screen definition types for metacrud IR.

A screen definition is a persisted record describing a runnable page:
route, title, menu placement, security predicate and an ordered list of
field references, interpreted when the screen is opened.
"""

from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from .entities import Entity
from .fields import FieldDescriptor, FieldKind, FieldMeta


class FieldReference(BaseModel):
    """
    One screen line.

    Attributes:
        entity_line_type: The screen's entity ("Activity") or a related
            entity reached through one hop ("Project of Activity")
        field_name: Field on the resolved entity type
    """

    entity_line_type: str
    field_name: str

    model_config = ConfigDict(frozen=True)


class ScreenDefinition(Entity):
    """
    Persisted, administrator-editable screen record.

    ``fields`` is kept in display order.
    """

    route: Annotated[
        str | None,
        FieldMeta(display_name="Page route", required=True, order=10, max_length=100),
    ] = None
    title: Annotated[
        str | None,
        FieldMeta(
            display_name="Title",
            description="Use like Project.Page, separate parent with .",
            required=True,
            order=20,
            max_length=100,
        ),
    ] = None
    entity_type: Annotated[
        str | None,
        FieldMeta(display_name="Entity Type", required=True, order=30, max_length=100),
    ] = None
    parent_menu: Annotated[
        str,
        FieldMeta(display_name="Parent Menu", order=90, max_length=200),
    ] = ""
    security_permissions: Annotated[
        str,
        FieldMeta(
            display_name="Security Permissions",
            description="PermitAll, DenyAll, RolesAllowed(...), or empty for anonymous",
            order=80,
            max_length=500,
            default_value="PermitAll",
        ),
    ] = "PermitAll"
    order_priority: Annotated[
        str,
        FieldMeta(display_name="Order Priority", order=100, max_length=50, default_value="1.0"),
    ] = "1.0"
    description: Annotated[
        str,
        FieldMeta(
            display_name="Description", kind=FieldKind.LONG_TEXT, order=110, max_length=300
        ),
    ] = ""
    enabled: Annotated[
        bool,
        FieldMeta(display_name="Enabled", order=120, default_value="true"),
    ] = True
    fields: list[FieldReference] = Field(default_factory=list)

    @property
    def name(self) -> str | None:
        return self.title


class ResolvedField(BaseModel):
    """
    A screen line matched to its concrete descriptor.

    Attributes:
        reference: The screen line as persisted
        descriptor: Descriptor of the field on the resolved type
        entity_type: Entity type owning the descriptor
        path: Relationship hop from the screen's entity, empty for the base type
    """

    reference: FieldReference
    descriptor: FieldDescriptor
    entity_type: str
    path: tuple[str, ...] = ()

    model_config = ConfigDict(frozen=True)

    @property
    def key(self) -> str:
        """Dotted attribute path from the screen's entity."""
        return ".".join((*self.path, self.descriptor.field_name))

    @property
    def is_related(self) -> bool:
        return bool(self.path)
