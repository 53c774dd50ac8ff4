"""
Entity types for metacrud IR.

Entities are plain pydantic data models with a nullable identity and a
version token. Their field metadata is captured once in an EntityTypeSpec.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .fields import FieldDescriptor, FieldKind


class Entity(BaseModel):
    """
    Base data model for every managed entity.

    Attributes:
        id: Stable identity, None until persisted
        version: Optimistic-locking token, incremented on every write
    """

    id: int | None = None
    version: int = 0

    model_config = ConfigDict(extra="forbid")

    @property
    def is_persisted(self) -> bool:
        return self.id is not None


class RelationshipSpec(BaseModel):
    """
    A single navigable hop from one entity type to another.

    Attributes:
        name: Attribute holding the related entity (e.g. "project")
        target: Related entity type name (e.g. "Project")
        label: Field display name used in line types ("Project")
    """

    name: str
    target: str
    label: str

    model_config = ConfigDict(frozen=True)


class EntityTypeSpec(BaseModel):
    """
    Complete descriptor table for one entity type.

    Attributes:
        name: Entity type identifier (e.g. "Activity")
        title: Human-readable title used in line types and messages
        fields: Field descriptors in declaration order
        relationships: Navigable single-valued hops
    """

    name: str
    title: str
    fields: list[FieldDescriptor] = Field(default_factory=list)
    relationships: list[RelationshipSpec] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    def get_field(self, field_name: str) -> FieldDescriptor | None:
        for field in self.fields:
            if field.field_name == field_name:
                return field
        return None

    def get_relationship(self, name: str) -> RelationshipSpec | None:
        for rel in self.relationships:
            if rel.name == name:
                return rel
        return None


def derive_relationships(fields: list[FieldDescriptor]) -> list[RelationshipSpec]:
    """Every single-valued reference field is one navigable hop."""
    return [
        RelationshipSpec(name=f.field_name, target=f.ref_entity or "", label=f.display_name)
        for f in fields
        if f.kind == FieldKind.REFERENCE
    ]


def display_text(entity: Any) -> str:
    """Human-readable text for an entity reference."""
    if entity is None:
        return ""
    for attr in ("name", "login"):
        value = getattr(entity, attr, None)
        if value:
            return str(value)
    entity_id = getattr(entity, "id", None)
    return f"{type(entity).__name__} #{entity_id}" if entity_id is not None else type(entity).__name__
