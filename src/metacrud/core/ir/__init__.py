"""
metacrud Internal Representation.

Descriptor, entity and screen definition types shared by the catalog,
the compilers and the lifecycle runtime.
"""

from .entities import (
    Entity,
    EntityTypeSpec,
    RelationshipSpec,
    derive_relationships,
    display_text,
)
from .fields import (
    REFERENCE_KINDS,
    TEXT_KINDS,
    UNBOUNDED,
    FieldDescriptor,
    FieldKind,
    FieldMeta,
    sort_descriptors,
)
from .screens import FieldReference, ResolvedField, ScreenDefinition

__all__ = [
    # Fields
    "FieldDescriptor",
    "FieldKind",
    "FieldMeta",
    "REFERENCE_KINDS",
    "TEXT_KINDS",
    "UNBOUNDED",
    "sort_descriptors",
    # Entities
    "Entity",
    "EntityTypeSpec",
    "RelationshipSpec",
    "derive_relationships",
    "display_text",
    # Screens
    "FieldReference",
    "ResolvedField",
    "ScreenDefinition",
]
