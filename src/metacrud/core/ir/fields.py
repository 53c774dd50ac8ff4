"""
Field descriptor definitions for metacrud IR.

This module contains the per-field presentation and validation metadata
that forms and grids are compiled from.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class FieldKind(StrEnum):
    """Semantic type of an entity attribute."""

    TEXT = "text"
    LONG_TEXT = "long_text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    DATETIME = "datetime"
    REFERENCE = "reference"
    MULTI_REFERENCE = "multi_reference"


REFERENCE_KINDS = frozenset({FieldKind.REFERENCE, FieldKind.MULTI_REFERENCE})
TEXT_KINDS = frozenset({FieldKind.TEXT, FieldKind.LONG_TEXT})

UNBOUNDED = -1


@dataclass(frozen=True)
class FieldMeta:
    """
    Declaration attached to a model attribute with ``Annotated``.

    Example::

        name: Annotated[str | None, FieldMeta(display_name="Activity Name", required=True, order=0)]

    A plain dataclass, so pydantic keeps it as opaque field metadata.
    ``kind`` and ``ref_entity`` left as None are inferred from the annotation.
    """

    display_name: str = "Field"
    description: str = ""
    kind: FieldKind | None = None
    required: bool = False
    read_only: bool = False
    hidden: bool = False
    order: int = 100
    max_length: int = UNBOUNDED
    min_value: float | None = None
    max_value: float | None = None
    default_value: str = ""
    lookup_provider_ref: str | None = None
    ref_entity: str | None = None


class FieldDescriptor(BaseModel):
    """
    Static metadata record for one entity field.

    Immutable once registered; uniquely keyed by (entity type, field_name).
    ``order`` is the rendering sort key, ties broken by ``declaration_index``.

    Attributes:
        field_name: Attribute name on the entity
        display_name: Label shown in forms and grid headers
        kind: Semantic type used to pick controls and cell formatting
        required: Value must be present to save
        read_only: Shown but not editable
        hidden: Excluded from compiled forms and grids
        order: Sort key (ascending)
        max_length: Maximum text length, -1 for unbounded
        min_value: Lower numeric bound, None for the type minimum
        max_value: Upper numeric bound, None for the type maximum
        default_value: Default for new instances, as a string
        lookup_provider_ref: Name of the provider of selectable options
        ref_entity: Referenced entity type for reference kinds
        declaration_index: Position in the entity declaration
    """

    field_name: str
    display_name: str = "Field"
    description: str = ""
    kind: FieldKind = FieldKind.TEXT
    required: bool = False
    read_only: bool = False
    hidden: bool = False
    order: int = Field(default=100, ge=0)
    max_length: int = UNBOUNDED
    min_value: float | None = None
    max_value: float | None = None
    default_value: str = ""
    lookup_provider_ref: str | None = None
    ref_entity: str | None = None
    declaration_index: int = 0

    model_config = ConfigDict(frozen=True)

    @field_validator("max_length")
    @classmethod
    def validate_max_length(cls, v: int) -> int:
        """Max length is positive or -1 for no limit."""
        if v != UNBOUNDED and v <= 0:
            raise ValueError(f"max_length must be > 0 or -1, got {v}")
        return v

    @model_validator(mode="after")
    def validate_reference_target(self) -> FieldDescriptor:
        if self.kind in REFERENCE_KINDS and not self.ref_entity:
            raise ValueError(f"Reference field '{self.field_name}' needs ref_entity")
        if (
            self.min_value is not None
            and self.max_value is not None
            and self.min_value > self.max_value
        ):
            raise ValueError(f"min_value > max_value on '{self.field_name}'")
        return self

    @property
    def is_reference(self) -> bool:
        return self.kind in REFERENCE_KINDS

    @property
    def sort_key(self) -> tuple[int, int]:
        return (self.order, self.declaration_index)


def sort_descriptors(descriptors: list[FieldDescriptor]) -> list[FieldDescriptor]:
    """Sort descriptors by order, keeping declaration order on ties."""
    return sorted(descriptors, key=lambda d: d.sort_key)
