"""
Metadata catalog - static descriptor table per entity type.

Descriptors are registered once per entity type at startup, either from an
explicit EntityTypeSpec or extracted from ``Annotated[..., FieldMeta(...)]``
declarations on a pydantic model. After ``freeze()`` the table is read-only
and lookups need no locking.
"""

from __future__ import annotations

import logging
import types
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Union, get_args, get_origin, overload

from .errors import ConfigurationError, make_configuration_error
from .ir import (
    Entity,
    EntityTypeSpec,
    FieldDescriptor,
    FieldKind,
    FieldMeta,
    RelationshipSpec,
    derive_relationships,
    sort_descriptors,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Model Introspection (registration time only)
# =============================================================================


def _unwrap_optional(annotation: Any) -> Any:
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        args = [a for a in get_args(annotation) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


def _infer_kind(annotation: Any) -> tuple[FieldKind, str | None]:
    """Map a model annotation to a field kind and referenced entity name."""
    tp = _unwrap_optional(annotation)
    origin = get_origin(tp)
    if origin in (list, set, frozenset, tuple):
        args = get_args(tp)
        if args and isinstance(args[0], type) and issubclass(args[0], Entity):
            return FieldKind.MULTI_REFERENCE, args[0].__name__
        raise ConfigurationError(f"Unsupported collection annotation: {annotation!r}")
    if isinstance(tp, type):
        if issubclass(tp, Entity):
            return FieldKind.REFERENCE, tp.__name__
        if issubclass(tp, bool):
            return FieldKind.BOOLEAN, None
        if issubclass(tp, (int, float, Decimal)):
            return FieldKind.NUMBER, None
        # datetime subclasses date, check it first
        if issubclass(tp, datetime):
            return FieldKind.DATETIME, None
        if issubclass(tp, date):
            return FieldKind.DATE, None
        if issubclass(tp, str):
            return FieldKind.TEXT, None
    raise ConfigurationError(f"Cannot infer field kind from annotation: {annotation!r}")


def entity_spec_from_model(
    model_cls: type[Entity],
    title: str | None = None,
) -> EntityTypeSpec:
    """
    Build an EntityTypeSpec from FieldMeta declarations on a model.

    Only attributes carrying a FieldMeta are described.

    Args:
        model_cls: Entity model class
        title: Human-readable title (defaults to the class name)

    Returns:
        EntityTypeSpec with descriptors in declaration order
    """
    name = model_cls.__name__
    descriptors: list[FieldDescriptor] = []
    for field_name, info in model_cls.model_fields.items():
        meta = next((m for m in info.metadata if isinstance(m, FieldMeta)), None)
        if meta is None:
            continue
        try:
            inferred_kind, inferred_ref = _infer_kind(info.annotation)
        except ConfigurationError as exc:
            raise make_configuration_error(
                exc.message, entity_type=name, field_name=field_name
            ) from exc
        descriptors.append(
            FieldDescriptor(
                field_name=field_name,
                display_name=meta.display_name,
                description=meta.description,
                kind=meta.kind or inferred_kind,
                required=meta.required,
                read_only=meta.read_only,
                hidden=meta.hidden,
                order=meta.order,
                max_length=meta.max_length,
                min_value=meta.min_value,
                max_value=meta.max_value,
                default_value=meta.default_value,
                lookup_provider_ref=meta.lookup_provider_ref,
                ref_entity=meta.ref_entity or inferred_ref,
                declaration_index=len(descriptors),
            )
        )
    return EntityTypeSpec(
        name=name,
        title=title or name,
        fields=descriptors,
        relationships=derive_relationships(descriptors),
    )


# =============================================================================
# Catalog
# =============================================================================


class MetadataCatalog:
    """
    Registry of entity descriptor tables.

    Registration happens once per entity type; ``freeze()`` closes
    registration and checks that every reference target is known.
    """

    def __init__(self) -> None:
        self._entities: dict[str, EntityTypeSpec] = {}
        self._models: dict[str, type[Entity]] = {}
        self._sorted: dict[str, tuple[FieldDescriptor, ...]] = {}
        self._visible: dict[str, tuple[FieldDescriptor, ...]] = {}
        self._frozen = False

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def register(self, spec: EntityTypeSpec, model: type[Entity] | None = None) -> EntityTypeSpec:
        """
        Register the descriptor table of one entity type.

        Raises:
            ConfigurationError: If the catalog is frozen, the type is already
                registered, or two descriptors share a field name.
        """
        if self._frozen:
            raise make_configuration_error(
                "Catalog is frozen; registration is closed", entity_type=spec.name
            )
        if spec.name in self._entities:
            raise make_configuration_error(
                "Entity type registered twice", entity_type=spec.name
            )

        seen: set[str] = set()
        stamped: list[FieldDescriptor] = []
        for index, descriptor in enumerate(spec.fields):
            if descriptor.field_name in seen:
                raise make_configuration_error(
                    "Duplicate field descriptor",
                    entity_type=spec.name,
                    field_name=descriptor.field_name,
                )
            seen.add(descriptor.field_name)
            stamped.append(descriptor.model_copy(update={"declaration_index": index}))

        spec = spec.model_copy(update={"fields": stamped})
        ordered = tuple(sort_descriptors(stamped))
        self._entities[spec.name] = spec
        self._sorted[spec.name] = ordered
        self._visible[spec.name] = tuple(d for d in ordered if not d.hidden)
        if model is not None:
            self._models[spec.name] = model

        logger.debug("Registered entity type %s (%d fields)", spec.name, len(stamped))
        return spec

    def register_model(self, model_cls: type[Entity], title: str | None = None) -> EntityTypeSpec:
        """Extract descriptors from a model's FieldMeta declarations and register them."""
        return self.register(entity_spec_from_model(model_cls, title=title), model=model_cls)

    def freeze(self) -> None:
        """
        Close registration.

        Raises:
            ConfigurationError: If a reference field targets an unregistered type.
        """
        for spec in self._entities.values():
            for descriptor in spec.fields:
                if descriptor.ref_entity and descriptor.ref_entity not in self._entities:
                    raise make_configuration_error(
                        f"Reference target '{descriptor.ref_entity}' is not registered",
                        entity_type=spec.name,
                        field_name=descriptor.field_name,
                    )
        self._frozen = True
        logger.info("Metadata catalog frozen with %d entity types", len(self._entities))

    @property
    def frozen(self) -> bool:
        return self._frozen

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    @overload
    def describe(self, entity_type: str) -> tuple[FieldDescriptor, ...]: ...

    @overload
    def describe(self, entity_type: str, field_name: str) -> FieldDescriptor: ...

    def describe(
        self, entity_type: str, field_name: str | None = None
    ) -> tuple[FieldDescriptor, ...] | FieldDescriptor:
        """
        Look up descriptors.

        ``describe(entity_type)`` returns every descriptor sorted by order,
        hidden ones included. ``describe(entity_type, field_name)`` returns one
        descriptor.

        Raises:
            ConfigurationError: Unknown entity type or field.
        """
        if field_name is None:
            self.entity(entity_type)
            return self._sorted[entity_type]
        descriptor = self.entity(entity_type).get_field(field_name)
        if descriptor is None:
            raise make_configuration_error(
                "Unknown field", entity_type=entity_type, field_name=field_name
            )
        return descriptor

    def visible(self, entity_type: str) -> tuple[FieldDescriptor, ...]:
        """Sorted descriptors with hidden ones excluded."""
        self.entity(entity_type)
        return self._visible[entity_type]

    def entity(self, entity_type: str) -> EntityTypeSpec:
        spec = self._entities.get(entity_type)
        if spec is None:
            raise make_configuration_error("Unknown entity type", entity_type=entity_type)
        return spec

    def has_entity(self, entity_type: str) -> bool:
        return entity_type in self._entities

    def model(self, entity_type: str) -> type[Entity]:
        """Model class registered for an entity type."""
        model = self._models.get(entity_type)
        if model is None:
            raise make_configuration_error(
                "No model class registered", entity_type=entity_type
            )
        return model

    def relationships(self, entity_type: str) -> list[RelationshipSpec]:
        return list(self.entity(entity_type).relationships)

    def entity_types(self) -> list[str]:
        return list(self._entities)

    def find_by_title(self, title: str) -> EntityTypeSpec | None:
        for spec in self._entities.values():
            if spec.title == title:
                return spec
        return None
