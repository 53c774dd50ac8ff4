"""
Screen interpreter - resolves screen lines to descriptors.

A line type names either the screen's own entity type (by name or title)
or a related type reached through exactly one reference relationship::

    "Activity"             -> Activity
    "Project of Activity"  -> Activity.project -> Project
    "Assigned To of Activity" -> Activity.assigned_to -> User

Resolution happens once when a screen is opened; every failure is a
ConfigurationError raised at load time, never at render time.
"""

from __future__ import annotations

import logging

from metacrud.core.catalog import MetadataCatalog
from metacrud.core.errors import ConfigurationError, make_configuration_error
from metacrud.core.ir import EntityTypeSpec, FieldReference, ResolvedField, ScreenDefinition

logger = logging.getLogger(__name__)

HOP_SEPARATOR = " of "


def base_entity(screen: ScreenDefinition, catalog: MetadataCatalog) -> EntityTypeSpec:
    name = (screen.entity_type or "").strip()
    if catalog.has_entity(name):
        return catalog.entity(name)
    by_title = catalog.find_by_title(name)
    if by_title is not None:
        return by_title
    raise make_configuration_error(
        f"Unknown entity type '{name}'", entity_type=name or None, screen=screen.route
    )


def _names(spec: EntityTypeSpec) -> set[str]:
    return {spec.name, spec.title}


def resolve_line_type(
    line_type: str,
    base: EntityTypeSpec,
    catalog: MetadataCatalog,
    screen: str | None = None,
) -> tuple[EntityTypeSpec, tuple[str, ...]]:
    """
    Identify the entity type a line type refers to.

    Returns:
        The resolved type and the relationship path from the base type

    Raises:
        ConfigurationError: The hop does not exist, is ambiguous, or the
            line type names some unrelated base type
    """
    text = line_type.strip()
    if text in _names(base):
        return base, ()

    head, sep, tail = text.rpartition(HOP_SEPARATOR)
    if not sep or tail.strip() not in _names(base):
        raise make_configuration_error(
            f"Line type '{line_type}' is not reachable from {base.name}",
            entity_type=base.name,
            screen=screen,
        )

    head = head.strip()
    candidates = [
        rel
        for rel in base.relationships
        if head in (rel.label, rel.name, rel.target)
        or head == catalog.entity(rel.target).title
    ]
    if not candidates:
        raise make_configuration_error(
            f"No relationship '{head}' on {base.name}", entity_type=base.name, screen=screen
        )
    if len(candidates) > 1:
        names = ", ".join(rel.name for rel in candidates)
        raise make_configuration_error(
            f"Line type '{line_type}' is ambiguous ({names})",
            entity_type=base.name,
            screen=screen,
        )
    rel = candidates[0]
    return catalog.entity(rel.target), (rel.name,)


def resolve_reference(
    reference: FieldReference,
    base: EntityTypeSpec,
    catalog: MetadataCatalog,
    screen: str | None = None,
) -> ResolvedField:
    target, path = resolve_line_type(reference.entity_line_type, base, catalog, screen)
    descriptor = target.get_field(reference.field_name)
    if descriptor is None:
        raise make_configuration_error(
            f"Unknown field (line type '{reference.entity_line_type}')",
            entity_type=target.name,
            field_name=reference.field_name,
            screen=screen,
        )
    return ResolvedField(
        reference=reference,
        descriptor=descriptor,
        entity_type=target.name,
        path=path,
    )


def resolve(screen: ScreenDefinition, catalog: MetadataCatalog) -> tuple[ResolvedField, ...]:
    """
    Resolve every line of a screen, in display order.

    Resolution is a pure function of the definition and the (frozen)
    catalog, so resolving the same definition twice gives equal results.

    Raises:
        ConfigurationError: On the first line that does not resolve, or if
            the screen's entity type is unknown
    """
    base = base_entity(screen, catalog)
    resolved: list[ResolvedField] = []
    for reference in screen.fields:
        resolved.append(resolve_reference(reference, base, catalog, screen=screen.route))
    logger.debug("Resolved screen %s: %d fields on %s", screen.route, len(resolved), base.name)
    return tuple(resolved)


def try_resolve(
    screen: ScreenDefinition, catalog: MetadataCatalog
) -> tuple[tuple[ResolvedField, ...] | None, ConfigurationError | None]:
    """Resolve a screen, returning the error instead of raising it."""
    try:
        return resolve(screen, catalog), None
    except ConfigurationError as exc:
        return None, exc
