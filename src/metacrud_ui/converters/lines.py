"""
Normalized field lines shared by the form and grid compilers.

Both compilers accept either catalog descriptors or resolved screen lines.
A line carries the descriptor plus the dotted attribute path used to read
the value from the screen's entity.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from metacrud.core.errors import ConfigurationError
from metacrud.core.ir import FieldDescriptor, ResolvedField, sort_descriptors

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldLine:
    descriptor: FieldDescriptor
    key: str
    related: bool = False

    @property
    def label(self) -> str:
        return self.descriptor.display_name


def to_lines(fields: Iterable[FieldDescriptor | ResolvedField]) -> list[FieldLine]:
    """
    Normalize compiler input, dropping hidden descriptors.

    Plain descriptors are sorted by order (ties by declaration); resolved
    screen lines keep the screen's display order.

    Raises:
        ConfigurationError: The same attribute path appears twice
    """
    items = list(fields)
    if items and all(isinstance(item, FieldDescriptor) for item in items):
        descriptors = sort_descriptors(items)  # type: ignore[arg-type]
        lines = [FieldLine(descriptor=d, key=d.field_name) for d in descriptors]
    else:
        lines = []
        for item in items:
            if isinstance(item, ResolvedField):
                lines.append(
                    FieldLine(descriptor=item.descriptor, key=item.key, related=item.is_related)
                )
            else:
                lines.append(FieldLine(descriptor=item, key=item.field_name))

    visible = [line for line in lines if not line.descriptor.hidden]

    seen: set[str] = set()
    orders: dict[int, str] = {}
    for line in visible:
        if line.key in seen:
            raise ConfigurationError(f"Field '{line.key}' appears twice")
        seen.add(line.key)
        if not line.related:
            other = orders.setdefault(line.descriptor.order, line.key)
            if other != line.key:
                logger.warning(
                    "Fields %s and %s share display order %d",
                    other,
                    line.key,
                    line.descriptor.order,
                )
    return visible


def read_path(instance: Any, key: str) -> Any:
    """Read a dotted attribute path; None as soon as a link is missing."""
    value = instance
    for part in key.split("."):
        if value is None:
            return None
        value = getattr(value, part, None)
    return value
