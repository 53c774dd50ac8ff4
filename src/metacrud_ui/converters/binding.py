"""
Typed converter pairs between entity attributes and control values.

``to_field`` converts what the instance holds into what the control shows;
``from_field`` converts the control value back. Collection bindings copy in
both directions so a control never shares a list with an instance.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from metacrud.core.ir import FieldDescriptor, FieldKind

T = TypeVar("T")
F = TypeVar("F")


@dataclass(frozen=True)
class Binding(Generic[T, F]):
    to_field: Callable[[T], F]
    from_field: Callable[[F], T]


def _identity(value: Any) -> Any:
    return value


def _selection_from_collection(value: Iterable[Any] | None) -> list[Any]:
    return list(value) if value is not None else []


def _collection_from_selection(value: Iterable[Any] | None) -> list[Any]:
    if value is None:
        return []
    result: list[Any] = []
    seen: set[Any] = set()
    for item in value:
        marker = getattr(item, "id", None)
        key = ("id", marker) if marker is not None else ("obj", id(item))
        if key in seen:
            continue
        seen.add(key)
        result.append(item)
    return result


def _text_to_field(value: Any) -> Any:
    return "" if value is None else value


IDENTITY: Binding[Any, Any] = Binding(to_field=_identity, from_field=_identity)

MULTI_REFERENCE: Binding[list[Any], list[Any]] = Binding(
    to_field=_selection_from_collection,
    from_field=_collection_from_selection,
)

TEXT: Binding[str | None, str] = Binding(to_field=_text_to_field, from_field=_identity)


def binding_for(descriptor: FieldDescriptor) -> Binding[Any, Any]:
    if descriptor.kind == FieldKind.MULTI_REFERENCE:
        return MULTI_REFERENCE
    if descriptor.kind in (FieldKind.TEXT, FieldKind.LONG_TEXT):
        return TEXT
    return IDENTITY
