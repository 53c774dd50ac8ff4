"""
Descriptor-driven value coercion and validation.

Shared by the form compiler (control values) and the generic entity
service (whole instances), so both report the same per-field messages.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from .ir import FieldDescriptor, FieldKind, TEXT_KINDS, UNBOUNDED

_TRUE = frozenset({"true", "1", "yes", "on"})
_FALSE = frozenset({"false", "0", "no", "off"})


class CoercionError(ValueError):
    """Raised when a raw value cannot be converted to the field's kind."""


def is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, set, frozenset, tuple)):
        return len(value) == 0
    return False


def coerce_value(descriptor: FieldDescriptor, value: Any) -> Any:
    """
    Convert a raw control value to the descriptor's kind.

    Strings coming from text inputs are parsed for numbers, booleans and
    dates. Empty strings become None for non-text kinds.

    Raises:
        CoercionError: If the value cannot be converted.
    """
    kind = descriptor.kind
    if value is None or kind in TEXT_KINDS:
        return value
    if isinstance(value, str):
        raw = value.strip()
        if raw == "":
            return None
        if kind == FieldKind.NUMBER:
            try:
                return int(raw)
            except ValueError:
                pass
            try:
                return Decimal(raw)
            except InvalidOperation as exc:
                raise CoercionError("must be a number") from exc
        if kind == FieldKind.BOOLEAN:
            lowered = raw.lower()
            if lowered in _TRUE:
                return True
            if lowered in _FALSE:
                return False
            raise CoercionError("must be true or false")
        if kind == FieldKind.DATE:
            try:
                return date.fromisoformat(raw)
            except ValueError as exc:
                raise CoercionError("must be a date (YYYY-MM-DD)") from exc
        if kind == FieldKind.DATETIME:
            try:
                return datetime.fromisoformat(raw)
            except ValueError as exc:
                raise CoercionError("must be an ISO 8601 date and time") from exc
    return value


def check_value(descriptor: FieldDescriptor, value: Any) -> list[str]:
    """
    Validate an already coerced value against its descriptor.

    Returns:
        Error messages, empty when the value is valid.
    """
    errors: list[str] = []
    if is_empty(value):
        if descriptor.required:
            errors.append(f"{descriptor.display_name} is required")
        return errors

    kind = descriptor.kind
    if kind in TEXT_KINDS:
        if not isinstance(value, str):
            errors.append("must be text")
        elif descriptor.max_length != UNBOUNDED and len(value) > descriptor.max_length:
            errors.append(f"must be at most {descriptor.max_length} characters")
    elif kind == FieldKind.NUMBER:
        if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
            errors.append("must be a number")
        else:
            if descriptor.min_value is not None and value < descriptor.min_value:
                errors.append(f"must be at least {descriptor.min_value:g}")
            if descriptor.max_value is not None and value > descriptor.max_value:
                errors.append(f"must be at most {descriptor.max_value:g}")
    elif kind == FieldKind.BOOLEAN:
        if not isinstance(value, bool):
            errors.append("must be true or false")
    elif kind == FieldKind.DATETIME:
        if not isinstance(value, datetime):
            errors.append("must be a date and time")
    elif kind == FieldKind.DATE:
        if not isinstance(value, date):
            errors.append("must be a date")
    elif kind == FieldKind.MULTI_REFERENCE:
        if not isinstance(value, Iterable) or isinstance(value, (str, bytes)):
            errors.append("must be a selection")
    return errors


def default_for(descriptor: FieldDescriptor) -> Any:
    """Parsed ``default_value`` of a descriptor, or None when it has none."""
    if descriptor.default_value == "" or descriptor.is_reference:
        return None
    try:
        return coerce_value(descriptor, descriptor.default_value)
    except CoercionError:
        return None


def validate_instance(
    descriptors: Iterable[FieldDescriptor], instance: Any
) -> dict[str, list[str]]:
    """
    Validate every non read-only described attribute of an entity instance.

    Returns:
        Mapping of field name to messages, only for failing fields.
    """
    field_errors: dict[str, list[str]] = {}
    for descriptor in descriptors:
        if descriptor.read_only:
            continue
        messages = check_value(descriptor, getattr(instance, descriptor.field_name, None))
        if messages:
            field_errors[descriptor.field_name] = messages
    return field_errors
