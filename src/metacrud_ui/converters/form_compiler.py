"""
Form compiler - descriptors to an editable, bound field set.

One FieldControl per visible descriptor, typed by the descriptor's kind.
Read-only descriptors and fields reached through a relationship hop are
bound for display but not editable. Values move between the instance and
the controls only through each control's Binding.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Collection, Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from metacrud.core.errors import ErrorContext, PreconditionError, ValidationError
from metacrud.core.ir import Entity, FieldDescriptor, FieldKind, ResolvedField
from metacrud.core.validation import CoercionError, check_value, coerce_value, default_for, is_empty

from .binding import Binding, binding_for
from .lines import FieldLine, read_path, to_lines

logger = logging.getLogger(__name__)


# =============================================================================
# Control Types
# =============================================================================

_CONTROL_TYPES: dict[FieldKind, str] = {
    FieldKind.TEXT: "text",
    FieldKind.LONG_TEXT: "textarea",
    FieldKind.NUMBER: "number",
    FieldKind.BOOLEAN: "checkbox",
    FieldKind.DATE: "date",
    FieldKind.DATETIME: "datetime",
    FieldKind.REFERENCE: "select",
    FieldKind.MULTI_REFERENCE: "multiselect",
}


def control_type_for(descriptor: FieldDescriptor) -> str:
    """Map a field kind to an input type for the rendering layer."""
    return _CONTROL_TYPES.get(descriptor.kind, "text")


@dataclass
class FieldControl:
    """One bound input of a compiled form."""

    descriptor: FieldDescriptor
    key: str
    control_type: str
    binding: Binding[Any, Any]
    editable: bool
    related: bool = False
    value: Any = None
    dirty: bool = False
    errors: list[str] = field(default_factory=list)

    @property
    def label(self) -> str:
        return self.descriptor.display_name

    @property
    def required(self) -> bool:
        return self.descriptor.required

    @property
    def read_only(self) -> bool:
        return not self.editable

    @property
    def help_text(self) -> str:
        return self.descriptor.description

    @property
    def lookup_provider_ref(self) -> str | None:
        return self.descriptor.lookup_provider_ref

    def instance_value(self) -> Any:
        """
        Control value converted for the instance.

        Raises:
            CoercionError: The value cannot be converted to the field's kind
        """
        return coerce_value(self.descriptor, self.binding.from_field(self.value))


ChangeCallback = Callable[["FieldControl"], None]


# =============================================================================
# Field Set
# =============================================================================


class FieldSet:
    """
    Ordered, bound controls for one entity instance.

    The field set holds the only reference to its bound instance;
    ``rebind`` replaces it and every control value together.
    """

    def __init__(self, controls: list[FieldControl], entity_type: str | None = None) -> None:
        self._controls = controls
        self._by_key = {control.key: control for control in controls}
        self.entity_type = entity_type
        self._instance: Entity | None = None
        self._change_callbacks: list[ChangeCallback] = []

    # -------------------------------------------------------------------------
    # Access
    # -------------------------------------------------------------------------

    @property
    def controls(self) -> tuple[FieldControl, ...]:
        return tuple(self._controls)

    def __iter__(self) -> Iterator[FieldControl]:
        return iter(self._controls)

    def __len__(self) -> int:
        return len(self._controls)

    def __getitem__(self, key: str) -> FieldControl:
        return self._by_key[key]

    def __contains__(self, key: object) -> bool:
        return key in self._by_key

    def get(self, key: str) -> FieldControl | None:
        return self._by_key.get(key)

    def keys(self) -> list[str]:
        return [control.key for control in self._controls]

    def values(self) -> dict[str, Any]:
        return {control.key: control.value for control in self._controls}

    @property
    def instance(self) -> Entity | None:
        return self._instance

    @property
    def dirty(self) -> bool:
        return any(control.dirty for control in self._controls)

    def add_change_listener(self, callback: ChangeCallback) -> None:
        """Called before a control accepts a new value; raising vetoes the edit."""
        self._change_callbacks.append(callback)

    # -------------------------------------------------------------------------
    # Binding
    # -------------------------------------------------------------------------

    def rebind(self, instance: Entity | None) -> None:
        """
        Replace every control value from a new instance, or clear on None.

        Empty values of unpersisted instances take the descriptor default.
        """
        self._instance = instance
        fresh = instance is not None and not instance.is_persisted
        for control in self._controls:
            raw = read_path(instance, control.key) if instance is not None else None
            value = control.binding.to_field(raw)
            if fresh and control.editable and is_empty(value):
                default = default_for(control.descriptor)
                if default is not None:
                    value = control.binding.to_field(default)
            control.value = value
            control.dirty = False
            control.errors = []

    def clear(self) -> None:
        self.rebind(None)

    def set_value(self, key: str, value: Any) -> None:
        """
        Edit one control.

        Raises:
            KeyError: Unknown control
            PreconditionError: The control is read-only or nothing is bound
        """
        control = self._by_key[key]
        if not control.editable:
            raise PreconditionError(f"{control.label} is read-only")
        if self._instance is None:
            raise PreconditionError("No entity is bound to this form")
        for callback in self._change_callbacks:
            callback(control)
        if control.descriptor.kind == FieldKind.MULTI_REFERENCE:
            value = control.binding.to_field(value)
        control.value = value
        control.dirty = True
        control.errors = []

    # -------------------------------------------------------------------------
    # Validation and write-back
    # -------------------------------------------------------------------------

    def validate(self) -> dict[str, list[str]]:
        """
        Check every editable control.

        Returns:
            Messages per failing control key; empty when the form is valid
        """
        errors: dict[str, list[str]] = {}
        for control in self._controls:
            control.errors = []
            if not control.editable:
                continue
            try:
                messages = check_value(control.descriptor, control.instance_value())
            except CoercionError as exc:
                messages = [str(exc)]
            if messages:
                control.errors = list(messages)
                errors[control.key] = list(messages)
        return errors

    def write_to(self, instance: Entity | None = None) -> Entity:
        """
        Write editable control values into an instance (the bound one by default).

        Nothing is written unless every control is valid.

        Raises:
            PreconditionError: No instance to write to
            ValidationError: Every failing field, the instance left untouched
        """
        target = instance if instance is not None else self._instance
        if target is None:
            raise PreconditionError("Cannot save: No entity selected.")

        errors = self.validate()
        context = ErrorContext(entity_type=self.entity_type, operation="save")
        if errors:
            raise ValidationError(errors, context=context)

        updates = {
            control.descriptor.field_name: control.instance_value()
            for control in self._controls
            if control.editable and not control.related
        }
        try:
            checked = type(target).model_validate({**dict(target), **updates})
        except PydanticValidationError as exc:
            field_errors: dict[str, list[str]] = {}
            for err in exc.errors():
                name = str(err["loc"][0]) if err["loc"] else "__root__"
                field_errors.setdefault(name, []).append(err["msg"])
            for name, messages in field_errors.items():
                if name in self._by_key:
                    self._by_key[name].errors = list(messages)
            raise ValidationError(field_errors, context=context) from exc

        for name in updates:
            setattr(target, name, getattr(checked, name))
        logger.debug("Wrote %d fields into %s", len(updates), type(target).__name__)
        return target


# =============================================================================
# Compiler
# =============================================================================


def _build_control(line: FieldLine, read_only: Collection[str]) -> FieldControl:
    descriptor = line.descriptor
    editable = not (descriptor.read_only or line.related or line.key in read_only)
    return FieldControl(
        descriptor=descriptor,
        key=line.key,
        control_type=control_type_for(descriptor),
        binding=binding_for(descriptor),
        editable=editable,
        related=line.related,
    )


def compile_form(
    fields: Iterable[FieldDescriptor | ResolvedField],
    instance: Entity | None = None,
    entity_type: str | None = None,
    read_only: Collection[str] = (),
) -> FieldSet:
    """
    Compile descriptors (or resolved screen lines) into a bound field set.

    Args:
        fields: Catalog descriptors or resolved screen lines
        instance: Instance to bind, None for an empty form
        entity_type: Entity type name used in error context
        read_only: Extra keys to show non-editable

    Returns:
        FieldSet with one control per visible descriptor
    """
    controls = [_build_control(line, read_only) for line in to_lines(fields)]
    field_set = FieldSet(controls, entity_type=entity_type)
    field_set.rebind(instance)
    return field_set
