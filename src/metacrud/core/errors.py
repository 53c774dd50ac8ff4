"""
Error types for metacrud descriptor registration, screen resolution and
the CRUD lifecycle.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class MetacrudError(Exception):
    """Base exception for all metacrud errors."""

    user_message = "An unexpected error occurred. Please try again."

    def __init__(self, message: str, context: ErrorContext | None = None):
        self.message = message
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with context if available."""
        if self.context:
            return f"{self.context.format()}: {self.message}"
        return self.message


class ConfigurationError(MetacrudError):
    """
    Raised when descriptors, screens or controllers are misconfigured.

    Fatal for the operator, not recoverable by the end user.

    Examples:
    - Lookup of an unknown entity type or field
    - Screen field reference that does not resolve
    - Create requested without an instance factory
    """

    user_message = "This screen is not configured correctly. Please contact an administrator."


class ValidationError(MetacrudError):
    """
    Raised when form or entity values violate their descriptors.

    Carries every failing field, not just the first one.
    """

    def __init__(
        self,
        field_errors: dict[str, list[str]],
        message: str | None = None,
        context: ErrorContext | None = None,
    ):
        self.field_errors = {name: list(msgs) for name, msgs in field_errors.items()}
        super().__init__(message or self._summary(), context)

    def _summary(self) -> str:
        names = ", ".join(self.field_errors)
        return f"Validation failed for: {names}"

    @property
    def fields(self) -> list[str]:
        """Names of the failing fields, in reporting order."""
        return list(self.field_errors)

    @property
    def user_message(self) -> str:  # type: ignore[override]
        lines = ["Failed to save the data. Please check:"]
        for name, messages in self.field_errors.items():
            for msg in messages:
                lines.append(f"• {name}: {msg}")
        return "\n".join(lines)


class OptimisticLockConflict(MetacrudError):
    """Raised when a write carries a stale version token."""

    user_message = (
        "Error updating the data. Someone else has updated this record "
        "while you were making changes."
    )

    def __init__(
        self,
        entity_type: str,
        entity_id: Any,
        expected_version: int | None = None,
        actual_version: int | None = None,
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"{entity_type} #{entity_id} was modified concurrently "
            f"(version {expected_version}, stored {actual_version})"
        )


class PreconditionError(MetacrudError):
    """
    Raised when an action is requested in a state that does not allow it.

    Examples:
    - Delete of an entity without identity
    - Save without a bound entity
    - Edit/Delete in a relation panel with no selected row
    """

    @property
    def user_message(self) -> str:  # type: ignore[override]
        return self.message


class CollaboratorFailure(MetacrudError):
    """Raised when a persistence or backing-service call fails unclassified."""

    user_message = "An unexpected error occurred while contacting the server. Please try again."


@dataclass
class ErrorContext:
    """
    Location of a configuration or runtime fault.

    Attributes:
        entity_type: Entity type involved
        field_name: Field involved, if any
        screen: Route of the screen being resolved, if any
        operation: Lifecycle operation (save, delete, ...), if any
    """

    entity_type: str | None = None
    field_name: str | None = None
    screen: str | None = None
    operation: str | None = None

    def format(self) -> str:
        """
        Format the context as a short prefix.

        Returns:
            String like: "screen 'activities' Activity.name (save)"
        """
        parts: list[str] = []
        if self.screen:
            parts.append(f"screen '{self.screen}'")
        if self.entity_type and self.field_name:
            parts.append(f"{self.entity_type}.{self.field_name}")
        elif self.entity_type:
            parts.append(self.entity_type)
        elif self.field_name:
            parts.append(self.field_name)
        if self.operation:
            parts.append(f"({self.operation})")
        return " ".join(parts)


def make_configuration_error(
    message: str,
    entity_type: str | None = None,
    field_name: str | None = None,
    screen: str | None = None,
) -> ConfigurationError:
    """
    Helper to create a ConfigurationError with context.

    Args:
        message: Error description
        entity_type: Entity type being looked up
        field_name: Field being looked up
        screen: Screen route being resolved

    Returns:
        ConfigurationError with context
    """
    context = ErrorContext(entity_type=entity_type, field_name=field_name, screen=screen)
    return ConfigurationError(message, context)
