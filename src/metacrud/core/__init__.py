"""Core metacrud functionality: IR, error taxonomy, metadata catalog, value validation."""

from . import ir
from .catalog import MetadataCatalog, entity_spec_from_model
from .errors import (
    CollaboratorFailure,
    ConfigurationError,
    ErrorContext,
    MetacrudError,
    OptimisticLockConflict,
    PreconditionError,
    ValidationError,
)

__all__ = [
    "ir",
    "MetadataCatalog",
    "entity_spec_from_model",
    "MetacrudError",
    "ConfigurationError",
    "ValidationError",
    "OptimisticLockConflict",
    "PreconditionError",
    "CollaboratorFailure",
    "ErrorContext",
]
