"""
metacrud - metadata-driven entity management.

Declares per-field presentation and validation rules on domain entities,
persists screen definitions as data, and interprets both at runtime.
"""

from __future__ import annotations

from ._version import get_version as _get_version

# Re-export commonly used types for convenience
from .core import ir
from .core.catalog import MetadataCatalog
from .core.errors import (
    CollaboratorFailure,
    ConfigurationError,
    MetacrudError,
    OptimisticLockConflict,
    PreconditionError,
    ValidationError,
)

__version__ = _get_version()

__all__ = [
    "__version__",
    "ir",
    "MetadataCatalog",
    "MetacrudError",
    "ConfigurationError",
    "ValidationError",
    "OptimisticLockConflict",
    "PreconditionError",
    "CollaboratorFailure",
]
