"""
Screen definitions from TOML.

Seed files list screens as ``[[screen]]`` tables::

    [[screen]]
    route = "activities"
    title = "Project.Activities"
    entity_type = "Activity"
    security_permissions = "RolesAllowed(USER, ADMIN)"
    order_priority = "1.0"
    fields = [
        "name",
        { entity_line_type = "Project of Activity", field_name = "name" },
    ]

A bare string names a field of the screen's own entity type.
"""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationInfo, field_validator
from pydantic import ValidationError as PydanticValidationError

from metacrud.core.errors import ConfigurationError
from metacrud.core.ir import FieldReference, ScreenDefinition

logger = logging.getLogger(__name__)


class ScreenEntry(BaseModel):
    route: str
    title: str
    entity_type: str
    parent_menu: str = ""
    security_permissions: str = "PermitAll"
    order_priority: str = "1.0"
    description: str = ""
    enabled: bool = True
    fields: list[FieldReference] = Field(default_factory=list)

    @field_validator("order_priority", mode="before")
    @classmethod
    def stringify_priority(cls, v: Any) -> Any:
        if isinstance(v, (int, float)):
            return str(v)
        return v

    @field_validator("fields", mode="before")
    @classmethod
    def expand_shorthand(cls, v: Any, info: ValidationInfo) -> Any:
        if not isinstance(v, list):
            return v
        base = info.data.get("entity_type", "")
        return [
            {"entity_line_type": base, "field_name": item} if isinstance(item, str) else item
            for item in v
        ]

    def to_definition(self) -> ScreenDefinition:
        return ScreenDefinition(**self.model_dump())


class ScreensFile(BaseModel):
    screen: list[ScreenEntry] = Field(default_factory=list)


def parse_screens(data: dict[str, Any], source: str = "<data>") -> list[ScreenDefinition]:
    try:
        parsed = ScreensFile.model_validate(data)
    except PydanticValidationError as exc:
        raise ConfigurationError(f"Invalid screen definitions in {source}: {exc}") from exc
    return [entry.to_definition() for entry in parsed.screen]


def load_screens_toml(path: Path) -> list[ScreenDefinition]:
    """
    Read screen definitions from a TOML seed file.

    Lines are not resolved here; the store resolves them on save.

    Raises:
        ConfigurationError: File missing, malformed TOML or invalid entries
    """
    if not path.exists():
        raise ConfigurationError(f"Screen seed file not found: {path}")
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"Invalid TOML in {path}: {exc}") from exc

    definitions = parse_screens(data, source=str(path))
    logger.info("Loaded %d screen definitions from %s", len(definitions), path)
    return definitions
