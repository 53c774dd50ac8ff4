"""
Application configuration from metacrud.toml.

Example::

    [database]
    backend = "sqlite"
    path = ".metacrud/data.db"

    [logging]
    level = "INFO"
    dir = ".metacrud/logs"
    console = true

    [session]
    layout = "vertical"

    [screens]
    seed = "screens.toml"

Every section is optional; a missing file gives the defaults.
"""

from __future__ import annotations

import logging
import tomllib
from enum import StrEnum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from metacrud.core.errors import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "metacrud.toml"


class DatabaseBackend(StrEnum):
    MEMORY = "memory"
    SQLITE = "sqlite"


class LayoutMode(StrEnum):
    """How compiled forms are arranged by the rendering layer."""

    VERTICAL = "vertical"
    HORIZONTAL = "horizontal"


class DatabaseConfig(BaseModel):
    backend: DatabaseBackend = DatabaseBackend.MEMORY
    path: Path = Path(".metacrud/data.db")


class LoggingConfig(BaseModel):
    level: str = "INFO"
    dir: Path = Path(".metacrud/logs")
    console: bool = True
    enabled: bool = True

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        upper = v.upper()
        if upper not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return upper


class SessionConfig(BaseModel):
    layout: LayoutMode = LayoutMode.VERTICAL


class ScreensConfig(BaseModel):
    seed: Path | None = None


class AppConfig(BaseModel):
    """Complete application configuration."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    screens: ScreensConfig = Field(default_factory=ScreensConfig)
    base_dir: Path = Path(".")

    def resolve_path(self, path: Path) -> Path:
        """Paths in the file are relative to the file's directory."""
        return path if path.is_absolute() else self.base_dir / path


def parse_config(data: dict[str, Any], base_dir: Path = Path(".")) -> AppConfig:
    known = {k: v for k, v in data.items() if k in ("database", "logging", "session", "screens")}
    try:
        return AppConfig(**known, base_dir=base_dir)
    except PydanticValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc


def load_config(toml_path: Path) -> AppConfig:
    """
    Load configuration from a metacrud.toml file.

    Args:
        toml_path: Path to the file, or to a directory containing metacrud.toml

    Returns:
        AppConfig with values from file or defaults

    Raises:
        ConfigurationError: The file exists but is not valid
    """
    if toml_path.is_dir():
        toml_path = toml_path / CONFIG_FILE_NAME
    if not toml_path.exists():
        logger.debug("No %s found, using defaults", toml_path)
        return AppConfig(base_dir=toml_path.parent)

    try:
        with open(toml_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"Invalid TOML in {toml_path}: {exc}") from exc

    return parse_config(data, base_dir=toml_path.parent)
