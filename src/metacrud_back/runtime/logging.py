"""
metacrud logging infrastructure.

Two outputs share the same records:
- Log file: <log_dir>/metacrud.log in JSONL format, one JSON object per line
  with timestamp, level, component, message and structured context
- Console: brief human-readable lines (respects NO_COLOR)

Modules keep using ``logging.getLogger(__name__)``; the handlers installed
here sit on the three package loggers and tag each record with a component
derived from the logger name.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

LOG_FILE_NAME = "metacrud.log"

PACKAGE_LOGGERS = ("metacrud", "metacrud_back", "metacrud_ui")

# =============================================================================
# Terminal Colors (respects NO_COLOR)
# =============================================================================

_NO_COLOR = bool(os.environ.get("NO_COLOR")) or not sys.stdout.isatty()


class Colors:
    """ANSI color codes for terminal output."""

    RESET = "" if _NO_COLOR else "\033[0m"
    DIM = "" if _NO_COLOR else "\033[2m"

    DEBUG = "" if _NO_COLOR else "\033[36m"
    INFO = "" if _NO_COLOR else "\033[32m"
    WARNING = "" if _NO_COLOR else "\033[33m"
    ERROR = "" if _NO_COLOR else "\033[31m"
    CRITICAL = "" if _NO_COLOR else "\033[35m"

    CORE = "" if _NO_COLOR else "\033[35m"
    BACK = "" if _NO_COLOR else "\033[34m"
    UI = "" if _NO_COLOR else "\033[36m"


_COMPONENTS = {
    "metacrud": ("CORE", Colors.CORE),
    "metacrud_back": ("BACK", Colors.BACK),
    "metacrud_ui": ("UI", Colors.UI),
}


class ComponentFilter(logging.Filter):
    """Tag records with the component owning their logger."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "component"):
            component, color = _COMPONENTS.get(record.name.split(".")[0], ("CORE", Colors.CORE))
            record.component = component
            record.component_color = color
        return True


# =============================================================================
# JSONL Formatter
# =============================================================================


class JSONLFormatter(logging.Formatter):
    """
    Formats log records as JSON Lines.

    Example output:
    {"timestamp":"2024-01-15T10:30:45.123000Z","level":"WARNING","component":"UI","logger":"metacrud_ui.runtime.crud_controller","message":"Listener failed on saved","context":{"entity_type":"Activity"}}
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC)
            .isoformat()
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "component": getattr(record, "component", "CORE"),
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = getattr(record, "context", None)
        if context:
            entry["context"] = context

        if record.levelno >= logging.WARNING:
            source_info: dict[str, Any] = {}
            if record.pathname:
                source_info["file"] = record.pathname
            if record.lineno:
                source_info["line"] = record.lineno
            if record.funcName and record.funcName != "<module>":
                source_info["function"] = record.funcName
            if source_info:
                entry["source"] = source_info

        if record.exc_info and record.exc_info[0]:
            entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
            }

        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human-readable formatter for console output."""

    LEVEL_COLORS = {
        logging.DEBUG: Colors.DEBUG,
        logging.INFO: Colors.INFO,
        logging.WARNING: Colors.WARNING,
        logging.ERROR: Colors.ERROR,
        logging.CRITICAL: Colors.CRITICAL,
    }

    def format(self, record: logging.LogRecord) -> str:
        component = getattr(record, "component", "CORE")
        component_color = getattr(record, "component_color", Colors.CORE)
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")

        if _NO_COLOR:
            prefix = f"[{timestamp}] [{component}]"
        else:
            prefix = (
                f"{Colors.DIM}{timestamp}{Colors.RESET} "
                f"{component_color}[{component}]{Colors.RESET}"
            )

        if record.levelno != logging.INFO:
            level_name = record.levelname
            if not _NO_COLOR:
                level_color = self.LEVEL_COLORS.get(record.levelno, "")
                level_name = f"{level_color}{level_name}{Colors.RESET}"
            prefix = f"{prefix} {level_name}:"

        message = f"{prefix} {record.getMessage()}"
        if record.exc_info and record.exc_info[0]:
            message = f"{message} ({record.exc_info[0].__name__}: {record.exc_info[1]})"
        return message


# =============================================================================
# Logger Setup
# =============================================================================

_log_dir: Path | None = None


def setup_logging(
    log_dir: Path | str = ".metacrud/logs",
    level: int | str = logging.INFO,
    console: bool = True,
    max_bytes: int = 5 * 1024 * 1024,  # 5MB
    backup_count: int = 3,
) -> Path:
    """
    Initialize logging for the metacrud packages.

    Replaces any handlers previously installed on the package loggers, so
    calling it again reconfigures rather than duplicates output.

    Args:
        log_dir: Directory for the JSONL log file
        level: Minimum log level (number or name)
        console: Also write human-readable lines to stdout
        max_bytes: Max size per log file before rotation
        backup_count: Number of backup files to keep

    Returns:
        Path to the log directory
    """
    global _log_dir

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    _log_dir = Path(log_dir)
    _log_dir.mkdir(parents=True, exist_ok=True)
    log_file = _log_dir / LOG_FILE_NAME

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setFormatter(JSONLFormatter())
    file_handler.addFilter(ComponentFilter())
    file_handler.setLevel(level)

    handlers: list[logging.Handler] = [file_handler]
    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(ConsoleFormatter())
        console_handler.addFilter(ComponentFilter())
        console_handler.setLevel(level)
        handlers.append(console_handler)

    for name in PACKAGE_LOGGERS:
        package_logger = logging.getLogger(name)
        package_logger.setLevel(level)
        for old in list(package_logger.handlers):
            package_logger.removeHandler(old)
            old.close()
        for handler in handlers:
            package_logger.addHandler(handler)

    log_with_context(
        logging.getLogger("metacrud_back.runtime.logging"),
        logging.INFO,
        "metacrud logging initialized",
        log_format="jsonl",
        log_file=str(log_file),
    )
    return _log_dir


def shutdown_logging() -> None:
    """Detach and close the handlers installed by setup_logging."""
    global _log_dir
    for name in PACKAGE_LOGGERS:
        package_logger = logging.getLogger(name)
        for handler in list(package_logger.handlers):
            package_logger.removeHandler(handler)
            handler.close()
    _log_dir = None


# =============================================================================
# Contextual Logging
# =============================================================================


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    context: dict[str, Any] | None = None,
    **kwargs: Any,
) -> None:
    """
    Log a message with structured context data.

    Args:
        logger: Logger instance
        level: Logging level (logging.INFO, logging.ERROR, etc.)
        message: Human-readable message
        context: Structured context data (included in the JSONL entry)
        **kwargs: Additional context items
    """
    extra = {"context": {**(context or {}), **kwargs}} if (context or kwargs) else {}
    logger.log(level, message, extra=extra)


# =============================================================================
# Utility Functions
# =============================================================================


def get_log_dir() -> Path | None:
    return _log_dir


def get_log_file() -> Path | None:
    if _log_dir:
        return _log_dir / LOG_FILE_NAME
    return None


def get_recent_logs(count: int = 50, level: str | None = None) -> list[dict[str, Any]]:
    """
    Get recent log entries as parsed JSON.

    Args:
        count: Number of recent entries to return
        level: Optional filter by level (ERROR, WARNING, etc.)

    Returns:
        List of log entries (most recent last)
    """
    log_file = get_log_file()
    if not log_file or not log_file.exists():
        return []

    entries: list[dict[str, Any]] = []
    try:
        with open(log_file, encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    entry = json.loads(line)
                except json.JSONDecodeError:
                    continue
                if level and entry.get("level") != level.upper():
                    continue
                entries.append(entry)
    except OSError:
        return []
    return entries[-count:]
