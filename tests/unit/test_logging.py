"""Tests for the JSONL/console logging setup."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from metacrud_back.runtime.logging import (
    ComponentFilter,
    ConsoleFormatter,
    JSONLFormatter,
    get_log_file,
    get_recent_logs,
    log_with_context,
    setup_logging,
    shutdown_logging,
)


@pytest.fixture
def log_dir(tmp_path: Path) -> Iterator[Path]:
    directory = setup_logging(tmp_path / "logs", level="DEBUG", console=False)
    yield directory
    shutdown_logging()


def _record(name: str, level: int, message: str) -> logging.LogRecord:
    record = logging.LogRecord(name, level, __file__, 10, message, None, None)
    ComponentFilter().filter(record)
    return record


class TestFormatters:
    def test_jsonl_entry(self) -> None:
        record = _record("metacrud_ui.runtime.crud_controller", logging.INFO, "saved")
        record.context = {"entity_type": "Activity"}
        entry = json.loads(JSONLFormatter().format(record))

        assert entry["level"] == "INFO"
        assert entry["component"] == "UI"
        assert entry["message"] == "saved"
        assert entry["context"] == {"entity_type": "Activity"}
        assert entry["timestamp"].endswith("Z")
        assert "source" not in entry

    def test_jsonl_warning_has_source(self) -> None:
        record = _record("metacrud_back.runtime.listeners", logging.WARNING, "failed")
        entry = json.loads(JSONLFormatter().format(record))
        assert entry["component"] == "BACK"
        assert entry["source"]["line"] == 10

    def test_console_line(self) -> None:
        record = _record("metacrud.screens.store", logging.ERROR, "broken")
        line = ConsoleFormatter().format(record)
        assert "[CORE]" in line
        assert "broken" in line
        assert "ERROR" in line


class TestSetupLogging:
    def test_writes_jsonl_file(self, log_dir: Path) -> None:
        logger = logging.getLogger("metacrud.core.catalog")
        logger.info("catalog ready")

        log_file = get_log_file()
        assert log_file == log_dir / "metacrud.log"
        messages = [entry["message"] for entry in get_recent_logs()]
        assert "metacrud logging initialized" in messages
        assert "catalog ready" in messages

    def test_context_is_structured(self, log_dir: Path) -> None:
        log_with_context(
            logging.getLogger("metacrud_back.runtime.services"),
            logging.WARNING,
            "slow save",
            entity_type="Activity",
        )
        warnings = get_recent_logs(level="warning")
        assert warnings[-1]["message"] == "slow save"
        assert warnings[-1]["context"] == {"entity_type": "Activity"}

    def test_setup_twice_does_not_duplicate(self, log_dir: Path) -> None:
        setup_logging(log_dir, level="INFO", console=False)
        logging.getLogger("metacrud_ui.runtime").info("once")
        assert [e["message"] for e in get_recent_logs()].count("once") == 1

    def test_shutdown_detaches_handlers(self, tmp_path: Path) -> None:
        setup_logging(tmp_path / "logs", console=False)
        shutdown_logging()
        assert logging.getLogger("metacrud").handlers == []
        assert get_log_file() is None
        assert get_recent_logs() == []
