"""Unit tests for logging configuration."""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest
import structlog

from gateway_fixtures.logging.config import (
    LOG_FILE_NAME,
    NOISY_LOGGERS,
    RETENTION_DAYS,
    _cleanup_old_logs,
    _setup_file_logging,
    configure_logging,
    get_logger,
)


@pytest.fixture(autouse=True)
def _reset_root_logger() -> Any:
    """Remove handlers added by configure_logging after each test."""
    root = logging.getLogger()
    original_handlers = list(root.handlers)
    original_level = root.level
    noisy_levels = {name: logging.getLogger(name).level for name in NOISY_LOGGERS}
    yield
    for handler in root.handlers:
        if handler not in original_handlers:
            handler.close()
    root.handlers = original_handlers
    root.setLevel(original_level)
    for name, level in noisy_levels.items():
        logging.getLogger(name).setLevel(level)
    structlog.reset_defaults()


def _age(path: Path, days: int) -> None:
    old_time = (datetime.now() - timedelta(days=days)).timestamp()
    os.utime(path, (old_time, old_time))


@pytest.mark.unit
class TestCleanupOldLogs:
    """Tests for _cleanup_old_logs function."""

    def test_returns_early_when_log_dir_missing(self, tmp_path: Path) -> None:
        """_cleanup_old_logs should return early if the directory doesn't exist."""
        _cleanup_old_logs(tmp_path / "nonexistent")

    def test_deletes_old_log_files(self, tmp_path: Path) -> None:
        """_cleanup_old_logs should delete log files older than RETENTION_DAYS."""
        log_file = tmp_path / f"{LOG_FILE_NAME}.1"
        log_file.write_text("old log data")
        _age(log_file, RETENTION_DAYS + 5)

        _cleanup_old_logs(tmp_path)

        assert not log_file.exists()

    def test_keeps_recent_and_unrelated_files(self, tmp_path: Path) -> None:
        """_cleanup_old_logs should keep recent logs and files it does not own."""
        recent = tmp_path / LOG_FILE_NAME
        recent.write_text("recent log data")
        unrelated = tmp_path / "junit.xml"
        unrelated.write_text("<testsuite/>")
        _age(unrelated, RETENTION_DAYS + 5)

        _cleanup_old_logs(tmp_path)

        assert recent.exists()
        assert unrelated.exists()

    def test_ignores_os_errors(self, tmp_path: Path) -> None:
        """_cleanup_old_logs should handle OSError gracefully."""
        log_file = tmp_path / f"{LOG_FILE_NAME}.1"
        log_file.write_text("data")
        _age(log_file, RETENTION_DAYS + 5)

        with patch.object(Path, "unlink", side_effect=OSError("permission denied")):
            _cleanup_old_logs(tmp_path)


@pytest.mark.unit
class TestSetupFileLogging:
    """Tests for _setup_file_logging function."""

    def test_creates_log_directory_and_handler(self, tmp_path: Path) -> None:
        """_setup_file_logging should create the directory and add a file handler."""
        log_dir = tmp_path / "logs"
        root = logging.getLogger()
        initial_count = len(root.handlers)

        handler = _setup_file_logging(log_dir)

        assert log_dir.exists()
        assert len(root.handlers) == initial_count + 1
        assert Path(handler.baseFilename) == log_dir / LOG_FILE_NAME


@pytest.mark.unit
class TestConfigureLogging:
    """Tests for configure_logging function."""

    @pytest.mark.parametrize(
        ("kwargs", "level"),
        [
            ({}, logging.WARNING),
            ({"verbose": True}, logging.INFO),
            ({"debug": True}, logging.DEBUG),
        ],
    )
    def test_console_level(self, kwargs: dict[str, bool], level: int) -> None:
        """configure_logging should pick the console level from the flags."""
        root = logging.getLogger()
        before = list(root.handlers)

        configure_logging(**kwargs)

        added = [h for h in root.handlers if h not in before]
        assert len(added) == 1
        assert added[0].level == level

    def test_quiets_client_libraries(self) -> None:
        """configure_logging should keep the Kubernetes client at INFO or above."""
        configure_logging(debug=True)

        for name in NOISY_LOGGERS:
            assert logging.getLogger(name).level == logging.INFO

    def test_json_output(self) -> None:
        """configure_logging with json_output=True should use JSONRenderer."""
        root = logging.getLogger()
        before = list(root.handlers)

        configure_logging(json_output=True)

        added = [h for h in root.handlers if h not in before]
        formatter = added[0].formatter
        assert isinstance(formatter, structlog.stdlib.ProcessorFormatter)
        assert isinstance(formatter.processors[-1], structlog.processors.JSONRenderer)

    def test_log_dir_writes_json_events(self, tmp_path: Path) -> None:
        """configure_logging with log_dir should write JSON lines to a file."""
        configure_logging(log_dir=tmp_path)

        get_logger("gateway_fixtures.test").warning("fixture_created", namespace="e2e")
        for handler in logging.getLogger().handlers:
            handler.flush()

        lines = (tmp_path / LOG_FILE_NAME).read_text().splitlines()
        event = json.loads(lines[-1])
        assert event["event"] == "fixture_created"
        assert event["namespace"] == "e2e"
        assert event["level"] == "warning"


@pytest.mark.unit
class TestGetLogger:
    """Tests for get_logger function."""

    def test_returns_logger(self) -> None:
        """get_logger should return a structlog logger."""
        assert get_logger("test") is not None

    def test_binds_initial_context(self) -> None:
        """get_logger should bind initial context when provided."""
        with structlog.testing.capture_logs() as logs:
            get_logger("test", entity="fixture").info("fixture_torn_down")

        assert logs == [{"entity": "fixture", "event": "fixture_torn_down", "log_level": "info"}]
