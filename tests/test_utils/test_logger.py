from __future__ import annotations

import io
import logging
from typing import Generator
from unittest.mock import patch

import pytest

from deptracker.utils.logger import (
    ColoredFormatter,
    get_logger,
    resolve_log_level,
    setup_logging,
)


@pytest.fixture
def clean_logger_state() -> Generator[None, None, None]:
    """Reset the deptracker logger before and after each test."""
    root_logger = logging.getLogger("deptracker")
    root_logger.handlers.clear()
    root_logger.setLevel(logging.NOTSET)

    yield

    root_logger.handlers.clear()
    root_logger.setLevel(logging.NOTSET)
    root_logger.propagate = True


def _record(level: int = logging.WARNING, msg: str = "hello") -> logging.LogRecord:
    return logging.LogRecord("deptracker.test", level, __file__, 1, msg, None, None)


@pytest.mark.unit
class TestColoredFormatter:
    """Tests for ColoredFormatter."""

    def test_format_with_color_enabled(self) -> None:
        formatter = ColoredFormatter("%(levelname)s %(message)s", use_color=True)

        with patch.object(ColoredFormatter, "_should_use_color", return_value=True):
            output = formatter.format(_record(logging.ERROR))

        assert output == "\033[31mERROR\033[0m hello"

    def test_format_with_color_disabled(self) -> None:
        formatter = ColoredFormatter("%(levelname)s %(message)s", use_color=False)

        assert formatter.format(_record()) == "WARNING hello"

    def test_format_restores_levelname(self) -> None:
        """Test the record is left untouched for other handlers."""
        formatter = ColoredFormatter("%(levelname)s", use_color=True)
        record = _record(logging.INFO)

        with patch.object(ColoredFormatter, "_should_use_color", return_value=True):
            formatter.format(record)

        assert record.levelname == "INFO"

    def test_no_color_env_disables_color(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("NO_COLOR", "1")

        assert ColoredFormatter._should_use_color() is False

    def test_ci_env_disables_color(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("CI", "true")

        assert ColoredFormatter._should_use_color() is False


@pytest.mark.unit
class TestSetupLogging:
    """Tests for setup_logging."""

    def test_writes_to_custom_stream(self, clean_logger_state: None) -> None:
        stream = io.StringIO()
        setup_logging(level=logging.INFO, stream=stream)

        get_logger("orchestrator").info("Found %d outdated dependencies", 3)

        assert "Found 3 outdated dependencies" in stream.getvalue()

    def test_filters_below_level(self, clean_logger_state: None) -> None:
        stream = io.StringIO()
        setup_logging(level=logging.WARNING, stream=stream)

        get_logger("reconciler").info("hidden")
        get_logger("reconciler").warning("shown")

        assert "hidden" not in stream.getvalue()
        assert "shown" in stream.getvalue()

    def test_repeated_setup_replaces_handler(self, clean_logger_state: None) -> None:
        setup_logging(stream=io.StringIO())
        setup_logging(stream=io.StringIO())

        handlers = logging.getLogger("deptracker").handlers
        assert len(handlers) == 1


@pytest.mark.unit
class TestResolveLogLevel:
    """Tests for resolve_log_level."""

    @pytest.mark.parametrize(
        "verbose,expected",
        [(0, logging.WARNING), (1, logging.INFO), (2, logging.DEBUG), (5, logging.DEBUG)],
    )
    def test_verbosity(self, verbose: int, expected: int) -> None:
        assert resolve_log_level(verbose, environ={}) == expected

    def test_runner_debug_forces_debug(self) -> None:
        assert resolve_log_level(0, environ={"RUNNER_DEBUG": "1"}) == logging.DEBUG

    def test_runner_debug_other_values_ignored(self) -> None:
        assert resolve_log_level(0, environ={"RUNNER_DEBUG": "0"}) == logging.WARNING


@pytest.mark.unit
class TestGetLogger:
    """Tests for get_logger."""

    def test_no_name_returns_package_logger(self, clean_logger_state: None) -> None:
        assert get_logger().name == "deptracker"

    def test_simple_name_is_namespaced(self, clean_logger_state: None) -> None:
        assert get_logger("tracker").name == "deptracker.tracker"

    def test_qualified_name_kept(self, clean_logger_state: None) -> None:
        assert get_logger("deptracker.core.runner").name == "deptracker.core.runner"

