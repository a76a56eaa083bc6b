from __future__ import annotations

from typing import Generator
from unittest.mock import patch

import pytest
from rich.console import Console

from deptracker.utils.console import (
    DEPTRACKER_THEME,
    _get_console,
    _should_use_color,
    colorize_severity,
    colorize_status,
    print_error,
    print_success,
    print_table,
    print_warning,
    reconfigure_console,
)


@pytest.fixture(autouse=True)
def reset_console() -> Generator[None, None, None]:
    """Reset the console singleton before and after each test."""
    reconfigure_console()
    yield
    reconfigure_console()


@pytest.fixture
def recording_console() -> Generator[Console, None, None]:
    """Route console output into a recording Console."""
    console = Console(record=True, width=120, no_color=True, theme=DEPTRACKER_THEME)
    with patch("deptracker.utils.console._get_console", return_value=console):
        yield console


@pytest.mark.unit
class TestShouldUseColor:
    """Tests for _should_use_color."""

    def test_no_color_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("NO_COLOR", "1")

        assert _should_use_color() is False

    def test_ci_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("CI", "true")

        assert _should_use_color() is False


@pytest.mark.unit
class TestConsoleSingleton:
    """Tests for console lifecycle."""

    def test_singleton_until_reconfigured(self) -> None:
        first = _get_console()

        assert _get_console() is first

        reconfigure_console()

        assert _get_console() is not first


@pytest.mark.unit
class TestStatusMessages:
    """Tests for print_success / print_error / print_warning."""

    def test_prefixes(self, recording_console: Console) -> None:
        print_success("done")
        print_error("failed")
        print_warning("careful")

        text = recording_console.export_text()
        assert "[OK] done" in text
        assert "[ERROR] failed" in text
        assert "[WARNING] careful" in text


@pytest.mark.unit
class TestPrintTable:
    """Tests for print_table."""

    def test_renders_rows_in_header_order(self, recording_console: Console) -> None:
        print_table(
            [
                {"Package": "lodash", "Ticket": "OPS-1"},
                {"Package": "react", "Ticket": "-"},
            ],
            headers=["Ticket", "Package"],
            title="Results",
        )

        text = recording_console.export_text()
        assert "Results" in text
        assert text.index("Ticket") < text.index("Package")
        assert "lodash" in text and "OPS-1" in text

    def test_empty_data_prints_nothing(self, recording_console: Console) -> None:
        print_table([], title="Nothing")

        assert recording_console.export_text() == ""


@pytest.mark.unit
class TestColorize:
    """Tests for colorize_severity and colorize_status."""

    @pytest.mark.parametrize(
        "severity,color",
        [("MAJOR", "red"), ("MINOR", "yellow"), ("PATCH", "green"), ("UNKNOWN", "dim")],
    )
    def test_severity(self, severity: str, color: str) -> None:
        assert colorize_severity(severity) == f"[{color}]{severity}[/{color}]"

    def test_status(self) -> None:
        assert colorize_status("ticket_created") == "[green]ticket_created[/green]"
        assert colorize_status("processing_error") == "[red]processing_error[/red]"

    def test_unknown_value_unchanged(self) -> None:
        assert colorize_status("something_else") == "something_else"
