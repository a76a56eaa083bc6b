from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Optional
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from click.testing import CliRunner

from deptracker.cli import cli, main
from deptracker.exceptions import CommandError, DepTrackerError
from deptracker.models import Dependency, ReconciliationOutcome
from deptracker.utils import console

# Keep the caller's environment out of the settings under test
_CLEAN_ENV: Dict[str, Optional[str]] = {
    name: None
    for name in (
        "JIRA_URL",
        "JIRA_USER_EMAIL",
        "JIRA_API_TOKEN",
        "JIRA_PROJECT_KEY",
        "JIRA_ISSUE_TYPE",
        "DRY_RUN",
        "PACKAGES",
        "DEPENDENCY_FILE",
        "GITHUB_WORKSPACE",
        "RUNNER_DEBUG",
        "DEPTRACKER_CONFIG",
        "NO_COLOR",
    )
}

_JIRA_ENV = {
    **_CLEAN_ENV,
    "JIRA_URL": "https://example.atlassian.net",
    "JIRA_USER_EMAIL": "bot@example.com",
    "JIRA_API_TOKEN": "secret",
    "JIRA_PROJECT_KEY": "OPS",
}


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.mark.unit
class TestCliGroup:
    """Tests for the top-level click group."""

    def test_version_option(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--version"], env=_CLEAN_ENV)

        assert result.exit_code == 0
        assert "deptracker" in result.output

    def test_help_lists_commands(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--help"], env=_CLEAN_ENV)

        assert result.exit_code == 0
        assert "sync" in result.output
        assert "check" in result.output

    def test_invalid_config_file_exits_one(self, runner: CliRunner, tmp_path: Path) -> None:
        """Test a broken config file aborts before any command runs."""
        config_file = tmp_path / "deptracker.toml"
        config_file.write_text("[deptracker]\nunknown = 1\n", encoding="utf-8")

        result = runner.invoke(
            cli, ["--config", str(config_file), "check", "package.json"], env=_CLEAN_ENV
        )

        assert result.exit_code == 1
        assert "Unknown configuration keys" in result.output

    def test_no_color_rebuilds_existing_console(self, runner: CliRunner) -> None:
        """Test --no-color applies to a console created before the flag was seen."""
        before = console._get_console()

        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["--no-color", "check", "--help"], env=_CLEAN_ENV)

        assert result.exit_code == 0
        assert console._console is not before
        console.reconfigure_console()


@pytest.mark.unit
class TestSyncCommand:
    """Tests for the sync command."""

    def test_missing_file_is_usage_error(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["sync"], env=_JIRA_ENV)

        assert result.exit_code == 2
        assert "DEPENDENCY_FILE" in result.output

    def test_missing_settings_exit_one(self, runner: CliRunner) -> None:
        """Test validation failures are reported without touching the tracker."""
        with patch("deptracker.commands.sync._sync_async", new=AsyncMock()) as run:
            result = runner.invoke(cli, ["sync", "package.json"], env=_CLEAN_ENV)

        assert result.exit_code == 1
        assert "Missing required settings" in result.output
        run.assert_not_called()

    def test_json_output_and_success_exit(self, runner: CliRunner) -> None:
        outcomes = {
            "lodash": ReconciliationOutcome.created("OPS-1"),
            "left-pad": ReconciliationOutcome.filtered_out(),
        }
        with patch(
            "deptracker.commands.sync._sync_async",
            new=AsyncMock(return_value=outcomes),
        ):
            result = runner.invoke(
                cli, ["sync", "package.json", "--format", "json"], env=_JIRA_ENV
            )

        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["lodash"] == {
            "status": "ticket_created",
            "ticket_key": "OPS-1",
            "outcome": "created",
        }
        assert payload["left-pad"]["status"] == "filtered_out"

    def test_processing_error_exits_one(self, runner: CliRunner) -> None:
        outcomes = {"lodash": ReconciliationOutcome.search_unavailable()}
        with patch(
            "deptracker.commands.sync._sync_async",
            new=AsyncMock(return_value=outcomes),
        ):
            result = runner.invoke(cli, ["sync", "package.json"], env=_JIRA_ENV)

        assert result.exit_code == 1
        assert "could not be processed" in result.output

    def test_cli_options_override_environment(self, runner: CliRunner) -> None:
        """Test CLI options win over environment variables."""
        mock_run = AsyncMock(return_value={})
        env = {**_JIRA_ENV, "PACKAGES": "lodash", "DRY_RUN": "false"}

        with patch("deptracker.commands.sync._sync_async", new=mock_run):
            result = runner.invoke(
                cli,
                ["sync", "package.json", "--project-key", "DEV", "--dry-run", "-p", "react"],
                env=env,
            )

        assert result.exit_code == 0
        settings, manifest = mock_run.call_args.args
        assert settings.project_key == "DEV"
        assert settings.dry_run is True
        assert settings.packages == ("react",)
        assert manifest.name == "package.json"

    def test_manifest_resolved_against_workspace(
        self, runner: CliRunner, tmp_path: Path
    ) -> None:
        mock_run = AsyncMock(return_value={})
        env = {
            **_JIRA_ENV,
            "GITHUB_WORKSPACE": str(tmp_path),
            "DEPENDENCY_FILE": "app/composer.json",
        }

        with patch("deptracker.commands.sync._sync_async", new=mock_run):
            result = runner.invoke(cli, ["sync"], env=env)

        assert result.exit_code == 0
        _, manifest = mock_run.call_args.args
        assert manifest == (tmp_path / "app" / "composer.json").resolve()

    def test_fatal_run_error_exits_one(self, runner: CliRunner) -> None:
        error = CommandError("composer failed", command=["composer", "outdated"], exit_code=1)
        with patch(
            "deptracker.commands.sync._sync_async",
            new=AsyncMock(side_effect=error),
        ):
            result = runner.invoke(cli, ["sync", "composer.json"], env=_JIRA_ENV)

        assert result.exit_code == 1
        assert "composer failed" in result.output


@pytest.mark.unit
class TestCheckCommand:
    """Tests for the check command."""

    def _patched_orchestrator(self, **list_outdated_kwargs) -> MagicMock:
        orchestrator = MagicMock()
        orchestrator.return_value.list_outdated = AsyncMock(**list_outdated_kwargs)
        return orchestrator

    def test_json_lists_severity_and_priority(self, runner: CliRunner) -> None:
        deps = [Dependency("lodash", "4.17.0", "5.0.0", "npm")]
        orchestrator = self._patched_orchestrator(return_value=deps)

        with patch("deptracker.commands.check.DependencyOrchestrator", orchestrator):
            result = runner.invoke(
                cli, ["check", "package.json", "--format", "json"], env=_CLEAN_ENV
            )

        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload == [
            {
                "name": "lodash",
                "current_version": "4.17.0",
                "latest_version": "5.0.0",
                "ecosystem": "npm",
                "update_type": "MAJOR",
                "priority": "Emergency",
            }
        ]

    def test_table_output(self, runner: CliRunner) -> None:
        deps = [Dependency("requests", "2.30.0", "2.31.0", "pip")]
        orchestrator = self._patched_orchestrator(return_value=deps)

        with patch("deptracker.commands.check.DependencyOrchestrator", orchestrator):
            result = runner.invoke(cli, ["check", "requirements.txt"], env=_CLEAN_ENV)

        assert result.exit_code == 0
        assert "requests" in result.output
        assert "1 dependency(ies) have updates available" in result.output

    def test_up_to_date(self, runner: CliRunner) -> None:
        orchestrator = self._patched_orchestrator(return_value=[])

        with patch("deptracker.commands.check.DependencyOrchestrator", orchestrator):
            result = runner.invoke(cli, ["check", "requirements.txt"], env=_CLEAN_ENV)

        assert result.exit_code == 0
        assert "up to date" in result.output

    def test_error_exits_one(self, runner: CliRunner) -> None:
        orchestrator = self._patched_orchestrator(side_effect=DepTrackerError("boom"))

        with patch("deptracker.commands.check.DependencyOrchestrator", orchestrator):
            result = runner.invoke(cli, ["check", "requirements.txt"], env=_CLEAN_ENV)

        assert result.exit_code == 1
        assert "boom" in result.output


@pytest.mark.unit
class TestMain:
    """Tests for main() exit-code mapping."""

    def test_success_returns_zero(self) -> None:
        with patch("deptracker.cli.cli") as mock_cli:
            assert main() == 0
        mock_cli.assert_called_once_with(standalone_mode=False)

    def test_deptracker_error_returns_one(self) -> None:
        with patch("deptracker.cli.cli", side_effect=DepTrackerError("bad")):
            assert main() == 1

    def test_keyboard_interrupt_returns_130(self) -> None:
        with patch("deptracker.cli.cli", side_effect=KeyboardInterrupt):
            assert main() == 130

    def test_system_exit_code_is_propagated(self) -> None:
        with patch("deptracker.cli.cli", side_effect=SystemExit(1)):
            assert main() == 1

    def test_unexpected_error_returns_one(self) -> None:
        with patch("deptracker.cli.cli", side_effect=RuntimeError("oops")):
            assert main() == 1
