from __future__ import annotations

import sys
import asyncio
from pathlib import Path
from unittest.mock import patch

import pytest

from deptracker.core.runner import CommandResult, CommandRunner
from deptracker.exceptions import CommandError


def _python(code: str) -> tuple:
    return (sys.executable, "-c", code)


@pytest.mark.unit
class TestCommandResult:
    """Tests for CommandResult."""

    def test_succeeded(self) -> None:
        assert CommandResult(("npm",), 0, "{}", "").succeeded is True
        assert CommandResult(("npm",), 1, "{}", "").succeeded is False


@pytest.mark.unit
class TestCommandRunner:
    """Tests for CommandRunner against real short-lived processes."""

    @pytest.mark.asyncio
    async def test_captures_output_and_exit_code(self, tmp_path: Path) -> None:
        code = "import sys; print('out'); print('err', file=sys.stderr); sys.exit(3)"

        result = await CommandRunner().run(_python(code), tmp_path)

        assert result.exit_code == 3
        assert result.stdout.strip() == "out"
        assert result.stderr.strip() == "err"

    @pytest.mark.asyncio
    async def test_runs_in_working_directory(self, tmp_path: Path) -> None:
        result = await CommandRunner().run(_python("import os; print(os.getcwd())"), tmp_path)

        assert Path(result.stdout.strip()).resolve() == tmp_path.resolve()

    @pytest.mark.asyncio
    async def test_missing_directory(self, tmp_path: Path) -> None:
        with pytest.raises(CommandError, match="Working directory not found"):
            await CommandRunner().run(_python("pass"), tmp_path / "missing")

    @pytest.mark.asyncio
    async def test_missing_executable(self, tmp_path: Path) -> None:
        with pytest.raises(CommandError, match="Failed to start"):
            await CommandRunner().run(("deptracker-no-such-binary", "outdated"), tmp_path)

    @pytest.mark.asyncio
    async def test_timeout_kills_process(self, tmp_path: Path) -> None:
        runner = CommandRunner(timeout=0.2)

        with pytest.raises(CommandError, match="timed out"):
            await runner.run(_python("import time; time.sleep(30)"), tmp_path)

    @pytest.mark.asyncio
    async def test_timeout_after_process_already_exited(self, tmp_path: Path) -> None:
        """Test the timeout error survives a child that exits before the kill."""

        async def expire(awaitable, timeout):
            awaitable.close()
            raise asyncio.TimeoutError

        with patch("deptracker.core.runner.asyncio.wait_for", new=expire), patch(
            "asyncio.subprocess.Process.kill", side_effect=ProcessLookupError
        ):
            with pytest.raises(CommandError, match="timed out"):
                await CommandRunner(timeout=0.2).run(_python("pass"), tmp_path)

    @pytest.mark.asyncio
    async def test_run_checked_returns_stdout(self, tmp_path: Path) -> None:
        stdout = await CommandRunner().run_checked(_python("print('{}')"), tmp_path)

        assert stdout.strip() == "{}"

    @pytest.mark.asyncio
    async def test_run_checked_rejects_non_zero_exit(self, tmp_path: Path) -> None:
        code = "import sys; print('boom', file=sys.stderr); sys.exit(2)"

        with pytest.raises(CommandError) as exc_info:
            await CommandRunner().run_checked(_python(code), tmp_path)

        assert exc_info.value.details["exit_code"] == 2
        assert exc_info.value.details["stderr"] == "boom"
