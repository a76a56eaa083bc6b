"""Subprocess execution for package-manager listing commands.

The runner is intentionally small: it starts one process in a working
directory, waits for it with a timeout, and hands back the captured
output. Interpreting exit codes is left to the caller, because package
managers disagree on what a non-zero exit means (``npm outdated`` exits
``1`` whenever something *is* outdated).
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from dataclasses import dataclass
from typing import Sequence, Tuple, Union

from deptracker.exceptions import CommandError
from deptracker.constants import DEFAULT_COMMAND_TIMEOUT
from deptracker.utils.logger import get_logger

logger = get_logger("runner")


@dataclass(frozen=True)
class CommandResult:
    """Captured result of a finished process.

    Attributes:
        command: Command and arguments that were executed.
        exit_code: Process return code.
        stdout: Decoded standard output.
        stderr: Decoded standard error.
    """

    command: Tuple[str, ...]
    exit_code: int
    stdout: str
    stderr: str

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


class CommandRunner:
    """Run external commands asynchronously with a bounded timeout.

    Args:
        timeout: Seconds to wait before killing the process.
    """

    def __init__(self, timeout: float = DEFAULT_COMMAND_TIMEOUT) -> None:
        self.timeout = timeout

    async def run(
        self,
        command: Sequence[str],
        cwd: Union[str, Path],
    ) -> CommandResult:
        """Execute *command* in *cwd* and capture its output.

        Args:
            command: Executable and arguments.
            cwd: Working directory for the process.

        Returns:
            The :class:`CommandResult`, whatever the exit code.

        Raises:
            CommandError: The directory does not exist, the executable
                cannot be started, or the timeout expired.
        """
        argv = tuple(command)
        workdir = Path(cwd)
        logger.debug("Executing %s in %s", " ".join(argv), workdir)

        if not workdir.is_dir():
            raise CommandError(
                f"Working directory not found: {workdir}",
                command=argv,
            )

        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                cwd=str(workdir),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise CommandError(
                f"Failed to start {argv[0]}: {exc}",
                command=argv,
            ) from exc

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=self.timeout
            )
        except asyncio.TimeoutError as exc:
            try:
                process.kill()
            except ProcessLookupError:
                logger.debug("Process exited before it could be killed")
            await process.wait()
            raise CommandError(
                f"Command timed out after {self.timeout:g}s",
                command=argv,
            ) from exc

        result = CommandResult(
            command=argv,
            exit_code=process.returncode if process.returncode is not None else -1,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
        )
        logger.debug(
            "Command exited with %d (stdout: %d chars, stderr: %d chars)",
            result.exit_code,
            len(result.stdout),
            len(result.stderr),
        )
        return result

    async def run_checked(
        self,
        command: Sequence[str],
        cwd: Union[str, Path],
    ) -> str:
        """Execute *command* and return stdout, failing on non-zero exit.

        Raises:
            CommandError: The process could not run or exited non-zero.
        """
        result = await self.run(command, cwd)
        if not result.succeeded:
            logger.error(
                "Command %s failed with exit code %d",
                " ".join(result.command),
                result.exit_code,
            )
            raise CommandError(
                "Command execution failed",
                command=result.command,
                exit_code=result.exit_code,
                stderr=result.stderr,
            )
        return result.stdout
