"""Synchronous subprocess execution."""

import logging
import shlex
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a finished command."""

    argv: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def command_line(self) -> str:
        return format_argv(self.argv)


class CommandError(Exception):
    """A command exited with a non-zero status."""

    def __init__(self, result: CommandResult):
        self.result = result
        detail = result.stderr.strip() or result.stdout.strip()
        message = f"Command failed ({result.returncode}): {result.command_line}"
        if detail:
            message += f"\n{detail}"
        super().__init__(message)


def format_argv(argv: Sequence[str]) -> str:
    """Render an argument vector as a shell command line."""
    return " ".join(shlex.quote(a) for a in argv)


def run_command(
    argv: Sequence[str],
    cwd: Path | None = None,
    check: bool = False,
) -> CommandResult:
    """Run a command to completion, capturing its output.

    A missing executable is reported as returncode -1 with the OS error in
    stderr rather than raised.

    Args:
        argv: Command and arguments
        cwd: Working directory
        check: Raise CommandError on a non-zero exit

    Returns:
        The command result

    Raises:
        CommandError: If check is True and the command failed
    """
    argv_list = [str(a) for a in argv]
    logger.debug("Running command: %s", format_argv(argv_list))

    try:
        proc = subprocess.run(
            argv_list,
            cwd=cwd,
            capture_output=True,
            text=True,
            check=False,
        )
        result = CommandResult(argv_list, proc.returncode, proc.stdout, proc.stderr)
    except OSError as e:
        result = CommandResult(argv_list, -1, "", str(e))

    if result.stdout.strip():
        logger.debug("%s: %s", argv_list[0], result.stdout.strip())
    if not result.ok:
        logger.error(
            "Command failed (%d): %s - %s",
            result.returncode,
            result.command_line,
            result.stderr.strip(),
        )
        if check:
            raise CommandError(result)

    return result


class CommandRunner:
    """Callable wrapper around run_command, replaceable in tests."""

    def run(self, argv: Sequence[str], cwd: Path | None = None) -> CommandResult:
        return run_command(argv, cwd=cwd)
