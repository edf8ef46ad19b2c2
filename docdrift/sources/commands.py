"""Shell command execution with captured output and a hard timeout."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from ..logging import get_logger

DEFAULT_COMMAND_TIMEOUT = 120.0

# Conventional shell exit codes for a timed-out or unlaunchable command.
_TIMEOUT_EXIT_CODE = 124
_NOT_FOUND_EXIT_CODE = 127


@dataclass(frozen=True)
class CommandResult:
    """Captured outcome of one shell command."""

    command: str
    exit_code: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class CommandExecutor:
    """Runs shell commands to completion and never raises on failure.

    A non-zero exit, a timeout or a command that cannot be launched all come
    back as a ``CommandResult`` with a non-zero ``exit_code``.
    """

    def __init__(
        self,
        runner: Callable[..., CommandResult] | None = None,
        *,
        timeout: float = DEFAULT_COMMAND_TIMEOUT,
        cwd: Path | None = None,
    ) -> None:
        self._runner = runner or self._default_runner
        self.timeout = timeout
        self.cwd = cwd
        self.logger = get_logger("commands")

    def run(self, command: str) -> CommandResult:
        self.logger.debug("Running command: %s", command)
        result = self._runner(command, cwd=self.cwd, timeout=self.timeout)
        if not result.ok:
            self.logger.debug("Command exited with %d: %s", result.exit_code, command)
        return result

    @staticmethod
    def _default_runner(
        command: str,
        *,
        cwd: Path | None = None,
        timeout: float = DEFAULT_COMMAND_TIMEOUT,
    ) -> CommandResult:
        try:
            completed = subprocess.run(
                command,
                shell=True,
                cwd=str(cwd) if cwd else None,
                text=True,
                capture_output=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as exc:
            stdout = _as_text(exc.stdout)
            stderr = _as_text(exc.stderr)
            message = f"Command timed out after {timeout:g}s"
            return CommandResult(
                command=command,
                exit_code=_TIMEOUT_EXIT_CODE,
                stdout=stdout,
                stderr=f"{stderr}\n{message}".strip(),
            )
        except OSError as exc:
            return CommandResult(
                command=command,
                exit_code=_NOT_FOUND_EXIT_CODE,
                stdout="",
                stderr=str(exc),
            )
        return CommandResult(
            command=command,
            exit_code=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )


def format_command_log(result: CommandResult) -> str:
    """Render a command transcript for an evidence log."""
    return "\n".join(
        [
            f"$ {result.command}",
            f"exitCode: {result.exit_code}",
            "\n--- stdout ---",
            result.stdout,
            "\n--- stderr ---",
            result.stderr,
        ]
    )


def _as_text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


__all__ = [
    "CommandExecutor",
    "CommandResult",
    "DEFAULT_COMMAND_TIMEOUT",
    "format_command_log",
]
