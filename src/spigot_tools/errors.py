"""Failures raised by command execution."""

from __future__ import annotations

from collections.abc import Sequence


class CommandError(Exception):
    """Base class for every failed command execution."""


class CommandIOError(CommandError):
    """Raised when a process cannot be spawned or its output cannot be read."""

    def __init__(self, cmd: Sequence[str], error: OSError) -> None:
        self.cmd = list(cmd)
        self.error = error
        super().__init__(f"IO Error occurred while executing command {self.cmd}: {error}")


class MissingCommandError(CommandError):
    """Raised when a command template contains no executable."""

    def __init__(self, template: str = "") -> None:
        self.template = template
        super().__init__(
            "Provided command string didn't contain a command. (Was it empty?)"
        )


class NonZeroExitError(CommandError):
    """Raised when a process exits with a non-zero exit code."""

    def __init__(self, cmd: Sequence[str], code: int) -> None:
        self.cmd = list(cmd)
        self.code = code
        super().__init__(
            f"Command {self.cmd} exited with non-zero exit code: Code {code}"
        )


class CommandTimeoutError(CommandError):
    """Raised when a process is still running after its deadline."""

    def __init__(self, cmd: Sequence[str], timeout: float) -> None:
        self.cmd = list(cmd)
        self.timeout = timeout
        super().__init__(f"Command {self.cmd} exceeded timeout after {timeout:.3f}s")
