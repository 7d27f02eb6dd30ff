"""Process execution boundary used by every VCS adapter."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class ProcessOutput:
    """Raw result of a completed external command.

    Attributes:
        command: The command executed as a list of strings.
        exit_code: Exit code returned by the process.
        stdout: Captured standard output, undecoded.
        stderr: Captured standard error, undecoded.
        duration_s: Duration of the execution in seconds.
    """

    command: list[str]
    exit_code: int
    stdout: bytes = b""
    stderr: bytes = b""
    duration_s: float = 0.0

    @property
    def success(self) -> bool:
        return self.exit_code == 0


class CommandRunner(ABC):
    """Abstract base class for synchronous command runners."""

    @abstractmethod
    def run(
        self,
        command: list[str],
        cwd: Path | None = None,
        env: dict[str, str] | None = None,
        discard_output: bool = False,
    ) -> ProcessOutput:
        """Run a command to completion and capture its raw output.

        Args:
            command: The command to execute.
            cwd: Optional working directory for the command.
            env: Optional environment variables layered over the current environment.
            discard_output: Send stdout and stderr to the null device instead of
                capturing them.

        Returns:
            ProcessOutput with the exit code and raw stdout/stderr bytes.

        Raises:
            OSError: If the process could not be launched at all (missing
                binary, unusable working directory, permissions).
        """
