"""Local execution of VCS binaries."""

from __future__ import annotations

import os
import subprocess
import time
from pathlib import Path

from vcsq.execution.base import CommandRunner, ProcessOutput
from vcsq.util.logging import get_logger


class LocalRunner(CommandRunner):
    """Run commands on the local host, blocking until they exit."""

    def __init__(self) -> None:
        self._logger = get_logger(self.__class__.__name__)

    def run(
        self,
        command: list[str],
        cwd: Path | None = None,
        env: dict[str, str] | None = None,
        discard_output: bool = False,
    ) -> ProcessOutput:
        """Run a command locally and capture its raw output.

        Args:
            command: The command to execute.
            cwd: Optional working directory.
            env: Optional environment variables to include.
            discard_output: Whether to drop stdout/stderr instead of capturing.

        Returns:
            ProcessOutput with exit code, raw stdout/stderr, and duration.
        """

        if not command:
            raise ValueError("Command must contain at least one argument.")

        merged_env = os.environ.copy()
        if env:
            merged_env.update(env)

        stream = subprocess.DEVNULL if discard_output else subprocess.PIPE
        self._logger.debug("Running %s in %s", command, cwd)
        start = time.monotonic()
        completed = subprocess.run(
            command,
            cwd=str(cwd) if cwd is not None else None,
            env=merged_env,
            stdin=subprocess.DEVNULL,
            stdout=stream,
            stderr=stream,
            check=False,
        )
        duration = time.monotonic() - start
        self._logger.debug(
            "Command %s finished with exit code %s in %.2fs.",
            command[0],
            completed.returncode,
            duration,
        )

        return ProcessOutput(
            command=list(command),
            exit_code=completed.returncode,
            stdout=completed.stdout or b"",
            stderr=completed.stderr or b"",
            duration_s=duration,
        )
