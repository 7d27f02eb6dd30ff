"""Error taxonomy shared by every VCS driver.

Every failure a driver can produce is exactly one of the `DriverError`
subclasses below. The helpers at the bottom of this module are the only
place that turns a launched (or unlaunchable) subprocess into either text
output or one of those errors; adapters never look at exit codes themselves.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import ClassVar, Final

from vcsq.execution.base import CommandRunner, ProcessOutput
from vcsq.repo.output import LossyOutput, StrictOutput, split_lines

ERROR_REPO_NOT_CLEAN: Final[str] = "repo not clean, references not hermetic"
ERROR_REPO_NOT_DIRTY: Final[str] = "repo not dirty"
ERROR_REPO_NONEMPTY_OUTPUT: Final[str] = "unexpectedly returned no lines"


def _one_line(text: str) -> str:
    return text.strip().replace("\r", "").replace("\n", "\\n")


class DriverError(RuntimeError):
    """Base class for every failure a VCS driver reports."""

    kind: ClassVar[str] = "unknown"


class DirectoryError(DriverError):
    """The queried directory is missing, not a directory, or inaccessible."""

    kind = "directory"

    def __init__(self, message: str) -> None:
        super().__init__(f"directory access issue: {message}")
        self.message = message


class CommandError(DriverError):
    """The VCS binary could not be launched at all."""

    kind = "command"

    def __init__(self, context: str, source: OSError) -> None:
        super().__init__(f"vcs call failed: {context}: {_one_line(str(source))}")
        self.context = context
        self.source = source


class StderrError(DriverError):
    """The VCS binary ran, exited non-zero, and printed an error message."""

    kind = "stderr"

    def __init__(self, context: str, stderr: str) -> None:
        super().__init__(f"vcs stderr: {context}: {_one_line(stderr)}")
        self.context = context
        self.stderr = stderr


class RootNameError(DriverError):
    """The VCS printed something that was not valid UTF-8 where text was required."""

    kind = "root_name"

    def __init__(self, source: UnicodeDecodeError) -> None:
        super().__init__(f"vcs returned a problematic root name: {source}")
        self.source = source


class UnknownError(DriverError):
    """A contract-level problem with otherwise successful VCS output."""

    kind = "unknown"

    def __init__(self, message: str) -> None:
        super().__init__(_one_line(message))
        self.message = message


class RepoNotDirtyError(UnknownError):
    """Dirty files were required but the working tree is clean."""

    def __init__(self, context: str) -> None:
        super().__init__(f"{context}: {ERROR_REPO_NOT_DIRTY}")
        self.context = context


class RepoNotCleanError(UnknownError):
    """A hermetic answer was required but the working tree is dirty."""

    def __init__(self) -> None:
        super().__init__(ERROR_REPO_NOT_CLEAN)


@dataclass(frozen=True)
class Invocation:
    """A fully-specified VCS command, ready to hand to a `CommandRunner`."""

    command: list[str]
    cwd: Path | None = None
    env: dict[str, str] = field(default_factory=dict)

    def launch(self, runner: CommandRunner, *, discard_output: bool = False) -> ProcessOutput:
        return runner.run(
            self.command,
            cwd=self.cwd,
            env=self.env or None,
            discard_output=discard_output,
        )


def _launch(
    context: str,
    runner: CommandRunner,
    invocation: Invocation,
    discard_output: bool,
) -> ProcessOutput:
    try:
        return invocation.launch(runner, discard_output=discard_output)
    except OSError as exc:
        raise CommandError(context, exc) from exc


def unwrap_cmd(
    context: str,
    runner: CommandRunner,
    invocation: Invocation,
    *,
    discard_output: bool = False,
) -> StrictOutput:
    """Run `invocation`, strict about its output being UTF-8.

    The exit status is not inspected; see `expect_cmd` for that.

    Raises:
        CommandError: If the command could not be launched.
    """

    return StrictOutput.from_process(_launch(context, runner, invocation, discard_output))


def unwrap_cmd_lossy(
    context: str,
    runner: CommandRunner,
    invocation: Invocation,
    *,
    discard_output: bool = False,
) -> LossyOutput:
    """Like `unwrap_cmd`, but with a lossy UTF-8 conversion of the output."""

    return LossyOutput.from_process(_launch(context, runner, invocation, discard_output))


def expect_cmd(context: str, runner: CommandRunner, invocation: Invocation) -> StrictOutput:
    """Like `unwrap_cmd`, additionally requiring a zero exit status.

    Raises:
        CommandError: If the command could not be launched.
        StderrError: If the command exited non-zero.
        UnknownError: If it exited non-zero and its stderr was not UTF-8.
    """

    output = unwrap_cmd(context, runner, invocation)
    if not output.success:
        if isinstance(output.stderr, UnicodeDecodeError):
            raise UnknownError(
                f"bad utf8 from stderr: {output.stderr}; "
                f"lossy conversion: {output.stderr_lossy}"
            )
        raise StderrError(context, output.stderr)
    return output


def expect_cmd_lossy(context: str, runner: CommandRunner, invocation: Invocation) -> LossyOutput:
    """Like `unwrap_cmd_lossy`, additionally requiring a zero exit status.

    Raises:
        CommandError: If the command could not be launched.
        StderrError: If the command exited non-zero.
    """

    output = unwrap_cmd_lossy(context, runner, invocation)
    if not output.success:
        raise StderrError(context, output.stderr)
    return output


def expect_cmd_line(context: str, output: LossyOutput | StrictOutput) -> str:
    """Return the single, non-empty line `output` printed to stdout.

    Raises:
        RootNameError: If `output` is strict and stdout was not UTF-8.
        UnknownError: If stdout held no line, an empty line, or more than one line.
    """

    try:
        lines = output.stdout_lines()
    except UnicodeDecodeError as exc:
        raise RootNameError(exc) from exc
    return expect_line(context, lines)


def expect_line(context: str, lines: list[str], *, allow_empty: bool = False) -> str:
    """Return the only entry of `lines`.

    Args:
        context: Description of the command that produced `lines`.
        lines: Stdout lines of a command.
        allow_empty: Accept zero lines or a lone empty line, returning "".

    Raises:
        UnknownError: If there is more than one line, or no non-empty line
            and `allow_empty` is false.
    """

    if len(lines) > 1:
        raise UnknownError(
            f"unexpectedly got multiple ({len(lines)}) lines: {context}: {lines!r}"
        )
    line = lines[0] if lines else ""
    if not line and not allow_empty:
        raise UnknownError(f"unexpectedly returned empty output: {context}")
    return line


def expect_cmd_lines(
    context: str,
    runner: CommandRunner,
    invocation: Invocation,
    *,
    min_lines: int = 0,
    not_enough_msg: str | None = None,
    terminator: str = "\n",
) -> list[str]:
    """Run `invocation` and return its stdout lines, requiring at least `min_lines`.

    Args:
        terminator: What ends each record; `"\\0"` for `-z` output.

    Raises:
        CommandError: If the command could not be launched.
        StderrError: If the command exited non-zero.
        RepoNotDirtyError: If too few lines were printed and `not_enough_msg`
            is the not-dirty message.
        UnknownError: If too few lines were printed otherwise.
    """

    output = expect_cmd_lossy(context, runner, invocation)
    lines = split_lines(output.stdout, terminator)
    if len(lines) < min_lines:
        if not_enough_msg == ERROR_REPO_NOT_DIRTY:
            raise RepoNotDirtyError(context)
        raise UnknownError(f"{context}: {not_enough_msg or ERROR_REPO_NONEMPTY_OUTPUT}")
    return lines
