"""UTF-8 views over raw command output.

VCS command lines are text-oriented, but nothing stops them from printing
bytes that are not valid UTF-8 (a file name on a non-UTF-8 filesystem, for
instance). `LossyOutput` papers over that with replacement characters, while
`StrictOutput` keeps the decode failure around for callers that must tell
binary garbage apart from valid, empty output.
"""

from __future__ import annotations

from dataclasses import dataclass

from vcsq.execution.base import ProcessOutput

REPLACEMENT_ERRORS = "replace"


def split_lines(text: str, terminator: str = "\n") -> list[str]:
    """Split text on `terminator` without trimming.

    A single trailing terminator ends the last record rather than opening
    an empty one; interior empty records are preserved as empty strings.
    Pass `"\\0"` for the NUL-terminated output of `-z` style flags.
    """

    if not text:
        return []
    lines = text.split(terminator)
    if lines[-1] == "":
        lines.pop()
    return lines


def _decode(raw: bytes) -> str | UnicodeDecodeError:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        return exc


@dataclass(frozen=True)
class LossyOutput:
    """Best-effort text form of a completed command; never fails."""

    exit_code: int
    stdout: str
    stderr: str

    @classmethod
    def from_process(cls, output: ProcessOutput) -> LossyOutput:
        return cls(
            exit_code=output.exit_code,
            stdout=output.stdout.decode("utf-8", errors=REPLACEMENT_ERRORS),
            stderr=output.stderr.decode("utf-8", errors=REPLACEMENT_ERRORS),
        )

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    def stdout_lines(self) -> list[str]:
        return split_lines(self.stdout)

    def stderr_lines(self) -> list[str]:
        return split_lines(self.stderr)


@dataclass(frozen=True)
class StrictOutput:
    """Text form of a completed command that remembers decode failures.

    Attributes:
        exit_code: Exit code returned by the process.
        stdout: Decoded stdout, or the error raised while decoding it.
        stdout_lossy: Lossy decoding of stdout, always available.
        stderr: Decoded stderr, or the error raised while decoding it.
        stderr_lossy: Lossy decoding of stderr, always available.
    """

    exit_code: int
    stdout: str | UnicodeDecodeError
    stdout_lossy: str
    stderr: str | UnicodeDecodeError
    stderr_lossy: str

    @classmethod
    def from_process(cls, output: ProcessOutput) -> StrictOutput:
        lossy = LossyOutput.from_process(output)
        return cls(
            exit_code=output.exit_code,
            stdout=_decode(output.stdout),
            stdout_lossy=lossy.stdout,
            stderr=_decode(output.stderr),
            stderr_lossy=lossy.stderr,
        )

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    def stdout_text(self) -> str:
        """Return stdout, raising the stored `UnicodeDecodeError` if it was not UTF-8."""

        if isinstance(self.stdout, UnicodeDecodeError):
            raise self.stdout
        return self.stdout

    def stderr_text(self) -> str:
        """Return stderr, raising the stored `UnicodeDecodeError` if it was not UTF-8."""

        if isinstance(self.stderr, UnicodeDecodeError):
            raise self.stderr
        return self.stderr

    def stdout_lines(self) -> list[str]:
        return split_lines(self.stdout_text())

    def stderr_lines(self) -> list[str]:
        return split_lines(self.stderr_text())

    def lossy(self) -> LossyOutput:
        return LossyOutput(
            exit_code=self.exit_code,
            stdout=self.stdout_lossy,
            stderr=self.stderr_lossy,
        )
