"""Shared plumbing for drivers that shell out to a VCS binary."""

from __future__ import annotations

from abc import abstractmethod
from pathlib import Path
from typing import ClassVar, Final

from vcsq.execution.base import CommandRunner
from vcsq.execution.local_exec import LocalRunner
from vcsq.repo.base import Driver, QueryDir, Validator, VcsAvailable
from vcsq.repo.errors import Invocation, UnknownError, expect_cmd_lossy, unwrap_cmd_lossy
from vcsq.util.logging import get_logger

# Scrape markers are derived from this so they cannot plausibly collide with
# real tag, branch or bookmark names.
VCSQ_FIRST_COMMIT_ID: Final[str] = "0ff8325e7d74a838d39cdffff9cddcecdce30f10"
VCSQ_UNIQUE_PREFIX: Final[str] = f"VCSQ_SCRAPING_{VCSQ_FIRST_COMMIT_ID}_"

_LOGGER = get_logger("vcsq.adapters")


def scrape_marker(label: str) -> str:
    """Return a delimiter for scraping VCS output, unique to `label`."""

    return f"{VCSQ_UNIQUE_PREFIX}{label}"


def split_fields(context: str, line: str, separator: str, count: int) -> list[str]:
    """Split a scraped line into exactly `count` fields.

    Raises:
        UnknownError: If the VCS printed a different number of fields.
    """

    fields = line.split(separator)
    if len(fields) != count:
        raise UnknownError(
            f"{context}: expected {count} fields, got {len(fields)}: {line!r}"
        )
    return fields


def split_names(text: str, separator: str) -> list[str]:
    return [name for name in text.split(separator) if name]


class CliDriver(Driver):
    """Driver bound to one directory, answering queries by running a VCS binary."""

    default_binary: ClassVar[str]
    base_env: ClassVar[dict[str, str]] = {}

    def __init__(
        self,
        directory: QueryDir,
        *,
        runner: CommandRunner | None = None,
        binary: str | None = None,
        env: dict[str, str] | None = None,
    ) -> None:
        """Initialize the driver.

        Args:
            directory: Directory every query runs in.
            runner: Runner used to launch the VCS binary.
            binary: VCS binary to invoke instead of the brand's default.
            env: Extra environment variables for every invocation.
        """

        self.directory = Path(directory)
        self._runner = runner or LocalRunner()
        self._binary = binary or self.default_binary
        self._env = {**self.base_env, **(env or {})}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(directory={self.directory!r})"

    @property
    def runner(self) -> CommandRunner:
        return self._runner

    def shellout(self, *args: str) -> Invocation:
        """Build an invocation of the VCS binary in this driver's directory."""

        return Invocation(command=[self._binary, *args], cwd=self.directory, env=dict(self._env))

    def context(self, action: str) -> str:
        return f"{self._binary} cli: {action}"

    @abstractmethod
    def discovery(self) -> Invocation:
        """Return the side-effect-free command that succeeds only inside this brand's repos."""


class CliValidator(Validator):
    """Validator that probes directories with a driver's discovery command."""

    driver_class: ClassVar[type[CliDriver]]

    def __init__(
        self,
        *,
        runner: CommandRunner | None = None,
        binary: str | None = None,
        env: dict[str, str] | None = None,
    ) -> None:
        self._runner = runner or LocalRunner()
        self._binary = binary or self.driver_class.default_binary
        self._env = {**self.driver_class.base_env, **(env or {})}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(binary={self._binary!r})"

    def new_driver(self, directory: QueryDir) -> CliDriver:
        return self.driver_class(
            directory,
            runner=self._runner,
            binary=self._binary,
            env=self._env,
        )

    def probe(self, directory: QueryDir) -> CliDriver | None:
        driver = self.new_driver(directory)
        output = unwrap_cmd_lossy(
            driver.context("probe"),
            self._runner,
            driver.discovery(),
            discard_output=True,
        )
        if not output.success:
            _LOGGER.debug(
                "%s does not claim %s (exit code %s)", self._binary, directory, output.exit_code
            )
            return None
        _LOGGER.debug("%s claims %s", self._binary, directory)
        return driver

    def check_health(self) -> VcsAvailable:
        invocation = Invocation(command=[self._binary, "--version"], env=dict(self._env))
        return expect_cmd_lossy(f"{self._binary} cli: --version", self._runner, invocation)
