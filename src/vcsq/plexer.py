"""Brand detection: finds which VCS, if any, manages a directory.

`detect` is the entry point for repo queries and `check_health` reports which
VCS binaries on this host are usable at all.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from vcsq.adapters.base import CliValidator
from vcsq.adapters.git import GitValidator
from vcsq.adapters.hg import HgValidator
from vcsq.adapters.jj import JjValidator
from vcsq.config import VcsqConfig
from vcsq.execution.base import CommandRunner
from vcsq.execution.local_exec import LocalRunner
from vcsq.repo.base import (
    AncestorRef,
    Driver,
    HistoryRefId,
    HistoryRefName,
    QueryDir,
    VcsAvailable,
)
from vcsq.repo.errors import DirectoryError, DriverError, UnknownError
from vcsq.util.logging import get_logger

_LOGGER = get_logger("vcsq.plexer")


class VcsBrand(Enum):
    """Every brand of VCS vcsq can drive, in the order directories are probed."""

    GIT = "Git"
    MERCURIAL = "Mercurial"
    JUJUTSU = "Jujutsu"

    def __str__(self) -> str:
        return self.value


_VALIDATORS: dict[VcsBrand, type[CliValidator]] = {
    VcsBrand.GIT: GitValidator,
    VcsBrand.MERCURIAL: HgValidator,
    VcsBrand.JUJUTSU: JjValidator,
}


@dataclass(frozen=True)
class Repo(Driver):
    """A directory bound to the brand of VCS that claimed it.

    Every query is forwarded to the brand's driver unchanged.
    """

    brand: VcsBrand
    driver: Driver

    def root(self) -> QueryDir:
        return self.driver.root()

    def dirty_files(self, clean_ok: bool = False) -> list[QueryDir]:
        return self.driver.dirty_files(clean_ok=clean_ok)

    def tracked_files(self) -> list[QueryDir]:
        return self.driver.tracked_files()

    def current_ref_id(self, dirty_ok: bool = False) -> HistoryRefId:
        return self.driver.current_ref_id(dirty_ok=dirty_ok)

    def current_ref_name(self, dirty_ok: bool = False) -> HistoryRefName | None:
        return self.driver.current_ref_name(dirty_ok=dirty_ok)

    def parent_ref_id(self) -> HistoryRefId:
        return self.driver.parent_ref_id()

    def parent_ref_name(self) -> HistoryRefName | None:
        return self.driver.parent_ref_name()

    def first_ancestor_ref_name(self, limit: int | None = None) -> AncestorRef | None:
        return self.driver.first_ancestor_ref_name(limit=limit)


@dataclass(frozen=True)
class VcsHealth:
    """Outcome of checking one brand's binary.

    Attributes:
        brand: The brand that was checked.
        output: Version output when the binary answered.
        error: The failure when it did not.
    """

    brand: VcsBrand
    output: VcsAvailable | None = None
    error: DriverError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def validator_for(
    brand: VcsBrand,
    config: VcsqConfig | None = None,
    runner: CommandRunner | None = None,
) -> CliValidator:
    """Build the validator for `brand`, honoring configured binaries and env."""

    config = config or VcsqConfig()
    return _VALIDATORS[brand](
        runner=runner or LocalRunner(),
        binary=config.binaries.for_brand(brand.value),
        env=dict(config.env),
    )


def detect(
    directory: QueryDir | str,
    config: VcsqConfig | None = None,
    runner: CommandRunner | None = None,
) -> Repo:
    """Find the VCS managing `directory`.

    Brands are probed in `VcsBrand` order and the first one to claim the
    directory wins; later brands are not probed.

    Args:
        directory: Directory to inspect.
        config: Binaries and environment to use; defaults apply when omitted.
        runner: Runner used to launch every VCS binary.

    Returns:
        A Repo bound to the claiming brand's driver.

    Raises:
        DirectoryError: If `directory` is missing or not a directory.
        CommandError: If a brand's binary could not be launched.
        UnknownError: If no brand claims the directory.
    """

    path = Path(directory)
    if not path.exists():
        raise DirectoryError(f"{path}: no such directory")
    if not path.is_dir():
        raise DirectoryError(f"{path}: not a directory")

    runner = runner or LocalRunner()
    for brand in VcsBrand:
        driver = validator_for(brand, config, runner).probe(path)
        if driver is not None:
            _LOGGER.info("Detected %s repository at %s", brand, path)
            return Repo(brand=brand, driver=driver)

    tried = ", ".join(str(brand) for brand in VcsBrand)
    raise UnknownError(
        f"if dir is a VCS, it's of an unknown brand (tried these {len(VcsBrand)}: {tried})"
    )


def check_health(
    config: VcsqConfig | None = None,
    runner: CommandRunner | None = None,
) -> list[VcsHealth]:
    """Check every brand's binary, in `VcsBrand` order, without stopping at failures."""

    runner = runner or LocalRunner()
    results: list[VcsHealth] = []
    for brand in VcsBrand:
        try:
            output = validator_for(brand, config, runner).check_health()
        except DriverError as exc:
            _LOGGER.debug("%s health check failed: %s", brand, exc)
            results.append(VcsHealth(brand=brand, error=exc))
            continue
        _LOGGER.debug("%s health check passed", brand)
        results.append(VcsHealth(brand=brand, output=output))
    return results
