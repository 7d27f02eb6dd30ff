"""Driver contract, output normalization, and error taxonomy."""

from vcsq.repo.base import (
    AncestorRef,
    Driver,
    HistoryRef,
    HistoryRefId,
    HistoryRefName,
    QueryDir,
    Validator,
    VcsAvailable,
)
from vcsq.repo.errors import (
    CommandError,
    DirectoryError,
    DriverError,
    Invocation,
    RepoNotCleanError,
    RepoNotDirtyError,
    RootNameError,
    StderrError,
    UnknownError,
)
from vcsq.repo.output import LossyOutput, StrictOutput, split_lines

__all__ = [
    "AncestorRef",
    "CommandError",
    "DirectoryError",
    "Driver",
    "DriverError",
    "HistoryRef",
    "HistoryRefId",
    "HistoryRefName",
    "Invocation",
    "LossyOutput",
    "QueryDir",
    "RepoNotCleanError",
    "RepoNotDirtyError",
    "RootNameError",
    "StderrError",
    "StrictOutput",
    "UnknownError",
    "Validator",
    "VcsAvailable",
    "split_lines",
]
