"""Abstract interfaces every brand of VCS driver implements."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from vcsq.repo.errors import RepoNotCleanError
from vcsq.repo.output import LossyOutput

QueryDir = Path
"""The local directory a VCS query centers around."""

HistoryRefId = str
"""Canonical, machine-generated identifier of a point in history (eg: a commit hash).

These always exist, regardless of the point in history.
"""

HistoryRefName = str
"""Human-assigned identifier of a point in history (eg: git tag or branch, jj bookmark).

These are sparse in a repo's history, unlike `HistoryRefId`.
"""

VcsAvailable = LossyOutput
"""Output of a VCS's version command, proving the binary is usable."""


@dataclass(frozen=True)
class HistoryRef:
    """Single point in the repo's history.

    Attributes:
        id: VCS's canonical identifier for this point in history.
        name: Hand-written, human-readable name of this point, if a human made one.
        dirty: Whether the repo was dirty when this was resolved (and therefore
            this isn't a hermetic description of the repo's content).
    """

    id: HistoryRefId
    name: HistoryRefName | None
    dirty: bool


@dataclass(frozen=True)
class AncestorRef:
    """A named ancestor found while walking back from the current point.

    Attributes:
        id: Canonical identifier of the ancestor.
        name: The human-made name found on it.
        distance: Steps back from the current point; always 1 or more.
    """

    id: HistoryRefId
    name: HistoryRefName
    distance: int

    def __post_init__(self) -> None:
        if self.distance < 1:
            raise ValueError(f"ancestor distance must be 1 or more, got {self.distance}")


def check_limit(limit: int | None) -> None:
    """Reject ancestor-walk limits that could never step back at all."""

    if limit is not None and limit < 1:
        raise ValueError(f"ancestor limit must be 1 or more, got {limit}")


def walk_first_parents(
    start: HistoryRefId | None,
    parents: Mapping[HistoryRefId, HistoryRefId | None],
    names: Mapping[HistoryRefId, HistoryRefName | None],
    limit: int | None = None,
) -> AncestorRef | None:
    """Follow first parents from `start` (distance 1) until a named ref is found.

    Args:
        start: The first ancestor to consider, or None if there is none.
        parents: First parent of every ref in the parsed log.
        names: Preferred name of every ref in the parsed log, if any.
        limit: Maximum number of steps to take, or None for no bound.

    Returns:
        The nearest named ancestor within `limit` steps, or None.
    """

    check_limit(limit)
    current = start
    distance = 1
    seen: set[HistoryRefId] = set()
    while current is not None and current not in seen:
        if limit is not None and distance > limit:
            return None
        name = names.get(current)
        if name:
            return AncestorRef(id=current, name=name, distance=distance)
        seen.add(current)
        current = parents.get(current)
        distance += 1
    return None


class Driver(ABC):
    """Repo-specific questions any VCS should be able to answer.

    Every method re-invokes the underlying VCS binary; implementations hold
    nothing but the directory they are bound to. Failures raise a
    `vcsq.repo.errors.DriverError` subclass and are never retried.
    """

    @abstractmethod
    def root(self) -> QueryDir:
        """Return the root directory of the repo."""

    @abstractmethod
    def dirty_files(self, clean_ok: bool = False) -> list[QueryDir]:
        """List paths responsible for the repo being dirty.

        Args:
            clean_ok: Return an empty list for a clean repo instead of raising.

        Raises:
            RepoNotDirtyError: If the repo is clean and `clean_ok` is false.
        """

    @abstractmethod
    def tracked_files(self) -> list[QueryDir]:
        """List paths versioned as of the current commit, ignoring working-copy edits."""

    @abstractmethod
    def current_ref_id(self, dirty_ok: bool = False) -> HistoryRefId:
        """Return the canonical identifier of the current point in history.

        A repo with no history yet reports its brand's all-zero identifier.

        Raises:
            RepoNotCleanError: If the repo is dirty and `dirty_ok` is false.
        """

    @abstractmethod
    def current_ref_name(self, dirty_ok: bool = False) -> HistoryRefName | None:
        """Return the human-readable name of the current point, if any.

        Raises:
            RepoNotCleanError: If the repo is dirty and `dirty_ok` is false.
        """

    @abstractmethod
    def parent_ref_id(self) -> HistoryRefId:
        """Return the identifier of the current point's first parent."""

    @abstractmethod
    def parent_ref_name(self) -> HistoryRefName | None:
        """Return the human-readable name of the current point's first parent, if any."""

    @abstractmethod
    def first_ancestor_ref_name(self, limit: int | None = None) -> AncestorRef | None:
        """Walk first parents back and return the nearest one carrying a name.

        Args:
            limit: Maximum number of steps back to take, or None for no bound.
        """

    def is_clean(self) -> bool:
        """Whether the repo has no uncommitted work."""

        return not self.dirty_files(clean_ok=True)

    def ensure_clean(self, dirty_ok: bool) -> None:
        """Raise `RepoNotCleanError` unless `dirty_ok` or the repo is clean."""

        if not dirty_ok and not self.is_clean():
            raise RepoNotCleanError()

    def current_ref(self, dirty_ok: bool = False) -> HistoryRef:
        """Return the current point in history along with the tree's dirtiness."""

        dirty = not self.is_clean()
        if dirty and not dirty_ok:
            raise RepoNotCleanError()
        return HistoryRef(
            id=self.current_ref_id(dirty_ok=True),
            name=self.current_ref_name(dirty_ok=True),
            dirty=dirty,
        )

    def parent_ref(self) -> HistoryRef:
        """Return the first parent of the current point in history."""

        return HistoryRef(
            id=self.parent_ref_id(),
            name=self.parent_ref_name(),
            dirty=not self.is_clean(),
        )


class Validator(ABC):
    """Questions about a brand of VCS itself, rather than one of its repos."""

    @abstractmethod
    def probe(self, directory: QueryDir) -> Driver | None:
        """Return a driver bound to `directory` if this brand manages it.

        Returns:
            A Driver, or None when the brand's discovery command exits non-zero.

        Raises:
            CommandError: If the brand's binary could not be launched.
        """

    @abstractmethod
    def check_health(self) -> VcsAvailable:
        """Return the brand's version output, proving its binary is usable."""
