"""Git driver: answers repo queries by shelling out to `git`."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Final

from vcsq.adapters.base import CliDriver, CliValidator, scrape_marker, split_fields
from vcsq.repo.base import AncestorRef, HistoryRefId, HistoryRefName, QueryDir, check_limit
from vcsq.repo.errors import (
    ERROR_REPO_NOT_DIRTY,
    Invocation,
    StderrError,
    UnknownError,
    expect_cmd,
    expect_cmd_line,
    expect_cmd_lines,
    expect_cmd_lossy,
    expect_line,
)

VCS_BIN_NAME: Final[str] = "git"

ZERO_ID: Final[str] = "0" * 40
"""Synthetic id reported before the first commit: git's own null object id."""

# Fragments of the stderr git prints when a revision like HEAD or HEAD~1
# cannot be resolved because history does not reach that far:
#
#   $ git init . && git rev-parse HEAD
#   fatal: ambiguous argument 'HEAD': unknown revision or path not in the working tree.
#   $ git ls-tree HEAD
#   fatal: Not a valid object name HEAD
GIT_ERRORS_NO_HISTORY: Final[tuple[str, ...]] = (
    "unknown revision",
    "Not a valid object name",
    "bad revision",
    "does not have any commits yet",
)

NUL: Final[str] = "\0"
DIRTY_PREFIX_WIDTH: Final[int] = 3
COPY_OR_RENAME: Final[frozenset[str]] = frozenset({"R", "C"})

# `%D` renders decorations as `HEAD -> main, tag: v1.0, feature`. Ref names
# can never contain a space, and a git too old to know a placeholder echoes
# it back verbatim; neither can be a well-formed entry.
DECORATE_FORMAT: Final[str] = "%D"
DECORATE_SEPARATOR: Final[str] = ", "
DECORATE_POINTER: Final[str] = "HEAD -> "
DECORATE_TAG: Final[str] = "tag: "
DECORATE_REFS: Final[tuple[str, ...]] = (
    "--decorate-refs=refs/heads/",
    "--decorate-refs=refs/tags/",
)
LOG_FIELD_SEPARATOR: Final[str] = scrape_marker("field")
ANCESTOR_FORMAT: Final[str] = f"%H{LOG_FIELD_SEPARATOR}{DECORATE_FORMAT}"


def parse_decorations(context: str, text: str) -> tuple[list[str], list[str]]:
    """Split a `%D` rendering into (tags, branches).

    The bare `HEAD` entry of a detached checkout is dropped, and `HEAD -> branch`
    pointers contribute just the branch.

    Raises:
        UnknownError: If an entry is not a ref name git could have printed.
    """

    tags: list[str] = []
    branches: list[str] = []
    if not text:
        return tags, branches
    for item in text.split(DECORATE_SEPARATOR):
        if item.startswith(DECORATE_TAG):
            name, target = item[len(DECORATE_TAG) :], tags
        elif item.startswith(DECORATE_POINTER):
            name, target = item[len(DECORATE_POINTER) :], branches
        elif item == "HEAD":
            continue
        else:
            name, target = item, branches
        if not _well_formed(name):
            raise UnknownError(f"{context}: unrecognized decoration {item!r} in {text!r}")
        target.append(name)
    return tags, branches


def preferred_name(tags: list[str], branches: list[str]) -> HistoryRefName | None:
    """Pick the name reported for a commit: its greatest tag, else its first branch."""

    if tags:
        return max(tags)
    return branches[0] if branches else None


def is_no_history(error: StderrError) -> bool:
    return any(fragment in error.stderr for fragment in GIT_ERRORS_NO_HISTORY)


def parse_status_records(context: str, records: Iterable[str]) -> list[Path]:
    """Strip `XY ` status codes off `git status --porcelain -z` records.

    Copies and renames are followed by an extra record holding the source
    path, which is skipped so that only the new path is reported.
    """

    paths: list[Path] = []
    remaining = iter(records)
    for record in remaining:
        if len(record) <= DIRTY_PREFIX_WIDTH or record[DIRTY_PREFIX_WIDTH - 1] != " ":
            raise UnknownError(f"{context}: unrecognized status entry {record!r}")
        paths.append(Path(record[DIRTY_PREFIX_WIDTH:]))
        if COPY_OR_RENAME.intersection(record[: DIRTY_PREFIX_WIDTH - 1]):
            next(remaining, None)
    return paths


def _well_formed(name: str) -> bool:
    if not name or name == DECORATE_FORMAT or "%(" in name:
        return False
    return not any(char.isspace() for char in name)


class GitDriver(CliDriver):
    """Driver for git repositories.

    All invocations run under the C locale so that the stderr fragments in
    `GIT_ERRORS_NO_HISTORY` can be recognized. Path listings use `-z` so that
    names git would otherwise quote come back verbatim.
    """

    default_binary = VCS_BIN_NAME
    base_env = {"LC_ALL": "C"}

    def discovery(self) -> Invocation:
        return self._show_top_level()

    def _show_top_level(self) -> Invocation:
        return self.shellout("rev-parse", "--show-toplevel")

    def _ancestor_log(self, max_count: int | None) -> Invocation:
        args = [
            "log",
            "--no-color",
            "--first-parent",
            *DECORATE_REFS,
            f"--format={ANCESTOR_FORMAT}",
        ]
        if max_count is not None:
            args.append(f"--max-count={max_count}")
        args.append("HEAD~1")
        return self.shellout(*args)

    def root(self) -> QueryDir:
        context = self.context("rev-parse")
        output = expect_cmd(context, self.runner, self._show_top_level())
        return Path(expect_cmd_line(context, output))

    def dirty_files(self, clean_ok: bool = False) -> list[QueryDir]:
        context = self.context("status")
        records = expect_cmd_lines(
            context,
            self.runner,
            self.shellout("status", "--porcelain", "-z"),
            min_lines=0 if clean_ok else 1,
            not_enough_msg=ERROR_REPO_NOT_DIRTY,
            terminator=NUL,
        )
        return parse_status_records(context, records)

    def tracked_files(self) -> list[QueryDir]:
        try:
            records = expect_cmd_lines(
                self.context("ls-tree"),
                self.runner,
                self.shellout("ls-tree", "-r", "-z", "--name-only", "--full-tree", "HEAD"),
                terminator=NUL,
            )
        except StderrError as exc:
            if is_no_history(exc):
                return []
            raise
        return [Path(record) for record in records]

    def current_ref_id(self, dirty_ok: bool = False) -> HistoryRefId:
        self.ensure_clean(dirty_ok)
        context = self.context("rev-parse")
        try:
            output = expect_cmd_lossy(context, self.runner, self.shellout("rev-parse", "HEAD"))
        except StderrError as exc:
            # TODO: let callers opt into a distinct "no history yet" signal instead of
            # a synthetic id that could be handed back to git by mistake.
            if is_no_history(exc):
                return ZERO_ID
            raise
        return expect_cmd_line(context, output)

    def current_ref_name(self, dirty_ok: bool = False) -> HistoryRefName | None:
        """Return a tag on HEAD if there is one, otherwise the current branch."""

        self.ensure_clean(dirty_ok)
        context = self.context("log")
        log = self.shellout(
            "log", "--no-color", "-1", *DECORATE_REFS, f"--format={DECORATE_FORMAT}", "HEAD"
        )
        try:
            lines = expect_cmd_lines(context, self.runner, log)
        except StderrError as exc:
            if not is_no_history(exc):
                raise
            lines = []
        tags, _ = parse_decorations(context, expect_line(context, lines, allow_empty=True))
        return preferred_name(tags, []) or self._current_branch()

    def _current_branch(self) -> HistoryRefName | None:
        # Prints nothing on a detached HEAD.
        context = self.context("branch")
        lines = expect_cmd_lines(context, self.runner, self.shellout("branch", "--show-current"))
        return expect_line(context, lines, allow_empty=True) or None

    def parent_ref_id(self) -> HistoryRefId:
        context = self.context("rev-parse")
        try:
            output = expect_cmd_lossy(context, self.runner, self.shellout("rev-parse", "HEAD~1"))
        except StderrError as exc:
            if is_no_history(exc):
                return ZERO_ID
            raise
        return expect_cmd_line(context, output)

    def parent_ref_name(self) -> HistoryRefName | None:
        entries = self._ancestors(max_count=1)
        if not entries:
            return None
        return entries[0][1]

    def first_ancestor_ref_name(self, limit: int | None = None) -> AncestorRef | None:
        check_limit(limit)
        for distance, (ref_id, name) in enumerate(self._ancestors(max_count=limit), start=1):
            if name:
                return AncestorRef(id=ref_id, name=name, distance=distance)
        return None

    def _ancestors(self, max_count: int | None) -> list[tuple[HistoryRefId, HistoryRefName | None]]:
        """Return (id, preferred name) for first parents, nearest first."""

        context = self.context("log")
        try:
            lines = expect_cmd_lines(context, self.runner, self._ancestor_log(max_count))
        except StderrError as exc:
            if is_no_history(exc):
                return []
            raise
        entries: list[tuple[HistoryRefId, HistoryRefName | None]] = []
        for line in lines:
            ref_id, decorations = split_fields(context, line, LOG_FIELD_SEPARATOR, 2)
            entries.append((ref_id, preferred_name(*parse_decorations(context, decorations))))
        return entries


class GitValidator(CliValidator):
    """Recognizes git repositories.

    Basically checks the following shell command exits 0:

        ( cd "$1"; git rev-parse --show-toplevel >/dev/null 2>&1; )
    """

    driver_class = GitDriver
