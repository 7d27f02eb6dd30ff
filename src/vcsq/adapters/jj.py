"""Jujutsu driver: answers repo queries by shelling out to `jj`.

The working-copy commit `@` is ephemeral in jj, so "the current point in
history" is its parent, `@-`.
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Final

from vcsq.adapters.base import CliDriver, CliValidator, scrape_marker, split_fields, split_names
from vcsq.repo.base import (
    AncestorRef,
    HistoryRefId,
    HistoryRefName,
    QueryDir,
    check_limit,
    walk_first_parents,
)
from vcsq.repo.errors import (
    ERROR_REPO_NOT_DIRTY,
    Invocation,
    expect_cmd,
    expect_cmd_line,
    expect_cmd_lines,
    expect_cmd_lossy,
    expect_line,
)

VCS_BIN_NAME: Final[str] = "jj"

ZERO_ID: Final[str] = "0" * 40
"""Commit id of jj's root commit, which `@-` resolves to before the first commit."""

FIELD_SEPARATOR: Final[str] = scrape_marker("field")
LIST_SEPARATOR: Final[str] = scrape_marker("list")

_TAG_NAMES: Final[str] = f'tags.map(|t| t.name()).join("{LIST_SEPARATOR}")'
_BOOKMARK_NAMES: Final[str] = f'local_bookmarks.map(|b| b.name()).join("{LIST_SEPARATOR}")'

CURRENT_ID_TEMPLATE: Final[str] = 'commit_id ++ "\\n"'
NAME_TEMPLATE: Final[str] = f'{_TAG_NAMES} ++ "{FIELD_SEPARATOR}" ++ {_BOOKMARK_NAMES} ++ "\\n"'
PARENTS_TEMPLATE: Final[str] = (
    f'parents.map(|c| c.commit_id() ++ "{FIELD_SEPARATOR}" ++ '
    f'c.tags().map(|t| t.name()).join("{LIST_SEPARATOR}") ++ "{FIELD_SEPARATOR}" ++ '
    f'c.local_bookmarks().map(|b| b.name()).join("{LIST_SEPARATOR}")).join("\\n") ++ "\\n"'
)
ANCESTOR_TEMPLATE: Final[str] = (
    f'commit_id ++ "{FIELD_SEPARATOR}" ++ '
    f'parents.map(|c| c.commit_id()).join("{LIST_SEPARATOR}") ++ "{FIELD_SEPARATOR}" ++ '
    f'{_TAG_NAMES} ++ "{FIELD_SEPARATOR}" ++ {_BOOKMARK_NAMES} ++ "\\n"'
)


def _preferred_name(tags: str, bookmarks: str) -> HistoryRefName | None:
    names = [*split_names(tags, LIST_SEPARATOR), *split_names(bookmarks, LIST_SEPARATOR)]
    return names[0] if names else None


def ancestor_revset(limit: int | None) -> str:
    """Revset of `@-` and its ancestors; `@-` sits at depth 1 of `ancestors()`."""

    if limit is None:
        return "::@-"
    return f"ancestors(@-, {limit + 1})"


class JjDriver(CliDriver):
    """Driver for Jujutsu repositories."""

    default_binary = VCS_BIN_NAME

    def discovery(self) -> Invocation:
        return self.shellout("root")

    def _log(self, revset: str, template: str) -> Invocation:
        return self.shellout(
            "log", "--color=never", "--no-graph", "--revisions", revset, "--template", template
        )

    def _at_root(self, *args: str) -> Invocation:
        # jj prints paths relative to its working directory.
        return replace(self.shellout(*args), cwd=self.root())

    def root(self) -> QueryDir:
        context = self.context("root")
        output = expect_cmd(context, self.runner, self.shellout("root"))
        return Path(expect_cmd_line(context, output))

    def dirty_files(self, clean_ok: bool = False) -> list[QueryDir]:
        lines = expect_cmd_lines(
            self.context("diff"),
            self.runner,
            self._at_root("diff", "--name-only"),
            min_lines=0 if clean_ok else 1,
            not_enough_msg=ERROR_REPO_NOT_DIRTY,
        )
        return [Path(line) for line in lines]

    def tracked_files(self) -> list[QueryDir]:
        lines = expect_cmd_lines(
            self.context("file list"),
            self.runner,
            self._at_root("file", "list", "-r", "@-"),
        )
        return [Path(line) for line in lines]

    def current_ref_id(self, dirty_ok: bool = False) -> HistoryRefId:
        """Return the backing store's commit id (as opposed to the more ephemeral change id)."""

        self.ensure_clean(dirty_ok)
        context = self.context("log")
        output = expect_cmd_lossy(context, self.runner, self._log("@-", CURRENT_ID_TEMPLATE))
        return expect_cmd_line(context, output)

    def current_ref_name(self, dirty_ok: bool = False) -> HistoryRefName | None:
        """Return a tag on `@-` if there is one, otherwise one of its local bookmarks."""

        self.ensure_clean(dirty_ok)
        context = self.context("log")
        lines = expect_cmd_lines(context, self.runner, self._log("@-", NAME_TEMPLATE))
        line = expect_line(context, lines)
        tags, bookmarks = split_fields(context, line, FIELD_SEPARATOR, 2)
        return _preferred_name(tags, bookmarks)

    def parent_ref_id(self) -> HistoryRefId:
        parent = self._first_parent()
        return parent[0] if parent else ZERO_ID

    def parent_ref_name(self) -> HistoryRefName | None:
        parent = self._first_parent()
        return parent[1] if parent else None

    def first_ancestor_ref_name(self, limit: int | None = None) -> AncestorRef | None:
        check_limit(limit)
        context = self.context("log")
        log = self._log(ancestor_revset(limit), ANCESTOR_TEMPLATE)
        lines = expect_cmd_lines(context, self.runner, log)
        head: HistoryRefId | None = None
        parents: dict[HistoryRefId, HistoryRefId | None] = {}
        names: dict[HistoryRefId, HistoryRefName | None] = {}
        for line in lines:
            commit_id, parent_ids, tags, bookmarks = split_fields(
                context, line, FIELD_SEPARATOR, 4
            )
            first_parent = split_names(parent_ids, LIST_SEPARATOR)
            parents[commit_id] = first_parent[0] if first_parent else None
            names[commit_id] = _preferred_name(tags, bookmarks)
            if head is None:
                head = commit_id
        # `@-` itself comes first; the walk starts one step back from it.
        start = parents.get(head) if head is not None else None
        return walk_first_parents(start, parents, names, limit)

    def _first_parent(self) -> tuple[HistoryRefId, HistoryRefName | None] | None:
        context = self.context("log")
        lines = expect_cmd_lines(context, self.runner, self._log("@-", PARENTS_TEMPLATE))
        first = lines[0] if lines else ""
        if not first:
            return None
        commit_id, tags, bookmarks = split_fields(context, first, FIELD_SEPARATOR, 3)
        return commit_id, _preferred_name(tags, bookmarks)


class JjValidator(CliValidator):
    """Recognizes Jujutsu repositories via `jj root`."""

    driver_class = JjDriver
