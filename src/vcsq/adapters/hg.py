"""Mercurial driver: answers repo queries by shelling out to `hg`."""

from __future__ import annotations

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
    UnknownError,
    expect_cmd,
    expect_cmd_line,
    expect_cmd_lines,
    expect_cmd_lossy,
    expect_line,
)

VCS_BIN_NAME: Final[str] = "hg"

ZERO_ID: Final[str] = "0" * 40
"""Mercurial's null revision, which is what `.` resolves to before the first commit."""

HG_LOGID_DIRTY_SUFFIX: Final[str] = "+"
HG_AUTOMATIC_TAG: Final[str] = "tip"
DIRTY_PREFIX_WIDTH: Final[int] = 2

FIELD_SEPARATOR: Final[str] = scrape_marker("field")
LIST_SEPARATOR: Final[str] = scrape_marker("list")

NAME_TEMPLATE: Final[str] = (
    "{join(tags, '" + LIST_SEPARATOR + "')}" + FIELD_SEPARATOR
    + "{activebookmark}" + FIELD_SEPARATOR
    + "{join(bookmarks, '" + LIST_SEPARATOR + "')}" + FIELD_SEPARATOR
    + "{branch}\\n"
)
ANCESTOR_TEMPLATE: Final[str] = (
    "{node}" + FIELD_SEPARATOR
    + "{p1node}" + FIELD_SEPARATOR
    + "{join(tags, '" + LIST_SEPARATOR + "')}" + FIELD_SEPARATOR
    + "{join(bookmarks, '" + LIST_SEPARATOR + "')}\\n"
)


def _tags(text: str) -> list[str]:
    return [tag for tag in split_names(text, LIST_SEPARATOR) if tag != HG_AUTOMATIC_TAG]


def ancestor_revset(limit: int | None) -> str:
    """Revset of the working copy's parent and its ancestors, newest first.

    With a `limit`, only ancestors within `limit - 1` steps of the parent are
    loaded; that still covers every first parent the walk may reach.
    """

    if limit is None:
        return "reverse(::p1(.))"
    return f"reverse(ancestors(p1(.), depth={limit - 1}))"


class HgDriver(CliDriver):
    """Driver for Mercurial repositories, run with `HGPLAIN` set."""

    default_binary = VCS_BIN_NAME
    base_env = {"HGPLAIN": "1"}

    def discovery(self) -> Invocation:
        return self.shellout("root")

    def root(self) -> QueryDir:
        context = self.context("root")
        output = expect_cmd(context, self.runner, self.shellout("root"))
        return Path(expect_cmd_line(context, output))

    def dirty_files(self, clean_ok: bool = False) -> list[QueryDir]:
        lines = expect_cmd_lines(
            self.context("status"),
            self.runner,
            self.shellout(
                "status",
                "--modified",
                "--added",
                "--removed",
                "--deleted",
                "--unknown",
            ),
            min_lines=0 if clean_ok else 1,
            not_enough_msg=ERROR_REPO_NOT_DIRTY,
        )
        # first 2 chars are a status code like "? " for an untracked file.
        return [Path(line[DIRTY_PREFIX_WIDTH:]) for line in lines]

    def tracked_files(self) -> list[QueryDir]:
        lines = expect_cmd_lines(
            self.context("manifest"),
            self.runner,
            self.shellout("manifest", "-r", "."),
        )
        return [Path(line) for line in lines]

    def current_ref_id(self, dirty_ok: bool = False) -> HistoryRefId:
        self.ensure_clean(dirty_ok)
        context = self.context("id")
        output = expect_cmd_lossy(context, self.runner, self.shellout("--debug", "id", "-i"))
        current_id = expect_cmd_line(context, output)
        if not current_id.endswith(HG_LOGID_DIRTY_SUFFIX):
            return current_id
        stripped = current_id.removesuffix(HG_LOGID_DIRTY_SUFFIX)
        if not stripped:
            raise UnknownError(f"hg bug? got just a lone '{HG_LOGID_DIRTY_SUFFIX}'")
        return stripped

    def current_ref_name(self, dirty_ok: bool = False) -> HistoryRefName | None:
        """Return a tag if there is one, then a bookmark, then the named branch."""

        self.ensure_clean(dirty_ok)
        context = self.context("log")
        lines = expect_cmd_lines(
            context,
            self.runner,
            self.shellout("log", "-r", ".", "--template", NAME_TEMPLATE),
        )
        line = expect_line(context, lines, allow_empty=True)
        if not line:
            return None
        tags, active, bookmarks, branch = split_fields(context, line, FIELD_SEPARATOR, 4)
        names = [*_tags(tags), active, *split_names(bookmarks, LIST_SEPARATOR), branch]
        return next((name for name in names if name), None)

    def parent_ref_id(self) -> HistoryRefId:
        entries = self._log_ancestors("p1(.)")
        if not entries:
            return ZERO_ID
        return entries[0][0]

    def parent_ref_name(self) -> HistoryRefName | None:
        entries = self._log_ancestors("p1(.)")
        if not entries:
            return None
        return entries[0][2]

    def first_ancestor_ref_name(self, limit: int | None = None) -> AncestorRef | None:
        check_limit(limit)
        entries = self._log_ancestors(ancestor_revset(limit))
        start = entries[0][0] if entries else None
        parents = {ref_id: parent for ref_id, parent, _ in entries}
        names = {ref_id: name for ref_id, _, name in entries}
        return walk_first_parents(start, parents, names, limit)

    def _log_ancestors(
        self, revset: str
    ) -> list[tuple[HistoryRefId, HistoryRefId | None, HistoryRefName | None]]:
        """Return (node, first parent node, preferred name) for each rev in `revset`.

        Ancestors are named by tag, then bookmark; every changeset sits on some
        named branch, so branches never name an ancestor.
        """

        context = self.context("log")
        lines = expect_cmd_lines(
            context,
            self.runner,
            self.shellout("log", "-r", revset, "--template", ANCESTOR_TEMPLATE),
        )
        entries: list[tuple[HistoryRefId, HistoryRefId | None, HistoryRefName | None]] = []
        for line in lines:
            node, parent, tags, bookmarks = split_fields(context, line, FIELD_SEPARATOR, 4)
            names = [*_tags(tags), *split_names(bookmarks, LIST_SEPARATOR)]
            entries.append(
                (node, None if parent == ZERO_ID else parent, names[0] if names else None)
            )
        return entries


class HgValidator(CliValidator):
    """Recognizes Mercurial repositories via `hg root`."""

    driver_class = HgDriver
