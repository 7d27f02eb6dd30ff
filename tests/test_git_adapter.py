from __future__ import annotations

from pathlib import Path

import pytest
from fakes import ScriptedRunner, fail, ok

from vcsq.adapters.git import (
    ANCESTOR_FORMAT,
    LOG_FIELD_SEPARATOR,
    ZERO_ID,
    GitDriver,
    GitValidator,
    parse_decorations,
    preferred_name,
)
from vcsq.repo.base import AncestorRef
from vcsq.repo.errors import (
    CommandError,
    RepoNotCleanError,
    RepoNotDirtyError,
    RootNameError,
    StderrError,
    UnknownError,
)

HEAD_ID = "1" * 40
PARENT_ID = "2" * 40
GRANDPARENT_ID = "3" * 40

DECORATE_REFS = ("--decorate-refs=refs/heads/", "--decorate-refs=refs/tags/")
STATUS = ("git", "status", "--porcelain", "-z")
TOPLEVEL = ("git", "rev-parse", "--show-toplevel")
LS_TREE = ("git", "ls-tree", "-r", "-z", "--name-only", "--full-tree", "HEAD")
REV_PARSE_HEAD = ("git", "rev-parse", "HEAD")
REV_PARSE_PARENT = ("git", "rev-parse", "HEAD~1")
LOG_NAME = ("git", "log", "--no-color", "-1", *DECORATE_REFS, "--format=%D", "HEAD")
BRANCH = ("git", "branch", "--show-current")
NO_HEAD = "fatal: ambiguous argument 'HEAD': unknown revision or path not in the working tree.\n"
NO_PARENT = (
    "fatal: ambiguous argument 'HEAD~1': unknown revision or path not in the working tree.\n"
)
CONTEXT = "git cli: log"


def ancestor_log(max_count: int | None = None) -> tuple[str, ...]:
    args = ["git", "log", "--no-color", "--first-parent", *DECORATE_REFS]
    args.append(f"--format={ANCESTOR_FORMAT}")
    if max_count is not None:
        args.append(f"--max-count={max_count}")
    args.append("HEAD~1")
    return tuple(args)


def ancestor_line(ref_id: str, decorations: str = "") -> str:
    return ref_id + LOG_FIELD_SEPARATOR + decorations


def driver_for(tmp_path: Path, script: dict) -> tuple[GitDriver, ScriptedRunner]:
    runner = ScriptedRunner(script)
    return GitDriver(tmp_path, runner=runner), runner


def test_parse_decorations_splits_tags_and_branches() -> None:
    text = "HEAD -> main, tag: v1.0, feature, tag: v1.1"

    assert parse_decorations(CONTEXT, text) == (["v1.0", "v1.1"], ["main", "feature"])
    assert parse_decorations(CONTEXT, "HEAD") == ([], [])
    assert parse_decorations(CONTEXT, "") == ([], [])


@pytest.mark.parametrize(
    "text",
    [
        "%D",
        "%(decorate:prefix=x,suffix=y)",
        "main, tag: ",
        "HEAD -> two words",
    ],
)
def test_parse_decorations_rejects_malformed_output(text: str) -> None:
    with pytest.raises(UnknownError, match="unrecognized decoration"):
        parse_decorations(CONTEXT, text)


def test_preferred_name_takes_greatest_tag_then_first_branch() -> None:
    assert preferred_name(["v1.1", "v1.0", "v0.9"], ["main"]) == "v1.1"
    assert preferred_name([], ["release", "main"]) == "release"
    assert preferred_name([], []) is None


def test_invocations_run_in_directory_under_c_locale(tmp_path: Path) -> None:
    driver, runner = driver_for(tmp_path, {TOPLEVEL: ok(f"{tmp_path}\n")})

    assert driver.root() == tmp_path

    call = runner.calls[0]
    assert call.cwd == tmp_path
    assert call.env == {"LC_ALL": "C"}


def test_root_rejects_undecodable_path(tmp_path: Path) -> None:
    driver, _ = driver_for(tmp_path, {TOPLEVEL: ok(b"/tmp/\xff\n")})

    with pytest.raises(RootNameError):
        driver.root()


def test_root_rejects_multiple_lines(tmp_path: Path) -> None:
    driver, _ = driver_for(tmp_path, {TOPLEVEL: ok("/a\n/b\n")})

    with pytest.raises(UnknownError, match="multiple"):
        driver.root()


def test_dirty_files_strip_status_codes(tmp_path: Path) -> None:
    status = ' M file.py\0?? new dir/a "b".txt\0R  renamed.txt\0old.txt\0D  gone.txt\0'
    driver, _ = driver_for(tmp_path, {STATUS: ok(status)})

    assert driver.dirty_files() == [
        Path("file.py"),
        Path('new dir/a "b".txt'),
        Path("renamed.txt"),
        Path("gone.txt"),
    ]
    assert driver.is_clean() is False


def test_dirty_files_keep_names_that_look_like_renames(tmp_path: Path) -> None:
    status = "?? a -> b.txt\0C  copy -> of.txt\0orig.txt\0AM café.txt\0"
    driver, _ = driver_for(tmp_path, {STATUS: ok(status)})

    assert driver.dirty_files() == [Path("a -> b.txt"), Path("copy -> of.txt"), Path("café.txt")]


def test_dirty_files_reject_unrecognized_entries(tmp_path: Path) -> None:
    driver, _ = driver_for(tmp_path, {STATUS: ok("??\0")})

    with pytest.raises(UnknownError, match="unrecognized status entry"):
        driver.dirty_files()


def test_dirty_files_on_clean_repo(tmp_path: Path) -> None:
    driver, _ = driver_for(tmp_path, {STATUS: ok("")})

    with pytest.raises(RepoNotDirtyError, match="repo not dirty"):
        driver.dirty_files()
    assert driver.dirty_files(clean_ok=True) == []
    assert driver.is_clean() is True


def test_tracked_files(tmp_path: Path) -> None:
    driver, _ = driver_for(tmp_path, {LS_TREE: ok("README.md\0a b.txt\0src/main.py\0")})

    assert driver.tracked_files() == [Path("README.md"), Path("a b.txt"), Path("src/main.py")]


def test_tracked_files_without_history(tmp_path: Path) -> None:
    driver, _ = driver_for(tmp_path, {LS_TREE: fail("fatal: Not a valid object name HEAD\n", 128)})

    assert driver.tracked_files() == []


def test_current_ref_id(tmp_path: Path) -> None:
    driver, runner = driver_for(tmp_path, {STATUS: ok(""), REV_PARSE_HEAD: ok(f"{HEAD_ID}\n")})

    assert driver.current_ref_id() == HEAD_ID
    assert runner.commands() == [list(STATUS), list(REV_PARSE_HEAD)]


def test_current_ref_id_refuses_dirty_repo(tmp_path: Path) -> None:
    driver, runner = driver_for(
        tmp_path, {STATUS: ok(" M file.py\0"), REV_PARSE_HEAD: ok(f"{HEAD_ID}\n")}
    )

    with pytest.raises(RepoNotCleanError):
        driver.current_ref_id()
    assert list(REV_PARSE_HEAD) not in runner.commands()

    assert driver.current_ref_id(dirty_ok=True) == HEAD_ID


def test_current_ref_id_without_history_is_zero(tmp_path: Path) -> None:
    driver, _ = driver_for(tmp_path, {REV_PARSE_HEAD: fail(NO_HEAD, 128)})

    assert driver.current_ref_id(dirty_ok=True) == ZERO_ID


def test_current_ref_id_propagates_other_failures(tmp_path: Path) -> None:
    driver, _ = driver_for(tmp_path, {REV_PARSE_HEAD: fail("fatal: not a git repository\n", 128)})

    with pytest.raises(StderrError, match="not a git repository"):
        driver.current_ref_id(dirty_ok=True)


def test_current_ref_name_prefers_greatest_tag(tmp_path: Path) -> None:
    line = "HEAD -> main, tag: v1.1, tag: v1.0"
    driver, runner = driver_for(tmp_path, {LOG_NAME: ok(f"{line}\n")})

    assert driver.current_ref_name(dirty_ok=True) == "v1.1"
    assert list(BRANCH) not in runner.commands()


def test_current_ref_name_falls_back_to_branch(tmp_path: Path) -> None:
    driver, _ = driver_for(tmp_path, {LOG_NAME: ok("HEAD -> main\n"), BRANCH: ok("main\n")})

    assert driver.current_ref_name(dirty_ok=True) == "main"


def test_current_ref_name_rejects_unexpanded_format(tmp_path: Path) -> None:
    driver, runner = driver_for(tmp_path, {LOG_NAME: ok("%D\n"), BRANCH: ok("main\n")})

    with pytest.raises(UnknownError, match="unrecognized decoration"):
        driver.current_ref_name(dirty_ok=True)
    assert list(BRANCH) not in runner.commands()


def test_current_ref_name_detached_and_unnamed(tmp_path: Path) -> None:
    driver, _ = driver_for(tmp_path, {LOG_NAME: ok("\n"), BRANCH: ok("")})

    assert driver.current_ref_name(dirty_ok=True) is None


def test_current_ref_name_without_history_uses_branch(tmp_path: Path) -> None:
    driver, _ = driver_for(tmp_path, {LOG_NAME: fail(NO_HEAD, 128), BRANCH: ok("main\n")})

    assert driver.current_ref_name(dirty_ok=True) == "main"


def test_parent_ref_id(tmp_path: Path) -> None:
    driver, _ = driver_for(tmp_path, {REV_PARSE_PARENT: ok(f"{PARENT_ID}\n")})

    assert driver.parent_ref_id() == PARENT_ID


def test_parent_ref_id_of_root_commit_is_zero(tmp_path: Path) -> None:
    driver, _ = driver_for(tmp_path, {REV_PARSE_PARENT: fail(NO_PARENT, 128)})

    assert driver.parent_ref_id() == ZERO_ID


def test_parent_ref_name(tmp_path: Path) -> None:
    line = ancestor_line(PARENT_ID, "release, tag: v0.9")
    driver, _ = driver_for(tmp_path, {ancestor_log(1): ok(f"{line}\n")})

    assert driver.parent_ref_name() == "v0.9"


def test_parent_and_current_name_agree_on_several_tags(tmp_path: Path) -> None:
    decorations = "tag: v2.0, tag: v2.1, tag: v1.9"
    driver, _ = driver_for(
        tmp_path,
        {
            LOG_NAME: ok(f"HEAD -> main, {decorations}\n"),
            ancestor_log(1): ok(ancestor_line(PARENT_ID, decorations) + "\n"),
        },
    )

    assert driver.current_ref_name(dirty_ok=True) == "v2.1"
    assert driver.parent_ref_name() == "v2.1"


def test_parent_ref_name_without_names(tmp_path: Path) -> None:
    driver, _ = driver_for(tmp_path, {ancestor_log(1): ok(ancestor_line(PARENT_ID) + "\n")})

    assert driver.parent_ref_name() is None


def test_parent_ref_name_rejects_unexpanded_format(tmp_path: Path) -> None:
    line = ancestor_line(PARENT_ID, "%(decorate:prefix=x,suffix=y,separator=")
    driver, _ = driver_for(tmp_path, {ancestor_log(1): ok(f"{line}\n")})

    with pytest.raises(UnknownError, match="unrecognized decoration"):
        driver.parent_ref_name()


def test_parent_ref_name_without_parent(tmp_path: Path) -> None:
    driver, _ = driver_for(tmp_path, {ancestor_log(1): fail(NO_PARENT, 128)})

    assert driver.parent_ref_name() is None


def test_first_ancestor_ref_name_reports_distance(tmp_path: Path) -> None:
    lines = [
        ancestor_line(PARENT_ID),
        ancestor_line(GRANDPARENT_ID, "release"),
    ]
    driver, _ = driver_for(tmp_path, {ancestor_log(): ok("\n".join(lines) + "\n")})

    assert driver.first_ancestor_ref_name() == AncestorRef(
        id=GRANDPARENT_ID, name="release", distance=2
    )


def test_first_ancestor_ref_name_honors_limit(tmp_path: Path) -> None:
    driver, runner = driver_for(
        tmp_path, {ancestor_log(1): ok(ancestor_line(PARENT_ID) + "\n")}
    )

    assert driver.first_ancestor_ref_name(limit=1) is None
    assert runner.commands() == [list(ancestor_log(1))]


def test_first_ancestor_ref_name_rejects_zero_limit(tmp_path: Path) -> None:
    driver, runner = driver_for(tmp_path, {})

    with pytest.raises(ValueError):
        driver.first_ancestor_ref_name(limit=0)
    assert runner.calls == []


def test_current_ref_combines_id_name_and_dirtiness(tmp_path: Path) -> None:
    line = "HEAD -> main, tag: v2"
    driver, _ = driver_for(
        tmp_path,
        {
            STATUS: ok("?? scratch.txt\0"),
            REV_PARSE_HEAD: ok(f"{HEAD_ID}\n"),
            LOG_NAME: ok(f"{line}\n"),
        },
    )

    with pytest.raises(RepoNotCleanError):
        driver.current_ref()
    ref = driver.current_ref(dirty_ok=True)

    assert (ref.id, ref.name, ref.dirty) == (HEAD_ID, "v2", True)


def test_validator_probe_claims_repo(tmp_path: Path) -> None:
    runner = ScriptedRunner({TOPLEVEL: ok()})

    driver = GitValidator(runner=runner).probe(tmp_path)

    assert isinstance(driver, GitDriver)
    assert driver.directory == tmp_path
    assert runner.calls[0].discard_output is True


def test_validator_probe_declines_non_repo(tmp_path: Path) -> None:
    runner = ScriptedRunner({TOPLEVEL: fail(code=128)})

    assert GitValidator(runner=runner).probe(tmp_path) is None


def test_validator_probe_missing_binary(tmp_path: Path) -> None:
    missing = FileNotFoundError(2, "No such file or directory")
    runner = ScriptedRunner({("git-nope", "rev-parse", "--show-toplevel"): missing})

    with pytest.raises(CommandError):
        GitValidator(runner=runner, binary="git-nope").probe(tmp_path)


def test_validator_check_health() -> None:
    runner = ScriptedRunner({("git", "--version"): ok("git version 2.45.0\n")})

    health = GitValidator(runner=runner).check_health()

    assert health.stdout == "git version 2.45.0\n"
