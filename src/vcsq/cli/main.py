"""CLI entrypoints for vcsq."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import TypeVar

import typer

from vcsq.config import VcsqConfig, config_to_dict, load_config
from vcsq.plexer import Repo, check_health, detect
from vcsq.repo.errors import DirectoryError, DriverError
from vcsq.util.logging import configure_logging

app = typer.Typer(help="Ask version-control questions about any directory.")

T = TypeVar("T")

DIR_ARGUMENT = typer.Argument(..., help="Directory to ask VCS questions about.")
DIRTY_OK_OPTION = typer.Option(
    False,
    "--dirty-ok",
    help="Answer even when uncommitted work makes the answer non-hermetic.",
)


@app.callback()
def main(
    ctx: typer.Context,
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        help="Logging level (e.g., DEBUG, INFO, WARNING).",
    ),
    config_path: Path | None = typer.Option(
        None,
        "--config",
        help="Path to a vcsq config file, or a directory to search for one.",
    ),
) -> None:
    """Configure CLI-level options."""

    try:
        config = load_config(config_path)
    except (ValueError, RuntimeError, OSError) as exc:
        typer.echo(f"config error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    configure_logging(log_level or config.log_level)
    ctx.obj = config


def _config(ctx: typer.Context) -> VcsqConfig:
    return ctx.obj if isinstance(ctx.obj, VcsqConfig) else VcsqConfig()


def _query(ctx: typer.Context, directory: Path, question: Callable[[Repo], T]) -> T:
    """Detect the repo at `directory` and answer `question`, exiting 1 on failure."""

    try:
        repo = detect(directory, config=_config(ctx))
        return question(repo)
    except DirectoryError as exc:
        typer.echo(f"usage error: dir must be a readable directory: {exc.message}", err=True)
        raise typer.Exit(code=1) from exc
    except DriverError as exc:
        typer.echo(f"vcs error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


def _echo_paths(paths: list[Path]) -> None:
    for path in paths:
        typer.echo(str(path))


@app.command()
def brand(ctx: typer.Context, directory: Path = DIR_ARGUMENT) -> None:
    """Print the brand of VCS managing DIRECTORY."""

    repo = _query(ctx, directory, lambda repo: repo)
    typer.echo(str(repo.brand))


@app.command()
def root(ctx: typer.Context, directory: Path = DIR_ARGUMENT) -> None:
    """Print the root directory of the repo."""

    typer.echo(str(_query(ctx, directory, lambda repo: repo.root())))


@app.command("is-clean")
def is_clean(ctx: typer.Context, directory: Path = DIR_ARGUMENT) -> None:
    """Exit 0 if the repo has no uncommitted work, 1 otherwise."""

    if not _query(ctx, directory, lambda repo: repo.is_clean()):
        raise typer.Exit(code=1)


@app.command("dirty-files")
def dirty_files(
    ctx: typer.Context,
    directory: Path = DIR_ARGUMENT,
    clean_ok: bool = typer.Option(
        False,
        "--clean-ok",
        help="Print nothing for a clean repo instead of failing.",
    ),
) -> None:
    """List the paths that make the repo dirty."""

    _echo_paths(_query(ctx, directory, lambda repo: repo.dirty_files(clean_ok=clean_ok)))


@app.command("tracked-files")
def tracked_files(ctx: typer.Context, directory: Path = DIR_ARGUMENT) -> None:
    """List the paths versioned as of the current commit."""

    _echo_paths(_query(ctx, directory, lambda repo: repo.tracked_files()))


@app.command("current-id")
def current_id(
    ctx: typer.Context,
    directory: Path = DIR_ARGUMENT,
    dirty_ok: bool = DIRTY_OK_OPTION,
) -> None:
    """Print the id of the current point in history."""

    typer.echo(_query(ctx, directory, lambda repo: repo.current_ref_id(dirty_ok=dirty_ok)))


@app.command("current-name")
def current_name(
    ctx: typer.Context,
    directory: Path = DIR_ARGUMENT,
    dirty_ok: bool = DIRTY_OK_OPTION,
) -> None:
    """Print the human-written name of the current point, exiting 1 if it has none."""

    name = _query(ctx, directory, lambda repo: repo.current_ref_name(dirty_ok=dirty_ok))
    if name is None:
        raise typer.Exit(code=1)
    typer.echo(name)


@app.command("parent-id")
def parent_id(ctx: typer.Context, directory: Path = DIR_ARGUMENT) -> None:
    """Print the id of the current point's first parent."""

    typer.echo(_query(ctx, directory, lambda repo: repo.parent_ref_id()))


@app.command("parent-name")
def parent_name(
    ctx: typer.Context,
    directory: Path = DIR_ARGUMENT,
    max_steps: int | None = typer.Option(
        None,
        "--max",
        min=1,
        help="Max number of parents to walk back when seeking a named one.",
    ),
) -> None:
    """Print the nearest named ancestor, exiting 1 with no output if none is found."""

    ancestor = _query(
        ctx, directory, lambda repo: repo.first_ancestor_ref_name(limit=max_steps)
    )
    if ancestor is None:
        raise typer.Exit(code=1)
    typer.echo(ancestor.name)


@app.command("check-health")
def check_health_command(ctx: typer.Context) -> None:
    """Report which VCS binaries on this host are usable."""

    has_fail = False
    for report in check_health(config=_config(ctx)):
        if report.ok and report.output is not None:
            typer.echo(f"PASS: check for {report.brand}:\n{report.output.stdout}")
        else:
            has_fail = True
            typer.echo(f"FAIL: check for {report.brand}:\n{report.error}", err=True)
    if has_fail:
        raise typer.Exit(code=1)


@app.command("config")
def show_config(ctx: typer.Context) -> None:
    """Print the effective configuration as JSON."""

    typer.echo(json.dumps(config_to_dict(_config(ctx)), indent=2))

