"""CLI entrypoint for diff-stage."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Annotated

import structlog
import typer

from diff_stage import __version__
from diff_stage.config import AppConfig, default_config_template, load_app_config
from diff_stage.diff import Diff, parse_diff
from diff_stage.file_diff import DiffParseError, FileDiff
from diff_stage.git import (
    GitError,
    add_paths,
    get_commit_diff,
    get_diff,
    get_status,
    restore_paths,
    stage_patch,
    unstage_patch,
)
from diff_stage.logging import configure_logging
from diff_stage.output import render_human, render_json
from diff_stage.status import parse_status

logger = structlog.get_logger(__name__)

app = typer.Typer(
    name="diff-stage",
    no_args_is_help=True,
    help="Inspect git diffs and stage, unstage or resolve them hunk by hunk.",
)


def version_callback(value: bool) -> None:
    """Print version and exit when --version is provided."""
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option("--version", help="Show version and exit.", callback=version_callback),
    ] = False,
) -> None:
    """Root command callback."""
    _ = version


@app.command("show")
def show_command(
    diff_file: Annotated[Path | None, typer.Option(help="Path to unified diff file.")] = None,
    stdin: Annotated[bool, typer.Option(help="Read unified diff from stdin.")] = False,
    repo: Annotated[Path, typer.Option(help="Repository path.")] = Path("."),
    cached: Annotated[bool, typer.Option("--cached", help="Show staged changes.")] = False,
    commits_range: Annotated[
        str | None, typer.Option("--range", help="Revision range, e.g. main..HEAD.")
    ] = None,
    commit: Annotated[str | None, typer.Option(help="Show the diff of one commit.")] = None,
    format: Annotated[
        str | None, typer.Option(help="Output format: human|json.", show_default="human")
    ] = None,
    lines: Annotated[
        bool | None,
        typer.Option("--lines/--no-lines", help="Include numbered hunk lines."),
    ] = None,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config TOML file."),
    ] = None,
) -> None:
    """Parse a diff and show its files, hunks and statuses."""
    app_config = _load_config_or_raise(repo, config_file)
    output_format = (format or app_config.format).lower()
    if output_format not in {"human", "json"}:
        raise typer.BadParameter("format must be one of: human, json", param_hint="--format")

    sources = [diff_file is not None, stdin, cached or bool(commits_range), commit is not None]
    if sum(sources) > 1:
        raise typer.BadParameter(
            "Use only one of --diff-file, --stdin, --cached/--range or --commit."
        )

    try:
        raw, input_source = _read_diff_input(
            diff_file=diff_file,
            stdin=stdin,
            repo=repo,
            cached=cached,
            commits_range=commits_range,
            commit=commit,
            no_renames=app_config.no_renames,
        )
        diff = _parse_or_raise(raw)
        if input_source == "git_working_tree":
            status = parse_status(get_status(repo))
            diff = diff.mark_conflicted(status.conflicted).with_file_diffs(
                [FileDiff.untracked_file(path) for path in status.untracked]
            )
    except GitError as exc:
        raise typer.BadParameter(str(exc)) from exc
    logger.debug("diff_parsed", input_source=input_source, files=len(diff.file_diffs))

    if output_format == "json":
        typer.echo(render_json(diff, input_source=input_source))
        return
    show_lines = lines if lines is not None else app_config.show_lines
    typer.echo(render_human(diff, show_lines=show_lines))


@app.command("stage")
def stage_command(
    repo: Annotated[Path, typer.Option(help="Repository path.")] = Path("."),
    all_: Annotated[bool, typer.Option("--all", help="Stage every hunk.")] = False,
    file: Annotated[list[str] | None, typer.Option("--file", help="Stage a whole file.")] = None,
    chunk: Annotated[
        list[str] | None, typer.Option("--chunk", help="Stage one hunk, as PATH:INDEX.")
    ] = None,
    dry_run: Annotated[
        bool, typer.Option("--dry-run", help="Print the patch answers instead of applying.")
    ] = False,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config TOML file."),
    ] = None,
) -> None:
    """Stage selected hunks by answering `git add --patch`."""
    _load_config_or_raise(repo, config_file)
    # git add --patch never detects renames, so neither may the parsed diff.
    try:
        diff = _parse_or_raise(get_diff(repo, no_renames=True))
        untracked = parse_status(get_status(repo)).untracked
    except GitError as exc:
        raise typer.BadParameter(str(exc)) from exc

    files = file or []
    new_paths = [path for path in untracked if all_ or path in files]
    tracked_files = [path for path in files if path not in new_paths]
    selected = _select(diff, all_=all_, files=tracked_files, chunks=chunk or [], stage=True)
    answers, patch_paths, whole_paths = _plan(selected, staging=True)
    whole_paths.extend(new_paths)
    _require_selection(answers, whole_paths)
    if dry_run:
        typer.echo(_dry_run_payload(answers, patch_paths, whole_paths))
        return

    try:
        if patch_paths:
            stage_patch(repo, answers, patch_paths)
        if whole_paths:
            add_paths(repo, whole_paths)
    except GitError as exc:
        raise typer.BadParameter(str(exc)) from exc
    typer.echo(_summary(answers, whole_paths, action="staged"))


@app.command("unstage")
def unstage_command(
    repo: Annotated[Path, typer.Option(help="Repository path.")] = Path("."),
    all_: Annotated[bool, typer.Option("--all", help="Unstage every hunk.")] = False,
    file: Annotated[list[str] | None, typer.Option("--file", help="Unstage a whole file.")] = None,
    chunk: Annotated[
        list[str] | None, typer.Option("--chunk", help="Unstage one hunk, as PATH:INDEX.")
    ] = None,
    dry_run: Annotated[
        bool, typer.Option("--dry-run", help="Print the patch answers instead of applying.")
    ] = False,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config TOML file."),
    ] = None,
) -> None:
    """Unstage selected hunks by answering `git restore --staged --patch`."""
    _load_config_or_raise(repo, config_file)
    try:
        diff = _parse_or_raise(get_diff(repo, cached=True, no_renames=True))
    except GitError as exc:
        raise typer.BadParameter(str(exc)) from exc

    selected = _select(diff, all_=all_, files=file or [], chunks=chunk or [], stage=False)
    answers, patch_paths, whole_paths = _plan(selected, staging=False)
    _require_selection(answers, whole_paths)
    if dry_run:
        typer.echo(_dry_run_payload(answers, patch_paths, whole_paths))
        return

    try:
        if patch_paths:
            unstage_patch(repo, answers, patch_paths)
        if whole_paths:
            restore_paths(repo, whole_paths)
    except GitError as exc:
        raise typer.BadParameter(str(exc)) from exc
    typer.echo(_summary(answers, whole_paths, action="unstaged"))


@app.command("resolve")
def resolve_command(
    diff_file: Annotated[Path | None, typer.Option(help="Path to unified diff file.")] = None,
    stdin: Annotated[bool, typer.Option(help="Read unified diff from stdin.")] = False,
    side: Annotated[str, typer.Option(help="Conflict side to keep: ours|theirs.")] = "ours",
) -> None:
    """Resolve every conflict in a diff and print the resulting patch."""
    resolved_side = side.lower()
    if resolved_side not in {"ours", "theirs"}:
        raise typer.BadParameter("side must be one of: ours, theirs", param_hint="--side")
    if (diff_file is not None) == stdin:
        raise typer.BadParameter("Provide exactly one of --diff-file or --stdin.")
    raw = diff_file.read_text(encoding="utf-8") if diff_file is not None else sys.stdin.read()
    diff = _parse_or_raise(raw)
    resolved = diff.resolve_conflicts(resolved_side)
    typer.echo(resolved.raw, nl=not resolved.raw.endswith("\n"))


@app.command("config")
def config_command(
    repo: Annotated[Path, typer.Option(help="Repository path.")] = Path("."),
    format: Annotated[str, typer.Option(help="Output format: human|json.")] = "human",
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config TOML file."),
    ] = None,
) -> None:
    """Show resolved configuration."""
    output_format = format.lower()
    if output_format not in {"human", "json"}:
        raise typer.BadParameter("format must be one of: human, json", param_hint="--format")

    app_config = _load_config_or_raise(repo, config_file)
    payload = app_config.to_dict()
    if output_format == "json":
        typer.echo(json.dumps(payload, sort_keys=True))
        return

    lines = [
        "Resolved configuration:",
        f"- source: {payload['source'] or 'defaults'}",
        f"- format: {payload['format']}",
        f"- no_renames: {payload['no_renames']}",
        f"- show_lines: {payload['show_lines']}",
        f"- logging.level: {payload['logging']['level']}",
        f"- logging.format: {payload['logging']['format']}",
    ]
    typer.echo("\n".join(lines))


@app.command("config-init")
def config_init_command(
    out: Annotated[Path, typer.Option(help="Output path for starter config TOML.")] = Path(
        ".diff-stage.toml"
    ),
    force: Annotated[
        bool,
        typer.Option("--force", help="Overwrite if file already exists."),
    ] = False,
) -> None:
    """Create a starter repository config file."""
    out_path = out.resolve()
    if out_path.exists() and not force:
        raise typer.BadParameter(
            f"Refusing to overwrite existing file: {out_path}. Use --force to overwrite."
        )
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(default_config_template(), encoding="utf-8")
    typer.echo(f"Wrote starter config: {out_path}")


def main() -> None:
    """Console script entrypoint."""
    app()


def _load_config_or_raise(repo: Path, config_file: Path | None = None) -> AppConfig:
    try:
        app_config = load_app_config(repo, config_path=config_file)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="config") from exc
    configure_logging(app_config.logging.level, app_config.logging.format)
    return app_config


def _parse_or_raise(raw: str) -> Diff:
    try:
        return parse_diff(raw)
    except DiffParseError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _select(
    diff: Diff,
    *,
    all_: bool,
    files: list[str],
    chunks: list[str],
    stage: bool,
) -> Diff:
    if all_:
        return diff.update_all(stage)

    selected = diff
    for path in files:
        file_diff = selected.find_file_diff(path)
        if file_diff is None:
            raise typer.BadParameter(f"No changes for file: {path}", param_hint="--file")
        selected = selected.update_file_diff_stage(file_diff, stage)

    for selector in chunks:
        path, _, raw_index = selector.rpartition(":")
        if not path or not raw_index.isdigit():
            raise typer.BadParameter(f"Expected PATH:INDEX, got: {selector}", param_hint="--chunk")
        file_diff = selected.find_file_diff(path)
        index = int(raw_index)
        if file_diff is None or index >= len(file_diff.chunks):
            raise typer.BadParameter(f"No hunk {index} in file: {path}", param_hint="--chunk")
        selected = selected.update_chunk_stage(file_diff.chunks[index], file_diff, stage)
    return selected


def _read_diff_input(
    *,
    diff_file: Path | None,
    stdin: bool,
    repo: Path,
    cached: bool,
    commits_range: str | None,
    commit: str | None,
    no_renames: bool,
) -> tuple[str, str]:
    if diff_file is not None:
        return (diff_file.read_text(encoding="utf-8"), f"diff_file:{diff_file}")

    if stdin:
        return (sys.stdin.read(), "stdin")

    if commit is not None:
        return (get_commit_diff(repo, commit, no_renames=no_renames), "git_commit")

    raw = get_diff(repo, cached=cached, no_renames=no_renames, commits_range=commits_range)
    if commits_range:
        return (raw, "git_range")
    return (raw, "git_index" if cached else "git_working_tree")


def _plan(diff: Diff, *, staging: bool) -> tuple[list[str], list[str], list[str]]:
    """Split a selection into patch answers, their paths and whole-file paths.

    Only files with at least one "y" go through ``--patch``, so prompts for
    unselected files can never shift the answers. Files git does not prompt
    for (binary content) are staged or unstaged whole.
    """
    answers: list[str] = []
    patch_paths: list[str] = []
    whole_paths: list[str] = []
    for file_diff in diff.file_diffs:
        file_answers = file_diff.patch_answers(staging=staging)
        if "y" in file_answers:
            answers.extend(file_answers)
            patch_paths.append(file_diff.pathspec)
        elif not file_answers and file_diff.stage is staging:
            whole_paths.append(file_diff.pathspec)
    logger.debug("patch_planned", answers=answers, paths=patch_paths, whole=whole_paths)
    return answers, patch_paths, whole_paths


def _dry_run_payload(answers: list[str], patch_paths: list[str], whole_paths: list[str]) -> str:
    payload = {"answers": answers, "patch_paths": patch_paths, "whole_paths": whole_paths}
    return json.dumps(payload, sort_keys=True)


def _require_selection(answers: list[str], whole_paths: list[str]) -> None:
    if "y" not in answers and not whole_paths:
        raise typer.BadParameter("Nothing selected. Use --all, --file or --chunk.")


def _summary(answers: list[str], whole_paths: list[str], *, action: str) -> str:
    summary = f"{answers.count('y')} hunk(s) {action}"
    if whole_paths:
        summary += f", {len(whole_paths)} whole file(s) {action}"
    return summary
