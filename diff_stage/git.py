"""Git subprocess helpers."""

from __future__ import annotations

from pathlib import Path
from subprocess import CalledProcessError, run

import structlog

logger = structlog.get_logger(__name__)

# Pin the prefixes so header paths parse the same under any diff.mnemonicPrefix
# or diff.noprefix setting.
DIFF_FORMAT_ARGS = ["--no-color", "--no-ext-diff", "--src-prefix=a/", "--dst-prefix=b/"]
# Paths come from diff headers and must never be read as globs.
PATHSPEC_ARGS = ["--literal-pathspecs"]


class GitError(RuntimeError):
    """Raised when git command execution fails."""


def get_diff(
    repo: Path,
    *,
    cached: bool = False,
    no_renames: bool = True,
    commits_range: str | None = None,
) -> str:
    """Return ``git diff`` output for the working tree, the index or a range."""
    args = ["diff", *DIFF_FORMAT_ARGS]
    if no_renames:
        args.append("--no-renames")
    if cached:
        args.append("--cached")
    if commits_range:
        args.append(commits_range)
    return _run_git(repo, args)


def get_commit_diff(repo: Path, obj: str, *, no_renames: bool = True) -> str:
    """Return only the diff part of ``git show`` for a commit."""
    args = ["show", "--format=", *DIFF_FORMAT_ARGS]
    if no_renames:
        args.append("--no-renames")
    args.append(obj)
    return _run_git(repo, args)


def get_status(repo: Path) -> str:
    """Return ``git status --porcelain`` output."""
    return _run_git(repo, ["status", "--porcelain"])


def stage_patch(repo: Path, answers: list[str], paths: list[str] | None = None) -> str:
    """Answer ``git add --patch`` prompts in order, limited to ``paths`` when given."""
    return _run_git(
        repo,
        [*PATHSPEC_ARGS, "add", "--patch", "--", *(paths or [])],
        input_lines=answers,
    )


def unstage_patch(repo: Path, answers: list[str], paths: list[str] | None = None) -> str:
    """Answer ``git restore --staged --patch`` prompts in order."""
    return _run_git(
        repo,
        [*PATHSPEC_ARGS, "restore", "--staged", "--patch", "--", *(paths or [])],
        input_lines=answers,
    )


def add_paths(repo: Path, paths: list[str]) -> str:
    """Stage whole files; ``add --patch`` never prompts for untracked ones."""
    return _run_git(repo, [*PATHSPEC_ARGS, "add", "--", *paths])


def restore_paths(repo: Path, paths: list[str]) -> str:
    """Unstage whole files, for changes ``restore --patch`` does not prompt for."""
    return _run_git(repo, [*PATHSPEC_ARGS, "restore", "--staged", "--", *paths])


def _run_git(
    repo: Path,
    args: list[str],
    input_lines: list[str] | None = None,
) -> str:
    stdin_text = None
    if input_lines is not None:
        stdin_text = "".join(f"{line}\n" for line in input_lines)

    logger.debug("git_invoke", args=args, repo=str(repo), answers=input_lines)
    try:
        completed = run(
            ["git", *args],
            cwd=repo,
            check=True,
            capture_output=True,
            text=True,
            input=stdin_text,
        )
    except CalledProcessError as exc:
        stderr = (exc.stderr or "").strip()
        logger.warning("git_failed", args=args, returncode=exc.returncode, stderr=stderr)
        raise GitError(stderr or f"git {' '.join(args)} failed") from exc
    except FileNotFoundError as exc:
        raise GitError("git executable not found on PATH") from exc

    return completed.stdout
