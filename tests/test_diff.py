"""Tests for multi-file diff splitting and staging aggregation."""

from __future__ import annotations

from pathlib import Path

import pytest

from diff_stage.diff import parse_diff
from diff_stage.file_diff import DiffParseError, FileDiff, FileStatus

FIXTURE_DIR = Path(__file__).parent / "fixtures" / "diffs"


def _load_fixture(name: str) -> str:
    return (FIXTURE_DIR / name).read_text(encoding="utf-8")


def _file_block(path: str, body: str) -> str:
    return "\n".join(
        [
            f"diff --git a/{path} b/{path}",
            "index 1111111..2222222 100644",
            f"--- a/{path}",
            f"+++ b/{path}",
            "@@ -1 +1 @@",
            f"-{body}",
            f"+{body}!",
        ]
    )


def test_empty_input_has_no_file_diffs() -> None:
    assert parse_diff("").file_diffs == ()
    assert parse_diff("\n").file_diffs == ()


def test_parse_multi_file_diff() -> None:
    diff = parse_diff(_load_fixture("multi_file.diff"))
    assert [fd.file_path_display for fd in diff.file_diffs] == [
        "README.md",
        "src/core.py",
        "tests/test_core.py",
    ]
    assert [fd.status for fd in diff.file_diffs] == [
        FileStatus.MODIFIED,
        FileStatus.MODIFIED,
        FileStatus.ADDED,
    ]
    assert [len(fd.chunks) for fd in diff.file_diffs] == [1, 2, 1]
    assert diff.file_diffs[1].chunks[1].line_numbers == ["", "41", "", "42"]
    assert diff.line_stats == (5, 3)


@pytest.mark.parametrize("count", [1, 2, 5])
def test_split_yields_one_file_diff_per_block(count: int) -> None:
    blocks = [_file_block(f"pkg/mod_{idx}.py", f"value_{idx}") for idx in range(count)]
    diff = parse_diff("\n".join(blocks) + "\n")
    assert len(diff.file_diffs) == count
    for idx, file_diff in enumerate(diff.file_diffs):
        assert file_diff.header == f"diff --git a/pkg/mod_{idx}.py b/pkg/mod_{idx}.py"
        assert file_diff.to_file_path == f"pkg/mod_{idx}.py"


def test_new_and_deleted_files() -> None:
    diff = parse_diff(_load_fixture("new_and_deleted.diff"))
    assert [fd.status for fd in diff.file_diffs] == [FileStatus.REMOVED, FileStatus.ADDED]
    assert diff.file_diffs[1].chunks[0].line_numbers == ["", "1", "2"]


def test_binary_and_mode_only_blocks() -> None:
    diff = parse_diff(_load_fixture("binary_and_mode.diff"))
    assert len(diff.file_diffs) == 2
    assert all(fd.chunks == () for fd in diff.file_diffs)
    assert diff.file_diffs[1].extended_header_lines == ("old mode 100644", "new mode 100755")
    assert diff.stage_strings() == ["n", "n"]


def test_preamble_before_first_block_is_ignored() -> None:
    diff = parse_diff("commit abc\n\n" + _file_block("a.txt", "x"))
    assert len(diff.file_diffs) == 1
    assert diff.file_diffs[0].to_file_path == "a.txt"


def test_structural_error_aborts_the_parse() -> None:
    broken = "diff --git a/b.txt b/b.txt\n--- a/b.txt\n@@ -1 +1 @@\n-x\n+y"
    with pytest.raises(DiffParseError, match="b.txt"):
        parse_diff(_file_block("a.txt", "x") + "\n" + broken)


def test_update_all_then_answers() -> None:
    diff = parse_diff(_load_fixture("multi_file.diff") + _load_fixture("binary_and_mode.diff"))
    staged = diff.update_all(True)
    assert staged.stage_strings() == ["y"] * 6
    assert staged.unstage_strings() == ["n"] * 6
    assert diff.stage_strings() == ["n"] * 6

    unstaged = diff.update_all(False)
    assert unstaged.unstage_strings() == ["y"] * 6


def test_update_chunk_stage_targets_one_hunk() -> None:
    diff = parse_diff(_load_fixture("multi_file.diff"))
    core = diff.file_diffs[1]
    updated = diff.update_chunk_stage(core.chunks[1], core, True)

    assert updated.stage_strings() == ["n", "n", "y", "n"]
    assert diff.stage_strings() == ["n", "n", "n", "n"]
    assert updated.file_diffs[0] is diff.file_diffs[0]


def test_update_file_diff_stage_targets_every_hunk_of_one_file() -> None:
    diff = parse_diff(_load_fixture("multi_file.diff"))
    updated = diff.update_file_diff_stage(diff.file_diffs[1], True)
    assert updated.stage_strings() == ["n", "y", "y", "n"]
    assert updated.file_diffs[1].stage is True

    chunkless = parse_diff(_load_fixture("binary_and_mode.diff"))
    updated = chunkless.update_file_diff_stage(chunkless.file_diffs[0], True)
    assert updated.stage_strings() == ["y", "n"]


def test_unknown_targets_leave_diff_unchanged() -> None:
    diff = parse_diff(_load_fixture("multi_file.diff"))
    stranger = FileDiff.binary_file("missing.bin")
    assert diff.update_file_diff_stage(stranger, True) is diff

    core = diff.file_diffs[1]
    assert diff.update_chunk_stage(core.chunks[0], stranger, True) is diff


def test_duplicate_hunks_are_told_apart_by_index() -> None:
    raw = "\n".join(
        [
            "diff --git a/dup.txt b/dup.txt",
            "--- a/dup.txt",
            "+++ b/dup.txt",
            "@@ -1 +1 @@",
            "-x",
            "+y",
            "@@ -1 +1 @@",
            "-x",
            "+y",
        ]
    )
    diff = parse_diff(raw)
    file_diff = diff.file_diffs[0]
    assert file_diff.chunks[0].raw == file_diff.chunks[1].raw

    updated = diff.update_chunk_stage(file_diff.chunks[1], file_diff, True)
    assert updated.stage_strings() == ["n", "y"]


def test_find_file_diff_by_either_path() -> None:
    diff = parse_diff(_load_fixture("rename.diff"))
    assert diff.find_file_diff("src/new_name.py") is diff.file_diffs[0]
    assert diff.find_file_diff("src/old_name.py") is diff.file_diffs[0]
    assert diff.find_file_diff("nope.py") is None


def test_with_file_diffs_appends_synthetic_entries() -> None:
    diff = parse_diff(_load_fixture("simple.diff"))
    extended = diff.with_file_diffs([FileDiff.untracked_file("notes.txt")])
    assert [fd.status for fd in extended.file_diffs] == [
        FileStatus.MODIFIED,
        FileStatus.UNTRACKED,
    ]
    assert len(diff.file_diffs) == 1


def test_resolve_conflicts_rebuilds_raw_text() -> None:
    diff = parse_diff(_load_fixture("simple.diff") + _load_fixture("conflict.diff"))
    resolved = diff.resolve_conflicts("ours")

    assert [fd.status for fd in resolved.file_diffs] == [FileStatus.MODIFIED] * 2
    assert "+TIMEOUT = 5" in resolved.raw
    assert "+PORT = 9090" not in resolved.raw
    assert len(parse_diff(resolved.raw).file_diffs) == 2
    assert diff.file_diffs[1].status is FileStatus.CONFLICT


def test_resolve_conflicts_without_conflicts_is_a_no_op() -> None:
    diff = parse_diff(_load_fixture("simple.diff"))
    assert diff.resolve_conflicts("theirs") is diff


def test_patch_answers_follow_git_prompts() -> None:
    diff = parse_diff(_load_fixture("binary_and_mode.diff") + _load_fixture("simple.diff"))
    staged = diff.update_all(True)
    assert staged.stage_strings() == ["y", "y", "y"]
    assert staged.patch_answers() == ["y", "y"]
    assert staged.patch_answers(staging=False) == ["n", "n"]


def test_mark_conflicted_flags_matching_paths() -> None:
    diff = parse_diff(_load_fixture("multi_file.diff"))
    marked = diff.mark_conflicted(["src/core.py", "missing.py"])
    assert [fd.status for fd in marked.file_diffs] == [
        FileStatus.MODIFIED,
        FileStatus.CONFLICT,
        FileStatus.ADDED,
    ]
    assert diff.mark_conflicted([]) is diff
