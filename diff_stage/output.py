"""Output rendering."""

from __future__ import annotations

import json
from typing import Any

import click

from diff_stage import __version__
from diff_stage.chunk import Chunk
from diff_stage.diff import Diff
from diff_stage.file_diff import FileDiff, FileStatus
from diff_stage.line import Line, LineKind

STATUS_COLORS = {
    FileStatus.MODIFIED: "yellow",
    FileStatus.ADDED: "green",
    FileStatus.REMOVED: "red",
    FileStatus.RENAMED: "blue",
    FileStatus.UNTRACKED: "cyan",
    FileStatus.CONFLICT: "magenta",
}

LINE_COLORS = {
    LineKind.ADDED: "green",
    LineKind.REMOVED: "red",
    LineKind.HEADER: "cyan",
    LineKind.CONFLICT_START: "red",
    LineKind.CONFLICT_MIDDLE: "red",
    LineKind.CONFLICT_END: "red",
    LineKind.CONFLICT_OURS: "blue",
    LineKind.CONFLICT_THEIRS: "green",
}


def render_human(diff: Diff, *, show_lines: bool = False) -> str:
    """Render a compact colorized summary of a parsed diff."""
    if not diff.file_diffs:
        return "No changes."

    added, removed = diff.line_stats
    lines: list[str] = [
        click.style(
            f"{len(diff.file_diffs)} file(s) changed, +{added} -{removed}",
            bold=True,
        )
    ]
    for file_diff in diff.file_diffs:
        lines.append(_render_file_summary(file_diff))
        for chunk in file_diff.chunks:
            lines.append(_render_chunk_summary(chunk))
            if show_lines:
                width = max((len(number) for number in chunk.line_numbers), default=0)
                lines.extend(_render_line(line, width) for line in chunk.lines[1:])
    return "\n".join(lines)


def render_json(diff: Diff, *, input_source: str) -> str:
    """Render stable JSON output for scripting."""
    return json.dumps(build_json_payload(diff, input_source=input_source), sort_keys=True)


def build_json_payload(diff: Diff, *, input_source: str) -> dict[str, Any]:
    added, removed = diff.line_stats
    return {
        "files": [_serialize_file(item) for item in diff.file_diffs],
        "stats": {"added": added, "removed": removed},
        "stage_strings": diff.stage_strings(),
        "unstage_strings": diff.unstage_strings(),
        "meta": {"input_source": input_source, "version": __version__},
    }


def _serialize_file(file_diff: FileDiff) -> dict[str, Any]:
    added, removed = file_diff.line_stats
    return {
        "path": file_diff.file_path_display,
        "from_path": file_diff.from_file_path,
        "to_path": file_diff.to_file_path,
        "status": file_diff.status.value,
        "stage": file_diff.stage,
        "extended_header": list(file_diff.extended_header_lines),
        "stats": {"added": added, "removed": removed},
        "chunks": [_serialize_chunk(chunk) for chunk in file_diff.chunks],
    }


def _serialize_chunk(chunk: Chunk) -> dict[str, Any]:
    return {
        "index": chunk.index,
        "header": chunk.header,
        "stage": chunk.stage,
        "has_conflict": chunk.has_conflict,
        "lines": [
            {
                "kind": line.kind.value,
                "raw": line.raw,
                "to_file_line_number": line.to_file_line_number,
            }
            for line in chunk.lines
        ],
    }


def _render_file_summary(file_diff: FileDiff) -> str:
    status = file_diff.status
    added, removed = file_diff.line_stats
    label = click.style(f"{status.value:<9}", fg=STATUS_COLORS[status], bold=True)
    stage = _stage_mark(file_diff.stage)
    return f"{label} {file_diff.file_path_display} (+{added} -{removed}){stage}"


def _render_chunk_summary(chunk: Chunk) -> str:
    conflict = click.style(" [conflict]", fg="magenta") if chunk.has_conflict else ""
    return f"  #{chunk.index} {chunk.header}{conflict}{_stage_mark(chunk.stage)}"


def _render_line(line: Line, width: int) -> str:
    number = str(line.to_file_line_number) if line.to_file_line_number is not None else ""
    text = click.style(line.raw, fg=LINE_COLORS.get(line.kind))
    return f"    {number:>{width}} {text}"


def _stage_mark(stage: bool | None) -> str:
    if stage is None:
        return ""
    return " [staged]" if stage else " [unstaged]"
