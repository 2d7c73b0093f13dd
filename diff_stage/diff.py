"""Multi-file diff aggregation and staging."""

from __future__ import annotations

from dataclasses import dataclass, replace

from diff_stage.chunk import Chunk, ConflictSide
from diff_stage.file_diff import FileDiff, parse_file_diff

FILE_BOUNDARY = "\ndiff"


@dataclass(frozen=True, slots=True)
class Diff:
    """Parsed output of one ``git diff`` or ``git show`` invocation.

    Every update returns a new ``Diff``; file diffs are matched by raw text
    and chunks by their index inside the file diff.
    """

    raw: str
    file_diffs: tuple[FileDiff, ...] = ()

    @property
    def line_stats(self) -> tuple[int, int]:
        added = sum(file_diff.line_stats[0] for file_diff in self.file_diffs)
        removed = sum(file_diff.line_stats[1] for file_diff in self.file_diffs)
        return (added, removed)

    def find_file_diff(self, path: str) -> FileDiff | None:
        for file_diff in self.file_diffs:
            if path in {file_diff.to_file_path, file_diff.from_file_path}:
                return file_diff
        return None

    def with_file_diffs(self, file_diffs: list[FileDiff]) -> Diff:
        """Append synthetic file diffs (e.g. untracked files)."""
        return replace(self, file_diffs=self.file_diffs + tuple(file_diffs))

    def update_all(self, stage: bool | None) -> Diff:
        return replace(
            self,
            file_diffs=tuple(file_diff.update_all(stage) for file_diff in self.file_diffs),
        )

    def update_file_diff_stage(self, file_diff: FileDiff, stage: bool | None) -> Diff:
        index = self._file_diff_index(file_diff)
        if index is None:
            return self
        target = self.file_diffs[index]
        return self._replace_file_diff(index, target.update_all(stage).with_stage(stage))

    def update_chunk_stage(self, chunk: Chunk, file_diff: FileDiff, stage: bool | None) -> Diff:
        index = self._file_diff_index(file_diff)
        if index is None:
            return self
        target = self.file_diffs[index]
        if not 0 <= chunk.index < len(target.chunks):
            return self
        updated = target.chunks[chunk.index].with_stage(stage)
        return self._replace_file_diff(index, target.update_chunk(updated))

    def stage_strings(self) -> list[str]:
        return [token for file_diff in self.file_diffs for token in file_diff.stage_strings()]

    def unstage_strings(self) -> list[str]:
        return [token for file_diff in self.file_diffs for token in file_diff.unstage_strings()]

    def patch_answers(self, *, staging: bool = True) -> list[str]:
        return [
            token
            for file_diff in self.file_diffs
            for token in file_diff.patch_answers(staging=staging)
        ]

    def mark_conflicted(self, paths: list[str]) -> Diff:
        """Flag the file diffs of paths git reports as unmerged."""
        wanted = set(paths)
        if not wanted:
            return self
        return replace(
            self,
            file_diffs=tuple(
                replace(file_diff, conflicted=True)
                if wanted & {file_diff.from_file_path, file_diff.to_file_path}
                else file_diff
                for file_diff in self.file_diffs
            ),
        )

    def resolve_conflicts(self, side: ConflictSide) -> Diff:
        """Resolve every conflicted hunk, keeping ``side``."""
        resolved = tuple(
            file_diff.resolve_using_ours() if side == "ours" else file_diff.resolve_using_theirs()
            for file_diff in self.file_diffs
        )
        if all(new is old for new, old in zip(resolved, self.file_diffs)):
            return self
        raw = "".join(file_diff.to_patch() for file_diff in resolved)
        return Diff(raw=raw, file_diffs=resolved)

    def _file_diff_index(self, file_diff: FileDiff) -> int | None:
        for index, candidate in enumerate(self.file_diffs):
            if candidate.raw == file_diff.raw:
                return index
        return None

    def _replace_file_diff(self, index: int, file_diff: FileDiff) -> Diff:
        file_diffs = list(self.file_diffs)
        file_diffs[index] = file_diff
        return replace(self, file_diffs=tuple(file_diffs))


def parse_diff(raw: str) -> Diff:
    """Split a multi-file diff into file diffs.

    Empty (or whitespace-only) input is a diff with no files, not an error.
    A broken file block raises :class:`~diff_stage.file_diff.DiffParseError`
    and aborts the whole parse.
    """
    if not raw.strip():
        return Diff(raw=raw)

    fragments = ("\n" + raw).split(FILE_BOUNDARY)
    # fragments[0] is whatever preceded the first boundary.
    file_diffs = tuple(parse_file_diff("diff" + fragment) for fragment in fragments[1:] if fragment)
    return Diff(raw=raw, file_diffs=file_diffs)
