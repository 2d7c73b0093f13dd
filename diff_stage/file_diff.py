"""Single-file diff parsing and status inference."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from re import compile

from diff_stage.chunk import Chunk, parse_chunk

QUOTED_PATHS_RE = compile(r'^(?P<old>"(?:[^"\\]|\\.)*"|\S+) (?P<new>"(?:[^"\\]|\\.)*"|\S+)$')
COMBINED_HEADER_PREFIXES = ("diff --cc ", "diff --combined ")
GIT_HEADER_PREFIX = "diff --git "


class DiffParseError(ValueError):
    """Raised when a file diff block is structurally broken."""


class FileStatus(str, Enum):
    MODIFIED = "modified"
    ADDED = "added"
    REMOVED = "removed"
    RENAMED = "renamed"
    UNTRACKED = "untracked"
    CONFLICT = "conflict"


@dataclass(frozen=True, slots=True)
class FileDiff:
    """The diff of exactly one file.

    ``status`` and the path properties are derived from the stored lines on
    every access, so a resolved or restaged copy never carries stale values.
    ``untracked`` is only set by :meth:`FileDiff.untracked_file`;
    ``conflicted`` marks a path git reports as unmerged.
    """

    raw: str
    header: str
    extended_header_lines: tuple[str, ...] = ()
    from_to_lines: tuple[str, ...] = ()
    chunks: tuple[Chunk, ...] = ()
    stage: bool | None = None
    untracked: bool = False
    conflicted: bool = False

    @classmethod
    def untracked_file(cls, path: str) -> FileDiff:
        header = _git_header(path)
        return cls(
            raw=f"{header}\nnew file mode 100644",
            header=header,
            extended_header_lines=("new file mode 100644",),
            untracked=True,
        )

    @classmethod
    def added_file(cls, path: str) -> FileDiff:
        header = _git_header(path)
        from_to = ("--- /dev/null", f"+++ b/{path}")
        return cls(
            raw="\n".join([header, "new file mode 100644", *from_to]),
            header=header,
            extended_header_lines=("new file mode 100644",),
            from_to_lines=from_to,
        )

    @classmethod
    def removed_file(cls, path: str) -> FileDiff:
        header = _git_header(path)
        from_to = (f"--- a/{path}", "+++ /dev/null")
        return cls(
            raw="\n".join([header, "deleted file mode 100644", *from_to]),
            header=header,
            extended_header_lines=("deleted file mode 100644",),
            from_to_lines=from_to,
        )

    @classmethod
    def binary_file(cls, path: str) -> FileDiff:
        header = _git_header(path)
        return cls(
            raw=f"{header}\nBinary files differ",
            header=header,
            extended_header_lines=("Binary files differ",),
        )

    @property
    def from_file_path(self) -> str:
        old, _ = _header_paths(self.header)
        return old[2:] if old.startswith("a/") else ""

    @property
    def to_file_path(self) -> str:
        _, new = _header_paths(self.header)
        return new[2:] if new.startswith("b/") else ""

    @property
    def file_path_display(self) -> str:
        from_path = self.from_file_path
        to_path = self.to_file_path
        if from_path and to_path and from_path != to_path:
            return f"{from_path} => {to_path}"
        return from_path or to_path

    @property
    def pathspec(self) -> str:
        """The path to hand to git for this file."""
        return self.to_file_path or self.from_file_path

    @property
    def is_binary(self) -> bool:
        return any(
            line.startswith("Binary files ") or line == "GIT binary patch"
            for line in self.extended_header_lines
        )

    @property
    def has_mode_change(self) -> bool:
        lines = self.extended_header_lines
        return any(line.startswith("old mode ") for line in lines) and any(
            line.startswith("new mode ") for line in lines
        )

    @property
    def status(self) -> FileStatus:
        if self.conflicted or any(chunk.has_conflict for chunk in self.chunks):
            return FileStatus.CONFLICT
        if self.untracked:
            return FileStatus.UNTRACKED
        if any("new file mode" in line for line in self.extended_header_lines):
            return FileStatus.ADDED
        if any("deleted file mode" in line for line in self.extended_header_lines):
            return FileStatus.REMOVED

        from_path = self.from_file_path
        to_path = self.to_file_path
        if not from_path and to_path:
            return FileStatus.ADDED
        if from_path and not to_path:
            return FileStatus.REMOVED
        if from_path != to_path:
            return FileStatus.RENAMED

        for line in self.extended_header_lines:
            if "new file" in line:
                return FileStatus.ADDED
            if "deleted file" in line:
                return FileStatus.REMOVED

        from_line = next((line for line in self.from_to_lines if line.startswith("--- ")), "")
        to_line = next((line for line in self.from_to_lines if line.startswith("+++ ")), "")
        if "/dev/null" in from_line:
            return FileStatus.ADDED
        if "/dev/null" in to_line:
            return FileStatus.REMOVED
        return FileStatus.MODIFIED

    @property
    def line_stats(self) -> tuple[int, int]:
        added = sum(chunk.line_stats[0] for chunk in self.chunks)
        removed = sum(chunk.line_stats[1] for chunk in self.chunks)
        return (added, removed)

    @property
    def stage_string(self) -> str:
        return "y" if self.stage is True else "n"

    @property
    def unstage_string(self) -> str:
        return "y" if self.stage is False else "n"

    def stage_strings(self) -> list[str]:
        """One answer per hunk prompt, or a single answer for a hunkless file."""
        if not self.chunks:
            return [self.stage_string]
        return [chunk.stage_string for chunk in self.chunks]

    def unstage_strings(self) -> list[str]:
        if not self.chunks:
            return [self.unstage_string]
        return [chunk.unstage_string for chunk in self.chunks]

    def patch_answers(self, *, staging: bool = True) -> list[str]:
        """Answers in the order ``git add --patch`` (or ``git restore --patch``) asks.

        Git asks nothing for a binary file and asks about a mode change
        before the content hunks of the same file, so this can differ from
        :meth:`stage_strings`. ``staging=False`` answers the unstage prompts.
        """

        def answer(stage: bool | None) -> str:
            return "y" if stage is staging else "n"

        if not self.chunks:
            if self.is_binary and not self.has_mode_change:
                return []
            return [answer(self.stage)]
        answers = [answer(chunk.stage) for chunk in self.chunks]
        if self.has_mode_change:
            answers.insert(0, answer(self._mode_stage()))
        return answers

    def _mode_stage(self) -> bool | None:
        # The mode prompt follows the file flag, else a decision shared by every hunk.
        if self.stage is not None:
            return self.stage
        stages = {chunk.stage for chunk in self.chunks}
        return stages.pop() if len(stages) == 1 else None

    def with_stage(self, stage: bool | None) -> FileDiff:
        return replace(self, stage=stage)

    def update_all(self, stage: bool | None) -> FileDiff:
        """Stamp every hunk, or the file itself when it has no hunks."""
        if not self.chunks:
            return replace(self, stage=stage)
        return replace(self, chunks=tuple(chunk.with_stage(stage) for chunk in self.chunks))

    def update_chunk(self, chunk: Chunk) -> FileDiff:
        """Replace the hunk sharing ``chunk.index``; unknown indexes are ignored."""
        if not 0 <= chunk.index < len(self.chunks):
            return self
        chunks = list(self.chunks)
        chunks[chunk.index] = chunk
        return replace(self, chunks=tuple(chunks))

    def resolve_using_ours(self) -> FileDiff:
        return self._with_resolved_chunks([chunk.resolve_using_ours() for chunk in self.chunks])

    def resolve_using_theirs(self) -> FileDiff:
        return self._with_resolved_chunks([chunk.resolve_using_theirs() for chunk in self.chunks])

    def to_patch(self) -> str:
        """Render the file diff as patch text terminated by a newline."""
        rendered = _render(
            self.header, self.extended_header_lines, self.from_to_lines, self.chunks
        )
        return rendered + "\n"

    def _with_resolved_chunks(self, chunks: list[Chunk]) -> FileDiff:
        if all(new is old for new, old in zip(chunks, self.chunks)):
            return self
        return replace(
            self,
            chunks=tuple(chunks),
            raw=_render(self.header, self.extended_header_lines, self.from_to_lines, chunks),
        )


def parse_file_diff(raw: str) -> FileDiff:
    """Parse one ``diff --git`` block into a :class:`FileDiff`.

    A block without a ``---`` line (mode change, binary file) is valid and
    has no hunks. A ``---`` line without a ``+++`` line is not.
    """
    if not raw:
        raise DiffParseError("Parse error: file diff block is empty, expected a header line")

    lines = raw.split("\n")
    if len(lines) > 1 and lines[-1] == "":
        lines.pop()
    header = lines[0]

    from_index = next((idx for idx, line in enumerate(lines) if line.startswith("--- ")), None)
    if from_index is None:
        return FileDiff(raw=raw, header=header, extended_header_lines=tuple(lines[1:]))

    to_index = next(
        (idx for idx in range(from_index + 1, len(lines)) if lines[idx].startswith("+++ ")),
        None,
    )
    if to_index is None:
        raise DiffParseError(
            f"Parse error: missing '+++' line after '---' line in file diff {header!r}"
        )

    chunks = tuple(
        parse_chunk(chunk_raw, index=index)
        for index, chunk_raw in enumerate(_split_chunks(lines[to_index + 1 :]))
    )
    return FileDiff(
        raw=raw,
        header=header,
        extended_header_lines=tuple(lines[1:from_index]),
        from_to_lines=tuple(lines[from_index : to_index + 1]),
        chunks=chunks,
    )


def _split_chunks(lines: list[str]) -> list[str]:
    chunks: list[list[str]] = []
    for line in lines:
        if line.startswith("@@"):
            chunks.append([line])
        elif chunks:
            chunks[-1].append(line)
    return ["\n".join(chunk) for chunk in chunks]


def _render(
    header: str,
    extended_header_lines: tuple[str, ...],
    from_to_lines: tuple[str, ...],
    chunks: tuple[Chunk, ...] | list[Chunk],
) -> str:
    return "\n".join([header, *extended_header_lines, *from_to_lines, *(c.raw for c in chunks)])


def _git_header(path: str) -> str:
    return f"{GIT_HEADER_PREFIX}a/{path} b/{path}"


def _header_paths(header: str) -> tuple[str, str]:
    """Return the raw ``a/...`` and ``b/...`` tokens of a diff header."""
    for prefix in COMBINED_HEADER_PREFIXES:
        if header.startswith(prefix):
            path = unquote_path(header[len(prefix) :].strip())
            return (f"a/{path}", f"b/{path}")

    if header.startswith(GIT_HEADER_PREFIX):
        rest = header[len(GIT_HEADER_PREFIX) :]
        match = QUOTED_PATHS_RE.match(rest)
        if match is not None:
            return (unquote_path(match.group("old")), unquote_path(match.group("new")))

        # Unquoted paths with spaces: "a/<p> b/<p>" splits evenly.
        half, odd = divmod(len(rest) - 1, 2)
        if not odd and rest[half : half + 1] == " " and rest[2:half] == rest[half + 3 :]:
            return (rest[:half], rest[half + 1 :])

    components = header.split(" ")
    old = components[2] if len(components) > 2 else ""
    new = components[3] if len(components) > 3 else ""
    return (old, new)


def unquote_path(token: str) -> str:
    """Undo git's C-style path quoting (escapes and octal UTF-8 bytes)."""
    if len(token) < 2 or not (token.startswith('"') and token.endswith('"')):
        return token
    inner = token[1:-1]
    try:
        return inner.encode("latin-1").decode("unicode_escape").encode("latin-1").decode("utf-8")
    except UnicodeError:
        return inner.replace('\\"', '"').replace("\\\\", "\\")
