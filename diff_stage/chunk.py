"""Hunk parsing, destination line numbering and conflict resolution."""

from __future__ import annotations

from dataclasses import dataclass, replace
from re import compile
from typing import Literal

from diff_stage.line import Line, LineKind, classify_line, conflict_marker_kind

ConflictSide = Literal["ours", "theirs"]

HUNK_HEADER_RE = compile(r"^@@ -(\d+)(?:,\d+)? \+(\d+)(?:,\d+)? @@(.*)$")


@dataclass(frozen=True, slots=True)
class Chunk:
    """One ``@@`` hunk of a file diff.

    ``index`` is the hunk's position inside its file diff and is what
    lookups match on, so byte-identical hunks stay distinguishable.
    ``stage`` is ``None`` until a staging decision has been made.
    """

    index: int
    raw: str
    lines: tuple[Line, ...]
    stage: bool | None = None

    @property
    def header(self) -> str:
        return self.lines[0].raw if self.lines else ""

    @property
    def line_numbers(self) -> list[str]:
        return [
            str(line.to_file_line_number) if line.to_file_line_number is not None else ""
            for line in self.lines
        ]

    @property
    def has_conflict(self) -> bool:
        return any(line.kind.is_conflict_marker for line in self.lines)

    @property
    def ours_conflict(self) -> list[Line]:
        return self._conflict_section("ours")

    @property
    def theirs_conflict(self) -> list[Line]:
        return self._conflict_section("theirs")

    @property
    def line_stats(self) -> tuple[int, int]:
        added = sum(1 for line in self.lines if line.kind is LineKind.ADDED)
        removed = sum(1 for line in self.lines if line.kind is LineKind.REMOVED)
        return (added, removed)

    @property
    def stage_string(self) -> str:
        return "y" if self.stage is True else "n"

    @property
    def unstage_string(self) -> str:
        return "y" if self.stage is False else "n"

    def stage_strings(self) -> list[str]:
        return [self.stage_string]

    def unstage_strings(self) -> list[str]:
        return [self.unstage_string]

    def with_stage(self, stage: bool | None) -> Chunk:
        """Return a copy of this chunk carrying the given stage decision."""
        return replace(self, stage=stage)

    def resolve_using_ours(self) -> Chunk:
        """Drop conflict markers and the "theirs" side of every conflict."""
        return self._resolve("ours")

    def resolve_using_theirs(self) -> Chunk:
        """Drop conflict markers and the "ours" side of every conflict."""
        return self._resolve("theirs")

    def _resolve(self, side: ConflictSide) -> Chunk:
        if not self.has_conflict:
            return self

        # An unterminated section runs to the end of the chunk.
        keep_ours = side == "ours"
        suppress = False
        kept: list[str] = []
        for line in self.lines:
            if line.kind is LineKind.CONFLICT_START:
                suppress = not keep_ours
                continue
            if line.kind is LineKind.CONFLICT_MIDDLE:
                suppress = keep_ours
                continue
            if line.kind is LineKind.CONFLICT_END:
                suppress = False
                continue
            if not suppress:
                kept.append(line.raw)

        if kept and classify_line(kept[0]) is LineKind.HEADER:
            kept[0] = _recount_header(kept[0], kept[1:])
        resolved = parse_chunk("\n".join(kept), index=self.index)
        return replace(resolved, stage=self.stage)

    def _conflict_section(self, side: ConflictSide) -> list[Line]:
        inside = False
        section: list[Line] = []
        for line in self.lines:
            if line.kind is LineKind.CONFLICT_START:
                inside = side == "ours"
            elif line.kind is LineKind.CONFLICT_MIDDLE:
                inside = side == "theirs"
            elif line.kind is LineKind.CONFLICT_END:
                inside = False
            elif inside:
                section.append(line)
        return section


def parse_chunk(raw: str, *, index: int = 0) -> Chunk:
    """Parse one hunk, header line included, into a numbered chunk."""
    current = _destination_start(raw)
    in_ours = False
    in_theirs = False
    lines: list[Line] = []

    for position, text in enumerate(segment for segment in raw.split("\n") if segment):
        marker = conflict_marker_kind(text)
        if marker is LineKind.CONFLICT_START:
            in_ours, in_theirs = True, False
        elif marker is LineKind.CONFLICT_MIDDLE:
            in_ours, in_theirs = False, True
        elif marker is LineKind.CONFLICT_END:
            in_ours, in_theirs = False, False

        ours = in_ours and marker is None
        theirs = in_theirs and marker is None
        if ours:
            kind = LineKind.CONFLICT_OURS
        elif theirs:
            kind = LineKind.CONFLICT_THEIRS
        else:
            kind = classify_line(text)

        number: int | None = None
        if current is not None and kind.is_numbered:
            number = current
            current += 1

        lines.append(
            Line(
                index=position,
                raw=text,
                kind=kind,
                to_file_line_number=number,
                is_in_our_conflict=ours,
                is_in_their_conflict=theirs,
            )
        )

    return Chunk(index=index, raw=raw, lines=tuple(lines))


def _destination_start(raw: str) -> int | None:
    """Read ``c`` out of ``@@ -a,b +c,d @@``; ``None`` disables numbering."""
    header = raw.split("\n", 1)[0]
    _, plus, after_plus = header.partition("+")
    if not plus:
        return None
    tokens = after_plus.split(maxsplit=1)
    if not tokens:
        return None
    start = tokens[0].split(",", 1)[0]
    if not (start.isascii() and start.isdigit()):
        return None
    return int(start)


def _recount_header(header: str, body: list[str]) -> str:
    """Rewrite the ``-a,b +c,d`` counts of a two-way hunk header to fit ``body``."""
    match = HUNK_HEADER_RE.match(header)
    if match is None:
        return header
    kinds = [classify_line(text) for text in body]
    old = sum(1 for kind in kinds if kind in {LineKind.REMOVED, LineKind.UNCHANGED})
    new = sum(1 for kind in kinds if kind.is_numbered)
    old_start, new_start, context = match.groups()
    return f"@@ -{_hunk_range(old_start, old)} +{_hunk_range(new_start, new)} @@{context}"


def _hunk_range(start: str, count: int) -> str:
    return start if count == 1 else f"{start},{count}"
