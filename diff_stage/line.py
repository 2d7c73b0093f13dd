"""Hunk line model and classifier."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

CONFLICT_START_MARKER = "<<<<<<<"
CONFLICT_MIDDLE_MARKER = "======="
CONFLICT_END_MARKER = ">>>>>>>"


class LineKind(str, Enum):
    """Semantic kind of a hunk line."""

    REMOVED = "removed"
    ADDED = "added"
    UNCHANGED = "unchanged"
    HEADER = "header"
    NO_NEWLINE = "no-newline"
    CONFLICT_START = "conflict-start"
    CONFLICT_MIDDLE = "conflict-middle"
    CONFLICT_END = "conflict-end"
    CONFLICT_OURS = "conflict-ours"
    CONFLICT_THEIRS = "conflict-theirs"

    @property
    def is_conflict_marker(self) -> bool:
        return self in CONFLICT_MARKER_KINDS

    @property
    def is_numbered(self) -> bool:
        """Whether the line occupies a line in the destination file."""
        return self in {LineKind.ADDED, LineKind.UNCHANGED}


CONFLICT_MARKER_KINDS = frozenset(
    {LineKind.CONFLICT_START, LineKind.CONFLICT_MIDDLE, LineKind.CONFLICT_END}
)

_PREFIX_KINDS = {
    "-": LineKind.REMOVED,
    "+": LineKind.ADDED,
    " ": LineKind.UNCHANGED,
    "@": LineKind.HEADER,
    "\\": LineKind.NO_NEWLINE,
}


@dataclass(frozen=True, slots=True)
class Line:
    """A single physical line of a hunk, prefix included."""

    index: int
    raw: str
    kind: LineKind
    to_file_line_number: int | None = None
    is_in_our_conflict: bool = False
    is_in_their_conflict: bool = False

    @property
    def content(self) -> str:
        """Line text without its one-character diff prefix."""
        if self.kind.is_conflict_marker:
            return self.raw
        return self.raw[1:]


def classify_line(raw: str) -> LineKind:
    """Classify raw hunk text by its prefix.

    Conflict markers are checked first because ``=`` is not a diff prefix.
    Anything unrecognized, including empty text, is treated as unchanged.
    """
    marker = conflict_marker_kind(raw)
    if marker is not None:
        return marker
    return _PREFIX_KINDS.get(raw[:1], LineKind.UNCHANGED)


def conflict_marker_kind(raw: str) -> LineKind | None:
    if raw.startswith(CONFLICT_START_MARKER):
        return LineKind.CONFLICT_START
    if raw.startswith(CONFLICT_MIDDLE_MARKER):
        return LineKind.CONFLICT_MIDDLE
    if raw.startswith(CONFLICT_END_MARKER):
        return LineKind.CONFLICT_END
    return None
