"""Parse git diffs into stageable, conflict-aware file/hunk/line models."""

from diff_stage.chunk import Chunk, parse_chunk
from diff_stage.diff import Diff, parse_diff
from diff_stage.file_diff import DiffParseError, FileDiff, FileStatus, parse_file_diff
from diff_stage.line import Line, LineKind, classify_line

__version__ = "0.1.0"

__all__ = [
    "Chunk",
    "Diff",
    "DiffParseError",
    "FileDiff",
    "FileStatus",
    "Line",
    "LineKind",
    "__version__",
    "classify_line",
    "parse_chunk",
    "parse_diff",
    "parse_file_diff",
]
