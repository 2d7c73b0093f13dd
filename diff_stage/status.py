"""``git status --porcelain`` parsing."""

from __future__ import annotations

from dataclasses import dataclass, field

from diff_stage.file_diff import unquote_path

CONFLICT_CODES = frozenset({"AA", "DD"})


@dataclass(slots=True)
class Status:
    """Paths git reports as untracked or unmerged."""

    untracked: list[str] = field(default_factory=list)
    conflicted: list[str] = field(default_factory=list)


def parse_status(text: str) -> Status:
    status = Status()
    for line in text.splitlines():
        if not line:
            continue
        code = line[:2]
        # Renames are reported as "R  old -> new" and are not tracked here.
        if code.startswith("R"):
            continue
        path = unquote_path(line[3:].strip())
        if code == "??":
            status.untracked.append(path)
        elif "U" in code or code in CONFLICT_CODES:
            status.conflicted.append(path)
    return status
