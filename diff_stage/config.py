"""Configuration loading for diff-stage.

The first source found wins: an explicit ``--config`` file, then
``.diff-stage.toml`` or ``diff-stage.toml`` in the repository, then a
``[tool.diff_stage]`` (or ``[tool."diff-stage"]``) table in ``pyproject.toml``.
Sources are never merged.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from diff_stage.logging import LOG_FORMATS, LOG_LEVELS

CONFIG_FILENAMES = (".diff-stage.toml", "diff-stage.toml")
PYPROJECT_FILENAME = "pyproject.toml"
PYPROJECT_TOOL_KEYS = ("diff_stage", "diff-stage")
OUTPUT_FORMATS = ("human", "json")
TOP_LEVEL_KEYS = frozenset({"format", "no_renames", "show_lines", "logging"})
LOGGING_KEYS = frozenset({"level", "format"})


@dataclass(slots=True)
class LoggingConfig:
    """Structured logging defaults."""

    level: str = "warning"
    format: str = "console"

    def to_dict(self) -> dict[str, Any]:
        return {"level": self.level, "format": self.format}


@dataclass(slots=True)
class AppConfig:
    """Runtime configuration values resolved from project files."""

    format: str = "human"
    no_renames: bool = True
    show_lines: bool = False
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    source: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "format": self.format,
            "no_renames": self.no_renames,
            "show_lines": self.show_lines,
            "logging": self.logging.to_dict(),
            "source": self.source,
        }


def load_app_config(repo: Path, config_path: Path | None = None) -> AppConfig:
    """Resolve the configuration that applies to ``repo``.

    Raises ``ValueError`` naming the file or key at fault.
    """
    found = _locate(repo.resolve(), config_path)
    if found is None:
        return AppConfig()
    path, table = found
    return _build(table, source=str(path))


def default_config_template() -> str:
    """Return a starter config template."""
    return "\n".join(
        [
            'format = "human"',
            "no_renames = true",
            "show_lines = false",
            "",
            "[logging]",
            'level = "warning"',
            '# format = "json"',
            'format = "console"',
            "",
        ]
    )


def _locate(repo: Path, config_path: Path | None) -> tuple[Path, dict[str, Any]] | None:
    if config_path is not None:
        path = config_path if config_path.is_absolute() else repo / config_path
        if not path.is_file():
            raise ValueError(f"Config file does not exist: {path}")
        return path, _section(path, _read_toml(path))

    for name in CONFIG_FILENAMES:
        path = repo / name
        if path.is_file():
            return path, _section(path, _read_toml(path))

    pyproject = repo / PYPROJECT_FILENAME
    if pyproject.is_file():
        table = _section(pyproject, _read_toml(pyproject))
        if table:
            return pyproject, table
    return None


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Invalid TOML in {path}: {exc}") from exc


def _section(path: Path, document: dict[str, Any]) -> dict[str, Any]:
    """Pick our table out of a parsed file.

    A pyproject only contributes its tool table; a dedicated file may hold
    the keys at the top level or under the same tool table.
    """
    tool = document.get("tool")
    if isinstance(tool, dict):
        for key in PYPROJECT_TOOL_KEYS:
            if isinstance(tool.get(key), dict):
                return tool[key]
    if path.name == PYPROJECT_FILENAME:
        return {}
    return document


def _build(table: dict[str, Any], *, source: str) -> AppConfig:
    _reject_unknown(table, TOP_LEVEL_KEYS)
    logging_table = table.get("logging", {})
    if not isinstance(logging_table, dict):
        raise ValueError("logging must be a table")
    _reject_unknown(logging_table, LOGGING_KEYS, prefix="logging.")

    return AppConfig(
        format=_choice(table, "format", OUTPUT_FORMATS, default="human"),
        no_renames=_flag(table, "no_renames", default=True),
        show_lines=_flag(table, "show_lines", default=False),
        logging=LoggingConfig(
            level=_choice(logging_table, "level", LOG_LEVELS, default="warning", prefix="logging."),
            format=_choice(
                logging_table, "format", LOG_FORMATS, default="console", prefix="logging."
            ),
        ),
        source=source,
    )


def _reject_unknown(table: dict[str, Any], known: frozenset[str], *, prefix: str = "") -> None:
    unknown = sorted(set(table) - known)
    if unknown:
        names = ", ".join(f"{prefix}{key}" for key in unknown)
        raise ValueError(f"Unknown config key(s): {names}")


def _choice(
    table: dict[str, Any],
    key: str,
    allowed: tuple[str, ...],
    *,
    default: str,
    prefix: str = "",
) -> str:
    value = table.get(key, default)
    if not isinstance(value, str) or value.lower() not in allowed:
        raise ValueError(f"{prefix}{key} must be one of: {', '.join(allowed)}")
    return value.lower()


def _flag(table: dict[str, Any], key: str, *, default: bool) -> bool:
    value = table.get(key, default)
    if not isinstance(value, bool):
        raise ValueError(f"{key} must be a boolean")
    return value
