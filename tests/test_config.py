"""Tests for config discovery and validation."""

from __future__ import annotations

from pathlib import Path

import pytest

from diff_stage.config import AppConfig, default_config_template, load_app_config


def test_defaults_without_config_files(tmp_path: Path) -> None:
    config = load_app_config(tmp_path)
    assert config == AppConfig()
    assert config.source is None
    assert config.logging.level == "warning"


def test_load_app_config_prefers_dot_file_over_pyproject(tmp_path: Path) -> None:
    repo = tmp_path / "repo"
    repo.mkdir()
    (repo / "pyproject.toml").write_text(
        "\n".join(
            [
                "[tool.diff_stage]",
                'format = "human"',
                "no_renames = true",
            ]
        ),
        encoding="utf-8",
    )
    (repo / ".diff-stage.toml").write_text(
        "\n".join(
            [
                'format = "json"',
                "no_renames = false",
                "show_lines = true",
                "",
                "[logging]",
                'level = "DEBUG"',
                'format = "json"',
            ]
        ),
        encoding="utf-8",
    )

    config = load_app_config(repo)
    assert config.format == "json"
    assert config.no_renames is False
    assert config.show_lines is True
    assert config.logging.level == "debug"
    assert config.logging.format == "json"
    assert config.source == str((repo / ".diff-stage.toml").resolve())


def test_load_app_config_reads_pyproject_hyphenated_key(tmp_path: Path) -> None:
    (tmp_path / "pyproject.toml").write_text(
        "\n".join(
            [
                '[tool."diff-stage"]',
                'format = "json"',
            ]
        ),
        encoding="utf-8",
    )

    config = load_app_config(tmp_path)
    assert config.format == "json"
    assert config.source == str((tmp_path / "pyproject.toml").resolve())


def test_pyproject_without_tool_section_uses_defaults(tmp_path: Path) -> None:
    (tmp_path / "pyproject.toml").write_text('[project]\nname = "x"\n', encoding="utf-8")
    assert load_app_config(tmp_path).source is None


def test_explicit_config_path_must_exist(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="does not exist"):
        load_app_config(tmp_path, config_path=Path("missing.toml"))


@pytest.mark.parametrize(
    ("content", "message"),
    [
        ('format = "yaml"', "format must be one of"),
        ('no_renames = "yes"', "no_renames must be a boolean"),
        ('logging = "loud"', "logging must be a table"),
        ('[logging]\nlevel = "trace"', "logging.level must be one of"),
        ("format = [", "Invalid TOML"),
        ("colour = true", "Unknown config key\\(s\\): colour"),
        ('[logging]\nfile = "x.log"', "logging.file"),
    ],
)
def test_invalid_values_raise(tmp_path: Path, content: str, message: str) -> None:
    (tmp_path / ".diff-stage.toml").write_text(content, encoding="utf-8")
    with pytest.raises(ValueError, match=message):
        load_app_config(tmp_path)


def test_default_template_loads(tmp_path: Path) -> None:
    (tmp_path / "diff-stage.toml").write_text(default_config_template(), encoding="utf-8")
    config = load_app_config(tmp_path)
    assert config.format == "human"
    assert config.logging.format == "console"


def test_dedicated_file_may_use_tool_table(tmp_path: Path) -> None:
    (tmp_path / ".diff-stage.toml").write_text(
        '[tool.diff_stage]\nshow_lines = true\n', encoding="utf-8"
    )
    assert load_app_config(tmp_path).show_lines is True
