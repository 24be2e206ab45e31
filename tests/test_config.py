"""Tests for settings loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from conductor.config import Settings, load_settings
from conductor.core.errors import ConfigError
from conductor.core.runtime import DEFAULT_CONTRACTS_ROOT


def test_defaults(tmp_path: Path) -> None:
    settings = load_settings({"CONDUCTOR_HOME": str(tmp_path)})
    assert settings.home == tmp_path
    assert settings.contracts_root == DEFAULT_CONTRACTS_ROOT
    assert settings.log_level == "WARNING"
    assert settings.config_path == tmp_path / "config.toml"


def test_config_file(tmp_path: Path) -> None:
    (tmp_path / "config.toml").write_text(
        '[conductor]\nproject_root = "/srv/project"\nlog_level = "debug"\n', encoding="utf-8"
    )
    settings = load_settings({"CONDUCTOR_HOME": str(tmp_path)})
    assert settings.project_root == Path("/srv/project")
    assert settings.log_level == "DEBUG"


def test_top_level_keys(tmp_path: Path) -> None:
    (tmp_path / "config.toml").write_text('contracts_root = "/opt/contracts"\n', encoding="utf-8")
    settings = load_settings({"CONDUCTOR_HOME": str(tmp_path)})
    assert settings.contracts_root == Path("/opt/contracts")


def test_environment_wins_over_file(tmp_path: Path) -> None:
    (tmp_path / "config.toml").write_text('project_root = "/from/file"\n', encoding="utf-8")
    settings = load_settings(
        {
            "CONDUCTOR_HOME": str(tmp_path),
            "CONDUCTOR_PROJECT_ROOT": "/from/env",
            "CONDUCTOR_LOG_LEVEL": "info",
        }
    )
    assert settings.project_root == Path("/from/env")
    assert settings.log_level == "INFO"


def test_malformed_toml(tmp_path: Path) -> None:
    (tmp_path / "config.toml").write_text("project_root = [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_settings({"CONDUCTOR_HOME": str(tmp_path)})


def test_conductor_must_be_a_table(tmp_path: Path) -> None:
    (tmp_path / "config.toml").write_text('conductor = "nope"\n', encoding="utf-8")
    with pytest.raises(ConfigError):
        load_settings({"CONDUCTOR_HOME": str(tmp_path)})


def test_settings_default_home() -> None:
    assert Settings().home == Path.home() / ".conductor"
