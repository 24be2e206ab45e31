"""Conductor configuration.

Settings are layered, later sources winning:

- built-in defaults
- ``<home>/config.toml``
- environment variables (``CONDUCTOR_*``)

``home`` holds the run-history database. ``project_root`` is where the
``logs/`` audit streams and agent ``workspace/`` paths live.
"""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from conductor.core.errors import ConfigError
from conductor.core.runtime import DEFAULT_CONTRACTS_ROOT

CONFIG_FILENAME = "config.toml"

ENV_HOME = "CONDUCTOR_HOME"
ENV_PROJECT_ROOT = "CONDUCTOR_PROJECT_ROOT"
ENV_CONTRACTS_ROOT = "CONDUCTOR_CONTRACTS_ROOT"
ENV_LOG_LEVEL = "CONDUCTOR_LOG_LEVEL"


@dataclass
class Settings:
    """Runtime settings."""

    home: Path = field(default_factory=lambda: Path.home() / ".conductor")
    project_root: Path = field(default_factory=Path.cwd)
    contracts_root: Path = DEFAULT_CONTRACTS_ROOT
    log_level: str = "WARNING"

    @property
    def config_path(self) -> Path:
        return self.home / CONFIG_FILENAME


def _read_toml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open("rb") as fh:
            data = tomllib.load(fh)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid config file {path}: {e}") from e
    # Accept either top-level keys or a [conductor] table
    section = data.get("conductor", data)
    if not isinstance(section, dict):
        raise ConfigError(f"Invalid config file {path}: [conductor] must be a table")
    return section


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """Build settings from defaults, the config file and the environment.

    Args:
        env: Environment mapping (defaults to ``os.environ``)

    Returns:
        Resolved settings

    Raises:
        ConfigError: If the config file cannot be parsed
    """
    env = os.environ if env is None else env
    settings = Settings()

    if env.get(ENV_HOME):
        settings.home = Path(env[ENV_HOME]).expanduser()

    file_values = _read_toml(settings.config_path)
    if "project_root" in file_values:
        settings.project_root = Path(str(file_values["project_root"])).expanduser()
    if "contracts_root" in file_values:
        settings.contracts_root = Path(str(file_values["contracts_root"])).expanduser()
    if "log_level" in file_values:
        settings.log_level = str(file_values["log_level"])

    if env.get(ENV_PROJECT_ROOT):
        settings.project_root = Path(env[ENV_PROJECT_ROOT]).expanduser()
    if env.get(ENV_CONTRACTS_ROOT):
        settings.contracts_root = Path(env[ENV_CONTRACTS_ROOT]).expanduser()
    if env.get(ENV_LOG_LEVEL):
        settings.log_level = env[ENV_LOG_LEVEL]

    settings.log_level = settings.log_level.upper()
    return settings
