"""Shared fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from conductor.config import Settings
from conductor.core.audit import AuditLog


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(home=tmp_path / "home", project_root=tmp_path / "project")


@pytest.fixture
def audit(tmp_path: Path) -> AuditLog:
    return AuditLog(tmp_path / "project")
