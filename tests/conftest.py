from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Callable

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
TESTS = Path(__file__).resolve().parent
SANDBOX_HOME = ROOT / ".test_place" / "flowsmith-home"
os.environ.setdefault("FLOWSMITH_HOME", str(SANDBOX_HOME))
SANDBOX_HOME.mkdir(parents=True, exist_ok=True)
for entry in (SRC, TESTS):
    if str(entry) not in sys.path:
        sys.path.insert(0, str(entry))

from fixtures import DEFAULT_CONFIG, Project  # noqa: E402
from flowsmith.settings import RuntimeSettings  # noqa: E402


@pytest.fixture()
def project(tmp_path: Path) -> Project:
    root = tmp_path / "project"
    root.mkdir()
    return Project(root, tmp_path / "cache")


@pytest.fixture()
def runtime_settings(tmp_path: Path) -> RuntimeSettings:
    home = tmp_path / "home"
    settings = RuntimeSettings(home_dir=home, cache_dir=home / "cache", log_dir=home / "logs")
    for directory in (settings.home_dir, settings.cache_dir, settings.log_dir):
        directory.mkdir(parents=True, exist_ok=True)
    return settings


@pytest.fixture()
def write_config() -> Callable[..., Path]:
    def _write(root: Path, content: str = DEFAULT_CONFIG) -> Path:
        path = root / ".flowsmith" / "config.yml"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write
