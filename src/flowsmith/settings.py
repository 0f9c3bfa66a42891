"""Runtime settings for the flowsmith CLI."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from flowsmith import __version__

HOME_ENV = "FLOWSMITH_HOME"


@dataclass(frozen=True)
class RuntimeSettings:
    home_dir: Path
    cache_dir: Path
    log_dir: Path
    cli_version: str = __version__

    @property
    def dependency_cache_dir(self) -> Path:
        return self.cache_dir / "deps"


def _default_home_dir() -> Path:
    override = os.environ.get(HOME_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".flowsmith"


def load_settings() -> RuntimeSettings:
    base = _default_home_dir()
    return RuntimeSettings(
        home_dir=base,
        cache_dir=base / "cache",
        log_dir=base / "logs",
    )


SETTINGS = load_settings()
