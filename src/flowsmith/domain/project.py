"""Locations of a flowsmith project on disk."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .config import FlowsmithConfig, load_config

PROJECT_DIR = ".flowsmith"
CONFIG_FILENAME = "config.yml"
WORKFLOWS_DIRNAME = "workflows"
LIBS_DIRNAME = "libs"


def default_config_path(root: Path) -> Path:
    return root / PROJECT_DIR / CONFIG_FILENAME


@dataclass(frozen=True)
class ProjectContext:
    """Project root plus its loaded configuration.

    Directory properties are project-relative POSIX strings; they are what
    templates, descriptions and destinations are expressed in.
    """

    root: Path
    config: FlowsmithConfig
    config_path: Path

    @classmethod
    def load(cls, root: Path, config_path: Path | None = None) -> "ProjectContext":
        resolved = root.expanduser().resolve()
        path = config_path if config_path is not None else default_config_path(resolved)
        if not path.is_absolute():
            path = resolved / path
        return cls(root=resolved, config=load_config(path), config_path=path)

    @property
    def project_dir(self) -> str:
        return PROJECT_DIR

    @property
    def workflows_dir(self) -> str:
        return f"{PROJECT_DIR}/{WORKFLOWS_DIRNAME}"

    @property
    def libs_dir(self) -> str:
        return f"{PROJECT_DIR}/{LIBS_DIRNAME}"

    @property
    def output_dir(self) -> str:
        return f"{self.config.github_dir.rstrip('/')}/workflows"
