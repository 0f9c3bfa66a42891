"""Shared test helpers: example templates, fake fetcher and project sandbox."""

from __future__ import annotations

import json
from pathlib import Path

from flowsmith.adapters.fs_storage import LocalStorage
from flowsmith.adapters.jsonnet_evaluator import JsonnetEvaluator
from flowsmith.app.dependencies import DependencyResolver
from flowsmith.app.templates import TemplateEngine
from flowsmith.domain.config import parse_config
from flowsmith.domain.project import ProjectContext
from flowsmith.ports.fetcher import ArchiveFetcher, FetchError

EXAMPLE_WORKFLOW = "name: test\non:\n  push: {}\njobs:\n  build:\n    runs-on: ubuntu-latest\n    steps:\n    - run: echo hello"
EXAMPLE_TEMPLATE = json.dumps(EXAMPLE_WORKFLOW)
EXAMPLE_JSON = {
    "name": "test",
    "on": {"push": {}},
    "jobs": {"build": {"runs-on": "ubuntu-latest", "steps": [{"run": "echo hello"}]}},
}

WORKFLOW_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["on", "jobs"],
    "properties": {
        "name": {"type": "string"},
        "on": {"type": ["object", "string", "array"]},
        "jobs": {"type": "object"},
    },
}

DEFAULT_CONFIG = "\n".join(
    [
        "templates:",
        "  engine: jsonnet",
        "workflows:",
        "  defaults:",
        "    checks:",
        "      schema:",
        "        uri: schema.json",
    ]
)


def make_config(
    *,
    libs: tuple[str, ...] = (),
    dependencies: tuple[str, ...] = (),
    workflows: tuple[str, ...] = (),
    schema_uri: str = "schema.json",
) -> str:
    """Build a config file; ``workflows`` lines are appended under the ``workflows:`` key."""
    lines = ["templates:", "  engine: jsonnet", "  defaults:"]
    lines.append("    libs:" + ("" if libs else " []"))
    lines.extend(f"    - {lib}" for lib in libs)
    lines.append("    dependencies:" + ("" if dependencies else " []"))
    lines.extend(f"    - {dependency}" for dependency in dependencies)
    lines.extend(["workflows:", "  defaults:", "    checks:", "      schema:", f"        uri: {schema_uri}"])
    lines.extend(workflows)
    return "\n".join(lines)


def example_content(description: str) -> str:
    return (
        "# File generated by flowsmith, do not modify\n"
        f"# Source: {description}\n"
        f"{EXAMPLE_WORKFLOW}\n"
    )


class FakeFetcher(ArchiveFetcher):
    """Materializes canned file trees instead of downloading archives."""

    def __init__(self, packages: dict[str, dict[str, str]] | None = None) -> None:
        self.packages = packages or {}
        self.calls: list[str] = []

    def fetch(self, url: str, destination: Path) -> Path:
        self.calls.append(url)
        files = self.packages.get(url)
        if files is None:
            raise FetchError(f"{url}: request failed with status 404")
        destination.mkdir(parents=True, exist_ok=True)
        for relative, content in files.items():
            target = destination / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        return destination


class Project:
    def __init__(self, root: Path, cache_dir: Path) -> None:
        self.root = root
        self.cache_dir = cache_dir
        self.storage = LocalStorage(root)
        self.fetcher = FakeFetcher()
        self.write("schema.json", json.dumps(WORKFLOW_SCHEMA))

    def write(self, path: str, content: str) -> Path:
        target = Path(path) if Path(path).is_absolute() else self.root / path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        return target

    def read(self, path: str) -> str:
        return (self.root / path).read_text(encoding="utf-8")

    def context(self, config: str = DEFAULT_CONFIG) -> ProjectContext:
        return ProjectContext(
            root=self.root,
            config=parse_config(config),
            config_path=self.root / ".flowsmith" / "config.yml",
        )

    def resolver(self) -> DependencyResolver:
        return DependencyResolver(self.storage, self.fetcher, self.cache_dir)

    def engine(self, config: str = DEFAULT_CONFIG, *, max_workers: int = 1) -> TemplateEngine:
        return TemplateEngine(
            self.context(config),
            self.storage,
            JsonnetEvaluator(),
            self.resolver(),
            max_workers=max_workers,
        )
