"""Project configuration for flowsmith (``.flowsmith/config.yml``)."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Callable, Mapping, TypeVar

import yaml
from jsonschema import Draft202012Validator

DEFAULT_SCHEMA_URI = "https://json.schemastore.org/github-workflow.json"
DEFAULT_GITHUB_DIR = ".github"
SUPPORTED_ENGINES = ("jsonnet",)

T = TypeVar("T")


class ConfigError(RuntimeError):
    """Raised when the project configuration is missing or malformed."""


@dataclass(frozen=True)
class WorkflowChecks:
    schema_enabled: bool | None = None
    schema_uri: str | None = None
    content_enabled: bool | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "WorkflowChecks":
        checks = (data or {}).get("checks") or {}
        schema = checks.get("schema") or {}
        content = checks.get("content") or {}
        return cls(
            schema_enabled=schema.get("enabled"),
            schema_uri=schema.get("uri") or None,
            content_enabled=content.get("enabled"),
        )


@dataclass(frozen=True)
class FlowsmithConfig:
    engine: str = "jsonnet"
    github_dir: str = DEFAULT_GITHUB_DIR
    libs: tuple[str, ...] = ()
    dependencies: tuple[str, ...] = ()
    defaults: WorkflowChecks = field(default_factory=WorkflowChecks)
    overrides: Mapping[str, WorkflowChecks] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "FlowsmithConfig":
        templates = data.get("templates") or {}
        template_defaults = templates.get("defaults") or {}
        workflows = data.get("workflows") or {}
        overrides = {
            str(name): WorkflowChecks.from_mapping(entry)
            for name, entry in (workflows.get("overrides") or {}).items()
        }
        return cls(
            engine=templates.get("engine", "jsonnet"),
            github_dir=data.get("githubDir", DEFAULT_GITHUB_DIR),
            libs=tuple(str(item) for item in template_defaults.get("libs") or []),
            dependencies=tuple(str(item) for item in template_defaults.get("dependencies") or []),
            defaults=WorkflowChecks.from_mapping(workflows.get("defaults")),
            overrides=overrides,
        )

    def lookup(self, name: str, getter: Callable[[WorkflowChecks], T | None], default: T) -> T:
        """Return the per-workflow override for ``name``, else the configured default."""
        override = self.overrides.get(name)
        if override is not None:
            value = getter(override)
            if value is not None:
                return value
        value = getter(self.defaults)
        return default if value is None else value

    def schema_uri(self, name: str) -> str:
        return self.lookup(name, lambda checks: checks.schema_uri, DEFAULT_SCHEMA_URI)

    def default_schema_uri(self) -> str:
        return self.defaults.schema_uri or DEFAULT_SCHEMA_URI

    def schema_enabled(self, name: str) -> bool:
        return self.lookup(name, lambda checks: checks.schema_enabled, True)

    def content_enabled(self, name: str) -> bool:
        return self.lookup(name, lambda checks: checks.content_enabled, True)


@lru_cache(maxsize=1)
def _validator() -> Draft202012Validator:
    resource = resources.files("flowsmith.resources") / "config.schema.json"
    return Draft202012Validator(json.loads(resource.read_text(encoding="utf-8")))


def parse_config(raw: str, *, source: str = "<string>") -> FlowsmithConfig:
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in {source}: {exc}") from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"{source}: configuration must be a mapping")
    issues = []
    for error in _validator().iter_errors(data):
        path = ".".join(str(item) for item in error.absolute_path) or "(root)"
        issues.append(f"{path}: {error.message}")
    if issues:
        raise ConfigError(f"{source} is invalid:\n  " + "\n  ".join(sorted(issues)))
    config = FlowsmithConfig.from_mapping(data)
    if config.engine not in SUPPORTED_ENGINES:
        raise ConfigError(f"{source}: unsupported template engine '{config.engine}'")
    return config


def load_config(path: Path) -> FlowsmithConfig:
    if not path.exists():
        raise ConfigError(f"config not found: {path} (run `flowsmith init`)")
    return parse_config(path.read_text(encoding="utf-8"), source=str(path))
