"""Jsonnet template engine: turns templates into workflow definitions."""

from __future__ import annotations

import json
import posixpath
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any

import yaml

from flowsmith.adapters.http_fetcher import is_remote
from flowsmith.app.dependencies import MANIFEST_FILENAME, DependencyResolver
from flowsmith.domain.dependency import DependencyFailure, DependencyReport
from flowsmith.domain.project import ProjectContext
from flowsmith.domain.workflow import WORKFLOW_SUFFIX, Definition, PathInfo, ValidationResult, render_content
from flowsmith.ports.evaluator import EvaluationError, Evaluator
from flowsmith.ports.fetcher import FetchError
from flowsmith.ports.storage import Storage
from flowsmith.utils.yamlutil import load_workflow

from .catalog import SourceCatalog

SERIALIZATION_HINT = (
    "You probably need to serialize the output to YAML, e.g. with std.manifestYamlDoc(). "
    "See https://jsonnet.org/ref/stdlib.html#manifestYamlDoc"
)

_JSONNET_TYPES = {
    dict: "object",
    list: "array",
    bool: "boolean",
    int: "number",
    float: "number",
    type(None): "null",
}


class SerializationError(ValueError):
    """Raised when a template evaluates to something other than a string."""


def workflow_name(path: str) -> str:
    """Name of the workflow generated from ``path``: the base filename without extension."""
    return posixpath.splitext(posixpath.basename(path))[0]


def manifest_string(output: str) -> str:
    value: Any = json.loads(output)
    if not isinstance(value, str):
        kind = _JSONNET_TYPES.get(type(value), type(value).__name__)
        raise SerializationError(f"RUNTIME ERROR: expected string result, got: {kind}\n{SERIALIZATION_HINT}")
    return value


class TemplateEngine:
    def __init__(
        self,
        context: ProjectContext,
        storage: Storage,
        evaluator: Evaluator,
        resolver: DependencyResolver,
        *,
        max_workers: int = 1,
    ) -> None:
        self._context = context
        self._storage = storage
        self._evaluator = evaluator
        self._resolver = resolver
        self._max_workers = max_workers
        self._catalog = SourceCatalog(storage, evaluator.template_extension, evaluator.library_extension)
        self._lock = threading.Lock()
        self._prepared: tuple[DependencyReport, tuple[str, ...]] | None = None

    @property
    def catalog(self) -> SourceCatalog:
        return self._catalog

    @property
    def fetched(self) -> dict[str, Path]:
        """Remote references downloaded during this run, keyed by reference."""
        return self._resolver.fetched

    def load_dependencies(self) -> DependencyReport:
        report, _search_paths = self._prepare()
        return report

    def search_paths(self) -> tuple[str, ...]:
        _report, search_paths = self._prepare()
        return search_paths

    def get_workflow_templates(self) -> list[PathInfo]:
        """Dependency templates (resolver order) followed by local templates (catalog order)."""
        templates: list[PathInfo] = []
        for dependency in self.load_dependencies().dependencies:
            templates.extend(dependency.templates())
        templates.extend(self._catalog.list_template_sources(self._context.workflows_dir))
        return templates

    def evaluate_all(self) -> list[Definition]:
        templates = self.get_workflow_templates()
        search_paths = self.search_paths()
        if self._max_workers > 1 and len(templates) > 1:
            with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
                return list(pool.map(lambda info: self.evaluate(info, search_paths), templates))
        return [self.evaluate(info, search_paths) for info in templates]

    def evaluate(self, info: PathInfo, search_paths: tuple[str, ...]) -> Definition:
        name = workflow_name(info.source_path)
        destination = f"{self._context.output_dir}/{name}{WORKFLOW_SUFFIX}"

        def _failed(message: str) -> Definition:
            return Definition(
                name=name,
                source=info.source_path,
                description=info.description,
                destination=destination,
                status=ValidationResult.failed(message),
            )

        source_text = self._storage.read_text(info.local_path)
        try:
            output = self._evaluator.evaluate(source_text, str(self._storage.resolve(info.local_path)), search_paths)
            workflow = manifest_string(output)
        except (EvaluationError, SerializationError) as exc:
            return _failed(str(exc).strip(" \n\r"))
        try:
            structure = load_workflow(workflow)
        except yaml.YAMLError as exc:
            return _failed(f"generated output is not valid YAML: {exc}")
        return Definition(
            name=name,
            source=info.source_path,
            description=info.description,
            destination=destination,
            content=render_content(info.description, workflow),
            json=structure,
            status=ValidationResult.ok(),
        )

    def get_observable_sources(self) -> list[str]:
        config = self._context.config
        sources: list[str] = []
        lib_files: list[str] = []
        for lib in config.libs:
            if is_remote(lib):
                continue
            if self._storage.is_dir(lib):
                sources.extend(self._storage.walk(lib))
            else:
                lib_files.append(lib)
        sources.extend(lib_files)
        sources.extend(self._catalog.list_sources(self._context.workflows_dir))
        sources.extend(self._catalog.list_sources(self._context.libs_dir))
        for dependency in self.load_dependencies().dependencies:
            declared = [info.local_path for info in dependency.templates()]
            sources.extend(declared)
            sources.extend(self._catalog.list_sources(dependency.local_dir))
            manifest = posixpath.join(dependency.local_dir, MANIFEST_FILENAME)
            if self._storage.exists(manifest):
                sources.append(manifest)
        return list(dict.fromkeys(sources))

    def _prepare(self) -> tuple[DependencyReport, tuple[str, ...]]:
        with self._lock:
            if self._prepared is not None:
                return self._prepared
            config = self._context.config
            report = self._resolver.resolve_all(config.dependencies, max_workers=self._max_workers)
            paths: list[str] = []
            for lib in config.libs:
                try:
                    paths.append(self._resolver.resolve_library(lib))
                except FetchError as exc:
                    report.failures.append(DependencyFailure(reference=lib, kind="fetch", error=str(exc)))
            if self._storage.is_dir(self._context.libs_dir):
                paths.append(self._context.libs_dir)
            paths.extend(dependency.local_dir for dependency in report.dependencies)
            search_paths = tuple(dict.fromkeys(str(self._storage.resolve(path)) for path in paths))
            self._prepared = (report, search_paths)
            return self._prepared
