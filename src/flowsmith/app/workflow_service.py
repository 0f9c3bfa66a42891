"""Application service for generating and checking workflows."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

import requests

from flowsmith.adapters.fs_storage import LocalStorage
from flowsmith.adapters.http_fetcher import HttpArchiveFetcher
from flowsmith.adapters.jsonnet_evaluator import JsonnetEvaluator
from flowsmith.app.dependencies import DependencyResolver
from flowsmith.app.templates import TemplateEngine
from flowsmith.app.validation import SchemaLoader, WorkflowValidator
from flowsmith.domain.dependency import DependencyFailure
from flowsmith.domain.project import ProjectContext
from flowsmith.domain.workflow import Definition, ValidationResult
from flowsmith.ports.evaluator import Evaluator
from flowsmith.ports.storage import Storage
from flowsmith.settings import RuntimeSettings

EngineFactory = Callable[[], TemplateEngine]


@dataclass(frozen=True)
class WorkflowCheck:
    definition: Definition
    schema: ValidationResult | None = None
    content: ValidationResult | None = None

    @property
    def failed_stage(self) -> str | None:
        if not self.definition.valid:
            return "template"
        if self.schema is not None and not self.schema.valid:
            return "schema"
        if self.content is not None and not self.content.valid:
            return "content"
        return None

    @property
    def valid(self) -> bool:
        return self.failed_stage is None

    @property
    def errors(self) -> tuple[str, ...]:
        stage = self.failed_stage
        if stage == "template":
            return self.definition.status.errors
        if stage == "schema" and self.schema is not None:
            return self.schema.errors
        if stage == "content" and self.content is not None:
            return self.content.errors
        return ()

    @property
    def notices(self) -> tuple[str, ...]:
        notices: list[str] = []
        for result in (self.schema, self.content):
            if result is not None:
                notices.extend(result.notices)
        return tuple(notices)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.definition.name,
            "source": self.definition.description,
            "destination": self.definition.destination,
            "valid": self.valid,
            "stage": self.failed_stage,
            "errors": list(self.errors),
            "notices": list(self.notices),
        }


@dataclass
class CheckReport:
    checks: list[WorkflowCheck] = field(default_factory=list)
    dependency_failures: list[DependencyFailure] = field(default_factory=list)
    fetched: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.dependency_failures and all(check.valid for check in self.checks)

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "workflows": [check.to_dict() for check in self.checks],
            "dependencies": [failure.to_dict() for failure in self.dependency_failures],
            "fetched": list(self.fetched),
        }


@dataclass(frozen=True)
class UpdateAction:
    name: str
    source: str
    destination: str
    action: str
    errors: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "source": self.source,
            "destination": self.destination,
            "action": self.action,
            "errors": list(self.errors),
        }


@dataclass
class UpdateReport:
    actions: list[UpdateAction] = field(default_factory=list)
    dependency_failures: list[DependencyFailure] = field(default_factory=list)
    fetched: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.dependency_failures and all(action.action != "error" for action in self.actions)

    def count(self, action: str) -> int:
        return sum(1 for item in self.actions if item.action == action)

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "workflows": [action.to_dict() for action in self.actions],
            "dependencies": [failure.to_dict() for failure in self.dependency_failures],
            "fetched": list(self.fetched),
        }


class WorkflowService:
    def __init__(
        self,
        context: ProjectContext,
        storage: Storage,
        engine_factory: EngineFactory,
        schema_loader: SchemaLoader,
    ) -> None:
        self._context = context
        self._storage = storage
        self._engine_factory = engine_factory
        self._schema_loader = schema_loader

    @property
    def context(self) -> ProjectContext:
        return self._context

    @property
    def storage(self) -> Storage:
        return self._storage

    def new_engine(self) -> TemplateEngine:
        """Each engine is one pipeline run with its own dependency cache."""
        return self._engine_factory()

    def definitions(self) -> tuple[list[Definition], list[DependencyFailure]]:
        definitions, failures, _fetched = self._generate()
        return definitions, failures

    def observable_sources(self) -> list[str]:
        return self.new_engine().get_observable_sources()

    def update(self, engine: TemplateEngine | None = None) -> UpdateReport:
        """Write every valid definition whose content changed.

        ``engine`` lets a caller reuse the dependencies it already resolved.
        """
        definitions, failures, fetched = self._generate(engine)
        report = UpdateReport(dependency_failures=failures, fetched=fetched)
        for definition in definitions:
            if not definition.valid:
                report.actions.append(self._action(definition, "error", definition.status.errors))
                continue
            if not self._storage.exists(definition.destination):
                action = "create"
            elif self._storage.read_bytes(definition.destination) == definition.content.encode("utf-8"):
                report.actions.append(self._action(definition, "skip"))
                continue
            else:
                action = "update"
            self._storage.write_text(definition.destination, definition.content)
            report.actions.append(self._action(definition, action))
        return report

    def check(self) -> CheckReport:
        """Check every definition, reporting all failures rather than stopping at the first."""
        validator = WorkflowValidator(self._storage, self._context.config, self._schema_loader)
        definitions, failures, fetched = self._generate()
        report = CheckReport(dependency_failures=failures, fetched=fetched)
        for definition in definitions:
            if not definition.valid:
                report.checks.append(WorkflowCheck(definition))
                continue
            schema = validator.validate_schema(definition)
            if not schema.valid:
                report.checks.append(WorkflowCheck(definition, schema=schema))
                continue
            content = validator.validate_content(definition)
            report.checks.append(WorkflowCheck(definition, schema=schema, content=content))
        return report

    def _generate(
        self, engine: TemplateEngine | None = None
    ) -> tuple[list[Definition], list[DependencyFailure], list[str]]:
        if engine is None:
            engine = self.new_engine()
        definitions = engine.evaluate_all()
        failures = list(engine.load_dependencies().failures)
        return definitions, failures, sorted(engine.fetched)

    @staticmethod
    def _action(definition: Definition, action: str, errors: tuple[str, ...] = ()) -> UpdateAction:
        return UpdateAction(
            name=definition.name,
            source=definition.description,
            destination=definition.destination,
            action=action,
            errors=errors,
        )


def build_workflow_service(
    context: ProjectContext,
    settings: RuntimeSettings,
    *,
    session: requests.Session | None = None,
    evaluator: Evaluator | None = None,
    max_workers: int = 1,
) -> WorkflowService:
    storage = LocalStorage(context.root)
    http = session or requests.Session()
    jsonnet = evaluator or JsonnetEvaluator()

    def _engine() -> TemplateEngine:
        resolver = DependencyResolver(storage, HttpArchiveFetcher(http), settings.dependency_cache_dir)
        return TemplateEngine(context, storage, jsonnet, resolver, max_workers=max_workers)

    return WorkflowService(context, storage, _engine, SchemaLoader(context.root, http))
