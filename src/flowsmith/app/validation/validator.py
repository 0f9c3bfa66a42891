"""Schema and content checks for workflow definitions."""

from __future__ import annotations

from flowsmith.domain.config import FlowsmithConfig
from flowsmith.domain.workflow import Definition, ValidationResult
from flowsmith.ports.storage import Storage

from .schema import SchemaLoader


class WorkflowValidator:
    """Validates definitions against their schema and their persisted destination.

    The default schema is loaded eagerly so a misconfigured URI fails the whole
    pass up front with :class:`SchemaLoadError`.
    """

    def __init__(self, storage: Storage, config: FlowsmithConfig, loader: SchemaLoader) -> None:
        self._storage = storage
        self._config = config
        self._loader = loader
        self._loader.load(config.default_schema_uri())

    def validate_schema(self, definition: Definition) -> ValidationResult:
        if not self._config.schema_enabled(definition.name):
            return ValidationResult.ok(f"Schema checks disabled for {definition.name}, skipping")

        validator = self._loader.load(self._config.schema_uri(definition.name))
        errors = [
            (_format_path(error.absolute_path), error.message)
            for error in validator.iter_errors(definition.json)
        ]
        errors.sort()
        if errors:
            return ValidationResult.failed(*(f"{path}: {message}" for path, message in errors))
        return ValidationResult.ok()

    def validate_content(self, definition: Definition) -> ValidationResult:
        if not self._config.content_enabled(definition.name):
            return ValidationResult.ok(f"Content checks disabled for {definition.name}, skipping")

        if not self._storage.exists(definition.destination):
            return ValidationResult.failed(
                f'Workflow missing for "{definition.name}" (expected workflow at {definition.destination})'
            )

        actual = self._storage.read_bytes(definition.destination)
        if actual != definition.content.encode("utf-8"):
            return ValidationResult.failed(
                f'Content is out of date for "{definition.name}" ({definition.destination})',
                actual_content=actual.decode("utf-8", errors="replace"),
            )
        return ValidationResult.ok()


def _format_path(path) -> str:
    parts = [str(item) for item in path]
    return ".".join(parts) if parts else "(root)"
