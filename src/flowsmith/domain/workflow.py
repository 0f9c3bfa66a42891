"""Domain model for generated workflow definitions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

GENERATED_NOTICE = "# File generated by flowsmith, do not modify"
WORKFLOW_SUFFIX = ".yml"


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of one check.

    A result may describe an evaluation failure, a schema failure or content
    drift; callers treat them as separate checks. ``actual_content`` is only
    set for drift, ``notices`` carry informational messages that never affect
    ``valid``.
    """

    valid: bool
    errors: tuple[str, ...] = ()
    actual_content: str = ""
    notices: tuple[str, ...] = ()

    @classmethod
    def ok(cls, *notices: str) -> "ValidationResult":
        return cls(valid=True, notices=tuple(notices))

    @classmethod
    def failed(cls, *errors: str, actual_content: str = "") -> "ValidationResult":
        return cls(valid=False, errors=tuple(errors), actual_content=actual_content)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"valid": self.valid, "errors": list(self.errors)}
        if self.notices:
            payload["notices"] = list(self.notices)
        return payload


@dataclass(frozen=True)
class PathInfo:
    source_path: str
    local_path: str
    description: str

    @classmethod
    def local(cls, path: str) -> "PathInfo":
        return cls(source_path=path, local_path=path, description=path)


@dataclass(frozen=True)
class Definition:
    name: str
    source: str
    description: str
    destination: str
    content: str = ""
    json: Any = None
    status: ValidationResult = field(default_factory=ValidationResult.ok)

    @property
    def valid(self) -> bool:
        return self.status.valid

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "source": self.source,
            "description": self.description,
            "destination": self.destination,
            "status": self.status.to_dict(),
        }


def render_content(description: str, output: str) -> str:
    """Prefix evaluated output with the generated-file header."""
    header = "\n".join([GENERATED_NOTICE, f"# Source: {description}"])
    return header + "\n" + output + "\n"
