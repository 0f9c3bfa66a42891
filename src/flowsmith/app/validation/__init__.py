"""Validation of generated workflows."""

from .schema import SchemaLoadError, SchemaLoader
from .validator import WorkflowValidator

__all__ = ["SchemaLoadError", "SchemaLoader", "WorkflowValidator"]
