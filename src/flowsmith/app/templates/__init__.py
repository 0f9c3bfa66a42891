"""Template discovery and evaluation."""

from .catalog import SourceCatalog
from .engine import SerializationError, TemplateEngine, workflow_name

__all__ = ["SourceCatalog", "SerializationError", "TemplateEngine", "workflow_name"]
