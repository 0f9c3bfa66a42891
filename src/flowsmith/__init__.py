"""flowsmith: generate and verify GitHub workflows from Jsonnet templates."""

__version__ = "0.4.0"

__all__ = ["__version__"]
