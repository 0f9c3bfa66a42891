"""Domain types shared by the template pipeline."""

from .dependency import Dependency, DependencyFailure, DependencyReport
from .workflow import Definition, PathInfo, ValidationResult

__all__ = [
    "Definition",
    "Dependency",
    "DependencyFailure",
    "DependencyReport",
    "PathInfo",
    "ValidationResult",
]
