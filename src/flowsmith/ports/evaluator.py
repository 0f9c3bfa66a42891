"""Port definition for the template expression engine."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence


class EvaluationError(RuntimeError):
    """Raised when a template fails to evaluate (syntax or runtime error)."""


class Evaluator(ABC):
    #: extension of files evaluated directly
    template_extension: str
    #: extension of files that may only be imported
    library_extension: str

    @abstractmethod
    def evaluate(self, source_text: str, source_path: str, search_paths: Sequence[str]) -> str:
        """Evaluate ``source_text`` and return the manifested JSON text.

        Output must be deterministic for identical inputs; implementations keep
        no state between calls.
        """
