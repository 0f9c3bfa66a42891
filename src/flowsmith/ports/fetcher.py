"""Port definition for remote archive retrieval."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path


class FetchError(RuntimeError):
    """Raised when a remote reference cannot be retrieved."""


class ArchiveFetcher(ABC):
    @abstractmethod
    def fetch(self, url: str, destination: Path) -> Path:
        """Download ``url`` into ``destination`` and return the materialized root.

        Archives are extracted; any other payload is stored under its basename.
        """
