"""Port definition for project storage."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path


class StorageError(RuntimeError):
    """Raised when a walk, read or write against storage fails."""

    def __init__(self, path: str, cause: BaseException | str) -> None:
        super().__init__(f"{path}: {cause}")
        self.path = path
        self.cause = cause


class Storage(ABC):
    """File access used by the template pipeline.

    Paths are strings, either absolute or relative to the storage root, and
    are returned in the same form they were given.
    """

    @abstractmethod
    def walk(self, path: str) -> list[str]:
        """Return every file below ``path`` in lexicographic order (empty if missing)."""

    @abstractmethod
    def read_text(self, path: str) -> str:
        """Return the text stored at ``path``."""

    @abstractmethod
    def read_bytes(self, path: str) -> bytes:
        """Return the raw bytes stored at ``path``."""

    @abstractmethod
    def write_text(self, path: str, content: str) -> None:
        """Write ``content`` to ``path``, creating parent directories."""

    @abstractmethod
    def exists(self, path: str) -> bool:
        """Return whether ``path`` exists."""

    @abstractmethod
    def is_dir(self, path: str) -> bool:
        """Return whether ``path`` is a directory."""

    @abstractmethod
    def resolve(self, path: str) -> Path:
        """Return the absolute location of ``path``."""

    @abstractmethod
    def mtime(self, path: str) -> float | None:
        """Return the modification time of ``path`` or None when missing."""
