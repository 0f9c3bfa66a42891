"""Discovery of template and library sources in a directory tree."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass

from flowsmith.domain.workflow import PathInfo
from flowsmith.ports.storage import Storage


@dataclass(frozen=True)
class SourceCatalog:
    storage: Storage
    template_extension: str
    library_extension: str

    def is_template(self, path: str) -> bool:
        return posixpath.splitext(path)[1] == self.template_extension

    def is_library(self, path: str) -> bool:
        return posixpath.splitext(path)[1] == self.library_extension

    def list_sources(self, root: str) -> list[str]:
        """Templates and libraries under ``root``, lexicographically ordered."""
        return [path for path in self.storage.walk(root) if self.is_template(path) or self.is_library(path)]

    def list_template_sources(self, root: str) -> list[PathInfo]:
        return [PathInfo.local(path) for path in self.storage.walk(root) if self.is_template(path)]
