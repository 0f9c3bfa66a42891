"""Packaged resources for flowsmith."""

from __future__ import annotations

from importlib import resources
from importlib.resources.abc import Traversable
from typing import Iterator

__all__ = ["iter_scaffold_files"]


def iter_scaffold_files() -> Iterator[tuple[str, str]]:
    """Yield ``(relative path, content)`` for every file of the project scaffold."""

    root = resources.files(__name__) / "scaffold"
    yield from _walk(root, "")


def _walk(node: Traversable, prefix: str) -> Iterator[tuple[str, str]]:
    for entry in sorted(node.iterdir(), key=lambda item: item.name):
        relative = f"{prefix}{entry.name}"
        if entry.is_dir():
            yield from _walk(entry, relative + "/")
        elif not entry.name.startswith((".", "__")):
            yield relative, entry.read_text(encoding="utf-8")
