"""Project scaffolding for ``flowsmith init``."""

from __future__ import annotations

from pathlib import Path

from flowsmith.domain.project import PROJECT_DIR
from flowsmith.resources import iter_scaffold_files


def scaffold_project(root: Path, *, force: bool = False) -> list[Path]:
    """Write the default configuration and example templates under ``root/.flowsmith``.

    Existing files are left untouched unless ``force`` is set; returns the
    files that were written.
    """
    target = root / PROJECT_DIR
    written: list[Path] = []
    for relative, content in iter_scaffold_files():
        path = target / relative
        if path.exists() and not force:
            continue
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        written.append(path)
    return written
