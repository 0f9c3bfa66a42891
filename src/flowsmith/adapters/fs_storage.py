"""Filesystem-backed storage rooted at a project directory."""

from __future__ import annotations

import os
from pathlib import Path

from flowsmith.ports.storage import Storage, StorageError


class LocalStorage(Storage):
    def __init__(self, root: Path) -> None:
        self._root = root

    @property
    def root(self) -> Path:
        return self._root

    def resolve(self, path: str) -> Path:
        candidate = Path(path)
        if candidate.is_absolute():
            return candidate
        return self._root / candidate

    def walk(self, path: str) -> list[str]:
        base = self.resolve(path)
        if not base.exists():
            return []
        if base.is_file():
            return [path]

        def _raise(exc: OSError) -> None:
            raise StorageError(exc.filename or path, exc)

        prefix = path.rstrip("/")
        files: list[str] = []
        for dirpath, _dirnames, filenames in os.walk(base, onerror=_raise):
            relative_dir = Path(dirpath).relative_to(base).as_posix()
            for filename in filenames:
                if relative_dir == ".":
                    files.append(f"{prefix}/{filename}")
                else:
                    files.append(f"{prefix}/{relative_dir}/{filename}")
        return sorted(files)

    def read_text(self, path: str) -> str:
        try:
            with self.resolve(path).open("r", encoding="utf-8", newline="") as handle:
                return handle.read()
        except (OSError, UnicodeDecodeError) as exc:
            raise StorageError(path, exc) from exc

    def read_bytes(self, path: str) -> bytes:
        try:
            return self.resolve(path).read_bytes()
        except OSError as exc:
            raise StorageError(path, exc) from exc

    def write_text(self, path: str, content: str) -> None:
        target = self.resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with target.open("w", encoding="utf-8", newline="") as handle:
                handle.write(content)
        except OSError as exc:
            raise StorageError(path, exc) from exc

    def exists(self, path: str) -> bool:
        return self.resolve(path).exists()

    def is_dir(self, path: str) -> bool:
        return self.resolve(path).is_dir()

    def mtime(self, path: str) -> float | None:
        try:
            return self.resolve(path).stat().st_mtime
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StorageError(path, exc) from exc
