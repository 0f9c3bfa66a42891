"""Package manifest (``flowsmith-pkg.json``) parsing."""

from __future__ import annotations

import json
import posixpath
from dataclasses import dataclass
from functools import lru_cache
from importlib import resources
from typing import Any

from jsonschema import Draft202012Validator

from flowsmith.ports.storage import Storage

MANIFEST_FILENAME = "flowsmith-pkg.json"


class ManifestError(RuntimeError):
    """Raised when a dependency ships a manifest that cannot be parsed."""


@dataclass(frozen=True)
class PackageManifest:
    files: tuple[str, ...]
    name: str | None = None


@lru_cache(maxsize=1)
def _validator() -> Draft202012Validator:
    resource = resources.files("flowsmith.resources") / "package_manifest.schema.json"
    return Draft202012Validator(json.loads(resource.read_text(encoding="utf-8")))


def parse_manifest(raw: str, *, source: str) -> PackageManifest:
    try:
        data: Any = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ManifestError(f"{source}: invalid JSON ({exc.msg} at line {exc.lineno})") from exc
    errors = sorted(
        f"{'.'.join(str(p) for p in error.absolute_path) or '(root)'}: {error.message}"
        for error in _validator().iter_errors(data)
    )
    if errors:
        raise ManifestError(f"{source}: " + "; ".join(errors))
    files: list[str] = []
    for entry in data.get("files", []):
        normalized = posixpath.normpath(entry)
        if normalized.startswith("../") or normalized == ".." or posixpath.isabs(normalized):
            raise ManifestError(f"{source}: file '{entry}' escapes the package root")
        files.append(normalized)
    return PackageManifest(files=tuple(files), name=data.get("name"))


def read_manifest(storage: Storage, package_dir: str) -> PackageManifest | None:
    path = posixpath.join(package_dir, MANIFEST_FILENAME)
    if not storage.exists(path):
        return None
    return parse_manifest(storage.read_text(path), source=path)
