"""Domain model for template dependencies."""

from __future__ import annotations

from dataclasses import dataclass, field

from .workflow import PathInfo


@dataclass(frozen=True)
class Dependency:
    reference: str
    local_dir: str
    name: str
    manifest_files: tuple[str, ...] = ()
    remote: bool = False

    @property
    def library_only(self) -> bool:
        return not self.manifest_files

    def templates(self) -> list[PathInfo]:
        paths: list[PathInfo] = []
        for relative in self.manifest_files:
            local = _join(self.local_dir, relative)
            paths.append(
                PathInfo(
                    source_path=local,
                    local_path=local,
                    description=f"{self.name}/{relative}",
                )
            )
        return paths


@dataclass(frozen=True)
class DependencyFailure:
    reference: str
    kind: str
    error: str

    def to_dict(self) -> dict[str, str]:
        return {"reference": self.reference, "kind": self.kind, "error": self.error}


@dataclass
class DependencyReport:
    dependencies: list[Dependency] = field(default_factory=list)
    failures: list[DependencyFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def _join(base: str, relative: str) -> str:
    base = base.rstrip("/")
    relative = relative.lstrip("/")
    if not base:
        return relative
    return f"{base}/{relative}"
