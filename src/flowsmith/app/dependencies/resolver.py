"""Resolution of template dependencies and remote libraries."""

from __future__ import annotations

import hashlib
import posixpath
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterable

from flowsmith.adapters.http_fetcher import is_remote, reference_name
from flowsmith.domain.dependency import Dependency, DependencyFailure, DependencyReport
from flowsmith.ports.fetcher import ArchiveFetcher, FetchError
from flowsmith.ports.storage import Storage, StorageError

from .manifest import ManifestError, read_manifest


def cache_key(reference: str) -> str:
    return hashlib.sha256(reference.encode("utf-8")).hexdigest()[:16]


class DependencyResolver:
    """Materializes dependency references, fetching each remote one at most once.

    Memoization is scoped to the resolver instance; one instance serves one
    pipeline run.
    """

    def __init__(self, storage: Storage, fetcher: ArchiveFetcher, cache_dir: Path) -> None:
        self._storage = storage
        self._fetcher = fetcher
        self._cache_dir = cache_dir
        self._lock = threading.Lock()
        self._reference_locks: dict[str, threading.Lock] = {}
        self._materialized: dict[str, Path] = {}
        self._fetch_failures: dict[str, FetchError] = {}
        self._resolved: dict[str, Dependency] = {}

    def resolve(self, reference: str) -> Dependency:
        with self._reference_lock(f"dep:{reference}"):
            dependency = self._resolved.get(reference)
            if dependency is None:
                dependency = self._load(reference)
                self._resolved[reference] = dependency
            return dependency

    def resolve_all(self, references: Iterable[str], *, max_workers: int = 1) -> DependencyReport:
        references = list(references)
        if max_workers > 1 and len(references) > 1:
            with ThreadPoolExecutor(max_workers=max_workers) as pool:
                outcomes = list(pool.map(self._try_resolve, references))
        else:
            outcomes = [self._try_resolve(reference) for reference in references]
        report = DependencyReport()
        for outcome in outcomes:
            if isinstance(outcome, DependencyFailure):
                report.failures.append(outcome)
            else:
                report.dependencies.append(outcome)
        return report

    def resolve_library(self, reference: str) -> str:
        """Return the search-path directory contributed by a library reference."""
        if is_remote(reference):
            return str(self._materialize(reference))
        if self._storage.is_dir(reference):
            return reference
        return posixpath.dirname(reference) or "."

    def _try_resolve(self, reference: str) -> Dependency | DependencyFailure:
        try:
            return self.resolve(reference)
        except FetchError as exc:
            return DependencyFailure(reference=reference, kind="fetch", error=str(exc))
        except ManifestError as exc:
            return DependencyFailure(reference=reference, kind="manifest", error=str(exc))

    def _load(self, reference: str) -> Dependency:
        remote = is_remote(reference)
        if remote:
            local_dir = str(self._materialize(reference))
        else:
            local_dir = reference
            if not self._storage.is_dir(local_dir):
                raise FetchError(f"dependency not found: {reference}")
        try:
            manifest = read_manifest(self._storage, local_dir)
        except StorageError as exc:
            raise ManifestError(f"{reference}: unable to read manifest ({exc})") from exc
        if manifest is None:
            return Dependency(reference=reference, local_dir=local_dir, name=reference_name(reference), remote=remote)
        for relative in manifest.files:
            if not self._storage.exists(posixpath.join(local_dir, relative)):
                raise ManifestError(f"{reference}: manifest lists missing file '{relative}'")
        return Dependency(
            reference=reference,
            local_dir=local_dir,
            name=manifest.name or reference_name(reference),
            manifest_files=manifest.files,
            remote=remote,
        )

    def _materialize(self, reference: str) -> Path:
        with self._reference_lock(f"fetch:{reference}"):
            failure = self._fetch_failures.get(reference)
            if failure is not None:
                raise failure
            root = self._materialized.get(reference)
            if root is None:
                destination = self._cache_dir / cache_key(reference)
                try:
                    root = self._fetcher.fetch(reference, destination)
                except FetchError as exc:
                    self._fetch_failures[reference] = exc
                    raise
                except OSError as exc:
                    error = FetchError(f"{reference}: unable to store download ({exc})")
                    self._fetch_failures[reference] = error
                    raise error from exc
                self._materialized[reference] = root
            return root

    def _reference_lock(self, key: str) -> threading.Lock:
        with self._lock:
            return self._reference_locks.setdefault(key, threading.Lock())

    @property
    def fetched(self) -> dict[str, Path]:
        return dict(self._materialized)
