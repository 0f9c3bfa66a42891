"""Polling watcher that regenerates workflows when their sources change."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from flowsmith.app.templates import TemplateEngine
from flowsmith.app.workflow_service import UpdateReport, WorkflowService
from flowsmith.ports.storage import Storage

Snapshot = dict[str, float | None]


@dataclass
class WatchIteration:
    changed: list[str] = field(default_factory=list)
    update: UpdateReport | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "changed": self.changed,
            "update": self.update.to_dict() if self.update is not None else None,
        }


class SourceWatcher:
    """Tracks modification times of observable sources.

    The first iteration always runs an update; later iterations update only
    when a source was added, removed or modified. Remote dependencies are
    resolved once per update: idle polls reuse the engine of the last update,
    and files downloaded into the cache are not part of the snapshot.
    """

    def __init__(self, service: WorkflowService, storage: Storage) -> None:
        self._service = service
        self._storage = storage
        self._engine: TemplateEngine | None = None
        self._snapshot: Snapshot | None = None

    def snapshot(self) -> Snapshot:
        if self._engine is None:
            self._engine = self._service.new_engine()
        return _snapshot(self._engine, self._storage)

    def run_once(self) -> WatchIteration:
        current = self.snapshot()
        if self._snapshot is None:
            changed = sorted(current)
        else:
            changed = _diff(self._snapshot, current)
        iteration = WatchIteration(changed=changed)
        if self._snapshot is None or changed:
            if self._snapshot is not None:
                self._engine = self._service.new_engine()
            iteration.update = self._service.update(self._engine)
            current = self.snapshot()
        self._snapshot = current
        return iteration


def _snapshot(engine: TemplateEngine, storage: Storage) -> Snapshot:
    sources = engine.get_observable_sources()
    downloaded = tuple(str(root).rstrip("/") + "/" for root in engine.fetched.values())
    return {path: storage.mtime(path) for path in sources if not path.startswith(downloaded)}


def _diff(previous: Snapshot, current: Snapshot) -> list[str]:
    changed = {path for path in current if previous.get(path, -1.0) != current[path]}
    changed.update(path for path in previous if path not in current)
    return sorted(changed)
