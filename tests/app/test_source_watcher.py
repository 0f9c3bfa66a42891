from __future__ import annotations

import os

from fixtures import EXAMPLE_TEMPLATE, Project, make_config

from flowsmith.app.validation import SchemaLoader
from flowsmith.app.watch import SourceWatcher
from flowsmith.app.workflow_service import WorkflowService

TEMPLATE = ".flowsmith/workflows/test.jsonnet"


def _watcher(project: Project, config: str | None = None) -> SourceWatcher:
    config = config or make_config()
    service = WorkflowService(
        project.context(config),
        project.storage,
        lambda: project.engine(config),
        SchemaLoader(project.root),
    )
    return SourceWatcher(service, project.storage)


def _touch(project: Project, path: str, offset: float) -> None:
    target = project.root / path
    stat = target.stat()
    os.utime(target, (stat.st_atime, stat.st_mtime + offset))


def test_first_iteration_always_updates(project: Project) -> None:
    project.write(TEMPLATE, EXAMPLE_TEMPLATE)
    watcher = _watcher(project)

    iteration = watcher.run_once()

    assert iteration.changed == [TEMPLATE]
    assert iteration.update is not None
    assert iteration.update.count("create") == 1
    assert project.storage.exists(".github/workflows/test.yml")


def test_idle_iteration_skips_update(project: Project) -> None:
    project.write(TEMPLATE, EXAMPLE_TEMPLATE)
    watcher = _watcher(project)
    watcher.run_once()

    iteration = watcher.run_once()

    assert iteration.changed == []
    assert iteration.update is None
    assert iteration.to_dict()["update"] is None


def test_modified_added_and_removed_sources(project: Project) -> None:
    project.write(TEMPLATE, EXAMPLE_TEMPLATE)
    project.write(".flowsmith/libs/old.libsonnet", "{}")
    watcher = _watcher(project)
    watcher.run_once()

    _touch(project, TEMPLATE, 10)
    project.write(".flowsmith/workflows/new.jsonnet", EXAMPLE_TEMPLATE)
    (project.root / ".flowsmith/libs/old.libsonnet").unlink()
    iteration = watcher.run_once()

    assert iteration.changed == [
        ".flowsmith/libs/old.libsonnet",
        ".flowsmith/workflows/new.jsonnet",
        TEMPLATE,
    ]
    assert iteration.update is not None
    assert [(action.name, action.action) for action in iteration.update.actions] == [
        ("new", "create"),
        ("test", "skip"),
    ]
    assert watcher.run_once().changed == []


def test_snapshot_tracks_observable_sources(project: Project) -> None:
    project.write(TEMPLATE, EXAMPLE_TEMPLATE)
    project.write(".flowsmith/workflows/notes.md", "ignored")

    snapshot = _watcher(project).snapshot()

    assert list(snapshot) == [TEMPLATE]
    assert snapshot[TEMPLATE] == (project.root / TEMPLATE).stat().st_mtime


def test_remote_dependency_does_not_keep_watcher_busy(project: Project) -> None:
    url = "https://example.com/pkg.zip"
    project.fetcher.packages[url] = {
        "flowsmith-pkg.json": '{"files": ["workflows/lib.jsonnet"]}',
        "workflows/lib.jsonnet": EXAMPLE_TEMPLATE,
    }
    project.write(TEMPLATE, EXAMPLE_TEMPLATE)
    watcher = _watcher(project, make_config(dependencies=(url,)))

    first = watcher.run_once()
    second = watcher.run_once()
    third = watcher.run_once()

    assert first.update is not None
    assert first.update.fetched == [url]
    assert first.changed == [TEMPLATE]
    assert second.changed == [] and second.update is None
    assert third.changed == [] and third.update is None
    assert project.fetcher.calls == [url]

    _touch(project, TEMPLATE, 10)
    changed = watcher.run_once()

    assert changed.changed == [TEMPLATE]
    assert changed.update is not None
    assert project.fetcher.calls == [url, url]
