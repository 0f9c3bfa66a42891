from __future__ import annotations

import threading

import pytest
from fixtures import Project

from flowsmith.app.dependencies import DependencyResolver, ManifestError, cache_key, parse_manifest
from flowsmith.domain.workflow import PathInfo
from flowsmith.ports.fetcher import FetchError

REMOTE = "https://example.com/releases/ci-kit.tar.gz"


def _remote_package(project: Project) -> None:
    project.fetcher.packages[REMOTE] = {
        "flowsmith-pkg.json": '{"name": "ci-kit", "files": ["workflows/lint.jsonnet"]}',
        "workflows/lint.jsonnet": "std.manifestYamlDoc({})",
    }


def test_local_dependency_with_manifest(project: Project) -> None:
    project.write("vendor/kit/flowsmith-pkg.json", '{"files": ["./workflows/a.jsonnet", "workflows/b.jsonnet"]}')
    project.write("vendor/kit/workflows/a.jsonnet", "{}")
    project.write("vendor/kit/workflows/b.jsonnet", "{}")

    dependency = project.resolver().resolve("vendor/kit")

    assert dependency.name == "kit"
    assert dependency.local_dir == "vendor/kit"
    assert dependency.manifest_files == ("workflows/a.jsonnet", "workflows/b.jsonnet")
    assert not dependency.remote
    assert dependency.templates() == [
        PathInfo("vendor/kit/workflows/a.jsonnet", "vendor/kit/workflows/a.jsonnet", "kit/workflows/a.jsonnet"),
        PathInfo("vendor/kit/workflows/b.jsonnet", "vendor/kit/workflows/b.jsonnet", "kit/workflows/b.jsonnet"),
    ]


def test_dependency_without_manifest_is_library_only(project: Project) -> None:
    project.write("vendor/helpers/steps.libsonnet", "{}")

    dependency = project.resolver().resolve("vendor/helpers")

    assert dependency.library_only
    assert dependency.templates() == []


def test_resolve_is_idempotent(project: Project) -> None:
    project.write("vendor/kit/flowsmith-pkg.json", '{"files": []}')
    resolver = project.resolver()

    assert resolver.resolve("vendor/kit") is resolver.resolve("vendor/kit")


def test_remote_dependency_is_fetched_once(project: Project) -> None:
    _remote_package(project)
    resolver = project.resolver()

    first = resolver.resolve(REMOTE)
    second = resolver.resolve(REMOTE)
    report = resolver.resolve_all([REMOTE, REMOTE])

    assert project.fetcher.calls == [REMOTE]
    assert first == second
    assert first.remote
    assert first.name == "ci-kit"
    assert first.local_dir == str(project.cache_dir / cache_key(REMOTE))
    assert resolver.fetched == {REMOTE: project.cache_dir / cache_key(REMOTE)}
    assert [dependency.reference for dependency in report.dependencies] == [REMOTE, REMOTE]


def test_concurrent_requests_share_one_fetch(project: Project) -> None:
    _remote_package(project)
    resolver = project.resolver()
    barrier = threading.Barrier(4)
    results = []

    def _worker() -> None:
        barrier.wait()
        results.append(resolver.resolve(REMOTE))

    threads = [threading.Thread(target=_worker) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert project.fetcher.calls == [REMOTE]
    assert len(results) == 4
    assert len({dependency.local_dir for dependency in results}) == 1


def test_failure_does_not_abort_siblings(project: Project) -> None:
    _remote_package(project)
    project.write("vendor/kit/flowsmith-pkg.json", '{"files": []}')
    project.write("vendor/broken/flowsmith-pkg.json", '{"files": "nope"}')
    resolver = project.resolver()

    report = resolver.resolve_all(
        ["https://example.com/missing.zip", "vendor/kit", "vendor/broken", "vendor/absent", REMOTE],
        max_workers=3,
    )

    assert not report.ok
    assert [dependency.reference for dependency in report.dependencies] == ["vendor/kit", REMOTE]
    assert [(failure.reference, failure.kind) for failure in report.failures] == [
        ("https://example.com/missing.zip", "fetch"),
        ("vendor/broken", "manifest"),
        ("vendor/absent", "fetch"),
    ]
    assert "dependency not found" in report.failures[2].error


def test_manifest_listing_missing_file_fails_only_that_dependency(project: Project) -> None:
    project.write("vendor/partial/flowsmith-pkg.json", '{"files": ["workflows/missing.jsonnet"]}')
    project.write("vendor/kit/flowsmith-pkg.json", '{"files": []}')

    report = project.resolver().resolve_all(["vendor/partial", "vendor/kit"])

    assert [dependency.reference for dependency in report.dependencies] == ["vendor/kit"]
    assert [(failure.reference, failure.kind) for failure in report.failures] == [("vendor/partial", "manifest")]
    assert "workflows/missing.jsonnet" in report.failures[0].error


def test_fetch_failure_is_memoized(project: Project) -> None:
    resolver = project.resolver()
    url = "https://example.com/missing.zip"

    with pytest.raises(FetchError):
        resolver.resolve(url)
    with pytest.raises(FetchError):
        resolver.resolve_library(url)

    assert project.fetcher.calls == [url]


def test_resolve_library(project: Project) -> None:
    project.write("vendor/lib/steps.libsonnet", "{}")
    project.write("shared.libsonnet", "{}")
    project.fetcher.packages["https://example.com/lib/common.libsonnet"] = {"common.libsonnet": "{}"}
    resolver = project.resolver()

    assert resolver.resolve_library("vendor/lib") == "vendor/lib"
    assert resolver.resolve_library("vendor/lib/steps.libsonnet") == "vendor/lib"
    assert resolver.resolve_library("shared.libsonnet") == "."
    remote_dir = resolver.resolve_library("https://example.com/lib/common.libsonnet")
    assert remote_dir == str(project.cache_dir / cache_key("https://example.com/lib/common.libsonnet"))


def test_fresh_resolver_fetches_again(project: Project) -> None:
    _remote_package(project)
    project.resolver().resolve(REMOTE)
    DependencyResolver(project.storage, project.fetcher, project.cache_dir).resolve(REMOTE)

    assert project.fetcher.calls == [REMOTE, REMOTE]


@pytest.mark.parametrize(
    "raw, message",
    [
        ("{not json", "invalid JSON"),
        ('{"name": "x"}', "'files' is a required property"),
        ('{"files": [1]}', "is not of type 'string'"),
        ('{"files": ["../outside.jsonnet"]}', "escapes the package root"),
        ('{"files": ["/abs.jsonnet"]}', "escapes the package root"),
    ],
)
def test_parse_manifest_errors(raw: str, message: str) -> None:
    with pytest.raises(ManifestError) as excinfo:
        parse_manifest(raw, source="pkg/flowsmith-pkg.json")
    assert message in str(excinfo.value)
    assert str(excinfo.value).startswith("pkg/flowsmith-pkg.json")


def test_parse_manifest_normalizes_paths() -> None:
    manifest = parse_manifest('{"name": "kit", "files": ["a/./b.jsonnet", "c/../d.jsonnet"]}', source="m")

    assert manifest.name == "kit"
    assert manifest.files == ("a/b.jsonnet", "d.jsonnet")
