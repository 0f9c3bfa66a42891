#!/usr/bin/env python3
"""Entry point for the flowsmith CLI."""

from __future__ import annotations

import argparse
import difflib
import json
import os
import sys
import time
from pathlib import Path
from textwrap import dedent

from flowsmith import __version__
from flowsmith.app.scaffold import scaffold_project
from flowsmith.app.validation import SchemaLoadError
from flowsmith.app.watch import SourceWatcher
from flowsmith.app.workflow_service import CheckReport, UpdateReport, WorkflowService, build_workflow_service
from flowsmith.domain.config import ConfigError
from flowsmith.domain.dependency import DependencyFailure
from flowsmith.domain.project import ProjectContext
from flowsmith.ports.storage import StorageError
from flowsmith.settings import SETTINGS
from flowsmith.utils.telemetry import clear as telemetry_clear
from flowsmith.utils.telemetry import iter_events as telemetry_iter
from flowsmith.utils.telemetry import record_event, summarize as telemetry_summarize

HELP_OVERVIEW = dedent(
    """
    Quick start:
      - flowsmith init            - create .flowsmith/config.yml and an example template
      - flowsmith update          - regenerate .github/workflows from templates
      - flowsmith check           - fail when workflows are invalid or out of date

    Templates live in .flowsmith/workflows/*.jsonnet; shared code goes in
    .flowsmith/libs/*.libsonnet. Generated files must not be edited by hand.
    """
)


def _default_project_path(path_arg: str | None) -> Path:
    if path_arg:
        return Path(path_arg).expanduser().resolve()
    return Path(os.getcwd())


def _build_service(args: argparse.Namespace) -> WorkflowService | None:
    project_path = _default_project_path(getattr(args, "path", None))
    config_arg = getattr(args, "config", None)
    try:
        context = ProjectContext.load(project_path, Path(config_arg) if config_arg else None)
    except ConfigError as exc:
        print(str(exc), file=sys.stderr)
        return None
    return build_workflow_service(context, SETTINGS, max_workers=max(1, getattr(args, "workers", 1)))


def _print_dependency_failures(failures: list[DependencyFailure]) -> None:
    for failure in failures:
        print(f"Dependency {failure.reference} FAILED ({failure.kind})", file=sys.stderr)
        print(f"  ► {failure.error}", file=sys.stderr)


def _record_dependency_failures(failures: list[DependencyFailure], project: Path) -> None:
    for failure in failures:
        record_event(
            SETTINGS,
            "dependency.failed",
            {"project": str(project), **failure.to_dict()},
            level="error",
        )


def _record_fetches(fetched: list[str], project: Path) -> None:
    for reference in fetched:
        record_event(SETTINGS, "dependency.fetch", {"project": str(project), "reference": reference})


def _init_cmd(args: argparse.Namespace) -> int:
    project_path = _default_project_path(getattr(args, "path", None))
    written = scaffold_project(project_path, force=args.force)
    record_event(SETTINGS, "project.init", {"project": str(project_path), "files": len(written)})
    if not written:
        print("Nothing to do: project already initialised (use --force to overwrite)")
        return 0
    for path in written:
        print(f"  create {path.relative_to(project_path).as_posix()}")
    print("Run `flowsmith update` to generate workflows")
    return 0


def _print_update_report(report: UpdateReport) -> None:
    for action in report.actions:
        if action.action == "error":
            print(f"  error  {action.destination} (from {action.source})")
            for error in action.errors:
                print(f"  ► {error}")
        else:
            print(f"  {action.action:<6} {action.destination} (from {action.source})")


def _update_cmd(args: argparse.Namespace) -> int:
    service = _build_service(args)
    if service is None:
        return 1
    project = service.context.root
    start = time.perf_counter()
    try:
        report = service.update()
    except StorageError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    duration = (time.perf_counter() - start) * 1000
    _record_fetches(report.fetched, project)
    _record_dependency_failures(report.dependency_failures, project)
    record_event(
        SETTINGS,
        "workflow.update",
        {
            "project": str(project),
            "created": report.count("create"),
            "updated": report.count("update"),
            "errors": report.count("error"),
        },
        status="success" if report.valid else "failed",
        duration_ms=duration,
    )
    if args.json:
        print(json.dumps(report.to_dict(), ensure_ascii=False, indent=2))
    else:
        _print_update_report(report)
        _print_dependency_failures(report.dependency_failures)
    return 0 if report.valid else 1


def _print_diff(expected: str, actual: str, destination: str) -> None:
    diff = difflib.unified_diff(
        actual.splitlines(keepends=True),
        expected.splitlines(keepends=True),
        fromfile=f"{destination} (actual)",
        tofile=f"{destination} (expected)",
    )
    for line in diff:
        print("    " + line, end="" if line.endswith("\n") else "\n")


def _print_check_report(report: CheckReport, *, show_diffs: bool) -> None:
    for check in report.checks:
        stage = check.failed_stage
        if stage is None:
            print(f"Checking {check.definition.name} ... OK")
            for notice in check.notices:
                print(f"  ► {notice}")
            continue
        print(f"Checking {check.definition.name} ... FAILED")
        if stage == "template":
            print("  Error parsing template:")
            for error in check.errors:
                print(f"  ► {error}\n")
        elif stage == "schema":
            print("  Workflow failed schema validation:")
            for error in check.errors:
                print(f"  ► {error}")
        else:
            print("  " + check.errors[0])
            if show_diffs and check.content is not None and check.content.actual_content:
                _print_diff(check.definition.content, check.content.actual_content, check.definition.destination)
            print('  ► Run "flowsmith update" to update')
    _print_dependency_failures(report.dependency_failures)


def _check_cmd(args: argparse.Namespace) -> int:
    service = _build_service(args)
    if service is None:
        return 1
    project = service.context.root
    start = time.perf_counter()
    try:
        report = service.check()
    except (SchemaLoadError, StorageError) as exc:
        print(str(exc), file=sys.stderr)
        record_event(SETTINGS, "workflow.check", {"project": str(project), "error": str(exc)}, level="error", status="aborted")
        return 1
    duration = (time.perf_counter() - start) * 1000
    _record_fetches(report.fetched, project)
    _record_dependency_failures(report.dependency_failures, project)
    record_event(
        SETTINGS,
        "workflow.check",
        {
            "project": str(project),
            "workflows": len(report.checks),
            "failed": sum(1 for check in report.checks if not check.valid),
        },
        status="success" if report.valid else "failed",
        duration_ms=duration,
    )
    if args.json:
        print(json.dumps(report.to_dict(), ensure_ascii=False, indent=2))
    else:
        _print_check_report(report, show_diffs=args.show_diffs)
        if not report.valid:
            print("Workflow validation failed", file=sys.stderr)
    return 0 if report.valid else 1


def _list_cmd(args: argparse.Namespace) -> int:
    service = _build_service(args)
    if service is None:
        return 1
    try:
        definitions, failures = service.definitions()
    except StorageError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    if args.json:
        payload = {
            "workflows": [definition.to_dict() for definition in definitions],
            "dependencies": [failure.to_dict() for failure in failures],
        }
        print(json.dumps(payload, ensure_ascii=False, indent=2))
    else:
        if not definitions:
            print("No workflow templates found")
        for definition in definitions:
            status = "ok" if definition.valid else "invalid"
            print(f"- {definition.name} [{status}] {definition.description} -> {definition.destination}")
        _print_dependency_failures(failures)
    return 0 if not failures else 1


def _sources_cmd(args: argparse.Namespace) -> int:
    service = _build_service(args)
    if service is None:
        return 1
    try:
        sources = service.observable_sources()
    except StorageError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    if args.json:
        print(json.dumps({"sources": sources}, ensure_ascii=False, indent=2))
    else:
        for source in sources:
            print(source)
    return 0


def _watch_cmd(args: argparse.Namespace) -> int:
    service = _build_service(args)
    if service is None:
        return 1
    project = service.context.root
    watcher = SourceWatcher(service, service.storage)
    iterations = 1 if args.once else args.max_iterations
    executed = 0
    try:
        while True:
            start = time.perf_counter()
            try:
                iteration = watcher.run_once()
            except StorageError as exc:
                print(str(exc), file=sys.stderr)
                return 1
            duration = (time.perf_counter() - start) * 1000
            record_event(
                SETTINGS,
                "watch.iteration",
                {"project": str(project), "changed": len(iteration.changed), "updated": iteration.update is not None},
                duration_ms=duration,
            )
            if iteration.update is not None:
                _record_fetches(iteration.update.fetched, project)
                _record_dependency_failures(iteration.update.dependency_failures, project)
                if args.json:
                    print(json.dumps(iteration.to_dict(), ensure_ascii=False, indent=2))
                else:
                    if executed:
                        print(f"Detected changes in {len(iteration.changed)} source(s)")
                    _print_update_report(iteration.update)
                    _print_dependency_failures(iteration.update.dependency_failures)
            executed += 1
            if iterations and executed >= iterations:
                break
            time.sleep(args.interval)
    except KeyboardInterrupt:
        print("watch interrupted")
    return 0


def _telemetry_cmd(args: argparse.Namespace) -> int:
    if args.clear:
        telemetry_clear(SETTINGS)
        print("Telemetry log cleared")
        return 0
    events = list(telemetry_iter(SETTINGS))
    if args.summary:
        print(json.dumps(telemetry_summarize(events), ensure_ascii=False, indent=2))
        return 0
    for event in events[-args.limit :]:
        print(json.dumps(event, ensure_ascii=False))
    return 0


def _help_cmd(args: argparse.Namespace) -> int:
    print(HELP_OVERVIEW.strip())
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="flowsmith",
        description="Generate GitHub workflows from Jsonnet templates and keep them in sync",
    )
    parser.add_argument("--version", action="version", version=f"flowsmith {__version__}")
    sub = parser.add_subparsers(dest="command", required=True)

    def add_project_args(cmd: argparse.ArgumentParser) -> None:
        cmd.add_argument("path", nargs="?", help="Project path (default: current directory)")
        cmd.add_argument("--config", help="Config file (default: .flowsmith/config.yml)")
        cmd.add_argument("--workers", type=int, default=1, help="Evaluate templates in parallel (default: 1)")

    help_cmd = sub.add_parser("help", help="Show quick start")
    help_cmd.set_defaults(func=_help_cmd)

    init_cmd = sub.add_parser("init", help="Scaffold .flowsmith/ in a project")
    init_cmd.add_argument("path", nargs="?", help="Project path (default: current directory)")
    init_cmd.add_argument("--force", action="store_true", help="Overwrite existing files")
    init_cmd.set_defaults(func=_init_cmd)

    update_cmd = sub.add_parser("update", help="Regenerate workflow files from templates")
    add_project_args(update_cmd)
    update_cmd.add_argument("--json", action="store_true", help="Emit machine-readable output")
    update_cmd.set_defaults(func=_update_cmd)

    check_cmd = sub.add_parser("check", help="Validate workflows against their templates and schema")
    add_project_args(check_cmd)
    check_cmd.add_argument("--show-diffs", action="store_true", help="Print a diff for out-of-date workflows")
    check_cmd.add_argument("--json", action="store_true", help="Emit machine-readable output")
    check_cmd.set_defaults(func=_check_cmd)

    list_cmd = sub.add_parser("list", help="List workflow templates and their destinations")
    add_project_args(list_cmd)
    list_cmd.add_argument("--json", action="store_true", help="Emit machine-readable output")
    list_cmd.set_defaults(func=_list_cmd)

    sources_cmd = sub.add_parser("sources", help="List files whose changes invalidate generated workflows")
    add_project_args(sources_cmd)
    sources_cmd.add_argument("--json", action="store_true", help="Emit machine-readable output")
    sources_cmd.set_defaults(func=_sources_cmd)

    watch_cmd = sub.add_parser("watch", help="Regenerate workflows whenever their sources change")
    add_project_args(watch_cmd)
    watch_cmd.add_argument("--interval", type=float, default=1.0, help="Polling interval in seconds (default: 1)")
    watch_cmd.add_argument("--max-iterations", type=int, default=0, help="Stop after N iterations (0 = run until interrupted)")
    watch_cmd.add_argument("--once", action="store_true", help="Run a single iteration and exit")
    watch_cmd.add_argument("--json", action="store_true", help="Emit machine-readable JSON per update")
    watch_cmd.set_defaults(func=_watch_cmd)

    telemetry_cmd = sub.add_parser("telemetry", help="Inspect the local telemetry log")
    telemetry_cmd.add_argument("--summary", action="store_true", help="Print aggregated counts")
    telemetry_cmd.add_argument("--clear", action="store_true", help="Delete the telemetry log")
    telemetry_cmd.add_argument("--limit", type=int, default=20, help="Number of recent events to print")
    telemetry_cmd.set_defaults(func=_telemetry_cmd)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(sys.argv[1:] if argv is None else argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
