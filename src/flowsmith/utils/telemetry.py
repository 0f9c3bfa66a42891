"""Structured JSON-lines event log for flowsmith runs."""

from __future__ import annotations

import json
import os
import time
from functools import lru_cache
from importlib import resources
from typing import Any, Iterable, Iterator

import jsonschema

from flowsmith.settings import RuntimeSettings

LEVELS = {"info", "warn", "error"}
LOG_FILENAME = "telemetry.jsonl"

_DISABLE_VALUES = {"0", "false", "no", "off"}


def telemetry_enabled() -> bool:
    value = os.getenv("FLOWSMITH_TELEMETRY", "1").lower()
    return value not in _DISABLE_VALUES


def record_event(
    settings: RuntimeSettings,
    event: str,
    payload: dict[str, Any] | None = None,
    *,
    level: str = "info",
    status: str | None = None,
    duration_ms: float | None = None,
) -> None:
    if not telemetry_enabled():
        return
    record: dict[str, Any] = {
        "ts": time.time(),
        "event": event,
        "payload": payload or {},
        "level": level,
    }
    if status:
        record["status"] = status
    if duration_ms is not None:
        record["durationMs"] = duration_ms
    _validate_record(record)
    log_path = settings.log_dir / LOG_FILENAME
    log_path.parent.mkdir(parents=True, exist_ok=True)
    with log_path.open("a", encoding="utf-8") as fh:
        fh.write(json.dumps(record, ensure_ascii=False) + "\n")


def iter_events(settings: RuntimeSettings) -> Iterator[dict[str, Any]]:
    log_path = settings.log_dir / LOG_FILENAME
    if not log_path.exists():
        return
    with log_path.open("r", encoding="utf-8") as fh:
        for line in fh:
            line = line.strip()
            if not line:
                continue
            try:
                yield json.loads(line)
            except json.JSONDecodeError:
                continue


def summarize(events: Iterable[dict[str, Any]]) -> dict[str, Any]:
    total = 0
    by_event: dict[str, int] = {}
    by_level: dict[str, int] = {}
    for evt in events:
        name = evt.get("event", "unknown")
        by_event[name] = by_event.get(name, 0) + 1
        level = evt.get("level", "unknown")
        by_level[level] = by_level.get(level, 0) + 1
        total += 1
    return {"total": total, "by_event": by_event, "by_level": by_level}


def clear(settings: RuntimeSettings) -> None:
    log_path = settings.log_dir / LOG_FILENAME
    if log_path.exists():
        log_path.unlink()


@lru_cache(maxsize=1)
def _telemetry_validator() -> jsonschema.Draft202012Validator:
    schema_resource = resources.files("flowsmith.resources") / "telemetry.schema.json"
    schema = json.loads(schema_resource.read_text(encoding="utf-8"))
    return jsonschema.Draft202012Validator(schema)


def _validate_record(record: dict[str, Any]) -> None:
    if record.get("level") not in LEVELS:
        raise ValueError(f"Telemetry level '{record.get('level')}' is not supported")
    _telemetry_validator().validate(record)
