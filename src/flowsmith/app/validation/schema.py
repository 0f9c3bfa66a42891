"""Loading of JSON-Schema documents referenced by configuration."""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any
from urllib.parse import unquote, urlparse

import requests
from jsonschema import Draft202012Validator
from jsonschema.exceptions import SchemaError
from jsonschema.protocols import Validator
from jsonschema.validators import validator_for


class SchemaLoadError(RuntimeError):
    """Raised when a configured schema URI cannot be loaded."""


class SchemaLoader:
    """Loads and caches schema validators by URI.

    ``http(s)://`` URIs are fetched, ``file://`` URIs and plain paths are read
    from disk (relative paths against ``base_dir``).
    """

    def __init__(self, base_dir: Path, session: requests.Session | None = None, *, timeout: int = 30) -> None:
        self._base_dir = base_dir
        self._session = session or requests.Session()
        self._timeout = timeout
        self._lock = threading.Lock()
        self._validators: dict[str, Validator] = {}

    def load(self, uri: str) -> Validator:
        with self._lock:
            validator = self._validators.get(uri)
            if validator is None:
                validator = self._build(uri, self._read(uri))
                self._validators[uri] = validator
            return validator

    def _read(self, uri: str) -> Any:
        parsed = urlparse(uri)
        if parsed.scheme in {"http", "https"}:
            try:
                response = self._session.get(uri, timeout=self._timeout)
            except requests.RequestException as exc:
                raise SchemaLoadError(f"unable to fetch schema {uri}: {exc}") from exc
            if response.status_code >= 400:
                raise SchemaLoadError(f"unable to fetch schema {uri}: status {response.status_code}")
            text = response.text
        else:
            if parsed.scheme == "file":
                path = Path(unquote(parsed.path))
            elif parsed.scheme and len(parsed.scheme) > 1:
                raise SchemaLoadError(f"unsupported schema URI scheme '{parsed.scheme}' in {uri}")
            else:
                path = Path(uri)
            if not path.is_absolute():
                path = self._base_dir / path
            try:
                text = path.read_text(encoding="utf-8")
            except OSError as exc:
                raise SchemaLoadError(f"unable to read schema {uri}: {exc}") from exc
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise SchemaLoadError(f"schema {uri} is not valid JSON: {exc.msg}") from exc

    @staticmethod
    def _build(uri: str, schema: Any) -> Validator:
        if not isinstance(schema, (dict, bool)):
            raise SchemaLoadError(f"schema {uri} must be a JSON object")
        cls = validator_for(schema, default=Draft202012Validator)
        try:
            cls.check_schema(schema)
        except SchemaError as exc:
            raise SchemaLoadError(f"schema {uri} is invalid: {exc.message}") from exc
        return cls(schema)
