"""HTTP archive fetcher backed by requests."""

from __future__ import annotations

import io
import shutil
import tarfile
import zipfile
from pathlib import Path, PurePosixPath
from urllib.parse import urlparse

import requests

from flowsmith import __version__
from flowsmith.ports.fetcher import ArchiveFetcher, FetchError

ZIP_SUFFIXES = (".zip",)
TAR_SUFFIXES = (".tar.gz", ".tgz", ".tar")
DEFAULT_TIMEOUT = 30


def is_remote(reference: str) -> bool:
    return urlparse(reference).scheme in {"http", "https"}


def archive_kind(url: str) -> str | None:
    name = PurePosixPath(urlparse(url).path).name.lower()
    if name.endswith(ZIP_SUFFIXES):
        return "zip"
    if name.endswith(TAR_SUFFIXES):
        return "tar"
    return None


def reference_name(reference: str) -> str:
    """Return the display name of a reference: its last path segment without archive suffixes."""
    raw = urlparse(reference).path if is_remote(reference) else reference
    name = PurePosixPath(raw.rstrip("/")).name
    for suffix in (*ZIP_SUFFIXES, *TAR_SUFFIXES):
        if name.lower().endswith(suffix):
            return name[: -len(suffix)]
    return name


class HttpArchiveFetcher(ArchiveFetcher):
    def __init__(self, session: requests.Session | None = None, *, timeout: int = DEFAULT_TIMEOUT) -> None:
        self._session = session or requests.Session()
        self._timeout = timeout

    def fetch(self, url: str, destination: Path) -> Path:
        payload = self._download(url)
        if destination.exists():
            shutil.rmtree(destination)
        destination.mkdir(parents=True, exist_ok=True)
        kind = archive_kind(url)
        try:
            if kind == "zip":
                with zipfile.ZipFile(io.BytesIO(payload)) as archive:
                    archive.extractall(destination)
            elif kind == "tar":
                with tarfile.open(fileobj=io.BytesIO(payload)) as archive:
                    archive.extractall(destination, filter="data")
            else:
                name = PurePosixPath(urlparse(url).path).name or "index"
                (destination / name).write_bytes(payload)
                return destination
        except (zipfile.BadZipFile, tarfile.TarError) as exc:
            shutil.rmtree(destination, ignore_errors=True)
            raise FetchError(f"{url}: invalid {kind} archive ({exc})") from exc
        return _archive_root(destination)

    def _download(self, url: str) -> bytes:
        headers = {"User-Agent": f"flowsmith/{__version__}"}
        try:
            response = self._session.get(url, headers=headers, timeout=self._timeout)
        except requests.RequestException as exc:
            raise FetchError(f"{url}: request failed ({exc})") from exc
        if response.status_code >= 400:
            raise FetchError(f"{url}: request failed with status {response.status_code}")
        return response.content


def _archive_root(destination: Path) -> Path:
    entries = list(destination.iterdir())
    if len(entries) == 1 and entries[0].is_dir():
        # archives published by forges wrap everything in "<repo>-<ref>/"
        return entries[0]
    return destination
