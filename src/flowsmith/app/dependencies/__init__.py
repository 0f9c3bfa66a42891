"""Dependency resolution for template packages."""

from .manifest import MANIFEST_FILENAME, ManifestError, PackageManifest, parse_manifest, read_manifest
from .resolver import DependencyResolver, cache_key

__all__ = [
    "DependencyResolver",
    "MANIFEST_FILENAME",
    "ManifestError",
    "PackageManifest",
    "cache_key",
    "parse_manifest",
    "read_manifest",
]
